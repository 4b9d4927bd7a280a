"""
Session binder - Implements SessionBinder over Starlette's cookie session.

The session stores a single identity value (user id or email, depending
on ``schema_key``) plus a list of pending flash notices.
"""

from collections.abc import MutableMapping
from typing import Any

from src.domain.exceptions import NotAuthenticated
from src.domain.user import User

IDENTITY_KEY = "user_identity"
FLASH_KEY = "_flash"


class RequestSession:
    """Binds users to the session dict of the current request."""

    def __init__(self, session: MutableMapping[str, Any], id_key: str = "id") -> None:
        self._session = session
        self._id_key = id_key

    @property
    def id_key(self) -> str:
        return self._id_key

    @property
    def logged_in(self) -> bool:
        return self._session.get(IDENTITY_KEY) is not None

    def identity(self) -> int | str:
        """
        Identity value of the logged-in user.

        Raises:
            NotAuthenticated: If nobody is logged in
        """
        identity = self._session.get(IDENTITY_KEY)
        if identity is None:
            raise NotAuthenticated()
        return identity

    def login(self, user: User) -> None:
        self._session[IDENTITY_KEY] = user.identity(self._id_key)

    def logout(self) -> None:
        self._session.clear()

    def flash(self, message: str) -> None:
        self._session[FLASH_KEY] = [*self._session.get(FLASH_KEY, []), message]

    def pop_flashes(self) -> list[str]:
        return self._session.pop(FLASH_KEY, [])
