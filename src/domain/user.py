"""
User entity - the persisted account record.

Rows come back from the repository as plain dicts and are turned into
User instances; the domain never sees driver-specific row types.
"""

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class User:
    """A registered account."""

    id: int
    email: str
    password_hash: str
    name: str | None = None
    confirmation_token: str | None = None
    confirmation_sent_at: datetime | None = None
    confirmed_at: datetime | None = None
    inserted_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def confirmed(self) -> bool:
        return self.confirmed_at is not None

    def identity(self, key: str) -> int | str:
        """Return the value used to bind this user to a session."""
        if key == "email":
            return self.email
        return self.id
