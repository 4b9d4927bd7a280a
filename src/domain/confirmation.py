"""
Confirmation dispatcher - issues and delivers account confirmation tokens.

Delivery is fire-and-forget from the caller's point of view: failures
are logged and the user is returned as it was.
"""

import logging
import secrets
from dataclasses import dataclass

from .ports import EmailSender, UserRepository
from .user import User

logger = logging.getLogger(__name__)


@dataclass
class ConfirmationDispatcher:
    """Stores a confirmation token on the user and emails it."""

    repository: UserRepository
    email_sender: EmailSender

    def send(self, user: User) -> User:
        """
        Issue a confirmation token for ``user`` and send it.

        Returns:
            The user with its confirmation token set, or the unchanged
            user if the token could not be stored or sent
        """
        token = self._generate_token()
        try:
            confirmed_user = self.repository.set_confirmation_token(user, token)
            self.email_sender.send_confirmation(confirmed_user.email, token)
        except Exception:
            logger.exception("Failed to send confirmation to %s", user.email)
            return user
        return confirmed_user

    def _generate_token(self) -> str:
        """URL-safe random token; uses secrets for cryptographic randomness."""
        return secrets.token_urlsafe(32)
