"""
Port interfaces - Protocol definitions for infrastructure abstraction.

This module defines the interfaces (ports) that the domain requires
from infrastructure. Adapters implement these protocols.
"""

from typing import Protocol

from .changes import ChangeRequest
from .user import User


class UserRepository(Protocol):
    """Port interface for user persistence."""

    def create(self, changes: ChangeRequest) -> User | None:
        """
        Insert a new user from a change request.

        Returns the persisted user, or None when the change request is
        invalid or storage rejected it. In the latter case the storage
        failure has been recorded as a field error on ``changes``.
        """
        ...

    def update(self, changes: ChangeRequest) -> User | None:
        """Apply a change request to ``changes.data``; same contract as create."""
        ...

    def delete(self, user: User) -> bool:
        """Delete the user row. Returns True if a row was removed."""
        ...

    def get_by_id(self, user_id: int) -> User | None: ...

    def get_by_email(self, email: str) -> User | None: ...

    def get_by_confirmation_token(self, token: str) -> User | None: ...

    def set_confirmation_token(self, user: User, token: str) -> User:
        """Store a fresh confirmation token and stamp confirmation_sent_at."""
        ...

    def confirm(self, user: User) -> User:
        """Mark the user confirmed and clear the confirmation token."""
        ...


class EmailSender(Protocol):
    """Port interface for email delivery."""

    def send_confirmation(self, email: str, token: str) -> None:
        """
        Send an account confirmation token to an email address.

        Args:
            email: Recipient email address
            token: Confirmation token
        """
        ...


class SessionBinder(Protocol):
    """Port interface binding a user to the current request context."""

    def login(self, user: User) -> None: ...

    def logout(self) -> None: ...

    def flash(self, message: str) -> None: ...


class CaptchaVerifier(Protocol):
    """Port interface for human verification before registration."""

    def verify(self, token: str | None, remote_ip: str | None = None) -> bool: ...


class InviteAcceptor(Protocol):
    """Port interface for accepting pending invitations on sign-up."""

    def accept_invite(self, user: User) -> None: ...


class AccountDeleter(Protocol):
    """Port interface for the account removal service."""

    def delete_account(self, user: User) -> None:
        """
        Remove the account and everything owned by it.

        Raises:
            AccountDeletionFailed: If the account could not be removed
        """
        ...
