"""
Registration domain service - account lifecycle orchestration.

This module sequences validation, persistence, confirmation and session
binding for the registration actions.

Create lifecycle
================

    CAPTCHA check --fail--> CAPTCHA_FAILED (nothing persisted)
        |
    validate + persist --errors--> INVALID (nothing persisted)
        |
    accept invites (best effort)
        |
    send confirmation (if confirmable)
        |
    allow_unconfirmed_access_for == 0 --> CREATED   (not logged in)
    allow_unconfirmed_access_for  > 0 --> SIGNED_IN (logged in)

Update: persist, then re-bind the session under the possibly changed
identity. Delete: log out first, then remove the account.
"""

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any

from .changes import ChangeRequest, RegistrationSchema, scrub_params
from .confirmation import ConfirmationDispatcher
from .ports import (
    AccountDeleter,
    CaptchaVerifier,
    InviteAcceptor,
    SessionBinder,
    UserRepository,
)
from .user import User

logger = logging.getLogger(__name__)

CONFIRMATION_SENT = "Confirmation email sent."
REGISTRATION_CREATED = "Registration created successfully."
ACCOUNT_UPDATED = "Account updated successfully."
ACCOUNT_DELETED = "Your account has been successfully deleted"
CAPTCHA_REJECTED = "Please verify that you are not a robot."


class RegistrationStatus(Enum):
    """Result of a create or update action."""

    SIGNED_IN = "signed_in"
    CREATED = "created"
    UPDATED = "updated"
    INVALID = "invalid"
    CAPTCHA_FAILED = "captcha_failed"


class ConfirmResult(Enum):
    """Result of an account confirmation attempt."""

    SUCCESS = "success"
    INVALID = "invalid"
    EXPIRED = "expired"
    ALREADY_CONFIRMED = "already_confirmed"


@dataclass(frozen=True)
class RegistrationPolicy:
    """Feature switches for the registration flow, fixed at startup."""

    allow_unconfirmed_access_for: int = 0
    confirmable: bool = True
    accept_invites: bool = False
    confirmation_token_ttl_days: int = 5


@dataclass
class RegistrationOutcome:
    """What happened during create/update, for the HTTP layer to render."""

    status: RegistrationStatus
    changes: ChangeRequest
    user: User | None = None
    notice: str | None = None


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class RegistrationService:
    """
    Domain service for account registration.

    Orchestrates the registration actions over injected ports; none of
    the collaborators are looked up at call time.
    """

    repository: UserRepository
    schema: RegistrationSchema
    confirmations: ConfirmationDispatcher
    captcha: CaptchaVerifier
    account_deleter: AccountDeleter
    policy: RegistrationPolicy = field(default_factory=RegistrationPolicy)
    invites: InviteAcceptor | None = None
    clock: Callable[[], datetime] = _utcnow

    def new(self) -> ChangeRequest:
        """Blank change request for the registration form."""
        return self.schema.new()

    def edit(self, user: User) -> ChangeRequest:
        """Change request pre-filled with the current account."""
        return ChangeRequest(data=user)

    def create(
        self,
        params: Mapping[str, Any] | None,
        session: SessionBinder,
        captcha_token: str | None = None,
        remote_ip: str | None = None,
    ) -> RegistrationOutcome:
        """
        Register a new account.

        Args:
            params: Raw ``registration`` map from the form
            session: Session of the current request
            captcha_token: Token returned by the CAPTCHA widget, if any
            remote_ip: Client address forwarded to the CAPTCHA provider

        Returns:
            RegistrationOutcome; CREATED or SIGNED_IN on success
        """
        if not self.captcha.verify(captcha_token, remote_ip):
            logger.info("Registration rejected by CAPTCHA")
            return RegistrationOutcome(
                status=RegistrationStatus.CAPTCHA_FAILED,
                changes=ChangeRequest(params=scrub_params(params)),
                notice=CAPTCHA_REJECTED,
            )

        changes = self.schema.changes(None, params)
        user = self.repository.create(changes)
        if user is None:
            return RegistrationOutcome(status=RegistrationStatus.INVALID, changes=changes)

        logger.info("Registered account %s", user.id)
        self._accept_invites(user)
        user, notice = self._send_confirmation(user)

        if self.policy.allow_unconfirmed_access_for == 0:
            return RegistrationOutcome(
                status=RegistrationStatus.CREATED, changes=changes, user=user, notice=notice
            )

        session.login(user)
        return RegistrationOutcome(
            status=RegistrationStatus.SIGNED_IN, changes=changes, user=user, notice=notice
        )

    def update(
        self, user: User, params: Mapping[str, Any] | None, session: SessionBinder
    ) -> RegistrationOutcome:
        """
        Update the current account.

        On success the session is bound again so it follows a changed
        identity key. On failure the session is not touched.
        """
        changes = self.schema.changes(user, params)
        updated = self.repository.update(changes)
        if updated is None:
            return RegistrationOutcome(status=RegistrationStatus.INVALID, changes=changes, user=user)

        session.login(updated)
        return RegistrationOutcome(
            status=RegistrationStatus.UPDATED,
            changes=changes,
            user=updated,
            notice=ACCOUNT_UPDATED,
        )

    def delete(self, user: User, session: SessionBinder) -> str:
        """
        Delete the current account.

        The session is always terminated before the deletion service runs.

        Returns:
            Notice to show after the redirect

        Raises:
            AccountDeletionFailed: If the deletion service fails
        """
        session.logout()
        self.account_deleter.delete_account(user)
        return ACCOUNT_DELETED

    def confirm(self, token: str) -> ConfirmResult:
        """Confirm the account holding ``token``."""
        user = self.repository.get_by_confirmation_token(token)
        if user is None:
            return ConfirmResult.INVALID
        if user.confirmed:
            return ConfirmResult.ALREADY_CONFIRMED

        ttl = timedelta(days=self.policy.confirmation_token_ttl_days)
        if user.confirmation_sent_at is None or user.confirmation_sent_at + ttl < self.clock():
            return ConfirmResult.EXPIRED

        self.repository.confirm(user)
        logger.info("Confirmed account %s", user.id)
        return ConfirmResult.SUCCESS

    def _accept_invites(self, user: User) -> None:
        if not self.policy.accept_invites or self.invites is None:
            return
        try:
            self.invites.accept_invite(user)
        except Exception:
            logger.warning("Invite acceptance failed for %s", user.email, exc_info=True)

    def _send_confirmation(self, user: User) -> tuple[User, str]:
        if not self.policy.confirmable:
            return user, REGISTRATION_CREATED
        return self.confirmations.send(user), CONFIRMATION_SENT
