"""
Domain layer - Account registration logic with zero web framework imports.

This package contains the account lifecycle orchestration, the change
request validation and the port interfaces that infrastructure adapters
implement.
"""

from .accounts import AccountRemover
from .changes import ChangeRequest, RegistrationSchema
from .confirmation import ConfirmationDispatcher
from .exceptions import AccountDeletionFailed, NotAuthenticated, RegistrationError
from .ports import (
    AccountDeleter,
    CaptchaVerifier,
    EmailSender,
    InviteAcceptor,
    SessionBinder,
    UserRepository,
)
from .registration import (
    ConfirmResult,
    RegistrationOutcome,
    RegistrationPolicy,
    RegistrationService,
    RegistrationStatus,
)
from .user import User

__all__ = [
    "AccountDeleter",
    "AccountDeletionFailed",
    "AccountRemover",
    "CaptchaVerifier",
    "ChangeRequest",
    "ConfirmResult",
    "ConfirmationDispatcher",
    "EmailSender",
    "InviteAcceptor",
    "NotAuthenticated",
    "RegistrationError",
    "RegistrationOutcome",
    "RegistrationPolicy",
    "RegistrationSchema",
    "RegistrationService",
    "RegistrationStatus",
    "SessionBinder",
    "User",
    "UserRepository",
]
