"""
Domain exceptions - Semantic error types for account management.

This module defines domain-specific exceptions that communicate
business rule violations without leaking infrastructure details.
"""


class RegistrationError(Exception):
    """Base class for registration domain errors."""

    pass


class AccountDeletionFailed(RegistrationError):
    """The account could not be removed from storage."""

    pass


class NotAuthenticated(RegistrationError):
    """No user is bound to the current session."""

    pass
