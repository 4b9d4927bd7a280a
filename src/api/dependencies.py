"""
FastAPI dependencies - Dependency injection factories.

This module provides Depends() factories for injecting
domain services and infrastructure adapters into routes.

Everything configurable is read from ``app.state``, which the app
factory fills once at startup.
"""

from fastapi import Depends, HTTPException, Request, status
from psycopg_pool import ConnectionPool

from src.adapters.repository.postgres import PostgresInviteAcceptor, PostgresUserRepository
from src.adapters.smtp.console import ConsoleEmailSender
from src.api.session import RequestSession
from src.config.settings import Settings
from src.domain.accounts import AccountRemover
from src.domain.changes import RegistrationSchema
from src.domain.confirmation import ConfirmationDispatcher
from src.domain.exceptions import NotAuthenticated
from src.domain.ports import CaptchaVerifier
from src.domain.registration import RegistrationService
from src.domain.user import User

# Module-level singleton - ConsoleEmailSender is stateless
_email_sender = ConsoleEmailSender()


def get_app_settings(request: Request) -> Settings:
    """Settings loaded at startup and stored in app state."""
    return request.app.state.settings


def get_pool(request: Request) -> ConnectionPool:
    """
    Get connection pool from app state.

    The pool is created during app lifespan startup and stored in app.state.
    """
    return request.app.state.pool


def get_repository(request: Request) -> PostgresUserRepository:
    """Create repository with connection pool from app state."""
    pool = get_pool(request)
    return PostgresUserRepository(pool)


def get_email_sender() -> ConsoleEmailSender:
    """Get console email sender (singleton)."""
    return _email_sender


def get_captcha_verifier(request: Request) -> CaptchaVerifier:
    """CAPTCHA verifier selected at startup (a null verifier when disabled)."""
    return request.app.state.captcha


def get_registration_service(request: Request) -> RegistrationService:
    """
    Create registration service with injected dependencies.

    Wires together the repository, confirmation dispatcher, CAPTCHA
    verifier and invite acceptor for the domain service.
    """
    settings = get_app_settings(request)
    repository = get_repository(request)
    policy = settings.registration_policy()
    invites = PostgresInviteAcceptor(get_pool(request)) if policy.accept_invites else None

    return RegistrationService(
        repository=repository,
        schema=RegistrationSchema(bcrypt_cost=settings.bcrypt_cost),
        confirmations=ConfirmationDispatcher(repository=repository, email_sender=get_email_sender()),
        captcha=get_captcha_verifier(request),
        account_deleter=AccountRemover(repository=repository),
        policy=policy,
        invites=invites,
    )


def get_session(request: Request) -> RequestSession:
    """Session binder for the current request."""
    settings = get_app_settings(request)
    return RequestSession(request.session, id_key=settings.schema_key)


def require_registerable(settings: Settings = Depends(get_app_settings)) -> None:
    """Hide registration routes when self-registration is disabled."""
    if not settings.registerable:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not Found")


def redirect_logged_in(
    session: RequestSession = Depends(get_session),
    settings: Settings = Depends(get_app_settings),
) -> None:
    """Send already logged-in users away from the sign-up form."""
    if session.logged_in:
        raise HTTPException(
            status_code=status.HTTP_303_SEE_OTHER,
            detail="Already logged in",
            headers={"Location": settings.after_registration_path},
        )


def get_current_user(
    session: RequestSession = Depends(get_session),
    repository: PostgresUserRepository = Depends(get_repository),
) -> User:
    """
    Load the logged-in user.

    A session pointing at a user that no longer exists, or holding an
    identity of the wrong kind, is cleared.

    Raises:
        HTTPException: 401 if nobody is logged in
    """
    try:
        identity = session.identity()
    except NotAuthenticated:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Login required",
        ) from None

    user = None
    if session.id_key == "email":
        user = repository.get_by_email(str(identity))
    elif isinstance(identity, int) or str(identity).isdigit():
        user = repository.get_by_id(int(identity))

    if user is None:
        session.logout()
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Login required")
    return user
