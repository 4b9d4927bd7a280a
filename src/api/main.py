"""
FastAPI application factory and configuration.

This module creates the FastAPI application instance,
configures middleware, exception handlers, and lifespan events.
"""

import logging
import secrets
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from psycopg_pool import ConnectionPool
from starlette.middleware.sessions import SessionMiddleware

from src.adapters.captcha import NullCaptchaVerifier, RecaptchaVerifier
from src.adapters.repository.postgres import run_migrations
from src.api.v1 import router as v1_router
from src.config.settings import Settings, get_settings
from src.domain.exceptions import AccountDeletionFailed
from src.domain.ports import CaptchaVerifier

logger = logging.getLogger(__name__)

# OpenAPI tags for documentation grouping
tags_metadata = [
    {
        "name": "v1",
        "description": "Account registration API v1 - Register, update and delete user accounts",
    },
]


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    FastAPI lifespan context manager.

    Manages application startup and shutdown:
    - Creates database connection pool on startup
    - Runs migrations on startup
    - Closes connection pool on shutdown
    """
    settings: Settings = app.state.settings

    logger.info("Starting application...")
    logger.info("Connecting to database...")

    pool = ConnectionPool(
        conninfo=settings.database_url,
        min_size=settings.pool_min_size,
        max_size=settings.pool_max_size,
    )

    logger.info("Running database migrations...")
    run_migrations(pool)

    # Store pool in app state for dependency injection
    app.state.pool = pool

    logger.info("Application startup complete")

    yield

    logger.info("Shutting down application...")
    pool.close()
    logger.info("Database connection pool closed")


def build_captcha_verifier(settings: Settings) -> CaptchaVerifier:
    """Pick the CAPTCHA verifier once, from configuration."""
    if not settings.recaptcha_enabled:
        return NullCaptchaVerifier()
    if not settings.recaptcha_secret:
        raise RuntimeError("RECAPTCHA_SECRET must be set when RECAPTCHA_ENABLED is true")
    return RecaptchaVerifier(
        secret=settings.recaptcha_secret,
        verify_url=settings.recaptcha_verify_url,
        timeout=settings.recaptcha_timeout_seconds,
    )


async def account_deletion_failed_handler(request: Request, exc: AccountDeletionFailed) -> JSONResponse:
    """Report a failed account deletion without leaking details."""
    logger.error("Account deletion failed: %s", exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Account deletion failed"},
    )


def create_app(settings: Settings | None = None) -> FastAPI:
    """
    Build the application.

    Settings are resolved here, once, and stored on ``app.state`` for
    the dependencies to use.
    """
    settings = settings or get_settings()

    app = FastAPI(
        title="registrar",
        description="Account registration API - sign up, confirm, update and delete accounts",
        version="0.1.0",
        openapi_tags=tags_metadata,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.captcha = build_captcha_verifier(settings)

    session_secret = settings.session_secret
    if not session_secret:
        session_secret = secrets.token_hex(32)
        logger.warning(
            "SESSION_SECRET not set - using generated key (sessions won't persist across restarts)"
        )

    app.add_middleware(
        SessionMiddleware,
        secret_key=session_secret,
        session_cookie=settings.session_cookie,
        max_age=settings.session_max_age,
        same_site="lax",
    )
    app.add_exception_handler(AccountDeletionFailed, account_deletion_failed_handler)

    # Include v1 API routes
    app.include_router(v1_router, prefix="/v1")

    @app.get("/health")
    async def health_check(request: Request) -> dict[str, str]:
        """
        Health check endpoint with database validation.

        Returns 200 OK if application and database are healthy.
        Raises exception if database connection fails.
        """
        pool = request.app.state.pool
        with pool.connection() as conn:
            conn.execute("SELECT 1")

        return {"status": "healthy"}

    return app


app = create_app()
