"""
Shared fixtures for database-backed tests.

Tests in this package need PostgreSQL at DATABASE_URL (for example via
docker-compose). They are skipped when the database is unreachable.
"""

from collections.abc import Generator

import psycopg
import pytest
from psycopg_pool import ConnectionPool

from src.adapters.repository.postgres import run_migrations
from src.config.settings import get_settings


@pytest.fixture(scope="module")
def pool() -> Generator[ConnectionPool, None, None]:
    """Create a migrated connection pool, or skip without a database."""
    settings = get_settings()
    try:
        with psycopg.connect(settings.database_url, connect_timeout=2):
            pass
    except psycopg.OperationalError as e:
        pytest.skip(f"PostgreSQL not available: {e}")

    pool = ConnectionPool(
        conninfo=settings.database_url,
        min_size=1,
        max_size=10,
        open=True,
    )
    run_migrations(pool)
    yield pool
    pool.close()


@pytest.fixture
def clean_database(pool: ConnectionPool) -> Generator[None, None, None]:
    """Empty the users and invitations tables before a test."""
    with pool.connection() as conn:
        conn.execute("DELETE FROM invitations")
        conn.execute("DELETE FROM users")
        conn.commit()
    yield

