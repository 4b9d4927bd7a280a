"""
PostgreSQL repository adapter - Implements the UserRepository protocol.

This module provides the PostgreSQL implementation of the domain's
repository port using psycopg3 with raw SQL.

Change requests that carry errors never reach the database. Storage
failures that are really validation failures (the UNIQUE constraint on
email) are recorded on the change request as field errors instead of
being raised, so callers handle both the same way.
"""

import logging
from pathlib import Path

from psycopg import sql
from psycopg.errors import UniqueViolation
from psycopg.rows import dict_row
from psycopg_pool import ConnectionPool

from src.domain.changes import TAKEN, ChangeRequest
from src.domain.user import User

logger = logging.getLogger(__name__)

_USER_COLUMNS = (
    "id",
    "name",
    "email",
    "password_hash",
    "confirmation_token",
    "confirmation_sent_at",
    "confirmed_at",
    "inserted_at",
    "updated_at",
)

# Columns a change request may write
_WRITABLE_COLUMNS = frozenset({"name", "email", "password_hash"})

_RETURNING = sql.SQL(", ").join(sql.Identifier(column) for column in _USER_COLUMNS)


def _to_user(row: dict | None) -> User | None:
    if row is None:
        return None
    return User(**row)


class PostgresUserRepository:
    """
    Implements UserRepository protocol via psycopg3.

    Uses structural subtyping - no explicit inheritance from Protocol.
    All SQL uses parameterized queries.
    """

    def __init__(self, pool: ConnectionPool) -> None:
        """
        Initialize repository with connection pool.

        Args:
            pool: psycopg3 ConnectionPool for database connections
        """
        self._pool = pool

    def create(self, changes: ChangeRequest) -> User | None:
        """
        Insert a user from a valid change request.

        Returns:
            The new user, or None if ``changes`` is invalid or the email
            is already taken (recorded as an error on ``changes``)
        """
        if not changes.valid:
            return None

        columns = self._columns(changes)
        query = sql.SQL("INSERT INTO users ({columns}) VALUES ({values}) RETURNING {returning}").format(
            columns=sql.SQL(", ").join(sql.Identifier(column) for column in columns),
            values=sql.SQL(", ").join(sql.Placeholder() for _ in columns),
            returning=_RETURNING,
        )
        return self._write(changes, query, [changes.changes[column] for column in columns])

    def update(self, changes: ChangeRequest) -> User | None:
        """
        Apply a valid change request to ``changes.data``.

        An empty change set returns the stored user without a write.
        """
        if not changes.valid:
            return None
        if changes.data is None:
            raise ValueError("update requires a change request built from an existing user")

        columns = self._columns(changes)
        if not columns:
            return changes.data

        query = sql.SQL(
            "UPDATE users SET {assignments}, updated_at = NOW() WHERE id = %s RETURNING {returning}"
        ).format(
            assignments=sql.SQL(", ").join(
                sql.SQL("{} = %s").format(sql.Identifier(column)) for column in columns
            ),
            returning=_RETURNING,
        )
        params = [changes.changes[column] for column in columns] + [changes.data.id]
        return self._write(changes, query, params)

    def delete(self, user: User) -> bool:
        """Delete the user row. Returns True if a row was removed."""
        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute("DELETE FROM users WHERE id = %s", (user.id,))
            conn.commit()
            return cursor.rowcount == 1

    def get_by_id(self, user_id: int) -> User | None:
        return self._fetch_one("id", user_id)

    def get_by_email(self, email: str) -> User | None:
        return self._fetch_one("email", email.strip().lower())

    def get_by_confirmation_token(self, token: str) -> User | None:
        return self._fetch_one("confirmation_token", token)

    def set_confirmation_token(self, user: User, token: str) -> User:
        """Store a confirmation token and stamp confirmation_sent_at with database time."""
        query = sql.SQL(
            """
            UPDATE users
            SET confirmation_token = %s, confirmation_sent_at = NOW(), updated_at = NOW()
            WHERE id = %s
            RETURNING {returning}
            """
        ).format(returning=_RETURNING)
        return self._update_one(query, (token, user.id))

    def confirm(self, user: User) -> User:
        """Mark the user confirmed and clear the confirmation token."""
        query = sql.SQL(
            """
            UPDATE users
            SET confirmed_at = NOW(), confirmation_token = NULL, updated_at = NOW()
            WHERE id = %s
            RETURNING {returning}
            """
        ).format(returning=_RETURNING)
        return self._update_one(query, (user.id,))

    def _columns(self, changes: ChangeRequest) -> list[str]:
        unknown = set(changes.changes) - _WRITABLE_COLUMNS
        if unknown:
            raise ValueError(f"Unsupported user columns: {sorted(unknown)}")
        return sorted(changes.changes)

    def _write(self, changes: ChangeRequest, query: sql.Composable, params: list) -> User | None:
        try:
            with self._pool.connection() as conn, conn.cursor(row_factory=dict_row) as cursor:
                cursor.execute(query, params)
                row = cursor.fetchone()
                conn.commit()
        except UniqueViolation:
            # Only the email column carries a user-facing UNIQUE constraint
            changes.add_error("email", TAKEN)
            return None
        return _to_user(row)

    def _update_one(self, query: sql.Composable, params: tuple) -> User:
        with self._pool.connection() as conn, conn.cursor(row_factory=dict_row) as cursor:
            cursor.execute(query, params)
            row = cursor.fetchone()
            conn.commit()
        if row is None:
            raise LookupError("user no longer exists")
        return User(**row)

    def _fetch_one(self, column: str, value: object) -> User | None:
        query = sql.SQL("SELECT {returning} FROM users WHERE {column} = %s").format(
            returning=_RETURNING, column=sql.Identifier(column)
        )
        with self._pool.connection() as conn, conn.cursor(row_factory=dict_row) as cursor:
            cursor.execute(query, (value,))
            return _to_user(cursor.fetchone())


class PostgresInviteAcceptor:
    """Marks open invitations for a new user's email as accepted."""

    def __init__(self, pool: ConnectionPool) -> None:
        self._pool = pool

    def accept_invite(self, user: User) -> None:
        """Link every pending invitation for ``user.email`` to ``user``."""
        accept_sql = """
            UPDATE invitations
            SET accepted_at = NOW(), user_id = %s
            WHERE email = %s AND accepted_at IS NULL
        """
        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(accept_sql, (user.id, user.email))
            conn.commit()
            accepted = cursor.rowcount

        if accepted:
            logger.info("Accepted %d invitation(s) for user %s", accepted, user.id)


def run_migrations(pool: ConnectionPool) -> None:
    """
    Execute all SQL migration files from the migrations directory.

    Migrations are executed in sorted order (alphabetically by filename).
    Each migration should be idempotent (use IF NOT EXISTS, etc.).

    Args:
        pool: psycopg3 ConnectionPool instance
    """
    # Structure: src/adapters/repository/postgres.py -> migrations/
    migrations_dir = Path(__file__).parent.parent.parent.parent / "migrations"

    if not migrations_dir.exists():
        logger.warning(f"Migrations directory not found: {migrations_dir}")
        return

    sql_files = sorted(migrations_dir.glob("*.sql"))

    if not sql_files:
        logger.info("No migration files found")
        return

    logger.info(f"Running {len(sql_files)} migration(s)")

    for sql_file in sql_files:
        logger.info(f"Executing migration: {sql_file.name}")
        try:
            sql_content = sql_file.read_text()

            with pool.connection() as conn:
                conn.execute(sql_content)

            logger.info(f"Migration complete: {sql_file.name}")
        except Exception as e:
            logger.error(f"Migration failed: {sql_file.name} - {e}")
            raise RuntimeError(f"Database migration failed: {sql_file.name}") from e
