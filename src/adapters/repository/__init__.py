"""Repository adapters - Database implementations."""

from .postgres import PostgresInviteAcceptor, PostgresUserRepository, run_migrations

__all__ = ["PostgresInviteAcceptor", "PostgresUserRepository", "run_migrations"]
