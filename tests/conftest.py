"""
Shared test fixtures and configuration.

This module provides pytest fixtures for:
- A stored user with a known password
- A fast bcrypt cost for schema tests
"""

import bcrypt
import pytest

from src.domain.changes import RegistrationSchema
from src.domain.user import User

TEST_PASSWORD = "password123"

# Minimum bcrypt cost keeps hashing fast in tests
TEST_BCRYPT_COST = 4


@pytest.fixture(scope="session")
def password_hash() -> str:
    """bcrypt hash of TEST_PASSWORD."""
    return bcrypt.hashpw(TEST_PASSWORD.encode(), bcrypt.gensalt(TEST_BCRYPT_COST)).decode()


@pytest.fixture
def user(password_hash: str) -> User:
    """An existing, unconfirmed account."""
    return User(id=1, email="user@example.com", password_hash=password_hash, name="Jane Doe")


@pytest.fixture
def schema() -> RegistrationSchema:
    """Registration schema with a cheap bcrypt cost."""
    return RegistrationSchema(bcrypt_cost=TEST_BCRYPT_COST)
