"""
Integration tests for the registration flow.

Tests the full account lifecycle through the API with a real database.
Requires PostgreSQL to be running (via docker-compose).
"""

import logging

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from psycopg_pool import ConnectionPool

from src.api.main import create_app
from src.config.settings import Settings

pytestmark = [pytest.mark.integration, pytest.mark.usefixtures("clean_database")]

PAYLOAD = {"registration": {"email": "a@b.com", "password": "x"}}


def build_app(pool: ConnectionPool, **overrides) -> FastAPI:
    """Application wired to the test pool."""
    settings = Settings(session_secret="test-secret", bcrypt_cost=4, **overrides)
    app = create_app(settings)
    app.state.pool = pool
    return app


def make_client(pool: ConnectionPool, **overrides) -> TestClient:
    return TestClient(build_app(pool, **overrides), follow_redirects=False)


def user_row(pool: ConnectionPool, email: str) -> tuple | None:
    with pool.connection() as conn, conn.cursor() as cursor:
        cursor.execute(
            "SELECT id, confirmation_token, confirmed_at FROM users WHERE email = %s", (email,)
        )
        return cursor.fetchone()


def user_count(pool: ConnectionPool) -> int:
    with pool.connection() as conn, conn.cursor() as cursor:
        cursor.execute("SELECT COUNT(*) FROM users")
        return cursor.fetchone()[0]


class TestCreateFlow:
    """Integration tests for POST /v1/registrations."""

    def test_threshold_zero_requires_confirmation(self, pool: ConnectionPool) -> None:
        """Threshold 0: persisted, not logged in, redirected to confirm."""
        client = make_client(pool, allow_unconfirmed_access_for=0)

        response = client.post("/v1/registrations", json=PAYLOAD)

        assert response.status_code == 303
        assert response.headers["location"] == "/sessions/new"
        row = user_row(pool, "a@b.com")
        assert row is not None
        assert row[1] is not None  # confirmation token issued
        assert client.get("/v1/registrations").status_code == 401

    def test_nonzero_threshold_logs_in(self, pool: ConnectionPool) -> None:
        """Threshold 5: persisted, logged in, redirected to the default page."""
        client = make_client(pool, allow_unconfirmed_access_for=5)

        response = client.post("/v1/registrations", json=PAYLOAD)

        assert response.status_code == 303
        assert response.headers["location"] == "/"
        show = client.get("/v1/registrations")
        assert show.status_code == 200
        assert show.json()["user"]["email"] == "a@b.com"
        assert show.json()["notices"] == ["Confirmation email sent."]

    def test_confirmation_link_logged(
        self, pool: ConnectionPool, caplog: pytest.LogCaptureFixture
    ) -> None:
        """The console sender logs the confirmation link."""
        client = make_client(pool)

        with caplog.at_level(logging.INFO):
            client.post("/v1/registrations", json=PAYLOAD)

        token = user_row(pool, "a@b.com")[1]
        assert f"/v1/confirmations/{token}" in caplog.text

    def test_invalid_submission_persists_nothing(self, pool: ConnectionPool) -> None:
        """Invalid input re-renders with submitted values and no row."""
        client = make_client(pool)

        response = client.post(
            "/v1/registrations",
            json={"registration": {"email": "nope", "name": "Jane", "password": "x"}},
        )

        assert response.status_code == 422
        body = response.json()
        assert body["values"] == {"email": "nope", "name": "Jane"}
        assert "email" in body["errors"]
        assert user_count(pool) == 0

    def test_duplicate_email(self, pool: ConnectionPool) -> None:
        """Second registration with the same email is rejected."""
        make_client(pool).post("/v1/registrations", json=PAYLOAD)

        response = make_client(pool).post("/v1/registrations", json=PAYLOAD)

        assert response.status_code == 422
        assert response.json()["errors"] == {"email": ["has already been taken"]}
        assert user_count(pool) == 1

    def test_logged_in_user_redirected_from_create(self, pool: ConnectionPool) -> None:
        """A logged-in user cannot register again."""
        client = make_client(pool, allow_unconfirmed_access_for=5)
        client.post("/v1/registrations", json=PAYLOAD)

        response = client.post(
            "/v1/registrations", json={"registration": {"email": "c@d.com", "password": "x"}}
        )

        assert response.status_code == 303
        assert user_count(pool) == 1

    def test_invitation_accepted(self, pool: ConnectionPool) -> None:
        """Pending invitations are linked to the new account."""
        with pool.connection() as conn:
            conn.execute("INSERT INTO invitations (email) VALUES (%s)", ("a@b.com",))
            conn.commit()

        make_client(pool).post("/v1/registrations", json=PAYLOAD)

        with pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute("SELECT user_id FROM invitations WHERE email = %s", ("a@b.com",))
            assert cursor.fetchone()[0] == user_row(pool, "a@b.com")[0]


class TestConfirmFlow:
    """Integration tests for GET /v1/confirmations/{token}."""

    def test_confirm_account(self, pool: ConnectionPool) -> None:
        """The emailed token confirms the account once."""
        client = make_client(pool)
        client.post("/v1/registrations", json=PAYLOAD)
        token = user_row(pool, "a@b.com")[1]

        response = client.get(f"/v1/confirmations/{token}")

        assert response.status_code == 303
        assert user_row(pool, "a@b.com")[2] is not None
        assert client.get(f"/v1/confirmations/{token}").status_code == 404


class TestUpdateFlow:
    """Integration tests for PUT /v1/registrations."""

    def test_update_follows_new_email(self, pool: ConnectionPool) -> None:
        """With email as the session key, the session follows the new email."""
        client = make_client(pool, allow_unconfirmed_access_for=5, schema_key="email")
        client.post("/v1/registrations", json=PAYLOAD)

        response = client.put(
            "/v1/registrations", json={"registration": {"email": "new@b.com"}}
        )

        assert response.status_code == 303
        show = client.get("/v1/registrations")
        assert show.status_code == 200
        assert show.json()["user"]["email"] == "new@b.com"

    def test_invalid_update_keeps_session(self, pool: ConnectionPool) -> None:
        """A rejected update leaves the user logged in as before."""
        client = make_client(pool, allow_unconfirmed_access_for=5)
        client.post("/v1/registrations", json=PAYLOAD)

        response = client.put("/v1/registrations", json={"registration": {"email": ""}})

        assert response.status_code == 422
        show = client.get("/v1/registrations")
        assert show.json()["user"]["email"] == "a@b.com"

    def test_password_change_needs_current_password(self, pool: ConnectionPool) -> None:
        """Changing the password checks the current one."""
        client = make_client(pool, allow_unconfirmed_access_for=5)
        client.post("/v1/registrations", json=PAYLOAD)

        wrong = client.put(
            "/v1/registrations",
            json={"registration": {"password": "new", "current_password": "bad"}},
        )
        right = client.put(
            "/v1/registrations",
            json={"registration": {"password": "new", "current_password": "x"}},
        )

        assert wrong.status_code == 422
        assert wrong.json()["errors"] == {"current_password": ["is invalid"]}
        assert right.status_code == 303


class TestDeleteFlow:
    """Integration tests for DELETE /v1/registrations."""

    def test_delete_account(self, pool: ConnectionPool) -> None:
        """Deletion logs out and removes the row."""
        client = make_client(pool, allow_unconfirmed_access_for=5)
        client.post("/v1/registrations", json=PAYLOAD)

        response = client.delete("/v1/registrations")

        assert response.status_code == 303
        assert response.headers["location"] == "/"
        assert user_row(pool, "a@b.com") is None
        assert client.get("/v1/registrations").status_code == 401


class TestHealth:
    """Integration tests for GET /health."""

    def test_health_check(self, pool: ConnectionPool) -> None:
        """Health endpoint touches the database."""
        response = make_client(pool).get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}
