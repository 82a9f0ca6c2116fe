"""
HTTP tests for authentication

A real AuthService runs over a mocked UserRepository, so password hashing
and token rotation are exercised end to end.
"""
import pytest
from unittest.mock import MagicMock
from datetime import datetime, timezone
from fastapi.testclient import TestClient

from app.main import app
from app.core.auth import (
    create_access_token,
    create_refresh_token,
    decode_access_token,
    decode_refresh_token,
    hash_password,
)
from app.core.dependencies import get_auth_service
from app.domain.user import User
from app.repositories.user_repository import UserRepository
from app.services.auth_service import AuthService


@pytest.fixture
def user():
    return User(
        id=7, name="Jane Doe", email="jane@example.com", role="user",
        created_at=datetime(2025, 1, 1, tzinfo=timezone.utc)
    )


@pytest.fixture
def users(user):
    repository = MagicMock(spec=UserRepository)
    repository.find_by_id.return_value = user
    app.dependency_overrides[get_auth_service] = lambda: AuthService(repository)
    yield repository
    app.dependency_overrides.clear()


@pytest.fixture
def client():
    return TestClient(app)


class TestRegister:

    def test_register_returns_tokens(self, client, users, user):
        users.exists_by_email.return_value = False
        users.create.return_value = user

        response = client.post(
            "/api/v1/auth/register",
            json={"name": "Jane Doe", "email": "Jane@Example.com", "password": "secret123"}
        )

        assert response.status_code == 201
        data = response.json()["data"]
        assert data["user"]["email"] == "jane@example.com"
        assert decode_access_token(data["access_token"])["sub"] == "7"

        create_kwargs = users.create.call_args[1]
        assert create_kwargs["email"] == "jane@example.com"
        assert create_kwargs["password_hash"] != "secret123"
        users.set_refresh_token.assert_called_once_with(7, data["refresh_token"])

    def test_duplicate_email_returns_409(self, client, users):
        users.exists_by_email.return_value = True

        response = client.post(
            "/api/v1/auth/register",
            json={"name": "Jane Doe", "email": "jane@example.com", "password": "secret123"}
        )

        assert response.status_code == 409
        users.create.assert_not_called()

    def test_short_password_rejected(self, client, users):
        response = client.post(
            "/api/v1/auth/register",
            json={"name": "Jane Doe", "email": "jane@example.com", "password": "123"}
        )

        assert response.status_code == 400


class TestLogin:

    def test_login_success(self, client, users, user):
        users.find_credentials.return_value = (user, hash_password("secret123"))

        response = client.post("/api/v1/auth/login", json={"email": "jane@example.com", "password": "secret123"})

        assert response.status_code == 200
        payload = decode_access_token(response.json()["data"]["access_token"])
        assert payload["role"] == "user"
        assert payload["email"] == "jane@example.com"

    def test_wrong_password_returns_401(self, client, users, user):
        users.find_credentials.return_value = (user, hash_password("secret123"))

        response = client.post("/api/v1/auth/login", json={"email": "jane@example.com", "password": "wrong"})

        assert response.status_code == 401
        assert response.json() == {"error": "Invalid email or password"}
        users.set_refresh_token.assert_not_called()

    def test_unknown_email_returns_401(self, client, users):
        users.find_credentials.return_value = None

        response = client.post("/api/v1/auth/login", json={"email": "nobody@example.com", "password": "x"})

        assert response.status_code == 401


class TestRefreshAndLogout:

    def test_refresh_rotates_token(self, client, users, user):
        current = create_refresh_token(user.id)
        users.get_refresh_token.return_value = current

        response = client.post("/api/v1/auth/refresh", json={"refresh_token": current})

        assert response.status_code == 200
        new_token = response.json()["data"]["refresh_token"]
        assert decode_refresh_token(new_token)["sub"] == "7"
        users.set_refresh_token.assert_called_once_with(7, new_token)

    def test_revoked_refresh_token_rejected(self, client, users, user):
        users.get_refresh_token.return_value = None

        response = client.post("/api/v1/auth/refresh", json={"refresh_token": create_refresh_token(user.id)})

        assert response.status_code == 401

    def test_access_token_not_accepted_as_refresh(self, client, users):
        token = create_access_token(7, "jane@example.com")

        response = client.post("/api/v1/auth/refresh", json={"refresh_token": token})

        assert response.status_code == 401

    def test_logout_clears_refresh_token(self, client, users):
        token = create_access_token(7, "jane@example.com")

        response = client.post("/api/v1/auth/logout", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 200
        users.set_refresh_token.assert_called_once_with(7, None)

    def test_profile(self, client, users):
        token = create_access_token(7, "jane@example.com")

        response = client.get("/api/v1/auth/profile", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 200
        assert response.json()["data"]["name"] == "Jane Doe"
