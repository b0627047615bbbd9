"""
Tests for token handling and role checks
"""
import time
from datetime import datetime, timedelta, timezone

import pytest
from fastapi import HTTPException
from jose import jwt

from app.core.auth import (
    create_tokens,
    decode_access_token,
    decode_refresh_token,
    hash_password,
    resolve_role,
    verify_password,
)
from app.core.config import settings
from app.domain.user import Role, User


@pytest.fixture
def account():
    return User(id="42", email="parent@example.com", verified=True, role=Role.USER)


class TestPasswords:
    """Test bcrypt hashing"""

    def test_hash_and_verify(self):
        password_hash = hash_password("secret123")

        assert password_hash != "secret123"
        assert verify_password("secret123", password_hash)
        assert not verify_password("wrong", password_hash)

    def test_empty_hash_never_verifies(self):
        assert not verify_password("secret123", "")


class TestTokens:
    """Test access and refresh token payloads"""

    def test_access_token_payload(self, account):
        access_token, _ = create_tokens(account)

        payload = decode_access_token(access_token)

        assert payload["userId"] == "42"
        assert payload["email"] == "parent@example.com"
        assert payload["role"] == Role.USER

    def test_refresh_token_uses_its_own_secret(self, account):
        _, refresh_token = create_tokens(account)

        assert decode_refresh_token(refresh_token)["userId"] == "42"
        with pytest.raises(HTTPException):
            decode_access_token(refresh_token)

    def test_refresh_tokens_rotate(self, account):
        _, first = create_tokens(account)
        time.sleep(0.001)
        _, second = create_tokens(account)
        assert first != second

    def test_expired_access_token(self, account):
        token = jwt.encode(
            {"userId": account.id, "exp": datetime.now(timezone.utc) - timedelta(minutes=1)},
            settings.JWT_SECRET,
            algorithm=settings.JWT_ALGORITHM,
        )

        with pytest.raises(HTTPException) as exc:
            decode_access_token(token)

        assert exc.value.status_code == 401
        assert exc.value.detail == "Token has expired"

    def test_garbage_tokens(self):
        with pytest.raises(HTTPException) as exc:
            decode_access_token("not-a-jwt")
        assert exc.value.detail == "Invalid token"
        assert decode_refresh_token("not-a-jwt") is None


class TestResolveRole:
    """Test role resolution for accounts without a stored role"""

    def test_explicit_role_wins(self, account):
        assert resolve_role(account) == Role.USER

    def test_legacy_admin_is_promoted_and_saved(self, user_repo):
        legacy = User(id="7", email="Admin@TinyTales.test", verified=True, role=None)

        assert resolve_role(legacy, user_repo) == Role.ADMIN
        assert user_repo.find_by_id("7").role == Role.ADMIN

    def test_legacy_user_defaults_to_user(self, user_repo):
        legacy = User(id="8", email="someone@example.com", verified=True, role=None)
        assert resolve_role(legacy, user_repo) == Role.USER
        assert user_repo.find_by_id("8") is None


class TestAuthDependencies:
    """Test bearer authentication through protected routes"""

    def test_missing_token(self, client):
        response = client.get("/api/orders")

        assert response.status_code == 401
        assert response.json() == {"error": "No token provided"}

    def test_non_admin_gets_403_with_roles(self, client, customer_headers):
        response = client.get("/api/orders", headers=customer_headers)

        assert response.status_code == 403
        assert response.json() == {
            "error": "Insufficient permissions",
            "required": ["admin"],
            "current": "user",
        }

    def test_unverified_user_rejected(self, client, make_user, headers_for):
        pending = make_user(user_id="9", email="new@example.com", verified=False)

        response = client.get("/api/orders", headers=headers_for(pending))

        assert response.status_code == 401
        assert response.json() == {"error": "Invalid or unverified user"}

    def test_admin_allowed(self, client, admin_headers):
        response = client.get("/api/orders", headers=admin_headers)

        assert response.status_code == 200
        assert response.json() == {"orders": []}
