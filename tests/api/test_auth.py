"""Authentication endpoint tests."""

from unittest.mock import patch

import pytest
from httpx import AsyncClient

from storefront.models import Account
from storefront.services.auth import decode_token
from storefront.services.codes import InMemoryCodeStore
from tests.conftest import TEST_PASSWORD, CapturingEmailBackend


@pytest.mark.asyncio
async def test_register(client: AsyncClient):
    """Test creating an account."""
    response = await client.post(
        "/api/v1/auth/register",
        json={
            "username": "Maria",
            "email": "Maria@Example.com",
            "phone": "+55 11 90000-0000",
            "password": "Secret123",
            "password_confirmation": "Secret123",
        },
    )
    assert response.status_code == 201
    data = response.json()
    assert data["success"] is True
    assert data["account"]["email"] == "maria@example.com"
    assert "password_hash" not in data["account"]


@pytest.mark.asyncio
async def test_register_duplicate_email(client: AsyncClient, account: Account):
    response = await client.post(
        "/api/v1/auth/register",
        json={
            "username": "Other",
            "email": account.email,
            "phone": "1",
            "password": "Secret123",
            "password_confirmation": "Secret123",
        },
    )
    assert response.status_code == 409
    assert response.json() == {"success": False, "message": "Email already registered"}


@pytest.mark.asyncio
async def test_register_password_mismatch(client: AsyncClient):
    response = await client.post(
        "/api/v1/auth/register",
        json={
            "username": "Maria",
            "email": "maria@example.com",
            "phone": "1",
            "password": "Secret123",
            "password_confirmation": "Secret124",
        },
    )
    assert response.status_code == 400
    assert response.json()["message"] == "Passwords do not match"


@pytest.mark.asyncio
async def test_login(client: AsyncClient, account: Account):
    """Test login with valid credentials."""
    account_id = account.id

    response = await client.post(
        "/api/v1/auth/login",
        json={"email": "user@example.com", "password": TEST_PASSWORD},
    )
    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert data["token_type"] == "bearer"

    payload = decode_token(data["token"])
    assert payload["sub"] == str(account_id)
    assert payload["exp"] - payload["iat"] == 3600

    me = await client.get(
        "/api/v1/user/me", headers={"Authorization": f"Bearer {data['token']}"}
    )
    assert me.json()["last_login_at"] is not None


@pytest.mark.asyncio
async def test_login_failures_are_indistinguishable(client: AsyncClient, account: Account):
    wrong_password = await client.post(
        "/api/v1/auth/login",
        json={"email": "user@example.com", "password": "wrong"},
    )
    unknown_email = await client.post(
        "/api/v1/auth/login",
        json={"email": "nobody@example.com", "password": TEST_PASSWORD},
    )

    assert wrong_password.status_code == unknown_email.status_code == 401
    assert wrong_password.json() == unknown_email.json()


@pytest.mark.asyncio
async def test_login_rate_limited(client: AsyncClient):
    for _ in range(10):
        await client.post("/api/v1/auth/login", json={"email": "x@example.com", "password": "x"})

    response = await client.post(
        "/api/v1/auth/login", json={"email": "x@example.com", "password": "x"}
    )
    assert response.status_code == 429
    assert "Retry-After" in response.headers
    assert response.json()["success"] is False
    assert response.json()["message"].startswith("Rate limit exceeded")


@pytest.mark.asyncio
async def test_password_recovery_flow(
    client: AsyncClient,
    account: Account,
    code_store: InMemoryCodeStore,
    email_backend: CapturingEmailBackend,
):
    """Request a code, then reset the password with it."""
    key = f"codigo:{account.id}:senha"

    response = await client.post(
        "/api/v1/auth/recovery",
        json={"email": "user@example.com", "purpose": "password"},
    )
    assert response.status_code == 200
    assert response.json() == {"success": True, "message": "Code sent by email"}

    code = await code_store.get(key)
    assert code is not None and len(code) == 6
    assert await code_store.ttl(key) == 600
    assert code in email_backend.sent[-1]["text"]

    response = await client.post(
        "/api/v1/auth/reset",
        json={
            "email": "user@example.com",
            "purpose": "password",
            "code": code,
            "new_value": "NewPass123",
        },
    )
    assert response.status_code == 200
    assert response.json()["success"] is True
    assert await code_store.get(key) is None

    login = await client.post(
        "/api/v1/auth/login",
        json={"email": "user@example.com", "password": "NewPass123"},
    )
    assert login.status_code == 200

    replay = await client.post(
        "/api/v1/auth/reset",
        json={
            "email": "user@example.com",
            "purpose": "password",
            "code": code,
            "new_value": "Another123",
        },
    )
    assert replay.status_code == 400
    assert replay.json() == {"success": False, "message": "Invalid or expired code"}


@pytest.mark.asyncio
async def test_recovery_unknown_email(client: AsyncClient):
    response = await client.post(
        "/api/v1/auth/recovery",
        json={"email": "nobody@example.com", "purpose": "password"},
    )
    assert response.status_code == 404
    assert response.json()["success"] is False


@pytest.mark.asyncio
async def test_recovery_invalid_purpose(client: AsyncClient):
    response = await client.post(
        "/api/v1/auth/recovery",
        json={"email": "user@example.com", "purpose": "phone"},
    )
    assert response.status_code == 400
    assert response.json() == {"success": False, "message": "Invalid input"}


@pytest.mark.asyncio
async def test_recovery_delivery_failure(
    client: AsyncClient, account: Account, email_backend: CapturingEmailBackend
):
    email_backend.fail = True

    response = await client.post(
        "/api/v1/auth/recovery",
        json={"email": "user@example.com", "purpose": "password"},
    )
    assert response.status_code == 500
    assert response.json() == {"success": False, "message": "Internal server error"}


@pytest.mark.asyncio
async def test_login_missing_field(client: AsyncClient):
    """A body without a required field gets the uniform 400 answer."""
    response = await client.post("/api/v1/auth/login", json={"email": "x"})
    assert response.status_code == 400
    assert response.json() == {"success": False, "message": "All fields are required"}


@pytest.mark.asyncio
async def test_reset_code_too_long(client: AsyncClient, account: Account):
    response = await client.post(
        "/api/v1/auth/reset",
        json={
            "email": "user@example.com",
            "purpose": "password",
            "code": "1" * 33,
            "new_value": "NewPass123",
        },
    )
    assert response.status_code == 400
    assert response.json() == {"success": False, "message": "Invalid input"}


@pytest.mark.asyncio
async def test_reset_limit_ignores_forwarded_for(client: AsyncClient, account: Account):
    """Rotating X-Forwarded-For does not open a new window by default."""
    body = {
        "email": "user@example.com",
        "purpose": "password",
        "code": "000000",
        "new_value": "NewPass123",
    }

    for i in range(5):
        response = await client.post(
            "/api/v1/auth/reset", json=body, headers={"X-Forwarded-For": f"10.0.0.{i}"}
        )
        assert response.status_code == 400

    response = await client.post(
        "/api/v1/auth/reset", json=body, headers={"X-Forwarded-For": "10.0.0.99"}
    )
    assert response.status_code == 429


@pytest.mark.asyncio
async def test_reset_guesses_limited_per_account(client: AsyncClient, account: Account):
    """Behind a trusted proxy, guesses are still capped per target email."""
    body = {
        "email": "User@Example.com",
        "purpose": "password",
        "code": "000000",
        "new_value": "NewPass123",
    }

    with patch("storefront.services.rate_limit.settings") as mock_settings:
        mock_settings.trust_proxy_headers = True

        for i in range(10):
            response = await client.post(
                "/api/v1/auth/reset", json=body, headers={"X-Forwarded-For": f"10.0.0.{i}"}
            )
            assert response.status_code == 400

        response = await client.post(
            "/api/v1/auth/reset", json=body, headers={"X-Forwarded-For": "10.0.1.1"}
        )

    assert response.status_code == 429
    assert response.json()["success"] is False
