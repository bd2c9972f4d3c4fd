"""Pytest configuration and fixtures."""

import os
from collections.abc import AsyncGenerator
from typing import Any

# Set test environment before importing app
os.environ["ENVIRONMENT"] = "test"
os.environ["CODE_STORE_BACKEND"] = "memory"
os.environ["EMAIL_BACKEND"] = "console"
os.environ["BCRYPT_ROUNDS"] = "4"

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel

import storefront.models  # noqa: F401
from storefront.api.deps import get_code_store, get_email_service
from storefront.config import settings
from storefront.database import get_session
from storefront.main import app
from storefront.models import Account
from storefront.services.accounts import SQLAccountStore
from storefront.services.auth import create_token
from storefront.services.codes import InMemoryCodeStore
from storefront.services.email import EmailBackend, EmailService
from storefront.services.passwords import hash_password_sync
from storefront.services.rate_limit import get_rate_limiter
from tests.fakes import InMemoryAccountStore

TEST_PASSWORD = "Secret123"


class CapturingEmailBackend(EmailBackend):
    """Email backend that records messages instead of sending them."""

    def __init__(self) -> None:
        self.sent: list[dict[str, Any]] = []
        self.fail = False

    async def send(self, to: str, subject: str, text: str, html: str | None = None) -> bool:
        if self.fail:
            return False
        self.sent.append({"to": to, "subject": subject, "text": text})
        return True


@pytest.fixture(autouse=True)
def reset_rate_limiter():
    """Start every test with empty rate limit windows."""
    get_rate_limiter().reset()
    yield
    get_rate_limiter().reset()


@pytest.fixture
async def test_engine():
    """Create a fresh in-memory database per test."""
    engine = create_async_engine(
        settings.database_url_test,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
async def session(test_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session."""
    async_session_factory = async_sessionmaker(
        bind=test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )

    async with async_session_factory() as session:
        yield session


@pytest.fixture
def code_store() -> InMemoryCodeStore:
    return InMemoryCodeStore()


@pytest.fixture
def email_backend() -> CapturingEmailBackend:
    return CapturingEmailBackend()


@pytest.fixture
def notifier(email_backend: CapturingEmailBackend) -> EmailService:
    return EmailService(backend=email_backend)


@pytest.fixture
def account_store() -> InMemoryAccountStore:
    """Account store fake for service-level tests."""
    return InMemoryAccountStore()


@pytest.fixture
async def client(
    session: AsyncSession,
    code_store: InMemoryCodeStore,
    notifier: EmailService,
) -> AsyncGenerator[AsyncClient, None]:
    """Create a test HTTP client."""

    async def override_get_session():
        yield session

    app.dependency_overrides[get_session] = override_get_session
    app.dependency_overrides[get_code_store] = lambda: code_store
    app.dependency_overrides[get_email_service] = lambda: notifier

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
async def account(session: AsyncSession) -> Account:
    """Create a test account with password ``TEST_PASSWORD``."""
    return await SQLAccountStore(session).create(
        username="Test User",
        email="user@example.com",
        phone="+55 11 99999-0000",
        password_hash=hash_password_sync(TEST_PASSWORD),
    )


@pytest.fixture
def account_token(account: Account) -> str:
    """Create a session token for the test account."""
    return create_token(account.id)  # type: ignore[arg-type]


@pytest.fixture
def auth_headers(account_token: str) -> dict[str, str]:
    """Create authorization headers for the test account."""
    return {"Authorization": f"Bearer {account_token}"}


# Helper to make authenticated requests
class AuthenticatedClient:
    """Wrapper for AsyncClient with authentication."""

    def __init__(self, client: AsyncClient, headers: dict[str, str]):
        self.client = client
        self.headers = headers

    async def get(self, url: str, **kwargs: Any) -> Any:
        kwargs.setdefault("headers", {}).update(self.headers)
        return await self.client.get(url, **kwargs)

    async def post(self, url: str, **kwargs: Any) -> Any:
        kwargs.setdefault("headers", {}).update(self.headers)
        return await self.client.post(url, **kwargs)

    async def put(self, url: str, **kwargs: Any) -> Any:
        kwargs.setdefault("headers", {}).update(self.headers)
        return await self.client.put(url, **kwargs)

    async def delete(self, url: str, **kwargs: Any) -> Any:
        kwargs.setdefault("headers", {}).update(self.headers)
        return await self.client.delete(url, **kwargs)


@pytest.fixture
def authenticated_client(client: AsyncClient, auth_headers: dict[str, str]) -> AuthenticatedClient:
    """Create an authenticated test client."""
    return AuthenticatedClient(client, auth_headers)
