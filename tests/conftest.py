"""Test fixtures for the Subdomain Registry test suite."""

import os
from collections.abc import AsyncGenerator
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, patch
from uuid import uuid4

import jwt
import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

# Set test environment variables BEFORE importing app modules
os.environ.update({
    "DATABASE_URL": "sqlite+aiosqlite:///:memory:",
    "PARENT_ZONE": "example.com",
    "DNS_API_URL": "http://pdns.test:8081",
    "DNS_API_KEY": "test-api-key",
    "RECORD_TTL": "3600",
    "MODERATION_MODE": "false",
    "OWNERS_CAN_MODIFY": "true",
    "AUTH_JWT_SECRET": "test-identity-secret-minimum-32-bytes!",
    "AUTH_JWT_ALGORITHM": "HS256",
    "AUTH_ADMIN_CLAIM": "is_admin",
    "RATE_LIMIT_CREATE_MAX": "5",
    "RATE_LIMIT_WINDOW_SECONDS": "900",
    "ENVIRONMENT": "test",
    "LOG_LEVEL": "WARNING",
})

from subdomain_registry.database import Base, get_session  # noqa: E402
from subdomain_registry.main import create_app  # noqa: E402
from subdomain_registry.models.subdomain import Subdomain  # noqa: E402
from subdomain_registry.schemas.identity import Actor  # noqa: E402

TEST_DATABASE_URL = "sqlite+aiosqlite://"
TEST_JWT_SECRET = os.environ["AUTH_JWT_SECRET"]


@pytest.fixture
async def db() -> AsyncGenerator[AsyncSession, None]:
    """Provide a session on a fresh in-memory database for each test."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    factory = async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )
    async with factory() as session:
        yield session
        await session.rollback()
    await engine.dispose()


@pytest.fixture
def mock_dns_client():
    """Mock the PowerDNS client used by the registry to avoid real API calls."""
    mock = AsyncMock()
    mock.upsert_a.return_value = None
    mock.upsert_cname.return_value = None
    mock.delete_record_set.return_value = None
    with patch("subdomain_registry.services.registry_service.dns_client", mock):
        yield mock


@pytest.fixture
def owner() -> Actor:
    return Actor(id="owner-1", email="alice@example.org", is_admin=False)


@pytest.fixture
def other_user() -> Actor:
    return Actor(id="owner-2", email="bob@example.org", is_admin=False)


@pytest.fixture
def admin() -> Actor:
    return Actor(id="admin-1", email="ops@example.org", is_admin=True)


def make_token(actor: Actor, expires_in: timedelta = timedelta(hours=1), **claims) -> str:
    """Issue a bearer token the way the Identity Provider would."""
    payload = {
        "sub": actor.id,
        "email": actor.email,
        "is_admin": actor.is_admin,
        "iat": datetime.now(timezone.utc),
        "exp": datetime.now(timezone.utc) + expires_in,
        **claims,
    }
    return jwt.encode(payload, TEST_JWT_SECRET, algorithm="HS256")


def auth_headers(actor: Actor) -> dict[str, str]:
    return {"Authorization": f"Bearer {make_token(actor)}"}


async def create_record(
    db: AsyncSession,
    label: str | None = None,
    owner_id: str = "owner-1",
    record_type: str = "A",
    target: str = "10.0.0.5",
    status: str = "approved",
    dns_created: bool = True,
    dns_error: str | None = None,
    created_at: datetime | None = None,
) -> Subdomain:
    """Helper to insert a subdomain record directly."""
    now = datetime.now(timezone.utc)
    record = Subdomain(
        id=uuid4(),
        label=label or f"sub-{uuid4().hex[:8]}",
        owner_id=owner_id,
        owner_email=f"{owner_id}@example.org",
        record_type=record_type,
        target=target,
        status=status,
        dns_created=dns_created,
        dns_error=dns_error,
        created_at=created_at or now,
        approved_at=now if status == "approved" else None,
    )
    db.add(record)
    await db.flush()
    return record


@pytest.fixture
async def client(db: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Create a test HTTP client with database session override."""
    app = create_app()

    async def override_get_session():
        yield db

    app.dependency_overrides[get_session] = override_get_session

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
