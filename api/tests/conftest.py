"""Shared fixtures for AeroMatch API tests.

The application runs against a throwaway SQLite database (aiosqlite) wired
into the real session dependencies, so repositories, savepoints, and the
commit/rollback behaviour are exercised end to end.  Outbound HTTP clients
are replaced with ``AsyncMock`` objects.
"""

from __future__ import annotations

import os
from collections.abc import AsyncGenerator, Awaitable, Callable
from datetime import date
from typing import Any
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

# Set the signing secret BEFORE importing application modules so the
# AuthenticationMiddleware built by create_app() verifies test tokens.
_TEST_JWT_SECRET = "test-secret-key-for-aeromatch-tests-0123456789"
os.environ.setdefault("API_AUTH_JWT_SECRET", _TEST_JWT_SECRET)

from aeromatch_core.billing.plans import ProcessorEnv
from aeromatch_core.models.profile import Role
from aeromatch_core.state.repository import CompanyRepository, ProfileRepository, TechnicianRepository
from aeromatch_core.state.tables import Base
from pydantic import SecretStr
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

import api.dependencies as deps
from api.config import APISettings
from api.dependencies import (
    get_auth_provider_client,
    get_email_client,
    get_paddle_client,
    get_settings,
    get_storage_client,
)
from api.main import create_app
from api.security import TokenVerifier
from api.services.auth_provider_client import AuthProviderClient
from api.services.email_client import EmailClient
from api.services.paddle_client import PaddleClient
from api.services.storage_client import StorageClient

COMPANY_ID = "company-0001"
TECH_ID = "tech-0001"
ADMIN_ID = "admin-0001"
ADMIN_EMAIL = "admin@aeromatch.example"

_VERIFIER = TokenVerifier(SecretStr(_TEST_JWT_SECRET))


def make_token(user_id: str, email: str | None = None) -> str:
    """Sign an access token the way the auth provider would."""
    return _VERIFIER.issue_token(user_id, email=email or f"{user_id}@example.com")


def auth_headers(user_id: str, email: str | None = None) -> dict[str, str]:
    return {"Authorization": f"Bearer {make_token(user_id, email)}"}


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------


@pytest.fixture()
def test_settings(tmp_path) -> APISettings:
    """Return a settings object suitable for testing."""
    return APISettings(
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        platform_env="dev",
        cors_origins=["http://localhost:3000"],
        auth_jwt_secret=SecretStr(_TEST_JWT_SECRET),
        admin_emails=[ADMIN_EMAIL],
        paddle_env=ProcessorEnv.SANDBOX,
        paddle_webhook_secret=SecretStr("pdl_ntfset_test"),
        app_url="http://localhost:3000",
        founding_cutoff_date=date(2099, 1, 1),
    )


# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture
async def session_factory(
    test_settings: APISettings,
    monkeypatch: pytest.MonkeyPatch,
) -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    """Create the schema in a file-backed SQLite database and install it as the app engine."""
    engine = create_async_engine(test_settings.database_url, echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    factory = async_sessionmaker(engine, expire_on_commit=False)
    monkeypatch.setattr(deps, "_engine", engine)
    monkeypatch.setattr(deps, "_session_factory", factory)
    yield factory
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(session_factory: async_sessionmaker[AsyncSession]) -> AsyncGenerator[AsyncSession, None]:
    """A standalone session for seeding and inspecting rows outside requests."""
    async with session_factory() as session:
        yield session


SeedProfile = Callable[..., Awaitable[None]]


@pytest.fixture()
def seed_profile(session_factory: async_sessionmaker[AsyncSession]) -> SeedProfile:
    """Return a coroutine that creates a profile (and its side's row) and commits."""

    async def _seed(
        user_id: str,
        role: Role | None,
        *,
        email: str | None = None,
        onboarding_completed: bool = True,
        technician: dict[str, Any] | None = None,
        company: dict[str, Any] | None = None,
    ) -> None:
        email = email or f"{user_id}@example.com"
        async with session_factory() as session:
            profiles = ProfileRepository(session)
            if role is None:
                await profiles.ensure(user_id, email)
            else:
                await profiles.set_role(user_id, email, role, full_name=user_id.title())
                if onboarding_completed:
                    await profiles.complete_onboarding(user_id)
            if technician is not None:
                await TechnicianRepository(session).upsert(user_id, technician)
            if company is not None:
                await CompanyRepository(session).upsert(user_id, company)
            await session.commit()

    return _seed


@pytest_asyncio.fixture
async def marketplace(seed_profile: SeedProfile) -> None:
    """One onboarded company and one onboarded, available technician."""
    await seed_profile(COMPANY_ID, Role.COMPANY, company={"company_name": "Iberia MRO", "company_type": "mro"})
    await seed_profile(
        TECH_ID,
        Role.TECHNICIAN,
        email="ana@example.com",
        technician={
            "license_category": ["B1"],
            "aircraft_types": ["A320"],
            "specialties": ["structures"],
            "right_to_work_uk": False,
            "is_available": True,
        },
    )


# ---------------------------------------------------------------------------
# Outbound clients
# ---------------------------------------------------------------------------


@pytest.fixture()
def mock_paddle() -> AsyncMock:
    client = AsyncMock(spec=PaddleClient)
    client.env = ProcessorEnv.SANDBOX
    client.configured = True
    client.create_checkout = AsyncMock(return_value=None)
    return client


@pytest.fixture()
def mock_email() -> AsyncMock:
    client = AsyncMock(spec=EmailClient)
    client.enabled = True
    client.send_job_request_notification = AsyncMock(return_value="msg_123")
    return client


@pytest.fixture()
def mock_storage() -> AsyncMock:
    client = AsyncMock(spec=StorageClient)
    client.upload = AsyncMock(side_effect=lambda key, content, content_type: key)
    return client


@pytest.fixture()
def mock_auth_provider() -> AsyncMock:
    client = AsyncMock(spec=AuthProviderClient)
    client.exchange_code = AsyncMock(return_value=None)
    return client


# ---------------------------------------------------------------------------
# Application and HTTP client
# ---------------------------------------------------------------------------


@pytest.fixture()
def app(
    test_settings: APISettings,
    session_factory: async_sessionmaker[AsyncSession],
    mock_paddle: AsyncMock,
    mock_email: AsyncMock,
    mock_storage: AsyncMock,
    mock_auth_provider: AsyncMock,
):
    """Create a FastAPI app with settings and outbound clients overridden."""
    application = create_app()
    application.dependency_overrides[get_settings] = lambda: test_settings
    application.dependency_overrides[get_paddle_client] = lambda: mock_paddle
    application.dependency_overrides[get_email_client] = lambda: mock_email
    application.dependency_overrides[get_storage_client] = lambda: mock_storage
    application.dependency_overrides[get_auth_provider_client] = lambda: mock_auth_provider
    return application


@pytest_asyncio.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client bound to the ASGI app (no network)."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture()
def company_headers() -> dict[str, str]:
    return auth_headers(COMPANY_ID)


@pytest.fixture()
def tech_headers() -> dict[str, str]:
    return auth_headers(TECH_ID, "ana@example.com")


@pytest.fixture()
def admin_headers() -> dict[str, str]:
    return auth_headers(ADMIN_ID, ADMIN_EMAIL)


@pytest.fixture()
def headers_for() -> Callable[..., dict[str, str]]:
    """Return a factory for bearer headers of arbitrary users."""
    return auth_headers
