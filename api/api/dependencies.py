"""FastAPI dependency injection for settings, database sessions, identity, and outbound clients."""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from typing import Annotated

from aeromatch_core.models.profile import Role
from aeromatch_core.state.database import get_engine, set_user_context
from aeromatch_core.state.repository import ProfileRepository
from fastapi import Depends, HTTPException, Request
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from api.config import APISettings, load_api_settings
from api.services.auth_provider_client import AuthProviderClient
from api.services.email_client import EmailClient
from api.services.paddle_client import PaddleClient
from api.services.storage_client import StorageClient

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------

_settings_cache: APISettings | None = None


def get_settings() -> APISettings:
    """Return the cached :class:`APISettings` singleton."""
    global _settings_cache  # noqa: PLW0603
    if _settings_cache is None:
        _settings_cache = load_api_settings()
    return _settings_cache


SettingsDep = Annotated[APISettings, Depends(get_settings)]

# ---------------------------------------------------------------------------
# Database session
# ---------------------------------------------------------------------------

_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def init_engine(settings: APISettings) -> AsyncEngine:
    """Create and cache the global async engine."""
    global _engine, _session_factory  # noqa: PLW0603
    _engine = get_engine(settings.database_url)
    _session_factory = async_sessionmaker(_engine, expire_on_commit=False)
    return _engine


async def dispose_engine() -> None:
    """Dispose the global engine pool (call during shutdown)."""
    global _engine, _session_factory  # noqa: PLW0603
    if _engine is not None:
        await _engine.dispose()
        _engine = None
        _session_factory = None


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Return the global async session factory.

    Used by code that needs more than one session per request, such as the
    admin metrics fan-out.
    """
    if _session_factory is None:
        raise RuntimeError(
            "Database engine has not been initialised. Ensure init_engine() is called during application startup."
        )
    return _session_factory


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """Yield an ``AsyncSession`` **without** a user context.

    .. warning:: **No Row-Level Security**

       Queries through this session are not scoped to a user.  Use only
       where no authenticated user exists yet:

    - ``POST /billing/webhook``: the caller is the billing processor.
    - ``GET /auth/callback``: the session is being established.
    - ``GET /health`` readiness probes.

    The session commits on clean exit and rolls back on exception.
    """
    factory = get_session_factory()
    session = factory()
    try:
        yield session
        await session.commit()
    except Exception:
        await session.rollback()
        raise
    finally:
        await session.close()


async def get_user_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """Yield an ``AsyncSession`` with the authenticated user's RLS context set.

    Reads ``sub`` from the request state populated by
    :class:`~api.middleware.auth.AuthenticationMiddleware` and binds it to
    the transaction so PostgreSQL row-level policies apply.
    """
    factory = get_session_factory()
    user_id = getattr(request.state, "sub", None)
    if user_id is None:
        raise HTTPException(status_code=401, detail="Authentication required")

    session = factory()
    try:
        await set_user_context(session, user_id)
        yield session
        await session.commit()
    except Exception:
        await session.rollback()
        raise
    finally:
        await session.close()


SessionDep = Annotated[AsyncSession, Depends(get_user_session)]

# WARNING: PublicSessionDep provides a session WITHOUT a user context.
# Only use for the webhook, the auth callback, and health probes.
PublicSessionDep = Annotated[AsyncSession, Depends(get_db_session)]


async def get_admin_session() -> AsyncGenerator[AsyncSession, None]:
    """Yield an unscoped session for admin endpoints guarded by ``require_admin``."""
    factory = get_session_factory()
    session = factory()
    try:
        yield session
        await session.commit()
    except Exception:
        await session.rollback()
        raise
    finally:
        await session.close()


# WARNING: AdminSessionDep can read rows belonging to ANY user.
AdminSessionDep = Annotated[AsyncSession, Depends(get_admin_session)]

# ---------------------------------------------------------------------------
# Identity (populated by AuthenticationMiddleware, role loaded from profiles)
# ---------------------------------------------------------------------------


class CurrentUser(BaseModel):
    """The authenticated caller together with their marketplace profile."""

    user_id: str
    email: str | None = None
    role: Role | None = None
    full_name: str | None = None
    onboarding_completed: bool = False


def get_user_identity(request: Request) -> str:
    """Extract the user id from authenticated request state."""
    user_id = getattr(request.state, "sub", None)
    if user_id is None:
        raise HTTPException(status_code=401, detail="Authentication required")
    return user_id


UserDep = Annotated[str, Depends(get_user_identity)]


async def get_current_user(request: Request, session: SessionDep) -> CurrentUser:
    """Load the caller's profile row.

    A caller without a profile row is still authenticated; ``role`` is
    ``None`` until onboarding picks a side.
    """
    user_id = get_user_identity(request)
    email = getattr(request.state, "email", None)
    profile = await ProfileRepository(session).get(user_id)
    if profile is None:
        return CurrentUser(user_id=user_id, email=email)
    return CurrentUser(
        user_id=user_id,
        email=profile.email or email,
        role=Role(profile.role) if profile.role else None,
        full_name=profile.full_name,
        onboarding_completed=profile.onboarding_completed,
    )


CurrentUserDep = Annotated[CurrentUser, Depends(get_current_user)]

# ---------------------------------------------------------------------------
# Outbound clients
# ---------------------------------------------------------------------------

_paddle_client: PaddleClient | None = None
_email_client: EmailClient | None = None
_storage_client: StorageClient | None = None
_auth_provider_client: AuthProviderClient | None = None


def init_clients(settings: APISettings) -> None:
    """Create and cache every outbound HTTP client."""
    global _paddle_client, _email_client, _storage_client, _auth_provider_client  # noqa: PLW0603
    _paddle_client = PaddleClient(
        api_key=settings.paddle_api_key.get_secret_value(),
        env=settings.paddle_env,
        timeout=settings.paddle_timeout,
    )
    _email_client = EmailClient(
        api_key=settings.resend_api_key.get_secret_value(),
        sender=settings.email_from,
        app_url=settings.app_url,
    )
    _storage_client = StorageClient(
        base_url=settings.storage_url,
        bucket=settings.storage_bucket,
        service_key=settings.storage_service_key.get_secret_value(),
    )
    _auth_provider_client = AuthProviderClient(
        base_url=settings.auth_url,
        anon_key=settings.auth_anon_key.get_secret_value(),
        timeout=settings.auth_timeout,
    )


async def dispose_clients() -> None:
    """Close every outbound client's HTTP pool."""
    global _paddle_client, _email_client, _storage_client, _auth_provider_client  # noqa: PLW0603
    for client in (_paddle_client, _email_client, _storage_client, _auth_provider_client):
        if client is not None:
            await client.close()
    _paddle_client = None
    _email_client = None
    _storage_client = None
    _auth_provider_client = None


def _not_initialised(name: str) -> RuntimeError:
    return RuntimeError(f"{name} has not been initialised. Ensure init_clients() is called during application startup.")


def get_paddle_client() -> PaddleClient:
    if _paddle_client is None:
        raise _not_initialised("PaddleClient")
    return _paddle_client


def get_email_client() -> EmailClient:
    if _email_client is None:
        raise _not_initialised("EmailClient")
    return _email_client


def get_storage_client() -> StorageClient:
    if _storage_client is None:
        raise _not_initialised("StorageClient")
    return _storage_client


def get_auth_provider_client() -> AuthProviderClient:
    if _auth_provider_client is None:
        raise _not_initialised("AuthProviderClient")
    return _auth_provider_client


PaddleClientDep = Annotated[PaddleClient, Depends(get_paddle_client)]
EmailClientDep = Annotated[EmailClient, Depends(get_email_client)]
StorageClientDep = Annotated[StorageClient, Depends(get_storage_client)]
AuthProviderClientDep = Annotated[AuthProviderClient, Depends(get_auth_provider_client)]
