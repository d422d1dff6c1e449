"""Tests for api/api/routers/auth.py (provider callback)."""

from __future__ import annotations

import pytest
from aeromatch_core.models.profile import Role
from httpx import AsyncClient

from api.services.auth_provider_client import ProviderSession

_APP = "http://localhost:3000"


def _set_cookies(resp) -> list[str]:
    return resp.headers.get_list("set-cookie")


class TestAuthCallback:
    @pytest.mark.asyncio
    async def test_missing_code(self, client: AsyncClient) -> None:
        resp = await client.get("/api/v1/auth/callback")

        assert resp.status_code == 303
        assert resp.headers["location"] == f"{_APP}/auth?error=No%20authentication%20code%20provided"

    @pytest.mark.asyncio
    async def test_provider_error_forwarded(self, client: AsyncClient, mock_auth_provider) -> None:
        resp = await client.get(
            "/api/v1/auth/callback",
            params={"error": "access_denied", "error_description": "Email link is invalid"},
        )

        assert resp.status_code == 303
        assert resp.headers["location"] == f"{_APP}/auth?error=Email%20link%20is%20invalid"
        mock_auth_provider.exchange_code.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_failed_exchange_sets_no_cookies(self, client: AsyncClient) -> None:
        resp = await client.get("/api/v1/auth/callback", params={"code": "bad"})

        assert resp.status_code == 303
        assert resp.headers["location"].startswith(f"{_APP}/auth?error=")
        assert _set_cookies(resp) == []

    @pytest.mark.asyncio
    async def test_success_sets_session_cookies(self, client: AsyncClient, mock_auth_provider, seed_profile) -> None:
        await seed_profile("user-1", Role.TECHNICIAN)
        mock_auth_provider.exchange_code.return_value = ProviderSession(
            access_token="access-1",
            refresh_token="refresh-1",
            expires_in=1800,
            user_id="user-1",
        )

        resp = await client.get(
            "/api/v1/auth/callback",
            params={"code": "good", "next": "/requests"},
            headers={"Cookie": "aeromatch-code-verifier=verifier-1"},
        )

        assert resp.status_code == 303
        assert resp.headers["location"] == f"{_APP}/requests"
        mock_auth_provider.exchange_code.assert_awaited_once_with("good", "verifier-1")
        cookies = _set_cookies(resp)
        access = next(c for c in cookies if c.startswith("aeromatch-access-token="))
        assert "access-1" in access
        assert "HttpOnly" in access
        assert "Max-Age=1800" in access
        assert any(c.startswith("aeromatch-refresh-token=refresh-1") for c in cookies)
        assert any(c.startswith("aeromatch-code-verifier=") and "Max-Age=0" in c for c in cookies)

    @pytest.mark.asyncio
    async def test_open_redirect_blocked(self, client: AsyncClient, mock_auth_provider, seed_profile) -> None:
        await seed_profile("user-1", Role.COMPANY)
        mock_auth_provider.exchange_code.return_value = ProviderSession(access_token="a", user_id="user-1")

        resp = await client.get("/api/v1/auth/callback", params={"code": "good", "next": "//evil.example"})

        assert resp.headers["location"] == f"{_APP}/dashboard"

    @pytest.mark.asyncio
    async def test_recovery_flow(self, client: AsyncClient, mock_auth_provider) -> None:
        mock_auth_provider.exchange_code.return_value = ProviderSession(access_token="a", user_id="user-9")

        resp = await client.get("/api/v1/auth/callback", params={"code": "good", "type": "recovery"})

        assert resp.headers["location"] == f"{_APP}/reset-password"

    @pytest.mark.asyncio
    async def test_onboarding_pending(self, client: AsyncClient, mock_auth_provider, seed_profile) -> None:
        await seed_profile("user-2", Role.COMPANY, onboarding_completed=False)
        mock_auth_provider.exchange_code.return_value = ProviderSession(access_token="a", user_id="user-2")

        resp = await client.get("/api/v1/auth/callback", params={"code": "good"})

        assert resp.headers["location"] == f"{_APP}/onboarding/company"
        assert not any(c.startswith("aeromatch-refresh-token=") for c in _set_cookies(resp))
