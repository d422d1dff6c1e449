"""HTTP client for the hosted auth provider's token endpoint.

Used only by the OAuth/magic-link callback to exchange a one-time
authorization code for a session.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx
from pydantic import BaseModel

logger = logging.getLogger(__name__)


class ProviderSession(BaseModel):
    """The parts of a provider session the callback needs."""

    access_token: str
    refresh_token: str | None = None
    expires_in: int | None = None
    user_id: str
    email: str | None = None


class AuthProviderClient:
    """Async wrapper around the provider's GoTrue-compatible REST API.

    Parameters
    ----------
    base_url:
        Provider root URL.  The token endpoint lives under ``/auth/v1``.
    anon_key:
        Public project key sent as ``apikey``.
    timeout:
        Per-request timeout in seconds.
    """

    def __init__(
        self,
        base_url: str,
        anon_key: str,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            timeout=httpx.Timeout(timeout),
            headers={"apikey": anon_key, "Content-Type": "application/json"},
            transport=transport,
        )

    async def exchange_code(self, code: str, code_verifier: str | None = None) -> ProviderSession | None:
        """Exchange an authorization code for a session, or return ``None``."""
        payload: dict[str, Any] = {"auth_code": code}
        if code_verifier:
            payload["code_verifier"] = code_verifier

        try:
            response = await self._client.post("/auth/v1/token", params={"grant_type": "pkce"}, json=payload)
            response.raise_for_status()
            body: dict[str, Any] = response.json()
        except httpx.HTTPStatusError as exc:
            logger.warning(
                "Auth code exchange returned %d: %s",
                exc.response.status_code,
                exc.response.text[:300],
            )
            return None
        except httpx.RequestError as exc:
            logger.warning("Auth code exchange failed: %s", exc)
            return None

        user = body.get("user") or {}
        if not body.get("access_token") or not user.get("id"):
            logger.warning("Auth code exchange response is missing a token or user")
            return None
        return ProviderSession(
            access_token=body["access_token"],
            refresh_token=body.get("refresh_token"),
            expires_in=body.get("expires_in"),
            user_id=user["id"],
            email=user.get("email"),
        )

    async def close(self) -> None:
        await self._client.aclose()
