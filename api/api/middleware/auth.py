"""Authentication middleware that extracts and validates JWT tokens.

Extracts ``Authorization: Bearer <token>`` from every request, validates
it via :class:`TokenVerifier`, and populates ``request.state`` with
``sub`` (user id) and ``email``.

Marketplace roles are not carried by the token; they are loaded from the
``profiles`` table by :func:`api.dependencies.get_current_user`.

Endpoints explicitly listed in ``_PUBLIC_PATHS`` bypass authentication.
"""

from __future__ import annotations

import logging
from typing import Any

from pydantic import SecretStr
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from api.security import TokenVerifier

logger = logging.getLogger(__name__)

# Paths that never require a bearer token.  The plan catalog is public, the
# billing webhook is authenticated by its HMAC signature instead, and the
# auth callback is where a session is first obtained.
_PUBLIC_PATHS: frozenset[str] = frozenset(
    {
        "/api/v1/health",
        "/ready",
        "/docs",
        "/redoc",
        "/openapi.json",
        "/api/v1/billing/plans",
        "/api/v1/billing/webhook",
        "/api/v1/auth/callback",
    }
)

_PUBLIC_PREFIXES: tuple[str, ...] = ("/docs/",)


def _is_public_path(path: str) -> bool:
    """Return ``True`` if the path should bypass authentication."""
    if path in _PUBLIC_PATHS:
        return True
    return any(path.startswith(prefix) for prefix in _PUBLIC_PREFIXES)


class AuthenticationMiddleware(BaseHTTPMiddleware):
    """Starlette middleware that enforces Bearer token authentication.

    On each request the middleware:

    1. Checks whether the path is public (health, docs, webhook) and skips auth.
    2. Extracts the ``Authorization: Bearer <token>`` header.
    3. Validates the token via :class:`TokenVerifier`.
    4. Stores ``sub`` and ``email`` on ``request.state``.
    5. Returns a 401 JSON response on failure.
    """

    def __init__(self, app: Any, jwt_secret: SecretStr, audience: str = "authenticated") -> None:
        super().__init__(app)
        if not jwt_secret.get_secret_value():
            logger.warning("API_AUTH_JWT_SECRET is empty; every authenticated request will be rejected")
        self._verifier = TokenVerifier(jwt_secret, audience=audience)

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        path = request.url.path

        if request.method == "OPTIONS" or _is_public_path(path):
            return await call_next(request)

        auth_header = request.headers.get("authorization")
        if not auth_header:
            return JSONResponse(
                status_code=401,
                content={"detail": "Not authenticated"},
            )

        parts = auth_header.split(None, 1)
        if len(parts) != 2 or parts[0].lower() != "bearer":
            return JSONResponse(
                status_code=401,
                content={"detail": "Authorization header must use Bearer scheme"},
            )

        try:
            claims = self._verifier.validate_token(parts[1])
        except PermissionError as exc:
            logger.info("Rejected bearer token on %s: %s", path, exc)
            return JSONResponse(
                status_code=401,
                content={"detail": f"Invalid token: {exc}"},
            )

        request.state.sub = claims.sub
        request.state.email = claims.email

        return await call_next(request)
