"""Structured request-logging middleware for the AeroMatch API."""

from __future__ import annotations

import logging
import time
import uuid
from typing import Any

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger("api.access")

# Header names whose values must be masked in log output.
_SENSITIVE_HEADERS: frozenset[str] = frozenset({"authorization", "cookie", "paddle-signature"})
_MASK: str = "***"

_CORRELATION_HEADER: str = "X-Correlation-ID"

# Orchestrator probes hit these every few seconds; successful probes log at DEBUG.
_PROBE_PATHS: frozenset[str] = frozenset({"/api/v1/health", "/ready"})


def _safe_headers(request: Request) -> dict[str, str]:
    """Return a copy of the request headers with sensitive values masked."""
    out: dict[str, str] = {}
    for key, value in request.headers.items():
        if key.lower() in _SENSITIVE_HEADERS:
            out[key] = _MASK
        else:
            out[key] = value
    return out


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log every request with method, path, status code, and duration.

    Each request is tagged with a ``correlation_id`` (taken from the
    incoming ``X-Correlation-ID`` header or generated as a UUID-4) and
    the authenticated ``user_id`` (if the auth middleware populated
    ``request.state.sub``).  The correlation ID is also set as a
    response header for end-to-end tracing.

    Billing webhooks are unauthenticated at this layer, so their log line
    records whether a ``paddle-signature`` header was present.
    """

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        correlation_id = request.headers.get(_CORRELATION_HEADER.lower(), "")
        if not correlation_id:
            correlation_id = str(uuid.uuid4())

        start = time.monotonic()
        response: Response | None = None
        try:
            response = await call_next(request)
            response.headers[_CORRELATION_HEADER] = correlation_id
            return response
        finally:
            duration_ms = round((time.monotonic() - start) * 1000, 2)
            status_code = response.status_code if response is not None else 500

            log_payload: dict[str, Any] = {
                "method": request.method,
                "path": request.url.path,
                "query": str(request.url.query) if request.url.query else None,
                "status_code": status_code,
                "duration_ms": duration_ms,
                "client": request.client.host if request.client else None,
                "correlation_id": correlation_id,
                "user_id": getattr(request.state, "sub", "anonymous"),
                "headers": _safe_headers(request),
            }
            if request.url.path.endswith("/billing/webhook"):
                log_payload["signed"] = "paddle-signature" in request.headers

            if status_code >= 500:
                logger.error("request completed", extra={"request": log_payload})
            elif status_code >= 400:
                logger.warning("request completed", extra={"request": log_payload})
            elif request.url.path in _PROBE_PATHS:
                logger.debug("request completed", extra={"request": log_payload})
            else:
                logger.info("request completed", extra={"request": log_payload})
