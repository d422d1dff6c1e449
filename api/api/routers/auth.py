"""Auth provider callback: code exchange and post-login redirect.

The callback is a public endpoint; the user has no bearer token until the
exchange succeeds.  The resulting provider tokens are handed to the web app
as HttpOnly cookies on the redirect response.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Cookie, Query
from fastapi.responses import RedirectResponse

from api.config import PlatformEnv
from api.dependencies import AuthProviderClientDep, PublicSessionDep, SettingsDep
from api.services.auth_service import AuthCallbackService, error_path

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])

_ACCESS_COOKIE_KEY = "aeromatch-access-token"
_REFRESH_COOKIE_KEY = "aeromatch-refresh-token"
_VERIFIER_COOKIE_KEY = "aeromatch-code-verifier"
_REFRESH_COOKIE_MAX_AGE = 30 * 24 * 3600


@router.get("/callback")
async def auth_callback(
    session: PublicSessionDep,
    settings: SettingsDep,
    provider: AuthProviderClientDep,
    code: str | None = Query(default=None),
    next: str | None = Query(default=None),  # noqa: A002
    type: str | None = Query(default=None),  # noqa: A002
    error: str | None = Query(default=None),
    error_description: str | None = Query(default=None),
    code_verifier: str | None = Query(default=None),
    verifier_cookie: str | None = Cookie(default=None, alias="aeromatch-code-verifier"),
) -> RedirectResponse:
    """Finish an OAuth, magic-link, or recovery sign-in and redirect into the web app."""
    app_url = settings.app_url.rstrip("/")

    if error:
        logger.info("Auth callback returned provider error: %s", error)
        return RedirectResponse(f"{app_url}{error_path(error_description or error)}", status_code=303)
    if not code:
        return RedirectResponse(f"{app_url}{error_path('No authentication code provided')}", status_code=303)

    service = AuthCallbackService(session, provider)
    path, provider_session = await service.complete(code, code_verifier or verifier_cookie, next, type)
    response = RedirectResponse(f"{app_url}{path}", status_code=303)
    if provider_session is None:
        return response

    secure = settings.platform_env is not PlatformEnv.DEV
    response.set_cookie(
        key=_ACCESS_COOKIE_KEY,
        value=provider_session.access_token,
        httponly=True,
        secure=secure,
        samesite="lax",
        max_age=provider_session.expires_in or 3600,
        path="/",
    )
    if provider_session.refresh_token:
        response.set_cookie(
            key=_REFRESH_COOKIE_KEY,
            value=provider_session.refresh_token,
            httponly=True,
            secure=secure,
            samesite="lax",
            max_age=_REFRESH_COOKIE_MAX_AGE,
            path="/",
        )
    response.delete_cookie(_VERIFIER_COOKIE_KEY, path="/")
    return response
