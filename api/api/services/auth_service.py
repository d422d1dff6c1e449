"""Post-login routing for the auth provider callback.

After the provider redirects back with a one-time code, the code is
exchanged for a session and the user is sent to the first unfinished step:

1. ``type=recovery`` links go to the password-reset page;
2. users without a profile or role go to role selection;
3. users who have not finished onboarding go to their side's onboarding;
4. everyone else goes to ``next`` (default ``/dashboard``).
"""

from __future__ import annotations

import logging
from urllib.parse import quote

from aeromatch_core.models.profile import Role
from aeromatch_core.state.repository import ProfileRepository
from aeromatch_core.state.tables import ProfileTable
from sqlalchemy.ext.asyncio import AsyncSession

from api.services.auth_provider_client import AuthProviderClient, ProviderSession

logger = logging.getLogger(__name__)

DEFAULT_NEXT = "/dashboard"
RECOVERY_PATH = "/reset-password"
ROLE_SELECTION_PATH = "/onboarding/role"

_ONBOARDING_PATHS: dict[Role, str] = {
    Role.TECHNICIAN: "/onboarding/technician",
    Role.COMPANY: "/onboarding/company",
}


def safe_next_path(next_path: str | None) -> str:
    """Accept only same-site absolute paths; anything else becomes the default."""
    if not next_path or not next_path.startswith("/") or next_path.startswith("//") or "\\" in next_path:
        return DEFAULT_NEXT
    return next_path


def error_path(message: str) -> str:
    return f"/auth?error={quote(message)}"


def post_login_path(profile: ProfileTable | None, next_path: str | None, flow_type: str | None = None) -> str:
    """Return the web-app path a freshly signed-in user should land on."""
    if flow_type == "recovery":
        return RECOVERY_PATH
    if profile is None or not profile.role:
        return ROLE_SELECTION_PATH
    if not profile.onboarding_completed:
        return _ONBOARDING_PATHS.get(Role(profile.role), ROLE_SELECTION_PATH)
    return safe_next_path(next_path)


class AuthCallbackService:
    """Exchange a callback code and decide where to send the user."""

    def __init__(self, session: AsyncSession, provider: AuthProviderClient) -> None:
        self._session = session
        self._provider = provider

    async def complete(
        self,
        code: str,
        code_verifier: str | None,
        next_path: str | None,
        flow_type: str | None,
    ) -> tuple[str, ProviderSession | None]:
        """Return ``(redirect_path, session)``; the session is ``None`` on failure."""
        session = await self._provider.exchange_code(code, code_verifier)
        if session is None:
            return error_path("Could not complete sign in"), None

        profile = await ProfileRepository(self._session).get(session.user_id)
        path = post_login_path(profile, next_path, flow_type)
        logger.info("User %s signed in; redirecting to %s", session.user_id, path)
        return path, session
