"""Role-based access control for the two marketplace sides.

A user's :class:`~aeromatch_core.models.profile.Role` is loaded from the
``profiles`` row by :func:`api.dependencies.get_current_user`.  Each role
grants a fixed set of permissions.  Admin access is orthogonal to roles and
is granted by email allow-list.

Usage in routers::

    from api.middleware.rbac import Permission, require_permission

    @router.post("/search")
    async def search(
        ...,
        user: CurrentUser = Depends(require_permission(Permission.SEARCH_TECHNICIANS)),
    ) -> ...:
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from enum import Enum

from aeromatch_core.models.profile import Role
from fastapi import Depends, HTTPException

from api.dependencies import CurrentUser, SettingsDep, get_current_user

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Permissions
# ---------------------------------------------------------------------------


class Permission(str, Enum):
    """Fine-grained permission tokens checked by endpoint guards."""

    # Company side
    SEARCH_TECHNICIANS = "search:technicians"
    CREATE_JOB_REQUESTS = "create:job_requests"
    RATE_TECHNICIANS = "rate:technicians"
    MANAGE_COMPANY_PROFILE = "manage:company_profile"

    # Technician side
    MANAGE_AVAILABILITY = "manage:availability"
    UPLOAD_DOCUMENTS = "upload:documents"
    RESPOND_JOB_REQUESTS = "respond:job_requests"
    EVALUATE_PREMIUM = "evaluate:premium"
    MANAGE_TECHNICIAN_PROFILE = "manage:technician_profile"


ROLE_PERMISSIONS: dict[Role, frozenset[Permission]] = {
    Role.COMPANY: frozenset(
        {
            Permission.SEARCH_TECHNICIANS,
            Permission.CREATE_JOB_REQUESTS,
            Permission.RATE_TECHNICIANS,
            Permission.MANAGE_COMPANY_PROFILE,
        }
    ),
    Role.TECHNICIAN: frozenset(
        {
            Permission.MANAGE_AVAILABILITY,
            Permission.UPLOAD_DOCUMENTS,
            Permission.RESPOND_JOB_REQUESTS,
            Permission.EVALUATE_PREMIUM,
            Permission.MANAGE_TECHNICIAN_PROFILE,
        }
    ),
}

# User-facing denial messages for the permissions whose wording the web
# client displays verbatim.
_DENIAL_MESSAGES: dict[Permission, str] = {
    Permission.SEARCH_TECHNICIANS: "Only companies can search technicians",
    Permission.CREATE_JOB_REQUESTS: "Only companies can create job requests",
    Permission.RATE_TECHNICIANS: "Only companies can rate technicians",
    Permission.MANAGE_COMPANY_PROFILE: "Only companies can edit a company profile",
    Permission.MANAGE_AVAILABILITY: "Only technicians can manage availability",
    Permission.UPLOAD_DOCUMENTS: "Only technicians can upload documents",
    Permission.RESPOND_JOB_REQUESTS: "Only technicians can respond to job requests",
    Permission.EVALUATE_PREMIUM: "Only technicians can receive founding premium",
    Permission.MANAGE_TECHNICIAN_PROFILE: "Only technicians can edit a technician profile",
}


def role_has_permission(role: Role | None, permission: Permission) -> bool:
    """Return ``True`` if *role* grants *permission*.  No role grants nothing."""
    if role is None:
        return False
    return permission in ROLE_PERMISSIONS.get(role, frozenset())


# ---------------------------------------------------------------------------
# FastAPI dependencies: permission and admin guards
# ---------------------------------------------------------------------------


def require_permission(permission: Permission) -> Callable[..., CurrentUser]:
    """Return a FastAPI dependency that enforces a specific permission.

    Returns the resolved :class:`CurrentUser` so handlers can use it
    directly.
    """

    def _guard(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
        if not role_has_permission(user.role, permission):
            logger.info(
                "Permission denied: user=%s role=%s requires %s",
                user.user_id,
                user.role.value if user.role else None,
                permission.value,
            )
            raise HTTPException(
                status_code=403,
                detail=_DENIAL_MESSAGES.get(permission, f"Permission denied: '{permission.value}'"),
            )
        return user

    return _guard


def require_admin(settings: SettingsDep, user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
    """Admit only users whose email is on the ``API_ADMIN_EMAILS`` list."""
    if not settings.is_admin_email(user.email):
        logger.warning("Non-admin user %s attempted admin access", user.user_id)
        raise HTTPException(status_code=403, detail="Not authorized")
    return user
