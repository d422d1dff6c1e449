"""Middleware components for the AeroMatch API."""

from __future__ import annotations

from api.middleware.auth import AuthenticationMiddleware
from api.middleware.logging import RequestLoggingMiddleware
from api.middleware.rbac import (
    ROLE_PERMISSIONS,
    Permission,
    require_admin,
    require_permission,
)

__all__ = [
    "AuthenticationMiddleware",
    "Permission",
    "ROLE_PERMISSIONS",
    "RequestLoggingMiddleware",
    "require_admin",
    "require_permission",
]
