"""Admin dashboard endpoints.

Restricted to the emails listed in ``API_ADMIN_EMAILS``.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Query

from api.dependencies import CurrentUser, get_session_factory
from api.middleware.rbac import require_admin
from api.schemas import AdminMetricsResponse, AdminUsersResponse
from api.services.admin_service import AdminService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/metrics", response_model=AdminMetricsResponse)
async def get_metrics(_admin: CurrentUser = Depends(require_admin)) -> AdminMetricsResponse:
    """Platform-wide totals: users per side, job requests, ratings, founding grants."""
    return await AdminService(get_session_factory()).get_metrics()


@router.get("/users", response_model=AdminUsersResponse)
async def list_users(
    _admin: CurrentUser = Depends(require_admin),
    user_type: str = Query("technicians", alias="type", description="technicians or companies"),
) -> AdminUsersResponse:
    users = await AdminService(get_session_factory()).list_users(user_type)
    return AdminUsersResponse(type=user_type, users=users)
