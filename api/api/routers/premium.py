"""Founding premium endpoint."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends

from api.dependencies import CurrentUser, SessionDep, SettingsDep
from api.middleware.rbac import Permission, require_permission
from api.schemas import PremiumEvaluationResponse
from api.services.premium_service import PremiumService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/premium", tags=["premium"])


@router.post("/evaluate", response_model=PremiumEvaluationResponse)
async def evaluate_founding_premium(
    session: SessionDep,
    settings: SettingsDep,
    user: CurrentUser = Depends(require_permission(Permission.EVALUATE_PREMIUM)),
) -> PremiumEvaluationResponse:
    """Grant the founding premium if the caller's profile is complete before the cutoff.

    Safe to call repeatedly: at most one grant is ever created per technician.
    """
    service = PremiumService(session, technician_id=user.user_id, cutoff=settings.founding_cutoff_date)
    return await service.evaluate()
