"""Availability endpoints for technicians."""

from __future__ import annotations

import logging
from datetime import date
from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from api.dependencies import CurrentUser, SessionDep
from api.middleware.rbac import Permission, require_permission
from api.schemas import AvailabilityListResponse, AvailabilitySlotResponse
from api.services.availability_service import AvailabilityService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/availability", tags=["availability"])


class SlotRequest(BaseModel):
    """Request body for ``POST /availability``."""

    start_date: date | None = None
    end_date: date | None = None


@router.get("", response_model=AvailabilityListResponse)
async def list_slots(
    session: SessionDep,
    user: CurrentUser = Depends(require_permission(Permission.MANAGE_AVAILABILITY)),
) -> AvailabilityListResponse:
    rows = await AvailabilityService(session, technician_id=user.user_id).list_slots()
    return AvailabilityListResponse(slots=[AvailabilitySlotResponse.model_validate(row) for row in rows])


@router.post("", response_model=AvailabilitySlotResponse, status_code=201)
async def add_slot(
    body: SlotRequest,
    session: SessionDep,
    user: CurrentUser = Depends(require_permission(Permission.MANAGE_AVAILABILITY)),
) -> AvailabilitySlotResponse:
    row = await AvailabilityService(session, technician_id=user.user_id).add_slot(body.start_date, body.end_date)
    return AvailabilitySlotResponse.model_validate(row)


@router.delete("/{slot_id}")
async def remove_slot(
    slot_id: str,
    session: SessionDep,
    user: CurrentUser = Depends(require_permission(Permission.MANAGE_AVAILABILITY)),
) -> dict[str, Any]:
    await AvailabilityService(session, technician_id=user.user_id).remove_slot(slot_id)
    return {"deleted": slot_id}


@router.delete("")
async def clear_slots(
    session: SessionDep,
    user: CurrentUser = Depends(require_permission(Permission.MANAGE_AVAILABILITY)),
) -> dict[str, Any]:
    removed = await AvailabilityService(session, technician_id=user.user_id).clear()
    return {"deleted_count": removed}
