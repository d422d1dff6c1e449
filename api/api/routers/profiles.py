"""Profile endpoints: role selection, onboarding, profile editing, completion."""

from __future__ import annotations

import logging

from aeromatch_core.models.profile import Role
from fastapi import APIRouter
from pydantic import BaseModel, Field

from api.dependencies import CurrentUserDep, SessionDep
from api.schemas import CompanyResponse, CompletionResponse, ProfileResponse, TechnicianResponse
from api.services.profile_service import CompanyUpdate, ProfileService, TechnicianUpdate

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/profiles", tags=["profiles"])


class RoleRequest(BaseModel):
    """Request body for ``POST /profiles/role``."""

    role: Role
    full_name: str | None = Field(default=None, max_length=200)


@router.get("/me", response_model=ProfileResponse)
async def get_my_profile(session: SessionDep, user: CurrentUserDep) -> ProfileResponse:
    return await ProfileService(session, user_id=user.user_id, email=user.email).get_me()


@router.post("/role", response_model=ProfileResponse)
async def choose_role(body: RoleRequest, session: SessionDep, user: CurrentUserDep) -> ProfileResponse:
    """Create the caller's profile with a marketplace role (first onboarding step)."""
    service = ProfileService(session, user_id=user.user_id, email=user.email)
    return await service.choose_role(body.role, body.full_name)


@router.put("/technician", response_model=TechnicianResponse)
async def update_technician(body: TechnicianUpdate, session: SessionDep, user: CurrentUserDep) -> TechnicianResponse:
    service = ProfileService(session, user_id=user.user_id, email=user.email)
    return await service.update_technician(user.role, body)


@router.put("/company", response_model=CompanyResponse)
async def update_company(body: CompanyUpdate, session: SessionDep, user: CurrentUserDep) -> CompanyResponse:
    service = ProfileService(session, user_id=user.user_id, email=user.email)
    return await service.update_company(user.role, body)


@router.post("/onboarding/complete", response_model=ProfileResponse)
async def complete_onboarding(session: SessionDep, user: CurrentUserDep) -> ProfileResponse:
    return await ProfileService(session, user_id=user.user_id, email=user.email).complete_onboarding()


@router.get("/completion", response_model=CompletionResponse)
async def get_completion(session: SessionDep, user: CurrentUserDep) -> CompletionResponse:
    """Checklist, percentage, and ordered reminders for the caller's technician profile."""
    report = await ProfileService(session, user_id=user.user_id, email=user.email).completion()
    return CompletionResponse(checklist=report.checklist, percentage=report.percentage, reminders=report.reminders)
