"""Onboarding and profile editing for both marketplace sides."""

from __future__ import annotations

import logging
from datetime import UTC, date, datetime

from aeromatch_core.errors import AuthorizationError, DomainValidationError, NotFoundError
from aeromatch_core.models.availability import AvailabilitySlot
from aeromatch_core.models.profile import Role, TechnicianProfile
from aeromatch_core.profile.completion import CompletionReport, score_profile
from aeromatch_core.state.repository import (
    AvailabilityRepository,
    CompanyRepository,
    DocumentRepository,
    ProfileRepository,
    TechnicianRepository,
)
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from api.schemas import CompanyResponse, ProfileResponse, TechnicianResponse

logger = logging.getLogger(__name__)


class TechnicianUpdate(BaseModel):
    """Editable technician fields; omitted fields are left unchanged."""

    license_category: list[str] | None = None
    aircraft_types: list[str] | None = None
    specialties: list[str] | None = None
    languages: list[str] | None = None
    own_tools: bool | None = None
    right_to_work_uk: bool | None = None
    uk_license: bool | None = None
    driving_license: bool | None = None
    is_available: bool | None = None
    visibility_anonymous: bool | None = None
    passport_expiry: date | None = None
    min_daily_rate_eur: float | None = Field(default=None, ge=0)


class CompanyUpdate(BaseModel):
    """Editable company fields; omitted fields are left unchanged."""

    company_name: str | None = Field(default=None, max_length=200)
    company_type: str | None = None
    hq_country: str | None = None
    headquarters: str | None = None
    tax_id: str | None = None
    website: str | None = None
    employee_count: str | None = None
    services: list[str] | None = None
    aircraft_types: list[str] | None = None
    preferred_licenses: list[str] | None = None
    hiring_needs: str | None = None
    urgent_positions: bool | None = None


class ProfileService:
    """Profile operations for the authenticated user.

    Parameters
    ----------
    session:
        Active database session scoped to the user.
    user_id:
        The acting user.
    email:
        The acting user's email from the access token.
    """

    def __init__(self, session: AsyncSession, *, user_id: str, email: str | None) -> None:
        self._session = session
        self._user_id = user_id
        self._email = email
        self._profiles = ProfileRepository(session)

    async def get_me(self) -> ProfileResponse:
        profile = await self._profiles.get(self._user_id)
        if profile is None:
            raise NotFoundError("Profile not found")
        response = ProfileResponse(
            user_id=profile.id,
            email=profile.email,
            full_name=profile.full_name,
            role=profile.role,
            onboarding_completed=profile.onboarding_completed,
        )
        if profile.role == Role.TECHNICIAN.value:
            technician = await TechnicianRepository(self._session).get(self._user_id)
            if technician is not None:
                response.technician = TechnicianResponse.model_validate(technician)
        elif profile.role == Role.COMPANY.value:
            company = await CompanyRepository(self._session).get(self._user_id)
            if company is not None:
                response.company = CompanyResponse.model_validate(company)
        return response

    async def choose_role(self, role: Role, full_name: str | None = None) -> ProfileResponse:
        """Create the profile row on first use, or switch role before onboarding completes."""
        if not self._email:
            raise DomainValidationError("Account has no email address")
        existing = await self._profiles.get(self._user_id)
        if existing is not None and existing.onboarding_completed and existing.role not in (None, role.value):
            raise DomainValidationError("Role cannot be changed after onboarding")

        await self._profiles.set_role(self._user_id, self._email, role, full_name)
        logger.info("User %s chose role %s", self._user_id, role.value)
        return await self.get_me()

    async def update_technician(self, role: Role | None, update: TechnicianUpdate) -> TechnicianResponse:
        if role is not Role.TECHNICIAN:
            raise AuthorizationError("Only technicians can edit a technician profile")
        row = await TechnicianRepository(self._session).upsert(self._user_id, update.model_dump(exclude_unset=True))
        return TechnicianResponse.model_validate(row)

    async def update_company(self, role: Role | None, update: CompanyUpdate) -> CompanyResponse:
        if role is not Role.COMPANY:
            raise AuthorizationError("Only companies can edit a company profile")
        row = await CompanyRepository(self._session).upsert(self._user_id, update.model_dump(exclude_unset=True))
        return CompanyResponse.model_validate(row)

    async def complete_onboarding(self) -> ProfileResponse:
        if not await self._profiles.complete_onboarding(self._user_id):
            raise NotFoundError("Profile not found")
        return await self.get_me()

    async def completion(self, today: date | None = None) -> CompletionReport:
        """Score the technician's profile against the five-item checklist."""
        today = today or datetime.now(UTC).date()
        return await score_technician(self._session, self._user_id, today)


async def score_technician(session: AsyncSession, technician_id: str, today: date) -> CompletionReport:
    """Load the inputs of :func:`score_profile` for one technician and score them."""
    tech_row = await TechnicianRepository(session).get(technician_id)
    slot_rows = await AvailabilityRepository(session).list_for_technician(technician_id)
    document_count = await DocumentRepository(session).count_for_technician(technician_id)
    technician = TechnicianProfile.model_validate(tech_row) if tech_row is not None else None
    slots = [AvailabilitySlot.model_validate(row) for row in slot_rows]
    return score_profile(technician, slots, document_count, today)
