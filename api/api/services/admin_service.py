"""Platform-wide admin metrics and user listings.

Every read is independent, so each runs on its own session concurrently via
``asyncio.gather`` and the results are joined in memory.  All methods are
cross-user and must only be reachable behind ``require_admin``.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime
from typing import Any, TypeVar

from aeromatch_core.errors import DomainValidationError
from aeromatch_core.models.job_request import JobStatus
from aeromatch_core.models.profile import Role, TechnicianProfile
from aeromatch_core.profile.completion import FOUNDING_GRANT_TYPE
from aeromatch_core.state.repository import (
    AvailabilityRepository,
    CompanyRepository,
    DocumentRepository,
    JobRequestRepository,
    PremiumGrantRepository,
    ProfileRepository,
    RatingRepository,
    TechnicianRepository,
)
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from api.schemas import AdminMetricsResponse

logger = logging.getLogger(__name__)

T = TypeVar("T")

USER_LIST_LIMIT = 100


class AdminService:
    """Cross-user read models for the admin dashboard.

    Parameters
    ----------
    session_factory:
        Factory for unscoped sessions; one session is opened per query.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def _read(self, query: Callable[[AsyncSession], Awaitable[T]]) -> T:
        async with self._session_factory() as session:
            return await query(session)

    async def get_metrics(self, now: datetime | None = None) -> AdminMetricsResponse:
        today = (now or datetime.now(UTC)).date()
        (
            technicians,
            companies,
            job_requests,
            accepted,
            completed,
            ratings,
            founding,
        ) = await asyncio.gather(
            self._read(lambda s: ProfileRepository(s).count_by_role(Role.TECHNICIAN)),
            self._read(lambda s: ProfileRepository(s).count_by_role(Role.COMPANY)),
            self._read(lambda s: JobRequestRepository(s).count()),
            self._read(lambda s: JobRequestRepository(s).count(JobStatus.ACCEPTED)),
            self._read(lambda s: JobRequestRepository(s).count_completed(today)),
            self._read(lambda s: RatingRepository(s).count()),
            self._read(lambda s: PremiumGrantRepository(s).count(FOUNDING_GRANT_TYPE)),
        )
        return AdminMetricsResponse(
            total_technicians=technicians,
            total_companies=companies,
            total_job_requests=job_requests,
            total_accepted=accepted,
            total_completed=completed,
            total_ratings=ratings,
            total_founding_premium=founding,
        )

    async def list_users(self, user_type: str) -> list[dict[str, Any]]:
        """Latest users of one side, enriched with per-user counts.

        Raises
        ------
        DomainValidationError
            If *user_type* is not ``technicians`` or ``companies``.
        """
        if user_type == "technicians":
            return await self._list_technicians()
        if user_type == "companies":
            return await self._list_companies()
        raise DomainValidationError("Invalid type")

    async def _list_technicians(self) -> list[dict[str, Any]]:
        profiles = await self._read(
            lambda s: ProfileRepository(s).list_recent_by_role(Role.TECHNICIAN, USER_LIST_LIMIT)
        )
        ids = [p.id for p in profiles]
        tech_rows, doc_counts, slot_counts, expiries = await asyncio.gather(
            self._read(lambda s: TechnicianRepository(s).get_many(ids)),
            self._read(lambda s: DocumentRepository(s).counts_for_technicians(ids)),
            self._read(lambda s: AvailabilityRepository(s).counts_for_technicians(ids)),
            self._read(lambda s: PremiumGrantRepository(s).expiries_for(ids)),
        )
        technicians = {row.user_id: TechnicianProfile.model_validate(row) for row in tech_rows}
        now = datetime.now(UTC)

        users: list[dict[str, Any]] = []
        for profile in profiles:
            tech = technicians.get(profile.id)
            expires_at = expiries.get(profile.id)
            if expires_at is not None and expires_at.tzinfo is None:
                expires_at = expires_at.replace(tzinfo=UTC)
            users.append(
                {
                    "id": profile.id,
                    "email": profile.email,
                    "full_name": profile.full_name,
                    "created_at": profile.created_at,
                    "has_capabilities": bool(
                        tech and (tech.license_category or tech.aircraft_types or tech.specialties)
                    ),
                    "docs_count": doc_counts.get(profile.id, 0),
                    "avail_count": slot_counts.get(profile.id, 0),
                    "has_premium": expires_at is not None and expires_at > now,
                    "premium_expires": expires_at,
                }
            )
        return users

    async def _list_companies(self) -> list[dict[str, Any]]:
        profiles = await self._read(lambda s: ProfileRepository(s).list_recent_by_role(Role.COMPANY, USER_LIST_LIMIT))
        ids = [p.id for p in profiles]
        company_rows, job_counts = await asyncio.gather(
            self._read(lambda s: CompanyRepository(s).get_many(ids)),
            self._read(lambda s: JobRequestRepository(s).counts_by_company(ids)),
        )
        companies = {row.user_id: row for row in company_rows}

        users: list[dict[str, Any]] = []
        for profile in profiles:
            company = companies.get(profile.id)
            counts = job_counts.get(profile.id, {"total": 0, "accepted": 0})
            users.append(
                {
                    "id": profile.id,
                    "email": profile.email,
                    "full_name": profile.full_name,
                    "created_at": profile.created_at,
                    "company_name": company.company_name if company else None,
                    "company_type": company.company_type if company else None,
                    "total_jobs": counts["total"],
                    "accepted_jobs": counts["accepted"],
                }
            )
        return users
