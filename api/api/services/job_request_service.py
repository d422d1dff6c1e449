"""Job request creation, listing, status transitions, and acceptance.

Every guard from :mod:`aeromatch_core.lifecycle.job_requests` runs before
the first write.  The status change itself is a conditional update, so two
concurrent transitions on one request produce exactly one winner and one
:class:`ConflictError`.  Two follow-up writes are best-effort and never
undo the primary write: the technician notification email after creation,
and the acceptance-workflow record after acceptance.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from datetime import date
from typing import Any

from aeromatch_core.errors import ConflictError, NotFoundError
from aeromatch_core.lifecycle.job_requests import (
    authorize_transition,
    ensure_can_create,
    parse_acceptance,
    validate_acceptance,
)
from aeromatch_core.matching.availability import require_range
from aeromatch_core.matching.evaluator import (
    Candidate,
    JobRequirements,
    MatchStatus,
    evaluate_match_status,
    get_suggested_partners,
)
from aeromatch_core.models.job_request import AcceptanceDetails, ContractType, JobRequestSnapshot, JobStatus
from aeromatch_core.models.profile import Role
from aeromatch_core.state.repository import (
    AcceptanceWorkflowRepository,
    CompanyRepository,
    JobRequestRepository,
    ProfileRepository,
    TechnicianRepository,
)
from aeromatch_core.state.tables import JobAcceptanceWorkflowTable, JobRequestTable
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from api.schemas import MatchResponse
from api.services.email_client import EmailClient, JobRequestEmail

logger = logging.getLogger(__name__)


class JobRequestDraft(BaseModel):
    """Fields a company supplies when requesting a technician."""

    technician_id: str = Field(..., min_length=1)
    final_client_name: str = Field(..., min_length=1, max_length=200)
    work_location: str = Field(..., min_length=1, max_length=200)
    start_date: date
    end_date: date
    contract_type: ContractType = ContractType.SHORT_TERM
    country_code: str = Field(default="ES", min_length=2, max_length=3)
    requires_right_to_work_uk: bool = False
    notes: str | None = Field(default=None, max_length=2000)


class JobRequestService:
    """Job request operations performed by one authenticated user.

    Parameters
    ----------
    session:
        Active database session scoped to the user.
    user_id:
        The acting user.
    role:
        The acting user's marketplace role, or ``None`` before onboarding.
    """

    def __init__(self, session: AsyncSession, *, user_id: str, role: Role | None) -> None:
        self._session = session
        self._user_id = user_id
        self._role = role
        self._requests = JobRequestRepository(session)
        self._technicians = TechnicianRepository(session)

    async def create(self, draft: JobRequestDraft, email_client: EmailClient | None = None) -> JobRequestTable:
        """Open a ``pending`` request from the acting company to a technician."""
        ensure_can_create(self._role)
        require_range(draft.start_date, draft.end_date)

        technician = await self._technicians.get(draft.technician_id)
        if technician is None:
            raise NotFoundError("Technician not found")

        row = await self._requests.create(
            company_id=self._user_id,
            technician_id=draft.technician_id,
            final_client_name=draft.final_client_name,
            work_location=draft.work_location,
            start_date=draft.start_date,
            end_date=draft.end_date,
            contract_type=draft.contract_type.value,
            country_code=draft.country_code.upper(),
            requires_right_to_work_uk=draft.requires_right_to_work_uk,
            notes=draft.notes,
        )
        logger.info("Job request %s created by company %s for %s", row.id, self._user_id, draft.technician_id)

        if email_client is not None:
            await self._notify_technician(row, email_client)
        return row

    async def list_mine(self) -> list[JobRequestTable]:
        """Requests where the caller is the technician (technicians) or the company (everyone else)."""
        role = Role.TECHNICIAN if self._role is Role.TECHNICIAN else Role.COMPANY
        return await self._requests.list_for_user(self._user_id, role)

    async def get_for_party(self, request_id: str) -> JobRequestTable:
        row = await self._requests.get(request_id)
        if row is None or self._user_id not in (row.company_id, row.technician_id):
            raise NotFoundError("Job request not found")
        return row

    async def update_status(
        self,
        request_id: str,
        raw_status: str | None,
        acceptance: Mapping[str, Any] | AcceptanceDetails | None = None,
    ) -> tuple[JobRequestTable, JobAcceptanceWorkflowTable | None]:
        """Move a pending request to a terminal state.

        *acceptance* is the raw acceptance payload; it is only validated once
        the caller is known to be allowed to make the transition.  Returns the
        refreshed request and, for acceptances, the stored workflow record
        (``None`` if that best-effort write failed).

        Raises
        ------
        NotFoundError
            The request does not exist.
        AuthorizationError
            The caller may not perform this transition.
        DomainValidationError
            Invalid status, or malformed or incomplete acceptance choices.
        ConflictError
            The request is no longer pending.
        """
        row = await self._requests.get(request_id)
        if row is None:
            raise NotFoundError("Job request not found")
        snapshot = JobRequestSnapshot.model_validate(row)
        target = authorize_transition(snapshot, self._user_id, raw_status)

        normalized: AcceptanceDetails | None = None
        if target is JobStatus.ACCEPTED:
            technician = await self._technicians.get(snapshot.technician_id)
            has_rtw = bool(technician and technician.right_to_work_uk)
            details = parse_acceptance(acceptance)
            normalized = validate_acceptance(snapshot, has_rtw, details)

        if not await self._requests.transition_status(request_id, target):
            raise ConflictError("Job request is no longer pending")
        logger.info("Job request %s -> %s by %s", request_id, target.value, self._user_id)

        workflow = None
        if normalized is not None:
            workflow = await self._record_workflow(snapshot, normalized)

        refreshed = await self._requests.refresh(request_id)
        assert refreshed is not None
        return refreshed, workflow

    async def evaluate_match(self, request_id: str) -> MatchResponse:
        """Match status for the request's technician, with partner suggestions when conditional."""
        row = await self.get_for_party(request_id)
        technician = await self._technicians.get(row.technician_id)
        candidate = Candidate(has_right_to_work_uk=bool(technician and technician.right_to_work_uk))
        job = JobRequirements(country=row.country_code, requires_right_to_work=row.requires_right_to_work_uk)
        return evaluate_with_partners(candidate, job)

    # -- Best-effort follow-ups ------------------------------------------------

    async def _record_workflow(
        self,
        snapshot: JobRequestSnapshot,
        details: AcceptanceDetails,
    ) -> JobAcceptanceWorkflowTable | None:
        workflows = AcceptanceWorkflowRepository(self._session)
        try:
            async with self._session.begin_nested():
                await workflows.upsert(snapshot.id, snapshot.technician_id, snapshot.company_id, details)
        except Exception:
            logger.warning("Failed to record acceptance workflow for %s", snapshot.id, exc_info=True)
            return None
        return await workflows.get(snapshot.id)

    async def _notify_technician(self, row: JobRequestTable, email_client: EmailClient) -> None:
        try:
            profile = await ProfileRepository(self._session).get(row.technician_id)
            if profile is None or not profile.email:
                logger.info("Technician %s has no email on file; notification skipped", row.technician_id)
                return
            company = await CompanyRepository(self._session).get(self._user_id)
            await email_client.send_job_request_notification(
                JobRequestEmail(
                    technician_email=profile.email,
                    technician_name=profile.full_name or "Técnico",
                    company_name=(company.company_name if company else None) or "Una empresa",
                    final_client=row.final_client_name,
                    work_location=row.work_location,
                    start_date=row.start_date,
                    end_date=row.end_date,
                    contract_type=row.contract_type,
                    notes=row.notes,
                    requires_right_to_work_uk=row.requires_right_to_work_uk,
                )
            )
        except Exception:
            logger.warning("Job request email for %s failed", row.id, exc_info=True)


def evaluate_with_partners(candidate: Candidate, job: JobRequirements) -> MatchResponse:
    evaluation = evaluate_match_status(candidate, job)
    partners = get_suggested_partners(candidate, job) if evaluation.status is MatchStatus.CONDITIONAL else []
    return MatchResponse(status=evaluation.status, legend=evaluation.legend, suggested_partners=partners)

