"""Job request endpoints: create, list, status transitions, acceptance, match status."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter
from pydantic import BaseModel

from api.dependencies import CurrentUserDep, EmailClientDep, SessionDep
from api.schemas import (
    AcceptanceResponse,
    AcceptanceWorkflowResponse,
    JobRequestEnvelope,
    JobRequestListResponse,
    JobRequestResponse,
    MatchResponse,
)
from api.services.job_request_service import JobRequestDraft, JobRequestService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/job-requests", tags=["job-requests"])


class AcceptanceFields(BaseModel):
    """Acceptance choices as sent by the client.

    Fields are untyped here; the service validates them only after the
    caller is authorized to make the transition.
    """

    work_mode: Any = None
    umbrella_provider_id: Any = None
    payout_bank_account: Any = None
    uk_eligibility_mode: Any = None
    uk_eligibility_acknowledged: Any = None

    def acceptance(self) -> dict[str, Any]:
        return self.model_dump(include=set(AcceptanceFields.model_fields), exclude_none=True)


class StatusUpdateRequest(AcceptanceFields):
    """Request body for ``PATCH /job-requests/{id}``.

    Acceptance fields are only read when ``status`` is ``accepted``.
    """

    status: Any = None


def _acceptance_response(service_result: tuple) -> AcceptanceResponse:
    row, workflow = service_result
    return AcceptanceResponse(
        request=JobRequestResponse.model_validate(row),
        workflow=AcceptanceWorkflowResponse.model_validate(workflow) if workflow is not None else None,
    )


@router.post("", response_model=JobRequestEnvelope, status_code=201)
async def create_job_request(
    body: JobRequestDraft,
    session: SessionDep,
    user: CurrentUserDep,
    email_client: EmailClientDep,
) -> JobRequestEnvelope:
    """Request a technician for a job.  Companies only."""
    service = JobRequestService(session, user_id=user.user_id, role=user.role)
    row = await service.create(body, email_client)
    return JobRequestEnvelope(request=JobRequestResponse.model_validate(row))


@router.get("", response_model=JobRequestListResponse)
async def list_job_requests(session: SessionDep, user: CurrentUserDep) -> JobRequestListResponse:
    rows = await JobRequestService(session, user_id=user.user_id, role=user.role).list_mine()
    return JobRequestListResponse(requests=[JobRequestResponse.model_validate(row) for row in rows])


@router.get("/{request_id}", response_model=JobRequestEnvelope)
async def get_job_request(request_id: str, session: SessionDep, user: CurrentUserDep) -> JobRequestEnvelope:
    row = await JobRequestService(session, user_id=user.user_id, role=user.role).get_for_party(request_id)
    return JobRequestEnvelope(request=JobRequestResponse.model_validate(row))


@router.patch("/{request_id}", response_model=AcceptanceResponse)
async def update_job_request(
    request_id: str,
    body: StatusUpdateRequest,
    session: SessionDep,
    user: CurrentUserDep,
) -> AcceptanceResponse:
    """Accept, reject, or cancel a pending request."""
    service = JobRequestService(session, user_id=user.user_id, role=user.role)
    return _acceptance_response(await service.update_status(request_id, body.status, body.acceptance()))


@router.post("/{request_id}/accept", response_model=AcceptanceResponse)
async def accept_job_request(
    request_id: str,
    body: AcceptanceFields,
    session: SessionDep,
    user: CurrentUserDep,
) -> AcceptanceResponse:
    """Accept a pending request with the chosen work arrangement."""
    service = JobRequestService(session, user_id=user.user_id, role=user.role)
    return _acceptance_response(await service.update_status(request_id, "accepted", body.acceptance()))


@router.get("/{request_id}/match", response_model=MatchResponse)
async def get_match_status(request_id: str, session: SessionDep, user: CurrentUserDep) -> MatchResponse:
    """DIRECT or CONDITIONAL match status, with partner suggestions when conditional."""
    return await JobRequestService(session, user_id=user.user_id, role=user.role).evaluate_match(request_id)
