"""Match evaluation and umbrella partner lookup.

These endpoints are pure: they read nothing from the database and only
require an authenticated caller.
"""

from __future__ import annotations

import logging

from aeromatch_core.matching.evaluator import Candidate, JobRequirements, get_partners_for_country
from fastapi import APIRouter, Query
from pydantic import BaseModel

from api.dependencies import UserDep
from api.schemas import MatchResponse, PartnerListResponse
from api.services.job_request_service import evaluate_with_partners

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/matching", tags=["matching"])


class MatchEvaluationRequest(BaseModel):
    """Request body for ``POST /matching/evaluate``."""

    candidate: Candidate
    job: JobRequirements


@router.get("/partners", response_model=PartnerListResponse)
async def list_partners(
    _user: UserDep,
    country: str = Query(..., min_length=2, max_length=8, description="Destination country code, e.g. UK."),
) -> PartnerListResponse:
    return PartnerListResponse(partners=get_partners_for_country(country))


@router.post("/evaluate", response_model=MatchResponse)
async def evaluate_match(body: MatchEvaluationRequest, _user: UserDep) -> MatchResponse:
    """DIRECT or CONDITIONAL status for a candidate against a job's work-eligibility needs."""
    return evaluate_with_partners(body.candidate, body.job)
