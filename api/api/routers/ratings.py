"""Rating endpoints: companies rate technicians after a finished job."""

from __future__ import annotations

import logging

from aeromatch_core.models.job_request import RatingScores
from fastapi import APIRouter, Depends

from api.dependencies import CurrentUser, CurrentUserDep, SessionDep
from api.middleware.rbac import Permission, require_permission
from api.schemas import RatingListResponse, RatingResponse, RatingSubmittedResponse
from api.services.rating_service import RatingService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/ratings", tags=["ratings"])


class RatingRequest(RatingScores):
    """Request body for ``POST /ratings``."""

    job_request_id: str
    technician_id: str

    def scores(self) -> RatingScores:
        return RatingScores.model_validate(self.model_dump(exclude={"job_request_id", "technician_id"}))


@router.post("", response_model=RatingSubmittedResponse)
async def submit_rating(
    body: RatingRequest,
    session: SessionDep,
    user: CurrentUser = Depends(require_permission(Permission.RATE_TECHNICIANS)),
) -> RatingSubmittedResponse:
    """Rate the technician of an accepted job whose end date has passed.

    Rating the same job again overwrites the earlier scores.
    """
    average = await RatingService(session, user_id=user.user_id).rate(
        body.job_request_id,
        body.technician_id,
        body.scores(),
    )
    return RatingSubmittedResponse(success=True, average_rating=average)


@router.get("/mine", response_model=RatingListResponse)
async def list_my_ratings(session: SessionDep, user: CurrentUserDep) -> RatingListResponse:
    rows = await RatingService(session, user_id=user.user_id).list_mine()
    return RatingListResponse(ratings=[RatingResponse.model_validate(row) for row in rows])
