"""Company ratings of technicians for finished jobs."""

from __future__ import annotations

import logging
from datetime import UTC, date, datetime

from aeromatch_core.errors import DomainValidationError, NotFoundError
from aeromatch_core.lifecycle.job_requests import ensure_can_rate
from aeromatch_core.models.job_request import JobRequestSnapshot, RatingScores
from aeromatch_core.state.repository import JobRequestRepository, RatingRepository, TechnicianRepository
from aeromatch_core.state.tables import JobRatingTable
from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)


class RatingService:
    """Rating operations for the authenticated user."""

    def __init__(self, session: AsyncSession, *, user_id: str) -> None:
        self._user_id = user_id
        self._requests = JobRequestRepository(session)
        self._ratings = RatingRepository(session)
        self._technicians = TechnicianRepository(session)

    async def rate(
        self,
        job_request_id: str,
        technician_id: str,
        scores: RatingScores,
        today: date | None = None,
    ) -> float | None:
        """Store (or overwrite) the caller's rating and return the technician's new average.

        Raises
        ------
        NotFoundError
            The job request does not exist.
        AuthorizationError
            The caller is not the request's company.
        DomainValidationError
            The job is not accepted, has not finished, or *technician_id*
            is not the request's technician.
        """
        today = today or datetime.now(UTC).date()
        row = await self._requests.get(job_request_id)
        if row is None:
            raise NotFoundError("Job request not found")
        snapshot = JobRequestSnapshot.model_validate(row)
        ensure_can_rate(snapshot, self._user_id, today)
        if technician_id != snapshot.technician_id:
            raise DomainValidationError("Technician does not match the job request")

        await self._ratings.upsert(job_request_id, self._user_id, technician_id, scores)
        await self._requests.mark_rated(job_request_id)

        average = await self._ratings.average_for_technician(technician_id)
        await self._technicians.set_average_rating(technician_id, average)
        logger.info(
            "Job %s rated %d by %s; technician average now %s",
            job_request_id,
            scores.overall,
            self._user_id,
            average,
        )
        return average

    async def list_mine(self) -> list[JobRatingTable]:
        """Ratings the caller gave or received, newest first."""
        return await self._ratings.list_for_user(self._user_id)
