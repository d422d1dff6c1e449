"""Founding premium evaluation for early technicians."""

from __future__ import annotations

import logging
from datetime import UTC, date, datetime

from aeromatch_core.profile.completion import (
    FOUNDING_GRANT_TYPE,
    FoundingOutcome,
    evaluate_founding_premium,
)
from aeromatch_core.state.repository import DocumentRepository, PremiumGrantRepository, TechnicianRepository
from sqlalchemy.ext.asyncio import AsyncSession

from api.schemas import PremiumEvaluationResponse
from api.services.profile_service import score_technician

logger = logging.getLogger(__name__)

_PERIOD_ENDED = "Founding premium period has ended"
_INCOMPLETE = "Profile is not complete yet"


class PremiumService:
    """Evaluate and grant the one-time founding premium.

    The grant insert is ``ON CONFLICT DO NOTHING`` on
    ``(technician_id, grant_type)``, so concurrent evaluations create at
    most one grant and the loser reports "already granted".
    """

    def __init__(self, session: AsyncSession, *, technician_id: str, cutoff: date) -> None:
        self._session = session
        self._technician_id = technician_id
        self._cutoff = cutoff
        self._grants = PremiumGrantRepository(session)

    async def evaluate(self, now: datetime | None = None) -> PremiumEvaluationResponse:
        now = now or datetime.now(UTC)
        report = await score_technician(self._session, self._technician_id, now.date())
        existing = await self._grants.get(self._technician_id, FOUNDING_GRANT_TYPE)
        technician = await TechnicianRepository(self._session).get(self._technician_id)
        documents = await DocumentRepository(self._session).list_for_technician(self._technician_id)

        decision = evaluate_founding_premium(
            report,
            now=now,
            cutoff=self._cutoff,
            has_existing_grant=existing is not None,
            doc_types={document.doc_type for document in documents},
            aircraft_types=list(technician.aircraft_types or []) if technician is not None else [],
        )

        if decision.outcome is FoundingOutcome.PERIOD_ENDED:
            return PremiumEvaluationResponse(complete=False, premium_granted=False, reason=_PERIOD_ENDED)
        if decision.outcome is FoundingOutcome.ALREADY_GRANTED:
            assert existing is not None
            return PremiumEvaluationResponse(
                complete=True,
                premium_granted=False,
                already_has_premium=True,
                expires_at=existing.expires_at,
            )
        if decision.outcome is FoundingOutcome.INCOMPLETE:
            return PremiumEvaluationResponse(
                complete=False,
                premium_granted=False,
                reason=_INCOMPLETE,
                missing=decision.missing,
            )

        assert decision.expires_at is not None
        created = await self._grants.create_once(
            self._technician_id,
            FOUNDING_GRANT_TYPE,
            reason="Founding technician with a complete profile",
            expires_at=decision.expires_at,
            conditions=decision.conditions,
        )
        if not created:
            winner = await self._grants.get(self._technician_id, FOUNDING_GRANT_TYPE)
            return PremiumEvaluationResponse(
                complete=True,
                premium_granted=False,
                already_has_premium=True,
                expires_at=winner.expires_at if winner is not None else None,
            )

        logger.info("Founding premium granted to %s until %s", self._technician_id, decision.expires_at)
        return PremiumEvaluationResponse(complete=True, premium_granted=True, expires_at=decision.expires_at)
