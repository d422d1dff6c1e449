"""Technician search for companies."""

from __future__ import annotations

import logging
from datetime import date, datetime

from aeromatch_core.matching.availability import SearchFilters, TechnicianMatch, match_technicians, require_range
from aeromatch_core.models.availability import AvailabilitySlot
from aeromatch_core.models.profile import TechnicianProfile
from aeromatch_core.state.repository import AvailabilityRepository, TechnicianRepository
from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)


class SearchService:
    """Load candidates and slots, then rank them with the availability matcher.

    The range is validated before any query runs.  Only slots that already
    cover the range are fetched; the matcher re-checks coverage anyway.
    """

    def __init__(self, session: AsyncSession) -> None:
        self._technicians = TechnicianRepository(session)
        self._availability = AvailabilityRepository(session)

    async def search(
        self,
        start: date | None,
        end: date | None,
        filters: SearchFilters | None = None,
        now: datetime | None = None,
    ) -> list[TechnicianMatch]:
        requested = require_range(start, end)

        slot_rows = await self._availability.list_covering(requested.start, requested.end)
        if not slot_rows:
            return []
        tech_rows = await self._technicians.get_many({row.technician_id for row in slot_rows})

        results = match_technicians(
            requested.start,
            requested.end,
            [TechnicianProfile.model_validate(row) for row in tech_rows],
            [AvailabilitySlot.model_validate(row) for row in slot_rows],
            filters,
            now=now,
        )
        logger.info(
            "Search %s..%s: %d slots, %d technicians, %d matches",
            requested.start,
            requested.end,
            len(slot_rows),
            len(tech_rows),
            len(results),
        )
        return results
