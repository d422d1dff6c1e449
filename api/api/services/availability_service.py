"""Technician availability slot management.  Deletes are hard deletes."""

from __future__ import annotations

import logging
from datetime import date

from aeromatch_core.errors import NotFoundError
from aeromatch_core.matching.availability import require_range
from aeromatch_core.state.repository import AvailabilityRepository, TechnicianRepository
from aeromatch_core.state.tables import AvailabilitySlotTable
from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)


class AvailabilityService:
    """Slot operations on the acting technician's own calendar."""

    def __init__(self, session: AsyncSession, *, technician_id: str) -> None:
        self._technician_id = technician_id
        self._slots = AvailabilityRepository(session)
        self._technicians = TechnicianRepository(session)

    async def list_slots(self) -> list[AvailabilitySlotTable]:
        return await self._slots.list_for_technician(self._technician_id)

    async def add_slot(self, start: date | None, end: date | None) -> AvailabilitySlotTable:
        """Add a slot and flag the technician as available."""
        requested = require_range(start, end)
        row = await self._slots.create(self._technician_id, requested.start, requested.end)
        await self._technicians.mark_available(self._technician_id)
        logger.info("Technician %s added availability %s..%s", self._technician_id, requested.start, requested.end)
        return row

    async def remove_slot(self, slot_id: str) -> None:
        if not await self._slots.delete(slot_id, self._technician_id):
            raise NotFoundError("Availability slot not found")

    async def clear(self) -> int:
        removed = await self._slots.delete_all(self._technician_id)
        logger.info("Technician %s cleared %d availability slots", self._technician_id, removed)
        return removed
