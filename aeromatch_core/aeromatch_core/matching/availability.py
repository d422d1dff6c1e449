"""Availability matching and freshness scoring for technician search.

A company searches for technicians free over a requested date range.  A
slot qualifies when it fully covers the range; when a technician has
several qualifying slots only the most recently created one is kept, and
its age determines how trustworthy the availability is:

* ``fresh``   -- created less than 30 days ago (or creation time unknown)
* ``warning`` -- 30 days up to (but excluding) 60 days
* ``stale``   -- 60 days or older

Results are filtered by capability sets with OR semantics inside each
filter and sorted fresh-first.  Everything here is pure; persistence is
handled by the caller.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from datetime import UTC, date, datetime, timedelta
from enum import Enum

from pydantic import BaseModel, Field

from aeromatch_core.errors import DomainValidationError
from aeromatch_core.models.availability import AvailabilitySlot, DateRange
from aeromatch_core.models.profile import TechnicianProfile

WARNING_AFTER = timedelta(days=30)
STALE_AFTER = timedelta(days=60)

# Length of the anonymised technician reference shown to companies.
_TECH_ID_LENGTH = 8


class Freshness(str, Enum):
    """How recently a technician confirmed their availability."""

    FRESH = "fresh"
    WARNING = "warning"
    STALE = "stale"

    @property
    def rank(self) -> int:
        return _FRESHNESS_RANK[self]


_FRESHNESS_RANK: dict[Freshness, int] = {
    Freshness.FRESH: 0,
    Freshness.WARNING: 1,
    Freshness.STALE: 2,
}


class SearchFilters(BaseModel):
    """Optional search filters supplied by the company.

    List filters match when *any* requested value is present on the
    technician.  Boolean filters restrict results to technicians that
    have the flag set; ``False`` means "don't care".
    """

    license_category: list[str] = Field(default_factory=list)
    aircraft_types: list[str] = Field(default_factory=list)
    specialties: list[str] = Field(default_factory=list)
    uk_license: bool = False
    right_to_work_uk: bool = False
    own_tools: bool = False


class TechnicianMatch(BaseModel):
    """A single search hit as presented to the searching company."""

    user_id: str
    tech_id: str = Field(..., description="Anonymised reference: first 8 chars of the user id, upper-cased.")
    license_category: list[str]
    aircraft_types: list[str]
    specialties: list[str]
    own_tools: bool
    right_to_work_uk: bool
    uk_license: bool
    languages: list[str]
    freshness: Freshness
    last_updated: datetime | None = Field(
        default=None,
        description="Creation time of the slot that produced the match.",
    )


# ---------------------------------------------------------------------------
# Slot predicates
# ---------------------------------------------------------------------------


def require_range(start: date | None, end: date | None) -> DateRange:
    """Build the requested range, rejecting missing or inverted bounds."""
    if start is None or end is None:
        raise DomainValidationError("start_date and end_date are required")
    if start > end:
        raise DomainValidationError("start_date must not be after end_date")
    return DateRange(start=start, end=end)


def slot_covers_range(slot: AvailabilitySlot, requested: DateRange) -> bool:
    """Return ``True`` if *slot* fully covers *requested* (inclusive bounds)."""
    return slot.start_date <= requested.start and slot.end_date >= requested.end


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; every timestamp we store is UTC.
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def classify_freshness(created_at: datetime | None, now: datetime | None = None) -> Freshness:
    """Classify a slot's age into :class:`Freshness`.

    Intervals are half-open: exactly 30 days old is ``warning`` and exactly
    60 days old is ``stale``.  A missing timestamp is treated as fresh.
    """
    if created_at is None:
        return Freshness.FRESH
    now = _as_utc(now) if now is not None else datetime.now(UTC)
    age = now - _as_utc(created_at)
    if age < WARNING_AFTER:
        return Freshness.FRESH
    if age < STALE_AFTER:
        return Freshness.WARNING
    return Freshness.STALE


def _recency_key(slot: AvailabilitySlot) -> tuple[bool, datetime, str]:
    """Sort key: slots with a timestamp beat those without, then newest, then highest id."""
    created = _as_utc(slot.created_at) if slot.created_at is not None else datetime.min.replace(tzinfo=UTC)
    return (slot.created_at is not None, created, slot.id)


def select_latest_slots(
    slots: Iterable[AvailabilitySlot],
    requested: DateRange,
) -> dict[str, AvailabilitySlot]:
    """Keep the most recently created qualifying slot per technician.

    Ties on ``created_at`` are broken by the greater slot id so the
    outcome does not depend on input order.
    """
    latest: dict[str, AvailabilitySlot] = {}
    for slot in slots:
        if not slot_covers_range(slot, requested):
            continue
        current = latest.get(slot.technician_id)
        if current is None or _recency_key(slot) > _recency_key(current):
            latest[slot.technician_id] = slot
    return latest


# ---------------------------------------------------------------------------
# Capability filters
# ---------------------------------------------------------------------------


def _any_overlap(candidate_values: Sequence[str], wanted: Sequence[str]) -> bool:
    if not wanted:
        return True
    wanted_set = set(wanted)
    return any(value in wanted_set for value in candidate_values)


def matches_filters(technician: TechnicianProfile, filters: SearchFilters) -> bool:
    """Return ``True`` if *technician* passes every supplied filter."""
    if filters.uk_license and not technician.uk_license:
        return False
    if filters.right_to_work_uk and not technician.right_to_work_uk:
        return False
    if filters.own_tools and not technician.own_tools:
        return False
    return (
        _any_overlap(technician.license_category, filters.license_category)
        and _any_overlap(technician.aircraft_types, filters.aircraft_types)
        and _any_overlap(technician.specialties, filters.specialties)
    )


# ---------------------------------------------------------------------------
# Search entry point
# ---------------------------------------------------------------------------


def match_technicians(
    start: date | None,
    end: date | None,
    technicians: Iterable[TechnicianProfile],
    slots: Iterable[AvailabilitySlot],
    filters: SearchFilters | None = None,
    now: datetime | None = None,
) -> list[TechnicianMatch]:
    """Return technicians available over ``[start, end]`` ordered fresh-first.

    Parameters
    ----------
    start, end:
        The requested inclusive range.  Both are required.
    technicians:
        Candidate profiles.  Technicians not flagged ``is_available`` are
        skipped.
    slots:
        Availability slots for any technicians; non-covering slots are
        ignored.
    filters:
        Optional capability and flag filters.
    now:
        Reference time for freshness; defaults to the current UTC time.

    Returns
    -------
    list[TechnicianMatch]
        One entry per matching technician, stable-sorted by freshness rank.

    Raises
    ------
    DomainValidationError
        If either bound is missing or ``start`` is after ``end``.
    """
    requested = require_range(start, end)
    filters = filters or SearchFilters()
    latest = select_latest_slots(slots, requested)

    results: list[TechnicianMatch] = []
    for tech in technicians:
        if not tech.is_available:
            continue
        slot = latest.get(tech.user_id)
        if slot is None or not matches_filters(tech, filters):
            continue
        results.append(
            TechnicianMatch(
                user_id=tech.user_id,
                tech_id=tech.user_id[:_TECH_ID_LENGTH].upper(),
                license_category=list(tech.license_category),
                aircraft_types=list(tech.aircraft_types),
                specialties=list(tech.specialties),
                own_tools=tech.own_tools,
                right_to_work_uk=tech.right_to_work_uk,
                uk_license=tech.uk_license,
                languages=list(tech.languages),
                freshness=classify_freshness(slot.created_at, now),
                last_updated=slot.created_at,
            )
        )

    # list.sort is stable, so equal ranks keep candidate order.
    results.sort(key=lambda match: match.freshness.rank)
    return results
