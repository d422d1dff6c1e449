"""Technician profile completion scoring and founding-premium eligibility.

The checklist has five items, always reported in reminder priority order:

1. ``license``       -- at least one licence category
2. ``aircraft``      -- at least one aircraft type
3. ``specialty``     -- at least one specialty
4. ``availability``  -- at least one slot that has not ended yet
5. ``documents``     -- at least one uploaded document

Founding premium uses its own test, evaluated before the configured cutoff:

- *capabilities*: any of the first three checklist items
- *basic_license*: an EASA, UK CAA, or FAA licence document
- *aircraft_docs*: theory and practical type-rating documents for every
  aircraft type on the profile (vacuously true with no aircraft types)
- *availability*: the checklist item of the same name
"""

from __future__ import annotations

from collections.abc import Collection, Iterable, Sequence
from datetime import UTC, date, datetime, time
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from aeromatch_core.documents import aircraft_missing_type_docs, has_basic_license
from aeromatch_core.models.availability import AvailabilitySlot
from aeromatch_core.models.profile import TechnicianProfile

FOUNDING_GRANT_TYPE = "founding_profile_complete"
FOUNDING_GRANT_MONTHS = 12

CHECKLIST_ORDER: tuple[str, ...] = ("license", "aircraft", "specialty", "availability", "documents")


class ChecklistItem(BaseModel):
    key: str
    done: bool


class CompletionReport(BaseModel):
    """Result of scoring a technician profile."""

    checklist: list[ChecklistItem]
    percentage: int = Field(..., ge=0, le=100)
    reminders: list[str] = Field(
        default_factory=list,
        description="Keys of unmet items, highest priority first.",
    )

    def is_done(self, key: str) -> bool:
        return any(item.key == key and item.done for item in self.checklist)

    @property
    def has_capabilities(self) -> bool:
        return self.is_done("license") or self.is_done("aircraft") or self.is_done("specialty")


def has_active_availability(slots: Iterable[AvailabilitySlot], today: date) -> bool:
    """Return ``True`` if any slot ends today or later."""
    return any(slot.end_date >= today for slot in slots)


def score_profile(
    technician: TechnicianProfile | None,
    slots: Iterable[AvailabilitySlot],
    document_count: int,
    today: date,
) -> CompletionReport:
    """Compute the completion checklist, percentage, and ordered reminders.

    A missing technician row scores every capability item as unmet.  The
    percentage is ``round(done / 5 * 100)``, so it is 0 with nothing done,
    100 with everything done, and monotonic in between.
    """
    flags: dict[str, bool] = {
        "license": bool(technician and technician.license_category),
        "aircraft": bool(technician and technician.aircraft_types),
        "specialty": bool(technician and technician.specialties),
        "availability": has_active_availability(slots, today),
        "documents": document_count > 0,
    }
    checklist = [ChecklistItem(key=key, done=flags[key]) for key in CHECKLIST_ORDER]
    done = sum(1 for item in checklist if item.done)
    return CompletionReport(
        checklist=checklist,
        percentage=round(done / len(CHECKLIST_ORDER) * 100),
        reminders=[item.key for item in checklist if not item.done],
    )


# ---------------------------------------------------------------------------
# Founding premium
# ---------------------------------------------------------------------------


class FoundingOutcome(str, Enum):
    PERIOD_ENDED = "period_ended"
    ALREADY_GRANTED = "already_granted"
    INCOMPLETE = "incomplete"
    ELIGIBLE = "eligible"


class FoundingDecision(BaseModel):
    """What to do for a founding-premium evaluation request."""

    outcome: FoundingOutcome
    missing: list[str] = Field(default_factory=list)
    expires_at: datetime | None = None
    conditions: dict[str, Any] = Field(
        default_factory=dict,
        description="Snapshot of the qualifying conditions, stored with the grant.",
    )


def add_months(moment: datetime, months: int) -> datetime:
    """Shift *moment* by whole months, clamping the day to the target month's length."""
    month_index = moment.month - 1 + months
    year = moment.year + month_index // 12
    month = month_index % 12 + 1
    day = moment.day
    while day > 28:
        try:
            return moment.replace(year=year, month=month, day=day)
        except ValueError:
            day -= 1
    return moment.replace(year=year, month=month, day=day)


def founding_period_open(now: datetime, cutoff: date) -> bool:
    """The founding window closes at the start (00:00 UTC) of the cutoff date."""
    return now <= datetime.combine(cutoff, time.min, tzinfo=UTC)


def evaluate_founding_premium(
    report: CompletionReport,
    *,
    now: datetime,
    cutoff: date,
    has_existing_grant: bool,
    doc_types: Collection[str],
    aircraft_types: Sequence[str],
) -> FoundingDecision:
    """Decide whether a founding premium grant should be created.

    The checks short-circuit in this order: cutoff, existing grant,
    completeness.  An incomplete decision lists the unmet condition keys,
    with ``aircraft_docs`` expanded to one ``aircraft_docs:<type>`` entry per
    aircraft type still lacking documents.  An eligible decision carries the
    12-month expiry and the condition snapshot to persist alongside the grant.
    """
    if not founding_period_open(now, cutoff):
        return FoundingDecision(outcome=FoundingOutcome.PERIOD_ENDED)
    if has_existing_grant:
        return FoundingDecision(outcome=FoundingOutcome.ALREADY_GRANTED)

    missing_aircraft = aircraft_missing_type_docs(aircraft_types, doc_types)
    conditions: dict[str, Any] = {
        "capabilities": report.has_capabilities,
        "basic_license": has_basic_license(doc_types),
        "aircraft_docs": not missing_aircraft,
        "availability": report.is_done("availability"),
    }
    missing: list[str] = []
    for key, ok in conditions.items():
        if ok:
            continue
        if key == "aircraft_docs":
            missing.extend(f"aircraft_docs:{aircraft}" for aircraft in missing_aircraft)
        else:
            missing.append(key)
    conditions["missing_aircraft_docs"] = missing_aircraft
    if missing:
        return FoundingDecision(outcome=FoundingOutcome.INCOMPLETE, missing=missing, conditions=conditions)

    return FoundingDecision(
        outcome=FoundingOutcome.ELIGIBLE,
        expires_at=add_months(now, FOUNDING_GRANT_MONTHS),
        conditions={**conditions, "percentage": report.percentage, "evaluated_at": now.isoformat()},
    )
