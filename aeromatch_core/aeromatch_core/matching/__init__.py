"""Technician search matching and right-to-work evaluation."""

from aeromatch_core.matching.availability import (
    Freshness,
    SearchFilters,
    TechnicianMatch,
    classify_freshness,
    match_technicians,
    select_latest_slots,
    slot_covers_range,
)
from aeromatch_core.matching.evaluator import (
    Candidate,
    JobRequirements,
    MatchEvaluation,
    MatchStatus,
    UmbrellaPartner,
    evaluate_match_status,
    get_partners_for_country,
    get_suggested_partners,
)

__all__ = [
    "Candidate",
    "Freshness",
    "JobRequirements",
    "MatchEvaluation",
    "MatchStatus",
    "SearchFilters",
    "TechnicianMatch",
    "UmbrellaPartner",
    "classify_freshness",
    "evaluate_match_status",
    "get_partners_for_country",
    "get_suggested_partners",
    "match_technicians",
    "select_latest_slots",
    "slot_covers_range",
]
