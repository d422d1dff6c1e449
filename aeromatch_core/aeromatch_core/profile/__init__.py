"""Profile completion scoring."""

from aeromatch_core.profile.completion import (
    CHECKLIST_ORDER,
    FOUNDING_GRANT_TYPE,
    CompletionReport,
    FoundingDecision,
    FoundingOutcome,
    evaluate_founding_premium,
    score_profile,
)

__all__ = [
    "CHECKLIST_ORDER",
    "FOUNDING_GRANT_TYPE",
    "CompletionReport",
    "FoundingDecision",
    "FoundingOutcome",
    "evaluate_founding_premium",
    "score_profile",
]
