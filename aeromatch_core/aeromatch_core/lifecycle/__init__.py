"""Job request lifecycle guards."""

from aeromatch_core.lifecycle.job_requests import (
    TERMINAL_STATES,
    authorize_transition,
    ensure_can_create,
    ensure_can_rate,
    parse_target_status,
    requires_uk_eligibility,
    validate_acceptance,
)

__all__ = [
    "TERMINAL_STATES",
    "authorize_transition",
    "ensure_can_create",
    "ensure_can_rate",
    "parse_target_status",
    "requires_uk_eligibility",
    "validate_acceptance",
]
