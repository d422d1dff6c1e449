"""Job request state machine and acceptance-workflow rules.

::

    pending --(technician)--------> accepted
    pending --(technician)--------> rejected
    pending --(technician|company)-> cancelled

All three target states are terminal.  Every guard here runs before any
write.  The write itself is a conditional update on ``status = 'pending'``
(see :meth:`JobRequestRepository.transition_status`), which turns a lost
race into a :class:`ConflictError` instead of a double transition.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import date
from typing import Any

from aeromatch_core.errors import AuthorizationError, ConflictError, DomainValidationError
from aeromatch_core.matching.evaluator import (
    Candidate,
    JobRequirements,
    MatchStatus,
    evaluate_match_status,
    get_partner,
)
from aeromatch_core.models.job_request import (
    AcceptanceDetails,
    JobRequestSnapshot,
    JobStatus,
    UKEligibilityMode,
    WorkMode,
)
from aeromatch_core.models.profile import Role
from pydantic import ValidationError

TERMINAL_STATES: frozenset[JobStatus] = frozenset({JobStatus.ACCEPTED, JobStatus.REJECTED, JobStatus.CANCELLED})

# Transitions only the referenced technician may perform.
_TECHNICIAN_ONLY: frozenset[JobStatus] = frozenset({JobStatus.ACCEPTED, JobStatus.REJECTED})


def ensure_can_create(role: Role | None) -> None:
    """Only companies may open job requests."""
    if role is not Role.COMPANY:
        raise AuthorizationError("Only companies can create job requests")


def parse_target_status(raw: str | None) -> JobStatus:
    """Validate a requested status change value.

    Raises
    ------
    DomainValidationError
        If *raw* is not one of ``accepted``, ``rejected``, ``cancelled``.
    """
    try:
        status = JobStatus(raw) if raw is not None else None
    except ValueError:
        status = None
    if status is None or status not in TERMINAL_STATES:
        raise DomainValidationError("Invalid status. Must be one of: accepted, rejected, cancelled")
    return status


def authorize_transition(request: JobRequestSnapshot, actor_id: str, raw_status: str | None) -> JobStatus:
    """Run every pre-write check for a status change and return the target state.

    Checks run in this order so that an outsider is always told "forbidden"
    no matter what payload they sent:

    1. the actor must be a party to the request;
    2. the target status must be valid;
    3. ``accepted``/``rejected`` require the actor to be the technician;
    4. the request must still be ``pending``.
    """
    if actor_id not in (request.technician_id, request.company_id):
        raise AuthorizationError("Not authorized to update this request")

    target = parse_target_status(raw_status)

    if target in _TECHNICIAN_ONLY and actor_id != request.technician_id:
        raise AuthorizationError(f"Only the requested technician can set status '{target.value}'")

    if request.status in TERMINAL_STATES:
        raise ConflictError(f"Job request is already {request.status.value}")

    return target


def parse_acceptance(raw: Mapping[str, Any] | AcceptanceDetails | None) -> AcceptanceDetails:
    """Build acceptance choices from an unvalidated request payload.

    Call only after :func:`authorize_transition`, so a caller who may not
    touch the request never learns which fields were malformed.

    Raises
    ------
    DomainValidationError
        If a field has the wrong type or an unknown value.
    """
    if isinstance(raw, AcceptanceDetails):
        return raw
    try:
        return AcceptanceDetails.model_validate(dict(raw or {}))
    except ValidationError as exc:
        first = exc.errors()[0]
        field = ".".join(str(part) for part in first["loc"]) or "body"
        raise DomainValidationError(f"Invalid acceptance field '{field}': {first['msg']}") from exc


def requires_uk_eligibility(request: JobRequestSnapshot, technician_has_rtw: bool) -> bool:
    """Return ``True`` when accepting needs an explicit UK eligibility choice."""
    evaluation = evaluate_match_status(
        Candidate(has_right_to_work_uk=technician_has_rtw),
        JobRequirements(
            country=request.country_code,
            requires_right_to_work=request.requires_right_to_work_uk,
        ),
    )
    return evaluation.status is MatchStatus.CONDITIONAL


def validate_acceptance(
    request: JobRequestSnapshot,
    technician_has_rtw: bool,
    details: AcceptanceDetails,
) -> AcceptanceDetails:
    """Validate and normalise the technician's acceptance choices.

    Returns a copy where the UK eligibility mode is explicit, umbrella
    eligibility forces an umbrella work mode, and the provider is cleared
    for self-employed work.

    Raises
    ------
    DomainValidationError
        When a required choice, acknowledgment, or provider is missing.
    """
    work_mode = details.work_mode
    provider_id = details.umbrella_provider_id or None
    mode = details.uk_eligibility_mode
    acknowledged = details.uk_eligibility_acknowledged

    if requires_uk_eligibility(request, technician_has_rtw):
        if mode is None or mode is UKEligibilityMode.NOT_REQUIRED:
            raise DomainValidationError("Select how UK right to work will be handled")
        if mode is UKEligibilityMode.SELF_ARRANGED and not acknowledged:
            raise DomainValidationError("You must acknowledge UK eligibility arrangement")
        if mode is UKEligibilityMode.UMBRELLA and not work_mode.uses_umbrella:
            work_mode = WorkMode.UMBRELLA
    else:
        mode = UKEligibilityMode.NOT_REQUIRED
        acknowledged = False

    if work_mode.uses_umbrella:
        if not provider_id:
            raise DomainValidationError("Select an umbrella provider")
        partner = get_partner(provider_id)
        if partner is None:
            raise DomainValidationError(f"Unknown umbrella provider '{provider_id}'")
        if mode is UKEligibilityMode.UMBRELLA and not partner.can_sponsor_visa_uk:
            raise DomainValidationError(f"{partner.name} cannot sponsor UK right to work")
    else:
        provider_id = None

    return AcceptanceDetails(
        work_mode=work_mode,
        umbrella_provider_id=provider_id,
        payout_bank_account=details.payout_bank_account or None,
        uk_eligibility_mode=mode,
        uk_eligibility_acknowledged=acknowledged,
    )


def ensure_can_rate(request: JobRequestSnapshot, company_id: str, today: date) -> None:
    """Only the owning company may rate, and only a finished accepted job."""
    if request.company_id != company_id:
        raise AuthorizationError("Not authorized to rate this job")
    if request.status is not JobStatus.ACCEPTED:
        raise DomainValidationError("Only accepted jobs can be rated")
    if request.end_date >= today:
        raise DomainValidationError("Job has not finished yet")
