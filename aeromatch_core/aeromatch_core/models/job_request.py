"""Job request, acceptance workflow, and rating models."""

from __future__ import annotations

from datetime import date
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class JobStatus(str, Enum):
    """Lifecycle states of a job request.  Only ``PENDING`` is non-terminal."""

    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    CANCELLED = "cancelled"


class ContractType(str, Enum):
    SHORT_TERM = "short-term"
    LONG_TERM = "long-term"


class WorkMode(str, Enum):
    """How the technician will be engaged on an accepted job."""

    SELF_EMPLOYED = "self_employed"
    UMBRELLA = "umbrella"
    UMBRELLA_WITH_INSURANCE = "umbrella_with_insurance"

    @property
    def uses_umbrella(self) -> bool:
        return self in (WorkMode.UMBRELLA, WorkMode.UMBRELLA_WITH_INSURANCE)


class UKEligibilityMode(str, Enum):
    """How UK right-to-work is handled when the technician lacks it."""

    NOT_REQUIRED = "not_required"
    UMBRELLA = "umbrella"
    SELF_ARRANGED = "self_arranged"


class JobRequestSnapshot(BaseModel):
    """The fields of a job request that lifecycle guards inspect."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    company_id: str
    technician_id: str
    status: JobStatus = JobStatus.PENDING
    country_code: str = "ES"
    requires_right_to_work_uk: bool = False
    start_date: date
    end_date: date
    rated: bool = False


class AcceptanceDetails(BaseModel):
    """The work arrangement a technician chooses when accepting a job."""

    work_mode: WorkMode = WorkMode.SELF_EMPLOYED
    umbrella_provider_id: str | None = Field(
        default=None,
        description="Partner id from the umbrella registry; required for umbrella modes.",
    )
    payout_bank_account: str | None = Field(default=None, max_length=64)
    uk_eligibility_mode: UKEligibilityMode | None = None
    uk_eligibility_acknowledged: bool = False


class RatingScores(BaseModel):
    """Scores a company gives a technician for a finished job."""

    overall: int = Field(..., ge=1, le=5)
    reliability: int | None = Field(default=None, ge=1, le=5)
    skills_match: int | None = Field(default=None, ge=1, le=5)
    communication: int | None = Field(default=None, ge=1, le=5)
    safety_compliance: int | None = Field(default=None, ge=1, le=5)
    private_comment: str | None = Field(default=None, max_length=2000)
