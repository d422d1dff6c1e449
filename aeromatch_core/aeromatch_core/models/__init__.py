"""Pydantic domain models."""

from aeromatch_core.models.availability import AvailabilitySlot, DateRange
from aeromatch_core.models.billing import BillingEvent, PlanInterval, SubscriptionStatus
from aeromatch_core.models.job_request import (
    AcceptanceDetails,
    ContractType,
    JobRequestSnapshot,
    JobStatus,
    RatingScores,
    UKEligibilityMode,
    WorkMode,
)
from aeromatch_core.models.profile import Role, TechnicianProfile

__all__ = [
    "AcceptanceDetails",
    "AvailabilitySlot",
    "BillingEvent",
    "ContractType",
    "DateRange",
    "JobRequestSnapshot",
    "JobStatus",
    "PlanInterval",
    "RatingScores",
    "Role",
    "SubscriptionStatus",
    "TechnicianProfile",
    "UKEligibilityMode",
    "WorkMode",
]
