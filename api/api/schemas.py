"""Shared Pydantic response models for API endpoints.

These schemas ensure that endpoint responses are validated and documented
in the OpenAPI specification.  Routers import from here to avoid duplication;
request bodies that only one router accepts are declared in that router.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Any

from aeromatch_core.matching.availability import TechnicianMatch
from aeromatch_core.matching.evaluator import MatchStatus, UmbrellaPartner
from aeromatch_core.profile.completion import ChecklistItem
from pydantic import BaseModel, ConfigDict, Field

# ---------------------------------------------------------------------------
# Profile schemas
# ---------------------------------------------------------------------------


class TechnicianResponse(BaseModel):
    """Technician capabilities as stored."""

    model_config = ConfigDict(from_attributes=True)

    user_id: str
    license_category: list[str] = Field(default_factory=list)
    aircraft_types: list[str] = Field(default_factory=list)
    specialties: list[str] = Field(default_factory=list)
    languages: list[str] = Field(default_factory=list)
    own_tools: bool = False
    right_to_work_uk: bool = False
    uk_license: bool = False
    driving_license: bool = False
    is_available: bool = True
    visibility_anonymous: bool = True
    passport_expiry: date | None = None
    min_daily_rate_eur: float | None = None
    average_rating: float | None = None


class CompanyResponse(BaseModel):
    """Company details as stored."""

    model_config = ConfigDict(from_attributes=True)

    user_id: str
    company_name: str | None = None
    company_type: str | None = None
    hq_country: str | None = None
    headquarters: str | None = None
    tax_id: str | None = None
    website: str | None = None
    employee_count: str | None = None
    services: list[str] = Field(default_factory=list)
    aircraft_types: list[str] = Field(default_factory=list)
    preferred_licenses: list[str] = Field(default_factory=list)
    hiring_needs: str | None = None
    urgent_positions: bool = False
    is_verified: bool = False
    is_subscribed: bool = False


class ProfileResponse(BaseModel):
    """The caller's profile with the role-specific details attached."""

    user_id: str
    email: str | None = None
    full_name: str | None = None
    role: str | None = None
    onboarding_completed: bool = False
    technician: TechnicianResponse | None = None
    company: CompanyResponse | None = None


class CompletionResponse(BaseModel):
    """Profile completion checklist for a technician."""

    checklist: list[ChecklistItem]
    percentage: int
    reminders: list[str]


# ---------------------------------------------------------------------------
# Availability and document schemas
# ---------------------------------------------------------------------------


class AvailabilitySlotResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    technician_id: str
    start_date: date
    end_date: date
    created_at: datetime | None = None


class AvailabilityListResponse(BaseModel):
    slots: list[AvailabilitySlotResponse]


class DocumentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    technician_id: str
    doc_type: str
    file_path: str
    file_name: str
    status: str
    uploaded_at: datetime | None = None


class DocumentListResponse(BaseModel):
    documents: list[DocumentResponse]


# ---------------------------------------------------------------------------
# Search and matching schemas
# ---------------------------------------------------------------------------


class SearchResponse(BaseModel):
    """Technicians available over the requested range, fresh first."""

    technicians: list[TechnicianMatch]
    count: int


class MatchResponse(BaseModel):
    """Match evaluation with the partners to suggest when conditional."""

    status: MatchStatus
    legend: str = ""
    suggested_partners: list[UmbrellaPartner] = Field(default_factory=list)


class PartnerListResponse(BaseModel):
    partners: list[UmbrellaPartner]


# ---------------------------------------------------------------------------
# Job request schemas
# ---------------------------------------------------------------------------


class JobRequestResponse(BaseModel):
    """A job request row."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    company_id: str
    technician_id: str
    final_client_name: str
    work_location: str
    country_code: str
    contract_type: str
    start_date: date
    end_date: date
    notes: str | None = None
    status: str
    requires_right_to_work_uk: bool = False
    rated: bool = False
    created_at: datetime | None = None
    updated_at: datetime | None = None


class JobRequestEnvelope(BaseModel):
    request: JobRequestResponse


class JobRequestListResponse(BaseModel):
    requests: list[JobRequestResponse]


class AcceptanceWorkflowResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    job_request_id: str
    technician_user_id: str
    company_user_id: str
    work_mode: str
    umbrella_provider_id: str | None = None
    payout_bank_account: str | None = None
    uk_eligibility_mode: str
    uk_eligibility_acknowledged: bool = False


class AcceptanceResponse(BaseModel):
    request: JobRequestResponse
    workflow: AcceptanceWorkflowResponse | None = None


# ---------------------------------------------------------------------------
# Rating and premium schemas
# ---------------------------------------------------------------------------


class RatingResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    job_request_id: str
    company_user_id: str
    technician_user_id: str
    overall: int
    reliability: int | None = None
    skills_match: int | None = None
    communication: int | None = None
    safety_compliance: int | None = None
    private_comment: str | None = None
    created_at: datetime | None = None


class RatingSubmittedResponse(BaseModel):
    success: bool = True
    average_rating: float | None = None


class RatingListResponse(BaseModel):
    ratings: list[RatingResponse]


class PremiumEvaluationResponse(BaseModel):
    """Outcome of a founding-premium evaluation."""

    complete: bool
    premium_granted: bool
    already_has_premium: bool = False
    expires_at: datetime | None = None
    reason: str | None = None
    missing: list[str] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Billing schemas
# ---------------------------------------------------------------------------


class PlanResponse(BaseModel):
    key: str
    role: str
    name: str
    description: str
    price_eur: float
    price_label: str
    interval: str
    features: list[str]
    popular: bool = False
    available: bool = Field(..., description="False while the plan has no configured processor price.")


class PlansResponse(BaseModel):
    plans: list[PlanResponse]


class CheckoutResponse(BaseModel):
    checkout_url: str
    transaction_id: str


class SubscriptionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    paddle_subscription_id: str
    plan_id: str
    role: str
    status: str
    paddle_price_id: str | None = None
    current_period_start: datetime | None = None
    current_period_end: datetime | None = None
    cancel_at_period_end: bool = False
    canceled_at: datetime | None = None


class SubscriptionEnvelope(BaseModel):
    subscription: SubscriptionResponse | None = None


class WebhookAckResponse(BaseModel):
    received: bool = True
    duplicate: bool = False


# ---------------------------------------------------------------------------
# Admin schemas
# ---------------------------------------------------------------------------


class AdminMetricsResponse(BaseModel):
    total_technicians: int
    total_companies: int
    total_job_requests: int
    total_accepted: int
    total_completed: int
    total_ratings: int
    total_founding_premium: int


class AdminUsersResponse(BaseModel):
    type: str
    users: list[dict[str, Any]]
