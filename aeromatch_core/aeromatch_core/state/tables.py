"""SQLAlchemy 2.0 ORM table definitions for the AeroMatch datastore.

All tables use the ``Mapped`` / ``mapped_column`` declaration style.  The
``Base`` declarative base is exported for migrations, local-mode
``create_all`` and the repository layer.

Uniqueness rules that the application relies on for idempotency are
declared here as constraints rather than checked in Python:

* one rating per (job request, rater, rated)
* one grant per (technician, grant type)
* one acceptance-workflow record per job request
* one subscription per processor subscription id
* one stored billing event per processor event id
"""

from __future__ import annotations

import uuid
from datetime import UTC, date, datetime
from typing import Any

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

# Cross-dialect JSON type: JSONB on PostgreSQL, plain JSON on SQLite.
_JsonType = JSONB().with_variant(JSON(), "sqlite")


def _utcnow() -> datetime:
    """Return the current UTC timestamp (timezone-aware)."""
    return datetime.now(UTC)


def _new_id() -> str:
    return str(uuid.uuid4())


# ---------------------------------------------------------------------------
# Declarative base
# ---------------------------------------------------------------------------


class Base(DeclarativeBase):
    """Shared declarative base for all AeroMatch tables."""


# ---------------------------------------------------------------------------
# Profiles
# ---------------------------------------------------------------------------


class ProfileTable(Base):
    """One row per authenticated user; ``id`` is the auth provider's user id.

    ``role`` stays ``NULL`` until the user picks a side during onboarding.
    """

    __tablename__ = "profiles"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    email: Mapped[str] = mapped_column(String(320), nullable=False)
    full_name: Mapped[str | None] = mapped_column(String(256), nullable=True)
    role: Mapped[str | None] = mapped_column(String(32), nullable=True)
    onboarding_completed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False
    )

    __table_args__ = (
        CheckConstraint("role IS NULL OR role IN ('technician', 'company')", name="ck_profiles_role"),
        Index("ix_profiles_role_created", "role", "created_at"),
    )


class TechnicianTable(Base):
    """Capabilities and eligibility flags for a technician profile."""

    __tablename__ = "technicians"

    user_id: Mapped[str] = mapped_column(String(64), ForeignKey("profiles.id", ondelete="CASCADE"), primary_key=True)
    license_category: Mapped[list[str]] = mapped_column(_JsonType, default=list, nullable=False)
    aircraft_types: Mapped[list[str]] = mapped_column(_JsonType, default=list, nullable=False)
    specialties: Mapped[list[str]] = mapped_column(_JsonType, default=list, nullable=False)
    languages: Mapped[list[str]] = mapped_column(_JsonType, default=list, nullable=False)
    own_tools: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    right_to_work_uk: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    uk_license: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    driving_license: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_available: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    visibility_anonymous: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    passport_expiry: Mapped[date | None] = mapped_column(Date, nullable=True)
    min_daily_rate_eur: Mapped[float | None] = mapped_column(Float, nullable=True)
    average_rating: Mapped[float | None] = mapped_column(Float, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False
    )

    __table_args__ = (Index("ix_technicians_available", "is_available"),)


class CompanyTable(Base):
    """Hiring organisation details for a company profile."""

    __tablename__ = "companies"

    user_id: Mapped[str] = mapped_column(String(64), ForeignKey("profiles.id", ondelete="CASCADE"), primary_key=True)
    company_name: Mapped[str | None] = mapped_column(String(256), nullable=True)
    company_type: Mapped[str | None] = mapped_column(String(64), nullable=True)
    hq_country: Mapped[str | None] = mapped_column(String(8), nullable=True)
    headquarters: Mapped[str | None] = mapped_column(String(256), nullable=True)
    tax_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    website: Mapped[str | None] = mapped_column(String(512), nullable=True)
    employee_count: Mapped[str | None] = mapped_column(String(32), nullable=True)
    services: Mapped[list[str]] = mapped_column(_JsonType, default=list, nullable=False)
    aircraft_types: Mapped[list[str]] = mapped_column(_JsonType, default=list, nullable=False)
    preferred_licenses: Mapped[list[str]] = mapped_column(_JsonType, default=list, nullable=False)
    hiring_needs: Mapped[str | None] = mapped_column(Text, nullable=True)
    urgent_positions: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_verified: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_subscribed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False
    )


# ---------------------------------------------------------------------------
# Availability and documents
# ---------------------------------------------------------------------------


class AvailabilitySlotTable(Base):
    """An inclusive date range a technician declared themselves available."""

    __tablename__ = "availability_slots"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    technician_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False
    )
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, nullable=False)

    __table_args__ = (
        CheckConstraint("start_date <= end_date", name="ck_availability_range"),
        Index("ix_availability_technician", "technician_id"),
        Index("ix_availability_range", "start_date", "end_date"),
    )


class DocumentTable(Base):
    """A licence or certificate upload.  One row per (technician, doc type)."""

    __tablename__ = "documents"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    technician_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False
    )
    doc_type: Mapped[str] = mapped_column(String(128), nullable=False)
    file_path: Mapped[str] = mapped_column(String(1024), nullable=False)
    file_name: Mapped[str] = mapped_column(String(512), nullable=False)
    status: Mapped[str] = mapped_column(String(32), nullable=False, default="uploaded")
    uploaded_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint("technician_id", "doc_type", name="uq_documents_technician_type"),
        Index("ix_documents_technician", "technician_id"),
    )


# ---------------------------------------------------------------------------
# Job requests
# ---------------------------------------------------------------------------


class JobRequestTable(Base):
    """A company's request for a technician over a date range."""

    __tablename__ = "job_requests"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    company_id: Mapped[str] = mapped_column(String(64), ForeignKey("profiles.id"), nullable=False)
    technician_id: Mapped[str] = mapped_column(String(64), ForeignKey("profiles.id"), nullable=False)
    final_client_name: Mapped[str] = mapped_column(String(256), nullable=False)
    work_location: Mapped[str] = mapped_column(String(256), nullable=False)
    country_code: Mapped[str] = mapped_column(String(8), nullable=False, default="ES")
    contract_type: Mapped[str] = mapped_column(String(32), nullable=False, default="short-term")
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(String(32), nullable=False, default="pending")
    requires_right_to_work_uk: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    rated: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False
    )

    __table_args__ = (
        CheckConstraint(
            "status IN ('pending', 'accepted', 'rejected', 'cancelled')",
            name="ck_job_requests_status",
        ),
        Index("ix_job_requests_company", "company_id", "created_at"),
        Index("ix_job_requests_technician", "technician_id", "created_at"),
    )


class JobAcceptanceWorkflowTable(Base):
    """Work arrangement captured when a technician accepts a request."""

    __tablename__ = "job_acceptance_workflow"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    job_request_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("job_requests.id", ondelete="CASCADE"), nullable=False
    )
    technician_user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    company_user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    work_mode: Mapped[str] = mapped_column(String(32), nullable=False)
    umbrella_provider_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    payout_bank_account: Mapped[str | None] = mapped_column(String(64), nullable=True)
    uk_eligibility_mode: Mapped[str] = mapped_column(String(32), nullable=False, default="not_required")
    uk_eligibility_acknowledged: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False
    )

    __table_args__ = (UniqueConstraint("job_request_id", name="uq_acceptance_job_request"),)


class JobRatingTable(Base):
    """A company's rating of a technician for one finished job."""

    __tablename__ = "job_ratings"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    job_request_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("job_requests.id", ondelete="CASCADE"), nullable=False
    )
    company_user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    technician_user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    overall: Mapped[int] = mapped_column(Integer, nullable=False)
    reliability: Mapped[int | None] = mapped_column(Integer, nullable=True)
    skills_match: Mapped[int | None] = mapped_column(Integer, nullable=True)
    communication: Mapped[int | None] = mapped_column(Integer, nullable=True)
    safety_compliance: Mapped[int | None] = mapped_column(Integer, nullable=True)
    private_comment: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False
    )

    __table_args__ = (
        UniqueConstraint(
            "job_request_id",
            "company_user_id",
            "technician_user_id",
            name="uq_job_ratings_request_rater_rated",
        ),
        CheckConstraint("overall BETWEEN 1 AND 5", name="ck_job_ratings_overall"),
        Index("ix_job_ratings_technician", "technician_user_id"),
    )


# ---------------------------------------------------------------------------
# Premium grants
# ---------------------------------------------------------------------------


class PremiumGrantTable(Base):
    """A time-boxed premium entitlement granted outside paid billing."""

    __tablename__ = "premium_grants"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    technician_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False
    )
    grant_type: Mapped[str] = mapped_column(String(64), nullable=False)
    reason: Mapped[str] = mapped_column(String(128), nullable=False)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    conditions: Mapped[dict[str, Any]] = mapped_column(_JsonType, default=dict, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, nullable=False)

    __table_args__ = (UniqueConstraint("technician_id", "grant_type", name="uq_premium_grants_technician_type"),)


# ---------------------------------------------------------------------------
# Billing
# ---------------------------------------------------------------------------


class BillingCustomerTable(Base):
    """Mapping between a user and their billing-processor customer."""

    __tablename__ = "billing_customers"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    email: Mapped[str | None] = mapped_column(String(320), nullable=True)
    paddle_customer_id: Mapped[str | None] = mapped_column(String(128), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False
    )

    __table_args__ = (Index("ix_billing_customers_paddle_customer", "paddle_customer_id"),)


class SubscriptionTable(Base):
    """Local mirror of a processor subscription, keyed by its external id."""

    __tablename__ = "subscriptions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    role: Mapped[str] = mapped_column(String(32), nullable=False)
    plan_id: Mapped[str] = mapped_column(String(64), nullable=False)
    paddle_subscription_id: Mapped[str] = mapped_column(String(128), nullable=False, unique=True)
    paddle_price_id: Mapped[str | None] = mapped_column(String(128), nullable=True)
    status: Mapped[str] = mapped_column(String(32), nullable=False, default="pending")
    current_period_start: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    current_period_end: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    cancel_at_period_end: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    canceled_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False
    )

    __table_args__ = (Index("ix_subscriptions_user", "user_id", "created_at"),)


class BillingEventTable(Base):
    """Append-only log of inbound processor events, deduplicated by event id."""

    __tablename__ = "billing_events"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    paddle_event_id: Mapped[str] = mapped_column(String(128), nullable=False, unique=True)
    event_type: Mapped[str] = mapped_column(String(64), nullable=False)
    paddle_subscription_id: Mapped[str | None] = mapped_column(String(128), nullable=True)
    raw: Mapped[dict[str, Any]] = mapped_column(_JsonType, nullable=False)
    processed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    processing_error: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, nullable=False)
    processed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (Index("ix_billing_events_subscription", "paddle_subscription_id"),)
