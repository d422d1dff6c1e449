"""Initial schema for the AeroMatch datastore.

Creates profiles and the two role-specific tables (technicians, companies),
availability slots, documents, job requests with their acceptance workflow
and ratings, premium grants, and the billing tables (customers,
subscriptions, inbound event log).

Revision ID: 001
Revises: None
Create Date: 2025-12-01 00:00:00.000000+00:00

"""

from __future__ import annotations

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _created_at() -> sa.Column:
    return sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()"))


def _updated_at() -> sa.Column:
    return sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()"))


def _text_array(name: str) -> sa.Column:
    return sa.Column(name, postgresql.JSONB(), nullable=False, server_default=sa.text("'[]'::jsonb"))


def upgrade() -> None:
    # ------------------------------------------------------------------
    # profiles
    # ------------------------------------------------------------------
    op.create_table(
        "profiles",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("email", sa.String(320), nullable=False),
        sa.Column("full_name", sa.String(256), nullable=True),
        sa.Column("role", sa.String(32), nullable=True),
        sa.Column("onboarding_completed", sa.Boolean(), nullable=False, server_default=sa.false()),
        _created_at(),
        _updated_at(),
        sa.CheckConstraint("role IS NULL OR role IN ('technician', 'company')", name="ck_profiles_role"),
    )
    op.create_index("ix_profiles_role_created", "profiles", ["role", "created_at"])

    # ------------------------------------------------------------------
    # technicians
    # ------------------------------------------------------------------
    op.create_table(
        "technicians",
        sa.Column(
            "user_id",
            sa.String(64),
            sa.ForeignKey("profiles.id", ondelete="CASCADE"),
            primary_key=True,
        ),
        _text_array("license_category"),
        _text_array("aircraft_types"),
        _text_array("specialties"),
        _text_array("languages"),
        sa.Column("own_tools", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("right_to_work_uk", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("uk_license", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("driving_license", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_available", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("visibility_anonymous", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("passport_expiry", sa.Date(), nullable=True),
        sa.Column("min_daily_rate_eur", sa.Float(), nullable=True),
        sa.Column("average_rating", sa.Float(), nullable=True),
        _created_at(),
        _updated_at(),
    )
    op.create_index("ix_technicians_available", "technicians", ["is_available"])

    # ------------------------------------------------------------------
    # companies
    # ------------------------------------------------------------------
    op.create_table(
        "companies",
        sa.Column(
            "user_id",
            sa.String(64),
            sa.ForeignKey("profiles.id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column("company_name", sa.String(256), nullable=True),
        sa.Column("company_type", sa.String(64), nullable=True),
        sa.Column("hq_country", sa.String(8), nullable=True),
        sa.Column("headquarters", sa.String(256), nullable=True),
        sa.Column("tax_id", sa.String(64), nullable=True),
        sa.Column("website", sa.String(512), nullable=True),
        sa.Column("employee_count", sa.String(32), nullable=True),
        _text_array("services"),
        _text_array("aircraft_types"),
        _text_array("preferred_licenses"),
        sa.Column("hiring_needs", sa.Text(), nullable=True),
        sa.Column("urgent_positions", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_verified", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_subscribed", sa.Boolean(), nullable=False, server_default=sa.false()),
        _created_at(),
        _updated_at(),
    )

    # ------------------------------------------------------------------
    # availability_slots
    # ------------------------------------------------------------------
    op.create_table(
        "availability_slots",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "technician_id",
            sa.String(64),
            sa.ForeignKey("profiles.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=False),
        _created_at(),
        sa.CheckConstraint("start_date <= end_date", name="ck_availability_range"),
    )
    op.create_index("ix_availability_technician", "availability_slots", ["technician_id"])
    op.create_index("ix_availability_range", "availability_slots", ["start_date", "end_date"])

    # ------------------------------------------------------------------
    # documents
    # ------------------------------------------------------------------
    op.create_table(
        "documents",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "technician_id",
            sa.String(64),
            sa.ForeignKey("profiles.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("doc_type", sa.String(128), nullable=False),
        sa.Column("file_path", sa.String(1024), nullable=False),
        sa.Column("file_name", sa.String(512), nullable=False),
        sa.Column("status", sa.String(32), nullable=False, server_default="uploaded"),
        sa.Column("uploaded_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.UniqueConstraint("technician_id", "doc_type", name="uq_documents_technician_type"),
    )
    op.create_index("ix_documents_technician", "documents", ["technician_id"])

    # ------------------------------------------------------------------
    # job_requests
    # ------------------------------------------------------------------
    op.create_table(
        "job_requests",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("company_id", sa.String(64), sa.ForeignKey("profiles.id"), nullable=False),
        sa.Column("technician_id", sa.String(64), sa.ForeignKey("profiles.id"), nullable=False),
        sa.Column("final_client_name", sa.String(256), nullable=False),
        sa.Column("work_location", sa.String(256), nullable=False),
        sa.Column("country_code", sa.String(8), nullable=False, server_default="ES"),
        sa.Column("contract_type", sa.String(32), nullable=False, server_default="short-term"),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("status", sa.String(32), nullable=False, server_default="pending"),
        sa.Column("requires_right_to_work_uk", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("rated", sa.Boolean(), nullable=False, server_default=sa.false()),
        _created_at(),
        _updated_at(),
        sa.CheckConstraint(
            "status IN ('pending', 'accepted', 'rejected', 'cancelled')",
            name="ck_job_requests_status",
        ),
    )
    op.create_index("ix_job_requests_company", "job_requests", ["company_id", "created_at"])
    op.create_index("ix_job_requests_technician", "job_requests", ["technician_id", "created_at"])

    # ------------------------------------------------------------------
    # job_acceptance_workflow
    # ------------------------------------------------------------------
    op.create_table(
        "job_acceptance_workflow",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "job_request_id",
            sa.String(36),
            sa.ForeignKey("job_requests.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("technician_user_id", sa.String(64), nullable=False),
        sa.Column("company_user_id", sa.String(64), nullable=False),
        sa.Column("work_mode", sa.String(32), nullable=False),
        sa.Column("umbrella_provider_id", sa.String(64), nullable=True),
        sa.Column("payout_bank_account", sa.String(64), nullable=True),
        sa.Column("uk_eligibility_mode", sa.String(32), nullable=False, server_default="not_required"),
        sa.Column("uk_eligibility_acknowledged", sa.Boolean(), nullable=False, server_default=sa.false()),
        _created_at(),
        _updated_at(),
        sa.UniqueConstraint("job_request_id", name="uq_acceptance_job_request"),
    )

    # ------------------------------------------------------------------
    # job_ratings
    # ------------------------------------------------------------------
    op.create_table(
        "job_ratings",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "job_request_id",
            sa.String(36),
            sa.ForeignKey("job_requests.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("company_user_id", sa.String(64), nullable=False),
        sa.Column("technician_user_id", sa.String(64), nullable=False),
        sa.Column("overall", sa.Integer(), nullable=False),
        sa.Column("reliability", sa.Integer(), nullable=True),
        sa.Column("skills_match", sa.Integer(), nullable=True),
        sa.Column("communication", sa.Integer(), nullable=True),
        sa.Column("safety_compliance", sa.Integer(), nullable=True),
        sa.Column("private_comment", sa.Text(), nullable=True),
        _created_at(),
        _updated_at(),
        sa.UniqueConstraint(
            "job_request_id",
            "company_user_id",
            "technician_user_id",
            name="uq_job_ratings_request_rater_rated",
        ),
        sa.CheckConstraint("overall BETWEEN 1 AND 5", name="ck_job_ratings_overall"),
    )
    op.create_index("ix_job_ratings_technician", "job_ratings", ["technician_user_id"])

    # ------------------------------------------------------------------
    # premium_grants
    # ------------------------------------------------------------------
    op.create_table(
        "premium_grants",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "technician_id",
            sa.String(64),
            sa.ForeignKey("profiles.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("grant_type", sa.String(64), nullable=False),
        sa.Column("reason", sa.String(128), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("conditions", postgresql.JSONB(), nullable=False, server_default=sa.text("'{}'::jsonb")),
        _created_at(),
        sa.UniqueConstraint("technician_id", "grant_type", name="uq_premium_grants_technician_type"),
    )

    # ------------------------------------------------------------------
    # billing_customers
    # ------------------------------------------------------------------
    op.create_table(
        "billing_customers",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.String(64), nullable=False, unique=True),
        sa.Column("email", sa.String(320), nullable=True),
        sa.Column("paddle_customer_id", sa.String(128), nullable=True),
        _created_at(),
        _updated_at(),
    )
    op.create_index("ix_billing_customers_paddle_customer", "billing_customers", ["paddle_customer_id"])

    # ------------------------------------------------------------------
    # subscriptions
    # ------------------------------------------------------------------
    op.create_table(
        "subscriptions",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("role", sa.String(32), nullable=False),
        sa.Column("plan_id", sa.String(64), nullable=False),
        sa.Column("paddle_subscription_id", sa.String(128), nullable=False, unique=True),
        sa.Column("paddle_price_id", sa.String(128), nullable=True),
        sa.Column("status", sa.String(32), nullable=False, server_default="pending"),
        sa.Column("current_period_start", sa.DateTime(timezone=True), nullable=True),
        sa.Column("current_period_end", sa.DateTime(timezone=True), nullable=True),
        sa.Column("cancel_at_period_end", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("canceled_at", sa.DateTime(timezone=True), nullable=True),
        _created_at(),
        _updated_at(),
    )
    op.create_index("ix_subscriptions_user", "subscriptions", ["user_id", "created_at"])

    # ------------------------------------------------------------------
    # billing_events
    # ------------------------------------------------------------------
    op.create_table(
        "billing_events",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("paddle_event_id", sa.String(128), nullable=False, unique=True),
        sa.Column("event_type", sa.String(64), nullable=False),
        sa.Column("paddle_subscription_id", sa.String(128), nullable=True),
        sa.Column("raw", postgresql.JSONB(), nullable=False),
        sa.Column("processed", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("processing_error", sa.Text(), nullable=True),
        _created_at(),
        sa.Column("processed_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_billing_events_subscription", "billing_events", ["paddle_subscription_id"])


def downgrade() -> None:
    op.drop_table("billing_events")
    op.drop_table("subscriptions")
    op.drop_table("billing_customers")
    op.drop_table("premium_grants")
    op.drop_table("job_ratings")
    op.drop_table("job_acceptance_workflow")
    op.drop_table("job_requests")
    op.drop_table("documents")
    op.drop_table("availability_slots")
    op.drop_table("companies")
    op.drop_table("technicians")
    op.drop_table("profiles")
