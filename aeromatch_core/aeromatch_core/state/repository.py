"""Repository classes providing CRUD access to the AeroMatch datastore.

Each repository takes an ``AsyncSession`` at construction time and operates
within the caller's transaction boundary.  All writes call ``session.flush()``
so that generated defaults are populated; the caller is responsible for calling
``session.commit()`` (or relying on the ``get_session`` context manager).

Row-level authorization is the datastore's job (see
:func:`aeromatch_core.state.database.set_user_context`); repositories only
issue queries already scoped to the ids they are given.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import UTC, date, datetime
from typing import Any

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from aeromatch_core.models.job_request import AcceptanceDetails, JobStatus, RatingScores
from aeromatch_core.models.profile import Role
from aeromatch_core.state.tables import (
    AvailabilitySlotTable,
    BillingCustomerTable,
    BillingEventTable,
    CompanyTable,
    DocumentTable,
    JobAcceptanceWorkflowTable,
    JobRatingTable,
    JobRequestTable,
    PremiumGrantTable,
    ProfileTable,
    SubscriptionTable,
    TechnicianTable,
    _new_id,
)

logger = logging.getLogger(__name__)

_TECHNICIAN_FIELDS = frozenset(
    {
        "license_category",
        "aircraft_types",
        "specialties",
        "languages",
        "own_tools",
        "right_to_work_uk",
        "uk_license",
        "driving_license",
        "is_available",
        "visibility_anonymous",
        "passport_expiry",
        "min_daily_rate_eur",
    }
)

_COMPANY_FIELDS = frozenset(
    {
        "company_name",
        "company_type",
        "hq_country",
        "headquarters",
        "tax_id",
        "website",
        "employee_count",
        "services",
        "aircraft_types",
        "preferred_licenses",
        "hiring_needs",
        "urgent_positions",
    }
)


def _now() -> datetime:
    return datetime.now(UTC)


async def _dialect_upsert(
    session: AsyncSession,
    table: Any,
    values: dict[str, Any],
    index_elements: list[str],
    update_columns: list[str],
) -> Any:
    """Dialect-aware upsert: PostgreSQL ``ON CONFLICT DO UPDATE`` or SQLite equivalent.

    Parameters
    ----------
    session:
        The active async session.
    table:
        The SQLAlchemy table class to upsert into.
    values:
        Column-value mapping for the row to insert.
    index_elements:
        Column names forming the unique constraint for conflict detection.
    update_columns:
        Column names to update when a conflict occurs.

    Returns
    -------
    The execution result from ``session.execute()``.
    """
    bind = session.get_bind()
    dialect_name = getattr(getattr(bind, "dialect", None), "name", "")

    stmt: Any
    if "postgresql" in str(dialect_name):
        from sqlalchemy.dialects.postgresql import insert as _pg_insert

        stmt = _pg_insert(table).values(**values)
        stmt = stmt.on_conflict_do_update(
            index_elements=index_elements,
            set_={col: getattr(stmt.excluded, col) for col in update_columns},
        )
    else:
        from sqlalchemy.dialects.sqlite import insert as _sqlite_insert

        stmt = _sqlite_insert(table).values(**values)
        stmt = stmt.on_conflict_do_update(
            index_elements=index_elements,
            set_={col: values[col] for col in update_columns},
        )
    return await session.execute(stmt)


async def _dialect_insert_nothing(
    session: AsyncSession,
    table: Any,
    values: dict[str, Any],
    index_elements: list[str],
) -> bool:
    """Insert a row with ``ON CONFLICT DO NOTHING``.

    Returns
    -------
    bool
        ``True`` if a row was inserted, ``False`` if the conflict target
        already held a row.
    """
    bind = session.get_bind()
    dialect_name = getattr(getattr(bind, "dialect", None), "name", "")

    stmt: Any
    if "postgresql" in str(dialect_name):
        from sqlalchemy.dialects.postgresql import insert as _pg_insert

        stmt = _pg_insert(table).values(**values).on_conflict_do_nothing(index_elements=index_elements)
    else:
        from sqlalchemy.dialects.sqlite import insert as _sqlite_insert

        stmt = _sqlite_insert(table).values(**values).on_conflict_do_nothing(index_elements=index_elements)
    result = await session.execute(stmt)
    return (result.rowcount or 0) > 0


# ---------------------------------------------------------------------------
# ProfileRepository
# ---------------------------------------------------------------------------


class ProfileRepository:
    """Read/write access to the ``profiles`` table."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, user_id: str) -> ProfileTable | None:
        return await self._session.get(ProfileTable, user_id)

    async def ensure(self, user_id: str, email: str) -> ProfileTable:
        """Create a bare profile on first sign-in; leave an existing one untouched."""
        await _dialect_insert_nothing(
            self._session,
            ProfileTable,
            values={"id": user_id, "email": email, "created_at": _now(), "updated_at": _now()},
            index_elements=["id"],
        )
        await self._session.flush()
        row = await self.get(user_id)
        assert row is not None
        return row

    async def set_role(self, user_id: str, email: str, role: Role, full_name: str | None = None) -> ProfileTable:
        """Create or update the caller's profile with a marketplace role."""
        now = _now()
        values: dict[str, Any] = {
            "id": user_id,
            "email": email,
            "role": role.value,
            "full_name": full_name,
            "created_at": now,
            "updated_at": now,
        }
        update_columns = ["role", "updated_at"] + (["full_name"] if full_name is not None else [])
        await _dialect_upsert(
            self._session,
            ProfileTable,
            values=values,
            index_elements=["id"],
            update_columns=update_columns,
        )
        await self._session.flush()
        row = await self._session.get(ProfileTable, user_id, populate_existing=True)
        assert row is not None
        return row

    async def complete_onboarding(self, user_id: str) -> bool:
        stmt = (
            update(ProfileTable)
            .where(ProfileTable.id == user_id)
            .values(onboarding_completed=True, updated_at=_now())
        )
        result = await self._session.execute(stmt)
        await self._session.flush()
        return (result.rowcount or 0) > 0

    async def count_by_role(self, role: Role) -> int:
        stmt = select(func.count()).select_from(ProfileTable).where(ProfileTable.role == role.value)
        result = await self._session.execute(stmt)
        return int(result.scalar_one())

    async def list_recent_by_role(self, role: Role, limit: int = 100) -> list[ProfileTable]:
        stmt = (
            select(ProfileTable)
            .where(ProfileTable.role == role.value)
            .order_by(ProfileTable.created_at.desc())
            .limit(limit)
        )
        result = await self._session.execute(stmt)
        return list(result.scalars().all())


# ---------------------------------------------------------------------------
# TechnicianRepository / CompanyRepository
# ---------------------------------------------------------------------------


class TechnicianRepository:
    """Read/write access to the ``technicians`` table."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, user_id: str) -> TechnicianTable | None:
        return await self._session.get(TechnicianTable, user_id)

    async def get_many(self, user_ids: Iterable[str]) -> list[TechnicianTable]:
        """Technician rows for *user_ids*, ordered by ``user_id``."""
        ids = list(user_ids)
        if not ids:
            return []
        stmt = select(TechnicianTable).where(TechnicianTable.user_id.in_(ids)).order_by(TechnicianTable.user_id)
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def upsert(self, user_id: str, fields: dict[str, Any]) -> TechnicianTable:
        """Create or update a technician row with the given capability fields.

        Unknown keys in *fields* are ignored.
        """
        clean = {key: value for key, value in fields.items() if key in _TECHNICIAN_FIELDS}
        now = _now()
        values: dict[str, Any] = {"user_id": user_id, "created_at": now, "updated_at": now, **clean}
        await _dialect_upsert(
            self._session,
            TechnicianTable,
            values=values,
            index_elements=["user_id"],
            update_columns=[*clean.keys(), "updated_at"],
        )
        await self._session.flush()
        row = await self._session.get(TechnicianTable, user_id, populate_existing=True)
        assert row is not None
        return row

    async def mark_available(self, user_id: str) -> None:
        await self.upsert(user_id, {"is_available": True})

    async def set_average_rating(self, user_id: str, average: float | None) -> None:
        stmt = (
            update(TechnicianTable)
            .where(TechnicianTable.user_id == user_id)
            .values(average_rating=average, updated_at=_now())
        )
        await self._session.execute(stmt)
        await self._session.flush()


class CompanyRepository:
    """Read/write access to the ``companies`` table."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, user_id: str) -> CompanyTable | None:
        return await self._session.get(CompanyTable, user_id)

    async def upsert(self, user_id: str, fields: dict[str, Any]) -> CompanyTable:
        clean = {key: value for key, value in fields.items() if key in _COMPANY_FIELDS}
        now = _now()
        values: dict[str, Any] = {"user_id": user_id, "created_at": now, "updated_at": now, **clean}
        await _dialect_upsert(
            self._session,
            CompanyTable,
            values=values,
            index_elements=["user_id"],
            update_columns=[*clean.keys(), "updated_at"],
        )
        await self._session.flush()
        row = await self._session.get(CompanyTable, user_id, populate_existing=True)
        assert row is not None
        return row

    async def get_many(self, user_ids: Iterable[str]) -> list[CompanyTable]:
        ids = list(user_ids)
        if not ids:
            return []
        stmt = select(CompanyTable).where(CompanyTable.user_id.in_(ids)).order_by(CompanyTable.user_id)
        result = await self._session.execute(stmt)
        return list(result.scalars().all())


# ---------------------------------------------------------------------------
# AvailabilityRepository
# ---------------------------------------------------------------------------


class AvailabilityRepository:
    """Read/write access to ``availability_slots``.  Deletes are hard deletes."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(self, technician_id: str, start_date: date, end_date: date) -> AvailabilitySlotTable:
        row = AvailabilitySlotTable(
            technician_id=technician_id,
            start_date=start_date,
            end_date=end_date,
            created_at=_now(),
        )
        self._session.add(row)
        await self._session.flush()
        return row

    async def list_for_technician(self, technician_id: str) -> list[AvailabilitySlotTable]:
        stmt = (
            select(AvailabilitySlotTable)
            .where(AvailabilitySlotTable.technician_id == technician_id)
            .order_by(AvailabilitySlotTable.start_date.asc())
        )
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def list_covering(self, start_date: date, end_date: date) -> list[AvailabilitySlotTable]:
        """Return every slot whose range contains ``[start_date, end_date]``."""
        stmt = select(AvailabilitySlotTable).where(
            AvailabilitySlotTable.start_date <= start_date,
            AvailabilitySlotTable.end_date >= end_date,
        )
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def counts_for_technicians(self, technician_ids: Iterable[str]) -> dict[str, int]:
        ids = list(technician_ids)
        if not ids:
            return {}
        stmt = (
            select(AvailabilitySlotTable.technician_id, func.count())
            .where(AvailabilitySlotTable.technician_id.in_(ids))
            .group_by(AvailabilitySlotTable.technician_id)
        )
        result = await self._session.execute(stmt)
        return {tech_id: int(count) for tech_id, count in result.all()}

    async def delete(self, slot_id: str, technician_id: str) -> bool:
        """Delete one slot owned by *technician_id*.  Returns ``False`` if absent."""
        stmt = delete(AvailabilitySlotTable).where(
            AvailabilitySlotTable.id == slot_id,
            AvailabilitySlotTable.technician_id == technician_id,
        )
        result = await self._session.execute(stmt)
        await self._session.flush()
        return (result.rowcount or 0) > 0

    async def delete_all(self, technician_id: str) -> int:
        stmt = delete(AvailabilitySlotTable).where(AvailabilitySlotTable.technician_id == technician_id)
        result = await self._session.execute(stmt)
        await self._session.flush()
        return result.rowcount or 0


# ---------------------------------------------------------------------------
# DocumentRepository
# ---------------------------------------------------------------------------


class DocumentRepository:
    """Read/write access to ``documents``; one row per (technician, doc type)."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def upsert(self, technician_id: str, doc_type: str, file_path: str, file_name: str) -> DocumentTable:
        """Record an upload, replacing the path of any previous upload of the same type."""
        now = _now()
        values: dict[str, Any] = {
            "id": _new_id(),
            "technician_id": technician_id,
            "doc_type": doc_type,
            "file_path": file_path,
            "file_name": file_name,
            "status": "uploaded",
            "uploaded_at": now,
        }
        await _dialect_upsert(
            self._session,
            DocumentTable,
            values=values,
            index_elements=["technician_id", "doc_type"],
            update_columns=["file_path", "file_name", "status", "uploaded_at"],
        )
        await self._session.flush()
        stmt = (
            select(DocumentTable)
            .where(DocumentTable.technician_id == technician_id, DocumentTable.doc_type == doc_type)
            .execution_options(populate_existing=True)
        )
        result = await self._session.execute(stmt)
        return result.scalar_one()

    async def list_for_technician(self, technician_id: str) -> list[DocumentTable]:
        stmt = (
            select(DocumentTable)
            .where(DocumentTable.technician_id == technician_id)
            .order_by(DocumentTable.uploaded_at.desc())
        )
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def count_for_technician(self, technician_id: str) -> int:
        stmt = select(func.count()).select_from(DocumentTable).where(DocumentTable.technician_id == technician_id)
        result = await self._session.execute(stmt)
        return int(result.scalar_one())

    async def counts_for_technicians(self, technician_ids: Iterable[str]) -> dict[str, int]:
        ids = list(technician_ids)
        if not ids:
            return {}
        stmt = (
            select(DocumentTable.technician_id, func.count())
            .where(DocumentTable.technician_id.in_(ids))
            .group_by(DocumentTable.technician_id)
        )
        result = await self._session.execute(stmt)
        return {tech_id: int(count) for tech_id, count in result.all()}


# ---------------------------------------------------------------------------
# JobRequestRepository
# ---------------------------------------------------------------------------


class JobRequestRepository:
    """Read/write access to ``job_requests``."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(
        self,
        *,
        company_id: str,
        technician_id: str,
        final_client_name: str,
        work_location: str,
        start_date: date,
        end_date: date,
        contract_type: str = "short-term",
        country_code: str = "ES",
        requires_right_to_work_uk: bool = False,
        notes: str | None = None,
    ) -> JobRequestTable:
        now = _now()
        row = JobRequestTable(
            company_id=company_id,
            technician_id=technician_id,
            final_client_name=final_client_name,
            work_location=work_location,
            start_date=start_date,
            end_date=end_date,
            contract_type=contract_type,
            country_code=country_code,
            requires_right_to_work_uk=requires_right_to_work_uk,
            notes=notes,
            status=JobStatus.PENDING.value,
            rated=False,
            created_at=now,
            updated_at=now,
        )
        self._session.add(row)
        await self._session.flush()
        return row

    async def get(self, request_id: str) -> JobRequestTable | None:
        return await self._session.get(JobRequestTable, request_id)

    async def refresh(self, request_id: str) -> JobRequestTable | None:
        return await self._session.get(JobRequestTable, request_id, populate_existing=True)

    async def list_for_user(self, user_id: str, role: Role) -> list[JobRequestTable]:
        """Requests where *user_id* is the party for their role, newest first."""
        column = JobRequestTable.technician_id if role is Role.TECHNICIAN else JobRequestTable.company_id
        stmt = select(JobRequestTable).where(column == user_id).order_by(JobRequestTable.created_at.desc())
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def transition_status(self, request_id: str, new_status: JobStatus) -> bool:
        """Move a ``pending`` request to *new_status* atomically.

        Returns ``False`` when no row matched, meaning the request was no
        longer pending by the time the update ran.
        """
        stmt = (
            update(JobRequestTable)
            .where(
                JobRequestTable.id == request_id,
                JobRequestTable.status == JobStatus.PENDING.value,
            )
            .values(status=new_status.value, updated_at=_now())
        )
        result = await self._session.execute(stmt)
        await self._session.flush()
        return (result.rowcount or 0) == 1

    async def mark_rated(self, request_id: str) -> None:
        stmt = update(JobRequestTable).where(JobRequestTable.id == request_id).values(rated=True, updated_at=_now())
        await self._session.execute(stmt)
        await self._session.flush()

    async def count(self, status: JobStatus | None = None) -> int:
        stmt = select(func.count()).select_from(JobRequestTable)
        if status is not None:
            stmt = stmt.where(JobRequestTable.status == status.value)
        result = await self._session.execute(stmt)
        return int(result.scalar_one())

    async def count_completed(self, today: date) -> int:
        """Accepted requests whose end date has passed."""
        stmt = (
            select(func.count())
            .select_from(JobRequestTable)
            .where(
                JobRequestTable.status == JobStatus.ACCEPTED.value,
                JobRequestTable.end_date < today,
            )
        )
        result = await self._session.execute(stmt)
        return int(result.scalar_one())

    async def counts_by_company(self, company_ids: Iterable[str]) -> dict[str, dict[str, int]]:
        """Per-company ``{"total": n, "accepted": m}`` request counts."""
        ids = list(company_ids)
        if not ids:
            return {}
        stmt = (
            select(JobRequestTable.company_id, JobRequestTable.status, func.count())
            .where(JobRequestTable.company_id.in_(ids))
            .group_by(JobRequestTable.company_id, JobRequestTable.status)
        )
        result = await self._session.execute(stmt)
        counts: dict[str, dict[str, int]] = {}
        for company_id, status, count in result.all():
            entry = counts.setdefault(company_id, {"total": 0, "accepted": 0})
            entry["total"] += int(count)
            if status == JobStatus.ACCEPTED.value:
                entry["accepted"] += int(count)
        return counts


class AcceptanceWorkflowRepository:
    """Read/write access to ``job_acceptance_workflow`` (one row per request)."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def upsert(
        self,
        job_request_id: str,
        technician_user_id: str,
        company_user_id: str,
        details: AcceptanceDetails,
    ) -> None:
        """Record the work arrangement; a retried accept overwrites the earlier choice."""
        now = _now()
        mode = details.uk_eligibility_mode
        values: dict[str, Any] = {
            "id": _new_id(),
            "job_request_id": job_request_id,
            "technician_user_id": technician_user_id,
            "company_user_id": company_user_id,
            "work_mode": details.work_mode.value,
            "umbrella_provider_id": details.umbrella_provider_id,
            "payout_bank_account": details.payout_bank_account,
            "uk_eligibility_mode": mode.value if mode is not None else "not_required",
            "uk_eligibility_acknowledged": details.uk_eligibility_acknowledged,
            "created_at": now,
            "updated_at": now,
        }
        await _dialect_upsert(
            self._session,
            JobAcceptanceWorkflowTable,
            values=values,
            index_elements=["job_request_id"],
            update_columns=[
                "work_mode",
                "umbrella_provider_id",
                "payout_bank_account",
                "uk_eligibility_mode",
                "uk_eligibility_acknowledged",
                "updated_at",
            ],
        )
        await self._session.flush()

    async def get(self, job_request_id: str) -> JobAcceptanceWorkflowTable | None:
        stmt = (
            select(JobAcceptanceWorkflowTable)
            .where(JobAcceptanceWorkflowTable.job_request_id == job_request_id)
            .execution_options(populate_existing=True)
        )
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()


# ---------------------------------------------------------------------------
# RatingRepository
# ---------------------------------------------------------------------------


class RatingRepository:
    """Read/write access to ``job_ratings``."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def upsert(
        self,
        job_request_id: str,
        company_user_id: str,
        technician_user_id: str,
        scores: RatingScores,
    ) -> JobRatingTable:
        """Store a rating; a second submission for the same tuple overwrites the first."""
        now = _now()
        score_values = scores.model_dump()
        values: dict[str, Any] = {
            "id": _new_id(),
            "job_request_id": job_request_id,
            "company_user_id": company_user_id,
            "technician_user_id": technician_user_id,
            **score_values,
            "created_at": now,
            "updated_at": now,
        }
        await _dialect_upsert(
            self._session,
            JobRatingTable,
            values=values,
            index_elements=["job_request_id", "company_user_id", "technician_user_id"],
            update_columns=[*score_values.keys(), "updated_at"],
        )
        await self._session.flush()
        stmt = (
            select(JobRatingTable)
            .where(
                JobRatingTable.job_request_id == job_request_id,
                JobRatingTable.company_user_id == company_user_id,
                JobRatingTable.technician_user_id == technician_user_id,
            )
            .execution_options(populate_existing=True)
        )
        result = await self._session.execute(stmt)
        return result.scalar_one()

    async def average_for_technician(self, technician_user_id: str) -> float | None:
        """Mean overall score rounded to one decimal, or ``None`` without ratings."""
        stmt = select(func.avg(JobRatingTable.overall)).where(JobRatingTable.technician_user_id == technician_user_id)
        result = await self._session.execute(stmt)
        average = result.scalar_one_or_none()
        return round(float(average), 1) if average is not None else None

    async def list_for_user(self, user_id: str) -> list[JobRatingTable]:
        stmt = (
            select(JobRatingTable)
            .where((JobRatingTable.company_user_id == user_id) | (JobRatingTable.technician_user_id == user_id))
            .order_by(JobRatingTable.created_at.desc())
        )
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def count(self) -> int:
        result = await self._session.execute(select(func.count()).select_from(JobRatingTable))
        return int(result.scalar_one())


# ---------------------------------------------------------------------------
# PremiumGrantRepository
# ---------------------------------------------------------------------------


class PremiumGrantRepository:
    """Read/write access to ``premium_grants``."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, technician_id: str, grant_type: str) -> PremiumGrantTable | None:
        stmt = select(PremiumGrantTable).where(
            PremiumGrantTable.technician_id == technician_id,
            PremiumGrantTable.grant_type == grant_type,
        )
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def create_once(
        self,
        technician_id: str,
        grant_type: str,
        reason: str,
        expires_at: datetime,
        conditions: dict[str, Any],
    ) -> bool:
        """Insert a grant unless one of the same type exists.

        Returns
        -------
        bool
            ``True`` if this call created the grant, ``False`` if a
            concurrent or earlier call already had.
        """
        created = await _dialect_insert_nothing(
            self._session,
            PremiumGrantTable,
            values={
                "id": _new_id(),
                "technician_id": technician_id,
                "grant_type": grant_type,
                "reason": reason,
                "expires_at": expires_at,
                "conditions": conditions,
                "created_at": _now(),
            },
            index_elements=["technician_id", "grant_type"],
        )
        await self._session.flush()
        return created

    async def count(self, grant_type: str) -> int:
        stmt = select(func.count()).select_from(PremiumGrantTable).where(PremiumGrantTable.grant_type == grant_type)
        result = await self._session.execute(stmt)
        return int(result.scalar_one())

    async def expiries_for(self, technician_ids: Iterable[str]) -> dict[str, datetime]:
        """Latest grant expiry per technician, for any grant type."""
        ids = list(technician_ids)
        if not ids:
            return {}
        stmt = (
            select(PremiumGrantTable.technician_id, func.max(PremiumGrantTable.expires_at))
            .where(PremiumGrantTable.technician_id.in_(ids))
            .group_by(PremiumGrantTable.technician_id)
        )
        result = await self._session.execute(stmt)
        return {tech_id: expires_at for tech_id, expires_at in result.all()}


# ---------------------------------------------------------------------------
# Billing repositories
# ---------------------------------------------------------------------------


class BillingCustomerRepository:
    """Maps users to billing-processor customers."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, user_id: str) -> BillingCustomerTable | None:
        stmt = select(BillingCustomerTable).where(BillingCustomerTable.user_id == user_id)
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def upsert(self, user_id: str, email: str | None, paddle_customer_id: str | None = None) -> None:
        """Create or refresh the customer row.

        A ``None`` *paddle_customer_id* never clears a previously recorded id.
        """
        now = _now()
        values: dict[str, Any] = {
            "user_id": user_id,
            "email": email,
            "paddle_customer_id": paddle_customer_id,
            "created_at": now,
            "updated_at": now,
        }
        update_columns = ["email", "updated_at"]
        if paddle_customer_id is not None:
            update_columns.append("paddle_customer_id")
        await _dialect_upsert(
            self._session,
            BillingCustomerTable,
            values=values,
            index_elements=["user_id"],
            update_columns=update_columns,
        )
        await self._session.flush()


class SubscriptionRepository:
    """Local mirror of processor subscriptions keyed by the external id."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, paddle_subscription_id: str) -> SubscriptionTable | None:
        stmt = (
            select(SubscriptionTable)
            .where(SubscriptionTable.paddle_subscription_id == paddle_subscription_id)
            .execution_options(populate_existing=True)
        )
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_latest_for_user(self, user_id: str) -> SubscriptionTable | None:
        stmt = (
            select(SubscriptionTable)
            .where(SubscriptionTable.user_id == user_id)
            .order_by(SubscriptionTable.created_at.desc())
            .limit(1)
        )
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def upsert(
        self,
        *,
        paddle_subscription_id: str,
        user_id: str,
        role: str,
        plan_id: str,
        status: str,
        paddle_price_id: str | None = None,
        current_period_start: datetime | None = None,
        current_period_end: datetime | None = None,
    ) -> None:
        now = _now()
        values: dict[str, Any] = {
            "paddle_subscription_id": paddle_subscription_id,
            "user_id": user_id,
            "role": role,
            "plan_id": plan_id,
            "status": status,
            "paddle_price_id": paddle_price_id,
            "current_period_start": current_period_start,
            "current_period_end": current_period_end,
            "cancel_at_period_end": False,
            "created_at": now,
            "updated_at": now,
        }
        await _dialect_upsert(
            self._session,
            SubscriptionTable,
            values=values,
            index_elements=["paddle_subscription_id"],
            update_columns=[
                "user_id",
                "role",
                "plan_id",
                "status",
                "paddle_price_id",
                "current_period_start",
                "current_period_end",
                "updated_at",
            ],
        )
        await self._session.flush()

    async def update_fields(self, paddle_subscription_id: str, **fields: Any) -> bool:
        """Patch an existing subscription.  Returns ``False`` if it is unknown."""
        if not fields:
            return False
        stmt = (
            update(SubscriptionTable)
            .where(SubscriptionTable.paddle_subscription_id == paddle_subscription_id)
            .values(**fields, updated_at=_now())
        )
        result = await self._session.execute(stmt)
        await self._session.flush()
        return (result.rowcount or 0) > 0


class BillingEventRepository:
    """Append-only log of inbound processor events."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, paddle_event_id: str) -> BillingEventTable | None:
        stmt = (
            select(BillingEventTable)
            .where(BillingEventTable.paddle_event_id == paddle_event_id)
            .execution_options(populate_existing=True)
        )
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def record(
        self,
        paddle_event_id: str,
        event_type: str,
        paddle_subscription_id: str | None,
        raw: dict[str, Any],
    ) -> bool:
        """Store a newly received event.

        Returns
        -------
        bool
            ``False`` if an event with the same id is already stored, which
            makes concurrent deliveries of one event collapse to one row.
        """
        created = await _dialect_insert_nothing(
            self._session,
            BillingEventTable,
            values={
                "paddle_event_id": paddle_event_id,
                "event_type": event_type,
                "paddle_subscription_id": paddle_subscription_id,
                "raw": raw,
                "processed": False,
                "created_at": _now(),
            },
            index_elements=["paddle_event_id"],
        )
        await self._session.flush()
        return created

    async def mark_processed(self, paddle_event_id: str, error: str | None = None) -> None:
        stmt = (
            update(BillingEventTable)
            .where(BillingEventTable.paddle_event_id == paddle_event_id)
            .values(processed=True, processing_error=error, processed_at=_now())
        )
        await self._session.execute(stmt)
        await self._session.flush()

    async def count(self) -> int:
        result = await self._session.execute(select(func.count()).select_from(BillingEventTable))
        return int(result.scalar_one())
