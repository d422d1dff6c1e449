"""Repository tests against an in-memory SQLite database via aiosqlite.

Covers the conditional writes the marketplace relies on:
- status transitions only succeed from ``pending``
- ratings and acceptance records upsert on their natural keys
- founding grants and billing events are created at most once
"""

from __future__ import annotations

from datetime import UTC, date, datetime, timedelta

import pytest
from aeromatch_core.models.job_request import AcceptanceDetails, JobStatus, RatingScores, UKEligibilityMode, WorkMode
from aeromatch_core.models.profile import Role
from aeromatch_core.state.repository import (
    AcceptanceWorkflowRepository,
    AvailabilityRepository,
    BillingCustomerRepository,
    BillingEventRepository,
    CompanyRepository,
    DocumentRepository,
    JobRequestRepository,
    PremiumGrantRepository,
    ProfileRepository,
    RatingRepository,
    SubscriptionRepository,
    TechnicianRepository,
)
from sqlalchemy.ext.asyncio import AsyncSession

COMPANY = "company-1"
TECH = "tech-1"


async def _seed_parties(session: AsyncSession) -> None:
    profiles = ProfileRepository(session)
    await profiles.set_role(COMPANY, "ops@mro.example", Role.COMPANY, "MRO Ops")
    await profiles.set_role(TECH, "ana@example.com", Role.TECHNICIAN, "Ana")


async def _create_request(session: AsyncSession, end_date: date = date(2025, 7, 10)) -> str:
    row = await JobRequestRepository(session).create(
        company_id=COMPANY,
        technician_id=TECH,
        final_client_name="Iberia",
        work_location="Madrid",
        start_date=date(2025, 7, 1),
        end_date=end_date,
    )
    return row.id


# ---------------------------------------------------------------------------
# Profiles and technicians
# ---------------------------------------------------------------------------


class TestProfiles:
    @pytest.mark.asyncio
    async def test_set_role_then_update_keeps_name_when_omitted(self, async_session: AsyncSession):
        repo = ProfileRepository(async_session)
        await repo.set_role("u1", "u1@example.com", Role.TECHNICIAN, "First Name")
        row = await repo.set_role("u1", "u1@example.com", Role.TECHNICIAN)
        assert row.role == "technician"
        assert row.full_name == "First Name"

    @pytest.mark.asyncio
    async def test_ensure_is_idempotent(self, async_session: AsyncSession):
        repo = ProfileRepository(async_session)
        first = await repo.ensure("u1", "u1@example.com")
        second = await repo.ensure("u1", "other@example.com")
        assert first.id == second.id
        assert second.email == "u1@example.com"

    @pytest.mark.asyncio
    async def test_count_by_role(self, async_session: AsyncSession):
        await _seed_parties(async_session)
        repo = ProfileRepository(async_session)
        assert await repo.count_by_role(Role.TECHNICIAN) == 1
        assert await repo.count_by_role(Role.COMPANY) == 1

    @pytest.mark.asyncio
    async def test_technician_upsert_ignores_unknown_fields(self, async_session: AsyncSession):
        await _seed_parties(async_session)
        repo = TechnicianRepository(async_session)
        row = await repo.upsert(TECH, {"license_category": ["B1"], "average_rating": 5.0})
        assert row.license_category == ["B1"]
        assert row.average_rating is None

        row = await repo.upsert(TECH, {"aircraft_types": ["A320"]})
        assert row.license_category == ["B1"]
        assert row.aircraft_types == ["A320"]

    @pytest.mark.asyncio
    async def test_get_many_ordered_by_user_id(self, async_session: AsyncSession):
        profiles = ProfileRepository(async_session)
        repo = TechnicianRepository(async_session)
        for user_id in ("tech-c", "tech-a", "tech-b"):
            await profiles.set_role(user_id, f"{user_id}@example.com", Role.TECHNICIAN)
            await repo.upsert(user_id, {"specialties": ["structures"]})

        rows = await repo.get_many(["tech-b", "tech-c", "tech-a", "tech-unknown"])

        assert [row.user_id for row in rows] == ["tech-a", "tech-b", "tech-c"]
        assert await repo.get_many([]) == []

    @pytest.mark.asyncio
    async def test_company_get_many_ordered_by_user_id(self, async_session: AsyncSession):
        profiles = ProfileRepository(async_session)
        repo = CompanyRepository(async_session)
        for user_id in ("co-z", "co-m"):
            await profiles.set_role(user_id, f"{user_id}@example.com", Role.COMPANY)
            await repo.upsert(user_id, {"company_name": user_id.upper()})

        rows = await repo.get_many({"co-z", "co-m"})

        assert [row.user_id for row in rows] == ["co-m", "co-z"]


# ---------------------------------------------------------------------------
# Availability and documents
# ---------------------------------------------------------------------------


class TestAvailability:
    @pytest.mark.asyncio
    async def test_list_covering_requires_full_coverage(self, async_session: AsyncSession):
        await _seed_parties(async_session)
        repo = AvailabilityRepository(async_session)
        covering = await repo.create(TECH, date(2025, 6, 1), date(2025, 8, 1))
        await repo.create(TECH, date(2025, 7, 5), date(2025, 8, 1))

        rows = await repo.list_covering(date(2025, 7, 1), date(2025, 7, 10))
        assert [row.id for row in rows] == [covering.id]

    @pytest.mark.asyncio
    async def test_delete_is_scoped_to_owner(self, async_session: AsyncSession):
        await _seed_parties(async_session)
        repo = AvailabilityRepository(async_session)
        slot = await repo.create(TECH, date(2025, 6, 1), date(2025, 6, 30))

        assert await repo.delete(slot.id, "someone-else") is False
        assert await repo.delete(slot.id, TECH) is True
        assert await repo.list_for_technician(TECH) == []

    @pytest.mark.asyncio
    async def test_delete_all(self, async_session: AsyncSession):
        await _seed_parties(async_session)
        repo = AvailabilityRepository(async_session)
        await repo.create(TECH, date(2025, 6, 1), date(2025, 6, 30))
        await repo.create(TECH, date(2025, 7, 1), date(2025, 7, 30))
        assert await repo.delete_all(TECH) == 2
        assert await repo.counts_for_technicians([TECH]) == {}

    @pytest.mark.asyncio
    async def test_document_upsert_replaces_same_type(self, async_session: AsyncSession):
        await _seed_parties(async_session)
        repo = DocumentRepository(async_session)
        await repo.upsert(TECH, "easa_license", "tech-1/easa_license/1-a.pdf", "a.pdf")
        row = await repo.upsert(TECH, "easa_license", "tech-1/easa_license/2-b.pdf", "b.pdf")
        assert row.file_name == "b.pdf"
        assert await repo.count_for_technician(TECH) == 1


# ---------------------------------------------------------------------------
# Job requests
# ---------------------------------------------------------------------------


class TestJobRequests:
    @pytest.mark.asyncio
    async def test_new_request_is_pending(self, async_session: AsyncSession):
        await _seed_parties(async_session)
        request_id = await _create_request(async_session)
        row = await JobRequestRepository(async_session).get(request_id)
        assert row is not None
        assert row.status == "pending"
        assert row.rated is False

    @pytest.mark.asyncio
    async def test_transition_only_from_pending(self, async_session: AsyncSession):
        await _seed_parties(async_session)
        repo = JobRequestRepository(async_session)
        request_id = await _create_request(async_session)

        assert await repo.transition_status(request_id, JobStatus.ACCEPTED) is True
        assert await repo.transition_status(request_id, JobStatus.CANCELLED) is False

        row = await repo.refresh(request_id)
        assert row is not None
        assert row.status == "accepted"

    @pytest.mark.asyncio
    async def test_list_for_user_by_role(self, async_session: AsyncSession):
        await _seed_parties(async_session)
        request_id = await _create_request(async_session)
        repo = JobRequestRepository(async_session)

        assert [r.id for r in await repo.list_for_user(TECH, Role.TECHNICIAN)] == [request_id]
        assert [r.id for r in await repo.list_for_user(COMPANY, Role.COMPANY)] == [request_id]
        assert await repo.list_for_user(TECH, Role.COMPANY) == []

    @pytest.mark.asyncio
    async def test_counts(self, async_session: AsyncSession):
        await _seed_parties(async_session)
        repo = JobRequestRepository(async_session)
        finished = await _create_request(async_session, end_date=date(2025, 7, 10))
        ongoing = await _create_request(async_session, end_date=date(2025, 9, 1))
        await _create_request(async_session)
        await repo.transition_status(finished, JobStatus.ACCEPTED)
        await repo.transition_status(ongoing, JobStatus.ACCEPTED)

        assert await repo.count() == 3
        assert await repo.count(JobStatus.ACCEPTED) == 2
        assert await repo.count_completed(date(2025, 8, 1)) == 1
        assert await repo.counts_by_company([COMPANY]) == {COMPANY: {"total": 3, "accepted": 2}}

    @pytest.mark.asyncio
    async def test_acceptance_workflow_upserts_per_request(self, async_session: AsyncSession):
        await _seed_parties(async_session)
        request_id = await _create_request(async_session)
        repo = AcceptanceWorkflowRepository(async_session)

        await repo.upsert(request_id, TECH, COMPANY, AcceptanceDetails())
        await repo.upsert(
            request_id,
            TECH,
            COMPANY,
            AcceptanceDetails(
                work_mode=WorkMode.UMBRELLA,
                umbrella_provider_id="deel",
                uk_eligibility_mode=UKEligibilityMode.UMBRELLA,
            ),
        )
        row = await repo.get(request_id)
        assert row is not None
        assert row.work_mode == "umbrella"
        assert row.umbrella_provider_id == "deel"
        assert row.uk_eligibility_mode == "umbrella"


# ---------------------------------------------------------------------------
# Ratings and grants
# ---------------------------------------------------------------------------


class TestRatings:
    @pytest.mark.asyncio
    async def test_second_rating_overwrites_first(self, async_session: AsyncSession):
        await _seed_parties(async_session)
        request_id = await _create_request(async_session)
        repo = RatingRepository(async_session)

        await repo.upsert(request_id, COMPANY, TECH, RatingScores(overall=2))
        row = await repo.upsert(request_id, COMPANY, TECH, RatingScores(overall=5, reliability=4))

        assert row.overall == 5
        assert row.reliability == 4
        assert await repo.count() == 1

    @pytest.mark.asyncio
    async def test_average_rounded_to_one_decimal(self, async_session: AsyncSession):
        await _seed_parties(async_session)
        repo = RatingRepository(async_session)
        for overall in (5, 4, 4):
            request_id = await _create_request(async_session)
            await repo.upsert(request_id, COMPANY, TECH, RatingScores(overall=overall))

        assert await repo.average_for_technician(TECH) == 4.3
        assert await repo.average_for_technician("nobody") is None


class TestPremiumGrants:
    @pytest.mark.asyncio
    async def test_create_once(self, async_session: AsyncSession):
        await _seed_parties(async_session)
        repo = PremiumGrantRepository(async_session)
        expires = datetime.now(UTC) + timedelta(days=365)

        assert await repo.create_once(TECH, "founding_profile_complete", "r", expires, {"documents": True})
        assert not await repo.create_once(TECH, "founding_profile_complete", "r", expires, {})
        assert await repo.count("founding_profile_complete") == 1

        grant = await repo.get(TECH, "founding_profile_complete")
        assert grant is not None
        assert grant.conditions == {"documents": True}
        assert set(await repo.expiries_for([TECH, "other"])) == {TECH}


# ---------------------------------------------------------------------------
# Billing
# ---------------------------------------------------------------------------


class TestBilling:
    @pytest.mark.asyncio
    async def test_event_recorded_once(self, async_session: AsyncSession):
        repo = BillingEventRepository(async_session)
        assert await repo.record("evt_1", "subscription.created", "sub_1", {"a": 1}) is True
        assert await repo.record("evt_1", "subscription.created", "sub_1", {"a": 1}) is False

        await repo.mark_processed("evt_1", error="boom")
        row = await repo.get("evt_1")
        assert row is not None
        assert row.processed is True
        assert row.processing_error == "boom"
        assert await repo.count() == 1

    @pytest.mark.asyncio
    async def test_subscription_upsert_and_patch(self, async_session: AsyncSession):
        repo = SubscriptionRepository(async_session)
        await repo.upsert(
            paddle_subscription_id="sub_1",
            user_id=TECH,
            role="technician",
            plan_id="TECH_MONTHLY",
            status="active",
        )
        await repo.upsert(
            paddle_subscription_id="sub_1",
            user_id=TECH,
            role="technician",
            plan_id="TECH_MONTHLY",
            status="past_due",
        )
        assert await repo.update_fields("sub_1", cancel_at_period_end=True) is True
        assert await repo.update_fields("sub_unknown", status="canceled") is False

        row = await repo.get("sub_1")
        assert row is not None
        assert row.status == "past_due"
        assert row.cancel_at_period_end is True
        latest = await repo.get_latest_for_user(TECH)
        assert latest is not None
        assert latest.paddle_subscription_id == "sub_1"

    @pytest.mark.asyncio
    async def test_customer_id_never_cleared(self, async_session: AsyncSession):
        repo = BillingCustomerRepository(async_session)
        await repo.upsert(TECH, "ana@example.com", "ctm_1")
        await repo.upsert(TECH, "ana@new.example.com")
        row = await repo.get(TECH)
        assert row is not None
        assert row.paddle_customer_id == "ctm_1"
        assert row.email == "ana@new.example.com"
