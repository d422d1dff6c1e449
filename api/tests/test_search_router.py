"""Tests for api/api/routers/search.py"""

from __future__ import annotations

from datetime import UTC, date, datetime, timedelta

import pytest
from aeromatch_core.models.profile import Role
from aeromatch_core.state.tables import AvailabilitySlotTable
from httpx import AsyncClient

pytestmark = pytest.mark.usefixtures("marketplace")

_RANGE = {"start_date": "2026-12-05", "end_date": "2026-12-10"}


async def _add_slot(db_session, technician_id: str, start: date, end: date, age_days: int = 0) -> None:
    db_session.add(
        AvailabilitySlotTable(
            technician_id=technician_id,
            start_date=start,
            end_date=end,
            created_at=datetime.now(UTC) - timedelta(days=age_days),
        )
    )
    await db_session.commit()


class TestSearchTechnicians:
    @pytest.mark.asyncio
    async def test_covering_slot_matches(self, client: AsyncClient, company_headers, db_session) -> None:
        await _add_slot(db_session, "tech-0001", date(2026, 12, 1), date(2026, 12, 31))

        resp = await client.post("/api/v1/search/technicians", json=_RANGE, headers=company_headers)

        assert resp.status_code == 200
        body = resp.json()
        assert body["count"] == 1
        match = body["technicians"][0]
        assert match["user_id"] == "tech-0001"
        assert match["tech_id"] == "TECH-000"
        assert match["freshness"] == "fresh"

    @pytest.mark.asyncio
    async def test_partial_overlap_does_not_match(self, client: AsyncClient, company_headers, db_session) -> None:
        await _add_slot(db_session, "tech-0001", date(2026, 12, 7), date(2026, 12, 31))

        resp = await client.post("/api/v1/search/technicians", json=_RANGE, headers=company_headers)

        assert resp.json() == {"technicians": [], "count": 0}

    @pytest.mark.asyncio
    async def test_fresh_sorted_before_stale(
        self,
        client: AsyncClient,
        company_headers,
        db_session,
        seed_profile,
    ) -> None:
        await seed_profile("tech-0002", Role.TECHNICIAN, technician={"license_category": ["B2"], "is_available": True})
        await _add_slot(db_session, "tech-0001", date(2026, 12, 1), date(2026, 12, 31), age_days=75)
        await _add_slot(db_session, "tech-0002", date(2026, 12, 1), date(2026, 12, 31), age_days=2)

        resp = await client.post("/api/v1/search/technicians", json=_RANGE, headers=company_headers)

        matches = resp.json()["technicians"]
        assert [(m["user_id"], m["freshness"]) for m in matches] == [("tech-0002", "fresh"), ("tech-0001", "stale")]

    @pytest.mark.asyncio
    async def test_latest_slot_decides_freshness(self, client: AsyncClient, company_headers, db_session) -> None:
        await _add_slot(db_session, "tech-0001", date(2026, 12, 1), date(2026, 12, 31), age_days=40)
        await _add_slot(db_session, "tech-0001", date(2026, 12, 4), date(2026, 12, 12), age_days=1)

        resp = await client.post("/api/v1/search/technicians", json=_RANGE, headers=company_headers)

        matches = resp.json()["technicians"]
        assert len(matches) == 1
        assert matches[0]["freshness"] == "fresh"

    @pytest.mark.asyncio
    async def test_filters_use_any_semantics(self, client: AsyncClient, company_headers, db_session) -> None:
        await _add_slot(db_session, "tech-0001", date(2026, 12, 1), date(2026, 12, 31))

        hit = await client.post(
            "/api/v1/search/technicians",
            json={**_RANGE, "aircraft_types": ["B737", "A320"]},
            headers=company_headers,
        )
        miss = await client.post(
            "/api/v1/search/technicians",
            json={**_RANGE, "license_category": ["B2"]},
            headers=company_headers,
        )

        assert hit.json()["count"] == 1
        assert miss.json()["count"] == 0

    @pytest.mark.asyncio
    async def test_boolean_filter_excludes(self, client: AsyncClient, company_headers, db_session) -> None:
        await _add_slot(db_session, "tech-0001", date(2026, 12, 1), date(2026, 12, 31))

        resp = await client.post(
            "/api/v1/search/technicians",
            json={**_RANGE, "right_to_work_uk": True},
            headers=company_headers,
        )

        assert resp.json()["count"] == 0

    @pytest.mark.asyncio
    async def test_unavailable_technician_excluded(
        self,
        client: AsyncClient,
        company_headers,
        db_session,
        seed_profile,
    ) -> None:
        await seed_profile("tech-0002", Role.TECHNICIAN, technician={"is_available": False})
        await _add_slot(db_session, "tech-0002", date(2026, 12, 1), date(2026, 12, 31))

        resp = await client.post("/api/v1/search/technicians", json=_RANGE, headers=company_headers)

        assert resp.json()["count"] == 0

    @pytest.mark.asyncio
    async def test_missing_range_is_400(self, client: AsyncClient, company_headers) -> None:
        resp = await client.post("/api/v1/search/technicians", json={}, headers=company_headers)

        assert resp.status_code == 400
        assert resp.json()["detail"] == "start_date and end_date are required"

    @pytest.mark.asyncio
    async def test_technician_cannot_search(self, client: AsyncClient, tech_headers) -> None:
        resp = await client.post("/api/v1/search/technicians", json=_RANGE, headers=tech_headers)

        assert resp.status_code == 403
        assert resp.json()["detail"] == "Only companies can search technicians"
