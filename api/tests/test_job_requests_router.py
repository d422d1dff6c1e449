"""Tests for api/api/routers/job_requests.py

Covers:
- POST /api/v1/job-requests: company creates (201), technician forbidden (403),
  unknown technician (404), inverted dates (400), email notification
- GET /api/v1/job-requests: each party sees its own side
- PATCH /api/v1/job-requests/{id}: accept / reject / cancel, outsider 403,
  invalid status 400, terminal request 409
- POST /api/v1/job-requests/{id}/accept: UK eligibility rules and workflow record
- GET /api/v1/job-requests/{id}/match: DIRECT vs CONDITIONAL
"""

from __future__ import annotations

from typing import Any
from unittest.mock import AsyncMock

import pytest
from aeromatch_core.models.profile import Role
from aeromatch_core.state.repository import AcceptanceWorkflowRepository, TechnicianRepository
from httpx import AsyncClient

pytestmark = pytest.mark.usefixtures("marketplace")

_TECH_ID = "tech-0001"
_COMPANY_ID = "company-0001"


def _draft(**overrides: Any) -> dict[str, Any]:
    body: dict[str, Any] = {
        "technician_id": _TECH_ID,
        "final_client_name": "Vueling",
        "work_location": "Barcelona El Prat",
        "start_date": "2026-11-02",
        "end_date": "2026-11-20",
        "contract_type": "short-term",
        "country_code": "es",
        "notes": "C-check on A320",
    }
    body.update(overrides)
    return body


async def _create(client: AsyncClient, headers: dict[str, str], **overrides: Any) -> dict[str, Any]:
    resp = await client.post("/api/v1/job-requests", json=_draft(**overrides), headers=headers)
    assert resp.status_code == 201, resp.text
    return resp.json()["request"]


# ---------------------------------------------------------------------------
# Creation
# ---------------------------------------------------------------------------


class TestCreateJobRequest:
    @pytest.mark.asyncio
    async def test_company_creates_pending_request(self, client: AsyncClient, company_headers) -> None:
        request = await _create(client, company_headers)

        assert request["status"] == "pending"
        assert request["company_id"] == _COMPANY_ID
        assert request["technician_id"] == _TECH_ID
        assert request["country_code"] == "ES"
        assert request["rated"] is False

    @pytest.mark.asyncio
    async def test_technician_notified_by_email(
        self,
        client: AsyncClient,
        company_headers,
        mock_email: AsyncMock,
    ) -> None:
        await _create(client, company_headers)

        mock_email.send_job_request_notification.assert_awaited_once()
        message = mock_email.send_job_request_notification.await_args.args[0]
        assert message.technician_email == "ana@example.com"
        assert message.company_name == "Iberia MRO"
        assert message.final_client == "Vueling"

    @pytest.mark.asyncio
    async def test_email_failure_does_not_fail_creation(
        self,
        client: AsyncClient,
        company_headers,
        mock_email: AsyncMock,
    ) -> None:
        mock_email.send_job_request_notification.side_effect = RuntimeError("smtp down")

        resp = await client.post("/api/v1/job-requests", json=_draft(), headers=company_headers)

        assert resp.status_code == 201

    @pytest.mark.asyncio
    async def test_technician_cannot_create(self, client: AsyncClient, tech_headers) -> None:
        resp = await client.post("/api/v1/job-requests", json=_draft(), headers=tech_headers)

        assert resp.status_code == 403
        assert resp.json()["detail"] == "Only companies can create job requests"

    @pytest.mark.asyncio
    async def test_unknown_technician_returns_404(self, client: AsyncClient, company_headers) -> None:
        resp = await client.post(
            "/api/v1/job-requests",
            json=_draft(technician_id="tech-missing"),
            headers=company_headers,
        )

        assert resp.status_code == 404

    @pytest.mark.asyncio
    async def test_inverted_dates_rejected(self, client: AsyncClient, company_headers) -> None:
        resp = await client.post(
            "/api/v1/job-requests",
            json=_draft(start_date="2026-11-20", end_date="2026-11-02"),
            headers=company_headers,
        )

        assert resp.status_code == 400

    @pytest.mark.asyncio
    async def test_missing_required_field_is_400(self, client: AsyncClient, company_headers) -> None:
        body = _draft()
        del body["final_client_name"]

        resp = await client.post("/api/v1/job-requests", json=body, headers=company_headers)

        assert resp.status_code == 400
        assert isinstance(resp.json()["detail"], list)

    @pytest.mark.asyncio
    async def test_unauthenticated_returns_401(self, client: AsyncClient) -> None:
        resp = await client.post("/api/v1/job-requests", json=_draft())

        assert resp.status_code == 401


# ---------------------------------------------------------------------------
# Listing and lookup
# ---------------------------------------------------------------------------


class TestListJobRequests:
    @pytest.mark.asyncio
    async def test_both_parties_see_the_request(self, client: AsyncClient, company_headers, tech_headers) -> None:
        created = await _create(client, company_headers)

        company_view = await client.get("/api/v1/job-requests", headers=company_headers)
        tech_view = await client.get("/api/v1/job-requests", headers=tech_headers)

        assert [r["id"] for r in company_view.json()["requests"]] == [created["id"]]
        assert [r["id"] for r in tech_view.json()["requests"]] == [created["id"]]

    @pytest.mark.asyncio
    async def test_outsider_cannot_read_request(
        self,
        client: AsyncClient,
        company_headers,
        headers_for,
        seed_profile,
    ) -> None:
        await seed_profile("company-0002", Role.COMPANY)
        created = await _create(client, company_headers)

        resp = await client.get(f"/api/v1/job-requests/{created['id']}", headers=headers_for("company-0002"))

        assert resp.status_code == 404


# ---------------------------------------------------------------------------
# Status transitions
# ---------------------------------------------------------------------------


class TestUpdateStatus:
    @pytest.mark.asyncio
    async def test_technician_accepts_self_employed(self, client: AsyncClient, company_headers, tech_headers) -> None:
        created = await _create(client, company_headers)

        resp = await client.patch(
            f"/api/v1/job-requests/{created['id']}",
            json={"status": "accepted", "payout_bank_account": "ES91 2100 0418 4502 0005 1332"},
            headers=tech_headers,
        )

        assert resp.status_code == 200
        body = resp.json()
        assert body["request"]["status"] == "accepted"
        assert body["workflow"]["work_mode"] == "self_employed"
        assert body["workflow"]["umbrella_provider_id"] is None
        assert body["workflow"]["uk_eligibility_mode"] == "not_required"

    @pytest.mark.asyncio
    async def test_technician_rejects(self, client: AsyncClient, company_headers, tech_headers) -> None:
        created = await _create(client, company_headers)

        resp = await client.patch(
            f"/api/v1/job-requests/{created['id']}",
            json={"status": "rejected"},
            headers=tech_headers,
        )

        assert resp.status_code == 200
        assert resp.json()["request"]["status"] == "rejected"
        assert resp.json()["workflow"] is None

    @pytest.mark.asyncio
    async def test_company_can_cancel(self, client: AsyncClient, company_headers) -> None:
        created = await _create(client, company_headers)

        resp = await client.patch(
            f"/api/v1/job-requests/{created['id']}",
            json={"status": "cancelled"},
            headers=company_headers,
        )

        assert resp.status_code == 200
        assert resp.json()["request"]["status"] == "cancelled"

    @pytest.mark.asyncio
    async def test_company_cannot_accept(self, client: AsyncClient, company_headers) -> None:
        created = await _create(client, company_headers)

        resp = await client.patch(
            f"/api/v1/job-requests/{created['id']}",
            json={"status": "accepted"},
            headers=company_headers,
        )

        assert resp.status_code == 403

    @pytest.mark.asyncio
    async def test_outsider_forbidden_even_with_bad_status(
        self,
        client: AsyncClient,
        company_headers,
        headers_for,
    ) -> None:
        created = await _create(client, company_headers)

        resp = await client.patch(
            f"/api/v1/job-requests/{created['id']}",
            json={"status": "bogus"},
            headers=headers_for("stranger-0001"),
        )

        assert resp.status_code == 403

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "extra",
        [
            {"work_mode": "bogus"},
            {"uk_eligibility_mode": "somehow"},
            {"payout_bank_account": "X" * 200},
            {"uk_eligibility_acknowledged": {"nested": True}},
        ],
    )
    async def test_outsider_forbidden_even_with_malformed_acceptance(
        self,
        client: AsyncClient,
        company_headers,
        headers_for,
        extra: dict[str, Any],
    ) -> None:
        created = await _create(client, company_headers)

        resp = await client.patch(
            f"/api/v1/job-requests/{created['id']}",
            json={"status": "accepted", **extra},
            headers=headers_for("stranger-0001"),
        )

        assert resp.status_code == 403
        assert resp.json()["detail"] == "Not authorized to update this request"

    @pytest.mark.asyncio
    async def test_outsider_accept_endpoint_forbidden_with_malformed_body(
        self,
        client: AsyncClient,
        company_headers,
        headers_for,
    ) -> None:
        created = await _create(client, company_headers)

        resp = await client.post(
            f"/api/v1/job-requests/{created['id']}/accept",
            json={"work_mode": "bogus"},
            headers=headers_for("stranger-0001"),
        )

        assert resp.status_code == 403

    @pytest.mark.asyncio
    async def test_technician_malformed_work_mode_is_400(
        self,
        client: AsyncClient,
        company_headers,
        tech_headers,
    ) -> None:
        created = await _create(client, company_headers)
        url = f"/api/v1/job-requests/{created['id']}"

        resp = await client.patch(url, json={"status": "accepted", "work_mode": "bogus"}, headers=tech_headers)

        assert resp.status_code == 400
        assert "work_mode" in resp.json()["detail"]
        after = await client.get(url, headers=tech_headers)
        assert after.json()["request"]["status"] == "pending"

    @pytest.mark.asyncio
    async def test_invalid_status_is_400(self, client: AsyncClient, company_headers, tech_headers) -> None:
        created = await _create(client, company_headers)

        resp = await client.patch(
            f"/api/v1/job-requests/{created['id']}",
            json={"status": "pending"},
            headers=tech_headers,
        )

        assert resp.status_code == 400
        assert "Invalid status" in resp.json()["detail"]

    @pytest.mark.asyncio
    async def test_terminal_request_conflicts(self, client: AsyncClient, company_headers, tech_headers) -> None:
        created = await _create(client, company_headers)
        url = f"/api/v1/job-requests/{created['id']}"
        first = await client.patch(url, json={"status": "rejected"}, headers=tech_headers)
        assert first.status_code == 200

        resp = await client.patch(url, json={"status": "accepted"}, headers=tech_headers)

        assert resp.status_code == 409
        assert resp.json()["detail"] == "Job request is already rejected"

    @pytest.mark.asyncio
    async def test_unknown_request_is_404(self, client: AsyncClient, tech_headers) -> None:
        resp = await client.patch(
            "/api/v1/job-requests/does-not-exist",
            json={"status": "accepted"},
            headers=tech_headers,
        )

        assert resp.status_code == 404


# ---------------------------------------------------------------------------
# Acceptance with UK eligibility
# ---------------------------------------------------------------------------


class TestAcceptUKJob:
    @pytest.mark.asyncio
    async def test_uk_job_requires_eligibility_choice(
        self,
        client: AsyncClient,
        company_headers,
        tech_headers,
    ) -> None:
        created = await _create(client, company_headers, country_code="UK", requires_right_to_work_uk=True)

        resp = await client.post(f"/api/v1/job-requests/{created['id']}/accept", json={}, headers=tech_headers)

        assert resp.status_code == 400
        assert resp.json()["detail"] == "Select how UK right to work will be handled"

    @pytest.mark.asyncio
    async def test_failed_validation_leaves_request_pending(
        self,
        client: AsyncClient,
        company_headers,
        tech_headers,
    ) -> None:
        created = await _create(client, company_headers, country_code="UK", requires_right_to_work_uk=True)
        await client.post(
            f"/api/v1/job-requests/{created['id']}/accept",
            json={"uk_eligibility_mode": "self_arranged"},
            headers=tech_headers,
        )

        resp = await client.get(f"/api/v1/job-requests/{created['id']}", headers=tech_headers)

        assert resp.json()["request"]["status"] == "pending"

    @pytest.mark.asyncio
    async def test_umbrella_mode_forces_umbrella_work(
        self,
        client: AsyncClient,
        company_headers,
        tech_headers,
        db_session,
    ) -> None:
        created = await _create(client, company_headers, country_code="UK", requires_right_to_work_uk=True)

        resp = await client.post(
            f"/api/v1/job-requests/{created['id']}/accept",
            json={"uk_eligibility_mode": "umbrella", "umbrella_provider_id": "deel"},
            headers=tech_headers,
        )

        assert resp.status_code == 200
        workflow = resp.json()["workflow"]
        assert workflow["work_mode"] == "umbrella"
        assert workflow["umbrella_provider_id"] == "deel"
        assert workflow["uk_eligibility_mode"] == "umbrella"

        stored = await AcceptanceWorkflowRepository(db_session).get(created["id"])
        assert stored is not None
        assert stored.company_user_id == _COMPANY_ID

    @pytest.mark.asyncio
    async def test_non_sponsoring_partner_rejected(
        self,
        client: AsyncClient,
        company_headers,
        tech_headers,
    ) -> None:
        created = await _create(client, company_headers, country_code="UK", requires_right_to_work_uk=True)

        resp = await client.post(
            f"/api/v1/job-requests/{created['id']}/accept",
            json={"uk_eligibility_mode": "umbrella", "umbrella_provider_id": "parasol"},
            headers=tech_headers,
        )

        assert resp.status_code == 400
        assert "cannot sponsor" in resp.json()["detail"]

    @pytest.mark.asyncio
    async def test_self_arranged_with_acknowledgment(
        self,
        client: AsyncClient,
        company_headers,
        tech_headers,
    ) -> None:
        created = await _create(client, company_headers, country_code="UK", requires_right_to_work_uk=True)

        resp = await client.post(
            f"/api/v1/job-requests/{created['id']}/accept",
            json={"uk_eligibility_mode": "self_arranged", "uk_eligibility_acknowledged": True},
            headers=tech_headers,
        )

        assert resp.status_code == 200
        assert resp.json()["workflow"]["uk_eligibility_acknowledged"] is True


# ---------------------------------------------------------------------------
# Match status
# ---------------------------------------------------------------------------


class TestMatchStatus:
    @pytest.mark.asyncio
    async def test_domestic_job_is_direct(self, client: AsyncClient, company_headers) -> None:
        created = await _create(client, company_headers)

        resp = await client.get(f"/api/v1/job-requests/{created['id']}/match", headers=company_headers)

        assert resp.status_code == 200
        assert resp.json() == {"status": "DIRECT", "legend": "", "suggested_partners": []}

    @pytest.mark.asyncio
    async def test_uk_job_without_rtw_is_conditional(self, client: AsyncClient, company_headers) -> None:
        created = await _create(client, company_headers, country_code="UK", requires_right_to_work_uk=True)

        resp = await client.get(f"/api/v1/job-requests/{created['id']}/match", headers=company_headers)

        body = resp.json()
        assert body["status"] == "CONDITIONAL"
        assert [p["id"] for p in body["suggested_partners"]][:3] == ["deel", "remote", "oyster"]

    @pytest.mark.asyncio
    async def test_uk_job_with_rtw_is_direct(self, client: AsyncClient, company_headers, db_session) -> None:
        await TechnicianRepository(db_session).upsert(_TECH_ID, {"right_to_work_uk": True})
        await db_session.commit()
        created = await _create(client, company_headers, country_code="UK", requires_right_to_work_uk=True)

        resp = await client.get(f"/api/v1/job-requests/{created['id']}/match", headers=company_headers)

        assert resp.json()["status"] == "DIRECT"
