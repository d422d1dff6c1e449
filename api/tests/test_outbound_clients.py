"""Tests for the outbound HTTP clients: Resend email, Paddle, storage, auth provider.

Uses httpx.MockTransport for deterministic HTTP simulation.
"""

from __future__ import annotations

import json
from collections.abc import Callable
from datetime import date

import httpx
import pytest
from aeromatch_core.billing.plans import ProcessorEnv

from api.services.auth_provider_client import AuthProviderClient
from api.services.email_client import EmailClient, JobRequestEmail, format_long_date, render_job_request_email
from api.services.paddle_client import PaddleClient
from api.services.storage_client import StorageClient


def _transport(
    captured: list[httpx.Request],
    status_code: int = 200,
    body: dict | None = None,
) -> httpx.MockTransport:
    def handler(request: httpx.Request) -> httpx.Response:
        captured.append(request)
        return httpx.Response(status_code, json=body if body is not None else {})

    return httpx.MockTransport(handler)


def _failing_transport() -> httpx.MockTransport:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    return httpx.MockTransport(handler)


@pytest.fixture
def job_email() -> JobRequestEmail:
    return JobRequestEmail(
        technician_email="ana@example.com",
        technician_name="Ana",
        company_name="Iberia <MRO>",
        final_client="Vueling",
        work_location="Barcelona",
        start_date=date(2025, 3, 1),
        end_date=date(2025, 3, 15),
        contract_type="short-term",
        notes="Night shifts",
        requires_right_to_work_uk=True,
    )


# ---------------------------------------------------------------------------
# Email rendering and sending
# ---------------------------------------------------------------------------


class TestEmailRendering:
    @pytest.mark.parametrize(
        ("language", "expected"),
        [("es", "1 de marzo de 2025"), ("en", "1 March 2025"), ("de", "1 de marzo de 2025")],
    )
    def test_format_long_date(self, language: str, expected: str) -> None:
        assert format_long_date(date(2025, 3, 1), language) == expected

    def test_spanish_subject_and_body(self, job_email: JobRequestEmail) -> None:
        subject, body = render_job_request_email(job_email, "http://app.example/")

        assert subject == "🛫 Nueva solicitud de trabajo de Iberia <MRO>"
        assert "Iberia &lt;MRO&gt;" in body
        assert "Iberia <MRO>" not in body
        assert "1 de marzo de 2025 - 15 de marzo de 2025" in body
        assert "Corto plazo" in body
        assert "Night shifts" in body
        assert "Requiere Right to Work UK" in body
        assert 'href="http://app.example/requests"' in body

    def test_english_without_optional_blocks(self, job_email: JobRequestEmail) -> None:
        data = job_email.model_copy(update={"notes": None, "requires_right_to_work_uk": False})

        subject, body = render_job_request_email(data, "http://app.example", language="en")

        assert subject == "🛫 New job request from Iberia <MRO>"
        assert "Short term" in body
        assert "Additional notes" not in body
        assert "Right to Work UK" not in body


class TestEmailClient:
    @pytest.mark.asyncio
    async def test_sends_to_technician(self, job_email: JobRequestEmail) -> None:
        captured: list[httpx.Request] = []
        client = EmailClient(
            "re_key",
            "AeroMatch <noreply@aeromatch.app>",
            "http://app.example",
            transport=_transport(captured, body={"id": "email_1"}),
        )

        message_id = await client.send_job_request_notification(job_email)

        assert message_id == "email_1"
        (request,) = captured
        assert request.url.path == "/emails"
        assert request.headers["Authorization"] == "Bearer re_key"
        payload = json.loads(request.content)
        assert payload["to"] == ["ana@example.com"]
        assert payload["from"] == "AeroMatch <noreply@aeromatch.app>"
        await client.close()

    @pytest.mark.asyncio
    async def test_skipped_without_key(self, job_email: JobRequestEmail) -> None:
        captured: list[httpx.Request] = []
        client = EmailClient("", "x@example.com", "http://app.example", transport=_transport(captured))

        assert client.enabled is False
        assert await client.send_job_request_notification(job_email) is None
        assert captured == []
        await client.close()

    @pytest.mark.asyncio
    async def test_provider_error_returns_none(self, job_email: JobRequestEmail) -> None:
        client = EmailClient(
            "re_key",
            "x@example.com",
            "http://app.example",
            transport=_transport([], status_code=422, body={"message": "invalid"}),
        )

        assert await client.send_job_request_notification(job_email) is None
        await client.close()

    @pytest.mark.asyncio
    async def test_transport_error_returns_none(self, job_email: JobRequestEmail) -> None:
        client = EmailClient("re_key", "x@example.com", "http://app.example", transport=_failing_transport())

        assert await client.send_job_request_notification(job_email) is None
        await client.close()


# ---------------------------------------------------------------------------
# Paddle
# ---------------------------------------------------------------------------


class TestPaddleClient:
    @pytest.mark.asyncio
    async def test_checkout_url_from_response(self) -> None:
        captured: list[httpx.Request] = []
        body = {"data": {"id": "txn_1", "checkout": {"url": "https://pay.example/checkout?_ptxn=txn_1"}}}
        client = PaddleClient("pdl_key", transport=_transport(captured, body=body))

        session = await client.create_checkout("pri_1", {"user_id": "u-1", "plan_key": "TECH_MONTHLY"})

        assert session is not None
        assert session.transaction_id == "txn_1"
        assert session.checkout_url == "https://pay.example/checkout?_ptxn=txn_1"
        (request,) = captured
        assert request.url.host == "sandbox-api.paddle.com"
        assert request.url.path == "/transactions"
        assert json.loads(request.content) == {
            "items": [{"price_id": "pri_1", "quantity": 1}],
            "custom_data": {"user_id": "u-1", "plan_key": "TECH_MONTHLY"},
        }
        await client.close()

    @pytest.mark.asyncio
    async def test_default_checkout_url(self) -> None:
        client = PaddleClient("pdl_key", transport=_transport([], body={"data": {"id": "txn_2"}}))

        session = await client.create_checkout("pri_1", {})

        assert session.checkout_url == "https://sandbox-buy.paddle.com?_ptxn=txn_2"
        await client.close()

    @pytest.mark.asyncio
    async def test_production_hosts(self) -> None:
        captured: list[httpx.Request] = []
        client = PaddleClient(
            "pdl_key",
            env=ProcessorEnv.PRODUCTION,
            transport=_transport(captured, body={"data": {"id": "txn_3"}}),
        )

        session = await client.create_checkout("pri_1", {})

        assert captured[0].url.host == "api.paddle.com"
        assert session.checkout_url == "https://buy.paddle.com?_ptxn=txn_3"
        await client.close()

    @pytest.mark.parametrize(
        "make_transport",
        [
            lambda: _transport([], status_code=400, body={"error": {"code": "bad_request"}}),
            lambda: _transport([], body={"data": {}}),
            _failing_transport,
        ],
    )
    @pytest.mark.asyncio
    async def test_failures_return_none(self, make_transport: Callable[[], httpx.MockTransport]) -> None:
        client = PaddleClient("pdl_key", transport=make_transport())

        assert await client.create_checkout("pri_1", {}) is None
        await client.close()

    def test_configured(self) -> None:
        assert PaddleClient("pdl_key").configured is True
        assert PaddleClient("").configured is False


# ---------------------------------------------------------------------------
# Storage
# ---------------------------------------------------------------------------


class TestStorageClient:
    @pytest.mark.asyncio
    async def test_upload(self) -> None:
        captured: list[httpx.Request] = []
        client = StorageClient(
            "http://storage.example/storage/v1/",
            "documents",
            "svc_key",
            transport=_transport(captured, body={"Key": "documents/tech-1/easa_license/a.pdf"}),
        )

        key = await client.upload("tech-1/easa_license/a.pdf", b"%PDF-1.4", "application/pdf")

        assert key == "tech-1/easa_license/a.pdf"
        (request,) = captured
        assert request.url.path == "/storage/v1/object/documents/tech-1/easa_license/a.pdf"
        assert request.headers["Content-Type"] == "application/pdf"
        assert request.headers["apikey"] == "svc_key"
        assert request.content == b"%PDF-1.4"
        await client.close()

    @pytest.mark.asyncio
    async def test_rejected_upload(self) -> None:
        client = StorageClient(
            "http://storage.example/storage/v1",
            "documents",
            "svc_key",
            transport=_transport([], status_code=409, body={"error": "Duplicate"}),
        )

        assert await client.upload("k", b"x", "image/png") is None
        await client.close()

    @pytest.mark.asyncio
    async def test_unreachable(self) -> None:
        client = StorageClient("http://storage.example", "documents", "svc_key", transport=_failing_transport())

        assert await client.upload("k", b"x", "image/png") is None
        await client.close()


# ---------------------------------------------------------------------------
# Auth provider
# ---------------------------------------------------------------------------


class TestAuthProviderClient:
    @pytest.mark.asyncio
    async def test_exchange_code(self) -> None:
        captured: list[httpx.Request] = []
        body = {
            "access_token": "at",
            "refresh_token": "rt",
            "expires_in": 3600,
            "user": {"id": "user-1", "email": "user@example.com"},
        }
        client = AuthProviderClient("http://auth.example", "anon", transport=_transport(captured, body=body))

        session = await client.exchange_code("code-1", "verifier-1")

        assert session.user_id == "user-1"
        assert session.email == "user@example.com"
        assert session.refresh_token == "rt"
        (request,) = captured
        assert request.url.path == "/auth/v1/token"
        assert request.url.params["grant_type"] == "pkce"
        assert request.headers["apikey"] == "anon"
        assert json.loads(request.content) == {"auth_code": "code-1", "code_verifier": "verifier-1"}
        await client.close()

    @pytest.mark.asyncio
    async def test_verifier_omitted_when_absent(self) -> None:
        captured: list[httpx.Request] = []
        body = {"access_token": "at", "user": {"id": "user-1"}}
        client = AuthProviderClient("http://auth.example", "anon", transport=_transport(captured, body=body))

        await client.exchange_code("code-1")

        assert json.loads(captured[0].content) == {"auth_code": "code-1"}
        await client.close()

    @pytest.mark.parametrize(
        "make_transport",
        [
            lambda: _transport([], status_code=400, body={"error": "invalid_grant"}),
            lambda: _transport([], body={"access_token": "at", "user": {}}),
            _failing_transport,
        ],
    )
    @pytest.mark.asyncio
    async def test_failures_return_none(self, make_transport: Callable[[], httpx.MockTransport]) -> None:
        client = AuthProviderClient("http://auth.example", "anon", transport=make_transport())

        assert await client.exchange_code("code-1") is None
        await client.close()
