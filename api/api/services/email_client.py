"""HTTP client for the Resend transactional email API.

Only one message is sent by the platform: the job-request notification to a
technician.  Sending is best-effort.  Every public method returns ``None``
on failure (or when no API key is configured) and never raises, so callers
cannot fail a request because of email.
"""

from __future__ import annotations

import html
import logging
from datetime import date
from typing import Any

import httpx
from pydantic import BaseModel

logger = logging.getLogger(__name__)

_RESEND_URL = "https://api.resend.com"

_MONTHS: dict[str, tuple[str, ...]] = {
    "es": (
        "enero",
        "febrero",
        "marzo",
        "abril",
        "mayo",
        "junio",
        "julio",
        "agosto",
        "septiembre",
        "octubre",
        "noviembre",
        "diciembre",
    ),
    "en": (
        "January",
        "February",
        "March",
        "April",
        "May",
        "June",
        "July",
        "August",
        "September",
        "October",
        "November",
        "December",
    ),
}

_STRINGS: dict[str, dict[str, str]] = {
    "es": {
        "subject": "🛫 Nueva solicitud de trabajo de {company}",
        "tagline": "Nueva oportunidad de trabajo",
        "greeting": "Hola <strong>{name}</strong>,",
        "intro": "<strong>{company}</strong> te ha enviado una solicitud de trabajo:",
        "client": "Cliente final",
        "location": "Ubicación",
        "dates": "Fechas",
        "contract": "Tipo de contrato",
        "short-term": "Corto plazo",
        "long-term": "Largo plazo",
        "notes": "Notas adicionales",
        "rtw_title": "🇬🇧 ⚠️ Requiere Right to Work UK",
        "rtw_body": (
            "Este trabajo requiere elegibilidad laboral legal en UK. Deberás gestionar la elegibilidad "
            "mediante Umbrella/EoR o sponsorship de visado. Podrás seleccionar tu método al aceptar la solicitud."
        ),
        "cta": "Ver solicitud y responder",
        "footer": "Accede a tu panel de AeroMatch para aceptar o rechazar esta solicitud.",
    },
    "en": {
        "subject": "🛫 New job request from {company}",
        "tagline": "New job opportunity",
        "greeting": "Hi <strong>{name}</strong>,",
        "intro": "<strong>{company}</strong> has sent you a job request:",
        "client": "Final client",
        "location": "Location",
        "dates": "Dates",
        "contract": "Contract type",
        "short-term": "Short term",
        "long-term": "Long term",
        "notes": "Additional notes",
        "rtw_title": "🇬🇧 ⚠️ Requires Right to Work UK",
        "rtw_body": (
            "This job requires legal work eligibility in the UK. You will need to arrange it through an "
            "Umbrella/EoR provider or visa sponsorship. You can pick your method when accepting the request."
        ),
        "cta": "View and respond",
        "footer": "Open your AeroMatch dashboard to accept or reject this request.",
    },
}


class JobRequestEmail(BaseModel):
    """Everything the job-request notification template needs."""

    technician_email: str
    technician_name: str
    company_name: str
    final_client: str
    work_location: str
    start_date: date
    end_date: date
    contract_type: str
    notes: str | None = None
    requires_right_to_work_uk: bool = False


def format_long_date(value: date, language: str = "es") -> str:
    """``2025-03-01`` -> ``1 de marzo de 2025`` (es) or ``1 March 2025`` (en)."""
    months = _MONTHS.get(language, _MONTHS["es"])
    month = months[value.month - 1]
    if language == "en":
        return f"{value.day} {month} {value.year}"
    return f"{value.day} de {month} de {value.year}"


def render_job_request_email(data: JobRequestEmail, app_url: str, language: str = "es") -> tuple[str, str]:
    """Return ``(subject, html_body)`` for a job-request notification.

    All user-supplied values are HTML-escaped.
    """
    strings = _STRINGS.get(language, _STRINGS["es"])
    esc = html.escape
    company = esc(data.company_name)
    contract_label = strings.get(data.contract_type, esc(data.contract_type))
    dates = f"{format_long_date(data.start_date, language)} - {format_long_date(data.end_date, language)}"

    notes_block = ""
    if data.notes:
        notes_block = (
            f'<tr><td style="padding: 12px 0 0;"><span style="color: #6B809A; font-size: 13px;">'
            f'{strings["notes"]}</span><br><span style="color: #8899AA; font-style: italic;">'
            f'"{esc(data.notes)}"</span></td></tr>'
        )

    rtw_block = ""
    if data.requires_right_to_work_uk:
        rtw_block = (
            '<table width="100%" style="margin-top: 20px; background-color: #3D2607; border-radius: 12px;">'
            f'<tr><td style="padding: 20px;"><p style="color: #E6B84F; font-weight: bold;">{strings["rtw_title"]}</p>'
            f'<p style="color: #D4A03D; font-size: 13px;">{strings["rtw_body"]}</p></td></tr></table>'
        )

    def row(label: str, value: str) -> str:
        return (
            f'<tr><td style="padding: 8px 0;"><span style="color: #6B809A; font-size: 13px;">{label}</span><br>'
            f'<span style="color: #ffffff; font-size: 16px;">{value}</span></td></tr>'
        )

    body = (
        '<!DOCTYPE html><html><head><meta charset="utf-8"></head>'
        '<body style="margin: 0; background-color: #0B132B; font-family: sans-serif;">'
        '<table width="600" align="center" style="background-color: #1A2642; border-radius: 16px;">'
        f'<tr><td style="padding: 35px 30px; text-align: center; border-bottom: 2px solid #C9A24D;">'
        f'<p style="color: #C9A24D; font-size: 28px; font-weight: 700;">aeroMatch</p>'
        f'<p style="color: #8899AA;">{strings["tagline"]}</p></td></tr>'
        '<tr><td style="padding: 40px 30px;">'
        f'<p style="color: #8899AA;">{strings["greeting"].format(name=esc(data.technician_name))}</p>'
        f'<p style="color: #8899AA;">{strings["intro"].format(company=company)}</p>'
        '<table width="100%" style="background-color: #0B132B; border-radius: 12px;"><tr><td style="padding: 25px;">'
        '<table width="100%">'
        f"{row(strings['client'], esc(data.final_client))}"
        f"{row(strings['location'], esc(data.work_location))}"
        f"{row(strings['dates'], dates)}"
        f"{row(strings['contract'], contract_label)}"
        f"{notes_block}"
        "</table></td></tr></table>"
        f"{rtw_block}"
        f'<p style="text-align: center; margin-top: 30px;"><a href="{esc(app_url.rstrip("/"))}/requests" '
        'style="background: #C9A24D; color: #0B132B; padding: 16px 40px; border-radius: 10px; '
        f'font-weight: bold; text-decoration: none;">{strings["cta"]}</a></p>'
        f'<p style="color: #6B809A; text-align: center;">{strings["footer"]}</p>'
        "</td></tr></table></body></html>"
    )
    subject = strings["subject"].format(company=data.company_name)
    return subject, body


class EmailClient:
    """Thin async wrapper around the Resend REST API.

    Parameters
    ----------
    api_key:
        Resend API key.  When empty, every send is skipped and logged.
    sender:
        ``From`` header value.
    app_url:
        Public web-app URL used for call-to-action links.
    timeout:
        Per-request timeout in seconds.
    """

    def __init__(
        self,
        api_key: str,
        sender: str,
        app_url: str,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._api_key = api_key
        self._sender = sender
        self._app_url = app_url
        self._client = httpx.AsyncClient(
            base_url=_RESEND_URL,
            timeout=httpx.Timeout(timeout),
            headers={"Authorization": f"Bearer {api_key}", "Content-Type": "application/json"},
            transport=transport,
        )

    @property
    def enabled(self) -> bool:
        return bool(self._api_key)

    async def send_job_request_notification(self, data: JobRequestEmail, language: str = "es") -> str | None:
        """Send the notification and return the provider message id, or ``None``."""
        if not self.enabled:
            logger.info("Email skipped: RESEND_API_KEY not configured")
            return None

        subject, body = render_job_request_email(data, self._app_url, language)
        result = await self._post(
            "/emails",
            {"from": self._sender, "to": [data.technician_email], "subject": subject, "html": body},
        )
        if result is None:
            return None
        message_id = result.get("id")
        logger.info("Job request email sent to technician (id=%s)", message_id)
        return message_id

    async def close(self) -> None:
        await self._client.aclose()

    async def _post(self, path: str, payload: dict[str, Any]) -> dict[str, Any] | None:
        try:
            response = await self._client.post(path, json=payload)
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as exc:
            logger.warning("Resend %s returned %d: %s", path, exc.response.status_code, exc.response.text[:200])
            return None
        except httpx.HTTPError as exc:
            logger.warning("Resend %s request failed: %s", path, exc)
            return None
