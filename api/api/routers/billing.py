"""Billing endpoints: plan catalog, hosted checkout, subscription, Paddle webhooks."""

from __future__ import annotations

import json
import logging

from aeromatch_core.billing.plans import ProcessorEnv
from aeromatch_core.billing.signature import SIGNATURE_HEADER, verify_signature
from aeromatch_core.models.profile import Role
from fastapi import APIRouter, HTTPException, Query, Request
from pydantic import BaseModel

from api.dependencies import CurrentUserDep, PaddleClientDep, PublicSessionDep, SessionDep, SettingsDep
from api.schemas import (
    CheckoutResponse,
    PlansResponse,
    SubscriptionEnvelope,
    WebhookAckResponse,
)
from api.services.billing_service import BillingService, list_plans
from api.services.webhook_processor import WebhookProcessor

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/billing", tags=["billing"])


class CheckoutRequest(BaseModel):
    """Request body for ``POST /billing/checkout``."""

    plan_key: str | None = None


@router.get("/plans", response_model=PlansResponse)
async def get_plans(
    settings: SettingsDep,
    role: Role | None = Query(None, description="Only plans for this side of the marketplace."),
    lang: str = Query("en", pattern="^(en|es)$"),
) -> PlansResponse:
    """Public plan catalog.  No authentication required."""
    return PlansResponse(plans=list_plans(settings.paddle_env, role, lang))


@router.post("/checkout", response_model=CheckoutResponse)
async def create_checkout(
    body: CheckoutRequest,
    session: SessionDep,
    user: CurrentUserDep,
    paddle: PaddleClientDep,
) -> CheckoutResponse:
    """Start a Paddle hosted checkout for a plan matching the caller's role."""
    service = BillingService(session, paddle, user_id=user.user_id)
    return await service.create_checkout(body.plan_key, user.role, user.email)


@router.get("/subscription", response_model=SubscriptionEnvelope)
async def get_subscription(session: SessionDep, user: CurrentUserDep, paddle: PaddleClientDep) -> SubscriptionEnvelope:
    subscription = await BillingService(session, paddle, user_id=user.user_id).get_subscription()
    return SubscriptionEnvelope(subscription=subscription)


@router.post("/webhook", response_model=WebhookAckResponse)
async def paddle_webhook(
    request: Request,
    session: PublicSessionDep,
    settings: SettingsDep,
) -> WebhookAckResponse:
    """Receive a Paddle event.

    In production the ``Paddle-Signature`` header is verified against the
    raw body before anything is parsed.  Sandbox deliveries are accepted
    unsigned.  Redelivered events are acknowledged with ``duplicate=true``.
    """
    body = await request.body()

    if settings.paddle_env is ProcessorEnv.PRODUCTION:
        secret = settings.paddle_webhook_secret.get_secret_value()
        if not secret:
            logger.error("Paddle webhook received but API_PADDLE_WEBHOOK_SECRET is not set")
            raise HTTPException(status_code=500, detail="Webhook secret not configured")
        if not verify_signature(body, request.headers.get(SIGNATURE_HEADER), secret):
            logger.warning("Paddle webhook signature verification failed")
            raise HTTPException(status_code=401, detail="Invalid signature")

    try:
        payload = json.loads(body)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise HTTPException(status_code=400, detail="Invalid JSON payload") from exc
    if not isinstance(payload, dict):
        raise HTTPException(status_code=400, detail="Invalid JSON payload")

    result = await WebhookProcessor(session, settings.paddle_env).process(payload)
    return WebhookAckResponse(**result)
