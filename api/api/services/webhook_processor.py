"""Billing-processor webhook processing.

Each delivery is handled in three steps:

1. **Record** the raw event in the append-only ``billing_events`` log keyed
   by the processor's event id.  An id already present means a redelivery,
   which is acknowledged without further work.
2. **Dispatch** to the handler for the event type.  The handler runs inside a
   savepoint; if it fails, its partial writes are rolled back, the error is
   logged and stored on the event row, and processing continues.
3. **Mark** the event processed.

Signature verification happens in the router before this service is
invoked.  Handlers are idempotent: replaying a stored event yields the
same subscription state.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime
from typing import Any

from aeromatch_core.billing.plans import ProcessorEnv, get_plan, plan_for_price_id
from aeromatch_core.billing.status import EVENT_STATUS_OVERRIDES, map_processor_status
from aeromatch_core.errors import DomainValidationError
from aeromatch_core.models.billing import BillingEvent, SubscriptionStatus
from aeromatch_core.models.profile import Role
from aeromatch_core.state.repository import (
    BillingCustomerRepository,
    BillingEventRepository,
    SubscriptionRepository,
)
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)

_UNKNOWN_PLAN = "UNKNOWN"


def parse_event(payload: dict[str, Any]) -> BillingEvent:
    """Build a :class:`BillingEvent` from a processor notification body.

    Raises
    ------
    DomainValidationError
        If the body lacks an event id or type.
    """
    try:
        return BillingEvent(
            event_id=payload.get("event_id") or "",
            event_type=payload.get("event_type") or "",
            occurred_at=payload.get("occurred_at"),
            data=payload.get("data") or {},
        )
    except ValidationError as exc:
        raise DomainValidationError("Invalid webhook payload: event_id and event_type are required") from exc


def _parse_timestamp(value: Any) -> datetime | None:
    if not value or not isinstance(value, str):
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        logger.warning("Ignoring unparseable timestamp %r", value)
        return None
    return parsed if parsed.tzinfo is not None else parsed.replace(tzinfo=UTC)


def _first_price_id(data: dict[str, Any]) -> str | None:
    items = data.get("items") or []
    if not items:
        return None
    price = items[0].get("price") or {}
    return price.get("id") or items[0].get("price_id")


def _billing_period(data: dict[str, Any]) -> tuple[datetime | None, datetime | None]:
    period = data.get("current_billing_period") or {}
    return _parse_timestamp(period.get("starts_at")), _parse_timestamp(period.get("ends_at"))


def _cancel_scheduled(data: dict[str, Any]) -> bool:
    scheduled = data.get("scheduled_change") or {}
    return scheduled.get("action") == "cancel"


class WebhookProcessor:
    """Apply verified processor events to the local subscription mirror.

    Parameters
    ----------
    session:
        Unscoped database session; the caller commits.
    env:
        Processor environment, used for reverse price-id lookups.
    """

    def __init__(self, session: AsyncSession, env: ProcessorEnv) -> None:
        self._session = session
        self._env = env
        self._events = BillingEventRepository(session)
        self._subscriptions = SubscriptionRepository(session)
        self._customers = BillingCustomerRepository(session)
        self._handlers: dict[str, Callable[[BillingEvent], Awaitable[None]]] = {
            "subscription.created": self._on_subscription_created,
            "subscription.activated": self._on_subscription_created,
            "subscription.updated": self._on_subscription_updated,
            "subscription.canceled": self._on_subscription_canceled,
            "subscription.paused": self._on_status_override,
            "subscription.resumed": self._on_status_override,
            "subscription.past_due": self._on_status_override,
            "transaction.completed": self._on_transaction_completed,
        }

    async def process(self, payload: dict[str, Any]) -> dict[str, bool]:
        """Record, dispatch, and mark one delivery.

        Returns
        -------
        dict
            ``{"received": True, "duplicate": bool}``.
        """
        event = parse_event(payload)

        created = await self._events.record(
            event.event_id,
            event.event_type,
            event.subscription_id,
            payload,
        )
        if not created:
            logger.info("Duplicate webhook event %s (%s) ignored", event.event_id, event.event_type)
            return {"received": True, "duplicate": True}

        error = await self._dispatch(event)
        await self._events.mark_processed(event.event_id, error=error)
        return {"received": True, "duplicate": False}

    async def _dispatch(self, event: BillingEvent) -> str | None:
        """Run the handler for *event* in a savepoint and return its error, if any."""
        handler = self._handlers.get(event.event_type)
        if handler is None:
            logger.info("Unhandled webhook event type: %s", event.event_type)
            return None

        try:
            async with self._session.begin_nested():
                await handler(event)
        except Exception as exc:
            logger.error(
                "Webhook handler for %s (event %s) failed: %s",
                event.event_type,
                event.event_id,
                exc,
                exc_info=True,
            )
            return str(exc) or exc.__class__.__name__
        return None

    # -- Handlers -------------------------------------------------------------

    async def _on_subscription_created(self, event: BillingEvent) -> None:
        data = event.data
        subscription_id = event.subscription_id
        custom = data.get("custom_data") or {}
        user_id = custom.get("user_id")
        if not subscription_id:
            raise DomainValidationError("Subscription event has no subscription id")
        if not user_id:
            raise DomainValidationError(f"Subscription {subscription_id} has no custom_data.user_id")

        price_id = _first_price_id(data)
        plan = get_plan(custom["plan_key"]) if custom.get("plan_key") else None
        if plan is None and price_id:
            plan = plan_for_price_id(price_id, self._env)

        role = custom.get("role") or (plan.role.value if plan else Role.TECHNICIAN.value)
        plan_id = custom.get("plan_key") or (plan.key if plan else _UNKNOWN_PLAN)
        period_start, period_end = _billing_period(data)

        await self._subscriptions.upsert(
            paddle_subscription_id=subscription_id,
            user_id=user_id,
            role=role,
            plan_id=plan_id,
            status=map_processor_status(data.get("status")).value,
            paddle_price_id=price_id,
            current_period_start=period_start,
            current_period_end=period_end,
        )
        await self._subscriptions.update_fields(subscription_id, cancel_at_period_end=_cancel_scheduled(data))

        customer_id = data.get("customer_id")
        if customer_id:
            await self._customers.upsert(user_id, email=None, paddle_customer_id=customer_id)

        logger.info("Subscription %s recorded for user %s (plan=%s)", subscription_id, user_id, plan_id)

    async def _on_subscription_updated(self, event: BillingEvent) -> None:
        data = event.data
        subscription_id = event.subscription_id
        if not subscription_id:
            raise DomainValidationError("Subscription event has no subscription id")

        period_start, period_end = _billing_period(data)
        fields: dict[str, Any] = {
            "status": map_processor_status(data.get("status")).value,
            "cancel_at_period_end": _cancel_scheduled(data),
        }
        if period_start is not None:
            fields["current_period_start"] = period_start
        if period_end is not None:
            fields["current_period_end"] = period_end
        price_id = _first_price_id(data)
        if price_id:
            fields["paddle_price_id"] = price_id

        updated = await self._subscriptions.update_fields(subscription_id, **fields)
        if updated:
            logger.info("Subscription %s updated: status=%s", subscription_id, fields["status"])
            return

        # An update can overtake the created event; build the row from it.
        if (data.get("custom_data") or {}).get("user_id"):
            await self._on_subscription_created(event)
        else:
            logger.warning("Update for unknown subscription %s ignored", subscription_id)

    async def _on_subscription_canceled(self, event: BillingEvent) -> None:
        subscription_id = event.subscription_id
        if not subscription_id:
            raise DomainValidationError("Subscription event has no subscription id")
        canceled_at = _parse_timestamp(event.data.get("canceled_at")) or datetime.now(UTC)
        updated = await self._subscriptions.update_fields(
            subscription_id,
            status=SubscriptionStatus.CANCELED.value,
            canceled_at=canceled_at,
        )
        if not updated:
            logger.warning("Cancellation for unknown subscription %s ignored", subscription_id)
            return
        logger.info("Subscription %s canceled", subscription_id)

    async def _on_status_override(self, event: BillingEvent) -> None:
        subscription_id = event.subscription_id
        if not subscription_id:
            raise DomainValidationError("Subscription event has no subscription id")
        status = EVENT_STATUS_OVERRIDES[event.event_type]
        updated = await self._subscriptions.update_fields(subscription_id, status=status.value)
        if not updated:
            logger.warning("%s for unknown subscription %s ignored", event.event_type, subscription_id)
            return
        logger.info("Subscription %s is now %s", subscription_id, status.value)

    async def _on_transaction_completed(self, event: BillingEvent) -> None:
        logger.info(
            "Transaction %s completed (subscription=%s)",
            event.data.get("id"),
            event.data.get("subscription_id"),
        )
