"""Billing vocabulary: internal subscription states and inbound events."""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class SubscriptionStatus(str, Enum):
    """Internal subscription status.  ``PENDING`` absorbs unknown processor values."""

    ACTIVE = "active"
    TRIALING = "trialing"
    PAST_DUE = "past_due"
    PAUSED = "paused"
    CANCELED = "canceled"
    EXPIRED = "expired"
    PENDING = "pending"


class PlanInterval(str, Enum):
    MONTHLY = "monthly"
    YEARLY = "yearly"


class BillingEvent(BaseModel):
    """An inbound billing-processor notification after signature verification."""

    event_id: str = Field(..., min_length=1)
    event_type: str = Field(..., min_length=1)
    occurred_at: str | None = None
    data: dict[str, Any] = Field(default_factory=dict)

    @property
    def subscription_id(self) -> str | None:
        """The subscription the event concerns (``data.subscription_id`` or ``data.id``)."""
        return self.data.get("subscription_id") or self.data.get("id")
