"""Translation of processor subscription statuses to the internal vocabulary."""

from __future__ import annotations

from aeromatch_core.models.billing import SubscriptionStatus

_STATUS_MAP: dict[str, SubscriptionStatus] = {
    "active": SubscriptionStatus.ACTIVE,
    "trialing": SubscriptionStatus.TRIALING,
    "past_due": SubscriptionStatus.PAST_DUE,
    "paused": SubscriptionStatus.PAUSED,
    "canceled": SubscriptionStatus.CANCELED,
    "expired": SubscriptionStatus.EXPIRED,
}

# Event types that carry a subscription-status change, mapped to the
# status they imply when the payload itself has none.
EVENT_STATUS_OVERRIDES: dict[str, SubscriptionStatus] = {
    "subscription.canceled": SubscriptionStatus.CANCELED,
    "subscription.paused": SubscriptionStatus.PAUSED,
    "subscription.resumed": SubscriptionStatus.ACTIVE,
    "subscription.past_due": SubscriptionStatus.PAST_DUE,
}


def map_processor_status(raw: str | None) -> SubscriptionStatus:
    """Map a processor status string; anything unrecognised becomes ``PENDING``."""
    if raw is None:
        return SubscriptionStatus.PENDING
    return _STATUS_MAP.get(raw, SubscriptionStatus.PENDING)
