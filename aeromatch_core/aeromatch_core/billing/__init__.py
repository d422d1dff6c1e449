"""Billing rules: plan catalog, webhook signatures, status mapping."""

from aeromatch_core.billing.plans import (
    PLANS,
    Plan,
    ProcessorEnv,
    format_price,
    get_plan,
    is_placeholder_price,
    plan_for_price_id,
    plans_for_role,
)
from aeromatch_core.billing.signature import SIGNATURE_HEADER, parse_signature_header, verify_signature
from aeromatch_core.billing.status import map_processor_status

__all__ = [
    "PLANS",
    "SIGNATURE_HEADER",
    "Plan",
    "ProcessorEnv",
    "format_price",
    "get_plan",
    "is_placeholder_price",
    "map_processor_status",
    "parse_signature_header",
    "plan_for_price_id",
    "plans_for_role",
    "verify_signature",
]
