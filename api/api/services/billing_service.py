"""Paddle billing: plan catalog, checkout creation, and subscription lookup."""

from __future__ import annotations

import logging

from aeromatch_core.billing.plans import (
    PLANS,
    Plan,
    ProcessorEnv,
    format_price,
    get_plan,
    is_placeholder_price,
    plans_for_role,
)
from aeromatch_core.errors import AuthorizationError, DomainValidationError, ExternalServiceError, NotFoundError
from aeromatch_core.models.profile import Role
from aeromatch_core.state.repository import BillingCustomerRepository, SubscriptionRepository
from sqlalchemy.ext.asyncio import AsyncSession

from api.schemas import CheckoutResponse, PlanResponse, SubscriptionResponse
from api.services.paddle_client import PaddleClient

logger = logging.getLogger(__name__)


def describe_plan(plan: Plan, env: ProcessorEnv, language: str = "en") -> PlanResponse:
    """Render a catalog entry for the pricing page in *language*."""
    return PlanResponse(
        key=plan.key,
        role=plan.role.value,
        name=plan.name.get(language, plan.name["en"]),
        description=plan.description.get(language, plan.description["en"]),
        price_eur=plan.price_eur,
        price_label=format_price(plan.price_eur, plan.interval, language),
        interval=plan.interval.value,
        features=plan.features.get(language, plan.features["en"]),
        popular=plan.popular,
        available=not is_placeholder_price(plan.price_id(env)),
    )


def list_plans(env: ProcessorEnv, role: Role | None = None, language: str = "en") -> list[PlanResponse]:
    plans = plans_for_role(role) if role is not None else list(PLANS)
    return [describe_plan(plan, env, language) for plan in plans]


class BillingService:
    """Billing operations for a single user.

    Parameters
    ----------
    session:
        Active database session scoped to the user.
    paddle:
        Processor API client.
    user_id:
        The user performing billing operations.
    """

    def __init__(
        self,
        session: AsyncSession,
        paddle: PaddleClient,
        *,
        user_id: str,
    ) -> None:
        self._session = session
        self._paddle = paddle
        self._user_id = user_id

    async def create_checkout(
        self,
        plan_key: str | None,
        role: Role | None,
        email: str | None,
    ) -> CheckoutResponse:
        """Start a hosted checkout for *plan_key*.

        Raises
        ------
        DomainValidationError
            Missing or unknown plan key.
        NotFoundError
            The caller has not chosen a role yet.
        AuthorizationError
            The plan belongs to the other marketplace side.
        ExternalServiceError
            The plan has no configured price, or Paddle rejected the request.
        """
        if not plan_key:
            raise DomainValidationError("Plan key is required")
        if role is None:
            raise NotFoundError("Profile not found")

        plan = get_plan(plan_key)
        if plan is None:
            raise DomainValidationError("Invalid plan")
        if plan.role is not role:
            raise AuthorizationError("Plan not available for your account type")

        price_id = plan.price_id(self._paddle.env)
        if is_placeholder_price(price_id) or not self._paddle.configured:
            logger.error("Checkout requested for unconfigured plan %s (%s)", plan.key, self._paddle.env.value)
            raise ExternalServiceError("Payment system not configured. Please contact support.")

        await BillingCustomerRepository(self._session).upsert(self._user_id, email)

        checkout = await self._paddle.create_checkout(
            price_id,
            custom_data={"user_id": self._user_id, "plan_key": plan.key, "role": role.value},
        )
        if checkout is None:
            raise ExternalServiceError("Failed to create checkout session")

        logger.info("Checkout %s created for user %s (plan=%s)", checkout.transaction_id, self._user_id, plan.key)
        return CheckoutResponse(checkout_url=checkout.checkout_url, transaction_id=checkout.transaction_id)

    async def get_subscription(self) -> SubscriptionResponse | None:
        row = await SubscriptionRepository(self._session).get_latest_for_user(self._user_id)
        if row is None:
            return None
        return SubscriptionResponse.model_validate(row)
