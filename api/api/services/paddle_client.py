"""HTTP client for the Paddle Billing API.

Only checkout-transaction creation is needed: subscriptions are created by
Paddle once the customer pays, and reported back through the webhook.
Methods return ``None`` on any transport or HTTP failure and log the
cause; the billing service turns that into a user-facing error.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx
from aeromatch_core.billing.plans import ProcessorEnv

logger = logging.getLogger(__name__)

_API_URLS: dict[ProcessorEnv, str] = {
    ProcessorEnv.SANDBOX: "https://sandbox-api.paddle.com",
    ProcessorEnv.PRODUCTION: "https://api.paddle.com",
}

_CHECKOUT_URLS: dict[ProcessorEnv, str] = {
    ProcessorEnv.SANDBOX: "https://sandbox-buy.paddle.com",
    ProcessorEnv.PRODUCTION: "https://buy.paddle.com",
}


class CheckoutSession:
    """Result of creating a checkout transaction."""

    __slots__ = ("transaction_id", "checkout_url")

    def __init__(self, transaction_id: str, checkout_url: str) -> None:
        self.transaction_id = transaction_id
        self.checkout_url = checkout_url


class PaddleClient:
    """Async wrapper around the Paddle REST API.

    Parameters
    ----------
    api_key:
        Server-side Paddle API key.
    env:
        Selects the sandbox or production API host.
    timeout:
        Per-request timeout in seconds.
    """

    def __init__(
        self,
        api_key: str,
        env: ProcessorEnv = ProcessorEnv.SANDBOX,
        timeout: float = 15.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._env = env
        self._api_key = api_key
        self._client = httpx.AsyncClient(
            base_url=_API_URLS[env],
            timeout=httpx.Timeout(timeout),
            headers={"Authorization": f"Bearer {api_key}", "Content-Type": "application/json"},
            transport=transport,
        )

    @property
    def env(self) -> ProcessorEnv:
        return self._env

    @property
    def configured(self) -> bool:
        return bool(self._api_key)

    async def create_checkout(self, price_id: str, custom_data: dict[str, str]) -> CheckoutSession | None:
        """Create a one-item transaction and return its hosted-checkout URL.

        ``custom_data`` is echoed back on every webhook for the resulting
        subscription, which is how the webhook processor learns the user.
        When Paddle omits ``checkout.url`` the default buy page is used.
        """
        result = await self._post(
            "/transactions",
            {"items": [{"price_id": price_id, "quantity": 1}], "custom_data": custom_data},
        )
        if result is None:
            return None

        data = result.get("data") or {}
        transaction_id = data.get("id")
        if not transaction_id:
            logger.warning("Paddle transaction response has no id")
            return None

        checkout_url = (data.get("checkout") or {}).get("url")
        if not checkout_url:
            checkout_url = f"{_CHECKOUT_URLS[self._env]}?_ptxn={transaction_id}"
        logger.info("Paddle transaction created: %s", transaction_id)
        return CheckoutSession(transaction_id=transaction_id, checkout_url=checkout_url)

    async def close(self) -> None:
        await self._client.aclose()

    # -- Internal helpers ----------------------------------------------------

    async def _post(self, path: str, payload: dict[str, Any]) -> dict[str, Any] | None:
        try:
            response = await self._client.post(path, json=payload)
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as exc:
            logger.warning(
                "Paddle returned %d for %s: %s",
                exc.response.status_code,
                path,
                exc.response.text[:500],
            )
            return None
        except httpx.RequestError as exc:
            logger.warning("Paddle request to %s failed: %s", path, exc)
            return None
