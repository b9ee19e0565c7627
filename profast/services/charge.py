# profast/services/charge.py
from __future__ import annotations

import logging
from typing import Optional

import httpx

from profast.core.errors import GatewayError

logger = logging.getLogger(__name__)


class StripeCharge:
    """Creates card payment intents through the Stripe REST API."""

    def __init__(
        self,
        secret_key: str,
        api_base: str = "https://api.stripe.com",
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.secret_key = secret_key
        self.api_base = api_base.rstrip("/")
        self.timeout = httpx.Timeout(timeout, connect=5.0)
        self.transport = transport

    async def create_payment_intent(self, amount_minor_units: int, currency: str = "usd") -> str:
        if not self.secret_key:
            raise GatewayError("Payment gateway is not configured")

        data = {
            "amount": str(amount_minor_units),
            "currency": currency,
            "payment_method_types[]": "card",
        }
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                r = await client.post(
                    f"{self.api_base}/v1/payment_intents",
                    data=data,
                    auth=(self.secret_key, ""),
                )
        except httpx.HTTPError as exc:
            logger.error("Payment gateway unreachable: %s", exc)
            raise GatewayError("Payment gateway unreachable") from exc

        try:
            js = r.json()
        except ValueError:
            js = {}
        if r.status_code >= 400:
            message = (js.get("error") or {}).get("message") or f"Gateway returned {r.status_code}"
            logger.warning("Payment intent rejected (%s): %s", r.status_code, message)
            raise GatewayError(message)

        secret = js.get("client_secret")
        if not secret:
            raise GatewayError("Gateway response carried no client secret")
        return secret
