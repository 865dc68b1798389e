"""
Payment gateway adapter (Razorpay).

The gateway mints an order ("intent") for an amount in minor currency units.
After the customer pays, the storefront relays ``razorpay_order_id``,
``razorpay_payment_id`` and ``razorpay_signature`` back; the signature is the
hex HMAC-SHA256 of ``"<order_id>|<payment_id>"`` keyed with the API secret.
"""
import hashlib
import hmac
import logging
from dataclasses import dataclass
from typing import Optional

import httpx

from greenleaf.shared.exceptions import GatewayException

logger = logging.getLogger(__name__)


@dataclass
class PaymentIntent:
    intent_id: str
    amount: int
    currency: str


def compute_signature(secret: str, order_id: str, payment_id: str) -> str:
    message = f"{order_id}|{payment_id}".encode()
    return hmac.new(secret.encode(), message, hashlib.sha256).hexdigest()


def verify_signature(secret: str, order_id: str, payment_id: str, signature: str) -> bool:
    if not secret or not signature:
        return False
    expected = compute_signature(secret, order_id, payment_id)
    return hmac.compare_digest(expected.encode(), signature.encode())


class PaymentGateway:
    async def create_intent(self, amount_minor_units: int, currency: str, receipt: str) -> PaymentIntent:
        raise NotImplementedError


class RazorpayGateway(PaymentGateway):
    def __init__(
        self,
        key_id: str,
        key_secret: str,
        api_url: str = "https://api.razorpay.com/v1",
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.key_id = key_id
        self.key_secret = key_secret
        self.api_url = api_url
        self.timeout = timeout
        self.transport = transport

    async def create_intent(self, amount_minor_units: int, currency: str, receipt: str) -> PaymentIntent:
        payload = {"amount": amount_minor_units, "currency": currency, "receipt": receipt}
        async with httpx.AsyncClient(
            base_url=self.api_url,
            auth=(self.key_id, self.key_secret),
            timeout=self.timeout,
            transport=self.transport,
        ) as client:
            try:
                response = await client.post("/orders", json=payload)
                response.raise_for_status()
            except httpx.RequestError as exc:
                logger.error(f"Razorpay unreachable: {exc}")
                raise GatewayException("Payment gateway unavailable")
            except httpx.HTTPStatusError as exc:
                logger.error(
                    f"Razorpay rejected order creation: {exc.response.status_code} {exc.response.text}"
                )
                raise GatewayException("Server error in order creation")

        data = response.json()
        logger.info(f"Razorpay order created: {data.get('id')}")
        return PaymentIntent(intent_id=data["id"], amount=data["amount"], currency=data["currency"])
