import hashlib
import hmac
import json

import httpx
import pytest

from greenleaf.payments.gateway import RazorpayGateway, compute_signature, verify_signature
from greenleaf.shared.exceptions import GatewayException


def test_signature_is_hmac_of_order_and_payment():
    expected = hmac.new(b"secret", b"order_1|pay_1", hashlib.sha256).hexdigest()
    assert compute_signature("secret", "order_1", "pay_1") == expected
    assert verify_signature("secret", "order_1", "pay_1", expected)

def test_signature_with_one_character_changed_fails():
    signature = compute_signature("secret", "order_1", "pay_1")
    tampered = signature[:-1] + ("0" if signature[-1] != "0" else "1")
    assert not verify_signature("secret", "order_1", "pay_1", tampered)

def test_signature_requires_secret_and_signature():
    signature = compute_signature("secret", "order_1", "pay_1")
    assert not verify_signature("", "order_1", "pay_1", signature)
    assert not verify_signature("secret", "order_1", "pay_1", "")


async def test_create_intent_posts_order():
    seen = {}

    def handler(request: httpx.Request):
        seen["url"] = str(request.url)
        seen["auth"] = request.headers["Authorization"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"id": "order_N1", "amount": 100000, "currency": "INR", "status": "created"})

    gateway = RazorpayGateway("key_id", "key_secret", transport=httpx.MockTransport(handler))
    intent = await gateway.create_intent(100000, "INR", "receipt_1")

    assert intent.intent_id == "order_N1"
    assert intent.amount == 100000
    assert seen["url"] == "https://api.razorpay.com/v1/orders"
    assert seen["auth"].startswith("Basic ")
    assert seen["body"] == {"amount": 100000, "currency": "INR", "receipt": "receipt_1"}

async def test_create_intent_gateway_rejection():
    transport = httpx.MockTransport(lambda request: httpx.Response(401, json={"error": "bad key"}))
    gateway = RazorpayGateway("key_id", "wrong", transport=transport)
    with pytest.raises(GatewayException) as exc_info:
        await gateway.create_intent(100, "INR", "receipt_1")
    assert exc_info.value.status_code == 500

async def test_create_intent_gateway_unreachable():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    gateway = RazorpayGateway("key_id", "key_secret", transport=httpx.MockTransport(handler))
    with pytest.raises(GatewayException):
        await gateway.create_intent(100, "INR", "receipt_1")
