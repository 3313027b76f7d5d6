import hashlib
import hmac
import json
from decimal import Decimal

import httpx
import pytest

from restaurant.core.errors import UpstreamError
from restaurant.services.paystack import PaystackClient, to_minor_units

SECRET = "sk_test_client"


def _client(handler, **kwargs) -> PaystackClient:
    return PaystackClient(secret_key=SECRET, transport=httpx.MockTransport(handler), **kwargs)


def test_minor_units():
    assert to_minor_units(Decimal("4000.00")) == 400000
    assert to_minor_units(Decimal("0.1")) == 10
    assert to_minor_units(Decimal("10.005")) == 1001


def test_initialize_sends_kobo_with_bearer_auth():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["auth"] = request.headers["Authorization"]
        seen["method"] = request.method
        seen["path"] = request.url.path
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={
            "status": True,
            "message": "Authorization URL created",
            "data": {"authorization_url": "https://checkout.paystack.com/abc", "access_code": "abc", "reference": "ref123"},
        })

    gateway = _client(handler, callback_url="https://shop.example.com/payment/callback")
    txn = gateway.initialize_transaction("ada@example.com", Decimal("4000.00"), {"order_id": 7})

    assert seen["auth"] == f"Bearer {SECRET}"
    assert (seen["method"], seen["path"]) == ("POST", "/transaction/initialize")
    assert seen["body"]["amount"] == 400000
    assert seen["body"]["email"] == "ada@example.com"
    assert seen["body"]["metadata"] == {"order_id": 7}
    assert seen["body"]["callback_url"] == "https://shop.example.com/payment/callback"
    assert txn.authorization_url == "https://checkout.paystack.com/abc"
    assert txn.reference == "ref123"
    assert txn.access_code == "abc"


def test_initialize_omits_callback_when_unset():
    seen = {}

    def handler(request):
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"status": True, "data": {"authorization_url": "u", "reference": "r"}})

    _client(handler).initialize_transaction("a@example.com", Decimal("1"), {})
    assert "callback_url" not in seen["body"]


def test_gateway_rejection_raises_upstream_error():
    def handler(request):
        return httpx.Response(401, json={"status": False, "message": "Invalid key"})

    with pytest.raises(UpstreamError) as exc:
        _client(handler).initialize_transaction("a@example.com", Decimal("1"), {})
    assert exc.value.status_code == 502
    assert exc.value.message == "Paystack error: Invalid key"


def test_false_status_on_200_is_an_error():
    def handler(request):
        return httpx.Response(200, json={"status": False, "message": "Duplicate Transaction Reference"})

    with pytest.raises(UpstreamError, match="Duplicate Transaction Reference"):
        _client(handler).verify_transaction("ref123")


def test_incomplete_initialize_response_is_an_error():
    def handler(request):
        return httpx.Response(200, json={"status": True, "data": {"reference": "r"}})

    with pytest.raises(UpstreamError, match="incomplete"):
        _client(handler).initialize_transaction("a@example.com", Decimal("1"), {})


def test_network_failure_raises_upstream_error():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(UpstreamError) as exc:
        _client(handler).initialize_transaction("a@example.com", Decimal("1"), {})
    assert exc.value.message == "Payment gateway unavailable"


def test_verify_parses_status_and_amount():
    def handler(request):
        assert request.method == "GET"
        assert request.url.path == "/transaction/verify/ref123"
        return httpx.Response(200, json={
            "status": True,
            "message": "Verification successful",
            "data": {"reference": "ref123", "status": "success", "amount": 400000, "currency": "NGN"},
        })

    txn = _client(handler).verify_transaction("ref123")
    assert txn.reference == "ref123"
    assert txn.status == "success"
    assert txn.amount_minor == 400000


def test_signature_verification():
    gateway = PaystackClient(secret_key=SECRET)
    body = b'{"event":"charge.success","data":{"reference":"ref123"}}'
    good = hmac.new(SECRET.encode(), body, hashlib.sha512).hexdigest()

    assert gateway.verify_signature(body, good)
    assert not gateway.verify_signature(body + b" ", good)
    assert not gateway.verify_signature(body, "0" * len(good))
    assert not gateway.verify_signature(body, None)
    assert not PaystackClient(secret_key="").verify_signature(body, good)
