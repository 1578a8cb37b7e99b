import httpx
import pytest

from unified_checkout.payments import square_client
from unified_checkout.payments.square_client import GatewayError, classify_error


def _kwargs(**over):
    kw = dict(
        amount_cents=4860,
        currency="USD",
        source_token="cnon:card-nonce-ok",
        idempotency_key="unified-abc-1-deadbeef",
        reference_id="sess-1",
        location_id="LOC1",
        buyer_email="jane@example.com",
    )
    kw.update(over)
    return kw


@pytest.fixture(autouse=True)
def _token(monkeypatch):
    monkeypatch.setattr("unified_checkout.payments.square_client.config.SQUARE_ACCESS_TOKEN", "sq-token")


def test_create_payment_success_sends_idempotency_key(monkeypatch):
    seen = {}

    def fake_post(url, payload):
        seen["url"] = url
        seen["payload"] = payload
        return httpx.Response(200, json={"payment": {"id": "PAY1", "status": "COMPLETED"}})

    monkeypatch.setattr(square_client, "_post", fake_post)
    res = square_client.create_payment(**_kwargs())

    assert res == {"id": "PAY1", "status": "COMPLETED"}
    assert seen["url"].endswith("/v2/payments")
    assert seen["payload"]["idempotency_key"] == "unified-abc-1-deadbeef"
    assert seen["payload"]["amount_money"] == {"amount": 4860, "currency": "USD"}
    assert seen["payload"]["buyer_email_address"] == "jane@example.com"


def test_create_payment_declined(monkeypatch):
    body = {"errors": [{"category": "PAYMENT_METHOD_ERROR", "code": "CARD_DECLINED", "detail": "Card declined."}]}
    monkeypatch.setattr(square_client, "_post", lambda url, payload: httpx.Response(402, json=body))

    with pytest.raises(GatewayError) as ei:
        square_client.create_payment(**_kwargs())
    assert ei.value.kind == square_client.DECLINED
    assert ei.value.message == "Card declined."
    assert ei.value.code == "CARD_DECLINED"


def test_create_payment_missing_token_is_configuration(monkeypatch):
    monkeypatch.setattr("unified_checkout.payments.square_client.config.SQUARE_ACCESS_TOKEN", "")
    with pytest.raises(GatewayError) as ei:
        square_client.create_payment(**_kwargs())
    assert ei.value.kind == square_client.CONFIGURATION


def test_create_payment_timeout_is_terminal(monkeypatch):
    calls = {"n": 0}

    def fake_post(*a, **kw):
        calls["n"] += 1
        raise httpx.ReadTimeout("read timed out")

    monkeypatch.setattr(square_client.httpx, "post", fake_post)
    with pytest.raises(GatewayError) as ei:
        square_client.create_payment(**_kwargs())
    assert ei.value.kind == square_client.TIMEOUT
    assert calls["n"] == 1


def test_connect_error_retried_with_same_key(monkeypatch):
    keys = []

    def fake_post(url, json=None, headers=None, timeout=None):
        keys.append(json["idempotency_key"])
        if len(keys) == 1:
            raise httpx.ConnectError("connection refused")
        return httpx.Response(200, json={"payment": {"id": "PAY2", "status": "APPROVED"}})

    monkeypatch.setattr(square_client.httpx, "post", fake_post)
    res = square_client.create_payment(**_kwargs())

    assert res["id"] == "PAY2"
    assert keys == ["unified-abc-1-deadbeef", "unified-abc-1-deadbeef"]


def test_response_without_payment_id_is_network_error(monkeypatch):
    monkeypatch.setattr(square_client, "_post", lambda url, payload: httpx.Response(200, json={}))
    with pytest.raises(GatewayError) as ei:
        square_client.create_payment(**_kwargs())
    assert ei.value.kind == square_client.NETWORK


@pytest.mark.parametrize("status,body,kind", [
    (401, {"errors": [{"category": "AUTHENTICATION_ERROR", "code": "UNAUTHORIZED"}]}, "configuration"),
    (400, {"errors": [{"category": "INVALID_REQUEST_ERROR", "code": "NOT_FOUND", "detail": "Location not found"}]}, "configuration"),
    (400, {"errors": [{"category": "PAYMENT_METHOD_ERROR", "code": "INSUFFICIENT_FUNDS"}]}, "declined"),
    (500, {"errors": [{"category": "API_ERROR", "code": "INTERNAL_SERVER_ERROR"}]}, "network"),
    (429, {"errors": [{"category": "RATE_LIMIT_ERROR", "code": "RATE_LIMITED"}]}, "network"),
    (503, {}, "network"),
])
def test_classify_error(status, body, kind):
    err = classify_error(status, body)
    assert err.kind == kind
    assert err.status_code == status
