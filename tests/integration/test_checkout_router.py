import pytest

from unified_checkout.errors import (
    CartNotFound,
    CheckoutError,
    ClientInputError,
    DuplicateSubmission,
    GatewayFailure,
)

BODY = {
    "sessionToken": "tok-1",
    "customerName": "Ada",
    "customerEmail": "ada@example.com",
    "sourceId": "cnon:card-nonce-ok",
}


def _result(trace_id):
    return {
        "trace_id": trace_id,
        "checkout_session_id": "cs-1",
        "square_payment_id": "sq-1",
        "shop_order_id": "so-1",
        "booking_id": None,
    }


def test_checkout_success_returns_ids_and_trace_header(client, monkeypatch):
    seen = {}

    def fake_run(req, trace_id):
        seen["req"] = req
        return _result(trace_id)

    monkeypatch.setattr("unified_checkout.checkout.service.run_checkout", fake_run)
    r = client.post("/api/v1/checkout", json=BODY)

    assert r.status_code == 200
    data = r.json()
    assert data["success"] is True
    assert data["checkoutSessionId"] == "cs-1"
    assert data["squarePaymentId"] == "sq-1"
    assert data["shopOrderId"] == "so-1"
    assert data["bookingId"] is None
    assert r.headers["X-Trace-Id"] == data["traceId"]
    assert seen["req"].session_token == "tok-1"
    assert seen["req"].source_id == "cnon:card-nonce-ok"


def test_checkout_accepts_snake_case_body(client, monkeypatch):
    monkeypatch.setattr(
        "unified_checkout.checkout.service.run_checkout",
        lambda req, trace_id: _result(trace_id) if req.customer_email == "ada@example.com" else None,
    )
    r = client.post("/api/v1/checkout", json={
        "session_token": "tok-1",
        "customer_name": "Ada",
        "customer_email": "ada@example.com",
        "source_id": "cnon:card-nonce-ok",
    })
    assert r.status_code == 200


def test_checkout_missing_fields_is_400_error_payload(client, monkeypatch):
    # Le service réel valide les champs avant tout accès au datastore
    r = client.post("/api/v1/checkout", json={"sessionToken": "tok-1"})
    assert r.status_code == 400
    assert r.json() == {"error": "Missing required fields"}


def test_checkout_invalid_json_is_400(client):
    r = client.post("/api/v1/checkout", content=b"not json", headers={"Content-Type": "application/json"})
    assert r.status_code == 400
    assert "error" in r.json()


@pytest.mark.parametrize("exc,status,payload", [
    (CartNotFound(), 400, {"error": "Cart not found or expired"}),
    (ClientInputError("Cart is empty"), 400, {"error": "Cart is empty"}),
    (DuplicateSubmission("sq-prev"), 400,
     {"error": "This cart has already been checked out", "paymentId": "sq-prev"}),
    (GatewayFailure("Payment failed: Card declined", "declined"), 400,
     {"error": "Payment failed: Card declined"}),
    (GatewayFailure("Payment failed: timeout", "timeout"), 502, {"error": "Payment failed: timeout"}),
])
def test_checkout_errors_are_rendered_with_status(client, monkeypatch, exc, status, payload):
    def fake_run(req, trace_id):
        raise exc

    monkeypatch.setattr("unified_checkout.checkout.service.run_checkout", fake_run)
    r = client.post("/api/v1/checkout", json=BODY)
    assert r.status_code == status
    assert r.json() == payload


def test_checkout_unexpected_error_is_generic_500(client, monkeypatch):
    def fake_run(req, trace_id):
        raise RuntimeError("db password leaked in message")

    monkeypatch.setattr("unified_checkout.checkout.service.run_checkout", fake_run)
    r = client.post("/api/v1/checkout", json=BODY)
    assert r.status_code == 500
    assert r.json() == {"error": "Internal server error"}


def test_get_session_status(client, monkeypatch):
    monkeypatch.setattr(
        "unified_checkout.checkout.service.get_session_status",
        lambda session_id: {
            "id": session_id,
            "status": "paid",
            "square_payment_id": "sq-1",
            "amount_total_cents": 4860,
            "currency": "USD",
            "paid_at": "2026-10-19T10:00:00+00:00",
            "error_message": None,
        },
    )
    r = client.get("/api/v1/checkout/sessions/cs-1")
    assert r.status_code == 200
    data = r.json()
    assert data["checkoutSessionId"] == "cs-1"
    assert data["status"] == "paid"
    assert data["amountTotalCents"] == 4860


def test_get_session_status_not_found(client, monkeypatch):
    def missing(session_id):
        raise CheckoutError("Checkout session not found", status_code=404)

    monkeypatch.setattr("unified_checkout.checkout.service.get_session_status", missing)
    r = client.get("/api/v1/checkout/sessions/nope")
    assert r.status_code == 404
    assert r.json() == {"error": "Checkout session not found"}
