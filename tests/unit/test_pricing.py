import pytest

from unified_checkout.checkout.pricing import (
    PriceSnapshot,
    compute_tax_cents,
    dollars_to_cents,
    snapshot_prices,
)


@pytest.mark.parametrize("subtotal,expected", [
    (0, 0),
    (2000, 160),
    (4500, 360),
    (1, 0),
    (7, 1),       # 0.56 -> 1
    (6, 0),       # 0.48 -> 0
    (1250, 100),
    (1256, 100),  # 100.48 -> 100
    (1257, 101),  # 100.56 -> 101
])
def test_compute_tax_rounds_half_up(subtotal, expected):
    assert compute_tax_cents(subtotal) == expected


def test_compute_tax_rejects_negative():
    with pytest.raises(ValueError):
        compute_tax_cents(-1)


@pytest.mark.parametrize("price,expected", [
    (25, 2500),
    ("25.00", 2500),
    (19.99, 1999),
    (None, 0),
    ("abc", 0),
])
def test_dollars_to_cents(price, expected):
    assert dollars_to_cents(price) == expected


def test_snapshot_recomputes_line_totals_from_unit_price():
    items = [
        {"item_type": "product", "unit_price_cents": 1000, "quantity": 2, "line_total_cents": 1},
        {"item_type": "product", "unit_price_cents": 350, "quantity": 3, "line_total_cents": 999999},
    ]
    snap = snapshot_prices(items)
    assert snap.subtotal_cents == 3050
    assert snap.tax_cents == 244
    assert snap.total_cents == 3294
    assert snap.booking_price_cents == 0


def test_snapshot_mixed_cart_totals():
    items = [{"item_type": "product", "unit_price_cents": 1000, "quantity": 2}]
    snap = snapshot_prices(items, {"name": "Haircut", "price": 25.0})
    assert snap.subtotal_cents == 4500
    assert snap.tax_cents == 360
    assert snap.total_cents == 4860
    assert snap.service_name == "Haircut"
    assert snap.order_amounts() == {"subtotal_cents": 2000, "tax_cents": 160, "total_cents": 2160}


def test_snapshot_missing_service_prices_booking_at_zero():
    snap = snapshot_prices([], {})
    assert snap.booking_price_cents == 0
    assert snap.service_name == "Service"
    assert snap.total_cents == 0


def test_total_is_subtotal_plus_tax():
    snap = PriceSnapshot(12345, booking_price_cents=678)
    assert snap.total_cents == snap.subtotal_cents + snap.tax_cents
    assert snap.subtotal_cents == 13023
