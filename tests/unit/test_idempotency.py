import pytest

from unified_checkout.checkout.idempotency import IdempotencyKey


def test_for_cart_format_and_length():
    key = IdempotencyKey.for_cart("11111111-2222-3333-4444-555555555555")
    parts = str(key).split("-")
    assert parts[0] == "unified"
    assert parts[1] == "111111112222"
    assert parts[2].isdigit()
    assert len(parts[3]) == 8
    # Limite Square: 45 caractères
    assert len(str(key)) <= 45


def test_for_cart_is_unique_per_attempt():
    a = IdempotencyKey.for_cart("cart-1")
    b = IdempotencyKey.for_cart("cart-1")
    assert a != b


def test_derive_appends_suffix():
    key = IdempotencyKey("unified-abc-1-deadbeef")
    assert str(key.derive("booking")) == "unified-abc-1-deadbeef-booking"


def test_equality_and_hash():
    assert IdempotencyKey("k") == IdempotencyKey("k")
    assert len({IdempotencyKey("k"), IdempotencyKey("k")}) == 1
    assert IdempotencyKey("k") != "k"


def test_empty_key_rejected():
    with pytest.raises(ValueError):
        IdempotencyKey("")
