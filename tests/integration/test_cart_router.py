import pytest

REPO = "unified_checkout.carts.repository"


@pytest.fixture
def cart_repo(monkeypatch, cart):
    """Datastore du panier en mémoire: un panier actif pour tok-1."""
    calls = {"inserted": [], "updated": [], "drafts": [], "touched": []}
    monkeypatch.setattr(f"{REPO}.find_active_cart", lambda token, business_id=None: cart if token == "tok-1" else None)
    monkeypatch.setattr(f"{REPO}.fetch_cart_items", lambda cart_id: [])
    monkeypatch.setattr(f"{REPO}.fetch_booking_draft", lambda cart_id: None)
    monkeypatch.setattr(f"{REPO}.find_cart_item", lambda cart_id, item_type, ref_id: None)
    monkeypatch.setattr(f"{REPO}.insert_cart_item", lambda row: calls["inserted"].append(row) or row)
    monkeypatch.setattr(f"{REPO}.upsert_booking_draft", lambda row: calls["drafts"].append(row) or row)
    monkeypatch.setattr(f"{REPO}.touch_cart", lambda cart_id: calls["touched"].append(cart_id))
    return calls


def test_get_or_create_returns_existing_cart(client, cart_repo, cart):
    r = client.post("/api/v1/cart", json={"businessId": "biz-1", "sessionToken": "tok-1"})
    assert r.status_code == 200
    data = r.json()
    assert data["cart"]["id"] == cart["id"]
    assert data["items"] == []
    assert data["booking"] is None


def test_get_or_create_requires_business_id(client):
    r = client.post("/api/v1/cart", json={"sessionToken": "tok-1"})
    assert r.status_code == 400
    assert "businessId" in r.json()["error"]


def test_add_product_reads_price_server_side(client, cart_repo, monkeypatch, cart):
    monkeypatch.setattr(
        f"{REPO}.fetch_product",
        lambda item_id, business_id: {"id": item_id, "name": "Mug", "price_cents": 1000},
    )
    r = client.post("/api/v1/cart/items", json={
        "sessionToken": "tok-1", "businessId": "biz-1",
        "itemType": "product", "itemId": "p-1", "quantity": 3,
    })
    assert r.status_code == 200
    assert r.json() == {"success": True, "cartId": cart["id"]}
    row = cart_repo["inserted"][0]
    assert row["unit_price_cents"] == 1000
    assert row["line_total_cents"] == 3000
    assert row["title_snapshot"] == "Mug"
    assert cart_repo["touched"] == [cart["id"]]


def test_add_item_rejects_zero_quantity(client, cart_repo):
    r = client.post("/api/v1/cart/items", json={
        "sessionToken": "tok-1", "businessId": "biz-1",
        "itemType": "product", "itemId": "p-1", "quantity": 0,
    })
    assert r.status_code == 400
    assert r.json() == {"error": "Quantity must be greater than 0"}


def test_add_item_from_other_business_is_rejected(client, cart_repo):
    r = client.post("/api/v1/cart/items", json={
        "sessionToken": "tok-1", "businessId": "biz-2",
        "itemType": "product", "itemId": "p-1", "quantity": 1,
    })
    assert r.status_code == 400
    assert "different businesses" in r.json()["error"]


def test_add_unknown_product_is_404(client, cart_repo, monkeypatch):
    monkeypatch.setattr(f"{REPO}.fetch_product", lambda item_id, business_id: None)
    r = client.post("/api/v1/cart/items", json={
        "sessionToken": "tok-1", "businessId": "biz-1",
        "itemType": "product", "itemId": "missing",
    })
    assert r.status_code == 404
    assert r.json() == {"error": "Product not found or inactive"}


def test_set_booking_stores_draft(client, cart_repo, monkeypatch, cart):
    monkeypatch.setattr(f"{REPO}.fetch_service", lambda service_id, business_id=None: {"id": service_id, "price": 25})
    r = client.put("/api/v1/cart/booking", json={
        "sessionToken": "tok-1", "businessId": "biz-1", "serviceId": "svc-1",
        "startTime": "2026-11-02T15:00:00Z", "endTime": "2026-11-02T16:30:00Z",
        "timezone": "America/Chicago", "notes": "Window seat",
    })
    assert r.status_code == 200
    draft = cart_repo["drafts"][0]
    assert draft["cart_id"] == cart["id"]
    assert draft["status"] == "draft"
    assert draft["notes"] == "Window seat"


def test_set_booking_rejects_inverted_times(client, cart_repo):
    r = client.put("/api/v1/cart/booking", json={
        "sessionToken": "tok-1", "businessId": "biz-1", "serviceId": "svc-1",
        "startTime": "2026-11-02T16:30:00Z", "endTime": "2026-11-02T15:00:00Z",
        "timezone": "America/Chicago",
    })
    assert r.status_code == 400
    assert r.json() == {"error": "endTime must be after startTime"}


def test_remove_item_unknown_cart_is_400(client, cart_repo):
    r = client.delete("/api/v1/cart/items/ci-1", params={"session_token": "unknown"})
    assert r.status_code == 400
    assert r.json() == {"error": "Cart not found or expired"}


def test_clear_without_active_cart_is_noop(client, cart_repo):
    r = client.post("/api/v1/cart/clear", json={"sessionToken": "unknown"})
    assert r.status_code == 200
    assert r.json() == {"success": True, "message": "No active cart found"}
