"""
Cas d'usage 'carts': panier durable identifié par un session_token opaque fourni par le client.
- Le token est passé explicitement à chaque appel (aucun état implicite côté serveur).
- Un panier non 'active' n'est jamais modifié.
- Les prix sont toujours relus côté serveur; line_total_cents = unit_price_cents × quantity.
"""
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Tuple
from uuid import uuid4
import logging

from unified_checkout.config import CART_TTL_HOURS
from unified_checkout.errors import CartNotFound, ClientInputError, CheckoutError
from unified_checkout.checkout.pricing import dollars_to_cents, line_total_cents
from . import repository

logger = logging.getLogger(__name__)

ITEM_TYPES = ("product", "service")


def _parse_ts(value: Any) -> datetime:
    if isinstance(value, datetime):
        dt = value
    else:
        dt = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def load(session_token: str, business_id: Optional[str] = None) -> Dict[str, Any]:
    """
    Charge le panier actif et non expiré pour ce token.
    - CartNotFound (400) si absent, expiré ou déjà clos. Jamais retenté.
    """
    if not session_token:
        raise ClientInputError("session_token is required")
    cart = repository.find_active_cart(session_token, business_id)
    if not cart:
        raise CartNotFound()
    return cart


def load_contents(cart_id: str) -> Tuple[List[Dict[str, Any]], Optional[Dict[str, Any]]]:
    """Retourne (lignes, brouillon de réservation) pour un panier."""
    return repository.fetch_cart_items(cart_id), repository.fetch_booking_draft(cart_id)


def get_or_create(business_id: str, session_token: Optional[str] = None) -> Dict[str, Any]:
    """
    Retourne {cart, items, booking} pour ce token, en créant le panier si besoin.
    - Sans token: un nouveau token est généré (le client doit le conserver).
    - Si le panier actif du token appartient à un autre commerce, il est vidé (abandoned)
      puis remplacé par un panier neuf pour ce commerce.
    """
    if not business_id:
        raise ClientInputError("businessId is required")
    token = session_token or str(uuid4())

    cart = repository.find_active_cart(token)
    if cart and str(cart.get("business_id")) != str(business_id):
        logger.info("carts.get_or_create cross-business conflict cart_id=%s business_id=%s", cart.get("id"), business_id)
        clear(token)
        cart = None

    if not cart:
        expires_at = (datetime.now(timezone.utc) + timedelta(hours=CART_TTL_HOURS)).isoformat()
        cart = repository.insert_cart(business_id=business_id, session_token=token, expires_at=expires_at)

    items, booking = load_contents(cart["id"])
    return {"cart": cart, "items": items, "booking": booking}


def _active_cart_for(session_token: str, business_id: str) -> Dict[str, Any]:
    cart = repository.find_active_cart(session_token)
    if not cart:
        expires_at = (datetime.now(timezone.utc) + timedelta(hours=CART_TTL_HOURS)).isoformat()
        return repository.insert_cart(business_id=business_id, session_token=session_token, expires_at=expires_at)
    if str(cart.get("business_id")) != str(business_id):
        raise ClientInputError("Cannot mix items from different businesses. Please clear your cart first.")
    return cart


def add_item(session_token: str, business_id: str, item_type: str, item_id: str, quantity: int) -> Dict[str, Any]:
    """
    Ajoute un produit ou un service au panier (fusion avec une ligne existante du même article).
    Le prix unitaire est relu en base: products.price_cents ou round(menu_items.price × 100).
    """
    if not session_token or not business_id or not item_id:
        raise ClientInputError("Missing required fields")
    if item_type not in ITEM_TYPES:
        raise ClientInputError("itemType must be 'product' or 'service'")
    if int(quantity or 0) <= 0:
        raise ClientInputError("Quantity must be greater than 0")

    cart = _active_cart_for(session_token, business_id)

    if item_type == "product":
        product = repository.fetch_product(item_id, business_id)
        if not product:
            raise CheckoutError("Product not found or inactive", status_code=404)
        unit_price_cents = int(product.get("price_cents") or 0)
        title = product.get("name")
    else:
        service = repository.fetch_service(item_id, business_id)
        if not service:
            raise CheckoutError("Service not found", status_code=404)
        unit_price_cents = dollars_to_cents(service.get("price"))
        title = service.get("name")

    existing = repository.find_cart_item(cart["id"], item_type=item_type, ref_id=item_id)
    if existing:
        new_quantity = int(existing.get("quantity") or 0) + int(quantity)
        repository.update_cart_item(
            existing["id"],
            quantity=new_quantity,
            line_total_cents=line_total_cents(unit_price_cents, new_quantity),
        )
    else:
        repository.insert_cart_item({
            "cart_id": cart["id"],
            "item_type": item_type,
            "product_id": item_id if item_type == "product" else None,
            "service_id": item_id if item_type == "service" else None,
            "quantity": int(quantity),
            "unit_price_cents": unit_price_cents,
            "line_total_cents": line_total_cents(unit_price_cents, quantity),
            "title_snapshot": title,
        })
    repository.touch_cart(cart["id"])
    return {"success": True, "cartId": cart["id"]}


def update_item(session_token: str, item_id: str, quantity: int) -> Dict[str, Any]:
    if int(quantity or 0) <= 0:
        raise ClientInputError("Quantity must be greater than 0")
    cart = load(session_token)
    item = repository.get_cart_item(cart["id"], item_id)
    if not item:
        raise CheckoutError("Item not found in cart", status_code=404)
    repository.update_cart_item(
        item_id,
        quantity=int(quantity),
        line_total_cents=line_total_cents(item.get("unit_price_cents") or 0, quantity),
    )
    repository.touch_cart(cart["id"])
    return {"success": True}


def remove_item(session_token: str, item_id: str) -> Dict[str, Any]:
    cart = load(session_token)
    repository.delete_cart_item(cart["id"], item_id)
    repository.touch_cart(cart["id"])
    return {"success": True}


def set_booking(
    session_token: str,
    business_id: str,
    *,
    service_id: str,
    start_time: str,
    end_time: str,
    timezone_name: str,
    customer_name: Optional[str] = None,
    customer_phone: Optional[str] = None,
    notes: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Enregistre (ou remplace) l'unique brouillon de réservation du panier.
    """
    if not all([session_token, business_id, service_id, start_time, end_time, timezone_name]):
        raise ClientInputError("Missing required fields")
    try:
        if _parse_ts(end_time) <= _parse_ts(start_time):
            raise ClientInputError("endTime must be after startTime")
    except ValueError:
        raise ClientInputError("Invalid startTime/endTime")

    cart = _active_cart_for(session_token, business_id)
    if not repository.fetch_service(service_id, business_id):
        raise CheckoutError("Service not found", status_code=404)

    repository.upsert_booking_draft({
        "cart_id": cart["id"],
        "service_id": service_id,
        "start_time": start_time,
        "end_time": end_time,
        "timezone": timezone_name,
        "customer_name": customer_name or None,
        "customer_phone": customer_phone or None,
        "notes": notes or None,
        "status": "draft",
    })
    repository.touch_cart(cart["id"])
    return {"success": True, "cartId": cart["id"]}


def clear(session_token: str) -> Dict[str, Any]:
    """
    Vide le panier actif (lignes + réservation) et le passe en 'abandoned'.
    Succès sans effet si aucun panier actif n'existe.
    """
    if not session_token:
        raise ClientInputError("sessionToken is required")
    cart = repository.find_active_cart(session_token)
    if not cart:
        return {"success": True, "message": "No active cart found"}
    repository.delete_cart_contents(cart["id"])
    repository.update_cart(cart["id"], {"status": "abandoned"})
    return {"success": True}


def mark_checked_out(cart_id: str, customer: Dict[str, Optional[str]]) -> bool:
    """
    Transition post-paiement: le panier passe en 'checked_out' avec les coordonnées client.
    Ne lève jamais: le paiement est déjà capturé.
    """
    try:
        return repository.update_cart(cart_id, {
            "status": "checked_out",
            "customer_name": customer.get("name"),
            "customer_email": customer.get("email"),
            "customer_phone": customer.get("phone") or None,
        })
    except Exception:
        logger.exception("carts.mark_checked_out failed cart_id=%s", cart_id)
        return False
