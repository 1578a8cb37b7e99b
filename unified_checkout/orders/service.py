"""
Matérialisation d'une session payée en enregistrements métier (commande boutique et/ou réservation).
Règle centrale: un paiement capturé n'est jamais annulé par un échec d'insertion en aval.
Chaque création est indépendante; un échec est journalisé (trace_id) et l'autre continue.
"""
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
import logging

from unified_checkout.checkout.idempotency import IdempotencyKey
from unified_checkout.checkout.pricing import PriceSnapshot, line_total_cents
from . import repository

logger = logging.getLogger(__name__)


def _parse_ts(value: Any) -> datetime:
    dt = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def duration_minutes(start_time: Any, end_time: Any) -> int:
    """Durée (minutes, arrondie) entre start_time et end_time."""
    delta = _parse_ts(end_time) - _parse_ts(start_time)
    return int(round(delta.total_seconds() / 60))


def merge_customer(customer: Dict[str, Optional[str]], draft: Optional[Dict[str, Any]]) -> Dict[str, Optional[str]]:
    """
    Coordonnées de la réservation: les champs saisis au checkout priment sur ceux du brouillon,
    le brouillon ne sert que de repli pour les champs non fournis.
    """
    draft = draft or {}
    return {
        "name": customer.get("name") or draft.get("customer_name"),
        "email": customer.get("email") or draft.get("customer_email"),
        "phone": customer.get("phone") or draft.get("customer_phone") or None,
    }


def order_item_rows(order_id: str, items: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """
    Une ligne de commande par ligne de panier (produit ou service), nom et prix figés.
    product_id n'est renseigné que pour les produits.
    """
    return [
        {
            "order_id": order_id,
            "product_id": it.get("product_id") if it.get("item_type") == "product" else None,
            "product_name": it.get("title_snapshot"),
            "unit_price_cents": int(it.get("unit_price_cents") or 0),
            "quantity": int(it.get("quantity") or 0),
            "line_total_cents": line_total_cents(it.get("unit_price_cents") or 0, it.get("quantity") or 0),
        }
        for it in items
    ]


def create_shop_order(
    *,
    session: Dict[str, Any],
    business_id: str,
    items: List[Dict[str, Any]],
    snapshot: PriceSnapshot,
    customer: Dict[str, Optional[str]],
    square_payment_id: str,
    payment_status: str,
    idempotency_key: IdempotencyKey,
    trace_id: str,
) -> Dict[str, Any]:
    """
    Crée la commande boutique et ses lignes.
    Montants: total de session hors part réservation (prix du service figé à la validation).
    - Rejeu (commande déjà présente pour cette clé): les lignes ne sont pas réinsérées.
    - Échec des lignes: journalisé, la commande (payée) reste retournée.
    """
    amounts = snapshot.order_amounts()
    now_iso = datetime.now(timezone.utc).isoformat()
    order, created = repository.insert_shop_order({
        "business_id": business_id,
        "checkout_session_id": session["id"],
        "customer_name": customer.get("name"),
        "customer_email": customer.get("email"),
        "customer_phone": customer.get("phone") or None,
        "status": "paid" if payment_status == "paid" else "pending",
        "subtotal_cents": amounts["subtotal_cents"],
        "tax_cents": amounts["tax_cents"],
        "total_cents": amounts["total_cents"],
        "square_payment_id": square_payment_id,
        "idempotency_key": str(idempotency_key),
        "paid_at": now_iso if payment_status == "paid" else None,
    })
    if not created:
        logger.info("orders.create_shop_order replay, items kept trace_id=%s shop_order_id=%s", trace_id, order["id"])
        return order
    try:
        repository.insert_shop_order_items(order_item_rows(order["id"], items))
    except Exception:
        logger.exception("orders.create_shop_order items failed trace_id=%s shop_order_id=%s", trace_id, order["id"])
    return order


def create_booking(
    *,
    session: Dict[str, Any],
    business_id: str,
    draft: Dict[str, Any],
    snapshot: PriceSnapshot,
    customer: Dict[str, Optional[str]],
    square_payment_id: str,
    payment_status: str,
    idempotency_key: IdempotencyKey,
    trace_id: str,
) -> Dict[str, Any]:
    """
    Crée la réservation ('confirmed' dès la création, indépendamment du statut de paiement).
    payment_amount = prix du service en centimes, figé à la validation.
    """
    contact = merge_customer(customer, draft)
    return repository.insert_booking({
        "business_id": business_id,
        "checkout_session_id": session["id"],
        "customer_name": contact["name"],
        "customer_email": contact["email"],
        "customer_phone": contact["phone"],
        "booking_date": draft["start_time"],
        "duration_minutes": duration_minutes(draft["start_time"], draft["end_time"]),
        "status": "confirmed",
        "service_type": snapshot.service_name or "Service",
        "notes": draft.get("notes") or None,
        "menu_item_id": draft.get("service_id"),
        "payment_amount": snapshot.booking_price_cents,
        "payment_status": payment_status,
        "payment_id": square_payment_id,
        "business_timezone": draft.get("timezone"),
        "trace_id": trace_id,
        "idempotency_key": str(idempotency_key.derive("booking")),
        "calendar_sync_status": "pending",
    })


def materialize(
    *,
    session: Dict[str, Any],
    cart: Dict[str, Any],
    items: List[Dict[str, Any]],
    booking_draft: Optional[Dict[str, Any]],
    snapshot: PriceSnapshot,
    customer: Dict[str, Optional[str]],
    square_payment_id: str,
    payment_status: str,
    idempotency_key: IdempotencyKey,
    trace_id: str,
) -> Dict[str, Optional[str]]:
    """
    Retourne {"shop_order_id": str|None, "booking_id": str|None}.
    Ne lève jamais: chaque échec est journalisé et l'identifiant correspondant reste None.
    """
    business_id = cart["business_id"]
    shop_order_id: Optional[str] = None
    booking_id: Optional[str] = None

    if items:
        logger.info("orders.materialize creating shop order trace_id=%s session_id=%s", trace_id, session["id"])
        try:
            order = create_shop_order(
                session=session,
                business_id=business_id,
                items=items,
                snapshot=snapshot,
                customer=customer,
                square_payment_id=square_payment_id,
                payment_status=payment_status,
                idempotency_key=idempotency_key,
                trace_id=trace_id,
            )
            shop_order_id = order["id"]
            logger.info("orders.materialize shop order created trace_id=%s shop_order_id=%s", trace_id, shop_order_id)
        except Exception:
            logger.exception("orders.materialize shop order failed trace_id=%s session_id=%s payment_id=%s", trace_id, session["id"], square_payment_id)

    if booking_draft:
        logger.info("orders.materialize creating booking trace_id=%s session_id=%s", trace_id, session["id"])
        try:
            booking = create_booking(
                session=session,
                business_id=business_id,
                draft=booking_draft,
                snapshot=snapshot,
                customer=customer,
                square_payment_id=square_payment_id,
                payment_status=payment_status,
                idempotency_key=idempotency_key,
                trace_id=trace_id,
            )
            booking_id = booking["id"]
            logger.info("orders.materialize booking created trace_id=%s booking_id=%s", trace_id, booking_id)
        except Exception:
            logger.exception("orders.materialize booking failed trace_id=%s session_id=%s payment_id=%s", trace_id, session["id"], square_payment_id)

    return {"shop_order_id": shop_order_id, "booking_id": booking_id}
