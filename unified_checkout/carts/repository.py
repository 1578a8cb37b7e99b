"""
Accès aux données pour la feature 'carts' (tables carts, cart_items, cart_booking_details,
products, menu_items).
Les lectures utilisées par le checkout propagent les erreurs datastore (500 côté API):
un panier illisible ne doit jamais être confondu avec un panier absent.
"""
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
import logging

import unified_checkout.infra.supabase_client as supabase_client

logger = logging.getLogger(__name__)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _first(res) -> Optional[Dict[str, Any]]:
    rows = (res.data if res is not None else None) or []
    if isinstance(rows, dict):
        return rows
    return rows[0] if rows else None


# module unified_checkout.carts.repository
def find_active_cart(session_token: str, business_id: Optional[str] = None) -> Optional[Dict[str, Any]]:
    """
    Panier 'active' et non expiré pour ce token (optionnellement restreint à un commerce).
    """
    query = (
        supabase_client.get_service_supabase()
        .table("carts")
        .select("*")
        .eq("session_token", session_token)
        .eq("status", "active")
        .gt("expires_at", _now_iso())
    )
    if business_id:
        query = query.eq("business_id", business_id)
    return _first(query.limit(1).execute())


def find_checked_out_cart(session_token: str) -> Optional[Dict[str, Any]]:
    """Dernier panier 'checked_out' du token (détection d'une resoumission après paiement)."""
    res = (
        supabase_client.get_service_supabase()
        .table("carts")
        .select("*")
        .eq("session_token", session_token)
        .eq("status", "checked_out")
        .order("updated_at", desc=True)
        .limit(1)
        .execute()
    )
    return _first(res)


def insert_cart(*, business_id: str, session_token: str, expires_at: str) -> Dict[str, Any]:
    res = (
        supabase_client.get_service_supabase()
        .table("carts")
        .insert({
            "business_id": business_id,
            "session_token": session_token,
            "status": "active",
            "expires_at": expires_at,
        })
        .execute()
    )
    row = _first(res)
    if not row:
        raise RuntimeError("Failed to create cart")
    return row


def update_cart(cart_id: str, fields: Dict[str, Any]) -> bool:
    payload = dict(fields)
    payload["updated_at"] = _now_iso()
    res = (
        supabase_client.get_service_supabase()
        .table("carts")
        .update(payload)
        .eq("id", cart_id)
        .execute()
    )
    return bool(res.data)


def touch_cart(cart_id: str) -> None:
    try:
        update_cart(cart_id, {})
    except Exception:
        logger.exception("carts.repository.touch_cart failed cart_id=%s", cart_id)


def fetch_cart_items(cart_id: str) -> List[Dict[str, Any]]:
    res = (
        supabase_client.get_service_supabase()
        .table("cart_items")
        .select("*")
        .eq("cart_id", cart_id)
        .execute()
    )
    return res.data or []


def fetch_booking_draft(cart_id: str) -> Optional[Dict[str, Any]]:
    res = (
        supabase_client.get_service_supabase()
        .table("cart_booking_details")
        .select("*")
        .eq("cart_id", cart_id)
        .limit(1)
        .execute()
    )
    return _first(res)


def find_cart_item(cart_id: str, *, item_type: str, ref_id: str) -> Optional[Dict[str, Any]]:
    ref_column = "product_id" if item_type == "product" else "service_id"
    res = (
        supabase_client.get_service_supabase()
        .table("cart_items")
        .select("*")
        .eq("cart_id", cart_id)
        .eq("item_type", item_type)
        .eq(ref_column, ref_id)
        .limit(1)
        .execute()
    )
    return _first(res)


def get_cart_item(cart_id: str, item_id: str) -> Optional[Dict[str, Any]]:
    res = (
        supabase_client.get_service_supabase()
        .table("cart_items")
        .select("*")
        .eq("cart_id", cart_id)
        .eq("id", item_id)
        .limit(1)
        .execute()
    )
    return _first(res)


def insert_cart_item(row: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    res = supabase_client.get_service_supabase().table("cart_items").insert(row).execute()
    return _first(res)


def update_cart_item(item_id: str, *, quantity: int, line_total_cents: int) -> bool:
    res = (
        supabase_client.get_service_supabase()
        .table("cart_items")
        .update({"quantity": quantity, "line_total_cents": line_total_cents})
        .eq("id", item_id)
        .execute()
    )
    return bool(res.data)


def delete_cart_item(cart_id: str, item_id: str) -> None:
    (
        supabase_client.get_service_supabase()
        .table("cart_items")
        .delete()
        .eq("cart_id", cart_id)
        .eq("id", item_id)
        .execute()
    )


def delete_cart_contents(cart_id: str) -> None:
    """Supprime toutes les lignes et le brouillon de réservation d'un panier."""
    client = supabase_client.get_service_supabase()
    client.table("cart_items").delete().eq("cart_id", cart_id).execute()
    client.table("cart_booking_details").delete().eq("cart_id", cart_id).execute()


def upsert_booking_draft(row: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """Un seul brouillon par panier (cart_id unique)."""
    res = (
        supabase_client.get_service_supabase()
        .table("cart_booking_details")
        .upsert(row, on_conflict="cart_id")
        .execute()
    )
    return _first(res)


def set_booking_draft_status(cart_id: str, status: str) -> None:
    try:
        (
            supabase_client.get_service_supabase()
            .table("cart_booking_details")
            .update({"status": status})
            .eq("cart_id", cart_id)
            .execute()
        )
    except Exception:
        logger.exception("carts.repository.set_booking_draft_status failed cart_id=%s status=%s", cart_id, status)


def fetch_product(product_id: str, business_id: str) -> Optional[Dict[str, Any]]:
    res = (
        supabase_client.get_service_supabase()
        .table("products")
        .select("id, name, price_cents")
        .eq("id", product_id)
        .eq("business_id", business_id)
        .eq("is_active", True)
        .limit(1)
        .execute()
    )
    return _first(res)


def fetch_service(service_id: str, business_id: Optional[str] = None) -> Optional[Dict[str, Any]]:
    query = (
        supabase_client.get_service_supabase()
        .table("menu_items")
        .select("id, name, price")
        .eq("id", service_id)
    )
    if business_id:
        query = query.eq("business_id", business_id)
    return _first(query.limit(1).execute())
