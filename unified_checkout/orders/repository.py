"""
Accès aux données pour la matérialisation (tables shop_orders, shop_order_items, bookings).
Chaque insertion porte sa propre idempotency_key (unique en base): un rejeu retrouve la ligne existante.
"""
from typing import Any, Dict, List, Optional, Tuple
import logging

import unified_checkout.infra.supabase_client as supabase_client

logger = logging.getLogger(__name__)


def _first(res) -> Optional[Dict[str, Any]]:
    rows = (res.data if res is not None else None) or []
    if isinstance(rows, dict):
        return rows
    return rows[0] if rows else None


def _find_by_idempotency_key(table: str, idempotency_key: str) -> Optional[Dict[str, Any]]:
    res = (
        supabase_client.get_service_supabase()
        .table(table)
        .select("id")
        .eq("idempotency_key", idempotency_key)
        .limit(1)
        .execute()
    )
    return _first(res)


def _insert_idempotent(table: str, row: Dict[str, Any]) -> Tuple[Dict[str, Any], bool]:
    """
    Insère la ligne; sur violation d'unicité de idempotency_key, retourne la ligne existante.
    Retour: (ligne, créée) avec créée=False pour un rejeu.
    Lève en cas d'autre erreur (l'appelant décide de la tolérance).
    """
    try:
        res = supabase_client.get_service_supabase().table(table).insert(row).execute()
    except Exception as e:
        if supabase_client.is_unique_violation(e):
            existing = _find_by_idempotency_key(table, row["idempotency_key"])
            if existing:
                logger.info("orders.repository.%s already materialized key=%s id=%s", table, row["idempotency_key"], existing.get("id"))
                return existing, False
        raise
    created = _first(res)
    if not created:
        raise RuntimeError(f"Insert into {table} returned no row")
    return created, True


def insert_shop_order(row: Dict[str, Any]) -> Tuple[Dict[str, Any], bool]:
    return _insert_idempotent("shop_orders", row)


def insert_shop_order_items(rows: List[Dict[str, Any]]) -> int:
    if not rows:
        return 0
    res = supabase_client.get_service_supabase().table("shop_order_items").insert(rows).execute()
    return len(res.data or [])


def insert_booking(row: Dict[str, Any]) -> Dict[str, Any]:
    return _insert_idempotent("bookings", row)[0]


def get_booking(booking_id: str) -> Optional[Dict[str, Any]]:
    try:
        res = (
            supabase_client.get_service_supabase()
            .table("bookings")
            .select("*")
            .eq("id", booking_id)
            .limit(1)
            .execute()
        )
        return _first(res)
    except Exception:
        logger.exception("orders.repository.get_booking failed id=%s", booking_id)
        return None


def update_booking_calendar(booking_id: str, *, calendar_sync_status: str, calendar_event_id: Optional[str] = None) -> bool:
    """Seule mutation autorisée après création (par l'adaptateur calendrier)."""
    payload: Dict[str, Any] = {"calendar_sync_status": calendar_sync_status}
    if calendar_event_id:
        payload["calendar_event_id"] = calendar_event_id
    try:
        (
            supabase_client.get_service_supabase()
            .table("bookings")
            .update(payload)
            .eq("id", booking_id)
            .execute()
        )
        return True
    except Exception:
        logger.exception("orders.repository.update_booking_calendar failed id=%s status=%s", booking_id, calendar_sync_status)
        return False


def get_shop_order(order_id: str) -> Optional[Dict[str, Any]]:
    try:
        res = (
            supabase_client.get_service_supabase()
            .table("shop_orders")
            .select("*, shop_order_items(product_name, quantity, unit_price_cents, line_total_cents)")
            .eq("id", order_id)
            .limit(1)
            .execute()
        )
        return _first(res)
    except Exception:
        logger.exception("orders.repository.get_shop_order failed id=%s", order_id)
        return None
