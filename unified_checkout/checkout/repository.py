"""
Accès aux données du registre des sessions de checkout (table checkout_sessions)
et à la configuration de paiement des commerces (table businesses).
Unicité garantie en base (voir sql/schema.sql):
- au plus une session 'paid' par cart_id;
- au plus une tentative vivante (processing/pending/paid) par cart_id.
"""
from datetime import datetime, timezone
from typing import Any, Dict, Optional
import logging

import unified_checkout.infra.supabase_client as supabase_client

logger = logging.getLogger(__name__)

SESSION_COLUMNS = "id, cart_id, business_id, idempotency_key, amount_total_cents, currency, status, square_payment_id, paid_at, error_message, trace_id, created_at"


class SessionConflict(Exception):
    """Insertion refusée par une contrainte d'unicité (tentative concurrente sur ce panier)."""


def _first(res) -> Optional[Dict[str, Any]]:
    rows = (res.data if res is not None else None) or []
    if isinstance(rows, dict):
        return rows
    return rows[0] if rows else None


# module unified_checkout.checkout.repository
def get_business_payment_config(business_id: str) -> Optional[Dict[str, Any]]:
    res = (
        supabase_client.get_service_supabase()
        .table("businesses")
        .select("id, name, square_location_id")
        .eq("id", business_id)
        .limit(1)
        .execute()
    )
    return _first(res)


def find_paid_session(cart_id: str) -> Optional[Dict[str, Any]]:
    res = (
        supabase_client.get_service_supabase()
        .table("checkout_sessions")
        .select(SESSION_COLUMNS)
        .eq("cart_id", cart_id)
        .eq("status", "paid")
        .limit(1)
        .execute()
    )
    return _first(res)


def get_session(session_id: str) -> Optional[Dict[str, Any]]:
    try:
        res = (
            supabase_client.get_service_supabase()
            .table("checkout_sessions")
            .select(SESSION_COLUMNS)
            .eq("id", session_id)
            .limit(1)
            .execute()
        )
        return _first(res)
    except Exception:
        logger.exception("checkout.repository.get_session failed id=%s", session_id)
        return None


def create_session(
    *,
    cart_id: str,
    business_id: str,
    location_id: str,
    idempotency_key: str,
    amount_total_cents: int,
    currency: str,
    trace_id: str,
) -> Dict[str, Any]:
    """
    Crée une session 'processing'. Lève SessionConflict sur violation d'unicité (23505).
    """
    try:
        res = (
            supabase_client.get_service_supabase()
            .table("checkout_sessions")
            .insert({
                "cart_id": cart_id,
                "business_id": business_id,
                "square_location_id": location_id,
                "idempotency_key": idempotency_key,
                "amount_total_cents": amount_total_cents,
                "currency": currency,
                "status": "processing",
                "trace_id": trace_id,
            })
            .execute()
        )
    except Exception as e:
        if supabase_client.is_unique_violation(e):
            raise SessionConflict(str(e))
        raise
    row = _first(res)
    if not row:
        raise RuntimeError("Failed to create checkout session")
    return row


def mark_session_failed(session_id: str, error_message: str) -> bool:
    """Terminal 'failed'. Ne lève jamais (l'échec est déjà rapporté au client)."""
    try:
        (
            supabase_client.get_service_supabase()
            .table("checkout_sessions")
            .update({"status": "failed", "error_message": (error_message or "Payment processing failed")[:1000]})
            .eq("id", session_id)
            .execute()
        )
        return True
    except Exception:
        logger.exception("checkout.repository.mark_session_failed failed id=%s", session_id)
        return False


def mark_session_captured(session_id: str, *, square_payment_id: str, status: str) -> bool:
    """
    Enregistre l'identifiant Square et le statut terminal ('paid' ou 'pending').
    paid_at n'est renseigné que pour 'paid'. Ne lève jamais: l'argent a déjà bougé.
    """
    payload: Dict[str, Any] = {
        "square_payment_id": square_payment_id,
        "status": status,
        "paid_at": datetime.now(timezone.utc).isoformat() if status == "paid" else None,
    }
    try:
        (
            supabase_client.get_service_supabase()
            .table("checkout_sessions")
            .update(payload)
            .eq("id", session_id)
            .execute()
        )
        return True
    except Exception:
        logger.exception("checkout.repository.mark_session_captured failed id=%s payment_id=%s", session_id, square_payment_id)
        return False
