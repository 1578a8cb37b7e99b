"""
Accès à la table google_calendar_integrations (une intégration par commerce).
"""
from typing import Any, Dict, Optional
from datetime import datetime, timezone
import logging

import unified_checkout.infra.supabase_client as supabase_client

logger = logging.getLogger(__name__)


def get_integration(business_id: str) -> Optional[Dict[str, Any]]:
    """Lève en cas d'erreur datastore (l'appelant enregistre 'failed')."""
    res = (
        supabase_client.get_service_supabase()
        .table("google_calendar_integrations")
        .select("access_token, refresh_token, token_expiry, calendar_id, timezone, is_connected")
        .eq("business_id", business_id)
        .limit(1)
        .execute()
    )
    rows = res.data or []
    return rows[0] if rows else None


def save_access_token(business_id: str, access_token: str, token_expiry: str) -> None:
    try:
        (
            supabase_client.get_service_supabase()
            .table("google_calendar_integrations")
            .update({
                "access_token": access_token,
                "token_expiry": token_expiry,
                "updated_at": datetime.now(timezone.utc).isoformat(),
            })
            .eq("business_id", business_id)
            .execute()
        )
    except Exception:
        # Le jeton rafraîchi reste utilisable pour cet appel
        logger.exception("calendar_sync.repository.save_access_token failed business_id=%s", business_id)
