from typing import Optional
import logging

import unified_checkout.infra.supabase_client as supabase_client

logger = logging.getLogger(__name__)


def get_admin_email(business_id: str) -> Optional[str]:
    """settings.admin_email du commerce, ou None (absent ou erreur datastore)."""
    try:
        res = (
            supabase_client.get_service_supabase()
            .table("settings")
            .select("admin_email")
            .eq("business_id", business_id)
            .limit(1)
            .execute()
        )
        rows = res.data or []
        return (rows[0].get("admin_email") or None) if rows else None
    except Exception:
        logger.exception("notifications.repository.get_admin_email failed business_id=%s", business_id)
        return None
