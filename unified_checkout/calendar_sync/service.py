"""
Synchronisation d'une réservation confirmée vers Google Calendar.
- Jamais bloquante pour le checkout: exécutée par une tâche Celery après la réponse.
- Issue enregistrée sur la réservation (calendar_sync_status): synced | skipped | failed.
- Les erreurs de transport remontent pour que la tâche retente; le reste est journalisé.
"""
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional, Tuple
import logging

from unified_checkout import config
from unified_checkout.orders import repository as orders_repo
from . import google_client
from . import repository

logger = logging.getLogger(__name__)

SYNCED = "synced"
SKIPPED = "skipped"
FAILED = "failed"


def _parse_ts(value: Any) -> Optional[datetime]:
    if not value:
        return None
    try:
        dt = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def resolve_timezone(integration: Optional[Dict[str, Any]], booking: Dict[str, Any]) -> str:
    """Fuseau de l'intégration, sinon celui de la réservation, sinon DEFAULT_TIMEZONE."""
    return (
        (integration or {}).get("timezone")
        or booking.get("business_timezone")
        or config.DEFAULT_TIMEZONE
    )


def build_event(booking: Dict[str, Any], tz_name: str) -> Dict[str, Any]:
    start = _parse_ts(booking.get("booking_date"))
    if start is None:
        raise ValueError("booking_date is missing or invalid")
    end = start + timedelta(minutes=int(booking.get("duration_minutes") or 0))
    service_type = booking.get("service_type") or "Service"
    customer_name = booking.get("customer_name") or ""

    description = f"Customer: {customer_name}\nEmail: {booking.get('customer_email') or ''}"
    if booking.get("customer_phone"):
        description += f"\nPhone: {booking['customer_phone']}"
    description += f"\nService: {service_type}"
    if booking.get("notes"):
        description += f"\n\nNotes: {booking['notes']}"

    event: Dict[str, Any] = {
        "summary": f"{service_type} - {customer_name}",
        "description": description,
        "start": {"dateTime": start.isoformat(), "timeZone": tz_name},
        "end": {"dateTime": end.isoformat(), "timeZone": tz_name},
    }
    if booking.get("customer_email"):
        event["attendees"] = [{"email": booking["customer_email"], "displayName": customer_name}]
    return event


def _access_token(business_id: str, integration: Dict[str, Any]) -> str:
    """Retourne un access token valide, rafraîchi (et persisté) s'il est expiré."""
    expiry = _parse_ts(integration.get("token_expiry"))
    now = datetime.now(timezone.utc)
    if integration.get("access_token") and expiry is not None and now < expiry:
        return integration["access_token"]

    refreshed = google_client.refresh_access_token(integration.get("refresh_token") or "")
    new_expiry = (now + timedelta(seconds=refreshed["expires_in"])).isoformat()
    repository.save_access_token(business_id, refreshed["access_token"], new_expiry)
    logger.info("calendar_sync.token refreshed business_id=%s expires_at=%s", business_id, new_expiry)
    return refreshed["access_token"]


def sync_with_status(business_id: str, booking: Dict[str, Any]) -> Tuple[str, Optional[str]]:
    """
    Crée l'événement calendrier de la réservation.
    Retour: (statut, calendar_event_id|None) avec statut synced | skipped | failed.
    """
    booking_id = booking.get("id")
    try:
        integration = repository.get_integration(business_id)
    except Exception:
        logger.exception("calendar_sync.sync integration lookup failed business_id=%s booking_id=%s", business_id, booking_id)
        return FAILED, None

    if not integration or not integration.get("is_connected"):
        logger.warning("calendar_sync.sync not connected, skipping business_id=%s booking_id=%s", business_id, booking_id)
        return SKIPPED, None
    if not config.GOOGLE_CLIENT_ID or not config.GOOGLE_CLIENT_SECRET:
        logger.warning("calendar_sync.sync OAuth credentials not configured business_id=%s booking_id=%s", business_id, booking_id)
        return SKIPPED, None

    try:
        event = build_event(booking, resolve_timezone(integration, booking))
        token = _access_token(business_id, integration)
        event_id = google_client.create_event(token, integration.get("calendar_id") or "primary", event)
    except (google_client.GoogleCalendarError, ValueError) as e:
        logger.error("calendar_sync.sync failed business_id=%s booking_id=%s error=%s", business_id, booking_id, e)
        return FAILED, None

    logger.info("calendar_sync.sync created business_id=%s booking_id=%s event_id=%s", business_id, booking_id, event_id)
    return SYNCED, event_id


def sync(business_id: str, booking: Dict[str, Any]) -> Optional[str]:
    """Retourne calendar_event_id, ou None (non connecté, identifiants absents, erreur API)."""
    return sync_with_status(business_id, booking)[1]


def sync_booking(booking_id: str, trace_id: str) -> str:
    """
    Charge la réservation, la synchronise et enregistre calendar_sync_status.
    Une réservation déjà synchronisée n'est pas recréée (rejeu de tâche).
    """
    booking = orders_repo.get_booking(booking_id)
    if not booking:
        logger.error("calendar_sync.sync_booking booking not found trace_id=%s booking_id=%s", trace_id, booking_id)
        return FAILED
    if booking.get("calendar_event_id"):
        logger.info("calendar_sync.sync_booking already synced trace_id=%s booking_id=%s", trace_id, booking_id)
        return SYNCED

    status, event_id = sync_with_status(booking["business_id"], booking)
    orders_repo.update_booking_calendar(booking_id, calendar_sync_status=status, calendar_event_id=event_id)
    logger.info("calendar_sync.sync_booking trace_id=%s booking_id=%s status=%s", trace_id, booking_id, status)
    return status
