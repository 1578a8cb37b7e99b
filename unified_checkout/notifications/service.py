"""
Envoi des notifications post-checkout (confirmation client + alerte admin).
- Chaque destinataire est traité indépendamment: un échec n'empêche jamais l'autre envoi.
- Admin sans adresse (settings.admin_email): envoi ignoré et journalisé, pas d'échec.
- Si aucun email n'est parti et qu'une erreur de transport est survenue, elle est relevée
  pour que la tâche retente (aucun doublon possible).
"""
from typing import Any, Callable, Dict, List, Optional, Tuple
import logging

import httpx

from unified_checkout import config
from unified_checkout.orders import repository as orders_repo
from . import email_client
from . import repository
from . import emails

logger = logging.getLogger(__name__)

SENT = "sent"
SKIPPED = "skipped"
FAILED = "failed"


def _deliver(
    recipients: List[Tuple[str, Optional[str], Callable[[], Tuple[str, str]]]],
    trace_id: str,
) -> Dict[str, str]:
    results: Dict[str, str] = {}
    transport_error: Optional[Exception] = None
    for role, address, render in recipients:
        if not address:
            logger.warning("notifications.deliver no %s email, skipping trace_id=%s", role, trace_id)
            results[role] = SKIPPED
            continue
        try:
            subject, html = render()
            email_client.send_email(address, subject, html, trace_id)
            results[role] = SENT
        except httpx.TransportError as e:
            logger.warning("notifications.deliver %s transport error trace_id=%s error=%s", role, trace_id, e)
            transport_error = e
            results[role] = FAILED
        except Exception:
            logger.exception("notifications.deliver %s failed trace_id=%s", role, trace_id)
            results[role] = FAILED

    if transport_error is not None and SENT not in results.values():
        raise transport_error
    return results


def notify_order(order_id: str, business_id: str, trace_id: str) -> Dict[str, Any]:
    """
    Confirmation de commande au client + alerte admin.
    Retour: {"customer": sent|skipped|failed, "admin": sent|skipped|failed}
    """
    order = orders_repo.get_shop_order(order_id)
    if not order:
        logger.error("notifications.notify_order order not found trace_id=%s order_id=%s", trace_id, order_id)
        return {"customer": FAILED, "admin": FAILED}
    items = order.get("shop_order_items") or []
    admin_email = repository.get_admin_email(business_id)

    results = _deliver([
        ("customer", order.get("customer_email"), lambda: emails.order_customer_email(order, items)),
        ("admin", admin_email, lambda: emails.order_admin_email(order, items)),
    ], trace_id)
    logger.info("notifications.notify_order trace_id=%s order_id=%s results=%s", trace_id, order_id, results)
    return results


def notify_booking(booking_id: str, trace_id: str) -> Dict[str, Any]:
    """Confirmation de réservation au client + alerte admin (date/heure dans le fuseau du commerce)."""
    booking = orders_repo.get_booking(booking_id)
    if not booking:
        logger.error("notifications.notify_booking booking not found trace_id=%s booking_id=%s", trace_id, booking_id)
        return {"customer": FAILED, "admin": FAILED}
    admin_email = repository.get_admin_email(booking.get("business_id"))
    tz = config.DEFAULT_TIMEZONE

    results = _deliver([
        ("customer", booking.get("customer_email"), lambda: emails.booking_customer_email(booking, tz)),
        ("admin", admin_email, lambda: emails.booking_admin_email(booking, tz)),
    ], trace_id)
    logger.info("notifications.notify_booking trace_id=%s booking_id=%s results=%s", trace_id, booking_id, results)
    return results
