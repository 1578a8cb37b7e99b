"""
Tâches Celery des effets de bord post-checkout (calendrier, emails).
- Déclenchées après la réponse au client: leur échec ne remet jamais en cause le paiement.
- Retry automatique sur erreurs de transport (backoff exponentiel, SIDE_EFFECT_MAX_RETRIES).
- Tâche épuisée: journalisée avec son trace_id et enregistrée dans side_effect_dead_letters.
"""
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
import json
import logging

import httpx
from celery import Task

from unified_checkout import config
import unified_checkout.infra.supabase_client as supabase_client
from unified_checkout.calendar_sync import service as calendar_service
from unified_checkout.notifications import service as notifications_service
from unified_checkout.orders import repository as orders_repo
from unified_checkout.worker import celery_app

logger = logging.getLogger(__name__)


def record_dead_letter(task_name: str, trace_id: Optional[str], payload: Dict[str, Any], error: str) -> None:
    try:
        (
            supabase_client.get_service_supabase()
            .table("side_effect_dead_letters")
            .insert({
                "task_name": task_name,
                "trace_id": trace_id,
                "payload": json.loads(json.dumps(payload, default=str)),
                "error": (error or "")[:2000],
                "created_at": datetime.now(timezone.utc).isoformat(),
            })
            .execute()
        )
    except Exception:
        logger.exception("tasks.record_dead_letter failed task=%s trace_id=%s", task_name, trace_id)


class SideEffectTask(Task):
    autoretry_for = (httpx.TransportError,)
    retry_backoff = True
    retry_backoff_max = 300
    retry_jitter = True
    max_retries = config.SIDE_EFFECT_MAX_RETRIES
    soft_time_limit = config.SIDE_EFFECT_SOFT_TIME_LIMIT

    def on_failure(self, exc, task_id, args, kwargs, einfo):
        trace_id = (kwargs or {}).get("trace_id")
        logger.error(
            "tasks.dead_letter task=%s task_id=%s trace_id=%s error=%r",
            self.name, task_id, trace_id, exc,
        )
        record_dead_letter(self.name, trace_id, {"args": list(args or []), "kwargs": dict(kwargs or {})}, repr(exc))


class CalendarSyncTask(SideEffectTask):
    def on_failure(self, exc, task_id, args, kwargs, einfo):
        booking_id = (kwargs or {}).get("booking_id")
        if booking_id:
            orders_repo.update_booking_calendar(booking_id, calendar_sync_status=calendar_service.FAILED)
        super().on_failure(exc, task_id, args, kwargs, einfo)


@celery_app.task(base=CalendarSyncTask, name="unified_checkout.tasks.sync_booking_calendar")
def sync_booking_calendar(*, booking_id: str, trace_id: str) -> str:
    logger.info("tasks.sync_booking_calendar start trace_id=%s booking_id=%s", trace_id, booking_id)
    return calendar_service.sync_booking(booking_id, trace_id)


@celery_app.task(base=SideEffectTask, name="unified_checkout.tasks.send_order_notifications")
def send_order_notifications(*, order_id: str, business_id: str, trace_id: str) -> Dict[str, Any]:
    logger.info("tasks.send_order_notifications start trace_id=%s order_id=%s", trace_id, order_id)
    return notifications_service.notify_order(order_id, business_id, trace_id)


@celery_app.task(base=SideEffectTask, name="unified_checkout.tasks.send_booking_notifications")
def send_booking_notifications(*, booking_id: str, trace_id: str) -> Dict[str, Any]:
    logger.info("tasks.send_booking_notifications start trace_id=%s booking_id=%s", trace_id, booking_id)
    return notifications_service.notify_booking(booking_id, trace_id)


def dispatch_side_effects(
    *,
    shop_order_id: Optional[str],
    booking_id: Optional[str],
    business_id: str,
    trace_id: str,
) -> List[str]:
    """
    Met en file les effets de bord d'un checkout réussi.
    Une file indisponible est journalisée et n'échoue jamais le checkout.
    Retourne les noms des tâches effectivement mises en file.
    """
    planned = []
    if booking_id:
        planned.append((sync_booking_calendar, {"booking_id": booking_id, "trace_id": trace_id}))
        planned.append((send_booking_notifications, {"booking_id": booking_id, "trace_id": trace_id}))
    if shop_order_id:
        planned.append((send_order_notifications, {"order_id": shop_order_id, "business_id": business_id, "trace_id": trace_id}))

    enqueued: List[str] = []
    for task, kwargs in planned:
        try:
            task.apply_async(kwargs=kwargs)
            enqueued.append(task.name)
        except Exception:
            logger.exception("tasks.dispatch failed task=%s trace_id=%s", task.name, trace_id)
    logger.info("tasks.dispatch trace_id=%s enqueued=%s", trace_id, enqueued)
    return enqueued
