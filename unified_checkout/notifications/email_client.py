# module unified_checkout.notifications.email_client
from typing import Dict, Optional
import logging

import httpx

from unified_checkout import config

logger = logging.getLogger(__name__)


class EmailDeliveryError(Exception):
    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


def _headers() -> Dict[str, str]:
    headers = {"Content-Type": "application/json"}
    if config.EMAIL_API_KEY:
        headers["Authorization"] = f"Bearer {config.EMAIL_API_KEY}"
    return headers


def is_configured() -> bool:
    return bool(config.EMAIL_API_URL)


def send_email(to: str, subject: str, html: str, trace_id: str) -> None:
    """
    Envoie un email via le collaborateur HTTP: POST {to, subject, html, trace_id}.
    - Réponse non-2xx -> EmailDeliveryError
    - Erreurs de transport (httpx.TransportError) propagées telles quelles
    """
    if not is_configured():
        raise EmailDeliveryError("EMAIL_API_URL is not configured")
    resp = httpx.post(
        config.EMAIL_API_URL,
        json={"from": config.EMAIL_FROM, "to": to, "subject": subject, "html": html, "trace_id": trace_id},
        headers=_headers(),
        timeout=config.EMAIL_TIMEOUT_SECONDS,
    )
    if not (200 <= resp.status_code < 300):
        raise EmailDeliveryError(f"Email API error {resp.status_code}: {resp.text[:500]}", resp.status_code)
    logger.info("email_client.send_email sent trace_id=%s subject=%s", trace_id, subject)
