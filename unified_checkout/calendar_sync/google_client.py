"""
Client HTTP minimal pour Google OAuth (refresh token) et Calendar v3 (création d'événement).
- Les erreurs de transport (httpx.TransportError) remontent telles quelles: la tâche Celery les retente.
- Une réponse non-2xx lève GoogleCalendarError (non retentée).
"""
from typing import Any, Dict, Optional
from urllib.parse import quote
import logging

import httpx

from unified_checkout import config

logger = logging.getLogger(__name__)

DEFAULT_TOKEN_TTL_SECONDS = 3600


class GoogleCalendarError(Exception):
    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


def _error_message(resp: httpx.Response, fallback: str) -> str:
    try:
        data = resp.json() or {}
    except ValueError:
        return resp.text or fallback
    err = data.get("error")
    if isinstance(err, dict):
        return err.get("message") or fallback
    return data.get("error_description") or err or data.get("message") or fallback


def refresh_access_token(refresh_token: str) -> Dict[str, Any]:
    """
    Échange le refresh token contre un nouvel access token.
    Retour: {"access_token": str, "expires_in": int}
    """
    resp = httpx.post(
        config.GOOGLE_TOKEN_URL,
        data={
            "grant_type": "refresh_token",
            "refresh_token": refresh_token,
            "client_id": config.GOOGLE_CLIENT_ID,
            "client_secret": config.GOOGLE_CLIENT_SECRET,
        },
        timeout=config.CALENDAR_TIMEOUT_SECONDS,
    )
    if resp.status_code != 200:
        raise GoogleCalendarError(_error_message(resp, "Failed to refresh access token"), resp.status_code)
    data = resp.json() or {}
    if not data.get("access_token"):
        raise GoogleCalendarError("Token response did not include an access token", resp.status_code)
    return {
        "access_token": data["access_token"],
        "expires_in": int(data.get("expires_in") or DEFAULT_TOKEN_TTL_SECONDS),
    }


def create_event(access_token: str, calendar_id: str, event: Dict[str, Any]) -> str:
    """POST /calendars/{id}/events; retourne l'identifiant de l'événement créé."""
    url = f"{config.GOOGLE_CALENDAR_API}/calendars/{quote(calendar_id or 'primary', safe='')}/events"
    resp = httpx.post(
        url,
        json=event,
        headers={"Authorization": f"Bearer {access_token}"},
        timeout=config.CALENDAR_TIMEOUT_SECONDS,
    )
    if not (200 <= resp.status_code < 300):
        raise GoogleCalendarError(_error_message(resp, "Failed to create calendar event"), resp.status_code)
    event_id = (resp.json() or {}).get("id")
    if not event_id:
        raise GoogleCalendarError("Calendar response did not include an event id", resp.status_code)
    return event_id
