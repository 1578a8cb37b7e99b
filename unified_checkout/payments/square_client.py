"""
Adaptateur Square: centralise les appels à l'API Payments (REST v2) et leur configuration.
- La clé d'idempotence est transmise inchangée: un retry transport ne débite jamais deux fois.
- Les erreurs sont typées (GatewayError.kind) pour router le message vers le client ou l'opérateur.
"""
from typing import Any, Dict, Optional
import logging

import httpx

from unified_checkout import config
from unified_checkout.utils.retry import connect_retry

logger = logging.getLogger(__name__)

DECLINED = "declined"
CONFIGURATION = "configuration"
NETWORK = "network"
TIMEOUT = "timeout"

# Codes Square imputables au moyen de paiement (corrigeables par le client)
_DECLINE_CODES = {
    "CARD_DECLINED",
    "GENERIC_DECLINE",
    "CVV_FAILURE",
    "ADDRESS_VERIFICATION_FAILURE",
    "INVALID_EXPIRATION",
    "INVALID_CARD",
    "INVALID_CARD_DATA",
    "CARD_EXPIRED",
    "INSUFFICIENT_FUNDS",
    "TRANSACTION_LIMIT",
    "VOICE_FAILURE",
    "PAN_FAILURE",
    "EXPIRATION_FAILURE",
    "CARD_NOT_SUPPORTED",
    "INVALID_PIN",
    "INVALID_POSTAL_CODE",
    "CARD_DECLINED_VERIFICATION_REQUIRED",
    "CARD_TOKEN_EXPIRED",
    "CARD_TOKEN_USED",
}
_CONFIGURATION_CATEGORIES = {"AUTHENTICATION_ERROR", "INVALID_REQUEST_ERROR"}


class GatewayError(Exception):
    def __init__(self, message: str, kind: str, status_code: Optional[int] = None, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.kind = kind
        self.status_code = status_code
        self.code = code


def _headers() -> Dict[str, str]:
    return {
        "Authorization": f"Bearer {config.SQUARE_ACCESS_TOKEN}",
        "Square-Version": config.SQUARE_VERSION,
        "Content-Type": "application/json",
    }


def classify_error(status_code: int, body: Dict[str, Any]) -> GatewayError:
    """
    Construit une GatewayError depuis une réponse Square non-2xx.
    - PAYMENT_METHOD_ERROR ou code de refus carte -> declined
    - AUTHENTICATION_ERROR / INVALID_REQUEST_ERROR / 401 / 403 -> configuration
    - autres (5xx, rate limit...) -> network
    """
    errors = (body or {}).get("errors") or []
    first = errors[0] if errors else {}
    category = first.get("category") or ""
    code = first.get("code") or ""
    detail = first.get("detail") or (body or {}).get("message") or f"Square API error: {status_code}"

    if category == "PAYMENT_METHOD_ERROR" or code in _DECLINE_CODES:
        kind = DECLINED
    elif category in _CONFIGURATION_CATEGORIES or status_code in (401, 403):
        kind = CONFIGURATION
    else:
        kind = NETWORK
    return GatewayError(detail, kind, status_code=status_code, code=code or None)


@connect_retry()
def _post(url: str, payload: Dict[str, Any]) -> httpx.Response:
    return httpx.post(url, json=payload, headers=_headers(), timeout=config.PAYMENT_TIMEOUT_SECONDS)


def create_payment(
    *,
    amount_cents: int,
    currency: str,
    source_token: str,
    idempotency_key: str,
    reference_id: str,
    location_id: str,
    buyer_email: Optional[str] = None,
    note: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Crée (et capture) un paiement Square.
    Retour: {"id": "<square_payment_id>", "status": "COMPLETED"|"APPROVED"|"PENDING"|...}
    Lève GatewayError(kind=declined|configuration|network|timeout) en cas d'échec.
    """
    if not config.SQUARE_ACCESS_TOKEN:
        raise GatewayError("SQUARE_ACCESS_TOKEN is not configured", CONFIGURATION)

    payload: Dict[str, Any] = {
        "source_id": source_token,
        "amount_money": {"amount": int(amount_cents), "currency": currency},
        "location_id": location_id,
        "idempotency_key": idempotency_key,
        "reference_id": reference_id,
    }
    if buyer_email:
        payload["buyer_email_address"] = buyer_email
    if note:
        payload["note"] = note

    try:
        resp = _post(f"{config.SQUARE_BASE_URL}/v2/payments", payload)
    except httpx.TimeoutException as e:
        raise GatewayError(f"Payment request timed out: {e}", TIMEOUT)
    except httpx.HTTPError as e:
        raise GatewayError(f"Request failed: {e}", NETWORK)

    try:
        body = resp.json()
    except ValueError:
        body = {}

    if not (200 <= resp.status_code < 300):
        raise classify_error(resp.status_code, body)

    payment = (body or {}).get("payment") or {}
    if not payment.get("id"):
        raise GatewayError("Square response did not include a payment id", NETWORK, status_code=resp.status_code)
    return {"id": payment["id"], "status": payment.get("status") or ""}


def get_payment(payment_id: str) -> Optional[Dict[str, Any]]:
    """
    Lecture d'un paiement Square (rapprochement opérateur). None si introuvable ou erreur.
    """
    try:
        resp = httpx.get(
            f"{config.SQUARE_BASE_URL}/v2/payments/{payment_id}",
            headers=_headers(),
            timeout=config.PAYMENT_TIMEOUT_SECONDS,
        )
        if resp.status_code != 200:
            logger.error("square_client.get_payment failed id=%s status=%s body=%s", payment_id, resp.status_code, resp.text)
            return None
        return (resp.json() or {}).get("payment")
    except httpx.HTTPError:
        logger.exception("square_client.get_payment failed id=%s", payment_id)
        return None
