import logging
from uuid import uuid4

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from unified_checkout.utils.rate_limit import optional_rate_limit
from . import service as checkout_service
from .models import CheckoutRequest, session_status_payload, success_payload

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/checkout", tags=["Checkout API"])


# module unified_checkout.checkout.views
@router.post("", dependencies=[Depends(optional_rate_limit(times=10, seconds=60))])
def create_checkout(req: CheckoutRequest, request: Request):
    """
    Paie le panier du session_token et crée commande et/ou réservation.
    - Entrée JSON: { sessionToken, customerName, customerEmail, customerPhone?, sourceId }
    - Sécurité: rate limit (10 req / 60s)
    - Réponses:
      200 {success, traceId, checkoutSessionId, squarePaymentId, shopOrderId, bookingId}
      400 {error, paymentId?} (entrée invalide, panier vide/expiré, déjà payé, carte refusée)
      502 {error} (configuration/réseau/timeout côté passerelle)
    - Les CheckoutError sont rendues par le handler global (app_setup.exceptions).
    """
    trace_id = str(uuid4())
    request.state.trace_id = trace_id
    result = checkout_service.run_checkout(req, trace_id)
    return JSONResponse(success_payload(result), headers={"X-Trace-Id": trace_id})


@router.get("/sessions/{session_id}")
def get_checkout_session(session_id: str):
    """Statut d'une session (processing|paid|pending|failed) pour le suivi côté client."""
    return session_status_payload(checkout_service.get_session_status(session_id))
