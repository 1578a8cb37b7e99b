"""
Cas d'usage 'checkout': orchestre panier, registre des sessions, Square, matérialisation et effets de bord.

Machine à états d'une tentative:
  Validating -> (Rejected) | PaymentPending -> (Failed) | Materializing -> SideEffects -> Done

Règles:
- Aucun appel Square tant que la validation n'a pas abouti (panier vide = zéro appel).
- Un panier ne peut être payé qu'une fois: porte d'idempotence + unicité en base.
- Aucun enregistrement métier n'est créé avant un paiement capturé.
- Après capture, plus rien ne fait échouer la réponse: les erreurs sont journalisées (trace_id).
"""
from typing import Any, Dict, Optional
import logging

from unified_checkout import config
from unified_checkout import tasks
from unified_checkout.carts import repository as carts_repo
from unified_checkout.carts import service as carts_service
from unified_checkout.errors import (
    CartNotFound,
    CheckoutError,
    CheckoutInProgress,
    ClientInputError,
    ConfigurationError,
    DuplicateSubmission,
    GatewayFailure,
)
from unified_checkout.orders import service as orders_service
from unified_checkout.payments import square_client
from . import repository
from .idempotency import IdempotencyKey
from .models import CheckoutRequest
from .pricing import snapshot_prices

logger = logging.getLogger(__name__)


def _require_fields(request: CheckoutRequest) -> None:
    # Valeurs nettoyées: un champ composé d'espaces compte comme absent
    customer = request.customer()
    token = (request.session_token or "").strip()
    source = (request.source_id or "").strip()
    if not all([token, customer["name"], customer["email"], source]):
        raise ClientInputError("Missing required fields")


def _load_cart(session_token: str, trace_id: str) -> Dict[str, Any]:
    """
    Panier actif du token. Un panier déjà clos par un paiement renvoie DuplicateSubmission
    (avec le payment_id initial) plutôt que CartNotFound.
    """
    try:
        return carts_service.load(session_token)
    except CartNotFound:
        closed = carts_repo.find_checked_out_cart(session_token)
        if closed:
            _reject_if_paid(closed["id"], trace_id)
        raise


def _payment_status(gateway_status: str) -> str:
    """COMPLETED -> 'paid'; tout autre statut retourné avec un identifiant -> 'pending'."""
    return "paid" if (gateway_status or "").upper() == "COMPLETED" else "pending"


def _reject_if_paid(cart_id: str, trace_id: str) -> None:
    prior = repository.find_paid_session(cart_id)
    if prior:
        logger.info("checkout.run duplicate submission trace_id=%s cart_id=%s session_id=%s", trace_id, cart_id, prior.get("id"))
        raise DuplicateSubmission(prior.get("square_payment_id"))


def _raise_duplicate_or_in_progress(cart_id: str, trace_id: str) -> None:
    _reject_if_paid(cart_id, trace_id)
    logger.info("checkout.run attempt already in flight trace_id=%s cart_id=%s", trace_id, cart_id)
    raise CheckoutInProgress()


def run_checkout(request: CheckoutRequest, trace_id: str) -> Dict[str, Any]:
    """
    Exécute une tentative de checkout complète.
    Retour: {trace_id, checkout_session_id, square_payment_id, shop_order_id, booking_id}
    Lève CheckoutError (et sous-classes) pour les rejets et les échecs de paiement.
    """
    logger.info("checkout.run start trace_id=%s", trace_id)

    # 1) Validating
    _require_fields(request)
    customer = request.customer()
    cart = _load_cart(request.session_token, trace_id)
    cart_id = cart["id"]
    business_id = cart["business_id"]

    items, booking_draft = carts_service.load_contents(cart_id)
    if not items and not booking_draft:
        logger.info("checkout.run rejected empty cart trace_id=%s cart_id=%s", trace_id, cart_id)
        raise ClientInputError("Cart is empty")

    business = repository.get_business_payment_config(business_id)
    location_id = (business or {}).get("square_location_id")
    if not location_id:
        logger.warning("checkout.run missing payment config trace_id=%s business_id=%s", trace_id, business_id)
        raise ConfigurationError("Business payment configuration incomplete")

    service: Optional[Dict[str, Any]] = None
    if booking_draft:
        # Service introuvable: réservation conservée, facturée 0
        service = carts_repo.fetch_service(booking_draft.get("service_id")) or {}
    snapshot = snapshot_prices(items, service)
    logger.info(
        "checkout.run priced trace_id=%s cart_id=%s subtotal=%s tax=%s total=%s",
        trace_id, cart_id, snapshot.subtotal_cents, snapshot.tax_cents, snapshot.total_cents,
    )

    # 2) Porte d'idempotence
    _reject_if_paid(cart_id, trace_id)

    # 3) Nouvelle session 'processing'
    key = IdempotencyKey.for_cart(cart_id)
    try:
        session = repository.create_session(
            cart_id=cart_id,
            business_id=business_id,
            location_id=location_id,
            idempotency_key=str(key),
            amount_total_cents=snapshot.total_cents,
            currency=config.CHECKOUT_CURRENCY,
            trace_id=trace_id,
        )
    except repository.SessionConflict:
        _raise_duplicate_or_in_progress(cart_id, trace_id)
    session_id = session["id"]

    # 4) PaymentPending
    logger.info("checkout.run processing payment trace_id=%s session_id=%s amount_cents=%s", trace_id, session_id, snapshot.total_cents)
    try:
        payment = square_client.create_payment(
            amount_cents=snapshot.total_cents,
            currency=config.CHECKOUT_CURRENCY,
            source_token=request.source_id,
            idempotency_key=str(key),
            reference_id=session_id,
            location_id=location_id,
            buyer_email=customer["email"],
            note=f"Unified checkout - Cart {cart_id}",
        )
    except square_client.GatewayError as e:
        logger.error("checkout.run payment failed trace_id=%s session_id=%s kind=%s error=%s", trace_id, session_id, e.kind, e.message)
        repository.mark_session_failed(session_id, e.message)
        raise GatewayFailure(f"Payment failed: {e.message}", e.kind)
    except Exception as e:
        # Échec inattendu avant toute réponse de Square: la session ne doit pas rester 'processing'
        logger.exception("checkout.run payment crashed trace_id=%s session_id=%s", trace_id, session_id)
        repository.mark_session_failed(session_id, str(e))
        raise

    square_payment_id = payment["id"]
    payment_status = _payment_status(payment.get("status"))
    logger.info(
        "checkout.run payment captured trace_id=%s session_id=%s square_payment_id=%s status=%s",
        trace_id, session_id, square_payment_id, payment_status,
    )
    repository.mark_session_captured(session_id, square_payment_id=square_payment_id, status=payment_status)

    # 5) Materializing (plus aucune erreur ne remonte au client)
    created = orders_service.materialize(
        session=session,
        cart=cart,
        items=items,
        booking_draft=booking_draft,
        snapshot=snapshot,
        customer=customer,
        square_payment_id=square_payment_id,
        payment_status=payment_status,
        idempotency_key=key,
        trace_id=trace_id,
    )
    if created["booking_id"]:
        carts_repo.set_booking_draft_status(cart_id, "confirmed")
    carts_service.mark_checked_out(cart_id, customer)

    # 6) SideEffects
    tasks.dispatch_side_effects(
        shop_order_id=created["shop_order_id"],
        booking_id=created["booking_id"],
        business_id=business_id,
        trace_id=trace_id,
    )

    # 7) Done
    logger.info(
        "checkout.run done trace_id=%s session_id=%s shop_order_id=%s booking_id=%s",
        trace_id, session_id, created["shop_order_id"], created["booking_id"],
    )
    return {
        "trace_id": trace_id,
        "checkout_session_id": session_id,
        "square_payment_id": square_payment_id,
        "shop_order_id": created["shop_order_id"],
        "booking_id": created["booking_id"],
    }


def get_session_status(session_id: str) -> Dict[str, Any]:
    """Lecture d'une session (suivi client des paiements 'pending'). 404 si inconnue."""
    session = repository.get_session(session_id)
    if not session:
        raise CheckoutError("Checkout session not found", status_code=404)
    return session
