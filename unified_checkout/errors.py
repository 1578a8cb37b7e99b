"""
Taxonomie des erreurs du panier et du checkout.
- Toutes héritent de CheckoutError, rendue en JSON {"error": ..., "paymentId"?: ...}
  par le handler enregistré dans app_setup.exceptions.
- Les erreurs levées avant la capture du paiement n'ont rien persisté (hors panier).
"""
from typing import Optional


class CheckoutError(Exception):
    status_code = 400

    def __init__(self, message: str, status_code: Optional[int] = None, payment_id: Optional[str] = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.payment_id = payment_id

    def to_payload(self) -> dict:
        payload = {"error": self.message}
        if self.payment_id:
            payload["paymentId"] = self.payment_id
        return payload


class ClientInputError(CheckoutError):
    """Champs manquants, panier vide, quantité invalide..."""


class CartNotFound(CheckoutError):
    def __init__(self, message: str = "Cart not found or expired"):
        super().__init__(message)


class ConfigurationError(CheckoutError):
    """Commerce sans configuration de paiement (square_location_id absent)."""


class DuplicateSubmission(CheckoutError):
    def __init__(self, payment_id: Optional[str]):
        super().__init__("This cart has already been checked out", payment_id=payment_id)


class CheckoutInProgress(CheckoutError):
    def __init__(self):
        super().__init__("A checkout is already in progress for this cart")


class GatewayFailure(CheckoutError):
    """
    Échec du paiement (refus, configuration, réseau, timeout).
    - Refus carte: 400 (corrigeable par le client).
    - Configuration/réseau/timeout: 502 (côté opérateur ou passerelle).
    """

    def __init__(self, message: str, kind: str):
        super().__init__(message, status_code=400 if kind == "declined" else 502)
        self.kind = kind
