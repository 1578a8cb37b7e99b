"""
Calcul des montants du checkout (entiers en centimes, pas de flottants sur les totaux).
"""
from typing import Any, Dict, List, Optional

TAX_RATE_BASIS_POINTS = 800  # 8 %


def dollars_to_cents(price: Any) -> int:
    """
    Convertit un prix en dollars (str|float|int|None) en centimes arrondis.
    Retourne 0 si le parsing échoue.
    """
    try:
        return int(round(float(price or 0) * 100))
    except (TypeError, ValueError):
        return 0


def compute_tax_cents(subtotal_cents: int) -> int:
    """round(subtotal × 0.08), arrondi à l'entier le plus proche (demi vers le haut)."""
    if subtotal_cents < 0:
        raise ValueError("subtotal_cents must be non-negative")
    return (subtotal_cents * TAX_RATE_BASIS_POINTS + 5000) // 10000


def line_total_cents(unit_price_cents: int, quantity: int) -> int:
    return int(unit_price_cents) * int(quantity)


class PriceSnapshot:
    """
    Montants figés à l'étape de validation et réutilisés à la matérialisation.
    Le prix du service réservé n'est lu qu'une seule fois.
    """

    def __init__(
        self,
        items_subtotal_cents: int,
        booking_price_cents: int = 0,
        service_name: Optional[str] = None,
    ):
        self.items_subtotal_cents = items_subtotal_cents
        self.booking_price_cents = booking_price_cents
        self.service_name = service_name
        self.subtotal_cents = items_subtotal_cents + booking_price_cents
        self.tax_cents = compute_tax_cents(self.subtotal_cents)
        self.total_cents = self.subtotal_cents + self.tax_cents

    def order_amounts(self) -> Dict[str, int]:
        """Montants de la commande boutique: total session hors part réservation."""
        subtotal = self.subtotal_cents - self.booking_price_cents
        tax = compute_tax_cents(subtotal)
        return {"subtotal_cents": subtotal, "tax_cents": tax, "total_cents": subtotal + tax}


def snapshot_prices(items: List[Dict[str, Any]], service: Optional[Dict[str, Any]] = None) -> PriceSnapshot:
    """
    Construit le PriceSnapshot à partir des lignes du panier et du service réservé (optionnel).
    - Les totaux de ligne sont recalculés (unit_price_cents × quantity), jamais lus du client.
    """
    items_subtotal = sum(
        line_total_cents(it.get("unit_price_cents") or 0, it.get("quantity") or 0)
        for it in items or []
    )
    if service is None:
        return PriceSnapshot(items_subtotal)
    return PriceSnapshot(
        items_subtotal,
        booking_price_cents=dollars_to_cents(service.get("price")),
        service_name=service.get("name") or "Service",
    )
