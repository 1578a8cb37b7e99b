# module unified_checkout.checkout.idempotency
import time
from uuid import uuid4


class IdempotencyKey:
    """
    Clé d'idempotence d'une tentative de checkout.
    - Unique par tentative: cart_id + horodatage (ms) + suffixe aléatoire.
    - Transmise telle quelle à Square: un retry transport de la même requête ne débite qu'une fois.
    - Square limite la clé à 45 caractères: seul un préfixe du cart_id est conservé.
    - Les enregistrements matérialisés dérivent leur propre clé (ex: "<clé>-booking").
    """

    __slots__ = ("value",)

    def __init__(self, value: str):
        if not value:
            raise ValueError("idempotency key must not be empty")
        self.value = value

    @classmethod
    def for_cart(cls, cart_id: str) -> "IdempotencyKey":
        cart_part = str(cart_id).replace("-", "")[:12]
        return cls(f"unified-{cart_part}-{int(time.time() * 1000)}-{uuid4().hex[:8]}")

    def derive(self, suffix: str) -> "IdempotencyKey":
        return IdempotencyKey(f"{self.value}-{suffix}")

    def __str__(self) -> str:
        return self.value

    def __repr__(self) -> str:
        return f"IdempotencyKey({self.value!r})"

    def __eq__(self, other) -> bool:
        return isinstance(other, IdempotencyKey) and other.value == self.value

    def __hash__(self) -> int:
        return hash(self.value)
