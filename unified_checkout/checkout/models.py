from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class CheckoutRequest(BaseModel):
    """
    Corps de POST /api/v1/checkout (snake_case ou camelCase).
    Les champs requis sont validés par le service (400 {"error": ...}) et non par pydantic (422).
    """

    model_config = ConfigDict(populate_by_name=True)

    session_token: Optional[str] = Field(default=None, alias="sessionToken")
    customer_name: Optional[str] = Field(default=None, alias="customerName")
    customer_email: Optional[str] = Field(default=None, alias="customerEmail")
    customer_phone: Optional[str] = Field(default=None, alias="customerPhone")
    source_id: Optional[str] = Field(default=None, alias="sourceId")

    def customer(self) -> Dict[str, Optional[str]]:
        return {
            "name": (self.customer_name or "").strip() or None,
            "email": (self.customer_email or "").strip() or None,
            "phone": (self.customer_phone or "").strip() or None,
        }


def success_payload(result: Dict[str, Any]) -> Dict[str, Any]:
    """Réponse 200 du checkout (clés camelCase exposées au client)."""
    return {
        "success": True,
        "traceId": result["trace_id"],
        "checkoutSessionId": result["checkout_session_id"],
        "squarePaymentId": result["square_payment_id"],
        "shopOrderId": result.get("shop_order_id"),
        "bookingId": result.get("booking_id"),
    }


def session_status_payload(session: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "checkoutSessionId": session.get("id"),
        "status": session.get("status"),
        "squarePaymentId": session.get("square_payment_id"),
        "amountTotalCents": session.get("amount_total_cents"),
        "currency": session.get("currency"),
        "paidAt": session.get("paid_at"),
        "error": session.get("error_message"),
    }
