# module unified_checkout.carts.views
"""Endpoints du panier (API JSON).
- Le client conserve le session_token et le renvoie à chaque appel.
- Les erreurs métier (CheckoutError) sont rendues par le handler global en {"error": ...}.
"""
from typing import Optional
from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field

from unified_checkout.utils.rate_limit import optional_rate_limit
from . import service as carts_service

router = APIRouter(prefix="/api/v1/cart", tags=["Cart API"])


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class GetCartRequest(_CamelModel):
    business_id: str = Field(alias="businessId")
    session_token: Optional[str] = Field(default=None, alias="sessionToken")


class AddItemRequest(_CamelModel):
    session_token: str = Field(alias="sessionToken")
    business_id: str = Field(alias="businessId")
    item_type: str = Field(alias="itemType")
    item_id: str = Field(alias="itemId")
    quantity: int = Field(default=1)


class UpdateItemRequest(_CamelModel):
    session_token: str = Field(alias="sessionToken")
    quantity: int


class SessionTokenRequest(_CamelModel):
    session_token: str = Field(alias="sessionToken")


class SetBookingRequest(_CamelModel):
    session_token: str = Field(alias="sessionToken")
    business_id: str = Field(alias="businessId")
    service_id: str = Field(alias="serviceId")
    start_time: str = Field(alias="startTime")
    end_time: str = Field(alias="endTime")
    timezone: str
    customer_name: Optional[str] = Field(default=None, alias="customerName")
    customer_phone: Optional[str] = Field(default=None, alias="customerPhone")
    notes: Optional[str] = None


@router.post("", dependencies=[Depends(optional_rate_limit(times=60, seconds=60))])
def get_or_create_cart(req: GetCartRequest):
    """Retourne {cart, items, booking}; crée le panier (et le token) si nécessaire."""
    return carts_service.get_or_create(req.business_id, req.session_token)


@router.post("/items")
def add_cart_item(req: AddItemRequest):
    return carts_service.add_item(req.session_token, req.business_id, req.item_type, req.item_id, req.quantity)


@router.patch("/items/{item_id}")
def update_cart_item(item_id: str, req: UpdateItemRequest):
    return carts_service.update_item(req.session_token, item_id, req.quantity)


@router.delete("/items/{item_id}")
def remove_cart_item(item_id: str, session_token: str):
    """session_token en query (?session_token=...) car DELETE sans body."""
    return carts_service.remove_item(session_token, item_id)


@router.put("/booking")
def set_cart_booking(req: SetBookingRequest):
    """Enregistre l'unique brouillon de réservation du panier (statut 'draft')."""
    return carts_service.set_booking(
        req.session_token,
        req.business_id,
        service_id=req.service_id,
        start_time=req.start_time,
        end_time=req.end_time,
        timezone_name=req.timezone,
        customer_name=req.customer_name,
        customer_phone=req.customer_phone,
        notes=req.notes,
    )


@router.post("/clear")
def clear_cart(req: SessionTokenRequest):
    return carts_service.clear(req.session_token)
