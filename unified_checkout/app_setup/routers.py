"""
Registre central des routers (API v1 panier et checkout, health).
"""
from fastapi import FastAPI
from unified_checkout.carts import views as carts_views
from unified_checkout.checkout import views as checkout_views
from unified_checkout.health.router import router as health_router


def register_routers(app: FastAPI) -> None:
    # API v1
    app.include_router(carts_views.router)
    app.include_router(checkout_views.router)
    # Health & monitoring
    app.include_router(health_router)
