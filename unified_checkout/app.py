# module unified_checkout.app
from fastapi import FastAPI

from unified_checkout.app_setup.lifespan import lifespan
from unified_checkout.app_setup.middlewares import register_basic_middlewares, register_trace_id_middleware
from unified_checkout.app_setup.exceptions import register_exception_handlers
from unified_checkout.app_setup.routers import register_routers


def create_app() -> FastAPI:
    """
    Crée et configure l'instance FastAPI.
    Étapes:
      1) register_basic_middlewares: CORS, TrustedHost.
      2) register_trace_id_middleware: en-tête X-Trace-Id.
      3) register_exception_handlers: erreurs rendues en {"error": ...}.
      4) register_routers: panier, checkout, health.
    """
    app = FastAPI(title="Unified Checkout API", lifespan=lifespan)
    register_basic_middlewares(app)
    register_trace_id_middleware(app)
    register_exception_handlers(app)
    register_routers(app)
    return app


# App globale
app = create_app()
