"""
Middlewares transverses de l'application.
- register_basic_middlewares: CORS et TrustedHost.
- register_trace_id_middleware: renvoie le trace_id du checkout dans l'en-tête X-Trace-Id.
"""
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.trustedhost import TrustedHostMiddleware

from unified_checkout.config import CORS_ORIGINS, ALLOWED_HOSTS

TRACE_HEADER = "X-Trace-Id"


def register_basic_middlewares(app: FastAPI) -> None:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ORIGINS,
        allow_credentials="*" not in CORS_ORIGINS,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["*"],
        expose_headers=[TRACE_HEADER],
    )
    app.add_middleware(
        TrustedHostMiddleware,
        allowed_hosts=ALLOWED_HOSTS + ["*"] if "*" in CORS_ORIGINS else ALLOWED_HOSTS,
    )


def register_trace_id_middleware(app: FastAPI) -> None:
    """
    Le trace_id est généré par la vue de checkout (request.state.trace_id);
    il est aussi présent sur les réponses d'erreur rendues par les handlers.
    """
    @app.middleware("http")
    async def trace_id_header(request: Request, call_next):
        response = await call_next(request)
        trace_id = getattr(request.state, "trace_id", None)
        if trace_id and TRACE_HEADER not in response.headers:
            response.headers[TRACE_HEADER] = trace_id
        return response
