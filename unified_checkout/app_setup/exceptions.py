"""
Gestionnaires d'exceptions: toutes les erreurs de l'API sont rendues en {"error": ...}.
- CheckoutError: statut porté par l'exception (400/404/502), paymentId si connu.
- HTTPException (ex: 429 du rate limiting) et erreurs de validation: même forme.
- Erreur inattendue: 500 {"error": "Internal server error"}, détail uniquement dans les logs.
"""
import logging
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from unified_checkout.errors import CheckoutError

logger = logging.getLogger(__name__)


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(CheckoutError)
    async def checkout_error_handler(request: Request, exc: CheckoutError):
        logger.info(
            "api.error path=%s status=%s trace_id=%s error=%s",
            request.url.path, exc.status_code, getattr(request.state, "trace_id", None), exc.message,
        )
        return JSONResponse(status_code=exc.status_code, content=exc.to_payload())

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(status_code=exc.status_code, content={"error": str(exc.detail)}, headers=exc.headers)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        first = (exc.errors() or [{}])[0]
        field = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
        message = f"Invalid {field}: {first.get('msg')}" if field else "Invalid request body"
        return JSONResponse(status_code=400, content={"error": message})

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception):
        logger.exception(
            "api.unexpected_error path=%s trace_id=%s",
            request.url.path, getattr(request.state, "trace_id", None),
        )
        return JSONResponse(status_code=500, content={"error": "Internal server error"})
