"""
ASGI entrypoint: expose `app` pour les process managers (uvicorn, gunicorn -k uvicorn.workers.UvicornWorker).
Toute la configuration FastAPI est centralisée dans unified_checkout.app.
"""

from unified_checkout.app import app
