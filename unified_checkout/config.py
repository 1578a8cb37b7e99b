# unified_checkout.config
from pathlib import Path
import os
from dotenv import load_dotenv

# Calculer le chemin du projet puis charger .env de manière explicite
BASE_DIR = Path(__file__).resolve().parent.parent
ENV_PATH = BASE_DIR / ".env"
load_dotenv(dotenv_path=ENV_PATH, override=True)

"""
Configuration centrale du service de checkout.

- Charge le fichier .env à la racine du projet (BASE_DIR/.env)
- Normalise et expose les secrets/URLs (Supabase, Square, Google, email)
- Expose les délais (timeouts) de chaque collaborateur externe
- Paramètres Celery pour les effets de bord (calendrier, emails)
"""

def _clean_env(v: str) -> str:
    """
    Nettoie une valeur d'environnement:
    - supprime les espaces et guillemets (simples, doubles) et backticks
    - retourne toujours une chaîne (jamais None)
    """
    return (v or "").strip().strip("'").strip('"').strip("`")

def _float_env(name: str, default: float) -> float:
    try:
        return float(_clean_env(os.getenv(name)) or default)
    except ValueError:
        return default

def _int_env(name: str, default: int) -> int:
    try:
        return int(_clean_env(os.getenv(name)) or default)
    except ValueError:
        return default

# Supabase: URL + clé service (toutes les écritures du checkout passent côté serveur)
SUPABASE_URL = _clean_env(os.getenv("SUPABASE_URL") or "")
SUPABASE_SERVICE_KEY = _clean_env(os.getenv("SUPABASE_SERVICE_KEY") or os.getenv("SUPABASE_SERVICE_ROLE_KEY") or "")

if SUPABASE_URL and not SUPABASE_URL.startswith("http"):
    SUPABASE_URL = "https://" + SUPABASE_URL
if SUPABASE_URL.endswith("/"):
    SUPABASE_URL = SUPABASE_URL.rstrip("/")

# CORS / hôtes autorisés
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]
ALLOWED_HOSTS = [h.strip() for h in os.getenv("ALLOWED_HOSTS", "localhost,127.0.0.1,testserver").split(",") if h.strip()]

# Square: jeton d'accès et environnement
SQUARE_ACCESS_TOKEN = _clean_env(os.getenv("SQUARE_ACCESS_TOKEN") or "")
SQUARE_ENV = _clean_env(os.getenv("SQUARE_ENV") or "production").lower()
SQUARE_VERSION = _clean_env(os.getenv("SQUARE_VERSION") or "2024-01-18")
SQUARE_BASE_URL = "https://connect.squareup.com" if SQUARE_ENV == "production" else "https://connect.squareupsandbox.com"

CHECKOUT_CURRENCY = _clean_env(os.getenv("CHECKOUT_CURRENCY") or "USD").upper()

# Délais (secondes) par collaborateur
PAYMENT_TIMEOUT_SECONDS = _float_env("PAYMENT_TIMEOUT_SECONDS", 15.0)
CALENDAR_TIMEOUT_SECONDS = _float_env("CALENDAR_TIMEOUT_SECONDS", 10.0)
EMAIL_TIMEOUT_SECONDS = _float_env("EMAIL_TIMEOUT_SECONDS", 10.0)

# Email: collaborateur générique POST {to, subject, html, trace_id}
EMAIL_API_URL = _clean_env(os.getenv("EMAIL_API_URL") or "")
EMAIL_API_KEY = _clean_env(os.getenv("EMAIL_API_KEY") or "")
EMAIL_FROM = _clean_env(os.getenv("EMAIL_FROM") or "orders@example.com")

# Google Calendar (OAuth client de la plateforme)
GOOGLE_CLIENT_ID = _clean_env(os.getenv("GOOGLE_CLIENT_ID") or "")
GOOGLE_CLIENT_SECRET = _clean_env(os.getenv("GOOGLE_CLIENT_SECRET") or "")
GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
GOOGLE_CALENDAR_API = "https://www.googleapis.com/calendar/v3"
DEFAULT_TIMEZONE = _clean_env(os.getenv("DEFAULT_TIMEZONE") or os.getenv("TIMEZONE") or "America/New_York")

# Panier
CART_TTL_HOURS = _int_env("CART_TTL_HOURS", 24)

# Celery (effets de bord)
CELERY_BROKER_URL = _clean_env(os.getenv("CELERY_BROKER_URL") or "redis://127.0.0.1:6379/1")
CELERY_RESULT_BACKEND = _clean_env(os.getenv("CELERY_RESULT_BACKEND") or "redis://127.0.0.1:6379/2")
CELERY_TASK_ALWAYS_EAGER = (os.getenv("CELERY_TASK_ALWAYS_EAGER", "false").lower() == "true")
SIDE_EFFECT_MAX_RETRIES = _int_env("SIDE_EFFECT_MAX_RETRIES", 3)
SIDE_EFFECT_SOFT_TIME_LIMIT = _int_env("SIDE_EFFECT_SOFT_TIME_LIMIT", 60)
