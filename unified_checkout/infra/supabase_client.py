from typing import Optional
from postgrest.exceptions import APIError
from supabase import create_client, Client
from unified_checkout.config import SUPABASE_URL, SUPABASE_SERVICE_KEY

_service_supabase: Optional[Client] = None

def get_service_supabase() -> Client:
    """
    Client Supabase service-role (bypass RLS), partagé par le processus.
    Le checkout n'opère jamais au nom d'un utilisateur: toutes les lectures/écritures passent ici.
    """
    global _service_supabase
    if not SUPABASE_SERVICE_KEY:
        raise RuntimeError("SUPABASE_SERVICE_KEY manquant pour get_service_supabase()")
    if _service_supabase is None:
        _service_supabase = create_client(SUPABASE_URL, SUPABASE_SERVICE_KEY)
    return _service_supabase

def is_unique_violation(exc: Exception) -> bool:
    """
    True si l'erreur PostgREST correspond à une violation d'unicité (code 23505).
    """
    if not isinstance(exc, APIError):
        return False
    code = getattr(exc, "code", None)
    if code is None and exc.args and isinstance(exc.args[0], dict):
        code = exc.args[0].get("code")
    return code == "23505"
