# unified_checkout.utils.retry
from tenacity import retry, stop_after_attempt, wait_exponential, retry_if_exception_type
import httpx

def connect_retry():
    """
    Retente uniquement les échecs d'établissement de connexion (la requête n'a pas atteint le serveur).
    Les timeouts de lecture ne sont jamais retentés ici.
    """
    return retry(
        reraise=True,
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.3, min=0.3, max=3),
        retry=retry_if_exception_type(httpx.ConnectError),
    )
