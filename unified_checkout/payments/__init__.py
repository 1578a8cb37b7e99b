"""
Module 'payments': point d'entrée public de la passerelle de paiement (Square).
"""

from .square_client import (
    GatewayError,
    DECLINED,
    CONFIGURATION,
    NETWORK,
    TIMEOUT,
    classify_error,
    create_payment,
    get_payment,
)

__all__ = [
    "GatewayError",
    "DECLINED",
    "CONFIGURATION",
    "NETWORK",
    "TIMEOUT",
    "classify_error",
    "create_payment",
    "get_payment",
]
