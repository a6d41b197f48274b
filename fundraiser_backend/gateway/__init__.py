"""
SDK client de la passerelle alternative: chargement du widget et lancement du paiement.
"""

from .loader import GatewayLoader, ScriptGatewayLoader, GatewayUnavailable
from .adapter import (
    AlternateGatewayAdapter,
    HttpVerifier,
    GatewaySuccess,
    GatewayCancelled,
    GatewayError,
    LaunchResult,
)

__all__ = [
    "GatewayLoader",
    "ScriptGatewayLoader",
    "GatewayUnavailable",
    "AlternateGatewayAdapter",
    "HttpVerifier",
    "GatewaySuccess",
    "GatewayCancelled",
    "GatewayError",
    "LaunchResult",
]
