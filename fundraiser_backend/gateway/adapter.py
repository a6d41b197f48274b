"""
Adaptateur client de la passerelle alternative (widget popup type Paystack).

`launch()` est une coroutine qui ouvre le widget et retourne un résultat étiqueté:
GatewaySuccess (paiement vérifié côté serveur), GatewayCancelled (fermeture par l'acheteur,
aucun achat écrit) ou GatewayError.
"""
import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

import httpx

from fundraiser_backend.checkout.models import ComputedOrder, ProviderPaymentHandle
from .loader import GatewayLoader

logger = logging.getLogger(__name__)

VERIFY_PATH = "/api/v1/payments/paystack/verify"
VERIFY_CART_PATH = "/api/v1/payments/paystack/verify-cart"


@dataclass(frozen=True)
class GatewaySuccess:
    reference: str
    purchases: List[Dict[str, Any]] = field(default_factory=list)


@dataclass(frozen=True)
class GatewayCancelled:
    pass


@dataclass(frozen=True)
class GatewayError:
    detail: str


LaunchResult = Union[GatewaySuccess, GatewayCancelled, GatewayError]


class VerificationFailed(Exception):
    pass


class HttpVerifier:
    """Appelle l'endpoint de vérification du backend (POST {reference})."""

    def __init__(self, base_url: str, client: Optional[httpx.AsyncClient] = None, timeout: float = 10):
        self.base_url = base_url.rstrip("/")
        self._client = client
        self.timeout = timeout

    async def __call__(self, reference: str, is_cart: bool) -> List[Dict[str, Any]]:
        url = self.base_url + (VERIFY_CART_PATH if is_cart else VERIFY_PATH)
        if self._client is not None:
            resp = await self._client.post(url, json={"reference": reference}, timeout=self.timeout)
        else:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                resp = await client.post(url, json={"reference": reference})
        try:
            body = resp.json()
        except ValueError:
            body = {}
        if resp.status_code >= 400:
            detail = body.get("detail") if isinstance(body, dict) else None
            if isinstance(detail, dict):
                detail = detail.get("detail")
            raise VerificationFailed(detail or f"Vérification refusée (status {resp.status_code})")
        return body.get("purchases") or []


def _widget_metadata(order: ComputedOrder, handle: ProviderPaymentHandle) -> Dict[str, Any]:
    return {
        "isCart": order.is_cart,
        "pending_order_id": handle.pending_order_id,
        "customerName": order.customer_info.name,
        "customerPhone": order.customer_info.phone,
        "cartItems": [
            {"fundraiserId": i.fundraiser_id, "quantity": i.quantity, "amount": i.amount_cents}
            for i in order.items
        ],
    }


# module fundraiser_backend.gateway.adapter
class AlternateGatewayAdapter:
    def __init__(self, loader: GatewayLoader, public_key: str, verifier):
        self.loader = loader
        self.public_key = public_key
        self.verifier = verifier

    async def launch(self, order: ComputedOrder, handle: ProviderPaymentHandle) -> LaunchResult:
        """
        Ouvre le widget pour la commande et attend l'issue.
        - Montant transmis en unité mineure (centimes)
        - Fermeture: GatewayCancelled ; référence reçue: vérification serveur puis GatewaySuccess
        """
        try:
            widget = await self.loader.ensure_loaded()
        except Exception as e:
            logger.warning("gateway.launch loader_failed error=%s", e)
            return GatewayError(f"Passerelle indisponible: {e}")

        loop = asyncio.get_running_loop()
        outcome: asyncio.Future = loop.create_future()

        def _settle(value: Optional[str]) -> None:
            if not outcome.done():
                outcome.set_result(value)

        def on_close() -> None:
            loop.call_soon_threadsafe(_settle, None)

        def callback(response: Dict[str, Any]) -> None:
            reference = (response or {}).get("reference") or ""
            loop.call_soon_threadsafe(_settle, reference)

        config = {
            "key": self.public_key,
            "email": order.customer_info.email,
            "amount": order.total_amount_cents,
            "ref": handle.reference,
            "metadata": _widget_metadata(order, handle),
            "onClose": on_close,
            "callback": callback,
        }
        if handle.access_code:
            config["access_code"] = handle.access_code

        try:
            popup = widget.setup(config)
            popup.open_iframe()
        except Exception as e:
            logger.exception("gateway.launch widget_failed ref=%s", handle.reference)
            return GatewayError(f"Ouverture du paiement impossible: {e}")

        reference = await outcome
        if reference is None:
            logger.info("gateway.launch cancelled ref=%s", handle.reference)
            return GatewayCancelled()
        if not reference:
            return GatewayError("Référence de paiement manquante")

        try:
            purchases = await self.verifier(reference, order.is_cart)
        except Exception as e:
            logger.warning("gateway.launch verification_failed ref=%s error=%s", reference, e)
            return GatewayError(str(e))
        return GatewaySuccess(reference=reference, purchases=purchases)
