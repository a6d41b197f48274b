"""
Adaptateur Paystack (passerelle alternative): appels REST directs via httpx.
"""
import logging
from typing import Any, Dict, Optional
from urllib.parse import quote

import httpx

from fundraiser_backend import config
from .errors import ProviderSetupError

logger = logging.getLogger(__name__)

def _headers() -> Dict[str, str]:
    if not config.PAYSTACK_SECRET_KEY:
        raise ProviderSetupError("Passerelle indisponible (PAYSTACK_SECRET_KEY manquant)", provider="paystack")
    return {
        "Authorization": f"Bearer {config.PAYSTACK_SECRET_KEY}",
        "Content-Type": "application/json",
    }

# module fundraiser_backend.payments.paystack_client
def initialize_transaction(
    *,
    email: str,
    amount: int,
    reference: str,
    metadata: Dict[str, Any],
) -> Dict[str, Any]:
    """
    POST /transaction/initialize (montant en unité mineure).
    - Retour: data {authorization_url, access_code, reference}
    - Erreur: ProviderSetupError avec le message Paystack
    """
    url = f"{config.PAYSTACK_BASE_URL}/transaction/initialize"
    body = {
        "email": email,
        "amount": int(amount),
        "reference": reference,
        "currency": config.PAYMENT_CURRENCY.upper(),
        "metadata": metadata,
    }
    try:
        resp = httpx.post(url, json=body, headers=_headers(), timeout=10)
        payload = resp.json()
    except (httpx.HTTPError, ValueError) as e:
        logger.exception("payments.paystack initialize failed reference=%s", reference)
        raise ProviderSetupError(f"Passerelle injoignable: {e}", provider="paystack")
    if resp.status_code >= 400 or not payload.get("status"):
        message = payload.get("message") or f"status {resp.status_code}"
        raise ProviderSetupError(message, provider="paystack")
    return payload.get("data") or {}

def verify_transaction(reference: str) -> Optional[Dict[str, Any]]:
    """
    GET /transaction/verify/{reference}.
    Retour: data si la transaction est 'success', sinon None (y compris en cas d'erreur réseau).
    """
    url = f"{config.PAYSTACK_BASE_URL}/transaction/verify/{quote(reference, safe='')}"
    try:
        resp = httpx.get(url, headers=_headers(), timeout=10)
        payload = resp.json()
    except (httpx.HTTPError, ValueError):
        logger.exception("payments.paystack verify failed reference=%s", reference)
        return None
    data = payload.get("data") or {}
    if resp.status_code < 400 and payload.get("status") and data.get("status") == "success":
        return data
    logger.info("payments.paystack verify not_success reference=%s status=%s", reference, data.get("status"))
    return None
