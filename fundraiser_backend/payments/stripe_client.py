"""
Adaptateur Stripe: centralise les appels et la configuration Stripe (PaymentIntent + webhooks).
"""
import json
import logging
from typing import Any, Dict, Optional

import stripe
from fastapi import Request

from fundraiser_backend import config
from .errors import PaymentSetupError, ProviderVerificationError

logger = logging.getLogger(__name__)

def _as_dict(obj: Any) -> Dict[str, Any]:
    if obj is None:
        return {}
    if hasattr(obj, "to_dict"):
        return obj.to_dict()
    return dict(obj)

# module fundraiser_backend.payments.stripe_client
def require_stripe():
    """
    Prépare et retourne le module stripe prêt à l'emploi.
    - Erreur: PaymentSetupError si STRIPE_SECRET_KEY est absent (aucun appel n'est tenté).
    """
    if not config.STRIPE_SECRET_KEY:
        raise PaymentSetupError("Paiement par carte indisponible (STRIPE_SECRET_KEY manquant)")
    stripe.api_key = config.STRIPE_SECRET_KEY
    return stripe

def create_payment_intent(
    *,
    amount: int,
    currency: str,
    metadata: Dict[str, str],
    idempotency_key: Optional[str] = None,
    receipt_email: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Crée un PaymentIntent (montant en centimes, devise fixée à la création).
    Retour: dict incluant "id" et "client_secret".
    Erreur: PaymentSetupError portant le message Stripe.
    """
    require_stripe()
    params: Dict[str, Any] = {
        "amount": int(amount),
        "currency": currency,
        "metadata": metadata,
        "automatic_payment_methods": {"enabled": True},
    }
    if receipt_email:
        params["receipt_email"] = receipt_email
    try:
        intent = stripe.PaymentIntent.create(**params, idempotency_key=idempotency_key)
    except stripe.StripeError as e:
        message = getattr(e, "user_message", None) or str(e) or "Erreur Stripe"
        logger.warning("payments.stripe create_intent refused amount=%s error=%s", amount, message)
        raise PaymentSetupError(message, provider="stripe")
    return _as_dict(intent)

def retrieve_payment_intent(intent_id: str) -> Dict[str, Any]:
    """Récupère un PaymentIntent (vérification côté serveur, sans faire confiance au client)."""
    require_stripe()
    try:
        intent = stripe.PaymentIntent.retrieve(intent_id)
    except stripe.StripeError as e:
        raise ProviderVerificationError(f"PaymentIntent introuvable: {getattr(e, 'user_message', None) or e}")
    return _as_dict(intent)

async def parse_event(request: Request) -> Dict[str, Any]:
    """
    Parse et valide un événement Stripe signé (webhook).
    - Lit le body brut + en-tête Stripe-Signature
    - Valide la signature via Webhook.construct_event (STRIPE_WEBHOOK_SECRET)
    - Sans secret: refus, sauf STRIPE_ALLOW_UNSIGNED_WEBHOOKS=1 (dev local)
    """
    payload = await request.body()
    secret = config.STRIPE_WEBHOOK_SECRET
    if not secret:
        if not config.STRIPE_ALLOW_UNSIGNED_WEBHOOKS:
            raise ProviderVerificationError("Webhook non signé refusé")
        logger.warning("payments.stripe unsigned webhook accepted (dev)")
        return json.loads(payload or b"{}")
    sig_header = request.headers.get("stripe-signature") or ""
    event = stripe.Webhook.construct_event(payload, sig_header, secret)
    return _as_dict(event)
