"""
Création des intentions de paiement (carte via Stripe, passerelle alternative via Paystack).

La commande en attente est persistée avant l'appel fournisseur; en cas de refus fournisseur
elle reste 'pending' et l'acheteur peut réessayer.
"""
import logging
from typing import Optional

from fundraiser_backend import config
from fundraiser_backend.checkout.models import ComputedOrder, ProviderPaymentHandle
from . import metadata as payments_metadata
from . import paystack_client
from . import pending_orders
from . import stripe_client
from .errors import ProviderSetupError

logger = logging.getLogger(__name__)

# module fundraiser_backend.payments.intents
def create_intent(order: ComputedOrder, purchaser_student_id: Optional[int] = None) -> ProviderPaymentHandle:
    """
    Crée un PaymentIntent Stripe pour le total calculé.
    - Étapes:
      1) Persister la commande en attente (pending)
      2) Métadonnées compactes + pending_order_id
      3) PaymentIntent.create (clé d'idempotence = id de commande)
      4) Commande -> provider_pending, référence = id du PaymentIntent
    - Retour: ProviderPaymentHandle (client_secret pour le formulaire carte)
    - Erreur: PaymentSetupError avec le message fournisseur
    """
    pending = pending_orders.open_pending_order(
        order, payment_method="card", purchaser_student_id=purchaser_student_id
    )
    metadata = payments_metadata.build_metadata(order, pending["id"], purchaser_student_id)
    try:
        intent = stripe_client.create_payment_intent(
            amount=order.total_amount_cents,
            currency=config.PAYMENT_CURRENCY,
            metadata=metadata,
            idempotency_key=f"pending-order-{pending['id']}",
            receipt_email=order.customer_info.email,
        )
    except ProviderSetupError:
        logger.warning("payments.create_intent provider_refused pending_order=%s", pending["id"])
        raise

    pending_orders.advance(pending, pending_orders.PROVIDER_PENDING, payment_reference=intent.get("id"))
    logger.info(
        "payments.create_intent ok intent=%s pending_order=%s amount=%s items=%s",
        intent.get("id"), pending["id"], order.total_amount_cents, len(order.items),
    )
    return ProviderPaymentHandle(
        provider="stripe",
        reference=intent.get("id") or "",
        client_secret=intent.get("client_secret"),
        pending_order_id=pending["id"],
        amount_cents=order.total_amount_cents,
        currency=config.PAYMENT_CURRENCY,
    )

def initialize_gateway_transaction(
    order: ComputedOrder, purchaser_student_id: Optional[int] = None
) -> ProviderPaymentHandle:
    """
    Prépare une transaction Paystack (référence = id de la commande en attente).
    - Retour: ProviderPaymentHandle (access_code / authorization_url pour le widget)
    """
    pending = pending_orders.open_pending_order(
        order, payment_method="alt_gateway", purchaser_student_id=purchaser_student_id
    )
    metadata = payments_metadata.build_metadata(order, pending["id"], purchaser_student_id)
    data = paystack_client.initialize_transaction(
        email=order.customer_info.email,
        amount=order.total_amount_cents,
        reference=pending["id"],
        metadata=metadata,
    )
    reference = data.get("reference") or pending["id"]
    pending_orders.advance(pending, pending_orders.PROVIDER_PENDING, payment_reference=reference)
    logger.info("payments.gateway_initialize ok reference=%s amount=%s", reference, order.total_amount_cents)
    return ProviderPaymentHandle(
        provider="paystack",
        reference=reference,
        access_code=data.get("access_code"),
        authorization_url=data.get("authorization_url"),
        pending_order_id=pending["id"],
        amount_cents=order.total_amount_cents,
        currency=config.PAYMENT_CURRENCY,
    )
