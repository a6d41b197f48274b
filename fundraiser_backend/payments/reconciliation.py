"""
Vérification fournisseur et enregistrement des achats (une ligne 'ticket_purchases' par article).

- Le statut est toujours relu côté serveur: aucune confiance dans le client
- Montant fournisseur >= total attendu (AMOUNT_CHECK_POLICY) avant toute écriture
- Idempotence: contrôle d'existence par référence + conflit d'unicité traité comme déjà fait
- Notifications en fire-and-forget après écriture
"""
import logging
from typing import Any, Dict, List, Optional, Tuple

from fundraiser_backend import config
from fundraiser_backend.checkout.models import ComputedOrder, TicketPurchase
from fundraiser_backend.notifications import service as notifications
from fundraiser_backend.purchases import repository as purchases_repo
from . import metadata as payments_metadata
from . import paystack_client
from . import pending_orders
from . import stripe_client
from .errors import DuplicatePurchaseError, PersistenceError, ProviderVerificationError
from .referral import resolve_item_referral

logger = logging.getLogger(__name__)

# module fundraiser_backend.payments.reconciliation
def amount_is_acceptable(provider_amount: Any, expected_cents: int) -> bool:
    try:
        received = int(provider_amount)
    except (TypeError, ValueError):
        return False
    if config.AMOUNT_CHECK_POLICY == "exact":
        return received == expected_cents
    return received >= expected_cents

def build_purchase_rows(
    order: ComputedOrder,
    *,
    reference: str,
    payment_method: str,
    purchaser_student_id: Optional[int],
) -> List[Dict[str, Any]]:
    customer = order.customer_info
    rows = []
    for item in order.items:
        purchase = TicketPurchase(
            fundraiser_id=item.fundraiser_id,
            student_id=resolve_item_referral(item.referring_student_id, purchaser_student_id),
            customer_name=customer.name,
            customer_email=customer.email,
            customer_phone=customer.phone,
            quantity=item.quantity,
            amount=item.amount_cents,
            payment_intent_id=reference,
            payment_status="completed",
            payment_method=payment_method,
            student_email=customer.student_email,
            ticket_info=customer.ticket_info,
        )
        rows.append(purchase.to_row())
    return rows

def record_order(
    order: ComputedOrder,
    *,
    reference: str,
    payment_method: str,
    purchaser_student_id: Optional[int] = None,
) -> Tuple[List[Dict[str, Any]], bool]:
    """
    Écrit une ligne par article, toutes partageant la même référence.
    Retour: (lignes, créées?) ; une référence déjà enregistrée renvoie les lignes existantes.
    """
    existing = purchases_repo.list_by_payment_reference(reference)
    if existing:
        logger.info("payments.record already_recorded ref=%s rows=%s", reference, len(existing))
        return existing, False

    rows = build_purchase_rows(
        order, reference=reference, payment_method=payment_method, purchaser_student_id=purchaser_student_id
    )
    try:
        inserted = purchases_repo.insert_ticket_purchases(rows)
    except DuplicatePurchaseError as e:
        # livraison concurrente pour la même référence
        existing = purchases_repo.list_by_payment_reference(reference)
        if not existing:
            logger.error("payments.record conflict_without_rows ref=%s rows=%s", reference, len(rows))
            raise PersistenceError("Conflit d'unicité sans achat existant pour cette référence", failed_items=e.failed_items or rows)
        logger.info("payments.record duplicate ref=%s", reference)
        return existing, False
    logger.info("payments.record created ref=%s method=%s rows=%s", reference, payment_method, len(inserted))
    return inserted, True

def _load_order(parsed: Dict[str, Any]) -> Tuple[Optional[Dict[str, Any]], ComputedOrder, Optional[int]]:
    pending = pending_orders.load_pending_order(parsed.get("pending_order_id"))
    if pending:
        return pending, pending_orders.load_order(pending), pending.get("purchaser_student_id")
    order = payments_metadata.order_from_metadata(parsed)
    if order is None:
        raise ProviderVerificationError("Commande introuvable pour cette référence")
    return None, order, parsed.get("purchaser_student_id")

def _reconcile(
    *,
    reference: str,
    provider_amount: Any,
    metadata: Any,
    payment_method: str,
    expected_kind: Optional[str] = None,
) -> List[Dict[str, Any]]:
    parsed = payments_metadata.parse_metadata(metadata)
    pending, order, purchaser_student_id = _load_order(parsed)

    if pending and pending.get("status") == pending_orders.RECORDED:
        return purchases_repo.list_by_payment_reference(reference)

    if expected_kind and order.kind != expected_kind:
        pending_orders.mark_failed(pending, f"kind {order.kind} != {expected_kind}")
        raise ProviderVerificationError("Type de commande inattendu pour cette référence")

    if not amount_is_acceptable(provider_amount, order.total_amount_cents):
        pending_orders.mark_failed(pending, f"amount {provider_amount} < {order.total_amount_cents}")
        raise ProviderVerificationError("Montant payé insuffisant")

    if pending:
        pending = pending_orders.mark_verified(pending, reference)

    try:
        rows, created = record_order(
            order, reference=reference, payment_method=payment_method, purchaser_student_id=purchaser_student_id
        )
    except PersistenceError as e:
        pending_orders.mark_failed(pending, f"persistence: {e.message}")
        raise
    if pending:
        pending_orders.advance(pending, pending_orders.RECORDED)
    if created:
        notifications.notify_purchase_recorded(order, rows)
    return rows

def verify_and_record(reference: str, expected_kind: Optional[str] = None) -> List[Dict[str, Any]]:
    """
    Passerelle alternative: relit la transaction chez Paystack puis enregistre les achats.
    - expected_kind: "single" | "cart" (None = indifférent)
    - Erreur: ProviderVerificationError (commande marquée 'failed', aucune ligne écrite)
    """
    reference = (reference or "").strip()
    if not reference:
        raise ProviderVerificationError("Référence de paiement manquante")
    transaction = paystack_client.verify_transaction(reference)
    if not transaction:
        pending_orders.mark_failed(pending_orders.load_pending_order(reference), "not_success")
        raise ProviderVerificationError("Paiement non confirmé par la passerelle")
    return _reconcile(
        reference=transaction.get("reference") or reference,
        provider_amount=transaction.get("amount"),
        metadata=transaction.get("metadata"),
        payment_method="alt_gateway",
        expected_kind=expected_kind,
    )

def handle_card_event(event: Dict[str, Any]) -> Dict[str, Any]:
    """
    Webhook carte: seul payment_intent.succeeded enregistre des achats.
    - payment_intent.payment_failed / canceled: commande en attente marquée failed / cancelled
    - Retour: {"status": "ok"|"failed"|"cancelled"|"ignored", ...}
    """
    event_type = (event or {}).get("type")
    intent = ((event or {}).get("data") or {}).get("object") or {}
    if event_type == "payment_intent.succeeded":
        rows = _reconcile(
            reference=intent.get("id") or "",
            provider_amount=intent.get("amount_received") or intent.get("amount"),
            metadata=intent.get("metadata"),
            payment_method="card",
        )
        logger.info("payments.webhook succeeded intent=%s rows=%s", intent.get("id"), len(rows))
        return {"status": "ok", "recorded": len(rows)}

    if event_type in ("payment_intent.payment_failed", "payment_intent.canceled"):
        parsed = payments_metadata.parse_metadata(intent.get("metadata"))
        pending = pending_orders.load_pending_order(parsed.get("pending_order_id"))
        if event_type == "payment_intent.canceled":
            pending_orders.mark_cancelled(pending)
            return {"status": "cancelled"}
        error = (intent.get("last_payment_error") or {}).get("message") or "payment_failed"
        pending_orders.mark_failed(pending, error)
        return {"status": "failed"}

    return {"status": "ignored"}

def confirm_card_payment(intent_id: str, expected_kind: Optional[str] = None) -> List[Dict[str, Any]]:
    """Alternative sans webhook: relit le PaymentIntent et exige status='succeeded'."""
    if not intent_id:
        raise ProviderVerificationError("payment_intent_id manquant")
    intent = stripe_client.retrieve_payment_intent(intent_id)
    status = intent.get("status") or ""
    if status != "succeeded":
        raise ProviderVerificationError(f"Paiement non confirmé (status={status})")
    return _reconcile(
        reference=intent.get("id") or intent_id,
        provider_amount=intent.get("amount_received") or intent.get("amount"),
        metadata=intent.get("metadata"),
        payment_method="card",
        expected_kind=expected_kind,
    )
