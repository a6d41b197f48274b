"""
Notifications d'achat (fire-and-forget): un échec d'envoi est journalisé et n'annule jamais un achat.
"""
import logging
from typing import Any, Dict, List

from fundraiser_backend.checkout.models import ComputedOrder

logger = logging.getLogger(__name__)

def send_notification_email(to_email: str, title: str, message: str) -> bool:
    """
    Point d'envoi des emails de confirmation.
    Aucun email n'est réellement envoyé tant qu'aucun fournisseur (SMTP, API transactionnelle)
    n'est branché: l'envoi est seulement journalisé et considéré comme réussi.
    """
    logger.info("notifications.email to=%s title=%s", to_email, title)
    return True

def _format_amount(cents: int) -> str:
    return f"{cents / 100:.2f}"

def notify_purchase_recorded(order: ComputedOrder, rows: List[Dict[str, Any]]) -> int:
    """
    Prévient l'acheteur (et l'étudiant indiqué, le cas échéant) d'un achat enregistré.
    Retour: nombre d'envois réussis.
    """
    customer = order.customer_info
    tickets = sum(i.quantity for i in order.items)
    reference = (rows[0].get("payment_intent_id") if rows else None) or ""
    message = (
        f"Merci {customer.name}: {tickets} billet(s), total {_format_amount(order.total_amount_cents)}."
        f" Référence {reference}."
    )
    recipients = [customer.email]
    if customer.student_email and customer.student_email != customer.email:
        recipients.append(customer.student_email)

    sent = 0
    for to_email in recipients:
        try:
            if send_notification_email(to_email, "Confirmation d'achat", message):
                sent += 1
        except Exception:
            logger.exception("notifications.email failed to=%s ref=%s", to_email, reference)
    return sent
