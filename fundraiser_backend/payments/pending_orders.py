"""
Commande en attente: la commande calculée est persistée avant tout appel fournisseur,
et son id voyage dans les métadonnées (pending_order_id).

Cycle de vie:
  pending -> provider_pending -> verified -> recorded
  pending | provider_pending -> cancelled
  pending | provider_pending | verified -> failed
  failed -> pending (nouvelle tentative)
"""
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from uuid import uuid4

from fundraiser_backend.checkout.models import ComputedOrder
from . import repository
from .errors import InvalidTransition

logger = logging.getLogger(__name__)

PENDING = "pending"
PROVIDER_PENDING = "provider_pending"
VERIFIED = "verified"
RECORDED = "recorded"
CANCELLED = "cancelled"
FAILED = "failed"

TRANSITIONS = {
    PENDING: {PROVIDER_PENDING, CANCELLED, FAILED},
    PROVIDER_PENDING: {VERIFIED, CANCELLED, FAILED},
    VERIFIED: {RECORDED, FAILED},
    FAILED: {PENDING},
    RECORDED: set(),
    CANCELLED: set(),
}

def can_transition(current: str, target: str) -> bool:
    return target in TRANSITIONS.get(current, set())

def _now() -> str:
    return datetime.now(timezone.utc).isoformat()

def open_pending_order(
    order: ComputedOrder,
    *,
    payment_method: str,
    purchaser_student_id: Optional[int] = None,
) -> Dict[str, Any]:
    row = {
        "id": str(uuid4()),
        "status": PENDING,
        "kind": order.kind,
        "order": order.model_dump(mode="json"),
        "total_amount_cents": order.total_amount_cents,
        "purchaser_student_id": purchaser_student_id,
        "payment_method": payment_method,
        "payment_reference": None,
        "created_at": _now(),
        "updated_at": _now(),
    }
    created = repository.insert_pending_order(row)
    logger.info("payments.pending_order opened id=%s kind=%s total=%s", row["id"], row["kind"], row["total_amount_cents"])
    return created

def load_pending_order(order_id: Optional[str]) -> Optional[Dict[str, Any]]:
    if not order_id:
        return None
    return repository.get_pending_order(order_id)

def load_order(pending: Dict[str, Any]) -> ComputedOrder:
    return ComputedOrder.model_validate(pending.get("order") or {})

def advance(pending: Dict[str, Any], target: str, **fields: Any) -> Dict[str, Any]:
    """
    Fait évoluer le statut d'une commande en attente.
    - Même statut: aucun effet (rejouabilité)
    - Transition interdite: InvalidTransition
    """
    current = pending.get("status") or PENDING
    if current == target and not fields:
        return pending
    if current != target and not can_transition(current, target):
        raise InvalidTransition(f"Transition interdite {current} -> {target}")
    updates = {"status": target, "updated_at": _now(), **fields}
    updated = repository.update_pending_order(pending["id"], updates) or {**pending, **updates}
    logger.info("payments.pending_order id=%s %s -> %s", pending["id"], current, target)
    return updated

def mark_verified(pending: Dict[str, Any], reference: str) -> Dict[str, Any]:
    """Amène la commande à 'verified', y compris depuis 'pending' ou une tentative 'failed'."""
    status = pending.get("status") or PENDING
    if status == FAILED:
        pending = advance(pending, PENDING)
        status = PENDING
    if status == PENDING:
        pending = advance(pending, PROVIDER_PENDING, payment_reference=reference)
    return advance(pending, VERIFIED, payment_reference=reference)

def mark_failed(pending: Optional[Dict[str, Any]], reason: str) -> Optional[Dict[str, Any]]:
    """Marque l'échec si possible; sans effet sur une commande déjà enregistrée ou annulée."""
    if not pending:
        return None
    status = pending.get("status") or PENDING
    if not can_transition(status, FAILED):
        return pending
    logger.warning("payments.pending_order failed id=%s reason=%s", pending.get("id"), reason)
    return advance(pending, FAILED, failure_reason=reason[:500])

def mark_cancelled(pending: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    if not pending or not can_transition(pending.get("status") or PENDING, CANCELLED):
        return pending
    return advance(pending, CANCELLED)
