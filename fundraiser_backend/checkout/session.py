# module fundraiser_backend.checkout.session
from typing import Any, Dict, MutableMapping, Optional

from .models import ComputedOrder

CHECKOUT_SESSION_KEY = "fundraiser-checkout"

def stash_checkout(session: MutableMapping[str, Any], order: ComputedOrder, pending_order_id: str) -> Dict[str, Any]:
    """Mémorise la commande en cours pour l'étape de paiement (une seule à la fois)."""
    data = {
        "pending_order_id": pending_order_id,
        "kind": order.kind,
        "total_amount_cents": order.total_amount_cents,
    }
    session[CHECKOUT_SESSION_KEY] = data
    return data

def load_checkout(session: MutableMapping[str, Any]) -> Optional[Dict[str, Any]]:
    data = session.get(CHECKOUT_SESSION_KEY)
    return data if isinstance(data, dict) else None

def clear_checkout(session: MutableMapping[str, Any]) -> None:
    session.pop(CHECKOUT_SESSION_KEY, None)
