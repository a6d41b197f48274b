"""
Enregistrement des paiements en espèces (saisis par un vendeur): aucun fournisseur, achats
écrits immédiatement avec payment_status='completed'.
"""
import logging
import secrets
import time
from typing import Any, Dict, List, Mapping, Optional, Union

from fundraiser_backend.checkout import builder
from fundraiser_backend.notifications import service as notifications
from . import reconciliation

logger = logging.getLogger(__name__)

def make_cash_reference() -> str:
    return f"cash_{int(time.time() * 1000)}_{secrets.token_hex(4)}"

# module fundraiser_backend.payments.cash
def record_cash(
    items: Union[List[Any], Mapping[str, Any]],
    customer_info: Any,
    purchaser_student_id: Optional[int] = None,
    is_cart: Optional[bool] = None,
) -> List[Dict[str, Any]]:
    """
    Valide comme un checkout classique puis écrit une ligne par article.
    - items: liste d'articles, ou un article seul (commande simple)
    - Référence commune: cash_<ms>_<aléa>
    """
    if isinstance(items, Mapping):
        items = [items]
        is_cart = False if is_cart is None else is_cart
    order = builder.build_order(items, customer_info, is_cart=is_cart)
    reference = make_cash_reference()
    rows, _ = reconciliation.record_order(
        order, reference=reference, payment_method="cash", purchaser_student_id=purchaser_student_id
    )
    logger.info("payments.cash recorded ref=%s rows=%s total=%s", reference, len(rows), order.total_amount_cents)
    notifications.notify_purchase_recorded(order, rows)
    return rows
