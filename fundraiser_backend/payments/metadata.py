"""
Sérialisation/désérialisation des métadonnées fournisseur (Stripe, Paystack).

- Toujours: pending_order_id (source de vérité côté serveur)
- Commande simple: champs à plat (fundraiserId, quantity, ...)
- Panier: isCart + cartItems (liste JSON). Limite Stripe: 50 clés, 500 caractères par valeur.
  Si la liste dépasse, les noms sont retirés; si elle dépasse encore, elle est omise
  (cartItemsTruncated) et la vérification s'appuie sur la commande en attente.
"""
import json
from typing import Any, Dict, List, Optional

from fundraiser_backend.checkout.models import ComputedOrder, CustomerInfo, OrderItem

MAX_VALUE_LENGTH = 500

def _clip(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    return str(value)[:MAX_VALUE_LENGTH]

def _dumps(items: List[Dict[str, Any]]) -> str:
    return json.dumps(items, separators=(",", ":"))

def _cart_items_value(order: ComputedOrder) -> Optional[str]:
    full = [
        {
            "fundraiserId": i.fundraiser_id,
            "name": i.fundraiser_name,
            "quantity": i.quantity,
            "amount": i.amount_cents,
            "studentId": i.referring_student_id,
        }
        for i in order.items
    ]
    encoded = _dumps(full)
    if len(encoded) <= MAX_VALUE_LENGTH:
        return encoded
    for entry in full:
        entry.pop("name", None)
    encoded = _dumps(full)
    if len(encoded) <= MAX_VALUE_LENGTH:
        return encoded
    return None

# module fundraiser_backend.payments.metadata
def build_metadata(
    order: ComputedOrder,
    pending_order_id: str,
    purchaser_student_id: Optional[int] = None,
) -> Dict[str, str]:
    """Construit des métadonnées compatibles Stripe (valeurs chaînes, sans None)."""
    customer = order.customer_info
    meta: Dict[str, Optional[str]] = {
        "pending_order_id": pending_order_id,
        "customerName": _clip(customer.name),
        "customerEmail": _clip(customer.email),
        "customerPhone": _clip(customer.phone),
        "studentEmail": _clip(customer.student_email),
        "ticketInfo": _clip(customer.ticket_info),
        "totalAmount": str(order.total_amount_cents),
        "purchaserStudentId": str(purchaser_student_id) if purchaser_student_id is not None else None,
    }
    if order.is_cart:
        meta["isCart"] = "true"
        items_value = _cart_items_value(order)
        if items_value is None:
            meta["cartItemsTruncated"] = "true"
        else:
            meta["cartItems"] = items_value
    else:
        item = order.items[0]
        meta["fundraiserId"] = str(item.fundraiser_id)
        meta["quantity"] = str(item.quantity)
        if item.referring_student_id is not None:
            meta["studentId"] = str(item.referring_student_id)
    return {k: v for k, v in meta.items() if v is not None}

def _as_int(value: Any) -> Optional[int]:
    if value is None or value == "" or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None

def parse_metadata(raw: Any) -> Dict[str, Any]:
    """
    Normalise des métadonnées reçues (dict Stripe, objet ou chaîne JSON Paystack).
    Tolérant aux erreurs: cartItems illisible => None.
    """
    meta: Dict[str, Any] = {}
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except ValueError:
            raw = {}
    if isinstance(raw, dict):
        meta = raw

    is_cart = str(meta.get("isCart", "")).lower() in ("true", "1") or meta.get("isCart") is True
    items = meta.get("cartItems")
    if isinstance(items, str):
        try:
            items = json.loads(items)
        except ValueError:
            items = None
    if items is not None and not isinstance(items, list):
        items = None

    return {
        "pending_order_id": meta.get("pending_order_id") or None,
        "is_cart": is_cart,
        "cart_items": items,
        "fundraiser_id": _as_int(meta.get("fundraiserId")),
        "quantity": _as_int(meta.get("quantity")),
        "student_id": _as_int(meta.get("studentId")),
        "purchaser_student_id": _as_int(meta.get("purchaserStudentId")),
        "total_amount_cents": _as_int(meta.get("totalAmount")),
        "customer": {
            "name": meta.get("customerName"),
            "email": meta.get("customerEmail"),
            "phone": meta.get("customerPhone"),
            "student_email": meta.get("studentEmail"),
            "ticket_info": meta.get("ticketInfo"),
        },
    }

def order_from_metadata(parsed: Dict[str, Any]) -> Optional[ComputedOrder]:
    """
    Reconstitue une commande depuis les seules métadonnées (commande en attente absente).
    Retourne None si les informations sont insuffisantes (ex: liste tronquée).
    """
    try:
        customer = CustomerInfo(**parsed["customer"])
    except Exception:
        return None

    items: List[OrderItem] = []
    if parsed["is_cart"]:
        for entry in parsed.get("cart_items") or []:
            fundraiser_id = _as_int(entry.get("fundraiserId"))
            quantity = _as_int(entry.get("quantity"))
            amount = _as_int(entry.get("amount"))
            if fundraiser_id is None or not quantity or amount is None:
                return None
            items.append(
                OrderItem(
                    fundraiser_id=fundraiser_id,
                    fundraiser_name=entry.get("name"),
                    quantity=quantity,
                    unit_amount_cents=amount // quantity,
                    amount_cents=amount,
                    referring_student_id=_as_int(entry.get("studentId")),
                )
            )
    elif parsed.get("fundraiser_id") is not None and parsed.get("quantity"):
        total = parsed.get("total_amount_cents")
        if total is None:
            return None
        items.append(
            OrderItem(
                fundraiser_id=parsed["fundraiser_id"],
                quantity=parsed["quantity"],
                unit_amount_cents=total // parsed["quantity"],
                amount_cents=total,
                referring_student_id=parsed.get("student_id"),
            )
        )
    if not items:
        return None
    return ComputedOrder(
        items=items,
        total_amount_cents=sum(i.amount_cents for i in items),
        customer_info=customer,
        is_cart=parsed["is_cart"],
    )
