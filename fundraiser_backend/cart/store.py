"""
Panier de billets, persisté dans la session de l'acheteur (cookie signé).

- Une ligne par collecte: ajouter une collecte déjà présente fusionne les quantités
- Quantités toujours bornées à [1, MAX_TICKETS_PER_ITEM]
"""
from typing import Any, Dict, List, MutableMapping, Optional

from fundraiser_backend.config import MAX_TICKETS_PER_ITEM
from fundraiser_backend.checkout.models import CartLineItem

CART_SESSION_KEY = "fundraiser-cart"

def clamp_quantity(quantity: int) -> int:
    return max(1, min(int(quantity), MAX_TICKETS_PER_ITEM))

# module fundraiser_backend.cart.store
class CartStore:
    def __init__(self, storage: MutableMapping[str, Any], key: str = CART_SESSION_KEY):
        self._storage = storage
        self._key = key

    def _load(self) -> List[CartLineItem]:
        raw = self._storage.get(self._key) or []
        items: List[CartLineItem] = []
        for entry in raw:
            try:
                items.append(CartLineItem(**entry))
            except Exception:
                # ligne corrompue (ancien format): ignorée
                continue
        return items

    def _save(self, items: List[CartLineItem]) -> None:
        self._storage[self._key] = [i.model_dump() for i in items]

    def items(self) -> List[CartLineItem]:
        return self._load()

    def add(
        self,
        fundraiser_id: int,
        quantity: int,
        unit_price_cents: int,
        fundraiser_name: Optional[str] = None,
        referring_student_id: Optional[int] = None,
        referral_kind: Optional[str] = None,
    ) -> CartLineItem:
        """Ajoute ou fusionne une ligne: quantité = min(existante + ajoutée, max)."""
        items = self._load()
        for item in items:
            if item.fundraiser_id == fundraiser_id:
                item.quantity = clamp_quantity(item.quantity + quantity)
                item.unit_price_cents = unit_price_cents
                if referring_student_id is not None and (
                    item.referring_student_id is None
                    or (item.referral_kind == "self" and referral_kind == "external")
                ):
                    # un lien partagé remplace un auto-parrainage, jamais l'inverse
                    item.referring_student_id = referring_student_id
                    item.referral_kind = referral_kind
                self._save(items)
                return item
        line = CartLineItem(
            fundraiser_id=fundraiser_id,
            fundraiser_name=fundraiser_name,
            quantity=clamp_quantity(quantity),
            unit_price_cents=unit_price_cents,
            referring_student_id=referring_student_id,
            referral_kind=referral_kind if referring_student_id is not None else None,
        )
        items.append(line)
        self._save(items)
        return line

    def set_quantity(self, line_id: str, quantity: int) -> Optional[CartLineItem]:
        items = self._load()
        for item in items:
            if item.line_id == line_id:
                item.quantity = clamp_quantity(quantity)
                self._save(items)
                return item
        return None

    def remove(self, line_id: str) -> bool:
        items = self._load()
        kept = [i for i in items if i.line_id != line_id]
        self._save(kept)
        return len(kept) != len(items)

    def clear(self) -> None:
        self._storage.pop(self._key, None)

    def total_cents(self) -> int:
        return sum(i.unit_price_cents * i.quantity for i in self._load())

    def to_checkout_items(self) -> List[Dict[str, Any]]:
        return [i.to_checkout_item() for i in self._load()]

    def snapshot(self) -> Dict[str, Any]:
        items = self._load()
        return {
            "items": [i.model_dump() for i in items],
            "count": sum(i.quantity for i in items),
            "total_cents": sum(i.unit_price_cents * i.quantity for i in items),
        }
