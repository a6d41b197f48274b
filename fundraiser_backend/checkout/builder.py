"""
Construction de la commande à partir du panier et des coordonnées acheteur.

Aucune écriture: uniquement des lectures de collectes pour fixer le prix unitaire.
Le montant envoyé au fournisseur est toujours `ComputedOrder.total_amount_cents`.
"""
from typing import Any, Dict, List, Mapping, Optional, Sequence

from pydantic import ValidationError as PydanticValidationError

from fundraiser_backend.config import MAX_TICKETS_PER_ITEM
from fundraiser_backend.fundraisers import service as fundraisers_service
from fundraiser_backend.payments.errors import (
    EmptyCartError,
    InvalidCustomerInfoError,
    InvalidQuantityError,
    ValidationError,
)
from .models import ComputedOrder, CustomerInfo, OrderItem

# Alias acceptés côté client (camelCase) -> champs internes
_CUSTOMER_ALIASES = {
    "name": ("name", "customerName", "customer_name"),
    "email": ("email", "customerEmail", "customer_email"),
    "phone": ("phone", "customerPhone", "customer_phone"),
    "student_email": ("student_email", "studentEmail"),
    "ticket_info": ("ticket_info", "ticketInfo"),
}

def _pick(data: Mapping[str, Any], keys: Sequence[str]) -> Any:
    for k in keys:
        if data.get(k) not in (None, ""):
            return data.get(k)
    return None

def parse_customer_info(raw: Any) -> CustomerInfo:
    """
    Valide les coordonnées acheteur.
    - nom et email valides requis, téléphone optionnel
    - Erreur: InvalidCustomerInfoError
    """
    if isinstance(raw, CustomerInfo):
        return raw
    if not isinstance(raw, Mapping):
        raise InvalidCustomerInfoError("Informations client manquantes")
    values = {field: _pick(raw, aliases) for field, aliases in _CUSTOMER_ALIASES.items()}
    if not values["name"] or not str(values["name"]).strip():
        raise InvalidCustomerInfoError("Nom du client requis")
    if not values["email"]:
        raise InvalidCustomerInfoError("Email du client requis")
    try:
        return CustomerInfo(**values)
    except PydanticValidationError as e:
        fields = ", ".join(str(err["loc"][0]) for err in e.errors() if err.get("loc"))
        raise InvalidCustomerInfoError(f"Informations client invalides ({fields})")

def parse_quantity(raw: Any) -> int:
    """Quantité entière dans [1, MAX_TICKETS_PER_ITEM]; booléens, flottants et chaînes refusés."""
    if isinstance(raw, bool) or not isinstance(raw, int):
        raise InvalidQuantityError(f"Quantité invalide: {raw!r}")
    if raw < 1 or raw > MAX_TICKETS_PER_ITEM:
        raise InvalidQuantityError(f"La quantité doit être comprise entre 1 et {MAX_TICKETS_PER_ITEM}")
    return raw

def _parse_id(raw: Any, label: str) -> Optional[int]:
    if raw is None or raw == "":
        return None
    if isinstance(raw, bool):
        raise ValidationError(f"{label} invalide")
    if isinstance(raw, int):
        return raw
    text = str(raw).strip()
    if not text.isdigit():
        raise ValidationError(f"{label} invalide: {raw!r}")
    return int(text)

def _parse_item(raw: Any) -> Dict[str, Any]:
    if not isinstance(raw, Mapping):
        raise ValidationError("Article de panier invalide")
    fundraiser_id = _parse_id(_pick(raw, ("fundraiserId", "fundraiser_id", "id")), "Collecte")
    if fundraiser_id is None:
        raise ValidationError("Collecte manquante pour un article du panier")
    referral_kind = _pick(raw, ("referralKind", "referral_kind"))
    return {
        "fundraiser_id": fundraiser_id,
        "quantity": parse_quantity(raw.get("quantity")),
        "referring_student_id": _parse_id(
            _pick(raw, ("referringStudentId", "referring_student_id", "studentId", "student_id")),
            "Étudiant référent",
        ),
        "referral_kind": referral_kind if referral_kind in ("self", "external") else None,
    }

def _takes_referral(current: Dict[str, Any], incoming: Dict[str, Any]) -> bool:
    # Un lien partagé (external) l'emporte sur un auto-parrainage enregistré
    if incoming["referring_student_id"] is None:
        return False
    if current["referring_student_id"] is None:
        return True
    return current["referral_kind"] == "self" and incoming["referral_kind"] == "external"

def _merge_lines(parsed: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """
    Fusionne les articles d'une même collecte (une seule ligne d'achat par collecte et par référence).
    - Quantités additionnées, toujours bornées à MAX_TICKETS_PER_ITEM
    - Premier référent explicite conservé; un lien partagé remplace un auto-parrainage
    """
    merged: Dict[int, Dict[str, Any]] = {}
    for entry in parsed:
        current = merged.get(entry["fundraiser_id"])
        if current is None:
            merged[entry["fundraiser_id"]] = dict(entry)
            continue
        current["quantity"] += entry["quantity"]
        if current["quantity"] > MAX_TICKETS_PER_ITEM:
            raise InvalidQuantityError(
                f"La quantité doit être comprise entre 1 et {MAX_TICKETS_PER_ITEM} (collecte {entry['fundraiser_id']})"
            )
        if _takes_referral(current, entry):
            current["referring_student_id"] = entry["referring_student_id"]
            current["referral_kind"] = entry["referral_kind"]
    return list(merged.values())

def build_order(
    cart_items: Optional[List[Any]],
    customer_info: Any,
    is_cart: Optional[bool] = None,
) -> ComputedOrder:
    """
    Valide et chiffre une commande.
    - Entrée: liste d'articles {fundraiserId, quantity, referringStudentId?} + coordonnées
    - Étapes:
      1) Panier non vide, quantités entières dans [1, 10] (articles d'une même collecte fusionnés)
      2) Coordonnées (nom + email) valides
      3) Chaque collecte doit être vendable (FundraiserNotFound / FundraiserInactive)
      4) montant article = prix unitaire x quantité ; total = somme des articles
    - Retour: ComputedOrder (is_cart par défaut si plus d'un article)
    """
    if not cart_items:
        raise EmptyCartError()
    parsed = _merge_lines([_parse_item(raw) for raw in cart_items])
    customer = parse_customer_info(customer_info)

    items: List[OrderItem] = []
    for entry in parsed:
        fundraiser = fundraisers_service.get_sellable_fundraiser(entry["fundraiser_id"])
        unit = fundraiser["unit_price_cents"]
        items.append(
            OrderItem(
                fundraiser_id=entry["fundraiser_id"],
                fundraiser_name=fundraiser.get("name"),
                quantity=entry["quantity"],
                unit_amount_cents=unit,
                amount_cents=unit * entry["quantity"],
                referring_student_id=entry["referring_student_id"],
                referral_kind=entry["referral_kind"],
            )
        )

    return ComputedOrder(
        items=items,
        total_amount_cents=sum(i.amount_cents for i in items),
        customer_info=customer,
        is_cart=bool(is_cart) if is_cart is not None else len(items) > 1,
    )
