from datetime import date, datetime, timezone
from typing import Any, Dict, Optional

from fundraiser_backend.config import DEFAULT_TICKET_PRICE_CENTS
from fundraiser_backend.payments.errors import FundraiserInactive, FundraiserNotFound
from . import repository

def _parse_end_date(raw: Any) -> Optional[datetime]:
    if not raw:
        return None
    if isinstance(raw, datetime):
        dt = raw
    elif isinstance(raw, date):
        dt = datetime(raw.year, raw.month, raw.day, 23, 59, 59)
    else:
        text = str(raw).strip().replace("Z", "+00:00")
        try:
            dt = datetime.fromisoformat(text)
        except ValueError:
            return None
        if "T" not in text and " " not in text:
            # date seule: la collecte reste ouverte toute la journée
            dt = dt.replace(hour=23, minute=59, second=59)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt

def unit_price_cents(fundraiser: Dict[str, Any]) -> int:
    """Prix unitaire en centimes (colonne 'price', défaut 1000)."""
    price = fundraiser.get("price")
    if price is None or price == "":
        return DEFAULT_TICKET_PRICE_CENTS
    return int(price)

def ensure_sellable(fundraiser: Optional[Dict[str, Any]], fundraiser_id: Any) -> int:
    """
    Vérifie qu'une collecte peut vendre des billets et retourne son prix unitaire.
    - FundraiserNotFound si absente
    - FundraiserInactive si désactivée, terminée ou sans prix positif
    """
    if not fundraiser:
        raise FundraiserNotFound(f"Collecte {fundraiser_id} introuvable", fundraiser_id=fundraiser_id)
    if fundraiser.get("is_active") is False:
        raise FundraiserInactive(f"Collecte {fundraiser_id} inactive", fundraiser_id=fundraiser_id)
    end = _parse_end_date(fundraiser.get("end_date"))
    if end is not None and end < datetime.now(timezone.utc):
        raise FundraiserInactive(f"Collecte {fundraiser_id} terminée", fundraiser_id=fundraiser_id)
    try:
        price = unit_price_cents(fundraiser)
    except (TypeError, ValueError):
        price = 0
    if price <= 0:
        raise FundraiserInactive(f"Collecte {fundraiser_id} sans prix valide", fundraiser_id=fundraiser_id)
    return price

def get_sellable_fundraiser(fundraiser_id: int) -> Dict[str, Any]:
    """Charge la collecte et retourne {**collecte, 'unit_price_cents': prix} si elle est vendable."""
    fundraiser = repository.get_fundraiser(fundraiser_id)
    price = ensure_sellable(fundraiser, fundraiser_id)
    return {**fundraiser, "unit_price_cents": price}
