"""
Accès aux données pour la feature 'fundraisers' (collectes de fonds).
"""
from typing import Any, Dict, Iterable, List, Optional
import logging

import fundraiser_backend.infra.supabase_client as supabase_client
from fundraiser_backend.payments.errors import PersistenceError

logger = logging.getLogger(__name__)

# module fundraiser_backend.fundraisers.repository
def get_fundraiser(fundraiser_id: int) -> Optional[Dict[str, Any]]:
    """
    Récupère une collecte par son id (table 'fundraisers').
    - Retour: dict ou None si introuvable
    - Erreur de lecture: PersistenceError (on ne confond pas panne et absence)
    """
    try:
        res = (
            supabase_client.get_supabase()
            .table("fundraisers")
            .select("id, name, price, is_active, start_date, end_date, school_id")
            .eq("id", fundraiser_id)
            .limit(1)
            .execute()
        )
    except Exception:
        logger.exception("fundraisers.repository.get_fundraiser failed id=%s", fundraiser_id)
        raise PersistenceError("Lecture de la collecte impossible")
    rows = res.data or []
    return rows[0] if rows else None

def fetch_fundraisers_by_ids(ids: List[int]) -> List[Dict[str, Any]]:
    """Récupère plusieurs collectes. Retourne [] si ids vide ou en cas d'erreur."""
    if not ids:
        return []
    try:
        res = (
            supabase_client.get_supabase()
            .table("fundraisers")
            .select("id, name, price, is_active, end_date")
            .in_("id", list(ids))
            .execute()
        )
        return res.data or []
    except Exception:
        logger.exception("fundraisers.repository.fetch_fundraisers_by_ids failed ids=%s", ids)
        return []

def get_fundraisers_map(ids: Iterable[int]) -> Dict[int, Dict[str, Any]]:
    """Retourne {id: collecte}."""
    return {int(f["id"]): f for f in fetch_fundraisers_by_ids(list(ids)) if f.get("id") is not None}
