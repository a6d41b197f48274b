"""
Accès aux données pour la feature 'payments': commandes en attente (table 'pending_orders').
Écritures via service-role: les vérifications arrivent aussi par webhook, sans jeton acheteur.
"""
from typing import Any, Dict, Optional
import logging

import fundraiser_backend.infra.supabase_client as supabase_client
from .errors import PersistenceError

logger = logging.getLogger(__name__)

# module fundraiser_backend.payments.repository
def insert_pending_order(row: Dict[str, Any]) -> Dict[str, Any]:
    """Insère une commande en attente. Erreur: PersistenceError (aucun appel fournisseur ne suit)."""
    try:
        res = supabase_client.get_service_supabase().table("pending_orders").insert(row).execute()
    except Exception:
        logger.exception("payments.repository.insert_pending_order failed id=%s", row.get("id"))
        raise PersistenceError("Impossible d'enregistrer la commande")
    data = res.data or []
    return data[0] if isinstance(data, list) and data else row

def get_pending_order(order_id: str) -> Optional[Dict[str, Any]]:
    """Récupère une commande en attente. None si introuvable ou id invalide."""
    if not order_id:
        return None
    try:
        res = (
            supabase_client.get_service_supabase()
            .table("pending_orders")
            .select("*")
            .eq("id", order_id)
            .limit(1)
            .execute()
        )
        rows = res.data or []
        return rows[0] if rows else None
    except Exception:
        logger.exception("payments.repository.get_pending_order failed id=%s", order_id)
        return None

def update_pending_order(order_id: str, fields: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    try:
        res = (
            supabase_client.get_service_supabase()
            .table("pending_orders")
            .update(fields)
            .eq("id", order_id)
            .execute()
        )
    except Exception:
        logger.exception("payments.repository.update_pending_order failed id=%s", order_id)
        raise PersistenceError("Impossible de mettre à jour la commande")
    rows = res.data or []
    return rows[0] if rows else None
