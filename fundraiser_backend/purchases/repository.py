"""
Accès aux données pour la feature 'purchases' (table 'ticket_purchases').

Contrainte d'unicité (payment_intent_id, fundraiser_id): un doublon (23505) signale
une référence déjà enregistrée.
"""
from typing import Any, Dict, List
import logging

from postgrest.exceptions import APIError

import fundraiser_backend.infra.supabase_client as supabase_client
from fundraiser_backend.payments.errors import DuplicatePurchaseError, PersistenceError

logger = logging.getLogger(__name__)

TABLE = "ticket_purchases"

def _api_error_code(e: APIError) -> str | None:
    code = getattr(e, "code", None)
    if code:
        return str(code)
    if e.args and isinstance(e.args[0], dict):
        return e.args[0].get("code")
    return None

# module fundraiser_backend.purchases.repository
def insert_ticket_purchases(rows: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """
    Insertion groupée (une seule requête PostgREST = une transaction): tout ou rien.
    - Doublon (23505): DuplicatePurchaseError
    - Autre erreur: PersistenceError listant les articles non écrits
    """
    if not rows:
        return []
    try:
        res = supabase_client.get_service_supabase().table(TABLE).insert(rows).execute()
    except APIError as e:
        if _api_error_code(e) == "23505":
            raise DuplicatePurchaseError("Achat déjà enregistré pour cette référence", failed_items=rows)
        logger.exception("purchases.repository.insert_ticket_purchases failed ref=%s", rows[0].get("payment_intent_id"))
        raise PersistenceError("Enregistrement des billets impossible", failed_items=rows)
    except Exception:
        logger.exception("purchases.repository.insert_ticket_purchases failed ref=%s", rows[0].get("payment_intent_id"))
        raise PersistenceError("Enregistrement des billets impossible", failed_items=rows)
    data = res.data or []
    return data if isinstance(data, list) and data else rows

def create_ticket_purchase(row: Dict[str, Any]) -> Dict[str, Any]:
    """Insère un seul achat (même sémantique d'erreur que l'insertion groupée)."""
    return insert_ticket_purchases([row])[0]

def _select(column: str, value: Any, limit: int = 500) -> List[Dict[str, Any]]:
    res = (
        supabase_client.get_service_supabase()
        .table(TABLE)
        .select("*")
        .eq(column, value)
        .order("created_at", desc=True)
        .limit(limit)
        .execute()
    )
    return res.data or []

def list_by_payment_reference(reference: str) -> List[Dict[str, Any]]:
    """Achats partageant une référence de paiement. Erreur de lecture: PersistenceError."""
    try:
        return _select("payment_intent_id", reference)
    except Exception:
        logger.exception("purchases.repository.list_by_payment_reference failed ref=%s", reference)
        raise PersistenceError("Lecture des achats impossible")

def list_by_fundraiser(fundraiser_id: int, limit: int = 500) -> List[Dict[str, Any]]:
    try:
        return _select("fundraiser_id", fundraiser_id, limit)
    except Exception:
        logger.exception("purchases.repository.list_by_fundraiser failed id=%s", fundraiser_id)
        return []

def list_by_student(student_id: int, limit: int = 500) -> List[Dict[str, Any]]:
    try:
        return _select("student_id", student_id, limit)
    except Exception:
        logger.exception("purchases.repository.list_by_student failed id=%s", student_id)
        return []
