# module fundraiser_backend.students.repository
from typing import Any, Dict, Optional
import logging

import fundraiser_backend.infra.supabase_client as supabase_client

logger = logging.getLogger(__name__)

def get_student(student_id: int) -> Optional[Dict[str, Any]]:
    """Récupère un étudiant par id (table 'students'). None si introuvable ou erreur."""
    try:
        res = (
            supabase_client.get_supabase()
            .table("students")
            .select("id, user_id, school_id")
            .eq("id", student_id)
            .limit(1)
            .execute()
        )
        rows = res.data or []
        return rows[0] if rows else None
    except Exception:
        logger.exception("students.repository.get_student failed id=%s", student_id)
        return None

def get_student_by_user_id(user_id: str) -> Optional[Dict[str, Any]]:
    """Profil étudiant rattaché à un compte utilisateur (Supabase auth id)."""
    if not user_id:
        return None
    try:
        res = (
            supabase_client.get_supabase()
            .table("students")
            .select("id, user_id, school_id")
            .eq("user_id", user_id)
            .limit(1)
            .execute()
        )
        rows = res.data or []
        return rows[0] if rows else None
    except Exception:
        logger.exception("students.repository.get_student_by_user_id failed user_id=%s", user_id)
        return None
