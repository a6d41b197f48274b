from typing import Any, Dict, Optional

from . import repository

def purchaser_student_id(user: Optional[Dict[str, Any]]) -> Optional[int]:
    """
    Id étudiant de l'acheteur authentifié (auto-parrainage), None sinon.
    - Utilisateur anonyme ou sans profil étudiant: None
    """
    if not user or not user.get("id"):
        return None
    student = repository.get_student_by_user_id(user["id"])
    if not student or student.get("id") is None:
        return None
    return int(student["id"])
