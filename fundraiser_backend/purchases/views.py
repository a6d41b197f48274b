from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException

from fundraiser_backend.students import repository as students_repo
from fundraiser_backend.utils.security import require_user, require_school_or_admin
from . import repository
from . import service

router = APIRouter(prefix="/api/v1/purchases", tags=["Purchases API"])

# module fundraiser_backend.purchases.views
@router.get("/me")
def my_sales(user: Dict[str, Any] = Depends(require_user)) -> Dict[str, Any]:
    """Ventes créditées à l'étudiant connecté + résumé par collecte."""
    student = students_repo.get_student_by_user_id(user.get("id"))
    if not student:
        raise HTTPException(status_code=403, detail="Profil étudiant requis")
    student_id = int(student["id"])
    return {
        "purchases": repository.list_by_student(student_id),
        "summary": service.sales_summary_by_student(student_id),
    }

@router.get("/fundraisers/{fundraiser_id}")
def fundraiser_sales(fundraiser_id: int, user: Dict[str, Any] = Depends(require_school_or_admin)) -> Dict[str, Any]:
    return service.fundraiser_sales(fundraiser_id)
