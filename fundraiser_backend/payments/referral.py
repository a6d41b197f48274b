"""
Attribution du crédit de vente (parrainage étudiant), commune aux trois modes de paiement.

Priorité: 1) étudiant référent explicite de l'article, 2) acheteur étudiant authentifié
(auto-parrainage), 3) aucun.
"""
import logging
from typing import Optional

from fundraiser_backend.students import repository as students_repo

logger = logging.getLogger(__name__)

# module fundraiser_backend.payments.referral
def resolve_referral(item_referring_id: Optional[int], purchaser_student_id: Optional[int]) -> Optional[int]:
    if item_referring_id is not None:
        return item_referring_id
    if purchaser_student_id is not None:
        return purchaser_student_id
    return None

def resolve_item_referral(item_referring_id: Optional[int], purchaser_student_id: Optional[int]) -> Optional[int]:
    """Comme resolve_referral, mais écarte un référent explicite qui n'existe pas en base."""
    explicit = item_referring_id
    if explicit is not None and not students_repo.get_student(explicit):
        logger.warning("payments.referral unknown_student id=%s ignored", explicit)
        explicit = None
    return resolve_referral(explicit, purchaser_student_id)
