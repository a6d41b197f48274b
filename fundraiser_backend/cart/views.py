import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Request

from fundraiser_backend.checkout.builder import parse_quantity
from fundraiser_backend.fundraisers import service as fundraisers_service
from fundraiser_backend.payments.errors import PaymentError
from fundraiser_backend.students import service as students_service
from fundraiser_backend.utils.security import get_optional_user
from .store import CartStore

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/cart", tags=["Cart API"])

def _http_error(e: PaymentError) -> HTTPException:
    return HTTPException(status_code=e.status_code, detail=e.to_dict())

def _optional_int(value: Any) -> Optional[int]:
    if value is None or value == "" or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        raise HTTPException(status_code=400, detail="Identifiant étudiant invalide")

# module fundraiser_backend.cart.views
@router.get("")
def get_cart(request: Request) -> Dict[str, Any]:
    return CartStore(request.session).snapshot()

@router.post("/items")
async def add_cart_item(request: Request, user: Optional[dict] = Depends(get_optional_user)):
    """
    Ajoute des billets au panier.
    - Entrée JSON: { "fundraiserId": <int>, "quantity": <int>, "ref": <studentId>? }
    - Prix relu côté serveur (collecte vendable requise)
    - Parrainage: 'ref' (lien partagé) => external ; étudiant connecté sans ref => self
    """
    try:
        body = await request.json()
        fundraiser_id = _optional_int(body.get("fundraiserId") or body.get("fundraiser_id"))
        if fundraiser_id is None:
            raise HTTPException(status_code=400, detail="fundraiserId manquant")
        quantity = parse_quantity(body.get("quantity", 1))
        fundraiser = fundraisers_service.get_sellable_fundraiser(fundraiser_id)

        referring_id = _optional_int(body.get("ref") or body.get("referringStudentId") or request.query_params.get("ref"))
        referral_kind = "external" if referring_id is not None else None
        if referring_id is None:
            referring_id = students_service.purchaser_student_id(user)
            referral_kind = "self" if referring_id is not None else None

        line = CartStore(request.session).add(
            fundraiser_id=fundraiser_id,
            quantity=quantity,
            unit_price_cents=fundraiser["unit_price_cents"],
            fundraiser_name=fundraiser.get("name"),
            referring_student_id=referring_id,
            referral_kind=referral_kind,
        )
        return {"item": line.model_dump(), "cart": CartStore(request.session).snapshot()}
    except HTTPException:
        raise
    except PaymentError as e:
        raise _http_error(e)
    except Exception as e:
        logger.exception("Erreur add_cart_item")
        raise HTTPException(status_code=400, detail=str(e))

@router.patch("/items/{line_id}")
async def update_cart_item(line_id: str, request: Request):
    try:
        body = await request.json()
        quantity = body.get("quantity")
        if isinstance(quantity, bool) or not isinstance(quantity, int):
            raise HTTPException(status_code=400, detail="Quantité invalide")
    except HTTPException:
        raise
    except Exception:
        raise HTTPException(status_code=400, detail="Payload invalide")
    store = CartStore(request.session)
    line = store.set_quantity(line_id, quantity)
    if line is None:
        raise HTTPException(status_code=404, detail="Article introuvable")
    return {"item": line.model_dump(), "cart": store.snapshot()}

@router.delete("/items/{line_id}")
def remove_cart_item(line_id: str, request: Request):
    store = CartStore(request.session)
    if not store.remove(line_id):
        raise HTTPException(status_code=404, detail="Article introuvable")
    return store.snapshot()

@router.delete("")
def clear_cart(request: Request):
    CartStore(request.session).clear()
    return {"items": [], "count": 0, "total_cents": 0}
