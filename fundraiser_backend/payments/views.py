import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Request, Depends, HTTPException
from fastapi.responses import JSONResponse

from fundraiser_backend.cart.store import CartStore
from fundraiser_backend.checkout import builder
from fundraiser_backend.checkout import session as checkout_session
from fundraiser_backend.students import service as students_service
from fundraiser_backend.utils.security import get_optional_user, require_seller
from fundraiser_backend.utils.rate_limit import optional_rate_limit

# Services Payments (modules importés pour bénéficier des monkeypatchs de tests)
from fundraiser_backend.payments import cash as payments_cash
from fundraiser_backend.payments import intents as payments_intents
from fundraiser_backend.payments import reconciliation
from fundraiser_backend.payments import stripe_client
from fundraiser_backend.payments.errors import PaymentError

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/payments", tags=["Payments API"])

def _http_error(e: PaymentError) -> HTTPException:
    return HTTPException(status_code=e.status_code, detail=e.to_dict())

async def _json_body(request: Request) -> Dict[str, Any]:
    try:
        body = await request.json()
    except Exception:
        raise HTTPException(status_code=400, detail="Payload JSON invalide")
    if not isinstance(body, dict):
        raise HTTPException(status_code=400, detail="Payload JSON invalide")
    return body

def _single_item(body: Dict[str, Any]) -> List[Dict[str, Any]]:
    return [{
        "fundraiserId": body.get("fundraiserId"),
        "quantity": body.get("quantity"),
        "referringStudentId": body.get("studentId") or body.get("referringStudentId"),
    }]

def _cart_items(request: Request, body: Dict[str, Any]) -> List[Dict[str, Any]]:
    # Panier fourni par le client, sinon panier de session
    items = body.get("cartItems")
    if items is None:
        items = CartStore(request.session).to_checkout_items()
    return items

def _finish_checkout(request: Request) -> None:
    CartStore(request.session).clear()
    checkout_session.clear_checkout(request.session)

# module fundraiser_backend.payments.views
@router.post("/create-payment-intent", dependencies=[Depends(optional_rate_limit(times=10, seconds=60))])
async def create_payment_intent(request: Request, user: Optional[dict] = Depends(get_optional_user)):
    """
    Crée un PaymentIntent Stripe pour une seule collecte.
    - Entrée JSON: { "fundraiserId", "quantity", "studentId"?, "customerInfo": {name, email, phone?} }
    - Retour: { clientSecret, paymentIntentId, pendingOrderId, amount }
    - Erreurs: 400 validation, 404/409 collecte, 502 refus Stripe
    """
    try:
        body = await _json_body(request)
        order = builder.build_order(_single_item(body), body.get("customerInfo"), is_cart=False)
        purchaser = students_service.purchaser_student_id(user)
        handle = payments_intents.create_intent(order, purchaser_student_id=purchaser)
        checkout_session.stash_checkout(request.session, order, handle.pending_order_id)
        return {
            "clientSecret": handle.client_secret,
            "paymentIntentId": handle.reference,
            "pendingOrderId": handle.pending_order_id,
            "amount": handle.amount_cents,
            "currency": handle.currency,
        }
    except HTTPException:
        raise
    except PaymentError as e:
        raise _http_error(e)
    except Exception as e:
        logger.exception("Erreur create_payment_intent")
        raise HTTPException(status_code=400, detail=str(e))

@router.post("/cart/create-payment-intent", dependencies=[Depends(optional_rate_limit(times=10, seconds=60))])
async def create_cart_payment_intent(request: Request, user: Optional[dict] = Depends(get_optional_user)):
    """
    Crée un PaymentIntent Stripe pour tout le panier (total = somme des articles).
    - Entrée JSON: { "cartItems"?: [...], "customerInfo": {...} } ; sans cartItems, panier de session
    """
    try:
        body = await _json_body(request)
        order = builder.build_order(_cart_items(request, body), body.get("customerInfo"), is_cart=True)
        purchaser = students_service.purchaser_student_id(user)
        handle = payments_intents.create_intent(order, purchaser_student_id=purchaser)
        checkout_session.stash_checkout(request.session, order, handle.pending_order_id)
        return {
            "clientSecret": handle.client_secret,
            "paymentIntentId": handle.reference,
            "pendingOrderId": handle.pending_order_id,
            "amount": handle.amount_cents,
            "currency": handle.currency,
            "items": len(order.items),
        }
    except HTTPException:
        raise
    except PaymentError as e:
        raise _http_error(e)
    except Exception as e:
        logger.exception("Erreur create_cart_payment_intent")
        raise HTTPException(status_code=400, detail=str(e))

@router.post("/webhook", include_in_schema=False)
async def webhook_stripe(request: Request):
    """
    Webhook Stripe (PaymentIntent): seul payment_intent.succeeded enregistre des achats.
    - Signature: stripe_client.parse_event (Stripe-Signature + STRIPE_WEBHOOK_SECRET)
    - Réponses: {"status": "ok", "recorded": n} | {"status": "failed"|"cancelled"|"ignored"}
    - Erreurs: 400 si signature/payload invalide ou vérification refusée
    """
    try:
        event = await stripe_client.parse_event(request)
    except Exception:
        logger.exception("Erreur webhook_stripe signature")
        raise HTTPException(status_code=400, detail="Invalid Stripe webhook payload")
    try:
        return JSONResponse(reconciliation.handle_card_event(event))
    except PaymentError as e:
        logger.warning("payments.webhook rejected type=%s code=%s", (event or {}).get("type"), e.code)
        raise _http_error(e)

@router.post("/confirm")
async def confirm_card_payment(request: Request):
    """
    Alternative sans webhook: { "paymentIntentId": "pi_..." } -> relit le PaymentIntent et enregistre.
    - Erreurs: 400 si paiement non confirmé
    """
    try:
        body = await _json_body(request)
        intent_id = body.get("paymentIntentId") or body.get("payment_intent_id")
        if not intent_id:
            raise HTTPException(status_code=400, detail="paymentIntentId manquant")
        purchases = reconciliation.confirm_card_payment(intent_id)
        _finish_checkout(request)
        return {"status": "ok", "purchases": purchases}
    except HTTPException:
        raise
    except PaymentError as e:
        raise _http_error(e)
    except Exception as e:
        logger.exception("Erreur confirm_card_payment")
        raise HTTPException(status_code=400, detail=str(e))

@router.post("/paystack/initialize", dependencies=[Depends(optional_rate_limit(times=10, seconds=60))])
async def paystack_initialize(request: Request, user: Optional[dict] = Depends(get_optional_user)):
    """
    Prépare une transaction passerelle (simple ou panier selon la présence de cartItems).
    - Retour: { reference, accessCode, authorizationUrl, publicKey, amount }
    """
    try:
        from fundraiser_backend.config import PAYSTACK_PUBLIC_KEY
        body = await _json_body(request)
        is_cart = bool(body.get("isCart")) or "cartItems" in body
        items = _cart_items(request, body) if is_cart else _single_item(body)
        order = builder.build_order(items, body.get("customerInfo"), is_cart=is_cart)
        purchaser = students_service.purchaser_student_id(user)
        handle = payments_intents.initialize_gateway_transaction(order, purchaser_student_id=purchaser)
        checkout_session.stash_checkout(request.session, order, handle.pending_order_id)
        return {
            "reference": handle.reference,
            "accessCode": handle.access_code,
            "authorizationUrl": handle.authorization_url,
            "publicKey": PAYSTACK_PUBLIC_KEY,
            "amount": handle.amount_cents,
            "currency": handle.currency,
        }
    except HTTPException:
        raise
    except PaymentError as e:
        raise _http_error(e)
    except Exception as e:
        logger.exception("Erreur paystack_initialize")
        raise HTTPException(status_code=400, detail=str(e))

async def _paystack_verify(request: Request, expected_kind: str):
    try:
        body = await _json_body(request)
        reference = body.get("reference")
        if not reference:
            raise HTTPException(status_code=400, detail="reference manquante")
        purchases = reconciliation.verify_and_record(reference, expected_kind=expected_kind)
        _finish_checkout(request)
        return {"status": "ok", "reference": reference, "purchases": purchases}
    except HTTPException:
        raise
    except PaymentError as e:
        raise _http_error(e)
    except Exception as e:
        logger.exception("Erreur paystack_verify kind=%s", expected_kind)
        raise HTTPException(status_code=400, detail=str(e))

@router.post("/paystack/verify")
async def paystack_verify(request: Request):
    """Vérifie une transaction passerelle pour une commande simple et enregistre l'achat."""
    return await _paystack_verify(request, "single")

@router.post("/paystack/verify-cart")
async def paystack_verify_cart(request: Request):
    """Vérifie une transaction passerelle de panier: une ligne d'achat par article."""
    return await _paystack_verify(request, "cart")

@router.post("/cash-payment", dependencies=[Depends(optional_rate_limit(times=20, seconds=60))])
async def cash_payment(request: Request, user: dict = Depends(require_seller)):
    """
    Paiement en espèces saisi par un vendeur (aucun fournisseur).
    - Entrée JSON: { "fundraiserId", "quantity", "studentId"?, "customerInfo" }
    """
    try:
        body = await _json_body(request)
        purchases = payments_cash.record_cash(
            _single_item(body)[0],
            body.get("customerInfo"),
            purchaser_student_id=students_service.purchaser_student_id(user),
        )
        return {"status": "ok", "reference": purchases[0].get("payment_intent_id") if purchases else None, "purchases": purchases}
    except HTTPException:
        raise
    except PaymentError as e:
        raise _http_error(e)
    except Exception as e:
        logger.exception("Erreur cash_payment")
        raise HTTPException(status_code=400, detail=str(e))

@router.post("/cart/cash-payment", dependencies=[Depends(optional_rate_limit(times=20, seconds=60))])
async def cart_cash_payment(request: Request, user: dict = Depends(require_seller)):
    """
    Paiement en espèces d'un panier: une ligne par article, même référence cash_*.
    - Succès: panier de session vidé
    """
    try:
        body = await _json_body(request)
        purchases = payments_cash.record_cash(
            _cart_items(request, body),
            body.get("customerInfo"),
            purchaser_student_id=students_service.purchaser_student_id(user),
            is_cart=True,
        )
        _finish_checkout(request)
        return {"status": "ok", "reference": purchases[0].get("payment_intent_id") if purchases else None, "purchases": purchases}
    except HTTPException:
        raise
    except PaymentError as e:
        raise _http_error(e)
    except Exception as e:
        logger.exception("Erreur cart_cash_payment")
        raise HTTPException(status_code=400, detail=str(e))
