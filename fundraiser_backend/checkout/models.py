"""
Modèles du tunnel de paiement (pydantic).

- CartLineItem: ligne de panier persistée dans la session acheteur
- CustomerInfo: coordonnées de l'acheteur (immuable; toute modification relance le checkout)
- OrderItem / ComputedOrder: commande validée et chiffrée, consommée une seule fois par un mode de paiement
- ProviderPaymentHandle: poignée renvoyée au client pour finaliser le paiement
- TicketPurchase: ligne 'ticket_purchases' (une par article du panier)
"""
from typing import Any, Dict, List, Literal, Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from fundraiser_backend.config import MAX_TICKETS_PER_ITEM

ReferralKind = Literal["self", "external"]
PaymentMethod = Literal["card", "alt_gateway", "cash"]


class CartLineItem(BaseModel):
    line_id: str = Field(default_factory=lambda: uuid4().hex[:12])
    fundraiser_id: int
    fundraiser_name: Optional[str] = None
    quantity: int = Field(ge=1, le=MAX_TICKETS_PER_ITEM)
    unit_price_cents: int = Field(ge=0)
    referring_student_id: Optional[int] = None
    referral_kind: Optional[ReferralKind] = None

    def to_checkout_item(self) -> Dict[str, Any]:
        return {
            "fundraiserId": self.fundraiser_id,
            "quantity": self.quantity,
            "referringStudentId": self.referring_student_id,
            "referralKind": self.referral_kind,
        }


class CustomerInfo(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=1)
    email: EmailStr
    phone: Optional[str] = None
    student_email: Optional[str] = None
    ticket_info: Optional[str] = None

    @field_validator("name")
    def name_not_blank(cls, v: str) -> str:
        v = (v or "").strip()
        if not v:
            raise ValueError("Nom requis")
        return v

    @field_validator("phone", "student_email", "ticket_info")
    def blank_to_none(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = str(v).strip()
        return v or None


class OrderItem(BaseModel):
    fundraiser_id: int
    fundraiser_name: Optional[str] = None
    quantity: int
    unit_amount_cents: int
    amount_cents: int
    referring_student_id: Optional[int] = None
    referral_kind: Optional[ReferralKind] = None


class ComputedOrder(BaseModel):
    items: List[OrderItem]
    total_amount_cents: int
    customer_info: CustomerInfo
    is_cart: bool = False

    @property
    def kind(self) -> str:
        return "cart" if self.is_cart else "single"


class ProviderPaymentHandle(BaseModel):
    provider: Literal["stripe", "paystack"]
    reference: str
    pending_order_id: str
    amount_cents: int
    currency: str
    client_secret: Optional[str] = None
    access_code: Optional[str] = None
    authorization_url: Optional[str] = None


class TicketPurchase(BaseModel):
    fundraiser_id: int
    student_id: Optional[int] = None
    customer_name: str
    customer_email: str
    customer_phone: Optional[str] = None
    quantity: int
    amount: int
    payment_intent_id: str
    payment_status: str = "completed"
    payment_method: PaymentMethod
    student_email: Optional[str] = None
    ticket_info: Optional[str] = None

    def to_row(self) -> Dict[str, Any]:
        return self.model_dump()
