"""
Module 'payments' (feature-first): point d'entrée public.
Réunit erreurs, parrainage, métadonnées fournisseur, clients Stripe/Paystack,
commandes en attente, intentions, espèces et rapprochement.
"""

from .errors import (
    PaymentError,
    ValidationError,
    EmptyCartError,
    InvalidQuantityError,
    InvalidCustomerInfoError,
    FundraiserStateError,
    FundraiserNotFound,
    FundraiserInactive,
    ProviderSetupError,
    PaymentSetupError,
    ProviderVerificationError,
    PersistenceError,
    DuplicatePurchaseError,
    InvalidTransition,
)
from .referral import resolve_referral, resolve_item_referral
from .metadata import build_metadata, parse_metadata, order_from_metadata
from .intents import create_intent, initialize_gateway_transaction
from .cash import record_cash, make_cash_reference
from .reconciliation import (
    verify_and_record,
    handle_card_event,
    confirm_card_payment,
    record_order,
)

__all__ = [
    # errors
    "PaymentError",
    "ValidationError",
    "EmptyCartError",
    "InvalidQuantityError",
    "InvalidCustomerInfoError",
    "FundraiserStateError",
    "FundraiserNotFound",
    "FundraiserInactive",
    "ProviderSetupError",
    "PaymentSetupError",
    "ProviderVerificationError",
    "PersistenceError",
    "DuplicatePurchaseError",
    "InvalidTransition",
    # referral
    "resolve_referral",
    "resolve_item_referral",
    # metadata
    "build_metadata",
    "parse_metadata",
    "order_from_metadata",
    # services
    "create_intent",
    "initialize_gateway_transaction",
    "record_cash",
    "make_cash_reference",
    "verify_and_record",
    "handle_card_event",
    "confirm_card_payment",
    "record_order",
]
