"""
Taxonomie des erreurs du flux de paiement.

Chaque erreur porte un `code` stable (exposé au client) et un `status_code` HTTP.
Les vues les traduisent en HTTPException; un handler global sert de filet.
"""
from typing import Any, Dict, List, Optional

# module fundraiser_backend.payments.errors
class PaymentError(Exception):
    status_code = 400
    default_code = "payment_error"

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code

    def to_dict(self) -> Dict[str, Any]:
        return {"detail": self.message, "code": self.code}


# --- Validation (jamais envoyée au fournisseur, jamais rejouée) ---

class ValidationError(PaymentError):
    status_code = 400
    default_code = "invalid"


class EmptyCartError(ValidationError):
    default_code = "empty_cart"

    def __init__(self, message: str = "Panier vide"):
        super().__init__(message)


class InvalidQuantityError(ValidationError):
    default_code = "invalid_quantity"


class InvalidCustomerInfoError(ValidationError):
    default_code = "invalid_customer_info"


# --- État de la collecte ---

class FundraiserStateError(PaymentError):
    status_code = 409
    default_code = "fundraiser_unavailable"

    def __init__(self, message: str, fundraiser_id: Any = None):
        super().__init__(message)
        self.fundraiser_id = fundraiser_id


class FundraiserNotFound(FundraiserStateError):
    status_code = 404
    default_code = "fundraiser_not_found"


class FundraiserInactive(FundraiserStateError):
    default_code = "fundraiser_inactive"


# --- Fournisseurs ---

class ProviderSetupError(PaymentError):
    """Le fournisseur a refusé la création de l'intention (message fournisseur conservé)."""
    status_code = 502
    default_code = "provider_setup_failed"

    def __init__(self, message: str, provider: str = "stripe"):
        super().__init__(message)
        self.provider = provider


# Nom historique utilisé par les vues et les clients
PaymentSetupError = ProviderSetupError


class ProviderVerificationError(PaymentError):
    status_code = 400
    default_code = "verification_failed"


# --- Persistance ---

class PersistenceError(PaymentError):
    status_code = 500
    default_code = "persistence_failed"

    def __init__(self, message: str, failed_items: Optional[List[Dict[str, Any]]] = None):
        super().__init__(message)
        self.failed_items = failed_items or []

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["failed_items"] = self.failed_items
        return data


class DuplicatePurchaseError(PersistenceError):
    """Conflit d'unicité (23505): la référence a déjà été enregistrée."""
    status_code = 409
    default_code = "already_recorded"


class InvalidTransition(PaymentError):
    status_code = 409
    default_code = "invalid_transition"
