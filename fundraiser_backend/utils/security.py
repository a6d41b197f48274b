from fastapi import Request, HTTPException, Depends
from typing import Optional, Dict, Any

COOKIE_NAME = "sb_access"

def _token_from_request(request: Request) -> Optional[str]:
    # Hybride: priorité au Bearer, fallback cookie
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        token = auth_header[7:].strip()
        if token:
            return token
    return request.cookies.get(COOKIE_NAME)

def _resolve_user(token: str) -> Dict[str, Any]:
    try:
        from fundraiser_backend.auth import service as auth_service
        user = auth_service.get_user_from_token(token)
    except Exception:
        raise HTTPException(status_code=401, detail="Session expirée, veuillez vous connecter")
    if not user.get("id"):
        raise HTTPException(status_code=401, detail="Session expirée, veuillez vous connecter")
    return user

def get_current_user(request: Request) -> Dict[str, Any]:
    token = _token_from_request(request)
    if not token:
        raise HTTPException(status_code=401, detail="Non authentifié")
    return _resolve_user(token)

def get_optional_user(request: Request) -> Optional[Dict[str, Any]]:
    """Acheteur anonyme autorisé: None sans jeton, 401 seulement si le jeton est invalide."""
    token = _token_from_request(request)
    if not token:
        return None
    return _resolve_user(token)

def require_user(user: Dict[str, Any] = Depends(get_current_user)) -> Dict[str, Any]:
    return user

def require_seller(user: Dict[str, Any] = Depends(get_current_user)) -> Dict[str, Any]:
    """Vendeur (étudiant, école ou admin): seul habilité à saisir un paiement en espèces."""
    from fundraiser_backend.auth.service import SELLER_ROLES
    if user.get("role") not in SELLER_ROLES:
        raise HTTPException(status_code=403, detail="Accès réservé aux vendeurs")
    return user

def require_school_or_admin(user: Dict[str, Any] = Depends(get_current_user)) -> Dict[str, Any]:
    if user.get("role") not in ("school", "admin"):
        raise HTTPException(status_code=403, detail="Accès interdit")
    return user
