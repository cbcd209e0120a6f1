"""
Identité client côté boutique.
Le cookie `store_session` (posé par le parcours de connexion de la boutique) est résolu
via la table customer_sessions; un invité n'a simplement pas de client associé.
"""
from typing import Any, Dict, Optional
import logging

from fastapi import Depends, HTTPException, Request

from storefront.config import CUSTOMER_COOKIE_NAME
from storefront.checkout.errors import PersistenceError
from storefront.customers import repository as customers_repository

logger = logging.getLogger(__name__)

COOKIE_NAME = CUSTOMER_COOKIE_NAME

def _token_from_request(request: Request) -> Optional[str]:
    # Hybride: priorité au Bearer, fallback cookie
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        token = auth_header[7:].strip()
        if token:
            return token
    return request.cookies.get(COOKIE_NAME)

def get_optional_customer(request: Request) -> Optional[Dict[str, Any]]:
    """Client connecté ou None (invité). Une base indisponible ne bloque pas le checkout invité."""
    token = _token_from_request(request)
    if not token:
        return None
    try:
        return customers_repository.get_customer_by_session_token(token)
    except PersistenceError:
        logger.warning("utils.security.get_optional_customer lookup failed, continuing as guest")
        return None

def require_customer(customer: Optional[Dict[str, Any]] = Depends(get_optional_customer)) -> Dict[str, Any]:
    if not customer or not customer.get("id"):
        raise HTTPException(status_code=401, detail="Non authentifié")
    return customer
