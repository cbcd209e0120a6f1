"""Couche d’accès aux données (Supabase) pour le domaine Clients.
Tables: customers, customer_sessions.
Contrairement aux lectures d'affichage, les erreurs sont remontées en PersistenceError:
le checkout ne doit jamais créer de commande sans client résolu.
"""
from datetime import datetime, timezone
from typing import Any, Dict, Optional
import logging

import storefront.infra.supabase_client as supabase_client
from storefront.checkout.errors import PersistenceError

logger = logging.getLogger(__name__)

def get_customer_by_email(email: str) -> Optional[Dict[str, Any]]:
    """Récupère un client par email (normalisé en minuscules), None si absent."""
    if not email:
        return None
    try:
        res = (
            supabase_client.get_service_supabase()
            .table("customers")
            .select("id, email, first_name, last_name")
            .eq("email", email.strip().lower())
            .limit(1)
            .execute()
        )
    except Exception as e:
        logger.exception("customers.repository.get_customer_by_email failed")
        raise PersistenceError("Recherche client impossible") from e
    rows = res.data or []
    return rows[0] if rows else None

def insert_customer(payload: Dict[str, Any]) -> Dict[str, Any]:
    """Crée un client invité (is_active=True) et retourne la ligne insérée."""
    try:
        res = (
            supabase_client.get_service_supabase()
            .table("customers")
            .insert({**payload, "is_active": True})
            .execute()
        )
    except Exception as e:
        logger.exception("customers.repository.insert_customer failed")
        raise PersistenceError("Création du client impossible") from e
    rows = res.data or []
    if not rows or not rows[0].get("id"):
        raise PersistenceError("Client non créé (réponse vide)")
    return rows[0]

def get_customer_by_session_token(token: str) -> Optional[Dict[str, Any]]:
    """
    Résout le cookie de session boutique vers le client.
    - Table customer_sessions: token, customer_id, expires_at
    - Retourne None si le token est inconnu ou expiré
    """
    if not token:
        return None
    try:
        client = supabase_client.get_service_supabase()
        res = (
            client.table("customer_sessions")
            .select("customer_id, expires_at")
            .eq("token", token)
            .limit(1)
            .execute()
        )
        rows = res.data or []
        if not rows:
            return None
        expires_at = _parse_ts(rows[0].get("expires_at"))
        if expires_at is None or expires_at < datetime.now(timezone.utc):
            return None
        customer = (
            client.table("customers")
            .select("id, email, first_name, last_name, gsm, address")
            .eq("id", rows[0]["customer_id"])
            .limit(1)
            .execute()
        )
    except Exception as e:
        logger.exception("customers.repository.get_customer_by_session_token failed")
        raise PersistenceError("Session client indisponible") from e
    found = customer.data or []
    return found[0] if found else None

def _parse_ts(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        ts = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        return None
    return ts if ts.tzinfo else ts.replace(tzinfo=timezone.utc)
