"""Couche service du domaine Clients: résolution d'un identifiant client stable pour le checkout."""
from typing import Optional
import logging

from storefront.checkout.models import CustomerDetails
from . import repository

logger = logging.getLogger(__name__)

def resolve_or_create(details: CustomerDetails, existing_customer_id: Optional[str] = None) -> str:
    """Retourne l'id client à associer à la commande.
    - Client connecté: son id est réutilisé tel quel.
    - Invité déjà connu (même email): réutilise la fiche existante.
    - Sinon: crée une fiche invitée à partir des coordonnées saisies.
    Lève PersistenceError si la base est indisponible.
    """
    if existing_customer_id:
        return existing_customer_id

    email = str(details.email).strip().lower()
    existing = repository.get_customer_by_email(email)
    if existing:
        return str(existing["id"])

    row = repository.insert_customer({
        "first_name": details.first_name,
        "last_name": details.last_name,
        "email": email,
        "gsm": details.phone or "",
        "address": details.address,
    })
    logger.info("customers.service.resolve_or_create created customer_id=%s", row["id"])
    return str(row["id"])
