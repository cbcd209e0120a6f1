"""
Lecture seule du catalogue produits (table 'products') pour figer le panier au checkout.
"""
from typing import Any, Dict, Iterable, List
import logging

import storefront.infra.supabase_client as supabase_client
from storefront.checkout.errors import PersistenceError

logger = logging.getLogger(__name__)

# module storefront.catalog.repository
def fetch_products_by_ids(ids: List[str]) -> List[dict]:
    """
    Récupère les produits par leurs IDs (id, name, price, stock, image_url).
    - Retourne [] si ids vide.
    - Lève PersistenceError si le catalogue est indisponible (on ne fige pas un panier partiel).
    """
    if not ids:
        return []
    try:
        res = (
            supabase_client.get_supabase()
            .table("products")
            .select("id, name, price, stock, image_url")
            .in_("id", [str(i) for i in ids])
            .execute()
        )
        return res.data or []
    except Exception as e:
        logger.exception("catalog.repository.fetch_products_by_ids failed ids=%s", ids)
        raise PersistenceError("Catalogue indisponible") from e

def get_products_map(ids: Iterable[str]) -> Dict[str, Dict[str, Any]]:
    """
    Retourne un dict {id: produit} à partir d’une liste d’IDs.
    """
    products = fetch_products_by_ids(list(ids))
    return {str(p.get("id")): p for p in products}
