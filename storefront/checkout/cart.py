"""
Logique panier pure (pas de Stripe, pas de DB).
Transforme un panier brut [{id, quantity}] + les produits du catalogue en CartLine figées.
"""
from typing import Any, Dict, List

from pydantic import ValidationError as PydanticValidationError

from .errors import ValidationError
from .models import CartLine

# module storefront.checkout.cart
def aggregate_quantities(items: List[Dict[str, Any]]) -> Dict[str, int]:
    """
    Agrège un panier brut [{id, quantity}, ...] en {product_id: total_quantity}.
    - Ignore les lignes invalides (id vide, quantity <= 0 ou non numérique).
    - Lève ValidationError si aucune ligne valide n’est présente.
    """
    quantities: Dict[str, int] = {}
    for it in items or []:
        product_id = str(it.get("id") or "").strip()
        try:
            qty = int(it.get("quantity") or 0)
        except (TypeError, ValueError):
            continue
        if not product_id or qty <= 0:
            continue
        quantities[product_id] = quantities.get(product_id, 0) + qty
    if not quantities:
        raise ValidationError("Panier invalide")
    return quantities

def to_cart_lines(products_by_id: Dict[str, Dict[str, Any]], quantities: Dict[str, int]) -> List[CartLine]:
    """
    Construit les CartLine à partir des produits et quantités.
    - Le prix est lu une seule fois ici puis figé dans la ligne.
    - Produit introuvable ou quantité > stock: ValidationError (le client doit corriger son panier).
    """
    lines: List[CartLine] = []
    for product_id, qty in quantities.items():
        product = products_by_id.get(product_id)
        if not product:
            raise ValidationError(f"Produit introuvable: {product_id}")
        stock = product.get("stock")
        try:
            lines.append(CartLine(
                product_id=product_id,
                unit_price=product.get("price") or 0,
                quantity=qty,
                name=product.get("name") or "Article",
                image_url=product.get("image_url") or None,
                available_stock=int(stock) if stock is not None else None,
            ))
        except PydanticValidationError as e:
            raise ValidationError(_first_message(e)) from e
    return lines

def _first_message(e: PydanticValidationError) -> str:
    errors = e.errors()
    if not errors:
        return "Article invalide"
    return str(errors[0].get("msg") or "Article invalide").removeprefix("Value error, ")
