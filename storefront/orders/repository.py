"""
Accès aux données 'orders' (tables orders + order_products).
- Écritures via le client service-role (get_service_supabase).
- Toute erreur (réseau, timeout, contrainte) est loggée puis remontée en PersistenceError.
- update_order_status applique la règle monotone côté base: l'update est filtré sur les
  statuts antérieurs autorisés, une transition arrière ne touche donc aucune ligne.
"""
from decimal import Decimal
from typing import Any, Dict, List, Optional
import logging

import storefront.infra.supabase_client as supabase_client
from storefront.checkout.errors import PersistenceError
from storefront.checkout.models import CartLine, OrderRef
from storefront.orders.models import (
    ORDER_STATUS_RANK,
    PAYMENT_STATUS_RANK,
    OrderStatus,
    PaymentMethod,
    PaymentStatus,
    allowed_prior_statuses,
)

logger = logging.getLogger(__name__)

# module storefront.orders.repository
def create_order(
    customer_id: Optional[str],
    grand_total: Decimal,
    payment_method: PaymentMethod,
    customer_name: str = "",
    notes: str = "",
) -> OrderRef:
    """
    Crée une commande 'pending' / 'unpaid' et retourne (id, order_number).
    - order_number est attribué par la base (colonne identity), jamais réutilisé.
    """
    try:
        res = (
            supabase_client.get_service_supabase()
            .table("orders")
            .insert({
                "customer_id": customer_id,
                "customer_name": customer_name,
                "amount": f"{grand_total:.2f}",
                "status": OrderStatus.PENDING.value,
                "payment_method": PaymentMethod(payment_method).value,
                "payment_status": PaymentStatus.UNPAID.value,
                "notes": notes,
            })
            .execute()
        )
        rows = res.data or []
    except Exception as e:
        logger.exception("orders.repository.create_order failed customer_id=%s", customer_id)
        raise PersistenceError("Impossible de créer la commande") from e
    if not rows or not rows[0].get("id"):
        raise PersistenceError("Commande non créée (réponse vide)")
    return OrderRef(id=str(rows[0]["id"]), order_number=int(rows[0]["order_number"]))

def create_order_lines(order_id: str, lines: List[CartLine]) -> int:
    """
    Insère toutes les lignes de la commande en une seule requête (tout ou rien).
    Retourne le nombre de lignes écrites.
    """
    payload = [
        {
            "order_id": order_id,
            "product_id": line.product_id,
            "quantity": line.quantity,
            "price": f"{line.unit_price:.2f}",
            "product_name": line.name,
            "product_image_url": line.image_url,
        }
        for line in lines
    ]
    if not payload:
        return 0
    try:
        (
            supabase_client.get_service_supabase()
            .table("order_products")
            .insert(payload)
            .execute()
        )
    except Exception as e:
        logger.exception("orders.repository.create_order_lines failed order_id=%s lines=%s", order_id, len(payload))
        raise PersistenceError("Impossible d'enregistrer les articles de la commande") from e
    return len(payload)

def update_order_status(
    order_id: str,
    status: OrderStatus,
    payment_status: PaymentStatus,
    transaction_id: Optional[str] = None,
    payment_intent_id: Optional[str] = None,
    payment_reference: Optional[str] = None,
) -> bool:
    """
    Fait avancer les statuts d'une commande.
    - Retourne True si la ligne a été mise à jour, False si la transition était arrière
      (no-op silencieux, pas d'erreur).
    - Les champs d'audit (transaction_id, payment_intent_id, payment_reference) ne sont
      écrits que s'ils sont fournis.
    """
    status = OrderStatus(status)
    payment_status = PaymentStatus(payment_status)
    payload: Dict[str, Any] = {"status": status.value, "payment_status": payment_status.value}
    if transaction_id:
        payload["transaction_id"] = transaction_id
    if payment_intent_id:
        payload["payment_intent_id"] = payment_intent_id
    if payment_reference:
        payload["payment_reference"] = payment_reference
    try:
        res = (
            supabase_client.get_service_supabase()
            .table("orders")
            .update(payload)
            .eq("id", order_id)
            .in_("status", allowed_prior_statuses(status, ORDER_STATUS_RANK))
            .in_("payment_status", allowed_prior_statuses(payment_status, PAYMENT_STATUS_RANK))
            .execute()
        )
    except Exception as e:
        logger.exception("orders.repository.update_order_status failed order_id=%s status=%s payment_status=%s", order_id, status.value, payment_status.value)
        raise PersistenceError("Impossible de mettre à jour la commande") from e
    updated = bool(res.data)
    if not updated:
        logger.info("orders.repository.update_order_status ignored order_id=%s status=%s payment_status=%s", order_id, status.value, payment_status.value)
    return updated

def get_order(order_id: str) -> Optional[Dict[str, Any]]:
    """
    Retourne la commande et ses lignes (clé 'items'), ou None si introuvable.
    Utilisé par la vue de confirmation "commande terminée".
    """
    try:
        client = supabase_client.get_service_supabase()
        res = client.table("orders").select("*").eq("id", order_id).limit(1).execute()
        rows = res.data or []
        if not rows:
            return None
        items = client.table("order_products").select("*").eq("order_id", order_id).execute()
    except Exception as e:
        logger.exception("orders.repository.get_order failed order_id=%s", order_id)
        raise PersistenceError("Commande indisponible") from e
    order = dict(rows[0])
    order["items"] = items.data or []
    return order

def list_customer_orders(customer_id: str) -> List[Dict[str, Any]]:
    """
    Historique des commandes d'un client (plus récentes d'abord), lignes jointes sous 'items'.
    """
    if not customer_id:
        return []
    try:
        client = supabase_client.get_service_supabase()
        res = (
            client.table("orders")
            .select("*")
            .eq("customer_id", customer_id)
            .order("created_at", desc=True)
            .execute()
        )
        orders = res.data or []
        order_ids = [o.get("id") for o in orders if o.get("id")]
        products: List[Dict[str, Any]] = []
        if order_ids:
            products = client.table("order_products").select("*").in_("order_id", order_ids).execute().data or []
    except Exception as e:
        logger.exception("orders.repository.list_customer_orders failed customer_id=%s", customer_id)
        raise PersistenceError("Historique des commandes indisponible") from e
    return [
        {**order, "items": [p for p in products if p.get("order_id") == order.get("id")]}
        for order in orders
    ]
