"""Historique des commandes du client connecté (cookie store_session)."""
from typing import Any, Dict
import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from storefront.utils.security import require_customer
from . import repository as orders_repository

# module storefront.orders.views
logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/orders", tags=["Orders API"])

@router.get("")
def list_my_orders(customer: Dict[str, Any] = Depends(require_customer)):
    """Commandes du client (plus récentes d'abord), lignes jointes sous 'items'."""
    orders = orders_repository.list_customer_orders(str(customer["id"]))
    logger.info("orders.views.list_my_orders customer_id=%s count=%s", customer["id"], len(orders))
    return JSONResponse({"orders": orders})
