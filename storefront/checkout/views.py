"""API JSON du checkout (adaptateur UI de l'orchestrateur).
- POST /sessions: fige le panier (prix lus dans le catalogue) et ouvre une session "details".
- POST /sessions/{id}/payment: coordonnées + moyen de paiement, crée la commande.
- POST /sessions/{id}/card/confirm: vérifie le PaymentIntent auprès de Stripe.
- POST /sessions/{id}/bank-transfer/acknowledge: le client a noté les instructions de virement.
- POST /sessions/{id}/back: retour à l'étape details.
- GET /orders/{order_id}: récapitulatif "commande terminée" (complet pour le client propriétaire).
Les erreurs métier (CheckoutError) sont traduites en JSON {detail, code} par
storefront.app_setup.exceptions. Les sessions terminées sont retirées du registre.
"""
from decimal import Decimal
from typing import Any, Dict, List, Optional
import logging

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from storefront import config
from storefront.catalog import repository as catalog_repository
from storefront.orders import repository as orders_repository
from storefront.utils.rate_limit import optional_rate_limit
from storefront.utils.security import get_optional_customer
from . import cart as checkout_cart
from .errors import ActionRequired
from .models import CheckoutStep
from .orchestrator import CheckoutOrchestrator
from .registry import sessions
from .session import CheckoutSession

# module storefront.checkout.views
logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/checkout", tags=["Checkout API"])

orchestrator = CheckoutOrchestrator()


class CartItem(BaseModel):
    id: str
    quantity: int = 1


class StartCheckoutRequest(BaseModel):
    items: List[CartItem] = Field(default_factory=list)
    tax_enabled: Optional[bool] = None
    tax_rate: Optional[Decimal] = None


class PaymentRequest(BaseModel):
    # Validation métier faite par l'orchestrateur (400 + code), pas par FastAPI (422)
    details: Dict[str, Any] = Field(default_factory=dict)
    payment_method: str = ""


def _get_session(session_id: str) -> CheckoutSession:
    session = sessions.get(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail="Session de checkout introuvable ou expirée")
    return session

def _respond(session: CheckoutSession, status_code: int = 200) -> JSONResponse:
    if session.step == CheckoutStep.COMPLETE:
        sessions.discard(session.id)
    return JSONResponse({"status": session.step.value, "session": session.to_dict()}, status_code=status_code)


@router.post("/sessions", dependencies=[Depends(optional_rate_limit(times=20, seconds=60))])
def start_checkout(payload: StartCheckoutRequest, customer: Optional[dict] = Depends(get_optional_customer)):
    """Ouvre une session de checkout.
    Étapes:
    - Agrège les quantités (checkout_cart.aggregate_quantities)
    - Charge les produits du catalogue (catalog_repository.get_products_map)
    - Fige les lignes (checkout_cart.to_cart_lines) puis orchestrator.start
    Taxe: valeurs du body si fournies, sinon configuration boutique (TAX_ENABLED, TAX_RATE).
    """
    quantities = checkout_cart.aggregate_quantities([item.model_dump() for item in payload.items])
    products = catalog_repository.get_products_map(quantities.keys())
    lines = checkout_cart.to_cart_lines(products, quantities)
    session = orchestrator.start(
        lines,
        tax_enabled=config.TAX_ENABLED if payload.tax_enabled is None else payload.tax_enabled,
        tax_rate=config.TAX_RATE if payload.tax_rate is None else payload.tax_rate,
        customer_id=(customer or {}).get("id"),
    )
    sessions.put(session)
    return _respond(session, status_code=201)

@router.get("/sessions/{session_id}")
def get_checkout_session(session_id: str):
    return JSONResponse(_get_session(session_id).to_dict())

@router.post("/sessions/{session_id}/payment", dependencies=[Depends(optional_rate_limit(times=10, seconds=60))])
def proceed_to_payment(session_id: str, payload: PaymentRequest):
    """Crée la commande et prépare le paiement (intent Stripe ou instructions de virement).
    - Stripe non configuré: la session passe directement à "complete" (paiement en attente).
    - Erreur passerelle: 502, la session reste rejouable à l'identique.
    """
    session = _get_session(session_id)
    orchestrator.proceed_to_payment(session, payload.details, payload.payment_method)
    return _respond(session)

@router.post("/sessions/{session_id}/card/confirm", dependencies=[Depends(optional_rate_limit(times=10, seconds=60))])
def confirm_card_payment(session_id: str):
    session = _get_session(session_id)
    try:
        orchestrator.confirm_card_payment(session)
    except ActionRequired as e:
        return JSONResponse({
            "status": e.code,
            "client_secret": e.client_secret,
            "session": session.to_dict(),
        })
    return _respond(session)

@router.post("/sessions/{session_id}/bank-transfer/acknowledge")
def acknowledge_bank_transfer(session_id: str):
    session = _get_session(session_id)
    orchestrator.acknowledge_bank_transfer(session)
    return _respond(session)

@router.post("/sessions/{session_id}/back")
def back_to_details(session_id: str):
    session = _get_session(session_id)
    orchestrator.back(session)
    return _respond(session)

PUBLIC_ORDER_FIELDS = (
    "id",
    "order_number",
    "status",
    "payment_status",
    "payment_method",
    "amount",
    "payment_reference",
    "created_at",
    "items",
)


def _owned_by(order: Dict[str, Any], customer: Optional[dict]) -> bool:
    customer_id = (customer or {}).get("id")
    return bool(customer_id) and str(order.get("customer_id")) == str(customer_id)

@router.get("/orders/{order_id}")
def get_order_summary(order_id: str, customer: Optional[dict] = Depends(get_optional_customer)):
    """Récapitulatif de commande (lignes incluses) pour l'écran de confirmation.
    Le client propriétaire voit la commande complète; sinon seuls les champs publics
    (numéro, statuts, montant, référence de virement, lignes) sont renvoyés.
    """
    order = orders_repository.get_order(order_id)
    if not order:
        raise HTTPException(status_code=404, detail="Commande introuvable")
    if _owned_by(order, customer):
        return JSONResponse(order)
    return JSONResponse({k: order.get(k) for k in PUBLIC_ORDER_FIELDS})
