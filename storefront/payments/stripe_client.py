"""
Adaptateur Stripe: centralise les appels et la configuration Stripe (PaymentIntents).

Contrat exposé à l'orchestrateur:
- create_intent(amount, order_id, customer_email) -> PaymentIntentRef
- confirm_intent(intent_id) -> IntentConfirmation
Signaux d'erreur:
- NotConfigured: aucune clé STRIPE_SECRET_KEY pour ce déploiement (vérifié avant tout appel réseau)
- GatewayError: toute erreur Stripe ou réseau (timeout inclus)
"""
from decimal import Decimal
from typing import Any, Dict, Optional
import logging

import stripe

from storefront import config
from storefront.checkout.errors import GatewayError, NotConfigured
from storefront.checkout.models import IntentConfirmation, IntentStatus, PaymentIntentRef, to_money

logger = logging.getLogger(__name__)

# Statuts Stripe pour lesquels le client doit encore agir (ou attendre) avant de rejouer
_ACTION_STATUSES = {"requires_action", "requires_confirmation", "processing"}

# module storefront.payments.stripe_client
def is_configured() -> bool:
    return bool(config.STRIPE_SECRET_KEY)

def require_stripe():
    """
    Prépare et retourne le module stripe prêt à l’emploi.
    - Lève NotConfigured si STRIPE_SECRET_KEY est absent.
    - Applique le timeout passerelle (GATEWAY_TIMEOUT_SECONDS) au client HTTP Stripe.
    """
    if not is_configured():
        raise NotConfigured("Paiement par carte non configuré pour cette boutique")
    stripe.api_key = config.STRIPE_SECRET_KEY
    stripe.max_network_retries = 2
    if stripe.default_http_client is None:
        stripe.default_http_client = stripe.RequestsClient(timeout=config.GATEWAY_TIMEOUT_SECONDS)
    return stripe

def to_minor_units(amount: Decimal) -> int:
    """£25.00 -> 2500"""
    return int(to_money(amount) * 100)

def create_intent(
    amount: Decimal,
    order_id: str,
    customer_email: Optional[str] = None,
    order_number: Optional[int] = None,
) -> PaymentIntentRef:
    """
    Crée un PaymentIntent pour le total de la commande.
    - Clé d'idempotence dérivée de l'id de commande: un rejeu réutilise le même intent.
    - metadata: {order_id, order_number} pour le rapprochement côté dashboard Stripe.
    """
    require_stripe()
    params: Dict[str, Any] = {
        "amount": to_minor_units(amount),
        "currency": config.STORE_CURRENCY,
        "automatic_payment_methods": {"enabled": True},
        "metadata": {"order_id": order_id, "order_number": str(order_number or "")},
    }
    if customer_email:
        params["receipt_email"] = customer_email
    try:
        intent = stripe.PaymentIntent.create(idempotency_key=f"order-{order_id}-intent", **params)
    except stripe.StripeError as e:
        logger.warning("payments.stripe_client.create_intent stripe error order_id=%s err=%s", order_id, e)
        raise GatewayError(f"Erreur passerelle: {getattr(e, 'user_message', None) or e}") from e
    except Exception as e:
        logger.exception("payments.stripe_client.create_intent failed order_id=%s", order_id)
        raise GatewayError("Passerelle de paiement indisponible") from e
    data = dict(intent)
    return PaymentIntentRef(intent_id=data["id"], client_secret=data.get("client_secret") or "")

def confirm_intent(intent_id: str) -> IntentConfirmation:
    """
    Vérifie l'état terminal d'un PaymentIntent (la collecte carte est faite côté client).
    Correspondance des statuts Stripe:
    - succeeded -> SUCCEEDED
    - requires_action / requires_confirmation / processing -> REQUIRES_ACTION
    - tout autre statut (requires_payment_method, canceled, ...) -> FAILED
    """
    require_stripe()
    try:
        intent = stripe.PaymentIntent.retrieve(intent_id)
    except stripe.StripeError as e:
        logger.warning("payments.stripe_client.confirm_intent stripe error intent_id=%s err=%s", intent_id, e)
        raise GatewayError(f"Erreur passerelle: {getattr(e, 'user_message', None) or e}") from e
    except Exception as e:
        logger.exception("payments.stripe_client.confirm_intent failed intent_id=%s", intent_id)
        raise GatewayError("Passerelle de paiement indisponible") from e

    data = dict(intent)
    raw_status = data.get("status") or ""
    if raw_status == "succeeded":
        status = IntentStatus.SUCCEEDED
    elif raw_status in _ACTION_STATUSES:
        status = IntentStatus.REQUIRES_ACTION
    else:
        status = IntentStatus.FAILED

    charge = data.get("latest_charge")
    if isinstance(charge, dict):
        charge = charge.get("id")
    transaction_id = charge or data.get("id") or intent_id
    return IntentConfirmation(status=status, transaction_id=transaction_id, raw_status=raw_status)
