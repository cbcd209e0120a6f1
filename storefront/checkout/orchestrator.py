"""
Orchestrateur du checkout: machine à états details -> payment -> complete.

Transforme un panier en commande persistée puis pilote l'un des deux parcours de
paiement (carte via Stripe, virement bancaire) et réconcilie le résultat de la
passerelle avec l'état local de la commande.

Les collaborateurs sont injectés (modules ou objets exposant les mêmes fonctions):
- orders:    create_order, create_order_lines, update_order_status
- customers: resolve_or_create
- gateway:   create_intent, confirm_intent
- bank:      generate_instructions

L'orchestrateur ne garde aucun état entre deux appels: tout vit dans la CheckoutSession.
"""
from decimal import Decimal
from typing import Any, Dict, List, Optional, Union
import logging

from pydantic import ValidationError as PydanticValidationError

from storefront.customers import service as customers_service
from storefront.orders import repository as orders_repository
from storefront.orders.models import OrderStatus, PaymentMethod, PaymentStatus
from storefront.payments import bank_transfer, stripe_client
from .errors import (
    ActionRequired,
    GatewayError,
    InvalidStateError,
    NotConfigured,
    PaymentDeclined,
    PersistenceError,
    ValidationError,
)
from .models import CartLine, CheckoutStep, CustomerDetails, IntentStatus
from .session import CheckoutSession

logger = logging.getLogger(__name__)


class CheckoutOrchestrator:
    def __init__(self, orders=orders_repository, customers=customers_service, gateway=stripe_client, bank=bank_transfer):
        self.orders = orders
        self.customers = customers
        self.gateway = gateway
        self.bank = bank

    # --- details ---------------------------------------------------------------

    def start(
        self,
        cart: List[CartLine],
        tax_enabled: bool = False,
        tax_rate: Union[Decimal, int, str] = 0,
        customer_id: Optional[str] = None,
    ) -> CheckoutSession:
        """Ouvre une session à l'étape details. Panier vide -> ValidationError."""
        if not cart:
            raise ValidationError("Panier vide")
        try:
            rate = Decimal(str(tax_rate or 0))
        except ArithmeticError as e:
            raise ValidationError("Taux de taxe invalide") from e
        if rate < 0:
            raise ValidationError("Taux de taxe invalide")
        session = CheckoutSession(list(cart), tax_enabled=tax_enabled, tax_rate=rate, customer_id=customer_id)
        logger.info("checkout.start session_id=%s lines=%s customer_id=%s", session.id, len(session.lines), customer_id)
        return session

    def proceed_to_payment(
        self,
        session: CheckoutSession,
        details: Union[CustomerDetails, Dict[str, Any]],
        payment_method: Union[PaymentMethod, str],
    ) -> CheckoutSession:
        """
        Valide les coordonnées, crée la commande et initialise le parcours de paiement.

        Valide depuis "details", ou depuis "payment" quand la création d'intent a échoué
        (rejeu: la commande déjà créée est réutilisée, même clé d'idempotence).
        Un rejeu doit reprendre les mêmes coordonnées et le même moyen de paiement.
        """
        with session.exclusive():
            return self._proceed_to_payment(session, details, payment_method)

    def _proceed_to_payment(self, session, details, payment_method):
        retrying = session.awaiting_gateway_retry
        if session.step != CheckoutStep.DETAILS and not retrying:
            raise InvalidStateError(f"Étape '{session.step.value}': passage au paiement impossible")

        try:
            details = self._validate_details(details)
            method = self._validate_method(payment_method)
            if retrying and method != session.payment_method:
                raise ValidationError("Revenez à l'étape précédente pour changer de moyen de paiement")
            if retrying and details != session.details:
                raise ValidationError("Revenez à l'étape précédente pour modifier vos coordonnées")
        except ValidationError as e:
            session.last_error = e.message
            raise

        totals = session.totals
        if retrying:
            order = session.order
            logger.info("checkout.proceed retry order_id=%s", order.id)
        else:
            try:
                customer_id = self.customers.resolve_or_create(details, session.customer_id)
                order = self.orders.create_order(
                    customer_id,
                    totals.grand_total,
                    method,
                    customer_name=details.full_name,
                    notes=details.notes or "",
                )
            except PersistenceError as e:
                session.last_error = e.message
                raise
            try:
                self.orders.create_order_lines(order.id, list(session.lines))
            except PersistenceError as e:
                # La commande sans lignes reste en base (pending); la session l'oublie
                logger.warning("checkout.proceed lines failed order_id=%s order_number=%s", order.id, order.order_number)
                session.last_error = e.message
                raise
            logger.info("checkout.proceed order_id=%s order_number=%s method=%s", order.id, order.order_number, method.value)

        if method == PaymentMethod.CARD:
            return self._init_card(session, details, method, order, totals.grand_total)
        return self._init_bank_transfer(session, details, method, order)

    def _init_card(self, session, details, method, order, grand_total):
        try:
            intent = self.gateway.create_intent(
                grand_total, order.id, str(details.email), order_number=order.order_number
            )
        except NotConfigured:
            # Démo sans Stripe: la commande reste à encaisser hors ligne
            try:
                self.orders.update_order_status(order.id, OrderStatus.PENDING, PaymentStatus.PENDING)
            except PersistenceError as e:
                session.last_error = e.message
                raise
            self._remember(session, details, method, order)
            session.gateway_configured = False
            session.step = CheckoutStep.COMPLETE
            logger.info("checkout.proceed gateway not configured order_id=%s", order.id)
            return session
        except GatewayError as e:
            self._remember(session, details, method, order)
            session.intent = None
            session.step = CheckoutStep.PAYMENT
            session.last_error = e.message
            logger.warning("checkout.proceed gateway error order_id=%s err=%s", order.id, e.message)
            raise
        self._remember(session, details, method, order)
        session.intent = intent
        session.step = CheckoutStep.PAYMENT
        logger.info("checkout.payment card order_id=%s intent_id=%s", order.id, intent.intent_id)
        return session

    def _init_bank_transfer(self, session, details, method, order):
        instructions = self.bank.generate_instructions(order.order_number)
        try:
            self.orders.update_order_status(
                order.id,
                OrderStatus.PENDING,
                PaymentStatus.AWAITING_TRANSFER,
                payment_reference=instructions.reference,
            )
        except PersistenceError as e:
            session.last_error = e.message
            raise
        self._remember(session, details, method, order)
        session.instructions = instructions
        session.step = CheckoutStep.PAYMENT
        logger.info("checkout.payment bank_transfer order_id=%s reference=%s", order.id, instructions.reference)
        return session

    # --- payment ---------------------------------------------------------------

    def confirm_card_payment(self, session: CheckoutSession) -> CheckoutSession:
        """
        Vérifie l'intent auprès de la passerelle.
        - succeeded: commande confirmed/paid, session complete
        - requires_action: ActionRequired (client_secret pour l'authentification)
        - échec: PaymentDeclined, la commande reste pending/unpaid
        """
        with session.exclusive():
            return self._confirm_card_payment(session)

    def _confirm_card_payment(self, session):
        if (
            session.step != CheckoutStep.PAYMENT
            or session.payment_method != PaymentMethod.CARD
            or session.intent is None
        ):
            raise InvalidStateError("Aucun paiement carte en attente de confirmation")

        order = session.order
        intent = session.intent
        try:
            confirmation = self.gateway.confirm_intent(intent.intent_id)
        except GatewayError as e:
            session.last_error = e.message
            raise

        if confirmation.status == IntentStatus.REQUIRES_ACTION:
            session.last_error = None
            logger.info("checkout.confirm requires_action order_id=%s status=%s", order.id, confirmation.raw_status)
            raise ActionRequired("Authentification supplémentaire requise", client_secret=intent.client_secret)
        if confirmation.status != IntentStatus.SUCCEEDED:
            session.last_error = "Paiement refusé"
            logger.info("checkout.confirm declined order_id=%s status=%s", order.id, confirmation.raw_status)
            raise PaymentDeclined("Paiement refusé")

        try:
            self.orders.update_order_status(
                order.id,
                OrderStatus.CONFIRMED,
                PaymentStatus.PAID,
                transaction_id=confirmation.transaction_id,
                payment_intent_id=intent.intent_id,
            )
        except PersistenceError:
            # Le paiement est encaissé côté passerelle: on ne bloque pas le client
            logger.error(
                "checkout.confirm order update failed order_id=%s transaction_id=%s",
                order.id,
                confirmation.transaction_id,
                exc_info=True,
            )
        session.transaction_id = confirmation.transaction_id
        session.last_error = None
        session.step = CheckoutStep.COMPLETE
        logger.info("checkout.complete card order_id=%s transaction_id=%s", order.id, confirmation.transaction_id)
        return session

    def acknowledge_bank_transfer(self, session: CheckoutSession) -> CheckoutSession:
        """Le client déclare avoir noté les instructions; aucun appel passerelle."""
        with session.exclusive():
            return self._acknowledge_bank_transfer(session)

    def _acknowledge_bank_transfer(self, session):
        if (
            session.step != CheckoutStep.PAYMENT
            or session.payment_method != PaymentMethod.BANK_TRANSFER
            or session.instructions is None
        ):
            raise InvalidStateError("Aucun virement en attente d'acquittement")

        order = session.order
        try:
            self.orders.update_order_status(
                order.id,
                OrderStatus.PENDING,
                PaymentStatus.AWAITING_TRANSFER,
                payment_reference=session.instructions.reference,
            )
        except PersistenceError as e:
            session.last_error = e.message
            raise
        session.last_error = None
        session.step = CheckoutStep.COMPLETE
        logger.info("checkout.complete bank_transfer order_id=%s", order.id)
        return session

    def back(self, session: CheckoutSession) -> CheckoutSession:
        """Retour à details; la commande créée reste en base (pending, abandonnée)."""
        with session.exclusive():
            return self._back(session)

    def _back(self, session):
        if session.step != CheckoutStep.PAYMENT:
            raise InvalidStateError(f"Étape '{session.step.value}': retour impossible")
        abandoned = session.order
        session.order = None
        session.intent = None
        session.instructions = None
        session.last_error = None
        session.step = CheckoutStep.DETAILS
        logger.info("checkout.back abandoned_order_id=%s", abandoned.id if abandoned else None)
        return session

    # --- helpers ---------------------------------------------------------------

    @staticmethod
    def _remember(session, details, method, order):
        session.details = details
        session.payment_method = method
        session.order = order
        session.last_error = None

    @staticmethod
    def _validate_details(details) -> CustomerDetails:
        if isinstance(details, CustomerDetails):
            return details
        try:
            return CustomerDetails.model_validate(details or {})
        except PydanticValidationError as e:
            fields = sorted({str(err["loc"][0]) for err in e.errors() if err.get("loc")})
            raise ValidationError(f"Coordonnées invalides: {', '.join(fields) or 'formulaire'}") from e

    @staticmethod
    def _validate_method(payment_method) -> PaymentMethod:
        try:
            return PaymentMethod(payment_method)
        except ValueError as e:
            raise ValidationError("Moyen de paiement invalide") from e
