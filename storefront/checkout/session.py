"""
Session de checkout: état transitoire d'une tentative, possédé par un seul appelant.
Rien n'est persisté ici; seule la commande créée à l'étape "payment" survit à la session.
"""
from contextlib import contextmanager
from decimal import Decimal
from typing import Any, Dict, List, Optional
from uuid import uuid4
import threading

from storefront.orders.models import PaymentMethod
from .errors import InvalidStateError
from .models import (
    BankTransferInstructions,
    CartLine,
    CheckoutStep,
    CustomerDetails,
    OrderRef,
    PaymentIntentRef,
    Totals,
    compute_totals,
)


class CheckoutSession:
    def __init__(
        self,
        lines: List[CartLine],
        tax_enabled: bool = False,
        tax_rate: Decimal = Decimal("0"),
        customer_id: Optional[str] = None,
    ):
        self.id = uuid4().hex
        self._lines = tuple(lines)
        self._tax_enabled = bool(tax_enabled)
        self._tax_rate = Decimal(str(tax_rate))
        self.customer_id = customer_id
        self.step = CheckoutStep.DETAILS
        self.details: Optional[CustomerDetails] = None
        self.payment_method: Optional[PaymentMethod] = None
        self.order: Optional[OrderRef] = None
        self.intent: Optional[PaymentIntentRef] = None
        self.instructions: Optional[BankTransferInstructions] = None
        self.transaction_id: Optional[str] = None
        self.gateway_configured = True
        self.last_error: Optional[str] = None
        self._lock = threading.Lock()

    @property
    def lines(self) -> tuple:
        return self._lines

    @property
    def tax_enabled(self) -> bool:
        return self._tax_enabled

    @property
    def tax_rate(self) -> Decimal:
        return self._tax_rate

    @property
    def totals(self) -> Totals:
        # Recalculé à chaque accès: le total n'est jamais stocké
        return compute_totals(list(self._lines), self._tax_enabled, self._tax_rate)

    @property
    def awaiting_gateway_retry(self) -> bool:
        """Étape payment sans intent ni instructions: la création d'intent a échoué."""
        return (
            self.step == CheckoutStep.PAYMENT
            and self.order is not None
            and self.intent is None
            and self.instructions is None
        )

    @contextmanager
    def exclusive(self):
        """
        Une seule opération à la fois sur la session (handlers sync exécutés dans un threadpool).
        Un appel concurrent est refusé au lieu d'attendre: il créerait une seconde commande.
        """
        if not self._lock.acquire(blocking=False):
            raise InvalidStateError("Une opération est déjà en cours pour cette session")
        try:
            yield self
        finally:
            self._lock.release()

    def to_dict(self) -> Dict[str, Any]:
        """Vue sérialisable pour l'UI (jamais persistée)."""
        totals = self.totals
        return {
            "id": self.id,
            "step": self.step.value,
            "payment_method": self.payment_method.value if self.payment_method else None,
            "lines": [
                {
                    "product_id": line.product_id,
                    "name": line.name,
                    "quantity": line.quantity,
                    "unit_price": f"{line.unit_price:.2f}",
                    "image_url": line.image_url,
                }
                for line in self._lines
            ],
            "totals": {
                "subtotal": f"{totals.subtotal:.2f}",
                "tax_amount": f"{totals.tax_amount:.2f}",
                "grand_total": f"{totals.grand_total:.2f}",
            },
            "order": {"id": self.order.id, "order_number": self.order.order_number} if self.order else None,
            "client_secret": self.intent.client_secret if self.intent else None,
            "bank_transfer": self.instructions.model_dump() if self.instructions else None,
            "gateway_configured": self.gateway_configured,
            "last_error": self.last_error,
        }
