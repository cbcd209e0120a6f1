"""
Vocabulaire des statuts de commande et règle de transition monotone.

Statut commande:   pending < confirmed
Statut paiement:   unpaid < (pending | processing | awaiting_transfer) < (paid | failed)

Une transition est acceptée si le nouveau statut a un rang strictement supérieur,
ou s'il est identique au statut courant (réécriture idempotente).
"""
from enum import Enum
from typing import Dict, List


class OrderStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"


class PaymentStatus(str, Enum):
    UNPAID = "unpaid"
    PENDING = "pending"
    PROCESSING = "processing"
    AWAITING_TRANSFER = "awaiting_transfer"
    PAID = "paid"
    FAILED = "failed"


class PaymentMethod(str, Enum):
    CARD = "card"
    BANK_TRANSFER = "bank_transfer"


ORDER_STATUS_RANK: Dict[OrderStatus, int] = {
    OrderStatus.PENDING: 0,
    OrderStatus.CONFIRMED: 1,
}

PAYMENT_STATUS_RANK: Dict[PaymentStatus, int] = {
    PaymentStatus.UNPAID: 0,
    PaymentStatus.PENDING: 1,
    PaymentStatus.PROCESSING: 1,
    PaymentStatus.AWAITING_TRANSFER: 1,
    PaymentStatus.PAID: 2,
    PaymentStatus.FAILED: 2,
}


def allowed_prior_statuses(target: Enum, ranks: Dict) -> List[str]:
    """
    Statuts à partir desquels `target` peut être écrit.
    Sert de filtre in_() pour l'update conditionnel côté base.
    """
    rank = ranks[target]
    return [s.value for s, r in ranks.items() if r < rank or s == target]

