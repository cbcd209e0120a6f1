"""
Module 'payments': point d'entrée public.
Réunit l'adaptateur Stripe (PaymentIntents) et le générateur d'instructions de virement.
"""

from .stripe_client import require_stripe, is_configured, create_intent, confirm_intent, to_minor_units
from .bank_transfer import generate_instructions, payment_reference

__all__ = [
    # stripe
    "require_stripe",
    "is_configured",
    "create_intent",
    "confirm_intent",
    "to_minor_units",
    # virement
    "generate_instructions",
    "payment_reference",
]
