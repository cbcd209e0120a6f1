"""
Taxonomie des erreurs du checkout.
Chaque erreur porte un message lisible (affiché tel quel par l'UI) et un code stable
utilisé par l'adaptateur HTTP pour choisir le statut de réponse.
"""
from typing import Optional


class CheckoutError(Exception):
    code = "checkout_error"

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code


class ValidationError(CheckoutError):
    """Entrée invalide, aucun effet de bord n'a eu lieu."""
    code = "validation_error"


class PersistenceError(CheckoutError):
    """Base indisponible ou écriture échouée (timeout inclus). Rejouable."""
    code = "persistence_error"


class GatewayError(CheckoutError):
    """Échec transitoire de la passerelle de paiement. Rejouable."""
    code = "gateway_error"


class NotConfigured(CheckoutError):
    """La passerelle n'est pas configurée pour ce déploiement (pas de clé Stripe)."""
    code = "gateway_not_configured"


class ActionRequired(CheckoutError):
    """Issue intermédiaire: le client doit compléter une action (3-D Secure, etc.)."""
    code = "requires_action"

    def __init__(self, message: str, client_secret: Optional[str] = None):
        super().__init__(message)
        self.client_secret = client_secret


class PaymentDeclined(CheckoutError):
    """Paiement refusé par la passerelle; la commande reste pending/unpaid."""
    code = "payment_declined"


class InvalidStateError(CheckoutError):
    """Opération appelée dans une étape où elle n'est pas permise."""
    code = "invalid_state"
