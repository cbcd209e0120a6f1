"""
Instructions de virement bancaire.
Les coordonnées viennent de la configuration boutique; seule la référence dépend de la
commande (<préfixe>-<numéro de commande>), ce qui permet de la régénérer à l'identique.
"""
from storefront import config
from storefront.checkout.models import BankTransferInstructions

def payment_reference(order_number: int) -> str:
    prefix = config.BANK_REFERENCE_PREFIX or "ORD"
    return f"{prefix}-{order_number}"

def generate_instructions(order_number: int) -> BankTransferInstructions:
    return BankTransferInstructions(
        bank_name=config.BANK_NAME,
        account_name=config.BANK_ACCOUNT_NAME,
        account_number=config.BANK_ACCOUNT_NUMBER,
        sort_code=config.BANK_SORT_CODE,
        iban=config.BANK_IBAN or None,
        reference=payment_reference(order_number),
    )
