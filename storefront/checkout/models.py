"""
Objets valeur du checkout (pydantic).
- CartLine: instantané immuable d'un article du panier (prix figé à l'ajout)
- CustomerDetails: coordonnées saisies à l'étape "details"
- Totals / compute_totals: sous-total, taxe, total TTC (toujours recalculés)
- PaymentIntentRef, IntentConfirmation: retours de la passerelle
- BankTransferInstructions: coordonnées bancaires + référence de paiement
- OrderRef: identifiant et numéro attribués par la base
"""
from decimal import Decimal, ROUND_HALF_UP
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator, model_validator

CENT = Decimal("0.01")


def to_money(value) -> Decimal:
    """Arrondit au centime (demi vers le haut)."""
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


class CheckoutStep(str, Enum):
    DETAILS = "details"
    PAYMENT = "payment"
    COMPLETE = "complete"


class CartLine(BaseModel):
    model_config = ConfigDict(frozen=True)

    product_id: str = Field(min_length=1)
    unit_price: Decimal = Field(ge=0)
    quantity: int = Field(ge=1)
    name: str
    image_url: Optional[str] = None
    available_stock: Optional[int] = None

    @field_validator("unit_price")
    @classmethod
    def _round_price(cls, v: Decimal) -> Decimal:
        return to_money(v)

    @model_validator(mode="after")
    def _check_stock(self):
        if self.available_stock is not None and self.quantity > self.available_stock:
            raise ValueError(f"Stock insuffisant pour {self.name} ({self.available_stock} disponible(s))")
        return self

    @property
    def line_total(self) -> Decimal:
        return to_money(self.unit_price * self.quantity)


class CustomerDetails(BaseModel):
    first_name: str
    last_name: str
    email: EmailStr
    address: str
    phone: Optional[str] = ""
    notes: Optional[str] = ""

    @field_validator("first_name", "last_name", "address", mode="before")
    @classmethod
    def _required(cls, v):
        if not isinstance(v, str) or not v.strip():
            raise ValueError("champ obligatoire")
        return v.strip()

    @field_validator("email", mode="before")
    @classmethod
    def _strip_email(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator("phone", "notes", mode="before")
    @classmethod
    def _optional(cls, v):
        return (v or "").strip()

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"


class Totals(BaseModel):
    model_config = ConfigDict(frozen=True)

    subtotal: Decimal
    tax_amount: Decimal
    grand_total: Decimal


def compute_totals(lines: List[CartLine], tax_enabled: bool, tax_rate: Decimal) -> Totals:
    """grand_total = subtotal + (tax_enabled ? subtotal × tax_rate / 100 : 0)"""
    subtotal = to_money(sum((line.line_total for line in lines), Decimal("0")))
    tax_amount = to_money(subtotal * Decimal(str(tax_rate)) / 100) if tax_enabled else to_money(0)
    return Totals(subtotal=subtotal, tax_amount=tax_amount, grand_total=subtotal + tax_amount)


class OrderRef(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    order_number: int


class PaymentIntentRef(BaseModel):
    model_config = ConfigDict(frozen=True)

    intent_id: str
    client_secret: str


class IntentStatus(str, Enum):
    SUCCEEDED = "succeeded"
    REQUIRES_ACTION = "requires_action"
    FAILED = "failed"


class IntentConfirmation(BaseModel):
    model_config = ConfigDict(frozen=True)

    status: IntentStatus
    transaction_id: Optional[str] = None
    raw_status: Optional[str] = None


class BankTransferInstructions(BaseModel):
    model_config = ConfigDict(frozen=True)

    bank_name: str
    account_name: str
    account_number: str
    sort_code: str
    iban: Optional[str] = None
    reference: str
