import os

os.environ.setdefault("DISABLE_FASTAPI_LIMITER_INIT_FOR_TESTS", "1")

import pytest
from decimal import Decimal
from typing import Generator
from fastapi.testclient import TestClient
from unittest.mock import MagicMock

from storefront import config
from storefront.app import app as fastapi_app
from storefront.checkout.errors import GatewayError, PersistenceError
from storefront.checkout.models import (
    CartLine,
    IntentConfirmation,
    IntentStatus,
    OrderRef,
    PaymentIntentRef,
)
from storefront.checkout.orchestrator import CheckoutOrchestrator
from storefront.checkout.registry import sessions
from storefront.orders.models import (
    ORDER_STATUS_RANK,
    PAYMENT_STATUS_RANK,
    OrderStatus,
    PaymentMethod,
    PaymentStatus,
    allowed_prior_statuses,
)
from storefront.payments import bank_transfer

# Marquage automatique selon le dossier
def pytest_collection_modifyitems(config, items):
    for item in items:
        nodeid = item.nodeid.replace("\\", "/")
        if "/tests/unit/" in nodeid or nodeid.startswith("tests/unit/"):
            item.add_marker(pytest.mark.unit)
        elif "/tests/integration/" in nodeid or nodeid.startswith("tests/integration/"):
            item.add_marker(pytest.mark.integration)


def _make_line(product_id="p1", price="25.00", quantity=1, name=None, stock=None) -> CartLine:
    return CartLine(
        product_id=product_id,
        unit_price=Decimal(price),
        quantity=quantity,
        name=name or f"Produit {product_id}",
        image_url=f"https://cdn.example.test/{product_id}.png",
        available_stock=stock,
    )


DETAILS = {
    "first_name": "Ada",
    "last_name": "Lovelace",
    "email": "ada@example.com",
    "address": "12 Analytical Street, London",
    "phone": "+44 20 0000 0000",
    "notes": "Laisser chez le voisin",
}


class FakeOrderStore:
    """Store en mémoire: numéros croissants, règle monotone identique à l'update conditionnel."""

    def __init__(self):
        self.orders = {}
        self.lines = {}
        self.fail_on = set()
        self.calls = []
        self._next_number = 1000

    def _maybe_fail(self, op):
        self.calls.append(op)
        if op in self.fail_on:
            raise PersistenceError(f"{op} indisponible")

    def create_order(self, customer_id, grand_total, payment_method, customer_name="", notes=""):
        self._maybe_fail("create_order")
        self._next_number += 1
        order_id = f"order-{self._next_number}"
        self.orders[order_id] = {
            "id": order_id,
            "order_number": self._next_number,
            "customer_id": customer_id,
            "customer_name": customer_name,
            "notes": notes,
            "amount": grand_total,
            "payment_method": PaymentMethod(payment_method).value,
            "status": OrderStatus.PENDING.value,
            "payment_status": PaymentStatus.UNPAID.value,
            "transaction_id": None,
            "payment_intent_id": None,
            "payment_reference": None,
        }
        return OrderRef(id=order_id, order_number=self._next_number)

    def create_order_lines(self, order_id, lines):
        self._maybe_fail("create_order_lines")
        self.lines[order_id] = list(lines)
        return len(lines)

    def update_order_status(self, order_id, status, payment_status, transaction_id=None, payment_intent_id=None, payment_reference=None):
        self._maybe_fail("update_order_status")
        row = self.orders[order_id]
        status = OrderStatus(status)
        payment_status = PaymentStatus(payment_status)
        if not (
            row["status"] in allowed_prior_statuses(status, ORDER_STATUS_RANK)
            and row["payment_status"] in allowed_prior_statuses(payment_status, PAYMENT_STATUS_RANK)
        ):
            return False
        row["status"] = status.value
        row["payment_status"] = payment_status.value
        for key, value in (
            ("transaction_id", transaction_id),
            ("payment_intent_id", payment_intent_id),
            ("payment_reference", payment_reference),
        ):
            if value:
                row[key] = value
        return True

    def get_order(self, order_id):
        row = self.orders.get(order_id)
        if row is None:
            return None
        return {**row, "amount": f"{row['amount']:.2f}", "items": [
            {"product_id": line.product_id, "quantity": line.quantity, "price": f"{line.unit_price:.2f}"}
            for line in self.lines.get(order_id, [])
        ]}


class FakeCustomers:
    def __init__(self):
        self.fail = False
        self.calls = []

    def resolve_or_create(self, details, existing_customer_id=None):
        self.calls.append((details.email, existing_customer_id))
        if self.fail:
            raise PersistenceError("Recherche client impossible")
        return existing_customer_id or "cust-guest-1"


class FakeGateway:
    """Passerelle scriptée: create_error / confirm_error sont levées une seule fois."""

    def __init__(self):
        self.create_calls = []
        self.confirm_calls = []
        self.create_error = None
        self.confirm_error = None
        self.confirm_status = IntentStatus.SUCCEEDED

    def create_intent(self, amount, order_id, customer_email=None, order_number=None):
        self.create_calls.append({"amount": amount, "order_id": order_id, "email": customer_email})
        if self.create_error is not None:
            err, self.create_error = self.create_error, None
            raise err
        return PaymentIntentRef(intent_id=f"pi_{order_id}", client_secret=f"pi_{order_id}_secret")

    def confirm_intent(self, intent_id):
        self.confirm_calls.append(intent_id)
        if self.confirm_error is not None:
            err, self.confirm_error = self.confirm_error, None
            raise err
        return IntentConfirmation(
            status=self.confirm_status,
            transaction_id=f"ch_{intent_id}",
            raw_status=self.confirm_status.value,
        )


@pytest.fixture(autouse=True)
def _bank_details(monkeypatch):
    monkeypatch.setattr(config, "BANK_NAME", "Test Bank")
    monkeypatch.setattr(config, "BANK_ACCOUNT_NAME", "Storefront Ltd")
    monkeypatch.setattr(config, "BANK_ACCOUNT_NUMBER", "12345678")
    monkeypatch.setattr(config, "BANK_SORT_CODE", "12-34-56")
    monkeypatch.setattr(config, "BANK_IBAN", "")
    monkeypatch.setattr(config, "BANK_REFERENCE_PREFIX", "ORD")

@pytest.fixture(autouse=True)
def _no_real_supabase(monkeypatch):
    """Aucun test ne doit joindre Supabase: les clients sont des MagicMock."""
    monkeypatch.setattr("storefront.infra.supabase_client.get_supabase", lambda: MagicMock())
    monkeypatch.setattr("storefront.infra.supabase_client.get_service_supabase", lambda: MagicMock())

@pytest.fixture
def make_line():
    return _make_line

@pytest.fixture
def details():
    return dict(DETAILS)

@pytest.fixture
def order_store():
    return FakeOrderStore()

@pytest.fixture
def customers():
    return FakeCustomers()

@pytest.fixture
def gateway():
    return FakeGateway()

@pytest.fixture
def orchestrator(order_store, customers, gateway):
    return CheckoutOrchestrator(orders=order_store, customers=customers, gateway=gateway, bank=bank_transfer)

@pytest.fixture(scope="session")
def app():
    return fastapi_app

@pytest.fixture()
def client(app) -> Generator[TestClient, None, None]:
    sessions.clear()
    with TestClient(app) as c:
        yield c
    sessions.clear()
