from decimal import Decimal

import pytest

from storefront.checkout.errors import InvalidStateError, PersistenceError
from storefront.checkout.models import CheckoutStep


def test_bank_transfer_of_25_pounds(orchestrator, order_store, gateway, make_line, details):
    session = orchestrator.start([make_line("p1", "25.00", 1)])
    orchestrator.proceed_to_payment(session, details, "bank_transfer")

    assert session.step == CheckoutStep.PAYMENT
    number = session.order.order_number
    assert session.instructions.reference == f"ORD-{number}"
    assert session.instructions.sort_code == "12-34-56"
    assert session.instructions.iban is None

    orchestrator.acknowledge_bank_transfer(session)

    assert session.step == CheckoutStep.COMPLETE
    order = order_store.orders[session.order.id]
    assert order["amount"] == Decimal("25.00")
    assert order["payment_method"] == "bank_transfer"
    assert order["status"] == "pending"
    assert order["payment_status"] == "awaiting_transfer"
    assert order["payment_reference"] == f"ORD-{number}"
    assert gateway.create_calls == [] and gateway.confirm_calls == []

def test_reference_prefix_comes_from_config(orchestrator, make_line, details, monkeypatch):
    from storefront import config
    monkeypatch.setattr(config, "BANK_REFERENCE_PREFIX", "SHOP")

    session = orchestrator.start([make_line()])
    orchestrator.proceed_to_payment(session, details, "bank_transfer")
    assert session.instructions.reference == f"SHOP-{session.order.order_number}"

def test_acknowledge_persistence_failure_keeps_payment_step(orchestrator, order_store, make_line, details):
    session = orchestrator.start([make_line()])
    orchestrator.proceed_to_payment(session, details, "bank_transfer")
    order_store.fail_on.add("update_order_status")

    with pytest.raises(PersistenceError):
        orchestrator.acknowledge_bank_transfer(session)
    assert session.step == CheckoutStep.PAYMENT

    order_store.fail_on.clear()
    orchestrator.acknowledge_bank_transfer(session)
    assert session.step == CheckoutStep.COMPLETE

def test_acknowledge_on_card_session_is_invalid(orchestrator, make_line, details):
    session = orchestrator.start([make_line()])
    orchestrator.proceed_to_payment(session, details, "card")

    with pytest.raises(InvalidStateError):
        orchestrator.acknowledge_bank_transfer(session)
    assert session.step == CheckoutStep.PAYMENT

def test_multi_line_bank_transfer_keeps_each_line(orchestrator, order_store, make_line, details):
    session = orchestrator.start([make_line("p1", "10.00", 2), make_line("p2", "5.00", 1)])
    assert session.totals.grand_total == Decimal("25.00")

    orchestrator.proceed_to_payment(session, details, "bank_transfer")
    orchestrator.acknowledge_bank_transfer(session)

    order_id = session.order.id
    assert order_store.orders[order_id]["amount"] == Decimal("25.00")
    assert [(l.product_id, l.quantity, l.unit_price) for l in order_store.lines[order_id]] == [
        ("p1", 2, Decimal("10.00")),
        ("p2", 1, Decimal("5.00")),
    ]

def test_multi_line_bank_transfer_with_20_percent_tax(orchestrator, order_store, make_line, details):
    session = orchestrator.start(
        [make_line("p1", "10.00", 2), make_line("p2", "5.00", 1)], tax_enabled=True, tax_rate=20
    )
    totals = session.totals
    assert (totals.subtotal, totals.tax_amount, totals.grand_total) == (
        Decimal("25.00"),
        Decimal("5.00"),
        Decimal("30.00"),
    )

    orchestrator.proceed_to_payment(session, details, "bank_transfer")

    order_id = session.order.id
    assert order_store.orders[order_id]["amount"] == Decimal("30.00")
    assert [(l.quantity, l.unit_price) for l in order_store.lines[order_id]] == [
        (2, Decimal("10.00")),
        (1, Decimal("5.00")),
    ]
