from decimal import Decimal

import pytest
from pydantic import ValidationError as PydanticValidationError

from storefront.checkout.models import CustomerDetails, compute_totals, to_money


def test_totals_without_tax(make_line):
    totals = compute_totals([make_line("p1", "25.00", 1)], tax_enabled=False, tax_rate=Decimal("20"))
    assert totals.subtotal == Decimal("25.00")
    assert totals.tax_amount == Decimal("0.00")
    assert totals.grand_total == Decimal("25.00")

def test_totals_with_twenty_percent_tax(make_line):
    lines = [make_line("p1", "10.00", 2), make_line("p2", "5.00", 2)]
    totals = compute_totals(lines, tax_enabled=True, tax_rate=Decimal("20"))
    assert totals.subtotal == Decimal("30.00")
    assert totals.tax_amount == Decimal("6.00")
    assert totals.grand_total == Decimal("36.00")

def test_tax_rate_ignored_when_disabled(make_line):
    totals = compute_totals([make_line("p1", "30.00", 1)], tax_enabled=False, tax_rate=Decimal("20"))
    assert totals.grand_total == Decimal("30.00")

def test_tax_rounds_half_up_to_the_penny(make_line):
    # 0.05 * 10% = 0.005 -> 0.01
    totals = compute_totals([make_line("p1", "0.05", 1)], tax_enabled=True, tax_rate=Decimal("10"))
    assert totals.tax_amount == Decimal("0.01")
    assert totals.grand_total == Decimal("0.06")

def test_to_money_rounds_half_up():
    assert to_money("2.345") == Decimal("2.35")
    assert to_money(3) == Decimal("3.00")

def test_cart_line_rejects_quantity_above_stock(make_line):
    with pytest.raises(PydanticValidationError):
        make_line("p1", "10.00", quantity=3, stock=2)

def test_cart_line_rejects_zero_quantity(make_line):
    with pytest.raises(PydanticValidationError):
        make_line("p1", "10.00", quantity=0)

def test_cart_line_is_immutable(make_line):
    line = make_line("p1", "10.00", 1)
    with pytest.raises(PydanticValidationError):
        line.unit_price = Decimal("1.00")

def test_customer_details_trims_fields(details):
    parsed = CustomerDetails.model_validate({**details, "first_name": "  Ada  ", "email": " ada@example.com "})
    assert parsed.first_name == "Ada"
    assert parsed.email == "ada@example.com"
    assert parsed.full_name == "Ada Lovelace"

@pytest.mark.parametrize("field", ["first_name", "last_name", "address"])
def test_customer_details_requires_non_blank(details, field):
    with pytest.raises(PydanticValidationError):
        CustomerDetails.model_validate({**details, field: "   "})

def test_customer_details_rejects_bad_email(details):
    with pytest.raises(PydanticValidationError):
        CustomerDetails.model_validate({**details, "email": "not-an-email"})
