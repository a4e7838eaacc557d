from decimal import Decimal

import pytest

from bizdesk.exceptions import DataIntegrityError
from bizdesk.money import (
    CurrencyAmounts,
    FlowTotals,
    format_amount,
    from_cents,
    percentage_change,
    to_cents,
    to_decimal,
)


def test_to_decimal_accepts_numbers_and_strings():
    assert to_decimal(Decimal("1.25")) == Decimal("1.25")
    assert to_decimal(3) == Decimal("3")
    assert to_decimal(" 10.50 ") == Decimal("10.50")
    # Floats go through their shortest repr, not their binary expansion.
    assert to_decimal(0.1) == Decimal("0.1")


@pytest.mark.parametrize("value", ["abc", "", None, True, float("nan"), "Infinity"])
def test_to_decimal_rejects_non_numeric(value):
    with pytest.raises(DataIntegrityError):
        to_decimal(value)


def test_cents_conversions():
    assert to_cents("12.345") == 1235
    assert to_cents(Decimal("0.10")) == 10
    assert from_cents(1235) == Decimal("12.35")
    assert from_cents(-5) == Decimal("-0.05")

    with pytest.raises(DataIntegrityError):
        from_cents(1.5)


def test_percentage_change_without_previous_is_none():
    assert percentage_change(Decimal("500"), Decimal("0")) is None
    assert percentage_change(Decimal("0"), Decimal("0.00")) is None


def test_percentage_change():
    assert percentage_change(Decimal("150"), Decimal("100")) == Decimal("50")
    assert percentage_change(Decimal("50"), Decimal("100")) == Decimal("-50")
    assert percentage_change(Decimal("100"), Decimal("100")) == 0


def test_format_amount():
    assert format_amount(Decimal("1234.5")) == "1,234.50"
    assert format_amount(Decimal("-0.005")) == "-0.01"


def test_currency_amounts_and_flow_totals():
    amounts = CurrencyAmounts().plus("USD", Decimal("1.10")).plus("CUP", Decimal("3"))
    assert amounts.as_dict() == {"USD": Decimal("1.10"), "CUP": Decimal("3.00")}
    assert amounts.amount_for("CUP") == Decimal("3")

    with pytest.raises(ValueError):
        amounts.plus("EUR", Decimal("1"))

    totals = FlowTotals().add("income", "USD", Decimal("10")).add(
        "expense", "USD", Decimal("2.50")
    )
    assert totals.net.usd == Decimal("7.50")
    assert totals.net.cup == 0

    with pytest.raises(ValueError):
        totals.add("transfer", "USD", Decimal("1"))
