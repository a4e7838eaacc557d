# BizDesk - Finance, Warehouse & Inventory reporting for small businesses
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Money helpers for BizDesk.

All monetary values handled by the package are ``decimal.Decimal`` instances
with two decimal places. The store keeps them as signed integer cents (the
same convention as ``amount_cents`` columns), and every total is accumulated
with ``Decimal`` arithmetic so that sums reconcile exactly with manual
bookkeeping, however many small transactions are involved.

This module also holds the currency / transaction-type vocabularies and the
``CurrencyAmounts`` value object used by the balance and summary layers.
"""

from dataclasses import dataclass, field, replace
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Literal, Optional

from .exceptions import DataIntegrityError

Currency = Literal["USD", "CUP"]
TransactionType = Literal["income", "expense"]

CURRENCIES: tuple[str, ...] = ("USD", "CUP")
TRANSACTION_TYPES: tuple[str, ...] = ("income", "expense")

ZERO = Decimal("0.00")
CENT = Decimal("0.01")
HUNDRED = Decimal(100)


def to_decimal(value: object) -> Decimal:
    """
    Convert a raw amount into a ``Decimal``.

    Floats go through ``str()`` so that ``0.1`` becomes ``Decimal("0.1")``
    rather than its binary expansion.

    Raises
    ------
    DataIntegrityError
        If the value is not numeric, is a boolean, or is NaN / infinite.
    """
    if isinstance(value, bool):
        raise DataIntegrityError(f"Invalid amount: {value!r} is not a number.")

    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, (int, float)):
        result = Decimal(str(value))
    elif isinstance(value, str):
        try:
            result = Decimal(value.strip())
        except InvalidOperation as exc:
            raise DataIntegrityError(
                f"Invalid amount: {value!r} is not a number."
            ) from exc
    else:
        raise DataIntegrityError(f"Invalid amount: {value!r} is not a number.")

    if not result.is_finite():
        raise DataIntegrityError(f"Invalid amount: {value!r} is not finite.")
    return result


def quantize(value: Decimal) -> Decimal:
    """Round a Decimal to cents (half-up)."""
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def to_cents(value: object) -> int:
    """Convert a raw amount to integer cents."""
    return int(quantize(to_decimal(value)).scaleb(2))


def from_cents(cents: int) -> Decimal:
    """Convert integer cents read from the store back to a Decimal amount."""
    if isinstance(cents, bool) or not isinstance(cents, int):
        raise DataIntegrityError(f"Invalid stored amount: {cents!r}")
    return Decimal(cents).scaleb(-2)


def percentage_change(current: Decimal, previous: Decimal) -> Optional[Decimal]:
    """
    Relative change from ``previous`` to ``current``, in percent.

    Returns None when ``previous`` is exactly zero: there is no prior-period
    data to compare against, which is not the same thing as a 0% change.
    """
    if previous == 0:
        return None
    return (current - previous) / previous * HUNDRED


def format_amount(value: Decimal) -> str:
    """Format an amount with thousands separators and two decimals (1,234.50)."""
    return f"{quantize(Decimal(value)):,.2f}"


def is_known_currency(value: Optional[str]) -> bool:
    return value in CURRENCIES


def is_known_type(value: Optional[str]) -> bool:
    return value in TRANSACTION_TYPES


@dataclass(frozen=True)
class CurrencyAmounts:
    """One amount per supported currency."""

    usd: Decimal = ZERO
    cup: Decimal = ZERO

    def amount_for(self, currency: str) -> Decimal:
        if currency == "USD":
            return self.usd
        if currency == "CUP":
            return self.cup
        raise ValueError(f"Unsupported currency: {currency!r}")

    def plus(self, currency: str, amount: Decimal) -> "CurrencyAmounts":
        """Return a copy with ``amount`` added to the given currency."""
        if currency == "USD":
            return replace(self, usd=self.usd + amount)
        if currency == "CUP":
            return replace(self, cup=self.cup + amount)
        raise ValueError(f"Unsupported currency: {currency!r}")

    def minus(self, other: "CurrencyAmounts") -> "CurrencyAmounts":
        return CurrencyAmounts(usd=self.usd - other.usd, cup=self.cup - other.cup)

    def as_dict(self) -> dict[str, Decimal]:
        return {"USD": self.usd, "CUP": self.cup}


@dataclass(frozen=True)
class FlowTotals:
    """Income and expense totals, per currency."""

    income: CurrencyAmounts = field(default_factory=CurrencyAmounts)
    expense: CurrencyAmounts = field(default_factory=CurrencyAmounts)

    @property
    def net(self) -> CurrencyAmounts:
        """Income minus expense, per currency."""
        return self.income.minus(self.expense)

    def add(self, type_: str, currency: str, amount: Decimal) -> "FlowTotals":
        """Return a copy with ``amount`` added to the (type, currency) bucket."""
        if type_ == "income":
            return replace(self, income=self.income.plus(currency, amount))
        if type_ == "expense":
            return replace(self, expense=self.expense.plus(currency, amount))
        raise ValueError(f"Unsupported transaction type: {type_!r}")
