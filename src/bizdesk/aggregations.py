# BizDesk - Finance, Warehouse & Inventory reporting for small businesses
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Distribution and summary aggregations for BizDesk.

This module turns flat, already-fetched lists of transactions or warehouse
movements into grouped summaries for charts, tables and reports. Every
function here is pure: no store access, no clock.

Ordering rule for rankings
--------------------------
Rankings ("top N") are strictly descending on the ranked numeric field.
Ties keep the order in which the records were fetched (stable sort); no
secondary key is applied.
"""

from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, field
from decimal import Decimal
from typing import TypeVar

from .db import Movement, Transaction
from .money import ZERO, CurrencyAmounts, FlowTotals, to_decimal

T = TypeVar("T")


@dataclass(frozen=True)
class DistributionEntry:
    """
    Summed amount of one (type, category, currency) group.

    ``name`` is the category.
    """

    name: str
    value: Decimal
    type: str
    currency: str


@dataclass(frozen=True)
class FlowSummary:
    """Per-currency total of one flow, and its breakdown by category."""

    totals: CurrencyAmounts = field(default_factory=CurrencyAmounts)
    by_category: dict[str, CurrencyAmounts] = field(default_factory=dict)


@dataclass(frozen=True)
class CategorySummary:
    income: FlowSummary
    expense: FlowSummary


@dataclass(frozen=True)
class ProductFlow:
    """Units entered and exited for one product."""

    name: str
    entries: int = 0
    exits: int = 0

    @property
    def net(self) -> int:
        return self.entries - self.exits

    @property
    def activity(self) -> int:
        return self.entries + self.exits


# ---------------------------------------------------------------------------
# Rankings
# ---------------------------------------------------------------------------


def top_n(records: Iterable[T], key: Callable[[T], object], n: int) -> list[T]:
    """
    Return the ``n`` records with the highest ``key``, highest first.

    Records with equal keys keep their input order.
    """
    if n < 0:
        raise ValueError("n must be a non-negative integer.")
    # sorted(reverse=True) preserves the input order of equal keys.
    return sorted(records, key=key, reverse=True)[:n]


# ---------------------------------------------------------------------------
# Transactions
# ---------------------------------------------------------------------------


def bucket_by_month(transactions: Iterable[Transaction]) -> dict[int, FlowTotals]:
    """
    Bucket transactions by calendar month (1-12).

    All twelve months are present in the result, including months without
    any transaction. The caller is responsible for passing transactions of
    a single year.
    """
    months: dict[int, FlowTotals] = {month: FlowTotals() for month in range(1, 13)}
    for t in transactions:
        month = t.date.month
        months[month] = months[month].add(t.type, t.currency, to_decimal(t.amount))
    return months


def group_distribution(transactions: Iterable[Transaction]) -> list[DistributionEntry]:
    """
    Group transactions by (type, category, currency) and sum their amounts.

    Returns one entry per non-empty group, in order of first appearance.
    No two entries share the same (type, category, currency).
    """
    sums: dict[tuple[str, str, str], Decimal] = {}
    for t in transactions:
        key = (t.type, t.category, t.currency)
        sums[key] = sums.get(key, ZERO) + to_decimal(t.amount)

    return [
        DistributionEntry(name=category, value=value, type=type_, currency=currency)
        for (type_, category, currency), value in sums.items()
    ]


def summarize_by_category(transactions: Iterable[Transaction]) -> CategorySummary:
    """
    Totals per flow and currency, with a per-category breakdown.

    Categories appear in ``by_category`` in order of first appearance.
    """
    totals = FlowTotals()
    by_category: dict[str, dict[str, CurrencyAmounts]] = {
        "income": {},
        "expense": {},
    }

    for t in transactions:
        amount = to_decimal(t.amount)
        totals = totals.add(t.type, t.currency, amount)
        flow = by_category[t.type]
        flow[t.category] = flow.get(t.category, CurrencyAmounts()).plus(
            t.currency, amount
        )

    return CategorySummary(
        income=FlowSummary(totals=totals.income, by_category=by_category["income"]),
        expense=FlowSummary(totals=totals.expense, by_category=by_category["expense"]),
    )


def totals_by_category(
    transactions: Iterable[Transaction], type_: str, currency: str
) -> list[tuple[str, Decimal]]:
    """
    Sum the amounts of one (type, currency) per category, in order of first
    appearance.
    """
    sums: dict[str, Decimal] = {}
    for t in transactions:
        if t.type == type_ and t.currency == currency:
            sums[t.category] = sums.get(t.category, ZERO) + to_decimal(t.amount)
    return list(sums.items())


# ---------------------------------------------------------------------------
# Warehouse movements
# ---------------------------------------------------------------------------


def product_flows(
    movements: Iterable[Movement], unknown_name: str = "Unknown"
) -> list[ProductFlow]:
    """
    Aggregate movements per product name.

    Movements whose product no longer exists are grouped under
    ``unknown_name``. The result is sorted by total activity
    (entries + exits), highest first; ties keep first-appearance order.
    """
    entries: dict[str, int] = {}
    exits: dict[str, int] = {}
    names: list[str] = []

    for m in movements:
        name = m.product_name or unknown_name
        if name not in entries:
            names.append(name)
            entries[name] = 0
            exits[name] = 0
        if m.type == "in":
            entries[name] += m.qty
        else:
            exits[name] += m.qty

    flows = [ProductFlow(name=n, entries=entries[n], exits=exits[n]) for n in names]
    return top_n(flows, key=lambda f: f.activity, n=len(flows))


def count_by_key(items: Sequence[T], key: Callable[[T], str]) -> dict[str, int]:
    """Count items per key, in order of first appearance."""
    counts: dict[str, int] = {}
    for item in items:
        k = key(item)
        counts[k] = counts.get(k, 0) + 1
    return counts
