# BizDesk - Finance, Warehouse & Inventory reporting for small businesses
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Tabular views for BizDesk.

This module converts summaries and report tables into pandas DataFrames
for chart and export consumers. Monetary values are kept as ``Decimal``
everywhere else in the package; they are converted to float only here, at
the presentation edge.
"""

import pandas as pd

from .aggregations import DistributionEntry
from .money import CURRENCIES, FlowTotals
from .periods import MONTH_NAMES
from .reports import TableSection

YEARLY_COLUMNS = [
    "month",
    "month_name",
    "income_usd",
    "income_cup",
    "expense_usd",
    "expense_cup",
    "net_usd",
    "net_cup",
]


def yearly_summary_to_dataframe(summary: dict[int, FlowTotals]) -> pd.DataFrame:
    """
    Convert a yearly summary (month -> FlowTotals) into a DataFrame.

    The resulting DataFrame has one row per month, sorted by month, with
    the following columns:
        - month:       Month number (1-12).
        - month_name:  English month name.
        - income_usd, income_cup, expense_usd, expense_cup:
                       Sums of the month, as floats.
        - net_usd, net_cup:
                       Income minus expense, as floats.
    """
    if not summary:
        return pd.DataFrame(columns=YEARLY_COLUMNS)

    rows: list[dict[str, object]] = []
    for month in sorted(summary):
        totals = summary[month]
        net = totals.net
        rows.append(
            {
                "month": month,
                "month_name": MONTH_NAMES[month - 1],
                "income_usd": float(totals.income.usd),
                "income_cup": float(totals.income.cup),
                "expense_usd": float(totals.expense.usd),
                "expense_cup": float(totals.expense.cup),
                "net_usd": float(net.usd),
                "net_cup": float(net.cup),
            }
        )

    return pd.DataFrame(rows, columns=YEARLY_COLUMNS)


def distribution_to_dataframe(entries: list[DistributionEntry]) -> pd.DataFrame:
    """
    Convert distribution entries into a DataFrame with the columns
    name, value, type and currency.

    Rows are sorted by type, then currency (USD before CUP), then value
    descending; ties keep the input order.
    """
    columns = ["name", "value", "type", "currency"]
    if not entries:
        return pd.DataFrame(columns=columns)

    df = pd.DataFrame(
        [
            {
                "name": e.name,
                "value": float(e.value),
                "type": e.type,
                "currency": e.currency,
            }
            for e in entries
        ],
        columns=columns,
    )

    currency_order = {c: i for i, c in enumerate(CURRENCIES)}
    df["__currency_order__"] = df["currency"].map(lambda c: currency_order.get(c, 99))
    df = df.sort_values(
        ["type", "__currency_order__", "value"],
        ascending=[True, True, False],
        kind="stable",
    ).drop(columns=["__currency_order__"])

    return df.reset_index(drop=True)


def table_section_to_dataframe(section: TableSection) -> pd.DataFrame:
    """Convert a report table section into a DataFrame (one column per header)."""
    return pd.DataFrame(
        [list(row) for row in section.rows],
        columns=list(section.headers),
    )
