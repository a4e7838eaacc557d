# BizDesk - Finance, Warehouse & Inventory reporting for small businesses
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Narrative report generator for BizDesk.

This module turns already-fetched records (transactions, warehouse
movements, inventory area summaries) into a structured Report document:
a title, an ordered metadata block and an ordered list of sections.

Section kinds
-------------
- ParagraphSection  : a titled block of prose.
- TableSection      : headers, rows of cell strings and optional notes.
- ListSection       : bullet items and optional notes.
- HeaderSection     : a title-only divider, used by the global report.

``report_to_dict`` serializes a Report to the plain structure consumed by
the document exporters:

    {
        "title": str,
        "metadata": [{"label": str, "value": str}, ...],
        "sections": [
            {"type": "paragraph", "title": str, "content": str},
            {"type": "table", "title": str, "headers": [...], "rows": [[...]],
             "notes": str (optional)},
            {"type": "list", "title": str, "items": [...], "notes": str (optional)},
            {"type": "header_section", "title": str},
        ],
    }

Generators are pure functions: they perform no I/O and never raise on
empty input. An empty period yields "no activity" wording and tables with
a single "No data" row.
"""

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Optional, Union

from .aggregations import product_flows, top_n, totals_by_category
from .balance import compute_totals
from .config import ReportOptions
from .db import InventoryAreaSummary, Movement, Transaction
from .money import CURRENCIES, HUNDRED, ZERO, format_amount, to_decimal
from .periods import Period, resolve_today

NO_DATA = "No data"
UNSPECIFIED_PERIOD = "Unspecified period"

# ---------------------------------------------------------------------------
# Document model
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ParagraphSection:
    title: str
    content: str


@dataclass(frozen=True)
class TableSection:
    title: str
    headers: tuple[str, ...]
    rows: tuple[tuple[str, ...], ...]
    notes: Optional[str] = None


@dataclass(frozen=True)
class ListSection:
    title: str
    items: tuple[str, ...]
    notes: Optional[str] = None


@dataclass(frozen=True)
class HeaderSection:
    """Title-only divider section."""

    title: str


Section = Union[ParagraphSection, TableSection, ListSection, HeaderSection]


@dataclass(frozen=True)
class MetadataItem:
    label: str
    value: str


@dataclass(frozen=True)
class Report:
    """A generated report: title, ordered metadata and ordered sections."""

    title: str
    metadata: tuple[MetadataItem, ...]
    sections: tuple[Section, ...]


def section_to_dict(section: Section) -> dict[str, Any]:
    """
    Serialize one section.

    Raises
    ------
    TypeError
        If ``section`` is not one of the supported section classes.
    """
    if isinstance(section, ParagraphSection):
        return {"type": "paragraph", "title": section.title, "content": section.content}
    if isinstance(section, TableSection):
        data: dict[str, Any] = {
            "type": "table",
            "title": section.title,
            "headers": list(section.headers),
            "rows": [list(row) for row in section.rows],
        }
        if section.notes:
            data["notes"] = section.notes
        return data
    if isinstance(section, ListSection):
        data = {"type": "list", "title": section.title, "items": list(section.items)}
        if section.notes:
            data["notes"] = section.notes
        return data
    if isinstance(section, HeaderSection):
        return {"type": "header_section", "title": section.title}
    raise TypeError(f"Unsupported report section: {section!r}")


def report_to_dict(report: Report) -> dict[str, Any]:
    """Serialize a Report to the plain structure consumed by exporters."""
    return {
        "title": report.title,
        "metadata": [{"label": m.label, "value": m.value} for m in report.metadata],
        "sections": [section_to_dict(s) for s in report.sections],
    }


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _period_label(period: Optional[Period]) -> str:
    return period.label if period is not None else UNSPECIFIED_PERIOD


def _issue_date(issued_on: Optional[date]) -> str:
    return resolve_today(issued_on).strftime("%d/%m/%Y")


def _no_data_row(headers: Sequence[str]) -> tuple[str, ...]:
    return (NO_DATA,) + ("-",) * (len(headers) - 1)


def _is_cash(transaction: Transaction, options: ReportOptions) -> bool:
    method = transaction.details.payment_method
    return not method or method.strip().lower() in options.cash_payment_methods


def _whole_percent(value: Decimal) -> Decimal:
    return value.quantize(Decimal(1), rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class _CurrencyFigures:
    """Finance figures of one currency, used by several sections."""

    currency: str
    income: Decimal
    expense: Decimal
    cash_expense: Decimal

    @property
    def net(self) -> Decimal:
        return self.income - self.expense

    @property
    def cash_percent(self) -> Decimal:
        if self.expense == 0:
            return ZERO
        return _whole_percent(self.cash_expense / self.expense * HUNDRED)


def _currency_figures(
    transactions: Sequence[Transaction], options: ReportOptions
) -> list[_CurrencyFigures]:
    """Figures per currency present in the data, in canonical currency order."""
    totals = compute_totals(transactions)
    present = {t.currency for t in transactions}

    figures = []
    for currency in CURRENCIES:
        if currency not in present:
            continue
        cash_expense = sum(
            (
                to_decimal(t.amount)
                for t in transactions
                if t.type == "expense" and t.currency == currency and _is_cash(t, options)
            ),
            ZERO,
        )
        figures.append(
            _CurrencyFigures(
                currency=currency,
                income=totals.income.amount_for(currency),
                expense=totals.expense.amount_for(currency),
                cash_expense=cash_expense,
            )
        )
    return figures


# ---------------------------------------------------------------------------
# Finance report
# ---------------------------------------------------------------------------


def _finance_metadata(
    figures: Sequence[_CurrencyFigures],
    period: Optional[Period],
    issued_on: Optional[date],
    options: ReportOptions,
) -> tuple[MetadataItem, ...]:
    currencies = " / ".join(f.currency for f in figures) or "-"
    return (
        MetadataItem("Period", _period_label(period)),
        MetadataItem("Issue date", _issue_date(issued_on)),
        MetadataItem("Reference currencies", currencies),
        MetadataItem("Report status", options.status_label),
    )


def _finance_summary(
    transactions: Sequence[Transaction], figures: Sequence[_CurrencyFigures]
) -> ParagraphSection:
    title = "1. General Summary of Operations"
    if not transactions:
        return ParagraphSection(
            title,
            "No financial activity was recorded in the period: there are no "
            "income or expense transactions to analyze.",
        )

    count = len(transactions)
    noun = "transaction was" if count == 1 else "transactions were"
    parts = [f"During the period, a total of {count} {noun} recorded."]
    for f in figures:
        outcome = "an operating surplus" if f.net >= 0 else "an operating deficit"
        parts.append(f"In {f.currency}, the period shows {outcome} of {format_amount(abs(f.net))}.")
    if any(f.currency == "USD" for f in figures):
        parts.append(
            "Foreign currency (USD) activity was recorded and requires attention "
            "for its valuation and settlement."
        )
    return ParagraphSection(title, " ".join(parts))


def _finance_results(figures: Sequence[_CurrencyFigures]) -> TableSection:
    title = "2. Partial Statement of Results"
    if not figures:
        headers = ("Item", "Amount")
        return TableSection(title, headers, (_no_data_row(headers),))

    headers = ("Item",) + tuple(f"Amount ({f.currency})" for f in figures)
    rows = (
        ("Total income",) + tuple(format_amount(f.income) for f in figures),
        ("Total expenses",) + tuple(format_amount(f.expense) for f in figures),
        ("Net result",) + tuple(format_amount(f.net) for f in figures),
    )
    notes = None
    if len(figures) > 1:
        notes = (
            "Results are shown per currency. Balances in different currencies "
            "should be consolidated for an overall analysis."
        )
    return TableSection(title, headers, rows, notes)


def _finance_income(
    transactions: Sequence[Transaction], figures: Sequence[_CurrencyFigures]
) -> ListSection:
    items = []
    for f in figures:
        if f.income <= 0:
            continue
        categories = totals_by_category(transactions, "income", f.currency)
        top_category, top_amount = top_n(categories, key=lambda c: c[1], n=1)[0]
        items.append(
            f"Income in {f.currency}: total of {format_amount(f.income)}. "
            f"Main source: {top_category} ({format_amount(top_amount)})."
        )
    if not items:
        items.append("No income was recorded in the period.")

    notes = None
    if any(f.currency == "USD" and f.income > 0 for f in figures):
        notes = "Foreign currency income represents liquid financial assets available."
    return ListSection("3. Income Analysis", tuple(items), notes)


def _finance_expenses(
    transactions: Sequence[Transaction], options: ReportOptions
) -> Optional[TableSection]:
    expenses = [t for t in transactions if t.type == "expense"]
    if not expenses:
        return None

    top = top_n(expenses, key=lambda t: to_decimal(t.amount), n=options.top_expenses)
    rows = tuple(
        (
            t.category or "Uncategorized",
            f"{format_amount(to_decimal(t.amount))} {t.currency}",
            t.details.payment_method or options.default_payment_method,
            t.description or "-",
        )
        for t in top
    )
    return TableSection(
        "4. Main Expenses Detail",
        ("Category", "Amount", "Payment method", "Remarks"),
        rows,
    )


def _finance_kpis(figures: Sequence[_CurrencyFigures]) -> TableSection:
    headers = ("Indicator", "Value")
    rows = []
    for f in figures:
        if f.income == 0 and f.expense == 0:
            continue
        if f.income > 0:
            ratio = f"{format_amount(f.expense / f.income)} : 1"
        else:
            ratio = "N/A"
        rows.append((f"Expense/Income ratio ({f.currency})", ratio))
        rows.append(
            (
                f"% of expenses paid in cash ({f.currency})",
                f"{f.cash_percent:.0f}% ({format_amount(f.cash_expense)} of "
                f"{format_amount(f.expense)})",
            )
        )
    if not rows:
        rows.append(_no_data_row(headers))
    return TableSection("5. Financial Management Indicators", headers, tuple(rows))


def _finance_conclusions(
    figures: Sequence[_CurrencyFigures], options: ReportOptions
) -> ListSection:
    main = figures[0]
    sign = "positive" if main.net >= 0 else "negative"
    cash_dependent = any(
        f.expense > 0 and f.cash_percent >= options.cash_dependency_threshold
        for f in figures
    )
    payments = (
        "High dependence on cash."
        if cash_dependent
        else "Adequate diversification of payment methods."
    )
    return ListSection(
        "6. Conclusions and Recommendations",
        (
            f"1. Financial position: the period closes with a {sign} net balance "
            f"in the main currency ({main.currency}).",
            "2. Expense management: monitor the categories with the highest "
            "weight in the budget.",
            f"3. Payment policy: {payments}",
        ),
    )


def generate_finance_report(
    transactions: Sequence[Transaction],
    period: Optional[Period] = None,
    *,
    issued_on: Optional[date] = None,
    options: Optional[ReportOptions] = None,
) -> Report:
    """
    Generate the financial analysis report of a period.

    Parameters
    ----------
    transactions:
        Transactions of the period, already fetched.
    period:
        Reporting period; only its label is used.
    issued_on:
        Issue date shown in the metadata. Defaults to today.
    options:
        Wording and thresholds (``[reports]`` configuration section).

    Returns
    -------
    Report
        Sections, in order: general summary, statement of results, income
        analysis, main expenses (omitted without expenses), indicators and
        conclusions. Without any transaction the report holds only the
        summary and the statement of results.
    """
    options = options or ReportOptions()
    figures = _currency_figures(transactions, options)

    sections: list[Section] = [
        _finance_summary(transactions, figures),
        _finance_results(figures),
    ]
    if figures:
        sections.append(_finance_income(transactions, figures))
        expenses = _finance_expenses(transactions, options)
        if expenses is not None:
            sections.append(expenses)
        sections.append(_finance_kpis(figures))
        sections.append(_finance_conclusions(figures, options))

    return Report(
        title="Financial Analysis Report",
        metadata=_finance_metadata(figures, period, issued_on, options),
        sections=tuple(sections),
    )


# ---------------------------------------------------------------------------
# Warehouse report
# ---------------------------------------------------------------------------


def generate_warehouse_report(
    movements: Sequence[Movement],
    period: Optional[Period] = None,
    *,
    issued_on: Optional[date] = None,
    options: Optional[ReportOptions] = None,
) -> Report:
    """
    Generate the warehouse management report of a period.

    Sections: operational summary (entry and exit counts), product flow
    table (top products by activity, entries + exits) and conclusions
    (stock trend and most active product).
    """
    options = options or ReportOptions()

    ins = sum(1 for m in movements if m.type == "in")
    outs = sum(1 for m in movements if m.type == "out")

    if movements:
        summary = (
            f"During the period, {len(movements)} stock movements were recorded: "
            f"{ins} supply entries and {outs} exits for consumption or sale."
        )
    else:
        summary = "No stock movements were recorded in the period."

    headers = ("Product", "Entries", "Exits", "Period balance")
    all_flows = product_flows(movements)
    flows = all_flows[: options.top_products]
    rows = tuple(
        (f.name, str(f.entries), str(f.exits), str(f.net)) for f in flows
    ) or (_no_data_row(headers),)

    if not movements:
        conclusions: tuple[str, ...] = ("No stock trend can be established without movements.",)
    else:
        if ins > outs:
            trend = "Stock is accumulating (more entries than exits)."
        elif outs > ins:
            trend = "Stock is being depleted (more exits than entries)."
        else:
            trend = "Entries and exits are balanced."
        conclusions = (trend, f'The most active product was "{all_flows[0].name}".')

    return Report(
        title="Warehouse Management Report",
        metadata=(
            MetadataItem("Period", _period_label(period)),
            MetadataItem("Issue date", _issue_date(issued_on)),
            MetadataItem("Total movements", str(len(movements))),
        ),
        sections=(
            ParagraphSection("1. Warehouse Operations Summary", summary),
            TableSection(f"2. Product Flow (Top {options.top_products})", headers, rows),
            ListSection("3. Warehouse Conclusions", conclusions),
        ),
    )


# ---------------------------------------------------------------------------
# Inventory report
# ---------------------------------------------------------------------------


def generate_inventory_report(
    areas: Sequence[InventoryAreaSummary],
    period: Optional[Period] = None,
    *,
    issued_on: Optional[date] = None,
    options: Optional[ReportOptions] = None,
) -> Report:
    """
    Generate the inventory report: summary of areas and items, and the
    breakdown per area sorted by item count (highest first, ties in input
    order).
    """
    total_items = sum(a.items_count for a in areas)

    if areas:
        summary = (
            f"The inventory is distributed across {len(areas)} operational areas, "
            f"with a total of {total_items} items registered during the period."
        )
    else:
        summary = "No inventory areas are registered, so there is no inventory activity to report."

    headers = ("Area", "Registered items", "Icon ref.")
    ranked = top_n(areas, key=lambda a: a.items_count, n=len(areas))
    rows = tuple(
        (a.name, str(a.items_count), a.icon or "-") for a in ranked
    ) or (_no_data_row(headers),)

    return Report(
        title="Asset Inventory Report",
        metadata=(
            MetadataItem("Period", _period_label(period)),
            MetadataItem("Issue date", _issue_date(issued_on)),
            MetadataItem("Total assets/items", str(total_items)),
        ),
        sections=(
            ParagraphSection("1. Inventory Status by Area", summary),
            TableSection("2. Breakdown by Area", headers, rows),
        ),
    )


# ---------------------------------------------------------------------------
# Global report
# ---------------------------------------------------------------------------


def generate_global_report(
    transactions: Sequence[Transaction],
    movements: Sequence[Movement],
    areas: Sequence[InventoryAreaSummary],
    period: Optional[Period] = None,
    *,
    issued_on: Optional[date] = None,
    options: Optional[ReportOptions] = None,
) -> Report:
    """
    Combine the finance, warehouse and inventory reports into one document.

    Each module's sections follow a header-only divider. The metadata block
    is the finance report's.
    """
    kwargs = {"issued_on": issued_on, "options": options}
    finance = generate_finance_report(transactions, period, **kwargs)
    warehouse = generate_warehouse_report(movements, period, **kwargs)
    inventory = generate_inventory_report(areas, period, **kwargs)

    return Report(
        title="Integrated Global Executive Report",
        metadata=finance.metadata,
        sections=(
            HeaderSection("I. FINANCIAL MODULE"),
            *finance.sections,
            HeaderSection("II. WAREHOUSE MODULE"),
            *warehouse.sections,
            HeaderSection("III. INVENTORY"),
            *inventory.sections,
        ),
    )
