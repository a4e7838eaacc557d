import logging
from datetime import date, datetime
from decimal import Decimal

import pytest

from bizdesk import reporting
from bizdesk.config import ReportOptions
from bizdesk.db import (
    DatabaseConfig,
    InventoryAreaSummary,
    Movement,
    NewTransaction,
    Transaction,
    TransactionDetails,
    insert_movement,
    insert_product,
    insert_transaction,
)
from bizdesk.periods import period_month
from bizdesk.reporting import (
    build_finance_report,
    build_global_report,
    build_warehouse_report,
)
from bizdesk.reports import (
    HeaderSection,
    ListSection,
    MetadataItem,
    ParagraphSection,
    Report,
    TableSection,
    generate_finance_report,
    generate_global_report,
    generate_inventory_report,
    generate_warehouse_report,
    report_to_dict,
)

OCTOBER = period_month(2026, 10)
ISSUED = date(2026, 10, 17)


def make_tx(
    tx_id,
    amount,
    type_="income",
    currency="USD",
    category="Sales",
    payment_method=None,
    description=None,
) -> Transaction:
    return Transaction(
        id=tx_id,
        user_id="u1",
        date=datetime(2026, 10, tx_id),
        amount=Decimal(str(amount)),
        currency=currency,
        type=type_,
        category=category,
        description=description,
        details=TransactionDetails(payment_method=payment_method),
    )


def make_movement(mov_id, name, qty, type_) -> Movement:
    return Movement(
        id=mov_id,
        product_id=mov_id,
        user_id="u1",
        qty=qty,
        type=type_,
        created_at=datetime(2026, 10, 1),
        product_name=name,
    )


def section_titles(report: Report) -> list[str]:
    return [s.title for s in report.sections]


# ---------------------------------------------------------------------------
# Finance report
# ---------------------------------------------------------------------------


def test_finance_report_on_empty_input_is_well_formed():
    report = generate_finance_report([], OCTOBER, issued_on=ISSUED)

    assert report.title
    assert len(report.sections) == 2
    summary, results = report.sections
    assert isinstance(summary, ParagraphSection)
    assert "No financial activity" in summary.content
    assert isinstance(results, TableSection)
    assert results.rows == (("No data", "-"),)


def test_finance_report_without_period_uses_placeholder_label():
    report = generate_finance_report([], None, issued_on=ISSUED)

    assert report.metadata[0] == MetadataItem("Period", "Unspecified period")


def test_finance_report_sections_and_metadata():
    transactions = [
        make_tx(1, 100, category="Sales"),
        make_tx(2, 40, type_="expense", category="Rent", payment_method="transfer"),
        make_tx(3, 2000, currency="CUP", category="Services"),
        make_tx(4, 500, currency="CUP", category="Sales"),
        make_tx(5, 300, type_="expense", currency="CUP", category="Fuel"),
    ]

    report = generate_finance_report(transactions, OCTOBER, issued_on=ISSUED)

    assert section_titles(report) == [
        "1. General Summary of Operations",
        "2. Partial Statement of Results",
        "3. Income Analysis",
        "4. Main Expenses Detail",
        "5. Financial Management Indicators",
        "6. Conclusions and Recommendations",
    ]
    assert [(m.label, m.value) for m in report.metadata] == [
        ("Period", "October 2026"),
        ("Issue date", "17/10/2026"),
        ("Reference currencies", "USD / CUP"),
        ("Report status", ReportOptions().status_label),
    ]

    summary = report.sections[0].content
    assert "5 transactions" in summary
    assert "In USD, the period shows an operating surplus of 60.00." in summary
    assert "In CUP, the period shows an operating surplus of 2,200.00." in summary

    results = report.sections[1]
    assert results.headers == ("Item", "Amount (USD)", "Amount (CUP)")
    assert results.rows == (
        ("Total income", "100.00", "2,500.00"),
        ("Total expenses", "40.00", "300.00"),
        ("Net result", "60.00", "2,200.00"),
    )

    income = report.sections[2]
    assert isinstance(income, ListSection)
    assert income.items == (
        "Income in USD: total of 100.00. Main source: Sales (100.00).",
        "Income in CUP: total of 2,500.00. Main source: Services (2,000.00).",
    )


def test_finance_report_top_expenses_sorted_and_defaulted():
    transactions = [
        make_tx(1, 10, type_="expense", category="A"),
        make_tx(2, 30, type_="expense", category="B", payment_method="card"),
        make_tx(3, 30, type_="expense", category="C", description="second 30"),
        make_tx(4, 5, type_="expense", category="D"),
        make_tx(5, 50, type_="expense", category="E"),
        make_tx(6, 1, type_="expense", category="F"),
    ]

    report = generate_finance_report(transactions, OCTOBER, issued_on=ISSUED)
    expenses = report.sections[3]

    assert expenses.title == "4. Main Expenses Detail"
    assert [row[0] for row in expenses.rows] == ["E", "B", "C", "A", "D"]
    assert expenses.rows[1][2] == "card"
    assert expenses.rows[0][2] == "Cash"
    assert expenses.rows[2][3] == "second 30"
    assert expenses.rows[0][3] == "-"


def test_finance_report_without_income_or_expenses():
    only_expenses = generate_finance_report(
        [make_tx(1, 10, type_="expense")], OCTOBER, issued_on=ISSUED
    )
    only_income = generate_finance_report([make_tx(1, 10)], OCTOBER, issued_on=ISSUED)

    assert only_expenses.sections[2].items == ("No income was recorded in the period.",)
    assert "4. Main Expenses Detail" not in section_titles(only_income)
    assert len(only_income.sections) == 5


def test_finance_summary_wording_for_single_usd_transaction():
    usd_only = generate_finance_report([make_tx(1, 10)], OCTOBER, issued_on=ISSUED)
    cup_only = generate_finance_report(
        [make_tx(1, 10, currency="CUP")], OCTOBER, issued_on=ISSUED
    )

    summary = usd_only.sections[0].content
    assert "a total of 1 transaction was recorded." in summary
    assert "Foreign currency (USD) activity was recorded" in summary
    assert "Foreign currency" not in cup_only.sections[0].content


def test_finance_kpis_and_cash_dependence():
    transactions = [
        make_tx(1, 200),
        make_tx(2, 50, type_="expense"),
        make_tx(3, 50, type_="expense", payment_method="Efectivo"),
    ]

    report = generate_finance_report(transactions, OCTOBER, issued_on=ISSUED)
    kpis = report.sections[4]
    conclusions = report.sections[5]

    assert kpis.rows == (
        ("Expense/Income ratio (USD)", "0.50 : 1"),
        ("% of expenses paid in cash (USD)", "100% (100.00 of 100.00)"),
    )
    assert conclusions.items[0].startswith(
        "1. Financial position: the period closes with a positive net balance"
    )
    assert conclusions.items[2] == "3. Payment policy: High dependence on cash."


def test_finance_kpis_with_diversified_payments():
    transactions = [
        make_tx(1, 30, type_="expense", payment_method="card"),
        make_tx(2, 10, type_="expense"),
    ]

    report = generate_finance_report(transactions, OCTOBER, issued_on=ISSUED)
    kpis = report.sections[4]
    conclusions = report.sections[5]

    assert kpis.rows[0] == ("Expense/Income ratio (USD)", "N/A")
    assert kpis.rows[1] == ("% of expenses paid in cash (USD)", "25% (10.00 of 40.00)")
    assert "negative net balance" in conclusions.items[0]
    assert conclusions.items[2] == "3. Payment policy: Adequate diversification of payment methods."


def test_cash_dependence_threshold_is_configurable():
    transactions = [
        make_tx(1, 30, type_="expense", payment_method="card"),
        make_tx(2, 10, type_="expense"),
    ]
    options = ReportOptions(cash_dependency_threshold=Decimal(20))

    report = generate_finance_report(transactions, OCTOBER, issued_on=ISSUED, options=options)

    assert report.sections[-1].items[2] == "3. Payment policy: High dependence on cash."


# ---------------------------------------------------------------------------
# Warehouse report
# ---------------------------------------------------------------------------


def test_warehouse_report():
    movements = [
        make_movement(1, "Rice", 5, "in"),
        make_movement(2, "Beans", 10, "in"),
        make_movement(3, "Rice", 2, "out"),
    ]

    report = generate_warehouse_report(movements, OCTOBER, issued_on=ISSUED)

    assert report.metadata[2] == MetadataItem("Total movements", "3")
    assert "2 supply entries and 1 exits" in report.sections[0].content
    table = report.sections[1]
    assert table.headers == ("Product", "Entries", "Exits", "Period balance")
    assert table.rows == (("Beans", "10", "0", "10"), ("Rice", "5", "2", "3"))
    assert report.sections[2].items == (
        "Stock is accumulating (more entries than exits).",
        'The most active product was "Beans".',
    )


def test_warehouse_report_depletion_and_top_limit():
    movements = [make_movement(i, f"P{i}", i, "out") for i in range(1, 13)]
    movements.append(make_movement(13, "P1", 1, "in"))

    report = generate_warehouse_report(
        movements, OCTOBER, issued_on=ISSUED, options=ReportOptions(top_products=10)
    )

    assert len(report.sections[1].rows) == 10
    assert report.sections[1].rows[0][0] == "P12"
    assert report.sections[2].items[0] == "Stock is being depleted (more exits than entries)."


def test_warehouse_report_on_empty_input():
    report = generate_warehouse_report([], OCTOBER, issued_on=ISSUED)

    assert report.sections[0].content == "No stock movements were recorded in the period."
    assert report.sections[1].rows == (("No data", "-", "-", "-"),)
    assert len(report.sections[2].items) == 1


# ---------------------------------------------------------------------------
# Inventory report
# ---------------------------------------------------------------------------


def test_inventory_report_sorted_by_items():
    areas = [
        InventoryAreaSummary(name="Office", items_count=2),
        InventoryAreaSummary(name="Tools", items_count=7, icon="wrench"),
        InventoryAreaSummary(name="Kitchen", items_count=2),
    ]

    report = generate_inventory_report(areas, OCTOBER, issued_on=ISSUED)

    assert report.metadata[2] == MetadataItem("Total assets/items", "11")
    assert "3 operational areas" in report.sections[0].content
    assert report.sections[1].rows == (
        ("Tools", "7", "wrench"),
        ("Office", "2", "-"),
        ("Kitchen", "2", "-"),
    )


def test_inventory_report_on_empty_input():
    report = generate_inventory_report([], OCTOBER, issued_on=ISSUED)

    assert report.metadata[2].value == "0"
    assert report.sections[1].rows == (("No data", "-", "-"),)


# ---------------------------------------------------------------------------
# Global report and serialization
# ---------------------------------------------------------------------------


def test_global_report_concatenates_modules():
    transactions = [make_tx(1, 10)]
    movements = [make_movement(1, "Rice", 1, "in")]
    areas = [InventoryAreaSummary(name="Tools", items_count=1)]

    finance = generate_finance_report(transactions, OCTOBER, issued_on=ISSUED)
    warehouse = generate_warehouse_report(movements, OCTOBER, issued_on=ISSUED)
    inventory = generate_inventory_report(areas, OCTOBER, issued_on=ISSUED)
    report = generate_global_report(
        transactions, movements, areas, OCTOBER, issued_on=ISSUED
    )

    assert report.title == "Integrated Global Executive Report"
    assert report.metadata == finance.metadata
    assert report.sections == (
        HeaderSection("I. FINANCIAL MODULE"),
        *finance.sections,
        HeaderSection("II. WAREHOUSE MODULE"),
        *warehouse.sections,
        HeaderSection("III. INVENTORY"),
        *inventory.sections,
    )


def test_global_report_on_empty_input():
    report = generate_global_report([], [], [], OCTOBER, issued_on=ISSUED)

    headers = [s for s in report.sections if isinstance(s, HeaderSection)]
    assert len(headers) == 3


def test_report_to_dict_wire_format():
    report = generate_global_report(
        [make_tx(1, 10, type_="expense")], [], [], OCTOBER, issued_on=ISSUED
    )

    data = report_to_dict(report)

    assert data["title"] == report.title
    assert data["metadata"][0] == {"label": "Period", "value": "October 2026"}
    assert data["sections"][0] == {"type": "header_section", "title": "I. FINANCIAL MODULE"}
    paragraph = data["sections"][1]
    assert paragraph["type"] == "paragraph" and "content" in paragraph
    table = data["sections"][2]
    assert table["type"] == "table"
    assert isinstance(table["rows"][0], list)
    assert {s["type"] for s in data["sections"]} == {
        "header_section",
        "paragraph",
        "table",
        "list",
    }


def test_report_to_dict_rejects_unknown_sections():
    report = Report(title="Broken", metadata=(), sections=("not a section",))

    with pytest.raises(TypeError):
        report_to_dict(report)


# ---------------------------------------------------------------------------
# Store-backed loaders
# ---------------------------------------------------------------------------


def make_tmp_db_cfg(tmp_path) -> DatabaseConfig:
    """Helper to build a DatabaseConfig pointing to a temporary SQLite file."""
    return DatabaseConfig(engine="sqlite", path=tmp_path / "reports.sqlite")


def test_build_finance_report_reads_period(tmp_path):
    cfg = make_tmp_db_cfg(tmp_path)
    for day, amount in ((date(2026, 10, 5), 100), (date(2026, 9, 30), 7)):
        insert_transaction(
            cfg,
            "u1",
            NewTransaction(
                date=day, amount=amount, currency="USD", type="income", category="Sales"
            ),
        )

    report = build_finance_report(cfg, "u1", OCTOBER, issued_on=ISSUED)

    assert "a total of 1 transaction was recorded." in report.sections[0].content


def test_build_global_report_on_empty_store(tmp_path):
    cfg = make_tmp_db_cfg(tmp_path)
    product = insert_product(cfg, "Rice")
    insert_movement(
        cfg, product_id=product.id, qty=3, type="in", created_at=datetime(2026, 10, 2)
    )

    report = build_global_report(cfg, "u1", OCTOBER, issued_on=ISSUED)

    titles = section_titles(report)
    assert titles[0] == "I. FINANCIAL MODULE"
    assert "II. WAREHOUSE MODULE" in titles
    warehouse_table = report.sections[titles.index("II. WAREHOUSE MODULE") + 2]
    assert warehouse_table.rows == (("Rice", "3", "0", "3"),)


def test_build_warehouse_report_caps_movements(tmp_path, monkeypatch, caplog):
    cfg = make_tmp_db_cfg(tmp_path)
    monkeypatch.setattr(reporting, "MAX_REPORT_MOVEMENTS", 2)
    product = insert_product(cfg, "Rice")
    for day, qty in ((2, 1), (3, 2), (4, 4)):
        insert_movement(
            cfg,
            product_id=product.id,
            qty=qty,
            type="in",
            created_at=datetime(2026, 10, day),
        )

    with caplog.at_level(logging.WARNING, logger="bizdesk.reporting"):
        report = build_warehouse_report(cfg, OCTOBER, issued_on=ISSUED)

    assert report.metadata[2] == MetadataItem("Total movements", "2")
    assert report.sections[1].rows == (("Rice", "6", "0", "6"),)
    assert "most recent stock movements" in caplog.text
