# BizDesk - Finance, Warehouse & Inventory reporting for small businesses
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Report loaders for BizDesk.

Each ``build_*_report`` function fetches the records of a period from the
database layer and hands them to the matching pure generator in
``bizdesk.reports``. Store failures propagate as ``StoreError``; an empty
period is not an error and yields a well-formed report.
"""

import logging
from datetime import date
from typing import Optional

from .config import ReportOptions
from .db import (
    DatabaseConfig,
    InventoryAreaSummary,
    Movement,
    MovementFilter,
    Transaction,
    TransactionFilter,
    list_inventory_summary,
    query_movements,
    query_transactions,
)
from .periods import Period
from .reports import (
    Report,
    generate_finance_report,
    generate_global_report,
    generate_inventory_report,
    generate_warehouse_report,
)

logger = logging.getLogger(__name__)

# Maximum number of transactions fetched for one report.
MAX_REPORT_TRANSACTIONS = 1000
# Maximum number of stock movements fetched for one report.
MAX_REPORT_MOVEMENTS = 1000


def _load_transactions(
    cfg: DatabaseConfig, user_id: str, period: Period
) -> list[Transaction]:
    transactions = query_transactions(
        cfg,
        user_id,
        TransactionFilter.for_period(period, limit=MAX_REPORT_TRANSACTIONS),
    )
    if len(transactions) == MAX_REPORT_TRANSACTIONS:
        logger.warning(
            "Report for user %s on %s is limited to the %d most recent transactions",
            user_id,
            period.label,
            MAX_REPORT_TRANSACTIONS,
        )
    return transactions


def _load_movements(cfg: DatabaseConfig, period: Period) -> list[Movement]:
    movements = query_movements(
        cfg,
        MovementFilter.for_period(period, page=1, page_size=MAX_REPORT_MOVEMENTS),
    )
    if len(movements) == MAX_REPORT_MOVEMENTS:
        logger.warning(
            "Report on %s is limited to the %d most recent stock movements",
            period.label,
            MAX_REPORT_MOVEMENTS,
        )
    return movements


def _load_areas(
    cfg: DatabaseConfig, user_id: str, period: Period
) -> list[InventoryAreaSummary]:
    return list_inventory_summary(
        cfg, user_id, period.start_datetime(), period.end_exclusive()
    )


def build_finance_report(
    cfg: DatabaseConfig,
    user_id: str,
    period: Period,
    options: Optional[ReportOptions] = None,
    issued_on: Optional[date] = None,
) -> Report:
    """Fetch the transactions of the period and generate the finance report."""
    transactions = _load_transactions(cfg, user_id, period)
    logger.info(
        "Generating finance report for user %s on %s (%d transactions)",
        user_id,
        period.label,
        len(transactions),
    )
    return generate_finance_report(
        transactions, period, issued_on=issued_on, options=options
    )


def build_warehouse_report(
    cfg: DatabaseConfig,
    period: Period,
    options: Optional[ReportOptions] = None,
    issued_on: Optional[date] = None,
) -> Report:
    """Fetch the movements of the period and generate the warehouse report."""
    movements = _load_movements(cfg, period)
    logger.info(
        "Generating warehouse report on %s (%d movements)", period.label, len(movements)
    )
    return generate_warehouse_report(
        movements, period, issued_on=issued_on, options=options
    )


def build_inventory_report(
    cfg: DatabaseConfig,
    user_id: str,
    period: Period,
    options: Optional[ReportOptions] = None,
    issued_on: Optional[date] = None,
) -> Report:
    """Fetch the inventory area summary of the period and generate the report."""
    areas = _load_areas(cfg, user_id, period)
    logger.info(
        "Generating inventory report for user %s on %s (%d areas)",
        user_id,
        period.label,
        len(areas),
    )
    return generate_inventory_report(
        areas, period, issued_on=issued_on, options=options
    )


def build_global_report(
    cfg: DatabaseConfig,
    user_id: str,
    period: Period,
    options: Optional[ReportOptions] = None,
    issued_on: Optional[date] = None,
) -> Report:
    """Fetch every module's records for the period and generate the global report."""
    transactions = _load_transactions(cfg, user_id, period)
    movements = _load_movements(cfg, period)
    areas = _load_areas(cfg, user_id, period)
    logger.info("Generating global report for user %s on %s", user_id, period.label)
    return generate_global_report(
        transactions,
        movements,
        areas,
        period,
        issued_on=issued_on,
        options=options,
    )
