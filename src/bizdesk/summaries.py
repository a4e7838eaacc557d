# BizDesk - Finance, Warehouse & Inventory reporting for small businesses
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Store-backed summaries for the finance charts.

Each function fetches the transactions of one window from the database
layer, then delegates the grouping to the pure helpers in
``bizdesk.aggregations``. Filter values that are not recognized (including
"all") are passed through to the store, where they mean "no filter".
"""

import logging
from datetime import date
from typing import Optional

from .aggregations import (
    CategorySummary,
    DistributionEntry,
    bucket_by_month,
    group_distribution,
    summarize_by_category,
)
from .db import DatabaseConfig, TransactionFilter, query_transactions
from .money import FlowTotals
from .periods import current_month, period_month, period_year

logger = logging.getLogger(__name__)


def get_yearly_summary(
    cfg: DatabaseConfig,
    user_id: str,
    year: int,
    currency: str = "all",
) -> dict[int, FlowTotals]:
    """
    Monthly income and expense totals of one calendar year.

    Parameters
    ----------
    cfg:
        Database configuration.
    user_id:
        Owner of the transactions.
    year:
        Calendar year to summarize.
    currency:
        "USD" or "CUP" narrows the store query to that currency; any other
        value ("all" by default) applies no currency filter.

    Returns
    -------
    dict[int, FlowTotals]
        Mapping month (1-12) -> totals. All twelve months are present, with
        zero totals for months without transactions.
    """
    transactions = query_transactions(
        cfg,
        user_id,
        TransactionFilter.for_period(period_year(year), currency=currency),
    )
    logger.debug(
        "Yearly summary of user %s for %s from %d transactions",
        user_id,
        year,
        len(transactions),
    )
    return bucket_by_month(transactions)


def get_monthly_summary(
    cfg: DatabaseConfig, user_id: str, year: int, month: int
) -> CategorySummary:
    """Totals per flow and currency of one calendar month, broken down by category."""
    transactions = query_transactions(
        cfg, user_id, TransactionFilter.for_period(period_month(year, month))
    )
    return summarize_by_category(transactions)


def get_financial_distribution(
    cfg: DatabaseConfig,
    user_id: str,
    type: str = "all",
    currency: str = "all",
    today: Optional[date] = None,
) -> list[DistributionEntry]:
    """
    Amounts of the current calendar month grouped by (type, category,
    currency).

    ``type`` and ``currency`` narrow the store query when they hold a
    recognized value. The result holds one entry per non-empty group and
    never two entries with the same (type, category, currency).
    """
    transactions = query_transactions(
        cfg,
        user_id,
        TransactionFilter.for_period(
            current_month(today), type=type, currency=currency
        ),
    )
    return group_distribution(transactions)
