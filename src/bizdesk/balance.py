# BizDesk - Finance, Warehouse & Inventory reporting for small businesses
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Balance calculator for BizDesk.

This module keeps the per-user balance configuration consistent with the
transaction history and builds the dashboard balance view.

Invariant maintained for every user and currency:

    balance_total == initial_balance + sum(income) - sum(expense)

The totals are always recomputed from the full transaction history held by
the store. The cached ``balance_total_*`` columns are never used as the
starting point of a new computation.
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Optional

from .db import (
    BalanceConfig,
    DatabaseConfig,
    Transaction,
    read_balance_config,
    sum_transactions,
    write_balance_config,
)
from .money import CurrencyAmounts, FlowTotals, percentage_change, to_decimal
from .periods import Period, current_month, previous_month, resolve_today

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PercentageChange:
    """
    Percentage change per currency between two periods.

    A value of None means there is no prior-period data (the previous sum
    was exactly zero). It is not the same as a 0% change.
    """

    usd: Optional[Decimal] = None
    cup: Optional[Decimal] = None


@dataclass(frozen=True)
class PeriodComparison:
    """Sums of one flow (income or expense) for two consecutive months."""

    current: CurrencyAmounts
    previous: CurrencyAmounts
    change: PercentageChange


@dataclass(frozen=True)
class DashboardStats:
    """
    Dashboard balance view of one user.

    Attributes
    ----------
    balance:
        Current total balance per currency: the initial balance plus the
        net of every recorded transaction.
    income / expense:
        Current-month and previous-month sums, with the percentage change.
    current_period / previous_period:
        The calendar months compared.
    """

    balance: CurrencyAmounts
    income: PeriodComparison
    expense: PeriodComparison
    current_period: Period
    previous_period: Period


# ---------------------------------------------------------------------------
# Pure helpers
# ---------------------------------------------------------------------------


def compute_totals(transactions: Iterable[Transaction]) -> FlowTotals:
    """
    Sum income and expense per currency over in-memory transactions.

    Amounts are accumulated as ``Decimal``.
    """
    totals = FlowTotals()
    for t in transactions:
        totals = totals.add(t.type, t.currency, to_decimal(t.amount))
    return totals


def net_by_currency(totals: FlowTotals) -> CurrencyAmounts:
    """Income minus expense, per currency."""
    return totals.net


def _compare(current: CurrencyAmounts, previous: CurrencyAmounts) -> PeriodComparison:
    return PeriodComparison(
        current=current,
        previous=previous,
        change=PercentageChange(
            usd=percentage_change(current.usd, previous.usd),
            cup=percentage_change(current.cup, previous.cup),
        ),
    )


# ---------------------------------------------------------------------------
# Store-backed operations
# ---------------------------------------------------------------------------


def _total_from_history(
    cfg: DatabaseConfig, user_id: str, initial: CurrencyAmounts
) -> CurrencyAmounts:
    net = sum_transactions(cfg, user_id).net
    return CurrencyAmounts(usd=initial.usd + net.usd, cup=initial.cup + net.cup)


def get_balance_config(cfg: DatabaseConfig, user_id: str) -> BalanceConfig:
    """
    Return the balance configuration of a user.

    A user who never configured a balance gets a zeroed configuration with
    ``updated_at=None``; this is not an error.
    """
    config = read_balance_config(cfg, user_id)
    if config is None:
        return BalanceConfig(user_id=user_id)
    return config


def update_balance_config(
    cfg: DatabaseConfig,
    user_id: str,
    new_initial_usd: object,
    new_initial_cup: object,
) -> BalanceConfig:
    """
    Set a new initial balance per currency and recompute the totals.

    The new total of each currency is the new initial balance plus the net
    of every existing transaction in that currency, summed by the store at
    call time. Calling this function twice with the same arguments and the
    same history yields the same totals.

    Raises
    ------
    DataIntegrityError
        If one of the initial balances is not numeric.
    StoreError
        If the store cannot be read or written.
    """
    initial = CurrencyAmounts(
        usd=to_decimal(new_initial_usd),
        cup=to_decimal(new_initial_cup),
    )

    previous = read_balance_config(cfg, user_id)
    total = _total_from_history(cfg, user_id, initial)

    updated = BalanceConfig(
        user_id=user_id,
        initial_balance_usd=initial.usd,
        initial_balance_cup=initial.cup,
        balance_total_usd=total.usd,
        balance_total_cup=total.cup,
    )

    logger.info("Updating initial balance of user %s", user_id)
    return write_balance_config(
        cfg, updated, action_type="UPDATE_INITIAL", previous=previous
    )


def refresh_balance_total(cfg: DatabaseConfig, user_id: str) -> BalanceConfig:
    """
    Recompute the total balance of a user from the current initial balance
    and the full transaction history.

    Called after every transaction mutation. A user without a configuration
    gets one, with zero initial balances.
    """
    previous = read_balance_config(cfg, user_id)
    current = previous or BalanceConfig(user_id=user_id)
    total = _total_from_history(cfg, user_id, current.initial)

    refreshed = BalanceConfig(
        user_id=user_id,
        initial_balance_usd=current.initial_balance_usd,
        initial_balance_cup=current.initial_balance_cup,
        balance_total_usd=total.usd,
        balance_total_cup=total.cup,
    )

    logger.info("Recalculating balance total of user %s", user_id)
    return write_balance_config(
        cfg, refreshed, action_type="RECALCULATE", previous=previous
    )


def get_dashboard_stats(
    cfg: DatabaseConfig,
    user_id: str,
    today: Optional[date] = None,
) -> DashboardStats:
    """
    Build the dashboard balance view of a user.

    Parameters
    ----------
    cfg:
        Database configuration.
    user_id:
        Owner of the transactions.
    today:
        Reference date used to determine the current calendar month.
        Defaults to today's date.

    Returns
    -------
    DashboardStats
        Current balance, and for income and expense the current-month and
        previous-month sums per currency with their percentage change.
    """
    today = resolve_today(today)
    this_month = current_month(today)
    last_month = previous_month(today)

    config = get_balance_config(cfg, user_id)
    current = sum_transactions(
        cfg, user_id, this_month.start_datetime(), this_month.end_exclusive()
    )
    previous = sum_transactions(
        cfg, user_id, last_month.start_datetime(), last_month.end_exclusive()
    )

    return DashboardStats(
        balance=_total_from_history(cfg, user_id, config.initial),
        income=_compare(current.income, previous.income),
        expense=_compare(current.expense, previous.expense),
        current_period=this_month,
        previous_period=last_month,
    )
