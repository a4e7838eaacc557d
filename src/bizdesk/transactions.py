# BizDesk - Finance, Warehouse & Inventory reporting for small businesses
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Transaction service for BizDesk.

High-level operations used by the finance screens. Every mutation goes
through the database layer and is followed by a recomputation of the
user's balance total, so the balance invariant holds after each call.
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Optional

from . import db
from .balance import refresh_balance_total
from .db import DatabaseConfig, NewTransaction, Transaction, TransactionFilter
from .exceptions import NotFoundError
from .periods import resolve_today

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TransactionPage:
    """One page of transactions and the total number of matching rows."""

    rows: list[Transaction]
    count: int


def create_transaction(
    cfg: DatabaseConfig, user_id: str, new: NewTransaction
) -> Transaction:
    """Insert a transaction and refresh the user's balance total."""
    transaction = db.insert_transaction(cfg, user_id, new)
    refresh_balance_total(cfg, user_id)
    return transaction


def update_transaction(
    cfg: DatabaseConfig,
    user_id: str,
    transaction_id: int,
    new: NewTransaction,
) -> Transaction:
    """
    Replace the editable fields of a transaction and refresh the balance.

    Raises
    ------
    NotFoundError
        If the user has no transaction with this id.
    """
    transaction = db.replace_transaction(cfg, user_id, transaction_id, new)
    refresh_balance_total(cfg, user_id)
    return transaction


def delete_transaction(cfg: DatabaseConfig, user_id: str, transaction_id: int) -> None:
    """
    Hard-delete a transaction and refresh the balance.

    Raises
    ------
    NotFoundError
        If the user has no transaction with this id.
    """
    if not db.delete_transaction(cfg, user_id, transaction_id):
        raise NotFoundError(f"Transaction #{transaction_id} not found.")
    refresh_balance_total(cfg, user_id)


def list_transactions(
    cfg: DatabaseConfig,
    user_id: str,
    filters: Optional[TransactionFilter] = None,
) -> TransactionPage:
    """
    List the transactions of a user, newest first.

    ``count`` is the number of rows matching the filters regardless of
    pagination, so callers can compute the number of pages.
    """
    filters = filters or TransactionFilter()
    rows = db.query_transactions(cfg, user_id, filters)
    count = db.count_transactions(cfg, user_id, filters)
    return TransactionPage(rows=rows, count=count)


def get_recent_activity(
    cfg: DatabaseConfig,
    user_id: str,
    today: Optional[date] = None,
    days: int = 30,
) -> list[Transaction]:
    """
    Return the transactions of the last ``days`` days (today included),
    newest first, for the recent activity feed.
    """
    if days < 1:
        raise ValueError("days must be a positive integer.")

    today = resolve_today(today)
    start = datetime.combine(today - timedelta(days=days - 1), time.min)
    end = datetime.combine(today + timedelta(days=1), time.min)

    return db.query_transactions(
        cfg,
        user_id,
        TransactionFilter(start=start, end=end),
    )
