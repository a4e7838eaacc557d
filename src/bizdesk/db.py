# BizDesk - Finance, Warehouse & Inventory reporting for small businesses
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.


"""
Database layer for BizDesk.

This module provides all low-level accessors for the SQLite database used
by the application. It plays the role of the table store behind the
balance, summary and report layers and is responsible for:

- Initializing the database schema.
- Inserting, replacing, deleting and querying financial transactions.
- Summing transaction amounts per (type, currency) directly in SQL.
- Reading and upserting the per-user balance configuration, together with
  an audit trail of every change.
- Managing warehouse products and stock movements.
- Reading the inventory areas summary (areas and their item counts).

------------------------------------------------------------------------------
Schema Overview
------------------------------------------------------------------------------

1) transactions
   - id                INTEGER PRIMARY KEY AUTOINCREMENT
   - user_id           TEXT    NOT NULL  -- owner, every query is scoped by it
   - date              TEXT    NOT NULL  -- ISO datetime 'YYYY-MM-DDTHH:MM:SS'
   - amount_cents      INTEGER NOT NULL  -- unsigned integer amount in cents
   - currency          TEXT    NOT NULL  -- 'USD' | 'CUP'
   - type              TEXT    NOT NULL  -- 'income' | 'expense'
   - category          TEXT    NOT NULL
   - description       TEXT
   - payment_method, bank_account_id, reference_number, notes  TEXT
   - attachments       TEXT    NOT NULL  -- JSON list of strings
   - created_at, updated_at                TEXT

2) balance_config
   One row per user, created on first write (upsert).
   - user_id                    TEXT PRIMARY KEY
   - initial_balance_usd_cents  INTEGER NOT NULL
   - initial_balance_cup_cents  INTEGER NOT NULL
   - balance_total_usd_cents    INTEGER NOT NULL
   - balance_total_cup_cents    INTEGER NOT NULL
   - updated_at                 TEXT

3) balance_audit_log
   One row per balance change: 'UPDATE_INITIAL' when the user sets a new
   initial balance, 'RECALCULATE' when a transaction mutation refreshes the
   totals. Old and new initial/total amounts are kept per currency.

4) products / movements
   Warehouse products with their current stock, and the stock movements
   ('in' | 'out') that change it.

5) inventory_areas / inventory_items
   Dynamic inventory areas and the items registered in them. This module
   only reads them (item counts per area); their maintenance belongs to
   the data-entry screens.

------------------------------------------------------------------------------
SQLite Notes
------------------------------------------------------------------------------

- All timestamps are stored as naive ISO-8601 text in UTC. Aware datetimes
  passed in are converted to UTC first.
- Money is stored as integer cents and converted back to ``Decimal``.
- Foreign key enforcement is explicitly enabled.
- Every ``sqlite3.Error`` is logged and re-raised as ``StoreError``.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import date, datetime, time, timezone
from decimal import Decimal
from pathlib import Path
from typing import Literal

import pandas as pd

from .exceptions import DataIntegrityError, NotFoundError, StoreError
from .money import (
    CURRENCIES,
    TRANSACTION_TYPES,
    ZERO,
    CurrencyAmounts,
    FlowTotals,
    from_cents,
    is_known_currency,
    is_known_type,
    to_cents,
)
from .periods import Period

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Dataclasses
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DatabaseConfig:
    """
    Database configuration for BizDesk.

    Attributes
    ----------
    engine:
        Database engine identifier. Only "sqlite" is supported.
    path:
        Path to the SQLite database file.
    """

    engine: str
    path: Path


@dataclass(frozen=True)
class TransactionDetails:
    """
    Optional details attached to a transaction.

    Every field is optional; ``attachments`` is an explicit list of file
    references (URLs or storage keys) and is empty by default.
    """

    payment_method: str | None = None
    bank_account_id: str | None = None
    reference_number: str | None = None
    notes: str | None = None
    attachments: tuple[str, ...] = ()


@dataclass(frozen=True)
class Transaction:
    """A stored financial transaction, owned by exactly one user."""

    id: int
    user_id: str
    date: datetime
    amount: Decimal
    currency: str
    type: str
    category: str
    description: str | None
    details: TransactionDetails
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass(frozen=True)
class NewTransaction:
    """
    Editable fields of a transaction, used both to create one and to fully
    replace the editable fields of an existing one.

    ``amount`` may be given as ``Decimal``, ``int``, ``str`` or ``float``;
    it is validated when the transaction is written.
    """

    date: date | datetime
    amount: object
    currency: str
    type: str
    category: str
    description: str | None = None
    details: TransactionDetails = field(default_factory=TransactionDetails)


@dataclass(frozen=True)
class TransactionFilter:
    """
    Filters used to query transactions.

    ``start`` is inclusive and ``end`` is exclusive. ``category``, ``type``
    and ``currency`` are applied only when they hold a recognized value;
    anything else (None, "all", an unknown currency) means "no filter".

    Pagination uses either ``limit`` or ``page`` / ``page_size`` (1-based
    pages). When both are given, ``limit`` wins.
    """

    start: date | datetime | None = None
    end: date | datetime | None = None
    category: str | None = None
    type: str | None = None
    currency: str | None = None
    page: int | None = None
    page_size: int | None = None
    limit: int | None = None

    @classmethod
    def for_period(cls, period: Period, **kwargs) -> "TransactionFilter":
        """Build a filter covering the whole period (all of its last day included)."""
        return cls(start=period.start_datetime(), end=period.end_exclusive(), **kwargs)


@dataclass(frozen=True)
class BalanceConfig:
    """
    Balance configuration of one user.

    ``balance_total_*`` always equals ``initial_balance_*`` plus the net of
    every income and expense transaction in that currency.
    """

    user_id: str
    initial_balance_usd: Decimal = ZERO
    initial_balance_cup: Decimal = ZERO
    balance_total_usd: Decimal = ZERO
    balance_total_cup: Decimal = ZERO
    updated_at: datetime | None = None

    @property
    def initial(self) -> CurrencyAmounts:
        return CurrencyAmounts(usd=self.initial_balance_usd, cup=self.initial_balance_cup)

    @property
    def total(self) -> CurrencyAmounts:
        return CurrencyAmounts(usd=self.balance_total_usd, cup=self.balance_total_cup)


BalanceAction = Literal["UPDATE_INITIAL", "RECALCULATE"]


@dataclass(frozen=True)
class BalanceAuditEntry:
    """One row of the balance audit trail."""

    id: int
    user_id: str
    action_type: str
    old_initial: CurrencyAmounts
    new_initial: CurrencyAmounts
    old_total: CurrencyAmounts
    new_total: CurrencyAmounts
    changed_at: datetime


@dataclass(frozen=True)
class Product:
    id: int
    name: str
    category: str | None
    stock: int
    min_stock: int | None
    created_at: datetime | None


MovementType = Literal["in", "out"]
MOVEMENT_TYPES: tuple[str, ...] = ("in", "out")


@dataclass(frozen=True)
class Movement:
    """
    A warehouse stock movement, enriched with the name and category of its
    product. Both are None when the product has since been deleted.
    """

    id: int
    product_id: int | None
    user_id: str | None
    qty: int
    type: str
    created_at: datetime
    product_name: str | None = None
    product_category: str | None = None


@dataclass(frozen=True)
class MovementFilter:
    """
    Filters used to query movements. ``start`` is inclusive, ``end`` is
    exclusive; ``type`` is applied only for 'in' / 'out'.
    """

    start: date | datetime | None = None
    end: date | datetime | None = None
    type: str | None = None
    product_id: int | None = None
    user_id: str | None = None
    page: int | None = None
    page_size: int | None = None

    @classmethod
    def for_period(cls, period: Period, **kwargs) -> "MovementFilter":
        return cls(start=period.start_datetime(), end=period.end_exclusive(), **kwargs)


@dataclass(frozen=True)
class InventoryAreaSummary:
    """An inventory area and the number of items registered in it."""

    name: str
    items_count: int
    icon: str | None = None


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _ensure_sqlite(cfg: DatabaseConfig) -> None:
    """Raise if the configuration does not refer to a supported engine."""
    if cfg.engine.lower() != "sqlite":
        msg = (
            f"Unsupported database engine: {cfg.engine!r}. "
            "Only 'sqlite' is supported for now."
        )
        raise ValueError(msg)


def _connect(cfg: DatabaseConfig) -> sqlite3.Connection:
    """
    Open a SQLite connection with foreign keys enabled.

    The caller is responsible for closing the connection.
    """
    _ensure_sqlite(cfg)
    try:
        conn = sqlite3.connect(cfg.path)
        conn.execute("PRAGMA foreign_keys = ON;")
    except sqlite3.Error as exc:
        logger.error("Cannot open database %s: %s", cfg.path, exc)
        raise StoreError(f"Cannot open database {cfg.path}: {exc}") from exc
    return conn


@contextmanager
def _session(cfg: DatabaseConfig, action: str) -> Iterator[sqlite3.Connection]:
    """
    Yield a connection, commit on success and close it in every case.

    Uncommitted changes are discarded when the block raises.
    """
    conn = _connect(cfg)
    try:
        yield conn
        conn.commit()
    except sqlite3.Error as exc:
        logger.error("Store failure while %s: %s", action, exc)
        raise StoreError(f"Store failure while {action}: {exc}") from exc
    finally:
        conn.close()


def _to_iso_datetime(value: date | datetime) -> str:
    """Convert a date or datetime to naive UTC ISO text (seconds precision)."""
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc).replace(tzinfo=None)
        return value.isoformat(timespec="seconds")
    if isinstance(value, date):
        return datetime.combine(value, time.min).isoformat(timespec="seconds")
    raise TypeError(f"Expected a date or datetime, got {value!r}")


def _parse_iso(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value is not None else None


def _now_iso() -> str:
    """Return the current UTC datetime as naive ISO text."""
    return _to_iso_datetime(datetime.now(timezone.utc))


def _create_schema_if_needed(conn: sqlite3.Connection) -> None:
    """
    Create tables and indexes if they do not exist yet.

    This function is idempotent and can be called multiple times safely.
    """
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS transactions (
            id               INTEGER PRIMARY KEY AUTOINCREMENT,
            user_id          TEXT    NOT NULL,
            date             TEXT    NOT NULL,  -- ISO datetime
            amount_cents     INTEGER NOT NULL CHECK (amount_cents >= 0),
            currency         TEXT    NOT NULL,
            type             TEXT    NOT NULL,
            category         TEXT    NOT NULL,
            description      TEXT,
            payment_method   TEXT,
            bank_account_id  TEXT,
            reference_number TEXT,
            notes            TEXT,
            attachments      TEXT    NOT NULL DEFAULT '[]',
            created_at       TEXT    NOT NULL,
            updated_at       TEXT
        );
        """
    )

    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS balance_config (
            user_id                   TEXT PRIMARY KEY,
            initial_balance_usd_cents INTEGER NOT NULL DEFAULT 0,
            initial_balance_cup_cents INTEGER NOT NULL DEFAULT 0,
            balance_total_usd_cents   INTEGER NOT NULL DEFAULT 0,
            balance_total_cup_cents   INTEGER NOT NULL DEFAULT 0,
            updated_at                TEXT
        );
        """
    )

    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS balance_audit_log (
            id                    INTEGER PRIMARY KEY AUTOINCREMENT,
            user_id               TEXT    NOT NULL,
            action_type           TEXT    NOT NULL,
            -- 'UPDATE_INITIAL' | 'RECALCULATE'
            old_initial_usd_cents INTEGER NOT NULL,
            new_initial_usd_cents INTEGER NOT NULL,
            old_initial_cup_cents INTEGER NOT NULL,
            new_initial_cup_cents INTEGER NOT NULL,
            old_total_usd_cents   INTEGER NOT NULL,
            new_total_usd_cents   INTEGER NOT NULL,
            old_total_cup_cents   INTEGER NOT NULL,
            new_total_cup_cents   INTEGER NOT NULL,
            changed_at            TEXT    NOT NULL
        );
        """
    )

    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS products (
            id          INTEGER PRIMARY KEY AUTOINCREMENT,
            name        TEXT    NOT NULL,
            category    TEXT,
            stock       INTEGER NOT NULL DEFAULT 0,
            min_stock   INTEGER,
            created_at  TEXT    NOT NULL
        );
        """
    )

    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS movements (
            id          INTEGER PRIMARY KEY AUTOINCREMENT,
            product_id  INTEGER,
            user_id     TEXT,
            qty         INTEGER NOT NULL CHECK (qty > 0),
            type        TEXT    NOT NULL CHECK (type IN ('in', 'out')),
            created_at  TEXT    NOT NULL,

            FOREIGN KEY (product_id) REFERENCES products(id) ON DELETE SET NULL
        );
        """
    )

    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS inventory_areas (
            id          INTEGER PRIMARY KEY AUTOINCREMENT,
            user_id     TEXT    NOT NULL,
            name        TEXT    NOT NULL,
            icon        TEXT,
            slug        TEXT,
            created_at  TEXT    NOT NULL
        );
        """
    )

    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS inventory_items (
            id          INTEGER PRIMARY KEY AUTOINCREMENT,
            area_id     INTEGER NOT NULL,
            user_id     TEXT    NOT NULL,
            sku         TEXT,
            created_at  TEXT    NOT NULL,

            FOREIGN KEY (area_id) REFERENCES inventory_areas(id) ON DELETE CASCADE
        );
        """
    )

    conn.execute(
        """
        CREATE INDEX IF NOT EXISTS idx_transactions_user_date
            ON transactions(user_id, date);
        """
    )
    conn.execute(
        """
        CREATE INDEX IF NOT EXISTS idx_movements_created_at
            ON movements(created_at);
        """
    )
    conn.execute(
        """
        CREATE INDEX IF NOT EXISTS idx_inventory_items_area
            ON inventory_items(area_id, created_at);
        """
    )


def _validate_new_transaction(new: NewTransaction) -> tuple:
    """
    Validate editable transaction fields and return the column values in
    table order (date, amount_cents, currency, type, category, description,
    payment_method, bank_account_id, reference_number, notes, attachments).

    Raises
    ------
    DataIntegrityError
        If the amount is not numeric or is negative.
    ValueError
        If the currency or the type is not supported, or the category is empty.
    """
    amount_cents = to_cents(new.amount)
    if amount_cents < 0:
        raise DataIntegrityError(
            f"Transaction amount cannot be negative: {new.amount!r}"
        )
    if new.currency not in CURRENCIES:
        raise ValueError(
            f"Unsupported currency: {new.currency!r}. Expected one of {CURRENCIES}."
        )
    if new.type not in TRANSACTION_TYPES:
        raise ValueError(
            f"Unsupported transaction type: {new.type!r}. "
            f"Expected one of {TRANSACTION_TYPES}."
        )
    if not new.category or not str(new.category).strip():
        raise ValueError("Transaction category cannot be empty.")

    details = new.details
    attachments = [str(a) for a in details.attachments]

    return (
        _to_iso_datetime(new.date),
        amount_cents,
        new.currency,
        new.type,
        str(new.category).strip(),
        new.description,
        details.payment_method or None,
        details.bank_account_id or None,
        details.reference_number or None,
        details.notes or None,
        json.dumps(attachments),
    )


_TRANSACTION_COLUMNS = """
    id, user_id, date, amount_cents, currency, type, category, description,
    payment_method, bank_account_id, reference_number, notes, attachments,
    created_at, updated_at
"""


def _row_to_transaction(row: tuple) -> Transaction:
    """
    Convert a database row into a Transaction instance.

    Expected row layout: the columns of ``_TRANSACTION_COLUMNS``, in order.
    """
    (
        transaction_id,
        user_id,
        date_str,
        amount_cents,
        currency,
        type_,
        category,
        description,
        payment_method,
        bank_account_id,
        reference_number,
        notes,
        attachments_raw,
        created_at_str,
        updated_at_str,
    ) = row

    try:
        attachments = tuple(str(a) for a in json.loads(attachments_raw or "[]"))
    except (TypeError, ValueError) as exc:
        raise DataIntegrityError(
            f"Invalid attachments stored for transaction #{transaction_id}."
        ) from exc

    return Transaction(
        id=transaction_id,
        user_id=user_id,
        date=datetime.fromisoformat(date_str),
        amount=from_cents(amount_cents),
        currency=currency,
        type=type_,
        category=category,
        description=description,
        details=TransactionDetails(
            payment_method=payment_method,
            bank_account_id=bank_account_id,
            reference_number=reference_number,
            notes=notes,
            attachments=attachments,
        ),
        created_at=_parse_iso(created_at_str),
        updated_at=_parse_iso(updated_at_str),
    )


def _transaction_where(
    user_id: str, filters: TransactionFilter
) -> tuple[list[str], list[object]]:
    where_clauses: list[str] = ["user_id = ?"]
    params: list[object] = [user_id]

    if filters.start is not None:
        where_clauses.append("date >= ?")
        params.append(_to_iso_datetime(filters.start))
    if filters.end is not None:
        where_clauses.append("date < ?")
        params.append(_to_iso_datetime(filters.end))
    if filters.category and filters.category != "all":
        where_clauses.append("category = ?")
        params.append(filters.category)
    if is_known_type(filters.type):
        where_clauses.append("type = ?")
        params.append(filters.type)
    if is_known_currency(filters.currency):
        where_clauses.append("currency = ?")
        params.append(filters.currency)

    return where_clauses, params


def _pagination_clause(
    limit: int | None, page: int | None, page_size: int | None
) -> tuple[str, list[object]]:
    """Build a LIMIT / OFFSET clause from either a limit or a 1-based page."""
    if limit is not None:
        return " LIMIT ?", [limit]
    if page is not None and page_size is not None:
        if page < 1 or page_size < 1:
            raise ValueError("page and page_size must be positive integers.")
        return " LIMIT ? OFFSET ?", [page_size, (page - 1) * page_size]
    return "", []


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def init_database(cfg: DatabaseConfig) -> None:
    """
    Initialize the database schema if needed.

    - Creates the SQLite file (and its parent directory) if it does not exist.
    - Creates tables and indexes if they are missing.
    - This function is idempotent: calling it multiple times is safe.

    Raises
    ------
    ValueError
        If cfg.engine is not supported.
    StoreError
        If schema creation fails.
    """
    _ensure_sqlite(cfg)
    cfg.path.parent.mkdir(parents=True, exist_ok=True)

    with _session(cfg, "creating the schema") as conn:
        _create_schema_if_needed(conn)


# ---------------------------------------------------------------------------
# Transactions
# ---------------------------------------------------------------------------


def get_transaction(
    cfg: DatabaseConfig, user_id: str, transaction_id: int
) -> Transaction | None:
    """Load a single transaction by id, or None if the user has no such row."""
    init_database(cfg)

    with _session(cfg, "loading a transaction") as conn:
        row = conn.execute(
            f"""
            SELECT {_TRANSACTION_COLUMNS}
              FROM transactions
             WHERE id = ? AND user_id = ?;
            """,
            (transaction_id, user_id),
        ).fetchone()

    if row is None:
        return None
    return _row_to_transaction(row)


def insert_transaction(
    cfg: DatabaseConfig, user_id: str, new: NewTransaction
) -> Transaction:
    """
    Insert a new transaction for the given user.

    Raises
    ------
    DataIntegrityError
        If the amount is not numeric or is negative.
    ValueError
        If the currency, the type or the category is invalid.
    """
    values = _validate_new_transaction(new)
    init_database(cfg)

    with _session(cfg, "inserting a transaction") as conn:
        cur = conn.execute(
            """
            INSERT INTO transactions (
                user_id, date, amount_cents, currency, type, category,
                description, payment_method, bank_account_id,
                reference_number, notes, attachments, created_at, updated_at
            )
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, NULL);
            """,
            (user_id, *values, _now_iso()),
        )
        transaction_id = cur.lastrowid

    logger.info("Inserted transaction #%s for user %s", transaction_id, user_id)

    result = get_transaction(cfg, user_id, transaction_id)
    if result is None:
        msg = f"Transaction #{transaction_id} was just inserted but could not be reloaded."
        raise RuntimeError(msg)
    return result


def replace_transaction(
    cfg: DatabaseConfig,
    user_id: str,
    transaction_id: int,
    new: NewTransaction,
) -> Transaction:
    """
    Replace every editable field of an existing transaction.

    The update is scoped by ``user_id``: a row owned by another user is
    reported as missing.

    Raises
    ------
    NotFoundError
        If the user has no transaction with this id.
    """
    values = _validate_new_transaction(new)
    init_database(cfg)

    with _session(cfg, "replacing a transaction") as conn:
        cur = conn.execute(
            """
            UPDATE transactions
               SET date = ?,
                   amount_cents = ?,
                   currency = ?,
                   type = ?,
                   category = ?,
                   description = ?,
                   payment_method = ?,
                   bank_account_id = ?,
                   reference_number = ?,
                   notes = ?,
                   attachments = ?,
                   updated_at = ?
             WHERE id = ? AND user_id = ?;
            """,
            (*values, _now_iso(), transaction_id, user_id),
        )
        updated = cur.rowcount

    if updated == 0:
        raise NotFoundError(f"Transaction #{transaction_id} not found.")

    logger.info("Replaced transaction #%s for user %s", transaction_id, user_id)

    result = get_transaction(cfg, user_id, transaction_id)
    if result is None:
        msg = f"Transaction #{transaction_id} was updated but could not be reloaded."
        raise RuntimeError(msg)
    return result


def delete_transaction(cfg: DatabaseConfig, user_id: str, transaction_id: int) -> bool:
    """Hard-delete a transaction. Returns False if the user has no such row."""
    init_database(cfg)

    with _session(cfg, "deleting a transaction") as conn:
        cur = conn.execute(
            "DELETE FROM transactions WHERE id = ? AND user_id = ?;",
            (transaction_id, user_id),
        )
        deleted = cur.rowcount > 0

    if deleted:
        logger.info("Deleted transaction #%s for user %s", transaction_id, user_id)
    return deleted


def query_transactions(
    cfg: DatabaseConfig,
    user_id: str,
    filters: TransactionFilter | None = None,
    *,
    order_by: tuple[str, str] = ("date", "DESC"),
) -> list[Transaction]:
    """
    Query the transactions of one user.

    Parameters
    ----------
    cfg:
        Database configuration.
    user_id:
        Owner of the transactions.
    filters:
        Optional filters (date window, category, type, currency, pagination).
    order_by:
        Sorting instructions as (column, direction). Supported columns:
        "date", "amount", "category", "id". Direction must be "ASC" or
        "DESC". Ties are broken by id in the same direction.

    Returns
    -------
    list[Transaction]
        Matching transactions, newest first by default.
    """
    filters = filters or TransactionFilter()
    init_database(cfg)

    where_clauses, params = _transaction_where(user_id, filters)

    allowed_order_columns = {"date", "amount", "category", "id"}
    order_column, order_direction = order_by
    if order_column not in allowed_order_columns:
        raise ValueError(f"Invalid order_by column: {order_column!r}")
    direction = order_direction.upper()
    if direction not in {"ASC", "DESC"}:
        raise ValueError(f"Invalid order_by direction: {order_direction!r}")
    order_expr = "amount_cents" if order_column == "amount" else order_column

    limit_clause, limit_params = _pagination_clause(
        filters.limit, filters.page, filters.page_size
    )
    params.extend(limit_params)

    query = f"""
        SELECT {_TRANSACTION_COLUMNS}
          FROM transactions
         WHERE {' AND '.join(where_clauses)}
         ORDER BY {order_expr} {direction}, id {direction}
         {limit_clause};
    """

    with _session(cfg, "querying transactions") as conn:
        rows = conn.execute(query, params).fetchall()

    logger.debug("Fetched %d transactions for user %s", len(rows), user_id)
    return [_row_to_transaction(row) for row in rows]


def count_transactions(
    cfg: DatabaseConfig,
    user_id: str,
    filters: TransactionFilter | None = None,
) -> int:
    """Count the transactions matching the filters, ignoring pagination."""
    filters = filters or TransactionFilter()
    init_database(cfg)

    where_clauses, params = _transaction_where(user_id, filters)
    with _session(cfg, "counting transactions") as conn:
        (count,) = conn.execute(
            f"SELECT COUNT(*) FROM transactions WHERE {' AND '.join(where_clauses)};",
            params,
        ).fetchone()
    return int(count)


def search_transactions(
    cfg: DatabaseConfig,
    user_id: str,
    filters: TransactionFilter | None = None,
) -> pd.DataFrame:
    """
    Search transactions and return them as a DataFrame, for listings and
    exports.

    Result columns
    --------------
    - id
    - date
    - type
    - category
    - amount   (float, presentation only)
    - currency
    - description
    - payment_method
    """
    columns = [
        "id",
        "date",
        "type",
        "category",
        "amount",
        "currency",
        "description",
        "payment_method",
    ]
    rows = query_transactions(cfg, user_id, filters)
    if not rows:
        return pd.DataFrame(columns=columns)

    df = pd.DataFrame(
        [
            {
                "id": t.id,
                "date": t.date,
                "type": t.type,
                "category": t.category,
                "amount": float(t.amount),
                "currency": t.currency,
                "description": t.description,
                "payment_method": t.details.payment_method,
            }
            for t in rows
        ],
        columns=columns,
    )
    df["date"] = pd.to_datetime(df["date"])
    return df


def sum_transactions(
    cfg: DatabaseConfig,
    user_id: str,
    start: date | datetime | None = None,
    end: date | datetime | None = None,
) -> FlowTotals:
    """
    Sum the transactions of one user per (type, currency), in SQL.

    Without bounds the sum covers the full history. ``start`` is inclusive,
    ``end`` exclusive. Sums are computed on integer cents, so they are exact.
    """
    init_database(cfg)

    where_clauses, params = _transaction_where(
        user_id, TransactionFilter(start=start, end=end)
    )
    with _session(cfg, "summing transactions") as conn:
        rows = conn.execute(
            f"""
            SELECT type, currency, SUM(amount_cents)
              FROM transactions
             WHERE {' AND '.join(where_clauses)}
             GROUP BY type, currency;
            """,
            params,
        ).fetchall()

    totals = FlowTotals()
    for type_, currency, cents in rows:
        if not (is_known_type(type_) and is_known_currency(currency)):
            raise DataIntegrityError(
                f"Unexpected stored transaction type/currency: {type_!r}/{currency!r}"
            )
        totals = totals.add(type_, currency, from_cents(int(cents)))
    return totals


# ---------------------------------------------------------------------------
# Balance configuration
# ---------------------------------------------------------------------------


def read_balance_config(cfg: DatabaseConfig, user_id: str) -> BalanceConfig | None:
    """Return the balance configuration of a user, or None if none was written yet."""
    init_database(cfg)

    with _session(cfg, "reading the balance configuration") as conn:
        row = conn.execute(
            """
            SELECT user_id,
                   initial_balance_usd_cents,
                   initial_balance_cup_cents,
                   balance_total_usd_cents,
                   balance_total_cup_cents,
                   updated_at
              FROM balance_config
             WHERE user_id = ?;
            """,
            (user_id,),
        ).fetchone()

    if row is None:
        return None

    (uid, init_usd, init_cup, total_usd, total_cup, updated_at_str) = row
    return BalanceConfig(
        user_id=uid,
        initial_balance_usd=from_cents(init_usd),
        initial_balance_cup=from_cents(init_cup),
        balance_total_usd=from_cents(total_usd),
        balance_total_cup=from_cents(total_cup),
        updated_at=_parse_iso(updated_at_str),
    )


def write_balance_config(
    cfg: DatabaseConfig,
    config: BalanceConfig,
    *,
    action_type: BalanceAction,
    previous: BalanceConfig | None = None,
) -> BalanceConfig:
    """
    Upsert the balance configuration of a user and append an audit row.

    Both writes happen in the same store transaction. Concurrent writers
    for the same user are not serialized: the last write wins.

    Parameters
    ----------
    config:
        New configuration. Its ``updated_at`` is ignored and replaced by
        the current time.
    action_type:
        "UPDATE_INITIAL" or "RECALCULATE", recorded in the audit trail.
    previous:
        Configuration before the change (zeroed when None).
    """
    init_database(cfg)

    previous = previous or BalanceConfig(user_id=config.user_id)
    now = _now_iso()

    new_values = (
        to_cents(config.initial_balance_usd),
        to_cents(config.initial_balance_cup),
        to_cents(config.balance_total_usd),
        to_cents(config.balance_total_cup),
    )

    with _session(cfg, "writing the balance configuration") as conn:
        conn.execute(
            """
            INSERT INTO balance_config (
                user_id,
                initial_balance_usd_cents,
                initial_balance_cup_cents,
                balance_total_usd_cents,
                balance_total_cup_cents,
                updated_at
            )
            VALUES (?, ?, ?, ?, ?, ?)
            ON CONFLICT(user_id) DO UPDATE SET
                initial_balance_usd_cents = excluded.initial_balance_usd_cents,
                initial_balance_cup_cents = excluded.initial_balance_cup_cents,
                balance_total_usd_cents   = excluded.balance_total_usd_cents,
                balance_total_cup_cents   = excluded.balance_total_cup_cents,
                updated_at                = excluded.updated_at;
            """,
            (config.user_id, *new_values, now),
        )
        conn.execute(
            """
            INSERT INTO balance_audit_log (
                user_id, action_type,
                old_initial_usd_cents, new_initial_usd_cents,
                old_initial_cup_cents, new_initial_cup_cents,
                old_total_usd_cents, new_total_usd_cents,
                old_total_cup_cents, new_total_cup_cents,
                changed_at
            )
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?);
            """,
            (
                config.user_id,
                action_type,
                to_cents(previous.initial_balance_usd),
                new_values[0],
                to_cents(previous.initial_balance_cup),
                new_values[1],
                to_cents(previous.balance_total_usd),
                new_values[2],
                to_cents(previous.balance_total_cup),
                new_values[3],
                now,
            ),
        )

    logger.info(
        "Balance configuration of user %s written (%s): total USD %s, CUP %s",
        config.user_id,
        action_type,
        config.balance_total_usd,
        config.balance_total_cup,
    )

    result = read_balance_config(cfg, config.user_id)
    if result is None:
        raise RuntimeError(
            f"Balance configuration of user {config.user_id} was written "
            "but could not be reloaded."
        )
    return result


def list_balance_audit(
    cfg: DatabaseConfig, user_id: str, limit: int | None = 50
) -> list[BalanceAuditEntry]:
    """Return the balance audit trail of a user, most recent first."""
    init_database(cfg)

    params: list[object] = [user_id]
    limit_clause = ""
    if limit is not None:
        limit_clause = " LIMIT ?"
        params.append(limit)

    with _session(cfg, "reading the balance audit log") as conn:
        rows = conn.execute(
            f"""
            SELECT id, user_id, action_type,
                   old_initial_usd_cents, new_initial_usd_cents,
                   old_initial_cup_cents, new_initial_cup_cents,
                   old_total_usd_cents, new_total_usd_cents,
                   old_total_cup_cents, new_total_cup_cents,
                   changed_at
              FROM balance_audit_log
             WHERE user_id = ?
             ORDER BY changed_at DESC, id DESC
             {limit_clause};
            """,
            params,
        ).fetchall()

    entries = []
    for row in rows:
        (
            entry_id,
            uid,
            action_type,
            old_init_usd,
            new_init_usd,
            old_init_cup,
            new_init_cup,
            old_total_usd,
            new_total_usd,
            old_total_cup,
            new_total_cup,
            changed_at_str,
        ) = row
        entries.append(
            BalanceAuditEntry(
                id=entry_id,
                user_id=uid,
                action_type=action_type,
                old_initial=CurrencyAmounts(
                    usd=from_cents(old_init_usd), cup=from_cents(old_init_cup)
                ),
                new_initial=CurrencyAmounts(
                    usd=from_cents(new_init_usd), cup=from_cents(new_init_cup)
                ),
                old_total=CurrencyAmounts(
                    usd=from_cents(old_total_usd), cup=from_cents(old_total_cup)
                ),
                new_total=CurrencyAmounts(
                    usd=from_cents(new_total_usd), cup=from_cents(new_total_cup)
                ),
                changed_at=datetime.fromisoformat(changed_at_str),
            )
        )
    return entries


# ---------------------------------------------------------------------------
# Warehouse: products and movements
# ---------------------------------------------------------------------------


def _row_to_product(row: tuple) -> Product:
    product_id, name, category, stock, min_stock, created_at_str = row
    return Product(
        id=product_id,
        name=name,
        category=category,
        stock=int(stock),
        min_stock=int(min_stock) if min_stock is not None else None,
        created_at=_parse_iso(created_at_str),
    )


def insert_product(
    cfg: DatabaseConfig,
    name: str,
    *,
    category: str | None = None,
    stock: int = 0,
    min_stock: int | None = None,
) -> Product:
    """Insert a warehouse product and return it."""
    init_database(cfg)

    with _session(cfg, "inserting a product") as conn:
        cur = conn.execute(
            """
            INSERT INTO products (name, category, stock, min_stock, created_at)
            VALUES (?, ?, ?, ?, ?);
            """,
            (name, category, int(stock), min_stock, _now_iso()),
        )
        product_id = cur.lastrowid

    logger.info("Inserted product #%s (%s)", product_id, name)

    result = get_product(cfg, product_id)
    if result is None:
        raise RuntimeError(f"Product #{product_id} was just inserted but could not be reloaded.")
    return result


def get_product(cfg: DatabaseConfig, product_id: int) -> Product | None:
    init_database(cfg)

    with _session(cfg, "loading a product") as conn:
        row = conn.execute(
            """
            SELECT id, name, category, stock, min_stock, created_at
              FROM products
             WHERE id = ?;
            """,
            (product_id,),
        ).fetchone()

    return _row_to_product(row) if row is not None else None


def list_products(cfg: DatabaseConfig) -> list[Product]:
    """Return every product, in store order (by id)."""
    init_database(cfg)

    with _session(cfg, "listing products") as conn:
        rows = conn.execute(
            """
            SELECT id, name, category, stock, min_stock, created_at
              FROM products
             ORDER BY id;
            """
        ).fetchall()

    return [_row_to_product(row) for row in rows]


_MOVEMENT_SELECT = """
    SELECT m.id, m.product_id, m.user_id, m.qty, m.type, m.created_at,
           p.name, p.category
      FROM movements AS m
      LEFT JOIN products AS p
        ON m.product_id = p.id
"""


def _row_to_movement(row: tuple) -> Movement:
    (
        movement_id,
        product_id,
        user_id,
        qty,
        type_,
        created_at_str,
        product_name,
        product_category,
    ) = row
    return Movement(
        id=movement_id,
        product_id=product_id,
        user_id=user_id,
        qty=int(qty),
        type=type_,
        created_at=datetime.fromisoformat(created_at_str),
        product_name=product_name,
        product_category=product_category,
    )


def insert_movement(
    cfg: DatabaseConfig,
    *,
    product_id: int,
    qty: int,
    type: str,
    user_id: str | None = None,
    created_at: date | datetime | None = None,
) -> Movement:
    """
    Record a stock movement and apply it to the product stock.

    The movement insert and the stock update happen in the same store
    transaction: 'in' adds ``qty`` to the stock, 'out' subtracts it.

    Raises
    ------
    NotFoundError
        If the product does not exist.
    """
    init_database(cfg)

    created_at_iso = _to_iso_datetime(created_at) if created_at else _now_iso()
    delta = qty if type == "in" else -qty

    with _session(cfg, "registering a movement") as conn:
        exists = conn.execute(
            "SELECT 1 FROM products WHERE id = ?;", (product_id,)
        ).fetchone()
        if exists is None:
            raise NotFoundError(f"Product #{product_id} not found.")

        cur = conn.execute(
            """
            INSERT INTO movements (product_id, user_id, qty, type, created_at)
            VALUES (?, ?, ?, ?, ?);
            """,
            (product_id, user_id, qty, type, created_at_iso),
        )
        movement_id = cur.lastrowid
        conn.execute(
            "UPDATE products SET stock = stock + ? WHERE id = ?;",
            (delta, product_id),
        )
        row = conn.execute(
            f"{_MOVEMENT_SELECT} WHERE m.id = ?;", (movement_id,)
        ).fetchone()

    logger.info(
        "Registered movement #%s: %s %s of product #%s",
        movement_id,
        type,
        qty,
        product_id,
    )
    return _row_to_movement(row)


def query_movements(
    cfg: DatabaseConfig, filters: MovementFilter | None = None
) -> list[Movement]:
    """
    Query stock movements, newest first, joined with their product.

    ``type`` is applied only for 'in' / 'out'; pagination uses 1-based
    ``page`` / ``page_size`` when both are set.
    """
    filters = filters or MovementFilter()
    init_database(cfg)

    where_clauses: list[str] = ["1 = 1"]
    params: list[object] = []

    if filters.start is not None:
        where_clauses.append("m.created_at >= ?")
        params.append(_to_iso_datetime(filters.start))
    if filters.end is not None:
        where_clauses.append("m.created_at < ?")
        params.append(_to_iso_datetime(filters.end))
    if filters.type in MOVEMENT_TYPES:
        where_clauses.append("m.type = ?")
        params.append(filters.type)
    if filters.product_id is not None:
        where_clauses.append("m.product_id = ?")
        params.append(filters.product_id)
    if filters.user_id is not None:
        where_clauses.append("m.user_id = ?")
        params.append(filters.user_id)

    limit_clause, limit_params = _pagination_clause(
        None, filters.page, filters.page_size
    )
    params.extend(limit_params)

    query = f"""
        {_MOVEMENT_SELECT}
         WHERE {' AND '.join(where_clauses)}
         ORDER BY m.created_at DESC, m.id DESC
         {limit_clause};
    """

    with _session(cfg, "querying movements") as conn:
        rows = conn.execute(query, params).fetchall()

    logger.debug("Fetched %d movements", len(rows))
    return [_row_to_movement(row) for row in rows]


# ---------------------------------------------------------------------------
# Inventory areas
# ---------------------------------------------------------------------------


def list_inventory_summary(
    cfg: DatabaseConfig,
    user_id: str,
    start: date | datetime | None = None,
    end: date | datetime | None = None,
) -> list[InventoryAreaSummary]:
    """
    Return the inventory areas of a user with the number of items created
    in the window (``start`` inclusive, ``end`` exclusive). Areas without
    items in the window are listed with a count of 0. Most recently
    created areas come first.
    """
    init_database(cfg)

    join_clauses = ["i.area_id = a.id", "i.user_id = a.user_id"]
    params: list[object] = []
    if start is not None:
        join_clauses.append("i.created_at >= ?")
        params.append(_to_iso_datetime(start))
    if end is not None:
        join_clauses.append("i.created_at < ?")
        params.append(_to_iso_datetime(end))
    params.append(user_id)

    with _session(cfg, "summarizing inventory areas") as conn:
        rows = conn.execute(
            f"""
            SELECT a.name, a.icon, COUNT(i.id)
              FROM inventory_areas AS a
              LEFT JOIN inventory_items AS i
                ON {' AND '.join(join_clauses)}
             WHERE a.user_id = ?
             GROUP BY a.id
             ORDER BY a.created_at DESC, a.id DESC;
            """,
            params,
        ).fetchall()

    return [
        InventoryAreaSummary(name=name, items_count=int(count), icon=icon)
        for name, icon, count in rows
    ]
