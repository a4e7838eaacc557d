# BizDesk - Finance, Warehouse & Inventory reporting for small businesses
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
BizDesk
-------

The computational core of a small-business management application covering
finance (cash tracking in USD and CUP), warehouse stock movements and
inventory areas.

Main capabilities:
- balance reconciliation: current balance = initial balance + net of the
  full transaction history, per currency, kept up to date after every
  transaction mutation (with an audit trail),
- dashboard statistics comparing the current and previous calendar months,
- yearly, monthly and distribution summaries for charts,
- warehouse statistics (low stock, categories, top products),
- narrative reports (finance, warehouse, inventory and a global composite)
  as a structured document model consumed by exporters,
- a database-first architecture (SQLite) and exact Decimal money handling.

BizDesk separates storage (db), computation (balance, aggregations,
reports) and configuration (TOML). It ships no user interface.


Version: 0.1.0
"""

__all__ = [
    "aggregations",
    "balance",
    "db",
    "reports",
    "summaries",
    "transactions",
    "warehouse",
]

__version__ = "0.1.0"
