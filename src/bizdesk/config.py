# BizDesk - Finance, Warehouse & Inventory reporting for small businesses
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Configuration helpers for BizDesk.

This module is responsible for:
- loading the application configuration from a TOML file,
- exposing typed dataclasses used by the rest of the application
  (database location, report wording options, warehouse thresholds
  and logging options).
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from decimal import Decimal
from pathlib import Path
from typing import Any, Optional

import tomllib  # Python 3.11+

from .db import DatabaseConfig
from .exceptions import DataIntegrityError
from .money import to_decimal


@dataclass(frozen=True)
class ReportOptions:
    """
    Options driving the wording and thresholds of the narrative reports.

    Attributes
    ----------
    default_payment_method:
        Label shown for expenses recorded without a payment method.
    cash_payment_methods:
        Lower-case payment method labels counted as cash. Expenses without a
        payment method are always counted as cash.
    cash_dependency_threshold:
        Percentage of expenses paid in cash at or above which the
        conclusions flag a high dependence on cash.
    top_expenses:
        Number of rows in the main expenses table.
    top_products:
        Number of rows in the warehouse product flow table.
    status_label:
        Value of the "Report status" metadata line of the finance report.
    """

    default_payment_method: str = "Cash"
    cash_payment_methods: frozenset[str] = frozenset({"cash", "efectivo"})
    cash_dependency_threshold: Decimal = Decimal(100)
    top_expenses: int = 5
    top_products: int = 10
    status_label: str = "Partial, period cut-off"


@dataclass(frozen=True)
class LoggingConfig:
    level: str = "INFO"
    file: Optional[Path] = None


@dataclass(frozen=True)
class AppConfig:
    """
    Application-wide configuration for BizDesk.

    This aggregates:
    - the database configuration (where transactions, balances, products,
      movements and inventory areas are stored),
    - report options,
    - warehouse options,
    - logging options.
    """

    database: DatabaseConfig
    reports: ReportOptions = field(default_factory=ReportOptions)
    default_min_stock: int = 5
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def _load_toml(path: Path) -> dict[str, Any]:
    """
    Load a TOML file and return its content as a dictionary.

    Raises:
        FileNotFoundError: if the file does not exist.
        ValueError: if the TOML content cannot be parsed or is not a table.
    """
    if not path.is_file():
        raise FileNotFoundError(f"Config file not found: {path}")

    try:
        data = tomllib.loads(path.read_text(encoding="utf-8"))
    except Exception as exc:  # noqa: BLE001
        raise ValueError(f"Failed to parse TOML config file: {path}") from exc

    if not isinstance(data, dict):
        raise ValueError(f"Invalid TOML root type in {path}, expected a table.")

    return data


def _section(raw: Mapping[str, Any], name: str) -> Mapping[str, Any]:
    section = raw.get(name) or {}
    if not isinstance(section, Mapping):
        return {}
    return section


def _parse_report_options(section: Mapping[str, Any]) -> ReportOptions:
    defaults = ReportOptions()

    cash_methods_raw = section.get("cash_payment_methods")
    if cash_methods_raw is None:
        cash_methods = defaults.cash_payment_methods
    elif isinstance(cash_methods_raw, list):
        cash_methods = frozenset(str(m).strip().lower() for m in cash_methods_raw)
    else:
        raise ValueError("[reports].cash_payment_methods must be a list.")

    raw_threshold = section.get("cash_dependency_threshold")
    if raw_threshold is None:
        threshold = defaults.cash_dependency_threshold
    else:
        try:
            threshold = to_decimal(raw_threshold)
        except DataIntegrityError as exc:
            raise ValueError(
                "Invalid value for 'reports.cash_dependency_threshold'. "
                "Expected a number."
            ) from exc

    try:
        top_expenses = int(section.get("top_expenses", defaults.top_expenses))
        top_products = int(section.get("top_products", defaults.top_products))
    except (TypeError, ValueError) as exc:
        raise ValueError(
            "Invalid value for 'reports.top_expenses' or 'reports.top_products'. "
            "Expected an integer."
        ) from exc
    if top_expenses < 1 or top_products < 1:
        raise ValueError(
            "'reports.top_expenses' and 'reports.top_products' must be at least 1."
        )

    return ReportOptions(
        default_payment_method=str(
            section.get("default_payment_method", defaults.default_payment_method)
        ),
        cash_payment_methods=cash_methods,
        cash_dependency_threshold=threshold,
        top_expenses=top_expenses,
        top_products=top_products,
        status_label=str(section.get("status_label", defaults.status_label)),
    )


def load_app_config(config_path: Optional[str] = None) -> AppConfig:
    """
    Load the BizDesk application configuration from a TOML file.

    Expected top-level sections in the TOML file
    --------------------------------------------
    [database]
        Database engine and SQLite file path. Mandatory in practice: the
        database is the single source of truth for transactions, balances,
        warehouse movements and inventory areas.

    [reports]
        Optional wording and thresholds for narrative reports.

    [warehouse]
        Optional ``default_min_stock`` used when a product has no minimum.

    [logging]
        Optional ``level`` and ``file``.

    All file paths in the TOML are resolved relative to the directory of
    the TOML file itself.

    Returns
    -------
    AppConfig
        Parsed and validated application configuration.
    """
    if config_path is None:
        config_file = Path("bizdesk_config.toml").resolve()
    else:
        config_file = Path(config_path).resolve()

    raw = _load_toml(config_file)
    base_dir = config_file.parent

    # 1) Database section
    database_section = _section(raw, "database")
    db_engine = str(database_section.get("engine") or "sqlite")
    db_path_raw = database_section.get("path") or "data/db/bizdesk.sqlite"
    db_path = (base_dir / str(db_path_raw)).resolve()
    database_config = DatabaseConfig(engine=db_engine, path=db_path)

    # 2) Reports
    report_options = _parse_report_options(_section(raw, "reports"))

    # 3) Warehouse
    warehouse_section = _section(raw, "warehouse")
    try:
        default_min_stock = int(warehouse_section.get("default_min_stock", 5))
    except (TypeError, ValueError) as exc:
        raise ValueError(
            "Invalid value for 'warehouse.default_min_stock'. Expected an integer."
        ) from exc

    # 4) Logging
    logging_section = _section(raw, "logging")
    log_file_raw = logging_section.get("file")
    logging_config = LoggingConfig(
        level=str(logging_section.get("level", "INFO")).upper(),
        file=(base_dir / str(log_file_raw)).resolve() if log_file_raw else None,
    )

    return AppConfig(
        database=database_config,
        reports=report_options,
        default_min_stock=default_min_stock,
        logging=logging_config,
    )
