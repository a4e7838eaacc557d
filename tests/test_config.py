from decimal import Decimal
from pathlib import Path

import pytest

from bizdesk.config import AppConfig, ReportOptions, load_app_config


def write_config(tmp_path: Path, content: str) -> Path:
    path = tmp_path / "bizdesk_config.toml"
    path.write_text(content, encoding="utf-8")
    return path


def test_minimal_config_uses_defaults(tmp_path):
    path = write_config(tmp_path, "[database]\nengine = \"sqlite\"\n")

    cfg = load_app_config(str(path))

    assert isinstance(cfg, AppConfig)
    assert cfg.database.engine == "sqlite"
    assert cfg.database.path == (tmp_path / "data/db/bizdesk.sqlite").resolve()
    assert cfg.reports == ReportOptions()
    assert cfg.default_min_stock == 5
    assert cfg.logging.level == "INFO"
    assert cfg.logging.file is None


def test_full_config_is_parsed(tmp_path):
    path = write_config(
        tmp_path,
        """
[database]
engine = "sqlite"
path = "db/app.sqlite"

[reports]
default_payment_method = "Efectivo"
cash_payment_methods = ["Cash", "EFECTIVO", "caja"]
cash_dependency_threshold = 80
top_expenses = 3
top_products = 7
status_label = "Final"

[warehouse]
default_min_stock = 2

[logging]
level = "debug"
file = "logs/bizdesk.log"
""",
    )

    cfg = load_app_config(str(path))

    assert cfg.database.path == (tmp_path / "db/app.sqlite").resolve()
    assert cfg.reports.default_payment_method == "Efectivo"
    assert cfg.reports.cash_payment_methods == frozenset({"cash", "efectivo", "caja"})
    assert cfg.reports.cash_dependency_threshold == Decimal(80)
    assert cfg.reports.top_expenses == 3
    assert cfg.reports.top_products == 7
    assert cfg.reports.status_label == "Final"
    assert cfg.default_min_stock == 2
    assert cfg.logging.level == "DEBUG"
    assert cfg.logging.file == (tmp_path / "logs/bizdesk.log").resolve()


def test_missing_config_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_app_config(str(tmp_path / "missing.toml"))


def test_invalid_toml_is_a_value_error(tmp_path):
    path = write_config(tmp_path, "[database\nengine = ")

    with pytest.raises(ValueError):
        load_app_config(str(path))


@pytest.mark.parametrize(
    "content",
    [
        "[reports]\ncash_dependency_threshold = \"high\"\n",
        "[reports]\ntop_expenses = \"five\"\n",
        "[reports]\ntop_expenses = -1\n",
        "[reports]\ntop_expenses = 0\n",
        "[reports]\ntop_products = -1\n",
        "[warehouse]\ndefault_min_stock = \"low\"\n",
    ],
)
def test_invalid_values_are_rejected(tmp_path, content):
    path = write_config(tmp_path, content)

    with pytest.raises(ValueError):
        load_app_config(str(path))
