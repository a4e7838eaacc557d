import pytest

from bizdesk.db import DatabaseConfig, get_product, insert_product, query_movements
from bizdesk.exceptions import NotFoundError
from bizdesk.warehouse import (
    CategoryCount,
    get_warehouse_stats,
    is_low_stock,
    register_movement,
)


def make_tmp_db_cfg(tmp_path) -> DatabaseConfig:
    """Helper to build a DatabaseConfig pointing to a temporary SQLite file."""
    return DatabaseConfig(engine="sqlite", path=tmp_path / "warehouse.sqlite")


def test_register_movement_adjusts_stock(tmp_path):
    cfg = make_tmp_db_cfg(tmp_path)
    product = insert_product(cfg, "Rice", category="Food", stock=4)

    register_movement(cfg, "u1", product.id, 10, "in")
    movement = register_movement(cfg, "u1", product.id, 3, "out")

    assert movement.user_id == "u1"
    assert movement.product_name == "Rice"
    assert get_product(cfg, product.id).stock == 11
    assert len(query_movements(cfg)) == 2


@pytest.mark.parametrize(
    ("qty", "type_"),
    [(0, "in"), (-2, "out"), (1.5, "in"), (True, "in"), (2, "transfer")],
)
def test_register_movement_validates_arguments(tmp_path, qty, type_):
    cfg = make_tmp_db_cfg(tmp_path)
    product = insert_product(cfg, "Rice", stock=4)

    with pytest.raises(ValueError):
        register_movement(cfg, "u1", product.id, qty, type_)

    assert get_product(cfg, product.id).stock == 4


def test_register_movement_for_missing_product(tmp_path):
    cfg = make_tmp_db_cfg(tmp_path)

    with pytest.raises(NotFoundError):
        register_movement(cfg, "u1", 404, 1, "in")
    assert query_movements(cfg) == []


def test_warehouse_stats(tmp_path):
    cfg = make_tmp_db_cfg(tmp_path)
    insert_product(cfg, "Rice", category="Food", stock=20, min_stock=10)
    insert_product(cfg, "Beans", category="Food", stock=8, min_stock=10)
    insert_product(cfg, "Soap", category="Cleaning", stock=5)
    insert_product(cfg, "Paper", category=None, stock=20, min_stock=0)

    stats = get_warehouse_stats(cfg, top=3)

    assert stats.total_products == 4
    # Beans (8 <= 10) and Soap (5 <= default 5).
    assert stats.low_stock_count == 2
    assert stats.distribution_by_category == [
        CategoryCount("Food", 2),
        CategoryCount("Cleaning", 1),
        CategoryCount("Uncategorized", 1),
    ]
    assert [p.name for p in stats.top_products] == ["Rice", "Paper", "Beans"]


def test_warehouse_stats_on_empty_store(tmp_path):
    stats = get_warehouse_stats(make_tmp_db_cfg(tmp_path))

    assert stats.total_products == 0
    assert stats.low_stock_count == 0
    assert stats.distribution_by_category == []
    assert stats.top_products == []


def test_zero_min_stock_falls_back_to_default(tmp_path):
    cfg = make_tmp_db_cfg(tmp_path)
    product = insert_product(cfg, "Paper", stock=3, min_stock=0)

    assert is_low_stock(product) is True
    assert is_low_stock(product, default_min_stock=2) is False
