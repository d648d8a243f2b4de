"""Tests for order/catalog loading, aggregation and artifact helpers."""

from datetime import datetime
from pathlib import Path

import pytest

from purchaserec.exceptions import InvalidArgumentError
from purchaserec.recommender.models import Product
from purchaserec.recommender.train import build_difference_model
from purchaserec.recommender.utils import (
    build_purchase_matrix,
    check_model_exists,
    load_catalog_csv,
    load_model_artifacts,
    load_orders_csv,
    load_purchase_matrix_csv,
    save_model_artifacts,
    validate_purchase_matrix,
    validate_top_n,
)

ORDERS_CSV = """order_id,user_id,product_id,quantity
O1,U1,P1,1
O1,U1,P2,3
O2,U1,P1,2
O3,U2,P2,1
O4,U2,P3,
"""

PRODUCTS_CSV = """product_id,name,price,category
P1,Kettle,25.5,home
P2,Novel,,books
P1,Duplicate,1,home
"""


@pytest.fixture
def orders_csv(tmp_path: Path) -> Path:
    """Write a small orders CSV."""
    path = tmp_path / "orders.csv"
    path.write_text(ORDERS_CSV)
    return path


@pytest.fixture
def products_csv(tmp_path: Path) -> Path:
    """Write a small products CSV."""
    path = tmp_path / "products.csv"
    path.write_text(PRODUCTS_CSV)
    return path


def test_load_orders_csv_groups_by_user_and_order(orders_csv, products_csv):
    """Test that rows become orders with one cart item per row."""
    catalog = load_catalog_csv(str(products_csv))
    orders_by_user = load_orders_csv(str(orders_csv), catalog=catalog)

    assert list(orders_by_user) == ["U1", "U2"]
    u1_orders = orders_by_user["U1"]
    assert [order.id for order in u1_orders] == ["O1", "O2"]
    first_items = u1_orders[0].cart.cart_items
    assert [item.product.id for item in first_items] == ["P1", "P2"]
    assert first_items[0].product.name == "Kettle"
    assert first_items[1].quantity == 3
    # P3 is not in the catalog and has no quantity
    p3_item = orders_by_user["U2"][1].cart.cart_items[0]
    assert p3_item.product == Product(id="P3")
    assert p3_item.quantity == 1


def test_build_purchase_matrix_counts_cart_items(orders_csv):
    """Test one unit per cart item by default, quantities when asked."""
    orders_by_user = load_orders_csv(str(orders_csv))

    assert build_purchase_matrix(orders_by_user) == {
        "U1": {"P1": 2.0, "P2": 1.0},
        "U2": {"P2": 1.0, "P3": 1.0},
    }
    assert build_purchase_matrix(orders_by_user, weight_by_quantity=True) == {
        "U1": {"P1": 3.0, "P2": 3.0},
        "U2": {"P2": 1.0, "P3": 1.0},
    }


def test_users_without_orders_get_empty_vector():
    """Test that a user with no orders maps to an empty purchase vector."""
    assert build_purchase_matrix({"U1": []}) == {"U1": {}}


def test_csv_aggregation_matches_entity_aggregation(orders_csv):
    """Test that the pandas path and the entity path agree."""
    orders_by_user = load_orders_csv(str(orders_csv))

    for weighted in (False, True):
        assert load_purchase_matrix_csv(
            str(orders_csv), weight_by_quantity=weighted
        ) == build_purchase_matrix(orders_by_user, weight_by_quantity=weighted)


def test_load_catalog_csv(products_csv):
    """Test catalog loading, missing prices and duplicate rows."""
    catalog = load_catalog_csv(str(products_csv))

    assert len(catalog) == 2
    assert catalog.get("P1") == Product(
        id="P1", name="Kettle", price=25.5, category="home"
    )
    assert catalog.get("P2").price is None
    assert catalog.get("P9") is None
    assert "P2" in catalog


def test_catalog_materialize_drops_missing(products_csv):
    """Test that unknown ids are dropped and order is kept."""
    catalog = load_catalog_csv(str(products_csv))

    products = catalog.materialize(["P2", "P9", "P1"])

    assert [p.id for p in products] == ["P2", "P1"]


def test_load_orders_csv_missing_file(tmp_path):
    """Test that a missing CSV raises FileNotFoundError."""
    with pytest.raises(FileNotFoundError):
        load_orders_csv(str(tmp_path / "nope.csv"))


def test_load_orders_csv_empty(tmp_path):
    """Test that a CSV with only a header is rejected."""
    path = tmp_path / "empty.csv"
    path.write_text("order_id,user_id,product_id\n")

    with pytest.raises(ValueError, match="empty"):
        load_orders_csv(str(path))


def test_load_catalog_csv_missing_columns(tmp_path):
    """Test that a catalog without product_id is rejected."""
    path = tmp_path / "products.csv"
    path.write_text("sku,name\n1,x\n")

    with pytest.raises(ValueError, match="missing required columns"):
        load_catalog_csv(str(path))


def test_validate_top_n():
    """Test accepted and rejected top_n values."""
    assert validate_top_n(0) == 0
    assert validate_top_n(5) == 5
    with pytest.raises(InvalidArgumentError):
        validate_top_n(-3)
    with pytest.raises(InvalidArgumentError):
        validate_top_n(None)


def test_validate_purchase_matrix_rejects_bad_shapes():
    """Test that non-mapping matrices and vectors are rejected."""
    with pytest.raises(InvalidArgumentError):
        validate_purchase_matrix([("U1", {"P1": 1.0})])
    with pytest.raises(InvalidArgumentError):
        validate_purchase_matrix({"U1": ["P1"]})
    with pytest.raises(InvalidArgumentError, match="not a number"):
        validate_purchase_matrix({"U1": {"P1": "2"}})


def test_model_artifacts_round_trip(tmp_path):
    """Test saving and loading a model with metadata."""
    model = build_difference_model({"U1": {"P1": 1.0, "P2": 2.0}})
    model_dir = tmp_path / "model"

    assert not check_model_exists(str(model_dir))
    save_model_artifacts(model, str(model_dir), metadata={"num_users": 1})
    assert check_model_exists(str(model_dir))

    loaded, metadata = load_model_artifacts(str(model_dir))
    assert loaded.avg_diffs == model.avg_diffs
    assert loaded.freqs == model.freqs
    assert metadata["num_users"] == 1
    assert metadata["num_products"] == 2
    assert datetime.fromisoformat(metadata["built_at"]).tzinfo is not None


def test_load_model_artifacts_missing_dir(tmp_path):
    """Test that a missing model directory raises FileNotFoundError."""
    with pytest.raises(FileNotFoundError):
        load_model_artifacts(str(tmp_path / "missing"))


def test_invalid_quantities_are_dropped(tmp_path):
    """Test that zero, negative and unparsable quantities drop their rows."""
    path = tmp_path / "orders.csv"
    path.write_text(
        "order_id,user_id,product_id,quantity\n"
        "O1,U1,P1,0\n"
        "O1,U1,P2,-2\n"
        "O1,U1,P3,many\n"
        "O2,U2,P1,1\n"
    )

    orders_by_user = load_orders_csv(str(path))

    assert list(orders_by_user) == ["U2"]
    assert load_purchase_matrix_csv(str(path)) == {"U2": {"P1": 1.0}}


def test_fractional_quantities_are_kept(tmp_path):
    """Test that quantity weighting sums fractional quantities exactly."""
    path = tmp_path / "orders.csv"
    path.write_text(
        "order_id,user_id,product_id,quantity\nO1,U1,P1,2.5\nO2,U1,P1,0.25\n"
    )

    expected = {"U1": {"P1": 2.75}}
    assert load_purchase_matrix_csv(str(path), weight_by_quantity=True) == expected
    orders_by_user = load_orders_csv(str(path))
    assert orders_by_user["U1"][0].cart.cart_items[0].quantity == 2.5
    assert build_purchase_matrix(orders_by_user, weight_by_quantity=True) == expected
    assert load_purchase_matrix_csv(str(path)) == {"U1": {"P1": 2.0}}
