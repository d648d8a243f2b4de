"""Tests for the item difference model builder.

This module contains unit tests for building the average-difference model,
its invariants, and the training pipeline that saves it to disk.
"""

import random
from pathlib import Path

import pandas as pd
import pytest

from purchaserec.exceptions import InvalidArgumentError
from purchaserec.recommender.models import DifferenceEntry, DifferenceModel
from purchaserec.recommender.train import build_difference_model, train_difference_model
from purchaserec.recommender.utils import (
    METADATA_FILENAME,
    MODEL_FILENAME,
    check_model_exists,
    load_model_artifacts,
)


@pytest.fixture
def two_user_matrix():
    """U1 bought P1 twice and P2 once; U2 bought P1 once and P2 three times."""
    return {
        "U1": {"P1": 2.0, "P2": 1.0},
        "U2": {"P1": 1.0, "P2": 3.0},
    }


@pytest.fixture
def random_matrix():
    """Purchase matrix with 30 users and fractional counts."""
    rng = random.Random(7)
    matrix = {}
    for user in range(30):
        products = rng.sample(range(12), rng.randint(0, 6))
        matrix[f"U{user}"] = {
            f"P{p}": round(rng.uniform(0.1, 5.0), 3) for p in products
        }
    return matrix


def test_average_difference_for_two_users(two_user_matrix):
    """Test the mean difference and frequency of a co-purchased pair."""
    model = build_difference_model(two_user_matrix)

    assert model.avg_diffs["P1"]["P2"] == pytest.approx(-0.5)
    assert model.freqs["P1"]["P2"] == 2
    assert model.avg_diffs["P2"]["P1"] == pytest.approx(0.5)
    assert model.entry("P2", "P1") == DifferenceEntry(pytest.approx(0.5), 2)


def test_self_pairs_are_included(two_user_matrix):
    """Test that every product is paired with itself with zero difference."""
    model = build_difference_model(two_user_matrix)

    assert model.avg_diffs["P1"]["P1"] == 0.0
    assert model.freqs["P1"]["P1"] == 2


def test_products_never_bought_together_have_no_entry():
    """Test that pairs are only built from one user's own purchases."""
    model = build_difference_model({"U1": {"P1": 1.0}, "U2": {"P2": 4.0}})

    assert model.entry("P1", "P2") is None
    assert model.entry("P2", "P1") is None
    assert sorted(model.products) == ["P1", "P2"]
    assert model.num_pairs == 2


def test_users_without_purchases_are_skipped():
    """Test that empty purchase vectors contribute nothing."""
    model = build_difference_model({"U1": {}, "U2": {"P1": 2.0}})

    assert len(model) == 1
    assert model.freqs == {"P1": {"P1": 1}}


def test_empty_matrix_builds_empty_model():
    """Test that no purchase history gives an empty model."""
    model = build_difference_model({})

    assert len(model) == 0
    assert model.num_pairs == 0


def test_build_is_independent_of_user_order(random_matrix):
    """Test that reordering users gives bit-identical results."""
    reordered = dict(reversed(list(random_matrix.items())))
    reordered = {
        user: dict(reversed(list(purchases.items())))
        for user, purchases in reordered.items()
    }

    model_a = build_difference_model(random_matrix)
    model_b = build_difference_model(reordered)

    assert model_a.avg_diffs == model_b.avg_diffs
    assert model_a.freqs == model_b.freqs


def test_differences_are_antisymmetric(random_matrix):
    """Test that (A, B) is the negation of (B, A) with the same frequency."""
    model = build_difference_model(random_matrix)

    for product_a, row in model.avg_diffs.items():
        for product_b, avg_diff in row.items():
            assert model.avg_diffs[product_b][product_a] == pytest.approx(-avg_diff)
            assert model.freqs[product_b][product_a] == model.freqs[product_a][product_b]


def test_build_does_not_modify_input(two_user_matrix):
    """Test that the purchase matrix is left untouched."""
    snapshot = {user: dict(v) for user, v in two_user_matrix.items()}

    build_difference_model(two_user_matrix)

    assert two_user_matrix == snapshot


def test_negative_count_raises():
    """Test that negative purchase counts are rejected."""
    with pytest.raises(InvalidArgumentError, match="negative"):
        build_difference_model({"U1": {"P1": -1.0}})


def test_non_finite_count_raises():
    """Test that NaN counts are rejected."""
    with pytest.raises(InvalidArgumentError, match="finite"):
        build_difference_model({"U1": {"P1": float("nan")}})


def test_max_products_per_user_is_enforced(two_user_matrix):
    """Test that a purchase vector above the cap is rejected."""
    with pytest.raises(InvalidArgumentError, match="max_products_per_user"):
        build_difference_model(two_user_matrix, max_products_per_user=1)

    model = build_difference_model(two_user_matrix, max_products_per_user=2)
    assert len(model) == 2


def test_to_frame_lists_every_pair(two_user_matrix):
    """Test the long-format export of the model."""
    df = build_difference_model(two_user_matrix).to_frame()

    assert list(df.columns) == ["product_a", "product_b", "avg_diff", "freq"]
    assert len(df) == 4
    row = df[(df["product_a"] == "P1") & (df["product_b"] == "P2")].iloc[0]
    assert row["avg_diff"] == pytest.approx(-0.5)
    assert row["freq"] == 2


@pytest.fixture
def orders_csv(tmp_path: Path) -> Path:
    """Orders CSV equivalent to the two-user matrix."""
    df = pd.DataFrame(
        [
            {"order_id": "O1", "user_id": "U1", "product_id": "P1", "quantity": 1},
            {"order_id": "O1", "user_id": "U1", "product_id": "P2", "quantity": 4},
            {"order_id": "O2", "user_id": "U1", "product_id": "P1", "quantity": 1},
            {"order_id": "O3", "user_id": "U2", "product_id": "P1", "quantity": 1},
            {"order_id": "O3", "user_id": "U2", "product_id": "P2", "quantity": 1},
            {"order_id": "O4", "user_id": "U2", "product_id": "P2", "quantity": 1},
            {"order_id": "O5", "user_id": "U2", "product_id": "P2", "quantity": 1},
        ]
    )
    csv_path = tmp_path / "orders.csv"
    df.to_csv(csv_path, index=False)
    return csv_path


def test_train_difference_model_creates_artifacts(orders_csv: Path, tmp_path: Path):
    """Test that the pipeline saves a model that loads back identically."""
    output_dir = tmp_path / "model"

    model = train_difference_model(str(orders_csv), output_dir=str(output_dir))

    assert (output_dir / MODEL_FILENAME).exists()
    assert (output_dir / METADATA_FILENAME).exists()
    assert check_model_exists(str(output_dir))

    loaded, metadata = load_model_artifacts(str(output_dir))
    assert isinstance(loaded, DifferenceModel)
    assert loaded.avg_diffs == model.avg_diffs
    assert loaded.freqs == model.freqs
    assert loaded.avg_diffs["P1"]["P2"] == pytest.approx(-0.5)
    assert metadata["num_users"] == 2
    assert metadata["num_pairs"] == 4
    assert metadata["weight_by_quantity"] is False


def test_train_difference_model_weight_by_quantity(orders_csv: Path, tmp_path: Path):
    """Test that quantity weighting changes the counts used."""
    model = train_difference_model(
        str(orders_csv),
        output_dir=str(tmp_path / "model"),
        weight_by_quantity=True,
    )

    # U1 now has P1: 2, P2: 4; U2 has P1: 1, P2: 3
    assert model.avg_diffs["P1"]["P2"] == pytest.approx(-2.0)


def test_train_difference_model_missing_csv(tmp_path: Path):
    """Test that a missing orders CSV raises FileNotFoundError."""
    with pytest.raises(FileNotFoundError):
        train_difference_model(
            str(tmp_path / "nonexistent.csv"), output_dir=str(tmp_path)
        )


def test_train_difference_model_missing_columns(tmp_path: Path):
    """Test that an orders CSV without required columns is rejected."""
    bad_csv = tmp_path / "bad.csv"
    bad_csv.write_text("id,name\n1,test\n")

    with pytest.raises(ValueError, match="missing required columns"):
        train_difference_model(str(bad_csv), output_dir=str(tmp_path))
