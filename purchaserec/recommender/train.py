"""Item difference model training module.

This module builds the item x item average-difference model used by the
collaborative predictor. For every user it compares the purchase counts of
each pair of products that user bought; averaging those differences over all
users gives a Slope-One style model of how much more one product tends to be
bought than another.

Building is quadratic in the number of distinct products per user
(O(users * max_products_per_user ** 2)). Callers with very large purchase
histories should cap the vector size with ``max_products_per_user``.
"""

import logging
from typing import Dict, Optional

import numpy as np

from purchaserec.exceptions import InvalidArgumentError
from purchaserec.recommender.models import DifferenceModel, PurchaseMatrix
from purchaserec.recommender.utils import (
    build_purchase_matrix,
    load_catalog_csv,
    load_orders_csv,
    save_model_artifacts,
    validate_purchase_matrix,
)

# Configure module logger
logger = logging.getLogger(__name__)

# Vectors larger than this get a warning about build cost
LARGE_VECTOR_WARNING_SIZE = 1000


def build_difference_model(
    purchase_matrix: PurchaseMatrix,
    max_products_per_user: Optional[int] = None,
) -> DifferenceModel:
    """Build the average-difference model from all users' purchase vectors.

    For every user and every ordered pair (p1, p2) of products in that user's
    vector, including p1 == p2, the difference count(p1) - count(p2) is added
    to the pair's running sum and the pair's frequency is incremented. The
    sums are then divided by the frequencies. Pairs that never appear together
    in one user's vector get no entry.

    Users are accumulated in sorted id order, so building twice from the same
    data gives identical floating-point results whatever the dict ordering.

    Args:
        purchase_matrix: Mapping of user ID -> product ID -> purchase count.
        max_products_per_user: Optional upper bound on distinct products in
            one user's vector.

    Returns:
        A new DifferenceModel.

    Raises:
        InvalidArgumentError: If a count is negative or not finite, or a
            vector exceeds max_products_per_user.
    """
    validate_purchase_matrix(purchase_matrix)

    avg_diffs: Dict[str, Dict[str, float]] = {}
    freqs: Dict[str, Dict[str, int]] = {}

    for user_id in sorted(purchase_matrix, key=str):
        purchases = purchase_matrix[user_id]
        n_products = len(purchases)
        if n_products == 0:
            continue

        if max_products_per_user is not None and n_products > max_products_per_user:
            raise InvalidArgumentError(
                "purchase_matrix",
                f"user {user_id} has {n_products} distinct products, "
                f"more than max_products_per_user={max_products_per_user}",
                n_products,
            )
        if n_products > LARGE_VECTOR_WARNING_SIZE:
            logger.warning(
                "Large purchase vector, difference model build is quadratic",
                extra={"user_id": user_id, "num_products": n_products},
            )

        product_ids = list(purchases)
        counts = np.array([purchases[pid] for pid in product_ids], dtype=np.float64)
        # diffs[i, j] = counts[i] - counts[j]
        diffs = np.subtract.outer(counts, counts)

        for i, product_a in enumerate(product_ids):
            diff_row = avg_diffs.setdefault(product_a, {})
            freq_row = freqs.setdefault(product_a, {})
            for j, product_b in enumerate(product_ids):
                diff_row[product_b] = diff_row.get(product_b, 0.0) + float(diffs[i, j])
                freq_row[product_b] = freq_row.get(product_b, 0) + 1

    # Turn the running sums into means
    for product_a, diff_row in avg_diffs.items():
        freq_row = freqs[product_a]
        for product_b in diff_row:
            diff_row[product_b] /= freq_row[product_b]

    model = DifferenceModel(avg_diffs=avg_diffs, freqs=freqs)

    logger.info(
        "Difference model built",
        extra={
            "num_users": len(purchase_matrix),
            "num_products": len(model),
            "num_pairs": model.num_pairs,
        },
    )

    return model


def train_difference_model(
    orders_csv: str,
    output_dir: str = "models",
    products_csv: Optional[str] = None,
    weight_by_quantity: bool = False,
    max_products_per_user: Optional[int] = None,
) -> DifferenceModel:
    """Build a difference model from order data and save it.

    This is the main entry point for training. It loads the orders CSV,
    aggregates it into a purchase matrix, builds the model and saves the
    artifacts.

    Args:
        orders_csv: Path to CSV file with columns order_id, user_id,
            product_id and optional quantity.
        output_dir: Directory where model artifacts will be saved.
        products_csv: Optional catalog CSV. When given, only its size is
            recorded in the metadata; products outside the catalog are still
            modelled and filtered at recommendation time.
        weight_by_quantity: Sum cart-item quantities instead of counting one
            unit per cart item.
        max_products_per_user: Optional cap on distinct products per user.

    Returns:
        The built DifferenceModel.

    Raises:
        FileNotFoundError: If a CSV file does not exist.
        ValueError: If data is invalid.
        OSError: If unable to save model artifacts.

    Example:
        >>> model = train_difference_model("data/orders.csv", output_dir="models")
        >>> print(f"Modelled {len(model)} products")
    """
    logger.info("=" * 60)
    logger.info("Starting difference model training")
    logger.info("=" * 60)

    try:
        catalog = load_catalog_csv(products_csv) if products_csv else None

        # Step 1: Load orders and aggregate into a purchase matrix
        orders_by_user = load_orders_csv(orders_csv, catalog=catalog)
        purchase_matrix = build_purchase_matrix(
            orders_by_user, weight_by_quantity=weight_by_quantity
        )

        # Step 2: Build the model
        model = build_difference_model(
            purchase_matrix, max_products_per_user=max_products_per_user
        )

        # Step 3: Save model artifacts
        metadata = {
            "num_users": len(purchase_matrix),
            "weight_by_quantity": weight_by_quantity,
            "orders_csv": str(orders_csv),
        }
        if catalog is not None:
            metadata["catalog_size"] = len(catalog)
        save_model_artifacts(model, output_dir, metadata=metadata)

        logger.info("=" * 60)
        logger.info("Training completed successfully!")
        logger.info("=" * 60)

        return model

    except Exception as e:
        logger.error(f"Training failed: {e}", exc_info=True)
        raise
