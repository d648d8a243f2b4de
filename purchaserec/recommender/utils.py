"""Utility functions for the recommendation system.

This module provides helper functions for loading order and catalog data,
aggregating orders into purchase matrices, validating recommender arguments,
and managing model artifacts on disk.
"""

import logging
import math
from datetime import datetime, timezone
from numbers import Integral, Real
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

import joblib
import numpy as np
import pandas as pd

from purchaserec.exceptions import InvalidArgumentError
from purchaserec.recommender.catalog import Catalog
from purchaserec.recommender.models import (
    Cart,
    CartItem,
    DifferenceModel,
    Order,
    Product,
    PurchaseMatrix,
)

# Configure module logger
logger = logging.getLogger(__name__)

# Model artifact filenames
MODEL_FILENAME = "difference_model.joblib"
METADATA_FILENAME = "model_metadata.joblib"

# CSV columns
ORDER_COLUMNS = {"order_id", "user_id", "product_id"}
PRODUCT_COLUMNS = {"product_id"}


def validate_top_n(top_n: Any) -> int:
    """Check that ``top_n`` is a non-negative integer.

    Raises:
        InvalidArgumentError: If top_n is not an integer or is negative.
    """
    if isinstance(top_n, bool) or not isinstance(top_n, Integral):
        raise InvalidArgumentError("top_n", "must be an integer", top_n)
    if top_n < 0:
        raise InvalidArgumentError("top_n", "must not be negative", top_n)
    return int(top_n)


def validate_purchase_vector(
    purchases: Any, user_id: Optional[str] = None
) -> None:
    """Check that a purchase vector maps product ids to finite counts >= 0.

    Raises:
        InvalidArgumentError: If the vector is not a mapping or holds a
            negative, non-finite or non-numeric count.
    """
    argument = "purchases" if user_id is None else f"purchases[{user_id}]"
    if not isinstance(purchases, Mapping):
        raise InvalidArgumentError(argument, "must be a mapping", purchases)

    for product_id, count in purchases.items():
        if isinstance(count, bool) or not isinstance(count, Real):
            raise InvalidArgumentError(
                argument, f"count for product {product_id} is not a number", count
            )
        if not math.isfinite(count):
            raise InvalidArgumentError(
                argument, f"count for product {product_id} is not finite", count
            )
        if count < 0:
            raise InvalidArgumentError(
                argument, f"count for product {product_id} is negative", count
            )


def validate_purchase_matrix(purchase_matrix: Any) -> None:
    """Check every purchase vector in a user -> vector mapping."""
    if not isinstance(purchase_matrix, Mapping):
        raise InvalidArgumentError(
            "purchase_matrix", "must be a mapping", type(purchase_matrix).__name__
        )
    for user_id, purchases in purchase_matrix.items():
        validate_purchase_vector(purchases, user_id=user_id)


def _read_csv(csv_path: str, required_columns: set, kind: str) -> pd.DataFrame:
    csv_file = Path(csv_path)
    if not csv_file.exists():
        raise FileNotFoundError(f"CSV file not found: {csv_path}")

    logger.info(f"Loading {kind} CSV from {csv_path}")
    df = pd.read_csv(csv_path, dtype=str)

    if not required_columns.issubset(df.columns):
        missing = required_columns - set(df.columns)
        raise ValueError(f"CSV missing required columns: {missing}")

    if df.empty:
        raise ValueError(f"Cannot load {kind} from empty CSV")

    n_rows = len(df)
    df = df.dropna(subset=sorted(required_columns))
    if len(df) < n_rows:
        logger.warning(
            f"Dropped {n_rows - len(df)} {kind} rows with missing identifiers"
        )

    return df


def _parse_quantities(df: pd.DataFrame) -> pd.DataFrame:
    """Return ``df`` with a float quantity column, blank quantities set to 1.

    Rows whose quantity is unparsable, non-finite or not positive are dropped.
    """
    if "quantity" not in df.columns:
        return df.assign(quantity=1.0)

    missing = df["quantity"].isna()
    quantities = pd.to_numeric(df["quantity"], errors="coerce").astype("float64")
    quantities = quantities.mask(missing, 1.0)

    valid = np.isfinite(quantities) & (quantities > 0)
    n_invalid = int((~valid).sum())
    if n_invalid:
        logger.warning(
            f"Dropped {n_invalid} orders rows with invalid quantity",
            extra={"invalid_quantities": df.loc[~valid, "quantity"].tolist()},
        )

    return df.assign(quantity=quantities)[valid]


def load_catalog_csv(csv_path: str) -> Catalog:
    """Load a product catalog from CSV.

    Args:
        csv_path: CSV with a product_id column and optional name, price and
            category columns.

    Returns:
        Catalog with one Product per distinct product id (first row wins).

    Raises:
        FileNotFoundError: If CSV file does not exist.
        ValueError: If CSV is missing the product_id column or is empty.
    """
    df = _read_csv(csv_path, PRODUCT_COLUMNS, "products")
    df = df.drop_duplicates(subset="product_id", keep="first")

    if "price" in df.columns:
        df = df.assign(price=pd.to_numeric(df["price"], errors="coerce"))

    products = []
    for record in df.to_dict(orient="records"):
        price = record.get("price")
        products.append(
            Product(
                id=record["product_id"],
                name=_none_if_missing(record.get("name")),
                price=None if price is None or pd.isna(price) else float(price),
                category=_none_if_missing(record.get("category")),
            )
        )

    logger.info(f"Loaded {len(products)} products")
    return Catalog(products)


def _none_if_missing(value: Any) -> Optional[str]:
    if value is None or (isinstance(value, float) and math.isnan(value)):
        return None
    return str(value)


def load_orders_csv(
    csv_path: str,
    catalog: Optional[Catalog] = None,
) -> Dict[str, List[Order]]:
    """Load orders from CSV and group them by user.

    Each row is one cart item: order_id, user_id, product_id and an optional
    quantity (default 1) and cart_item_id. Rows of the same order become the
    cart items of one Order, in file order. Rows with an invalid quantity are
    dropped.

    Args:
        csv_path: Path to the orders CSV.
        catalog: Catalog used to attach full products to cart items. Products
            missing from it are attached with only their id.

    Returns:
        Dictionary mapping user IDs to their orders, in order of first
        appearance.

    Raises:
        FileNotFoundError: If CSV file does not exist.
        ValueError: If CSV is missing required columns or is empty.
    """
    df = _parse_quantities(_read_csv(csv_path, ORDER_COLUMNS, "orders"))

    logger.info(f"Loaded {len(df)} cart item records")

    orders_by_user: Dict[str, List[Order]] = {}
    for (user_id, order_id), rows in df.groupby(["user_id", "order_id"], sort=False):
        cart_items = []
        for record in rows.to_dict(orient="records"):
            product_id = record["product_id"]
            product = catalog.get(product_id) if catalog is not None else None
            cart_items.append(
                CartItem(
                    id=_none_if_missing(record.get("cart_item_id")),
                    product=product or Product(id=product_id),
                    quantity=float(record["quantity"]),
                )
            )
        order = Order(
            id=order_id,
            cart=Cart(id=order_id, user_id=user_id, cart_items=cart_items),
        )
        orders_by_user.setdefault(user_id, []).append(order)

    logger.info(
        f"Grouped orders for {len(orders_by_user)} users",
        extra={"num_orders": int(df["order_id"].nunique())},
    )
    return orders_by_user


def count_order_products(
    orders: Sequence[Order], weight_by_quantity: bool = False
) -> Dict[str, float]:
    """Build one user's purchase vector from their orders.

    By default every cart item counts as one purchase of its product, whatever
    its quantity. With ``weight_by_quantity`` the cart-item quantities are
    summed instead.
    """
    counts: Dict[str, float] = {}
    for order in orders:
        for cart_item in order.cart.cart_items:
            units = float(cart_item.quantity) if weight_by_quantity else 1.0
            product_id = cart_item.product.id
            counts[product_id] = counts.get(product_id, 0.0) + units
    return counts


def build_purchase_matrix(
    orders_by_user: Mapping[str, Sequence[Order]],
    weight_by_quantity: bool = False,
) -> PurchaseMatrix:
    """Aggregate every user's orders into a purchase matrix.

    Users without orders map to an empty purchase vector.
    """
    purchase_matrix = {
        user_id: count_order_products(orders, weight_by_quantity)
        for user_id, orders in orders_by_user.items()
    }
    logger.debug(f"Built purchase matrix for {len(purchase_matrix)} users")
    return purchase_matrix


def load_purchase_matrix_csv(
    csv_path: str,
    weight_by_quantity: bool = False,
) -> PurchaseMatrix:
    """Load an orders CSV directly into a purchase matrix.

    Equivalent to ``build_purchase_matrix(load_orders_csv(csv_path))`` but
    aggregates with pandas instead of materializing Order entities.

    Raises:
        FileNotFoundError: If CSV file does not exist.
        ValueError: If CSV is missing required columns or is empty.
    """
    df = _parse_quantities(_read_csv(csv_path, ORDER_COLUMNS, "orders"))

    grouped = df.groupby(["user_id", "product_id"], sort=False)
    if weight_by_quantity:
        counts = grouped["quantity"].sum()
    else:
        counts = grouped.size()

    purchase_matrix: PurchaseMatrix = {}
    for (user_id, product_id), count in counts.items():
        purchase_matrix.setdefault(user_id, {})[product_id] = float(count)

    n_products = df["product_id"].nunique()
    logger.info(f"Unique users: {len(purchase_matrix)}")
    logger.info(f"Unique products: {n_products}")
    logger.info(
        f"Non-zero entries: {sum(len(v) for v in purchase_matrix.values())}"
    )

    return purchase_matrix


def save_model_artifacts(
    model: DifferenceModel,
    output_dir: str,
    metadata: Optional[Dict[str, Any]] = None,
    model_filename: str = MODEL_FILENAME,
    metadata_filename: str = METADATA_FILENAME,
) -> None:
    """Save a difference model and its metadata to disk.

    Creates the output directory if it doesn't exist.

    Args:
        model: Difference model to save.
        output_dir: Directory path where artifacts will be saved.
        metadata: Extra build information stored next to the model. The
            build timestamp and model size are always recorded.
        model_filename: Filename for the model.
        metadata_filename: Filename for the metadata.

    Raises:
        OSError: If unable to create output directory or save files.
    """
    output_path = Path(output_dir)
    output_path.mkdir(parents=True, exist_ok=True)

    logger.info(f"Saving model artifacts to {output_dir}")

    model_path = output_path / model_filename
    joblib.dump(model.to_dict(), model_path)
    logger.info(f"Saved model to {model_path}")

    full_metadata = {
        "built_at": datetime.now(timezone.utc).isoformat(),
        "num_products": len(model),
        "num_pairs": model.num_pairs,
    }
    full_metadata.update(metadata or {})

    metadata_path = output_path / metadata_filename
    joblib.dump(full_metadata, metadata_path)
    logger.info(f"Saved metadata to {metadata_path}")


def load_model_artifacts(
    model_dir: str,
    model_filename: str = MODEL_FILENAME,
    metadata_filename: str = METADATA_FILENAME,
) -> Tuple[DifferenceModel, Dict[str, Any]]:
    """Load a difference model and its metadata from disk.

    Returns:
        A tuple containing the DifferenceModel and the metadata dictionary.

    Raises:
        FileNotFoundError: If any required artifact file is missing.
    """
    model_path = Path(model_dir)

    if not model_path.exists():
        raise FileNotFoundError(f"Model directory does not exist: {model_dir}")

    logger.info(f"Loading model artifacts from {model_dir}")

    model_file = model_path / model_filename
    if not model_file.exists():
        raise FileNotFoundError(f"Model file not found: {model_file}")
    model = DifferenceModel.from_dict(joblib.load(model_file))
    logger.info(f"Loaded model from {model_file}")
    logger.info(f"Number of products: {len(model)}")

    metadata_file = model_path / metadata_filename
    if not metadata_file.exists():
        raise FileNotFoundError(f"Metadata file not found: {metadata_file}")
    metadata = joblib.load(metadata_file)

    return model, metadata


def get_model_paths(
    model_dir: str,
    model_filename: str = MODEL_FILENAME,
    metadata_filename: str = METADATA_FILENAME,
) -> Tuple[Path, Path]:
    """Get file paths for model artifacts without loading them."""
    model_path = Path(model_dir)
    return model_path / model_filename, model_path / metadata_filename


def check_model_exists(model_dir: str) -> bool:
    """Check if all required model artifacts exist."""
    return all(path.exists() for path in get_model_paths(model_dir))
