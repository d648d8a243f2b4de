"""Generate fake order and catalog data for testing and development.

Creates synthetic ``orders.csv`` (one row per cart item) and ``products.csv``
files in the layout the PurchaseRec loaders expect.

Example:
    Run the script directly to generate default data:
        $ python scripts/generate_fake_data.py

    Or import and use programmatically:
        from scripts.generate_fake_data import generate_fake_orders
        df = generate_fake_orders(num_users=100, num_products=200)
"""

import argparse
from pathlib import Path
from typing import Optional

import numpy as np
import pandas as pd

# Default configuration constants
DEFAULT_NUM_USERS = 50
DEFAULT_NUM_PRODUCTS = 100
DEFAULT_NUM_ORDERS = 400
DEFAULT_MAX_ITEMS_PER_ORDER = 5
DEFAULT_SEED = 42

CATEGORIES = ["electronics", "books", "home", "toys", "garden", "sports"]


def generate_fake_catalog(
    num_products: int = DEFAULT_NUM_PRODUCTS,
    seed: Optional[int] = DEFAULT_SEED,
) -> pd.DataFrame:
    """Generate a product catalog.

    Returns:
        DataFrame with columns product_id, name, price, category.

    Raises:
        ValueError: If num_products is not positive.
    """
    if num_products <= 0:
        raise ValueError("num_products must be positive")

    rng = np.random.default_rng(seed)
    product_ids = [f"P{i}" for i in range(1, num_products + 1)]
    return pd.DataFrame(
        {
            "product_id": product_ids,
            "name": [f"Product {pid[1:]}" for pid in product_ids],
            "price": rng.integers(100, 10000, size=num_products),
            "category": rng.choice(CATEGORIES, size=num_products),
        }
    )


def generate_fake_orders(
    num_users: int = DEFAULT_NUM_USERS,
    num_products: int = DEFAULT_NUM_PRODUCTS,
    num_orders: int = DEFAULT_NUM_ORDERS,
    max_items_per_order: int = DEFAULT_MAX_ITEMS_PER_ORDER,
    seed: Optional[int] = DEFAULT_SEED,
) -> pd.DataFrame:
    """Generate synthetic orders.

    Product popularity follows a Zipf-like distribution so that some products
    are bought far more often than others, which gives the difference model
    something to learn.

    Returns:
        DataFrame with columns order_id, user_id, product_id, quantity.

    Raises:
        ValueError: If any numeric parameter is non-positive.
    """
    if min(num_users, num_products, num_orders, max_items_per_order) <= 0:
        raise ValueError(
            "num_users, num_products, num_orders and max_items_per_order "
            "must be positive"
        )

    rng = np.random.default_rng(seed)
    popularity = 1.0 / np.arange(1, num_products + 1)
    popularity /= popularity.sum()

    rows = []
    for order_number in range(1, num_orders + 1):
        user_id = f"U{rng.integers(1, num_users + 1)}"
        n_items = int(rng.integers(1, min(max_items_per_order, num_products) + 1))
        products = rng.choice(num_products, size=n_items, replace=False, p=popularity)
        for product_idx in products:
            rows.append(
                {
                    "order_id": f"O{order_number}",
                    "user_id": user_id,
                    "product_id": f"P{product_idx + 1}",
                    "quantity": int(rng.integers(1, 4)),
                }
            )

    return pd.DataFrame(rows, columns=["order_id", "user_id", "product_id", "quantity"])


def main() -> None:
    """Generate fake data and write orders.csv and products.csv."""
    parser = argparse.ArgumentParser(description="Generate fake order data")
    parser.add_argument("--output-dir", type=str, default="data")
    parser.add_argument("--num-users", type=int, default=DEFAULT_NUM_USERS)
    parser.add_argument("--num-products", type=int, default=DEFAULT_NUM_PRODUCTS)
    parser.add_argument("--num-orders", type=int, default=DEFAULT_NUM_ORDERS)
    parser.add_argument("--seed", type=int, default=DEFAULT_SEED)
    args = parser.parse_args()

    print(f"Generating {args.num_orders} fake orders...")
    print(f"Users: {args.num_users}, Products: {args.num_products}")

    try:
        catalog = generate_fake_catalog(args.num_products, seed=args.seed)
        orders = generate_fake_orders(
            num_users=args.num_users,
            num_products=args.num_products,
            num_orders=args.num_orders,
            seed=args.seed,
        )
    except ValueError as e:
        print(f"Error generating data: {e}")
        return

    data_dir = Path(args.output_dir)
    data_dir.mkdir(parents=True, exist_ok=True)
    catalog.to_csv(data_dir / "products.csv", index=False)
    orders.to_csv(data_dir / "orders.csv", index=False)

    print(f"\nData generated successfully!")
    print(f"Saved to: {data_dir.absolute()}")
    print(f"\nData summary:")
    print(f"  Cart items: {len(orders)}")
    print(f"  Orders: {orders['order_id'].nunique()}")
    print(f"  Unique users: {orders['user_id'].nunique()}")
    print(f"  Unique products: {orders['product_id'].nunique()}")


if __name__ == "__main__":
    main()
