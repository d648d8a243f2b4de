"""CLI script for getting product recommendations.

Useful for testing and evaluation. Gets recommendations for a user from the
order data and a built model, and prints them to the console.
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Literal, Tuple

# Add project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from purchaserec import config
from purchaserec.exceptions import PurchaseRecException
from purchaserec.recommender.frequency import (
    count_product_frequencies,
    recommend_most_purchased,
)
from purchaserec.recommender.infer import recommend_products_for_user
from purchaserec.recommender.utils import (
    build_purchase_matrix,
    load_catalog_csv,
    load_model_artifacts,
    load_orders_csv,
)

# Setup logging
logging.basicConfig(level=logging.WARNING, format="%(levelname)s: %(message)s")
logger = logging.getLogger(__name__)


def get_recommendations(
    user_id: str,
    data_dir: str = config.DATA_DIR,
    model_dir: str = config.MODEL_DIR,
    top_n: int = config.DEFAULT_TOP_N,
    strategy: Literal["collaborative", "frequent"] = "collaborative",
) -> List[Tuple[str, float]]:
    """Get recommendations for a user.

    Args:
        user_id: User ID to get recommendations for
        data_dir: Directory with orders.csv and products.csv
        model_dir: Directory with model files
        top_n: Number of recommendations to return
        strategy: "collaborative" or "frequent"

    Returns:
        List of (product_id, score) tuples, best first
    """
    data_path = Path(data_dir)
    catalog = load_catalog_csv(str(data_path / config.PRODUCTS_FILENAME))
    orders_by_user = load_orders_csv(
        str(data_path / config.ORDERS_FILENAME), catalog=catalog
    )

    if strategy == "frequent":
        user_orders = orders_by_user.get(user_id, [])
        frequencies = count_product_frequencies(user_orders)
        product_ids = recommend_most_purchased(user_orders, top_n=top_n, catalog=catalog)
        return [(pid, float(frequencies[pid])) for pid in product_ids]

    _, metadata = load_model_artifacts(model_dir)
    purchase_matrix = build_purchase_matrix(
        orders_by_user,
        weight_by_quantity=bool(metadata.get("weight_by_quantity", False)),
    )
    ranked = recommend_products_for_user(
        user_id,
        purchase_matrix,
        model_path=model_dir,
        top_n=top_n,
        catalog=catalog,
    )
    return [(item.product_id, item.score) for item in ranked]


def main() -> None:
    """Main CLI function."""
    parser = argparse.ArgumentParser(
        description="Get product recommendations for a user",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python scripts/predict_cli.py U42
  python scripts/predict_cli.py U42 --top-n 3
  python scripts/predict_cli.py U42 --strategy frequent
        """,
    )

    parser.add_argument("user_id", type=str, help="User ID to get recommendations for")
    parser.add_argument(
        "--top-n",
        type=int,
        default=config.DEFAULT_TOP_N,
        help=f"Number of recommendations to return (default: {config.DEFAULT_TOP_N})",
    )
    parser.add_argument(
        "--strategy",
        type=str,
        choices=["collaborative", "frequent"],
        default="collaborative",
        help="Ranking strategy (default: collaborative)",
    )
    parser.add_argument("--data-dir", type=str, default=config.DATA_DIR)
    parser.add_argument("--model-dir", type=str, default=config.MODEL_DIR)
    parser.add_argument(
        "--verbose", "-v", action="store_true", help="Enable verbose logging"
    )

    args = parser.parse_args()

    if args.verbose:
        logging.getLogger().setLevel(logging.INFO)

    try:
        recommendations = get_recommendations(
            user_id=args.user_id,
            data_dir=args.data_dir,
            model_dir=args.model_dir,
            top_n=args.top_n,
            strategy=args.strategy,
        )
    except FileNotFoundError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    except PurchaseRecException as e:
        print(f"Error: {e.message}", file=sys.stderr)
        sys.exit(1)

    print(f"\nRecommendations for user {args.user_id} (strategy: {args.strategy}):")
    if not recommendations:
        print("  No recommendations available")
    for rank, (product_id, score) in enumerate(recommendations, start=1):
        print(f"  {rank}. {product_id}  score={score:.3f}")
    print()


if __name__ == "__main__":
    main()
