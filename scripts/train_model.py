"""Command-line interface for building the item difference model.

Builds the collaborative difference model from an orders CSV and saves the
artifacts used by the API and the prediction CLI.

Example:
    Build a model with default settings:
        $ python scripts/train_model.py data/orders.csv

    Build with a catalog, quantity weighting and a size cap:
        $ python scripts/train_model.py data/orders.csv \\
            --products-csv data/products.csv \\
            --weight-by-quantity \\
            --max-products-per-user 500
"""

import argparse
import logging
import sys
from pathlib import Path

# Add project root to Python path for imports
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from purchaserec import config
from purchaserec.exceptions import InvalidArgumentError
from purchaserec.recommender.train import train_difference_model


def setup_logging(verbose: bool = False) -> None:
    """Configure logging for the script.

    Args:
        verbose: If True, set log level to DEBUG. Otherwise, use INFO.
    """
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def parse_arguments() -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Build the item difference model from order data.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python scripts/train_model.py data/orders.csv
  python scripts/train_model.py data/orders.csv --output-dir models/prod
  python scripts/train_model.py data/orders.csv --export-csv pairs.csv
        """,
    )

    parser.add_argument(
        "orders_csv",
        type=str,
        help="CSV with columns order_id, user_id, product_id and optional quantity",
    )
    parser.add_argument(
        "--products-csv",
        type=str,
        default=None,
        help="Optional catalog CSV recorded in the model metadata",
    )
    parser.add_argument(
        "--output-dir",
        type=str,
        default=config.MODEL_DIR,
        help=f"Directory where model artifacts will be saved (default: {config.MODEL_DIR})",
    )
    parser.add_argument(
        "--weight-by-quantity",
        action="store_true",
        default=config.WEIGHT_BY_QUANTITY,
        help="Sum cart-item quantities instead of counting one per cart item",
    )
    parser.add_argument(
        "--max-products-per-user",
        type=int,
        default=config.MAX_PRODUCTS_PER_USER,
        help="Fail if a user bought more distinct products than this",
    )
    parser.add_argument(
        "--export-csv",
        type=str,
        default=None,
        help="Also write the product pair table to this CSV",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose logging (DEBUG level)",
    )

    return parser.parse_args()


def main() -> int:
    """Main entry point for the training script.

    Returns:
        Exit code: 0 on success, 1 on error.
    """
    try:
        args = parse_arguments()
        setup_logging(verbose=args.verbose)
        logger = logging.getLogger(__name__)

        logger.info("=" * 70)
        logger.info("Build Configuration")
        logger.info("=" * 70)
        logger.info(f"Orders CSV:         {args.orders_csv}")
        logger.info(f"Products CSV:       {args.products_csv}")
        logger.info(f"Output directory:   {args.output_dir}")
        logger.info(f"Weight by quantity: {args.weight_by_quantity}")
        logger.info(f"Max products/user:  {args.max_products_per_user}")
        logger.info("=" * 70)

        model = train_difference_model(
            orders_csv=args.orders_csv,
            output_dir=args.output_dir,
            products_csv=args.products_csv,
            weight_by_quantity=args.weight_by_quantity,
            max_products_per_user=args.max_products_per_user,
        )

        if args.export_csv:
            model.to_frame().to_csv(args.export_csv, index=False)
            logger.info(f"Exported pair table to {args.export_csv}")

        logger.info("=" * 70)
        logger.info("Build Summary")
        logger.info("=" * 70)
        logger.info(f"Number of products: {len(model)}")
        logger.info(f"Number of pairs:    {model.num_pairs}")
        logger.info(f"Model saved to: {Path(args.output_dir).absolute()}")
        logger.info("=" * 70)
        return 0

    except FileNotFoundError as e:
        logging.error(f"File error: {e}")
        return 1
    except InvalidArgumentError as e:
        logging.error(f"Invalid data: {e.message}")
        return 1
    except ValueError as e:
        logging.error(f"Validation error: {e}")
        return 1
    except KeyboardInterrupt:
        logging.warning("Build interrupted by user")
        return 130


if __name__ == "__main__":
    sys.exit(main())
