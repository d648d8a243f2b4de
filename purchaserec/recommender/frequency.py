"""Most-purchased product recommendations.

Ranks the products a user has bought by how many of their orders contained
them. This is the simple "buy again" suggestion and needs no model.
"""

import logging
from typing import Dict, List, Optional, Sequence

from purchaserec.recommender.catalog import Catalog
from purchaserec.recommender.models import Order, Product
from purchaserec.recommender.utils import validate_top_n

# Configure module logger
logger = logging.getLogger(__name__)

DEFAULT_TOP_N = 5


def count_product_frequencies(user_orders: Sequence[Order]) -> Dict[str, int]:
    """Count cart items per product across a user's orders.

    Every cart item counts once regardless of its quantity. Keys are in the
    order each product was first encountered.
    """
    frequencies: Dict[str, int] = {}
    for order in user_orders:
        for cart_item in order.cart.cart_items:
            product_id = cart_item.product.id
            frequencies[product_id] = frequencies.get(product_id, 0) + 1
    return frequencies


def recommend_most_purchased(
    user_orders: Sequence[Order],
    top_n: int = DEFAULT_TOP_N,
    catalog: Optional[Catalog] = None,
) -> List[str]:
    """Return the ids of the products a user bought most often.

    Products are sorted by purchase count, highest first. Products with equal
    counts keep the order in which they first appear in ``user_orders``.

    Args:
        user_orders: All orders of one user.
        top_n: Maximum number of product ids to return.
        catalog: If given, products missing from the catalog are skipped and
            the next most purchased product takes their place.

    Returns:
        Up to ``top_n`` product ids. Empty if the user has no orders.

    Raises:
        InvalidArgumentError: If top_n is negative or not an integer.
    """
    top_n = validate_top_n(top_n)

    frequencies = count_product_frequencies(user_orders)
    if not frequencies:
        logger.debug("No orders supplied, nothing to recommend")
        return []

    # sorted() is stable, so ties stay in first-encountered order
    ranked = sorted(frequencies, key=frequencies.get, reverse=True)
    if catalog is not None:
        ranked = [product_id for product_id in ranked if product_id in catalog]

    recommendations = ranked[:top_n]

    logger.debug(
        "Ranked most purchased products",
        extra={
            "num_orders": len(user_orders),
            "num_products": len(frequencies),
            "num_recommendations": len(recommendations),
        },
    )
    return recommendations


def recommend_most_purchased_products(
    user_orders: Sequence[Order],
    catalog: Catalog,
    top_n: int = DEFAULT_TOP_N,
) -> List[Product]:
    """Like ``recommend_most_purchased`` but returns catalog products."""
    product_ids = recommend_most_purchased(user_orders, top_n=top_n, catalog=catalog)
    return catalog.materialize(product_ids)
