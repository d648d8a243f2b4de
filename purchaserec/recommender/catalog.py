"""Product catalog lookup.

Resolves product ids to Product entities. Used only to materialize ranked
output; scoring never consults the catalog.
"""

import logging
from typing import Dict, Iterable, Iterator, List, Optional

from purchaserec.recommender.models import Product

# Configure module logger
logger = logging.getLogger(__name__)


class Catalog:
    """In-memory catalog keyed by product id."""

    def __init__(self, products: Iterable[Product] = ()):
        self._products: Dict[str, Product] = {}
        for product in products:
            self._products[product.id] = product

    def get(self, product_id: str) -> Optional[Product]:
        """Return the product for ``product_id`` or None if not in the catalog."""
        return self._products.get(product_id)

    def __contains__(self, product_id: object) -> bool:
        return product_id in self._products

    def __len__(self) -> int:
        return len(self._products)

    def __iter__(self) -> Iterator[Product]:
        return iter(self._products.values())

    def product_ids(self) -> List[str]:
        return list(self._products)

    def materialize(self, product_ids: Iterable[str]) -> List[Product]:
        """Map product ids to products, dropping ids the catalog no longer has.

        Args:
            product_ids: Ranked product ids.

        Returns:
            Products in the same order as ``product_ids``.
        """
        products = []
        for product_id in product_ids:
            product = self._products.get(product_id)
            if product is None:
                logger.debug(f"Product {product_id} not in catalog, dropping")
                continue
            products.append(product)
        return products
