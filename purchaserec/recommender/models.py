"""Entities and value types used by the recommenders.

The order graph (Order -> Cart -> CartItem -> Product) mirrors what the shop
persists; the recommenders only read it. ``RankedProduct`` and
``DifferenceEntry`` are the small immutable values the algorithms produce.
"""

from typing import Dict, List, NamedTuple, Optional

import pandas as pd
from pydantic import BaseModel, ConfigDict, Field

# user_id -> product_id -> purchase count
PurchaseVector = Dict[str, float]
PurchaseMatrix = Dict[str, PurchaseVector]


class Product(BaseModel):
    """A catalog product."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Product ID")
    name: Optional[str] = Field(default=None, description="Display name")
    price: Optional[float] = Field(default=None, ge=0, description="Unit price")
    category: Optional[str] = Field(default=None, description="Category name")


class CartItem(BaseModel):
    """One product line in a cart."""

    id: Optional[str] = None
    product: Product
    quantity: float = Field(default=1, gt=0)


class Cart(BaseModel):
    """A user's cart at the time an order was placed."""

    id: Optional[str] = None
    user_id: str
    cart_items: List[CartItem] = Field(default_factory=list)


class Order(BaseModel):
    """A placed order referencing the cart it was created from."""

    id: str
    cart: Cart
    total: Optional[float] = None


class RankedProduct(NamedTuple):
    """A product id with the score it was ranked by."""

    product_id: str
    score: float


class DifferenceEntry(NamedTuple):
    """Average count difference and co-occurrence frequency for a product pair."""

    avg_diff: float
    freq: int


class DifferenceModel:
    """Item x item average purchase-count differences.

    ``avg_diffs[a][b]`` is the mean of ``count(a) - count(b)`` over every user
    who bought both a and b, and ``freqs[a][b]`` is the number of such users.
    Pairs that never co-occur in one user's history have no entry.

    Instances are built by ``build_difference_model`` and not modified
    afterwards.
    """

    def __init__(
        self,
        avg_diffs: Dict[str, Dict[str, float]],
        freqs: Dict[str, Dict[str, int]],
    ):
        self.avg_diffs = avg_diffs
        self.freqs = freqs

    @property
    def products(self) -> List[str]:
        """Product ids that appear in at least one purchase vector."""
        return list(self.avg_diffs)

    @property
    def num_pairs(self) -> int:
        return sum(len(row) for row in self.freqs.values())

    def entry(self, product_a: str, product_b: str) -> Optional[DifferenceEntry]:
        """Return the entry for the ordered pair, or None if they never co-occur."""
        freq_row = self.freqs.get(product_a)
        if freq_row is None or product_b not in freq_row:
            return None
        return DifferenceEntry(self.avg_diffs[product_a][product_b], freq_row[product_b])

    def __contains__(self, product_id: object) -> bool:
        return product_id in self.avg_diffs

    def __len__(self) -> int:
        return len(self.avg_diffs)

    def __repr__(self) -> str:
        return f"DifferenceModel(products={len(self)}, pairs={self.num_pairs})"

    def to_dict(self) -> Dict[str, Dict]:
        return {"avg_diffs": self.avg_diffs, "freqs": self.freqs}

    @classmethod
    def from_dict(cls, data: Dict[str, Dict]) -> "DifferenceModel":
        return cls(avg_diffs=data["avg_diffs"], freqs=data["freqs"])

    def to_frame(self) -> pd.DataFrame:
        """Export the model as a long-format DataFrame.

        Returns:
            DataFrame with columns product_a, product_b, avg_diff, freq,
            sorted by product_a then product_b.
        """
        rows = [
            {
                "product_a": product_a,
                "product_b": product_b,
                "avg_diff": avg_diff,
                "freq": self.freqs[product_a][product_b],
            }
            for product_a, row in self.avg_diffs.items()
            for product_b, avg_diff in row.items()
        ]
        df = pd.DataFrame(rows, columns=["product_a", "product_b", "avg_diff", "freq"])
        return df.sort_values(["product_a", "product_b"]).reset_index(drop=True)
