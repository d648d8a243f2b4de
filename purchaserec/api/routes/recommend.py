"""Recommendation endpoints for the PurchaseRec API.

This module provides API endpoints for recommending products from order
history, either as the user's most purchased products or from the
collaborative difference model.
"""

import logging
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Literal, Optional

from fastapi import APIRouter
from pydantic import BaseModel, Field

from purchaserec import config
from purchaserec.api.metrics import metrics_service
from purchaserec.exceptions import (
    DataNotFoundError,
    ModelBuildError,
    ModelLoadError,
    ModelNotFoundError,
    PurchaseRecException,
    RecommendationError,
)
from purchaserec.recommender.frequency import (
    count_product_frequencies,
    recommend_most_purchased,
)
from purchaserec.recommender.infer import predict
from purchaserec.recommender.models import Product
from purchaserec.recommender.train import train_difference_model
from purchaserec.recommender.utils import (
    check_model_exists,
    count_order_products,
    load_catalog_csv,
    load_model_artifacts,
    load_orders_csv,
)

# Configure module logger
logger = logging.getLogger(__name__)

# Create API router
router = APIRouter(
    prefix="/recommend",
    tags=["recommendations"],
)

Strategy = Literal["collaborative", "frequent"]

# Loaded artifacts, keyed by directory
_model_cache: Dict[str, Dict] = {}
_data_cache: Dict[str, Dict] = {}


class RecommendedProduct(BaseModel):
    """A recommended product with the score it was ranked by."""

    product_id: str
    name: Optional[str] = None
    price: Optional[float] = None
    category: Optional[str] = None
    score: Optional[float] = Field(
        default=None,
        description="Predicted score (collaborative) or purchase count (frequent)",
    )


class RecommendationResponse(BaseModel):
    """Response model for recommendation requests.

    Attributes:
        user_id: The user ID for which recommendations were generated.
        strategy: Strategy used to rank products.
        recommendations: Recommended product IDs, best first.
        products: Catalog details for the recommended products.
        model_version: Version of the service that produced the response.
    """

    user_id: str = Field(..., description="User ID for recommendations")
    strategy: Strategy = Field(..., description="Ranking strategy")
    recommendations: List[str] = Field(
        ..., description="List of recommended product IDs"
    )
    products: List[RecommendedProduct] = Field(default_factory=list)
    model_version: str = Field(default=config.MODEL_VERSION)


def _data_paths(data_dir: str):
    data_path = Path(data_dir)
    return data_path / config.ORDERS_FILENAME, data_path / config.PRODUCTS_FILENAME


def load_model_if_needed(model_dir: str = config.MODEL_DIR) -> Dict:
    """Load the difference model from disk if not already loaded.

    Returns:
        Dictionary containing the model, its metadata and load timestamp.

    Raises:
        ModelNotFoundError: If the artifacts are missing.
        ModelLoadError: If the artifacts cannot be read.
    """
    cached = _model_cache.get(model_dir)
    if cached is not None:
        logger.debug("Using cached model")
        return cached

    if not check_model_exists(model_dir):
        logger.error(f"Model not found in {model_dir}")
        raise ModelNotFoundError(model_dir)

    try:
        logger.info(f"Loading model from {model_dir}")
        model, metadata = load_model_artifacts(model_dir)
    except Exception as e:
        logger.error(f"Failed to load model: {e}", exc_info=True)
        raise ModelLoadError(model_dir, e) from e

    _model_cache[model_dir] = {
        "model": model,
        "metadata": metadata,
        "loaded_at": datetime.now(timezone.utc).isoformat(),
    }
    logger.info("Model loaded successfully")
    return _model_cache[model_dir]


def load_data_if_needed(data_dir: str = config.DATA_DIR) -> Dict:
    """Load orders and catalog CSVs from ``data_dir`` if not already loaded.

    Raises:
        DataNotFoundError: If either CSV is missing.
    """
    cached = _data_cache.get(data_dir)
    if cached is not None:
        return cached

    orders_path, products_path = _data_paths(data_dir)
    for path in (orders_path, products_path):
        if not path.exists():
            logger.error(f"Data file not found: {path}")
            raise DataNotFoundError(str(path))

    catalog = load_catalog_csv(str(products_path))
    orders_by_user = load_orders_csv(str(orders_path), catalog=catalog)

    _data_cache[data_dir] = {"catalog": catalog, "orders_by_user": orders_by_user}
    return _data_cache[data_dir]


def get_model_status(model_dir: str = config.MODEL_DIR) -> Dict:
    """Describe the cached model for the status endpoint."""
    cached = _model_cache.get(model_dir)
    if cached is None:
        return {
            "model_loaded": False,
            "timestamp_last_loaded": None,
            "num_users": 0,
            "num_products": 0,
            "num_pairs": 0,
        }
    model = cached["model"]
    return {
        "model_loaded": True,
        "timestamp_last_loaded": cached["loaded_at"],
        "num_users": int(cached["metadata"].get("num_users", 0)),
        "num_products": len(model),
        "num_pairs": model.num_pairs,
    }


def clear_caches() -> None:
    """Drop every loaded model and dataset."""
    _model_cache.clear()
    _data_cache.clear()


def _to_response_product(
    product_id: str, product: Optional[Product], score: Optional[float]
) -> RecommendedProduct:
    if product is None:
        return RecommendedProduct(product_id=product_id, score=score)
    return RecommendedProduct(
        product_id=product.id,
        name=product.name,
        price=product.price,
        category=product.category,
        score=score,
    )


@router.get("/{user_id}", response_model=RecommendationResponse)
def get_recommendations(
    user_id: str,
    strategy: Strategy = "collaborative",
    top_n: int = config.DEFAULT_TOP_N,
    data_dir: str = config.DATA_DIR,
    model_dir: str = config.MODEL_DIR,
) -> RecommendationResponse:
    """Get product recommendations for a user.

    Args:
        user_id: User ID for which to generate recommendations.
        strategy: "collaborative" ranks products the user has not bought with
            the difference model; "frequent" ranks the user's own most
            purchased products.
        top_n: Number of recommendations to return.
        data_dir: Directory containing orders.csv and products.csv.
        model_dir: Directory containing model artifacts.

    Returns:
        RecommendationResponse with product IDs and catalog details. Users
        without orders get an empty list.

    Example:
        GET /recommend/42?strategy=frequent&top_n=3
    """
    logger.info(
        f"Generating recommendations for user {user_id}",
        extra={"strategy": strategy, "top_n": top_n},
    )
    start_time = time.time()

    try:
        data = load_data_if_needed(data_dir)
        catalog = data["catalog"]
        user_orders = data["orders_by_user"].get(user_id, [])

        if strategy == "frequent":
            product_ids = recommend_most_purchased(
                user_orders, top_n=top_n, catalog=catalog
            )
            frequencies = count_product_frequencies(user_orders)
            scores = {pid: float(frequencies[pid]) for pid in product_ids}
        else:
            artifacts = load_model_if_needed(model_dir)
            weight_by_quantity = bool(
                artifacts["metadata"].get("weight_by_quantity", False)
            )
            purchases = count_order_products(user_orders, weight_by_quantity)
            ranked = predict(
                artifacts["model"], purchases, top_n=top_n, catalog=catalog
            )
            product_ids = [item.product_id for item in ranked]
            scores = {item.product_id: item.score for item in ranked}

    except PurchaseRecException:
        raise
    except Exception as e:
        logger.error(
            f"Error generating recommendations for user {user_id}: {e}",
            exc_info=True,
        )
        raise RecommendationError(user_id, e) from e

    latency_ms = (time.time() - start_time) * 1000
    metrics_service.record_inference(strategy, latency_ms, len(product_ids))

    logger.info(
        f"Generated {len(product_ids)} recommendations for user {user_id}",
        extra={"strategy": strategy, "duration_ms": round(latency_ms, 2)},
    )

    return RecommendationResponse(
        user_id=user_id,
        strategy=strategy,
        recommendations=product_ids,
        products=[
            _to_response_product(pid, catalog.get(pid), scores.get(pid))
            for pid in product_ids
        ],
    )


@router.post("/reload-model")
def reload_model(
    model_dir: str = config.MODEL_DIR,
    data_dir: str = config.DATA_DIR,
) -> Dict[str, str]:
    """Reload the model and data from disk.

    Clears the caches for the given directories and loads the model again.
    Useful when a new model has been built without restarting the server.
    """
    logger.info("Reloading model...")
    _model_cache.pop(model_dir, None)
    _data_cache.pop(data_dir, None)

    load_model_if_needed(model_dir)
    return {"status": "Model reloaded successfully"}


@router.post("/rebuild-model")
def rebuild_model(
    model_dir: str = config.MODEL_DIR,
    data_dir: str = config.DATA_DIR,
) -> Dict:
    """Rebuild the difference model from the current orders CSV and save it."""
    orders_path, products_path = _data_paths(data_dir)
    if not orders_path.exists():
        raise DataNotFoundError(str(orders_path))

    logger.info(f"Rebuilding model from {orders_path}")
    try:
        model = train_difference_model(
            orders_csv=str(orders_path),
            output_dir=model_dir,
            products_csv=str(products_path) if products_path.exists() else None,
            weight_by_quantity=config.WEIGHT_BY_QUANTITY,
            max_products_per_user=config.MAX_PRODUCTS_PER_USER,
        )
    except PurchaseRecException:
        raise
    except Exception as e:
        logger.error(f"Failed to rebuild model: {e}", exc_info=True)
        raise ModelBuildError(str(orders_path), e) from e

    _model_cache.pop(model_dir, None)
    _data_cache.pop(data_dir, None)

    return {
        "status": "Model rebuilt successfully",
        "num_products": len(model),
        "num_pairs": model.num_pairs,
    }
