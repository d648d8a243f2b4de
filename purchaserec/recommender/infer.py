"""Module for collaborative recommendations.

Uses the difference model to predict how strongly a user would buy each
product they have not bought yet, then ranks those products.
"""

import logging
import time
from typing import Dict, List, Mapping, Optional, Sequence

from purchaserec.recommender.catalog import Catalog
from purchaserec.recommender.models import (
    DifferenceModel,
    Product,
    PurchaseMatrix,
    RankedProduct,
)
from purchaserec.recommender.utils import (
    load_model_artifacts,
    validate_purchase_vector,
    validate_top_n,
)

# Configure module logger
logger = logging.getLogger(__name__)

# Default parameters
DEFAULT_TOP_N = 5
DEFAULT_MODEL_DIR = "models"


def predict_scores(
    model: DifferenceModel,
    target_user_purchases: Mapping[str, float],
) -> Dict[str, float]:
    """Predict a score for every product the user has not bought.

    The score for product p is the frequency-weighted mean, over every
    product q the user bought that co-occurs with p, of
    ``count(q) + avg_diff[q][p]``. Products with no co-occurring purchase
    get no score.

    Args:
        model: Difference model built from all users.
        target_user_purchases: Product ID -> purchase count for the user.

    Returns:
        Dictionary mapping candidate product IDs to predicted scores.
    """
    validate_purchase_vector(target_user_purchases)

    predictions: Dict[str, float] = {}
    if not target_user_purchases:
        return predictions

    for product_id in model.products:
        if product_id in target_user_purchases:
            continue

        total_score = 0.0
        total_weight = 0
        for purchased_id, purchase_count in target_user_purchases.items():
            entry = model.entry(purchased_id, product_id)
            if entry is None:
                continue
            total_score += (purchase_count + entry.avg_diff) * entry.freq
            total_weight += entry.freq

        if total_weight > 0:
            predictions[product_id] = total_score / total_weight

    return predictions


def rank_predictions(predictions: Mapping[str, float]) -> List[RankedProduct]:
    """Sort predictions by score, highest first, then by product id."""
    ranked = sorted(predictions.items(), key=lambda item: (-item[1], item[0]))
    return [RankedProduct(product_id, score) for product_id, score in ranked]


def predict(
    model: DifferenceModel,
    target_user_purchases: Mapping[str, float],
    top_n: int = DEFAULT_TOP_N,
    catalog: Optional[Catalog] = None,
) -> List[RankedProduct]:
    """Get the top ranked products for a user.

    Args:
        model: Difference model built from all users.
        target_user_purchases: Product ID -> purchase count for the user.
        top_n: Maximum number of products to return.
        catalog: If given, products missing from the catalog are dropped
            before truncation, so the next ranked product takes their place.

    Returns:
        Up to ``top_n`` ranked products, best first. Empty if the user has
        no purchases or nothing co-occurs with them.

    Raises:
        InvalidArgumentError: If top_n is invalid or a count is negative.
    """
    top_n = validate_top_n(top_n)
    start_time = time.time()

    ranked = rank_predictions(predict_scores(model, target_user_purchases))
    n_candidates = len(ranked)

    if catalog is not None:
        ranked = [item for item in ranked if item.product_id in catalog]
        dropped = n_candidates - len(ranked)
        if dropped:
            logger.info(
                "Dropped predicted products missing from catalog",
                extra={"num_dropped": dropped},
            )

    recommendations = ranked[:top_n]

    logger.debug(
        "Computed recommendations",
        extra={
            "num_purchased": len(target_user_purchases),
            "num_candidates": n_candidates,
            "num_recommendations": len(recommendations),
            "compute_time_ms": round((time.time() - start_time) * 1000, 2),
        },
    )

    return recommendations


def recommend_collaborative_products(
    model: DifferenceModel,
    target_user_purchases: Mapping[str, float],
    catalog: Catalog,
    top_n: int = DEFAULT_TOP_N,
) -> List[Product]:
    """Like ``predict`` but returns catalog products."""
    ranked = predict(model, target_user_purchases, top_n=top_n, catalog=catalog)
    return catalog.materialize(item.product_id for item in ranked)


def recommend_products_for_user(
    user_id: str,
    purchase_matrix: PurchaseMatrix,
    model_path: str = DEFAULT_MODEL_DIR,
    top_n: int = DEFAULT_TOP_N,
    catalog: Optional[Catalog] = None,
) -> List[RankedProduct]:
    """Get recommendations for a user.

    Loads the model from disk and ranks products for the user's purchase
    vector. Users without purchases get an empty list.

    Raises:
        FileNotFoundError: If the model artifacts are missing.
        InvalidArgumentError: If top_n or the purchase vector is invalid.
    """
    start_time = time.time()

    logger.info(
        "Starting recommendation generation",
        extra={
            "user_id": user_id,
            "top_n": top_n,
            "model_path": model_path,
        },
    )

    model, _ = load_model_artifacts(model_path)

    target_user_purchases = purchase_matrix.get(user_id, {})
    if not target_user_purchases:
        logger.warning(
            "User has no purchase history",
            extra={"user_id": user_id},
        )

    recommendations = predict(
        model, target_user_purchases, top_n=top_n, catalog=catalog
    )

    logger.info(
        "Recommendations generated",
        extra={
            "user_id": user_id,
            "num_recommendations": len(recommendations),
            "total_time_ms": round((time.time() - start_time) * 1000, 2),
        },
    )

    return recommendations


def batch_recommend_for_users(
    model: DifferenceModel,
    purchase_matrix: PurchaseMatrix,
    user_ids: Sequence[str],
    top_n: int = DEFAULT_TOP_N,
    catalog: Optional[Catalog] = None,
) -> Dict[str, List[RankedProduct]]:
    """Generate recommendations for multiple users with one model.

    Args:
        model: Difference model built from all users.
        purchase_matrix: Purchase vectors; users missing from it are treated
            as having no purchases.
        user_ids: Users to recommend for.
        top_n: Number of recommendations per user.
        catalog: Optional catalog to filter recommendations through.

    Returns:
        Dictionary mapping user IDs to their ranked products. A user whose
        purchase vector is invalid gets an empty list.

    Raises:
        InvalidArgumentError: If top_n is invalid.
    """
    top_n = validate_top_n(top_n)

    logger.info(
        f"Generating batch recommendations for {len(user_ids)} users, "
        f"top_n={top_n}"
    )

    results = {}
    for user_id in user_ids:
        try:
            results[user_id] = predict(
                model,
                purchase_matrix.get(user_id, {}),
                top_n=top_n,
                catalog=catalog,
            )
        except ValueError as e:
            logger.error(f"Failed to generate recommendations for user {user_id}: {e}")
            # Continue with other users, return empty list for failed user
            results[user_id] = []

    logger.info(f"Batch recommendations completed for {len(results)} users")

    return results
