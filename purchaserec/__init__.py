"""PurchaseRec: purchase-history product recommendations.

This package provides a backend service for recommending products from order
history, either by how often a user bought them or by an item-to-item average
difference (Slope-One style) collaborative model.

Modules:
    api: FastAPI application and REST API endpoints
    recommender: Model building and recommendation logic
"""

__version__ = "0.1.0"
