"""Recommendation algorithms for PurchaseRec.

This module contains the most-purchased recommender, the item difference
model builder and the collaborative predictor, together with the order and
catalog loading they rely on.
"""
