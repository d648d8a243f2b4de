"""FastAPI application module for PurchaseRec.

This module contains the FastAPI application, route handlers, and API
endpoints for the recommendation service.
"""
