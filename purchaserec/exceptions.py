"""Custom exceptions for PurchaseRec.

Defines specific exception types for better error handling and reporting.
Each exception carries an HTTP status code so the API can translate it
directly into a response.
"""

from typing import Any, Dict, Optional


class PurchaseRecException(Exception):
    """Base exception for PurchaseRec errors."""

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        details: Optional[Dict[str, Any]] = None,
    ):
        """Initialize exception.

        Args:
            message: Human-readable error message
            status_code: HTTP status code for API responses
            details: Additional error details for debugging
        """
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.details = details or {}


class InvalidArgumentError(PurchaseRecException, ValueError):
    """Raised when a recommender receives an argument it cannot rank with."""

    def __init__(self, argument: str, reason: str, value: Any = None):
        message = f"Invalid argument '{argument}': {reason}"
        super().__init__(
            message=message,
            status_code=400,
            details={"argument": argument, "value": repr(value)},
        )


class ModelNotFoundError(PurchaseRecException):
    """Raised when model files cannot be found."""

    def __init__(self, model_path: str, details: Optional[Dict[str, Any]] = None):
        message = f"Model not found at '{model_path}'. Please build a model first."
        super().__init__(
            message=message,
            status_code=503,
            details=details or {"model_path": model_path},
        )


class ModelLoadError(PurchaseRecException):
    """Raised when model fails to load."""

    def __init__(self, model_path: str, error: Exception):
        message = f"Failed to load model from '{model_path}': {str(error)}"
        super().__init__(
            message=message,
            status_code=500,
            details={
                "model_path": model_path,
                "error": str(error),
                "error_type": type(error).__name__,
            },
        )


class DataNotFoundError(PurchaseRecException):
    """Raised when the orders or products CSV is not available."""

    def __init__(self, data_path: str):
        message = f"Purchase data not found at '{data_path}'."
        super().__init__(
            message=message,
            status_code=503,
            details={"data_path": data_path},
        )


class RecommendationError(PurchaseRecException):
    """Raised when recommendation generation fails."""

    def __init__(self, user_id: str, error: Exception):
        message = f"Failed to generate recommendations for user {user_id}: {str(error)}"
        super().__init__(
            message=message,
            status_code=500,
            details={
                "user_id": user_id,
                "error": str(error),
                "error_type": type(error).__name__,
            },
        )


class ModelBuildError(PurchaseRecException):
    """Raised when the model cannot be rebuilt from the order data."""

    def __init__(self, orders_path: str, error: Exception):
        message = f"Failed to build model from '{orders_path}': {str(error)}"
        super().__init__(
            message=message,
            status_code=500,
            details={
                "orders_path": orders_path,
                "error": str(error),
                "error_type": type(error).__name__,
            },
        )
