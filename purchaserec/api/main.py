"""FastAPI application main module.

This module defines the main FastAPI application instance and core API endpoints
for the PurchaseRec recommendation service. It provides health, status and
metrics endpoints and serves as the entry point for the API server.
"""

import logging
from typing import Dict

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from purchaserec import __version__, config
from purchaserec.api.logging_config import RequestLoggingMiddleware, setup_logging
from purchaserec.api.metrics import metrics_service
from purchaserec.api.routes import recommend
from purchaserec.exceptions import PurchaseRecException

setup_logging(config.LOG_LEVEL)
logger = logging.getLogger(__name__)

# Create FastAPI application instance
app = FastAPI(
    title="PurchaseRec API",
    description="Purchase-history product recommendation service",
    version=__version__,
)

app.add_middleware(RequestLoggingMiddleware)

# Include routers
app.include_router(recommend.router)


@app.exception_handler(PurchaseRecException)
async def purchaserec_exception_handler(
    request: Request, exc: PurchaseRecException
) -> JSONResponse:
    """Turn PurchaseRec errors into JSON responses with their status code."""
    log = logger.error if exc.status_code >= 500 else logger.warning
    log(
        exc.message,
        extra={
            "path": str(request.url.path),
            "status_code": exc.status_code,
            "error_type": type(exc).__name__,
        },
    )
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": type(exc).__name__,
            "message": exc.message,
            "details": exc.details,
        },
    )


@app.get("/ping")
def ping() -> Dict[str, str]:
    """Health check endpoint.

    Returns:
        Dictionary with status key set to "ok".
    """
    return {"status": "ok"}


@app.get("/status")
def status() -> Dict:
    """Report whether the default model is loaded and how large it is."""
    return recommend.get_model_status(config.MODEL_DIR)


@app.get("/metrics")
def metrics() -> Dict:
    """Recommendation counts and latency per strategy."""
    return metrics_service.get_metrics()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "purchaserec.api.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
    )
