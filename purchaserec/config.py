"""Configuration for the PurchaseRec service and scripts.

Values are read from environment variables (optionally from a ``.env`` file)
and fall back to defaults suitable for local development. The recommender core
does not read this module; it takes explicit arguments.
"""

import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# Base Directory
BASE_DIR = Path(__file__).resolve().parent.parent

# Data files
DATA_DIR = os.getenv("PURCHASEREC_DATA_DIR", str(BASE_DIR / "data"))
ORDERS_FILENAME = "orders.csv"
PRODUCTS_FILENAME = "products.csv"

# Model artifacts
MODEL_DIR = os.getenv("PURCHASEREC_MODEL_DIR", str(BASE_DIR / "models"))

# Recommendation defaults
DEFAULT_TOP_N = int(os.getenv("PURCHASEREC_TOP_N", "5"))

# Count cart-item quantities instead of one unit per cart item
WEIGHT_BY_QUANTITY = os.getenv("PURCHASEREC_WEIGHT_BY_QUANTITY", "false").lower() in (
    "1",
    "true",
    "yes",
)


def _optional_int(name: str) -> Optional[int]:
    value = os.getenv(name, "").strip()
    return int(value) if value else None


# Upper bound on distinct products per user when building the difference model
MAX_PRODUCTS_PER_USER = _optional_int("PURCHASEREC_MAX_PRODUCTS_PER_USER")

# Logging
LOG_LEVEL = os.getenv("PURCHASEREC_LOG_LEVEL", "INFO")

MODEL_VERSION = "0.1.0"
