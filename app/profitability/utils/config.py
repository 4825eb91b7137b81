"""
Configuration module for the Sales Profitability Analytics backend.

All settings are configurable via environment variables (or a local ``.env``
file) with sensible defaults for running against the bundled seed extracts.
"""

import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: bool) -> bool:
    """Interpret common truthy strings (``1``, ``true``, ``yes``, ``on``)."""
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


# ---------------------------------------------------------------------------
# Data source
# ---------------------------------------------------------------------------
_PACKAGE_DIR = Path(__file__).resolve().parent.parent
SEED_DATA_DIR: Path = _PACKAGE_DIR / "data" / "seed"
DATA_DIR: Path = Path(os.getenv("DATA_DIR", str(SEED_DATA_DIR)))

# CSV extract names, one per dimension / fact table
FILE_PRODUCTS: str = "dim_product.csv"
FILE_CUSTOMERS: str = "dim_customer.csv"
FILE_DATES: str = "dim_date.csv"
FILE_SALES: str = "fact_sales_monthly.csv"
FILE_GROSS_PRICE: str = "fact_gross_price.csv"
FILE_PRE_INVOICE: str = "fact_pre_invoice_deductions.csv"
FILE_POST_INVOICE: str = "fact_post_invoice_deductions.csv"

# ---------------------------------------------------------------------------
# Metric derivation
# ---------------------------------------------------------------------------
# "stamped" uses the fiscal_year column on each sale, "calendar" recomputes
# it from the sale date.
FISCAL_YEAR_SOURCE: str = os.getenv("FISCAL_YEAR_SOURCE", "stamped").lower()

# ---------------------------------------------------------------------------
# Ranking
# ---------------------------------------------------------------------------
DEFAULT_TOP_N: int = int(os.getenv("DEFAULT_TOP_N", "5"))
MAX_TOP_N: int = int(os.getenv("MAX_TOP_N", "1000"))
DETERMINISTIC_TIES: bool = _env_bool("DETERMINISTIC_TIES", False)

# ---------------------------------------------------------------------------
# Application
# ---------------------------------------------------------------------------
APP_TITLE: str = os.getenv("APP_TITLE", "Sales Profitability Analytics")
APP_VERSION: str = os.getenv("APP_VERSION", "1.0.0")
LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
