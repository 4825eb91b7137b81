"""
Sales Profitability Analytics -- FastAPI application.

Provides REST endpoints for derived sales metrics (gross price, net invoice
sales, net sales) and ranked top-N questions over them: top markets and top
customers by net sales, and top products per division by quantity sold.

The sales snapshot is loaded from CSV extracts in ``DATA_DIR`` at startup and
shared read-only by every request.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from profitability.routers import v1_metrics, v1_rankings
from profitability.utils.config import APP_TITLE, APP_VERSION, DATA_DIR, LOG_LEVEL
from profitability.utils.data_source import get_snapshot

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------
logging.basicConfig(
    level=getattr(logging, LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Lifespan (startup / shutdown)
# ---------------------------------------------------------------------------
@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Load the sales snapshot before serving requests."""
    logger.info("Starting %s v%s", APP_TITLE, APP_VERSION)
    try:
        get_snapshot()
    except FileNotFoundError:
        logger.exception("Sales extracts missing under %s", DATA_DIR)
        raise
    yield
    logger.info("Shutting down %s", APP_TITLE)


# ---------------------------------------------------------------------------
# Application factory
# ---------------------------------------------------------------------------
app = FastAPI(
    title=APP_TITLE,
    version=APP_VERSION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(v1_metrics.router)
app.include_router(v1_rankings.router)


# ---------------------------------------------------------------------------
# Health check
# ---------------------------------------------------------------------------
@app.get("/health", tags=["health"])
async def health_check() -> dict[str, str]:
    """Return a simple health-check response."""
    return {"status": "healthy", "version": APP_VERSION}
