"""
Derived metrics router.

Exposes the per-sale price waterfall (gross -> net invoice -> net sales) and
the per-record failures of the derivation, plus an admin hook to reload the
snapshot from the CSV extracts.
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any, Optional

from fastapi import APIRouter, HTTPException, Query

from profitability.models import MetricBatchSummary
from profitability.services.analytics import get_service
from profitability.services.fiscal import sale_fiscal_year
from profitability.utils.config import FISCAL_YEAR_SOURCE
from profitability.utils.data_source import reload_snapshot

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1", tags=["metrics"])


# ---------------------------------------------------------------------------
# GET /metrics
# ---------------------------------------------------------------------------
@router.get(
    "/metrics",
    response_model=MetricBatchSummary,
    summary="Derived net-sales metrics and per-record failures",
)
async def get_metrics(
    fiscal_year: Optional[int] = Query(None, description="Restrict to one fiscal year"),
    include_failures: bool = Query(True, description="List failed records"),
) -> MetricBatchSummary:
    """Derive every sale and return the records plus failure details."""
    try:
        service = get_service()
        batch = service.compute_metrics()

        metrics = batch.metrics
        failures = batch.failures
        if fiscal_year is not None:
            metrics = [m for m in metrics if m.fiscal_year == fiscal_year]
            failures = [
                f
                for f in failures
                if sale_fiscal_year(f.sale, service.fiscal_year_source) == fiscal_year
            ]

        return MetricBatchSummary(
            fiscal_year=fiscal_year,
            succeeded=len(metrics),
            failed=len(failures),
            gross_price_total=sum((m.gross_price_total for m in metrics), Decimal(0)),
            net_invoice_sales=sum((m.net_invoice_sales for m in metrics), Decimal(0)),
            net_sales=sum((m.net_sales for m in metrics), Decimal(0)),
            metrics=metrics,
            failures=failures if include_failures else [],
        )
    except Exception as exc:
        logger.exception("Failed to compute metrics")
        raise HTTPException(status_code=500, detail=str(exc)) from exc


# ---------------------------------------------------------------------------
# POST /admin/reload
# ---------------------------------------------------------------------------
@router.post(
    "/admin/reload",
    summary="Reload the sales snapshot from the configured data directory",
)
async def post_reload() -> dict[str, Any]:
    """Rebuild the snapshot; in-flight queries keep the previous one."""
    try:
        snapshot = reload_snapshot()
        return {
            "status": "reloaded",
            "sales": len(snapshot.sales),
            "products": len(snapshot.products),
            "customers": len(snapshot.customers),
            "fiscal_year_source": FISCAL_YEAR_SOURCE,
        }
    except FileNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except Exception as exc:
        logger.exception("Snapshot reload failed")
        raise HTTPException(status_code=500, detail=str(exc)) from exc
