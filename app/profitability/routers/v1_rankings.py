"""
Top-N rankings router.

Endpoints for the three ranked questions over derived sales metrics:
markets and customers by net sales (millions), and products per division by
quantity sold using dense rank.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, Query

from profitability.errors import InvalidInput, NotFound
from profitability.models import RankingResponse
from profitability.services.analytics import get_service
from profitability.utils.config import DEFAULT_TOP_N, MAX_TOP_N

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/rankings", tags=["rankings"])


# ---------------------------------------------------------------------------
# GET /markets
# ---------------------------------------------------------------------------
@router.get(
    "/markets",
    response_model=RankingResponse,
    summary="Top N markets by net sales",
)
async def get_top_markets(
    fiscal_year: int = Query(..., description="Fiscal year (Oct-Sep, named by end year)"),
    n: int = Query(DEFAULT_TOP_N, le=MAX_TOP_N, description="Number of markets"),
) -> RankingResponse:
    """Return markets ordered by net sales in millions."""
    try:
        service = get_service()
        rows = service.top_n_by_market(fiscal_year, n)
        return RankingResponse(
            fiscal_year=fiscal_year,
            n=n,
            skipped_records=service.last_skipped,
            rows=rows,
        )
    except InvalidInput as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except Exception as exc:
        logger.exception("Failed to rank markets for FY%s", fiscal_year)
        raise HTTPException(status_code=500, detail=str(exc)) from exc


# ---------------------------------------------------------------------------
# GET /customers
# ---------------------------------------------------------------------------
@router.get(
    "/customers",
    response_model=RankingResponse,
    summary="Top N customers in a market by net sales",
)
async def get_top_customers(
    market: str = Query(..., description="Market to rank customers within"),
    fiscal_year: int = Query(..., description="Fiscal year (Oct-Sep, named by end year)"),
    n: int = Query(DEFAULT_TOP_N, le=MAX_TOP_N, description="Number of customers"),
) -> RankingResponse:
    """Return customers of a market ordered by net sales in millions."""
    try:
        service = get_service()
        rows = service.top_n_customers(market, fiscal_year, n)
        return RankingResponse(
            fiscal_year=fiscal_year,
            n=n,
            skipped_records=service.last_skipped,
            rows=rows,
        )
    except InvalidInput as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except Exception as exc:
        logger.exception("Failed to rank customers of %s for FY%s", market, fiscal_year)
        raise HTTPException(status_code=500, detail=str(exc)) from exc


# ---------------------------------------------------------------------------
# GET /products-per-division
# ---------------------------------------------------------------------------
@router.get(
    "/products-per-division",
    response_model=RankingResponse,
    summary="Top N products per division by quantity sold (dense rank)",
)
async def get_top_products_per_division(
    fiscal_year: int = Query(..., description="Fiscal year (Oct-Sep, named by end year)"),
    n: int = Query(DEFAULT_TOP_N, le=MAX_TOP_N, description="Highest rank kept"),
) -> RankingResponse:
    """Return every product ranked <= n within its division; ties share a rank."""
    try:
        service = get_service()
        rows = service.top_n_products_per_division(fiscal_year, n)
        return RankingResponse(
            fiscal_year=fiscal_year,
            n=n,
            skipped_records=service.last_skipped,
            rows=rows,
        )
    except InvalidInput as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except NotFound as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except Exception as exc:
        logger.exception("Failed to rank products per division for FY%s", fiscal_year)
        raise HTTPException(status_code=500, detail=str(exc)) from exc
