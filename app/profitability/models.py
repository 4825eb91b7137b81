"""
Pydantic data models for the Sales Profitability Analytics backend.

Entities loaded from the dimension / fact extracts, the derived per-sale
metric record, per-record failures, and the ranking result rows are all
defined here so they can be shared across services, routers, and tests.
Every model is frozen: records are immutable once produced.
"""

from __future__ import annotations

import datetime as dt
from decimal import Decimal
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class _Record(BaseModel):
    model_config = ConfigDict(frozen=True)


# ---------------------------------------------------------------------------
# Dimensions
# ---------------------------------------------------------------------------
class Product(_Record):
    """A single row of ``dim_product``."""

    product_code: int
    product: str
    variant: str
    division: Optional[str] = None


class Customer(_Record):
    """A single row of ``dim_customer``."""

    customer_code: int
    customer: str
    market: Optional[str] = None
    region: Optional[str] = None


class DimDate(_Record):
    """A single row of ``dim_date`` as stamped by the loading layer."""

    calendar_date: dt.date
    fiscal_year: int
    month: int
    quarter: int


# ---------------------------------------------------------------------------
# Facts and lookup tables
# ---------------------------------------------------------------------------
class Sale(_Record):
    """One monthly sale line from ``fact_sales_monthly``."""

    date: dt.date
    fiscal_year: int
    customer_code: int
    product_code: int
    sold_quantity: int
    gross_price_total: Decimal


class GrossPrice(_Record):
    """Unit gross price for a product in a fiscal year."""

    product_code: int
    fiscal_year: int
    gross_price: Decimal


class PreInvoiceDeduction(_Record):
    """Pre-invoice discount for a customer in a fiscal year (0-100 scale)."""

    customer_code: int
    fiscal_year: int
    pre_invoice_discount_pct: Decimal


class PostInvoiceDeduction(_Record):
    """Post-invoice deductions for a customer / product / date (0-100 scale)."""

    customer_code: int
    product_code: int
    date: dt.date
    discounts_pct: Decimal
    other_deductions_pct: Decimal

    @property
    def combined_pct(self) -> Decimal:
        return self.discounts_pct + self.other_deductions_pct


# ---------------------------------------------------------------------------
# Derived metrics
# ---------------------------------------------------------------------------
class DerivedSaleMetric(_Record):
    """A sale enriched with its price waterfall down to net sales."""

    date: dt.date
    fiscal_year: int
    customer_code: int
    customer: str
    market: Optional[str] = None
    product_code: int
    product: str
    variant: str
    division: Optional[str] = None
    sold_quantity: int
    gross_price_per_item: Decimal
    gross_price_total: Decimal
    pre_invoice_discount_pct: Decimal
    net_invoice_sales: Decimal
    post_invoice_discount_pct: Decimal
    net_sales: Decimal


class MetricFailure(_Record):
    """A sale that could not be derived, with the lookup that failed."""

    index: int = Field(..., description="Position of the sale in the input")
    sale: Sale
    error: str = Field(..., description="NotFound or InvalidInput")
    lookup: Optional[str] = None
    key: Optional[tuple[Any, ...]] = None
    message: str


class MetricBatch(_Record):
    """Outcome of deriving metrics for a collection of sales."""

    metrics: list[DerivedSaleMetric]
    failures: list[MetricFailure]

    @property
    def succeeded(self) -> int:
        return len(self.metrics)

    @property
    def failed(self) -> int:
        return len(self.failures)


class MetricBatchSummary(BaseModel):
    """HTTP view of a :class:`MetricBatch`."""

    fiscal_year: Optional[int] = None
    succeeded: int
    failed: int
    gross_price_total: Decimal
    net_invoice_sales: Decimal
    net_sales: Decimal
    metrics: list[DerivedSaleMetric]
    failures: list[MetricFailure] = []


# ---------------------------------------------------------------------------
# Ranking results
# ---------------------------------------------------------------------------
class MarketNetSales(_Record):
    """Net sales of one market, in millions."""

    market: Optional[str]
    net_sales_mln: Decimal


class CustomerNetSales(_Record):
    """Net sales of one customer, in millions."""

    customer: str
    net_sales_mln: Decimal


class DivisionProductRank(_Record):
    """Quantity sold of one product and its dense rank within its division."""

    division: Optional[str]
    product: str
    total_qty: int
    rank: int


class RankingResponse(BaseModel):
    """Ranked rows plus the number of sales left out for failed lookups."""

    fiscal_year: int
    n: int
    skipped_records: int = Field(
        0, description="Sales excluded because a lookup could not be resolved"
    )
    rows: list[Any]
