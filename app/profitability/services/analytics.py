"""
Analytics service.

Binds the metric pipeline and the ranking engine to one
:class:`~profitability.utils.data_source.SalesSnapshot` and exposes the four
analytical operations used by the HTTP layer:

* ``compute_metrics``
* ``top_n_by_market``
* ``top_n_customers``
* ``top_n_products_per_division``

Sales whose derivation fails are never folded into a total.  Each ranking
skips them explicitly, logs how many were skipped and leaves that count on
``last_skipped``.  A service instance is built per request, so
``last_skipped`` always belongs to the most recent ranking call.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional

from profitability.models import (
    CustomerNetSales,
    DivisionProductRank,
    MarketNetSales,
    MetricBatch,
    MetricFailure,
    Sale,
)
from profitability.services import ranking
from profitability.services.fiscal import (
    check_fiscal_year_source,
    dim_date_mismatches,
    sale_fiscal_year,
    stamped_fiscal_year_mismatches,
)
from profitability.services.pipeline import compute_metrics
from profitability.utils.config import DETERMINISTIC_TIES, FISCAL_YEAR_SOURCE
from profitability.utils.data_source import SalesSnapshot, get_snapshot

logger = logging.getLogger(__name__)


class AnalyticsService:
    """Profitability metrics and top-N rankings over a single snapshot."""

    def __init__(
        self,
        snapshot: SalesSnapshot,
        *,
        fiscal_year_source: str = FISCAL_YEAR_SOURCE,
        deterministic_ties: bool = DETERMINISTIC_TIES,
    ) -> None:
        self.snapshot = snapshot
        self.fiscal_year_source = check_fiscal_year_source(fiscal_year_source)
        self.deterministic_ties = deterministic_ties
        # Records left out of the most recent ranking
        self.last_skipped = 0

    # ------------------------------------------------------------------
    # Metrics
    # ------------------------------------------------------------------
    def compute_metrics(self) -> MetricBatch:
        """Derive every sale in the snapshot."""
        self._check_fiscal_calendar()
        batch = compute_metrics(
            self.snapshot.sales,
            self.snapshot,
            fiscal_year_source=self.fiscal_year_source,
        )
        logger.info(
            "Derived metrics for %d sale(s); %d failed", batch.succeeded, batch.failed
        )
        return batch

    def _check_fiscal_calendar(self) -> None:
        mismatched = stamped_fiscal_year_mismatches(self.snapshot.sales)
        if mismatched:
            logger.warning(
                "%d sale(s) carry a fiscal_year that disagrees with their date "
                "(using %s fiscal years)",
                len(mismatched),
                self.fiscal_year_source,
            )
        stale_dates = dim_date_mismatches(self.snapshot.dates)
        if stale_dates:
            logger.warning(
                "%d dim_date row(s) disagree with the October-September calendar",
                len(stale_dates),
            )

    def _failed_in_year(
        self, batch: MetricBatch, fiscal_year: int
    ) -> list[MetricFailure]:
        return [
            failure
            for failure in batch.failures
            if sale_fiscal_year(failure.sale, self.fiscal_year_source) == fiscal_year
        ]

    def skipped_in_year(self, batch: MetricBatch, fiscal_year: int) -> int:
        """Number of failed derivations among the sales of *fiscal_year*."""
        return len(self._failed_in_year(batch, fiscal_year))

    def skipped_in_market(
        self, batch: MetricBatch, market: str, fiscal_year: int
    ) -> int:
        """Number of failed derivations among *market*'s sales of *fiscal_year*.

        Failures whose customer is missing from ``dim_customer`` have no
        market and are not counted here; they still count towards
        :meth:`skipped_in_year`.
        """
        count = 0
        for failure in self._failed_in_year(batch, fiscal_year):
            customer = self.snapshot.customers.get(failure.sale.customer_code)
            if customer is not None and customer.market == market:
                count += 1
        return count

    def _batch(
        self,
        batch: Optional[MetricBatch],
        fiscal_year: int,
        skipped: Callable[[MetricBatch], int],
    ) -> MetricBatch:
        batch = batch if batch is not None else self.compute_metrics()
        self.last_skipped = skipped(batch)
        if self.last_skipped:
            logger.warning(
                "Skipping %d sale(s) in FY%d with unresolved lookups",
                self.last_skipped,
                fiscal_year,
            )
        return batch

    # ------------------------------------------------------------------
    # Rankings
    # ------------------------------------------------------------------
    def top_n_by_market(
        self, fiscal_year: int, n: int, *, batch: Optional[MetricBatch] = None
    ) -> list[MarketNetSales]:
        """Markets ordered by net sales (millions), first ``n``."""
        ranking.validate_top_n(n)
        batch = self._batch(
            batch, fiscal_year, lambda b: self.skipped_in_year(b, fiscal_year)
        )
        return ranking.rank_markets(
            batch.metrics, fiscal_year, n, deterministic=self.deterministic_ties
        )

    def top_n_customers(
        self,
        market: str,
        fiscal_year: int,
        n: int,
        *,
        batch: Optional[MetricBatch] = None,
    ) -> list[CustomerNetSales]:
        """Customers of *market* ordered by net sales (millions), first ``n``."""
        ranking.validate_top_n(n)
        batch = self._batch(
            batch, fiscal_year, lambda b: self.skipped_in_market(b, market, fiscal_year)
        )
        return ranking.rank_customers(
            batch.metrics, market, fiscal_year, n, deterministic=self.deterministic_ties
        )

    def unknown_product_sales(self, fiscal_year: int) -> list[Sale]:
        """Sales of *fiscal_year* whose product is missing from ``dim_product``."""
        return [
            s
            for s in self.snapshot.sales
            if sale_fiscal_year(s, self.fiscal_year_source) == fiscal_year
            and s.product_code not in self.snapshot.products
        ]

    def top_n_products_per_division(
        self, fiscal_year: int, n: int
    ) -> list[DivisionProductRank]:
        """Products with dense rank <= ``n`` by quantity within each division.

        Sales of unknown products are dropped before ranking and counted on
        ``last_skipped``.
        """
        ranking.validate_top_n(n)
        unknown = self.unknown_product_sales(fiscal_year)
        self.last_skipped = len(unknown)
        sales = self.snapshot.sales
        if unknown:
            logger.warning(
                "Skipping %d sale(s) in FY%d with unknown product codes",
                len(unknown),
                fiscal_year,
            )
            sales = tuple(s for s in sales if s.product_code in self.snapshot.products)
        return ranking.rank_products_per_division(
            sales,
            self.snapshot.products,
            fiscal_year,
            n,
            fiscal_year_source=self.fiscal_year_source,
        )


def get_service() -> AnalyticsService:
    """Return a service bound to the current process-wide snapshot."""
    return AnalyticsService(get_snapshot())
