"""
Metric derivation pipeline.

Turns a raw sale line into its price waterfall::

    gross_price_total = round(sold_quantity * gross_price, 2)
    net_invoice_sales = gross_price_total - pre_pct / 100 * gross_price_total
    net_sales         = net_invoice_sales * (1 - post_pct / 100)

Lookups run in a fixed order (gross price, pre-invoice, post-invoice) so the
first missing dependency is the one reported.  Percentages are stored on the
0-100 scale and divided by 100 before use, for both deduction kinds.

:func:`compute_metrics` applies the pipeline to a collection of sales and
keeps every failure as a :class:`~profitability.models.MetricFailure`; callers
decide whether to skip them, and the skipped count is always available.
"""

from __future__ import annotations

import logging
from decimal import ROUND_HALF_UP, Decimal
from typing import TYPE_CHECKING, Iterable

from profitability.errors import InvalidInput, NotFound
from profitability.models import (
    Customer,
    DerivedSaleMetric,
    MetricBatch,
    MetricFailure,
    Product,
    Sale,
)
from profitability.services.fiscal import (
    FISCAL_YEAR_STAMPED,
    check_fiscal_year_source,
    sale_fiscal_year,
)
from profitability.services.resolvers import DiscountResolver, PriceResolver

if TYPE_CHECKING:
    from profitability.utils.data_source import SalesSnapshot

logger = logging.getLogger(__name__)

_HUNDRED = Decimal("100")
_CENT = Decimal("0.01")


def round_money(amount: Decimal) -> Decimal:
    """Round half-up to two decimal places."""
    return amount.quantize(_CENT, rounding=ROUND_HALF_UP)


def pct_to_fraction(pct: Decimal) -> Decimal:
    return pct / _HUNDRED


class MetricPipeline:
    """Derive :class:`DerivedSaleMetric` records from sales."""

    def __init__(
        self,
        prices: PriceResolver,
        discounts: DiscountResolver,
        *,
        fiscal_year_source: str = FISCAL_YEAR_STAMPED,
    ) -> None:
        self.prices = prices
        self.discounts = discounts
        self.fiscal_year_source = check_fiscal_year_source(fiscal_year_source)

    def derive(self, sale: Sale, product: Product, customer: Customer) -> DerivedSaleMetric:
        """Compute gross, net-invoice and net sales for one sale.

        Raises
        ------
        InvalidInput
            If the sale's quantity is not positive.
        NotFound
            If the gross price, pre-invoice or post-invoice entry is missing.
        """
        if sale.sold_quantity <= 0:
            raise InvalidInput(
                f"sold_quantity must be positive, got {sale.sold_quantity}"
            )

        year = sale_fiscal_year(sale, self.fiscal_year_source)

        unit_price = self.prices.unit_price(sale.product_code, year)
        gross_price_total = round_money(sale.sold_quantity * unit_price)

        pre_pct = self.discounts.pre_invoice_discount_pct(sale.customer_code, year)
        net_invoice_sales = gross_price_total - pct_to_fraction(pre_pct) * gross_price_total

        post_pct = self.discounts.post_invoice_discount_pct(
            sale.customer_code, sale.product_code, sale.date
        )
        net_sales = net_invoice_sales * (1 - pct_to_fraction(post_pct))

        return DerivedSaleMetric(
            date=sale.date,
            fiscal_year=year,
            customer_code=sale.customer_code,
            customer=customer.customer,
            market=customer.market,
            product_code=sale.product_code,
            product=product.product,
            variant=product.variant,
            division=product.division,
            sold_quantity=sale.sold_quantity,
            gross_price_per_item=unit_price,
            gross_price_total=gross_price_total,
            pre_invoice_discount_pct=pre_pct,
            net_invoice_sales=net_invoice_sales,
            post_invoice_discount_pct=post_pct,
            net_sales=net_sales,
        )


def compute_metrics(
    sales: Iterable[Sale],
    snapshot: "SalesSnapshot",
    *,
    fiscal_year_source: str = FISCAL_YEAR_STAMPED,
) -> MetricBatch:
    """Derive every sale against *snapshot*, collecting per-record failures."""
    pipeline = MetricPipeline(
        snapshot.prices, snapshot.discounts, fiscal_year_source=fiscal_year_source
    )
    metrics: list[DerivedSaleMetric] = []
    failures: list[MetricFailure] = []

    for index, sale in enumerate(sales):
        try:
            product = snapshot.product(sale.product_code)
            customer = snapshot.customer(sale.customer_code)
            metrics.append(pipeline.derive(sale, product, customer))
        except NotFound as exc:
            logger.debug("Sale #%d: %s", index, exc)
            failures.append(
                MetricFailure(
                    index=index,
                    sale=sale,
                    error="NotFound",
                    lookup=exc.lookup,
                    key=exc.key,
                    message=str(exc),
                )
            )
        except InvalidInput as exc:
            logger.debug("Sale #%d rejected: %s", index, exc)
            failures.append(
                MetricFailure(index=index, sale=sale, error="InvalidInput", message=str(exc))
            )

    return MetricBatch(metrics=metrics, failures=failures)
