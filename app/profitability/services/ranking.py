"""
Aggregation and top-N ranking.

Two ranking modes are supported:

* **Flat top-N** -- group derived metrics by one key, sum ``net_sales``,
  scale to millions (rounded to 2 places) and keep the first ``n`` groups by
  the scaled value.  Ties keep the order in which each group first appeared,
  or fall back to the key ascending when ``deterministic`` is set.
* **Partitioned dense rank** -- group raw sales by (division, product), sum
  the quantity sold, dense-rank within each division and keep every row with
  rank <= ``n``.  Ties share a rank, so a division may return more than
  ``n`` rows.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Callable, Hashable, Iterable, Mapping, Sequence, TypeVar

from profitability.errors import InvalidInput, NotFound
from profitability.models import (
    CustomerNetSales,
    DerivedSaleMetric,
    DivisionProductRank,
    MarketNetSales,
    Product,
    Sale,
)
from profitability.services.fiscal import FISCAL_YEAR_STAMPED, sale_fiscal_year

logger = logging.getLogger(__name__)

K = TypeVar("K", bound=Hashable)
R = TypeVar("R")

_MILLION = Decimal("1000000")
_CENT = Decimal("0.01")


# ---------------------------------------------------------------------------
# Building blocks
# ---------------------------------------------------------------------------
def validate_top_n(n: int) -> int:
    if isinstance(n, bool) or not isinstance(n, int) or n <= 0:
        raise InvalidInput(f"n must be a positive integer, got {n!r}")
    return n


def to_millions(amount: Decimal) -> Decimal:
    """Scale to millions, rounded half-up to 2 decimal places."""
    return (Decimal(amount) / _MILLION).quantize(_CENT, rounding=ROUND_HALF_UP)


def sum_by(
    records: Iterable[R],
    key: Callable[[R], K],
    value: Callable[[R], Any],
) -> dict[K, Any]:
    """Sum *value* per *key*; groups keep first-occurrence order."""
    totals: dict[K, Any] = {}
    for record in records:
        k = key(record)
        totals[k] = totals.get(k, 0) + value(record)
    return totals


def _key_order(key: Any) -> tuple[bool, str]:
    return (key is None, "" if key is None else str(key))


def top_n(
    totals: Mapping[K, Any],
    n: int,
    *,
    deterministic: bool = False,
) -> list[tuple[K, Any]]:
    """Return the ``n`` largest groups, value descending.

    Python's sort is stable (also with ``reverse=True``), so equal values keep
    their first-occurrence order unless *deterministic* pre-sorts by key.
    """
    validate_top_n(n)
    items = list(totals.items())
    if deterministic:
        items.sort(key=lambda kv: _key_order(kv[0]))
    items.sort(key=lambda kv: kv[1], reverse=True)
    return items[:n]


def dense_rank(values: Sequence[Any]) -> list[int]:
    """Dense rank of each value, largest first (ties share a rank, no gaps)."""
    distinct = sorted(set(values), reverse=True)
    rank_of = {v: position for position, v in enumerate(distinct, start=1)}
    return [rank_of[v] for v in values]


# ---------------------------------------------------------------------------
# Flat top-N by net sales
# ---------------------------------------------------------------------------
def _net_sales_millions(
    metrics: Iterable[DerivedSaleMetric],
    key: Callable[[DerivedSaleMetric], K],
) -> dict[K, Decimal]:
    totals = sum_by(metrics, key, lambda m: m.net_sales)
    return {k: to_millions(v) for k, v in totals.items()}


def rank_markets(
    metrics: Iterable[DerivedSaleMetric],
    fiscal_year: int,
    n: int,
    *,
    deterministic: bool = False,
) -> list[MarketNetSales]:
    """Top ``n`` markets by net sales (millions) in *fiscal_year*."""
    validate_top_n(n)
    scoped = (m for m in metrics if m.fiscal_year == fiscal_year)
    ranked = top_n(
        _net_sales_millions(scoped, lambda m: m.market), n, deterministic=deterministic
    )
    return [MarketNetSales(market=k, net_sales_mln=v) for k, v in ranked]


def rank_customers(
    metrics: Iterable[DerivedSaleMetric],
    market: str,
    fiscal_year: int,
    n: int,
    *,
    deterministic: bool = False,
) -> list[CustomerNetSales]:
    """Top ``n`` customers of *market* by net sales (millions) in *fiscal_year*.

    Customers are grouped by name, so distinct customer codes sharing a name
    are reported as one customer.
    """
    validate_top_n(n)
    scoped = (
        m for m in metrics if m.fiscal_year == fiscal_year and m.market == market
    )
    ranked = top_n(
        _net_sales_millions(scoped, lambda m: m.customer), n, deterministic=deterministic
    )
    return [CustomerNetSales(customer=k, net_sales_mln=v) for k, v in ranked]


# ---------------------------------------------------------------------------
# Partitioned dense rank by quantity
# ---------------------------------------------------------------------------
def rank_products_per_division(
    sales: Iterable[Sale],
    products: Mapping[int, Product],
    fiscal_year: int,
    n: int,
    *,
    fiscal_year_source: str = FISCAL_YEAR_STAMPED,
) -> list[DivisionProductRank]:
    """Products with dense rank <= ``n`` by quantity sold within each division.

    Products are grouped by name within a division, so variants of the same
    product are summed together.  Rows come back ordered by division, then
    rank, then product name.

    Raises
    ------
    NotFound
        If a sale in *fiscal_year* references an unknown product.  Callers
        that want such sales skipped filter them out first, as
        ``AnalyticsService.top_n_products_per_division`` does.
    """
    validate_top_n(n)

    def division_product(sale: Sale) -> tuple[Any, str]:
        try:
            product = products[sale.product_code]
        except KeyError:
            raise NotFound("product", (sale.product_code,)) from None
        return (product.division, product.product)

    scoped = (
        s for s in sales if sale_fiscal_year(s, fiscal_year_source) == fiscal_year
    )
    totals = sum_by(scoped, division_product, lambda s: s.sold_quantity)

    partitions: dict[Any, list[tuple[str, int]]] = defaultdict(list)
    for (division, product), qty in totals.items():
        partitions[division].append((product, qty))

    rows: list[DivisionProductRank] = []
    for division in sorted(partitions, key=_key_order):
        members = partitions[division]
        ranks = dense_rank([qty for _, qty in members])
        ranked = sorted(
            (
                (rank, product, qty)
                for (product, qty), rank in zip(members, ranks)
                if rank <= n
            ),
            key=lambda row: (row[0], row[1]),
        )
        rows.extend(
            DivisionProductRank(division=division, product=product, total_qty=qty, rank=rank)
            for rank, product, qty in ranked
        )
    return rows
