"""
Read-only sales snapshot and its process-wide cache.

A :class:`SalesSnapshot` holds every dimension, fact and lookup table needed
by the metric pipeline and the ranking engine.  It is built once from flat
CSV extracts (one file per warehouse table) and then shared read-only; a
reload builds a fresh snapshot and swaps the reference, so queries already
holding the previous snapshot keep a consistent point-in-time view.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any, Iterable, Mapping, Optional

import pandas as pd

from profitability.errors import NotFound
from profitability.models import (
    Customer,
    DimDate,
    GrossPrice,
    PostInvoiceDeduction,
    PreInvoiceDeduction,
    Product,
    Sale,
)
from profitability.services.resolvers import DiscountResolver, PriceResolver
from profitability.utils.config import (
    DATA_DIR,
    FILE_CUSTOMERS,
    FILE_DATES,
    FILE_GROSS_PRICE,
    FILE_POST_INVOICE,
    FILE_PRE_INVOICE,
    FILE_PRODUCTS,
    FILE_SALES,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Snapshot
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class SalesSnapshot:
    """Point-in-time, read-only view of the sales warehouse."""

    products: Mapping[int, Product]
    customers: Mapping[int, Customer]
    sales: tuple[Sale, ...]
    prices: PriceResolver
    discounts: DiscountResolver
    dates: tuple[DimDate, ...] = field(default=())

    @classmethod
    def build(
        cls,
        *,
        products: Iterable[Product],
        customers: Iterable[Customer],
        sales: Iterable[Sale],
        gross_prices: Iterable[GrossPrice],
        pre_invoice: Iterable[PreInvoiceDeduction],
        post_invoice: Iterable[PostInvoiceDeduction],
        dates: Iterable[DimDate] = (),
    ) -> "SalesSnapshot":
        """Index raw records by their keys."""
        return cls(
            products=MappingProxyType({p.product_code: p for p in products}),
            customers=MappingProxyType({c.customer_code: c for c in customers}),
            sales=tuple(sales),
            prices=PriceResolver.from_records(gross_prices),
            discounts=DiscountResolver.from_records(pre_invoice, post_invoice),
            dates=tuple(dates),
        )

    def product(self, product_code: int) -> Product:
        try:
            return self.products[product_code]
        except KeyError:
            raise NotFound("product", (product_code,)) from None

    def customer(self, customer_code: int) -> Customer:
        try:
            return self.customers[customer_code]
        except KeyError:
            raise NotFound("customer", (customer_code,)) from None


# ---------------------------------------------------------------------------
# CSV loading
# ---------------------------------------------------------------------------
def _read_rows(
    data_dir: Path, filename: str, *, required: bool = True
) -> list[dict[str, Any]]:
    """Read one CSV extract into a list of row dicts.

    Values are read as strings so that money and percentage columns keep
    their exact decimal representation; pydantic coerces them on model
    construction.  Empty cells become ``None``.
    """
    path = data_dir / filename
    if not path.is_file():
        if required:
            raise FileNotFoundError(f"Extract not found: {path}")
        logger.info("Optional extract %s not present; skipping", path)
        return []

    df = pd.read_csv(path, dtype=str, skipinitialspace=True)
    df = df.astype(object).where(df.notnull(), None)
    return df.to_dict(orient="records")


def load_snapshot(data_dir: Optional[Path] = None) -> SalesSnapshot:
    """Build a :class:`SalesSnapshot` from the CSV extracts in *data_dir*."""
    data_dir = Path(data_dir or DATA_DIR)

    snapshot = SalesSnapshot.build(
        products=[Product(**r) for r in _read_rows(data_dir, FILE_PRODUCTS)],
        customers=[Customer(**r) for r in _read_rows(data_dir, FILE_CUSTOMERS)],
        sales=[Sale(**r) for r in _read_rows(data_dir, FILE_SALES)],
        gross_prices=[GrossPrice(**r) for r in _read_rows(data_dir, FILE_GROSS_PRICE)],
        pre_invoice=[
            PreInvoiceDeduction(**r) for r in _read_rows(data_dir, FILE_PRE_INVOICE)
        ],
        post_invoice=[
            PostInvoiceDeduction(**r) for r in _read_rows(data_dir, FILE_POST_INVOICE)
        ],
        dates=[
            DimDate(**r) for r in _read_rows(data_dir, FILE_DATES, required=False)
        ],
    )
    logger.info(
        "Loaded snapshot from %s: %d sales, %d products, %d customers, %d prices",
        data_dir,
        len(snapshot.sales),
        len(snapshot.products),
        len(snapshot.customers),
        len(snapshot.prices),
    )
    return snapshot


# ---------------------------------------------------------------------------
# Process-wide snapshot
# ---------------------------------------------------------------------------
_snapshot: SalesSnapshot | None = None
_snapshot_lock = threading.Lock()


def get_snapshot() -> SalesSnapshot:
    """Return the cached snapshot (loaded from ``DATA_DIR`` on first call)."""
    global _snapshot
    if _snapshot is None:
        with _snapshot_lock:
            if _snapshot is None:
                _snapshot = load_snapshot()
    return _snapshot


def reload_snapshot(data_dir: Optional[Path] = None) -> SalesSnapshot:
    """Rebuild the snapshot and swap it in for subsequent queries."""
    global _snapshot
    fresh = load_snapshot(data_dir)
    with _snapshot_lock:
        _snapshot = fresh
    return fresh


def set_snapshot(snapshot: SalesSnapshot | None) -> None:
    """Install a prebuilt snapshot (or clear the cache with ``None``)."""
    global _snapshot
    with _snapshot_lock:
        _snapshot = snapshot
