"""
Keyed lookups into the gross-price and deduction tables.

Both resolvers wrap read-only mappings built once by the loading layer and
raise :class:`~profitability.errors.NotFound` on a miss.  A missing price or
discount is never defaulted to zero, since that would silently inflate
downstream totals.
"""

from __future__ import annotations

import datetime as dt
from decimal import Decimal
from types import MappingProxyType
from typing import Iterable, Mapping

from profitability.errors import NotFound
from profitability.models import GrossPrice, PostInvoiceDeduction, PreInvoiceDeduction
from profitability.services.fiscal import DateLike, to_date

PriceKey = tuple[int, int]
PreInvoiceKey = tuple[int, int]
PostInvoiceKey = tuple[int, int, dt.date]


class PriceResolver:
    """Unit gross price by ``(product_code, fiscal_year)``."""

    def __init__(self, prices: Mapping[PriceKey, Decimal]) -> None:
        self._prices = MappingProxyType(dict(prices))

    @classmethod
    def from_records(cls, records: Iterable[GrossPrice]) -> "PriceResolver":
        return cls({(r.product_code, r.fiscal_year): r.gross_price for r in records})

    def __len__(self) -> int:
        return len(self._prices)

    def unit_price(self, product_code: int, fiscal_year: int) -> Decimal:
        key = (product_code, fiscal_year)
        try:
            return self._prices[key]
        except KeyError:
            raise NotFound("gross_price", key) from None


class DiscountResolver:
    """Pre-invoice and post-invoice deduction percentages (0-100 scale)."""

    def __init__(
        self,
        pre_invoice: Mapping[PreInvoiceKey, Decimal],
        post_invoice: Mapping[PostInvoiceKey, Decimal],
    ) -> None:
        self._pre_invoice = MappingProxyType(dict(pre_invoice))
        self._post_invoice = MappingProxyType(dict(post_invoice))

    @classmethod
    def from_records(
        cls,
        pre_invoice: Iterable[PreInvoiceDeduction],
        post_invoice: Iterable[PostInvoiceDeduction],
    ) -> "DiscountResolver":
        """Index deduction rows; post-invoice percentages are stored combined."""
        return cls(
            {(r.customer_code, r.fiscal_year): r.pre_invoice_discount_pct for r in pre_invoice},
            {(r.customer_code, r.product_code, r.date): r.combined_pct for r in post_invoice},
        )

    def pre_invoice_discount_pct(self, customer_code: int, fiscal_year: int) -> Decimal:
        key = (customer_code, fiscal_year)
        try:
            return self._pre_invoice[key]
        except KeyError:
            raise NotFound("pre_invoice_deduction", key) from None

    def post_invoice_discount_pct(
        self, customer_code: int, product_code: int, date: DateLike
    ) -> Decimal:
        """Return ``discounts_pct + other_deductions_pct`` for an exact date match."""
        key = (customer_code, product_code, to_date(date))
        try:
            return self._post_invoice[key]
        except KeyError:
            raise NotFound("post_invoice_deduction", key) from None
