"""
Shared fixtures for the Sales Profitability Analytics test suite.

Builds small in-memory snapshots so the pipeline and ranking tests run
without touching the CSV extracts.
"""

from __future__ import annotations

import datetime as dt
import os
import sys
from decimal import Decimal

import pytest

# Ensure the app package is importable
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "app"))

from profitability.models import (  # noqa: E402
    Customer,
    GrossPrice,
    PostInvoiceDeduction,
    PreInvoiceDeduction,
    Product,
    Sale,
)
from profitability.utils.data_source import SalesSnapshot  # noqa: E402


# ---------------------------------------------------------------------------
# Record helpers
# ---------------------------------------------------------------------------
def make_sale(
    customer_code: int = 2001,
    product_code: int = 1001,
    sold_quantity: int = 50,
    date: str = "2024-01-15",
    fiscal_year: int = 2024,
) -> Sale:
    return Sale(
        date=dt.date.fromisoformat(date),
        fiscal_year=fiscal_year,
        customer_code=customer_code,
        product_code=product_code,
        sold_quantity=sold_quantity,
        gross_price_total=Decimal("0.00"),
    )


PRODUCTS = [
    Product(product_code=1001, product="Laptop", variant="Pro 2023", division="Electronics"),
    Product(product_code=1002, product="Smartphone", variant="X200", division="Electronics"),
    Product(product_code=1004, product="Headphones", variant="Noise Cancelling", division="Accessories"),
]

CUSTOMERS = [
    Customer(customer_code=2001, customer="Apple Inc.", market="Corporate", region="North America"),
    Customer(customer_code=2002, customer="Best Buy Co., Inc.", market="Retail", region="North America"),
    Customer(customer_code=2005, customer="Microsoft Corporation", market="Corporate", region="North America"),
    Customer(customer_code=2009, customer="Dell Technologies", market="Corporate", region="North America"),
]

GROSS_PRICES = [
    GrossPrice(product_code=1001, fiscal_year=2024, gross_price=Decimal("1500.00")),
    GrossPrice(product_code=1002, fiscal_year=2024, gross_price=Decimal("850.00")),
    GrossPrice(product_code=1004, fiscal_year=2024, gross_price=Decimal("150.00")),
    GrossPrice(product_code=1001, fiscal_year=2025, gross_price=Decimal("1600.00")),
]

PRE_INVOICE = [
    PreInvoiceDeduction(customer_code=2001, fiscal_year=2024, pre_invoice_discount_pct=Decimal("5.00")),
    PreInvoiceDeduction(customer_code=2002, fiscal_year=2024, pre_invoice_discount_pct=Decimal("3.50")),
    PreInvoiceDeduction(customer_code=2005, fiscal_year=2024, pre_invoice_discount_pct=Decimal("4.00")),
    PreInvoiceDeduction(customer_code=2001, fiscal_year=2025, pre_invoice_discount_pct=Decimal("6.00")),
]

POST_INVOICE = [
    PostInvoiceDeduction(
        customer_code=2001, product_code=1001, date=dt.date(2024, 1, 15),
        discounts_pct=Decimal("2.50"), other_deductions_pct=Decimal("1.00"),
    ),
    PostInvoiceDeduction(
        customer_code=2002, product_code=1002, date=dt.date(2024, 4, 10),
        discounts_pct=Decimal("1.50"), other_deductions_pct=Decimal("0.50"),
    ),
    PostInvoiceDeduction(
        customer_code=2005, product_code=1001, date=dt.date(2024, 1, 15),
        discounts_pct=Decimal("0.00"), other_deductions_pct=Decimal("0.00"),
    ),
    PostInvoiceDeduction(
        customer_code=2001, product_code=1001, date=dt.date(2024, 10, 5),
        discounts_pct=Decimal("2.00"), other_deductions_pct=Decimal("0.00"),
    ),
]


def build_snapshot(sales) -> SalesSnapshot:
    return SalesSnapshot.build(
        products=PRODUCTS,
        customers=CUSTOMERS,
        sales=sales,
        gross_prices=GROSS_PRICES,
        pre_invoice=PRE_INVOICE,
        post_invoice=POST_INVOICE,
    )


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------
@pytest.fixture
def sales() -> list[Sale]:
    """Four derivable sales plus one with no pre-invoice deduction (2009)."""
    return [
        make_sale(2001, 1001, 50),                      # Corporate, Apple
        make_sale(2002, 1002, 100, date="2024-04-10"),  # Retail, Best Buy
        make_sale(2005, 1001, 10),                      # Corporate, Microsoft
        make_sale(2001, 1001, 20),                      # Corporate, Apple
        make_sale(2009, 1001, 500),                     # Dell: missing pre-invoice
    ]


@pytest.fixture
def snapshot(sales) -> SalesSnapshot:
    return build_snapshot(sales)


@pytest.fixture
def seed_dir():
    """Directory holding the bundled CSV extracts."""
    from profitability.utils.config import SEED_DATA_DIR

    return SEED_DATA_DIR
