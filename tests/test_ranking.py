"""
Tests for aggregation, flat top-N and partitioned dense-rank top-N.
"""

from __future__ import annotations

from decimal import Decimal

import pytest

from conftest import make_sale
from profitability.errors import InvalidInput, NotFound
from profitability.models import Product
from profitability.services.pipeline import compute_metrics
from profitability.services.ranking import (
    dense_rank,
    rank_customers,
    rank_markets,
    rank_products_per_division,
    to_millions,
    top_n,
)


# ---------------------------------------------------------------------------
# Building blocks
# ---------------------------------------------------------------------------
class TestDenseRank:
    def test_ties_share_rank_without_gaps(self):
        assert dense_rank([100, 100, 80, 70, 70, 10]) == [1, 1, 2, 3, 3, 4]

    def test_input_order_preserved(self):
        assert dense_rank([80, 100, 100]) == [2, 1, 1]

    def test_empty(self):
        assert dense_rank([]) == []


class TestTopN:
    totals = {"b": Decimal("2"), "a": Decimal("5"), "d": Decimal("2"), "c": Decimal("1")}

    def test_descending(self):
        assert [k for k, _ in top_n(self.totals, 2)] == ["a", "b"]

    def test_ties_keep_first_occurrence(self):
        assert [k for k, _ in top_n({"z": 1, "y": 1, "x": 1}, 3)] == ["z", "y", "x"]

    def test_deterministic_ties_by_key(self):
        ranked = top_n({"z": 1, "y": 1, "x": 1}, 3, deterministic=True)
        assert [k for k, _ in ranked] == ["x", "y", "z"]

    def test_prefix_monotonicity(self):
        for n1 in range(1, 5):
            for n2 in range(n1 + 1, 6):
                assert top_n(self.totals, n1) == top_n(self.totals, n2)[:n1]

    @pytest.mark.parametrize("n", [0, -1])
    def test_non_positive_n(self, n):
        with pytest.raises(InvalidInput):
            top_n(self.totals, n)


def test_to_millions_rounds_half_up():
    assert to_millions(Decimal("3417185.625")) == Decimal("3.42")
    assert to_millions(Decimal("1005000")) == Decimal("1.01")
    assert to_millions(Decimal("0")) == Decimal("0.00")


# ---------------------------------------------------------------------------
# Flat top-N by net sales
# ---------------------------------------------------------------------------
class TestRankMarkets:
    def test_markets(self, sales, snapshot):
        metrics = compute_metrics(sales, snapshot).metrics
        rows = rank_markets(metrics, 2024, 5)
        assert [(r.market, r.net_sales_mln) for r in rows] == [
            ("Corporate", Decimal("0.11")),
            ("Retail", Decimal("0.08")),
        ]

    def test_failed_record_is_not_in_totals(self, sales, snapshot):
        """Dell's 750k gross sale has no pre-invoice entry and stays out."""
        metrics = compute_metrics(sales, snapshot).metrics
        corporate = rank_markets(metrics, 2024, 1)[0]
        assert corporate.net_sales_mln == Decimal("0.11")

    def test_other_fiscal_year_is_empty(self, sales, snapshot):
        metrics = compute_metrics(sales, snapshot).metrics
        assert rank_markets(metrics, 2025, 5) == []

    def test_invalid_n(self):
        with pytest.raises(InvalidInput):
            rank_markets([], 2024, 0)


class TestRankCustomers:
    def test_customers_in_market(self, sales, snapshot):
        metrics = compute_metrics(sales, snapshot).metrics
        rows = rank_customers(metrics, "Corporate", 2024, 5)
        assert [(r.customer, r.net_sales_mln) for r in rows] == [
            ("Apple Inc.", Decimal("0.10")),
            ("Microsoft Corporation", Decimal("0.01")),
        ]

    def test_top_one(self, sales, snapshot):
        metrics = compute_metrics(sales, snapshot).metrics
        rows = rank_customers(metrics, "Corporate", 2024, 1)
        assert [r.customer for r in rows] == ["Apple Inc."]

    def test_unknown_market(self, sales, snapshot):
        metrics = compute_metrics(sales, snapshot).metrics
        assert rank_customers(metrics, "Wholesale", 2024, 3) == []


# ---------------------------------------------------------------------------
# Partitioned dense rank
# ---------------------------------------------------------------------------
class TestRankProductsPerDivision:
    products = {
        1: Product(product_code=1, product="A", variant="v1", division="Gaming"),
        2: Product(product_code=2, product="B", variant="v1", division="Gaming"),
        3: Product(product_code=3, product="C", variant="v1", division="Gaming"),
        4: Product(product_code=4, product="D", variant="v1", division="Wearables"),
        5: Product(product_code=5, product="A", variant="v2", division="Gaming"),
    }

    def _sales(self):
        return [
            make_sale(2001, 1, 60),
            make_sale(2001, 5, 40),   # second variant of A
            make_sale(2002, 2, 100),
            make_sale(2002, 3, 80),
            make_sale(2002, 4, 5),
        ]

    def test_tie_inflates_result_beyond_n(self):
        rows = rank_products_per_division(self._sales(), self.products, 2024, 1)
        gaming = [(r.product, r.total_qty, r.rank) for r in rows if r.division == "Gaming"]
        assert gaming == [("A", 100, 1), ("B", 100, 1)]

    def test_next_distinct_value_takes_next_rank(self):
        rows = rank_products_per_division(self._sales(), self.products, 2024, 2)
        gaming = [(r.product, r.rank) for r in rows if r.division == "Gaming"]
        assert gaming == [("A", 1), ("B", 1), ("C", 2)]

    def test_each_division_ranked_separately(self):
        rows = rank_products_per_division(self._sales(), self.products, 2024, 1)
        assert [(r.division, r.product, r.rank) for r in rows][-1] == ("Wearables", "D", 1)
        assert [r.division for r in rows] == ["Gaming", "Gaming", "Wearables"]

    def test_fiscal_year_filter(self):
        sales = self._sales() + [make_sale(2001, 3, 500, date="2024-10-05", fiscal_year=2024)]
        stamped = rank_products_per_division(sales, self.products, 2024, 1)
        assert [r.product for r in stamped if r.division == "Gaming"] == ["C"]

        calendar = rank_products_per_division(
            sales, self.products, 2024, 1, fiscal_year_source="calendar"
        )
        assert [r.product for r in calendar if r.division == "Gaming"] == ["A", "B"]

    def test_unknown_product(self):
        with pytest.raises(NotFound):
            rank_products_per_division([make_sale(2001, 99, 1)], self.products, 2024, 1)

    def test_invalid_n(self):
        with pytest.raises(InvalidInput):
            rank_products_per_division(self._sales(), self.products, 2024, 0)
