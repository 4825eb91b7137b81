"""
Fiscal calendar helpers.

The fiscal year runs October through September and is named after the
calendar year in which it ends: 2024-10-01 belongs to fiscal year 2025.
"""

from __future__ import annotations

import datetime as dt
import logging
from typing import Iterable, Union

from profitability.errors import InvalidInput
from profitability.models import DimDate, Sale

logger = logging.getLogger(__name__)

# First month of the fiscal year
FISCAL_YEAR_START_MONTH = 10

DateLike = Union[dt.date, str]


def to_date(value: DateLike) -> dt.date:
    """Coerce a ``date``, ``datetime`` or ISO ``YYYY-MM-DD`` string to a date."""
    if isinstance(value, dt.datetime):
        return value.date()
    if isinstance(value, dt.date):
        return value
    try:
        return dt.date.fromisoformat(str(value).strip())
    except ValueError as exc:
        raise InvalidInput(f"Malformed date {value!r}; expected YYYY-MM-DD") from exc


def fiscal_year(calendar_date: DateLike) -> int:
    """Return the fiscal year a calendar date falls in."""
    day = to_date(calendar_date)
    if day.month >= FISCAL_YEAR_START_MONTH:
        return day.year + 1
    return day.year


def matches_fiscal_year(calendar_date: DateLike, year: int) -> bool:
    """Filter predicate equivalent to ``fiscal_year(calendar_date) == year``."""
    return fiscal_year(calendar_date) == year


def fiscal_quarter(calendar_date: DateLike) -> int:
    """Return the fiscal quarter (1-4); Q1 is October to December."""
    day = to_date(calendar_date)
    offset = (day.month - FISCAL_YEAR_START_MONTH) % 12
    return offset // 3 + 1


def stamped_fiscal_year_mismatches(sales: Iterable[Sale]) -> list[Sale]:
    """Return the sales whose stamped ``fiscal_year`` disagrees with their date."""
    return [s for s in sales if not matches_fiscal_year(s.date, s.fiscal_year)]


def dim_date_mismatches(dates: Iterable[DimDate]) -> list[DimDate]:
    """Return the ``dim_date`` rows whose stamped attributes disagree with their date.

    A row is reported when its ``fiscal_year``, ``month`` or ``quarter`` differs
    from what the October-September calendar gives for ``calendar_date``.
    """
    return [
        d
        for d in dates
        if not matches_fiscal_year(d.calendar_date, d.fiscal_year)
        or d.month != d.calendar_date.month
        or d.quarter != fiscal_quarter(d.calendar_date)
    ]


# Where a sale's fiscal year comes from when deriving and filtering
FISCAL_YEAR_STAMPED = "stamped"
FISCAL_YEAR_CALENDAR = "calendar"
FISCAL_YEAR_SOURCES = (FISCAL_YEAR_STAMPED, FISCAL_YEAR_CALENDAR)


def check_fiscal_year_source(source: str) -> str:
    if source not in FISCAL_YEAR_SOURCES:
        raise InvalidInput(
            f"Unknown fiscal year source {source!r}; expected one of {FISCAL_YEAR_SOURCES}"
        )
    return source


def sale_fiscal_year(sale: Sale, source: str = FISCAL_YEAR_STAMPED) -> int:
    """Fiscal year of a sale: the stamped column, or recomputed from its date."""
    if source == FISCAL_YEAR_CALENDAR:
        return fiscal_year(sale.date)
    return sale.fiscal_year
