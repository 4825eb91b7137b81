"""
Typed errors raised by the metric pipeline and the ranking engine.
"""

from __future__ import annotations

from typing import Any


class NotFound(LookupError):
    """A required lookup key is absent from a dimension or lookup table."""

    def __init__(self, lookup: str, key: Any) -> None:
        self.lookup = lookup
        self.key = key
        super().__init__(f"No {lookup} entry for key {key!r}")


class InvalidInput(ValueError):
    """A sale record or a ranking parameter is outside its valid domain."""
