"""Filtered and sorted views over the record set."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any, Iterable, List, Optional, Tuple
import unicodedata

from .models import StockRecord

SORT_FIELDS = (
    "barcode",
    "name",
    "description",
    "quantity",
    "unit",
    "category",
    "location",
    "min_quantity",
    "max_quantity",
    "cost",
    "price",
    "supplier",
    "notes",
    "created_at",
    "updated_at",
)
SORT_DIRECTIONS = ("asc", "desc")


@dataclass(frozen=True)
class StockFilter:
    search: Optional[str] = None
    category: Optional[str] = None
    location: Optional[str] = None
    low_stock: bool = False
    no_stock: bool = False

    def matches(self, record: StockRecord) -> bool:
        if self.search:
            needle = self.search.lower()
            haystacks = (record.name, record.barcode, record.description or "")
            if not any(needle in text.lower() for text in haystacks):
                return False
        if self.category and record.category != self.category:
            return False
        if self.location and record.location != self.location:
            return False
        if self.low_stock and record.quantity > (record.min_quantity or 0):
            return False
        if self.no_stock and record.quantity > 0:
            return False
        return True


def _collation_key(text: str) -> Tuple[str, str, str]:
    """Accent and case insensitive primary key, independent of the process locale."""

    decomposed = unicodedata.normalize("NFKD", text)
    base = "".join(char for char in decomposed if not unicodedata.combining(char))
    return (base.casefold(), text.casefold(), text)


def _sort_value(value: Any) -> Tuple[Any, ...]:
    if isinstance(value, str):
        return _collation_key(value)
    if isinstance(value, datetime):
        return (value.timestamp(),)
    if isinstance(value, (int, float, Decimal)):
        return (value,)
    return (str(value),)


def query(
    records: Iterable[StockRecord],
    filter: Optional[StockFilter] = None,
    sort_field: str = "name",
    sort_direction: str = "asc",
) -> List[StockRecord]:
    """Return the records matching ``filter`` ordered by ``sort_field``.

    The input is never mutated. Records without a value for the sort field
    are placed last in both directions; equal keys keep their input order.
    """

    if sort_field not in SORT_FIELDS:
        raise ValueError(f"Unsupported sort field '{sort_field}'")
    if sort_direction not in SORT_DIRECTIONS:
        raise ValueError(f"Unsupported sort direction '{sort_direction}'")
    active = filter or StockFilter()
    matched = [record for record in records if active.matches(record)]
    present = [record for record in matched if getattr(record, sort_field) is not None]
    missing = [record for record in matched if getattr(record, sort_field) is None]
    present.sort(
        key=lambda record: _sort_value(getattr(record, sort_field)),
        reverse=sort_direction == "desc",
    )
    return present + missing


__all__ = ["SORT_FIELDS", "SORT_DIRECTIONS", "StockFilter", "query"]
