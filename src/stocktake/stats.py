"""Dashboard metrics derived from the record set."""
from __future__ import annotations

from dataclasses import asdict, dataclass
from decimal import Decimal
from typing import Any, Collection, Dict, Iterable

from .models import StockRecord


@dataclass(frozen=True)
class StockStats:
    total_items: int
    total_quantity: int
    total_value: Decimal
    low_stock_items: int
    out_of_stock_items: int
    categories: int
    locations: int

    def to_dict(self) -> Dict[str, Any]:
        payload = asdict(self)
        payload["total_value"] = str(self.total_value)
        return payload


def compute_stats(
    records: Iterable[StockRecord],
    categories: Collection[str],
    locations: Collection[str],
) -> StockStats:
    total_items = 0
    total_quantity = 0
    total_value = Decimal("0")
    low_stock = 0
    out_of_stock = 0
    for record in records:
        total_items += 1
        total_quantity += record.quantity
        total_value += record.value
        if record.is_low_stock:
            low_stock += 1
        if record.is_out_of_stock:
            out_of_stock += 1
    return StockStats(
        total_items=total_items,
        total_quantity=total_quantity,
        total_value=total_value,
        low_stock_items=low_stock,
        out_of_stock_items=out_of_stock,
        categories=len(categories),
        locations=len(locations),
    )


__all__ = ["StockStats", "compute_stats"]
