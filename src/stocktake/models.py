"""Stock records and their history entries."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Optional, Tuple

from .identifiers import new_id, now, parse_timestamp, serialize_timestamp

HISTORY_ACTIONS = ("add", "update", "delete", "adjust_quantity", "scan")

# Attribute name -> persisted key for the scalar record fields.
RECORD_KEYS: Dict[str, str] = {
    "id": "id",
    "barcode": "barcode",
    "name": "name",
    "description": "description",
    "quantity": "quantity",
    "unit": "unit",
    "category": "category",
    "location": "location",
    "min_quantity": "minQuantity",
    "max_quantity": "maxQuantity",
    "cost": "cost",
    "price": "price",
    "supplier": "supplier",
    "notes": "notes",
}


def _coerce_optional_int(value: Any) -> Optional[int]:
    if value is None:
        return None
    if isinstance(value, str):
        if value.strip() == "":
            return None
        value = value.strip()
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _coerce_decimal(value: Any) -> Optional[Decimal]:
    if value is None or value == "":
        return None
    try:
        parsed = Decimal(str(value).strip())
    except InvalidOperation:
        return None
    if not parsed.is_finite():
        return None
    return parsed


def _optional_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    return str(value)


@dataclass(frozen=True)
class HistoryEntry:
    """A single immutable change record in a stock record's ledger."""

    id: str
    timestamp: datetime
    action: str
    field: Optional[str] = None
    old_value: Any = None
    new_value: Any = None
    user: Optional[str] = None
    notes: Optional[str] = None

    def to_record(self) -> Dict[str, Any]:
        record: Dict[str, Any] = {
            "id": self.id,
            "timestamp": serialize_timestamp(self.timestamp),
            "action": self.action,
        }
        optional = {
            "field": self.field,
            "oldValue": self.old_value,
            "newValue": self.new_value,
            "user": self.user,
            "notes": self.notes,
        }
        for key, value in optional.items():
            if value is not None:
                record[key] = value
        return record

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "HistoryEntry":
        timestamp = parse_timestamp(record.get("timestamp"))
        if timestamp is None:
            raise ValueError("Invalid timestamp in history record")
        action = str(record.get("action") or "").strip()
        if action not in HISTORY_ACTIONS:
            raise ValueError(f"Unknown history action '{action}'")
        return cls(
            id=str(record.get("id") or new_id()),
            timestamp=timestamp,
            action=action,
            field=_optional_text(record.get("field")),
            old_value=record.get("oldValue"),
            new_value=record.get("newValue"),
            user=_optional_text(record.get("user")),
            notes=_optional_text(record.get("notes")),
        )


@dataclass(frozen=True)
class StockRecord:
    """Represents a single inventory record keyed by barcode.

    Instances are never mutated in place; the reconciliation engine builds a
    replacement record for every change and appends one history entry.
    """

    id: str
    barcode: str
    name: str
    quantity: int
    unit: str
    category: str
    location: str
    created_at: datetime
    updated_at: datetime
    description: str = ""
    min_quantity: Optional[int] = None
    max_quantity: Optional[int] = None
    cost: Optional[Decimal] = None
    price: Optional[Decimal] = None
    supplier: Optional[str] = None
    notes: Optional[str] = None
    history: Tuple[HistoryEntry, ...] = ()

    @property
    def is_out_of_stock(self) -> bool:
        return self.quantity == 0

    @property
    def is_low_stock(self) -> bool:
        if self.min_quantity is None:
            return False
        return 0 < self.quantity <= self.min_quantity

    @property
    def stock_status(self) -> str:
        if self.is_out_of_stock:
            return "out_of_stock"
        if self.is_low_stock:
            return "low_stock"
        return "in_stock"

    @property
    def value(self) -> Decimal:
        return (self.cost or Decimal("0")) * self.quantity

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {}
        for attr, key in RECORD_KEYS.items():
            value = getattr(self, attr)
            if isinstance(value, Decimal):
                value = str(value)
            payload[key] = value
        payload["createdAt"] = serialize_timestamp(self.created_at)
        payload["updatedAt"] = serialize_timestamp(self.updated_at)
        payload["history"] = [entry.to_record() for entry in self.history]
        return payload

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "StockRecord":
        """Rebuild a record from its persisted shape, tolerating legacy gaps."""

        barcode = str(record.get("barcode") or "").strip()
        if not barcode:
            raise ValueError("Stock record is missing a barcode")
        created_at = parse_timestamp(record.get("createdAt")) or now()
        updated_at = parse_timestamp(record.get("updatedAt")) or created_at
        quantity = _coerce_optional_int(record.get("quantity")) or 0
        history_raw = record.get("history")
        history = []
        if isinstance(history_raw, list):
            for entry in history_raw:
                if not isinstance(entry, dict):
                    continue
                try:
                    history.append(HistoryEntry.from_record(entry))
                except ValueError:
                    continue
        return cls(
            id=str(record.get("id") or new_id()),
            barcode=barcode,
            name=str(record.get("name") or ""),
            description=str(record.get("description") or ""),
            quantity=max(0, quantity),
            unit=str(record.get("unit") or "pcs"),
            category=str(record.get("category") or "Uncategorized"),
            location=str(record.get("location") or "Unknown"),
            min_quantity=_coerce_optional_int(record.get("minQuantity")),
            max_quantity=_coerce_optional_int(record.get("maxQuantity")),
            cost=_coerce_decimal(record.get("cost")),
            price=_coerce_decimal(record.get("price")),
            supplier=_optional_text(record.get("supplier")),
            notes=_optional_text(record.get("notes")),
            created_at=created_at,
            updated_at=updated_at,
            history=tuple(history),
        )


@dataclass(frozen=True)
class ScanResult:
    """A barcode handed over by an acquisition source."""

    code: str
    format: Optional[str] = None


__all__ = ["HISTORY_ACTIONS", "RECORD_KEYS", "HistoryEntry", "StockRecord", "ScanResult"]
