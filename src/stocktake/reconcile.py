"""Create-or-update decisions for scans and the record mutation operations.

Every function here is pure with respect to its inputs: records are frozen,
so a mutation returns a replacement record carrying exactly one new history
entry. The session decides where the replacement goes in the record set.
"""
from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Iterable, Mapping, Optional, Union

from .errors import DuplicateBarcodeError, ValidationError
from .history import append_entry, make_entry
from .identifiers import new_id, now
from .models import StockRecord
from .schemas import StockItemCreate, StockItemPatch, validate_fields

ADD_NOTE = "Item added to inventory"
UPDATE_NOTE = "Item details updated"
SCAN_NOTE = "Scanned - quantity increased"

# Fields a patch may never clear.
_REQUIRED_FIELDS = ("barcode", "name", "quantity", "unit", "category", "location")


@dataclass(frozen=True)
class Matched:
    """The scanned barcode belongs to ``record``, already incremented."""

    record: StockRecord
    previous: StockRecord


@dataclass(frozen=True)
class NeedsCreation:
    """No active record holds ``barcode``; the caller must supply the rest."""

    barcode: str


Outcome = Union[Matched, NeedsCreation]


def find_by_barcode(records: Iterable[StockRecord], barcode: str) -> Optional[StockRecord]:
    for record in records:
        if record.barcode == barcode:
            return record
    return None


def reconcile(
    records: Iterable[StockRecord], scan_code: str, *, user: Optional[str] = None
) -> Outcome:
    existing = find_by_barcode(records, scan_code)
    if existing is None:
        return NeedsCreation(barcode=scan_code)
    timestamp = now()
    new_quantity = existing.quantity + 1
    entry = make_entry(
        "scan",
        field="quantity",
        old_value=existing.quantity,
        new_value=new_quantity,
        notes=SCAN_NOTE,
        user=user,
        timestamp=timestamp,
    )
    updated = replace(
        existing,
        quantity=new_quantity,
        updated_at=timestamp,
        history=append_entry(existing.history, entry),
    )
    return Matched(record=updated, previous=existing)


def create_record(
    records: Iterable[StockRecord],
    fields: Union[StockItemCreate, Mapping[str, Any]],
    *,
    notes: str = ADD_NOTE,
    user: Optional[str] = None,
) -> StockRecord:
    """Build a new record from ``fields`` with a single ``add`` entry.

    Raises :class:`ValidationError` for a blank barcode or name or a negative
    quantity, and :class:`DuplicateBarcodeError` when the barcode is already
    held by one of ``records``.
    """

    data = validate_fields(StockItemCreate, fields)
    if find_by_barcode(records, data.barcode) is not None:
        raise DuplicateBarcodeError(data.barcode)
    timestamp = now()
    entry = make_entry("add", notes=notes, user=user, timestamp=timestamp)
    return StockRecord(
        id=new_id(),
        created_at=timestamp,
        updated_at=timestamp,
        history=(entry,),
        **data.model_dump(),
    )


def update_record(
    existing: StockRecord,
    patch: Union[StockItemPatch, Mapping[str, Any]],
    *,
    notes: str = UPDATE_NOTE,
    user: Optional[str] = None,
) -> StockRecord:
    """Apply ``patch`` over ``existing`` and append an ``update`` entry.

    Only fields set on the patch override the record; identity, creation time
    and the ledger are preserved. The note is a fixed description rather than
    a per-field diff.
    """

    changes = validate_fields(StockItemPatch, patch).changes()
    for name in _REQUIRED_FIELDS:
        if name in changes and changes[name] is None:
            del changes[name]
    merged = replace(existing, **changes)
    # Re-check the merged record as a whole.
    validate_fields(StockItemCreate, _creation_fields(merged))
    timestamp = now()
    entry = make_entry("update", notes=notes, user=user, timestamp=timestamp)
    return replace(
        merged,
        updated_at=timestamp,
        history=append_entry(existing.history, entry),
    )


def adjust_quantity(
    existing: StockRecord, delta: int, *, user: Optional[str] = None
) -> StockRecord:
    """Shift the quantity by ``delta`` clamping at zero; never fails."""

    new_quantity = max(0, existing.quantity + int(delta))
    sign = "+" if delta > 0 else ""
    timestamp = now()
    entry = make_entry(
        "adjust_quantity",
        field="quantity",
        old_value=existing.quantity,
        new_value=new_quantity,
        notes=f"Adjusted by {sign}{delta}",
        user=user,
        timestamp=timestamp,
    )
    return replace(
        existing,
        quantity=new_quantity,
        updated_at=timestamp,
        history=append_entry(existing.history, entry),
    )


def _creation_fields(record: StockRecord) -> dict[str, Any]:
    return {name: getattr(record, name) for name in StockItemCreate.model_fields}


__all__ = [
    "ADD_NOTE",
    "UPDATE_NOTE",
    "SCAN_NOTE",
    "Matched",
    "NeedsCreation",
    "Outcome",
    "find_by_barcode",
    "reconcile",
    "create_record",
    "update_record",
    "adjust_quantity",
]
