"""Batch merge of imported rows into the record set."""
from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union

from .errors import DuplicateBarcodeError, ValidationError
from .models import StockRecord
from .reconcile import create_record, find_by_barcode, update_record
from .schemas import StockItemPatch, validate_fields

logger = logging.getLogger(__name__)

IMPORT_ADD_NOTE = "Added via import"
IMPORT_UPDATE_NOTE = "Updated via import"

# Values used for fields a new row leaves unset.
IMPORT_DEFAULTS: Dict[str, Any] = {
    "description": "",
    "quantity": 0,
    "unit": "pcs",
    "category": "Uncategorized",
    "location": "Unknown",
}


@dataclass(frozen=True)
class MergeResult:
    added: int
    updated: int
    records: Tuple[StockRecord, ...]
    skipped: int = 0


RowInput = Union[StockItemPatch, Mapping[str, Any]]


def _coerce_row(row: RowInput) -> Optional[StockItemPatch]:
    try:
        return validate_fields(StockItemPatch, row)
    except (ValidationError, TypeError, ValueError):
        return None


def _row_key(row: StockItemPatch) -> Tuple[str, str]:
    return ((row.barcode or "").strip(), (row.name or "").strip())


def merge_import(
    rows: Iterable[RowInput],
    current_records: Iterable[StockRecord],
    *,
    user: Optional[str] = None,
) -> MergeResult:
    """Apply ``rows`` over ``current_records`` one at a time.

    Rows without a barcode or name, or that fail validation, are skipped
    without failing the batch. A row matching a barcode already in the
    working set (including one added earlier in the batch) updates it.
    """

    working: List[StockRecord] = list(current_records)
    added = updated = skipped = 0
    for index, row in enumerate(rows, start=1):
        row = _coerce_row(row)
        if row is None:
            logger.debug("Skipping import row %d: invalid values", index)
            skipped += 1
            continue
        barcode, name = _row_key(row)
        if not barcode or not name:
            logger.debug("Skipping import row %d: missing barcode or name", index)
            skipped += 1
            continue
        existing = find_by_barcode(working, barcode)
        try:
            if existing is not None:
                replacement = update_record(existing, row, notes=IMPORT_UPDATE_NOTE, user=user)
                position = next(
                    pos for pos, record in enumerate(working) if record is existing
                )
                working[position] = replacement
                updated += 1
            else:
                fields = dict(IMPORT_DEFAULTS)
                fields.update(
                    {key: value for key, value in row.changes().items() if value is not None}
                )
                working.append(
                    create_record(working, fields, notes=IMPORT_ADD_NOTE, user=user)
                )
                added += 1
        except (ValidationError, DuplicateBarcodeError) as exc:
            logger.debug("Skipping import row %d (%s): %s", index, barcode, exc)
            skipped += 1
    logger.info("Import merged: %d added, %d updated, %d skipped", added, updated, skipped)
    return MergeResult(added=added, updated=updated, records=tuple(working), skipped=skipped)


def preview_import(
    rows: Iterable[RowInput],
    current_records: Iterable[StockRecord],
) -> List[Dict[str, Any]]:
    """Return the per-row decision of :func:`merge_import` without applying it."""

    preview: List[Dict[str, Any]] = []
    known: Dict[str, int] = {record.barcode: record.quantity for record in current_records}
    for index, raw in enumerate(rows, start=1):
        row = _coerce_row(raw)
        entry: Dict[str, Any] = {
            "index": index,
            "barcode": "",
            "name": "",
            "action": "skip",
            "messages": [],
            "existing_quantity": None,
            "quantity": None,
            "quantity_delta": None,
        }
        if row is None:
            entry["messages"].append("Invalid values")
            preview.append(entry)
            continue
        barcode, name = _row_key(row)
        entry.update(barcode=barcode, name=name, quantity=row.quantity)
        if not barcode:
            entry["messages"].append("Missing barcode")
        if not name:
            entry["messages"].append("Missing name")
        if entry["messages"]:
            preview.append(entry)
            continue
        existing_quantity = known.get(barcode)
        if existing_quantity is not None:
            entry["action"] = "update"
            entry["existing_quantity"] = existing_quantity
            if row.quantity is not None:
                entry["quantity_delta"] = row.quantity - existing_quantity
                known[barcode] = row.quantity
        else:
            entry["action"] = "add"
            entry["quantity_delta"] = row.quantity or 0
            known[barcode] = row.quantity or 0
        preview.append(entry)
    return preview


__all__ = [
    "IMPORT_ADD_NOTE",
    "IMPORT_UPDATE_NOTE",
    "IMPORT_DEFAULTS",
    "MergeResult",
    "merge_import",
    "preview_import",
]
