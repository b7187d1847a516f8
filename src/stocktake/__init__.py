"""Barcode stock take package."""
from __future__ import annotations

from .errors import (
    DuplicateBarcodeError,
    ImportParseError,
    RegistryInvariantError,
    StockTakeError,
    ValidationError,
)
from .importer import MergeResult, merge_import
from .models import HistoryEntry, ScanResult, StockRecord
from .query import StockFilter, query
from .reconcile import (
    Matched,
    NeedsCreation,
    adjust_quantity,
    create_record,
    reconcile,
    update_record,
)
from .session import StockTakeSession
from .stats import StockStats, compute_stats

__all__ = [
    "DuplicateBarcodeError",
    "HistoryEntry",
    "ImportParseError",
    "Matched",
    "MergeResult",
    "NeedsCreation",
    "RegistryInvariantError",
    "ScanResult",
    "StockFilter",
    "StockRecord",
    "StockStats",
    "StockTakeError",
    "StockTakeSession",
    "ValidationError",
    "adjust_quantity",
    "compute_stats",
    "create_record",
    "merge_import",
    "query",
    "reconcile",
    "update_record",
]
