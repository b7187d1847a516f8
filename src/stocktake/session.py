"""The stock take session: record set, registries and user settings."""
from __future__ import annotations

import logging
from typing import Any, Iterable, List, Mapping, Optional, Tuple, Union

from .config import Settings, get_settings
from .errors import DuplicateBarcodeError, ValidationError
from .history import merge_history
from .importer import MergeResult, RowInput, merge_import, preview_import
from .models import HistoryEntry, ScanResult, StockRecord
from .query import StockFilter, query
from .reconcile import (
    Matched,
    Outcome,
    adjust_quantity,
    create_record,
    find_by_barcode,
    reconcile,
    update_record,
)
from .registry import DEFAULT_CATEGORIES, DEFAULT_LOCATIONS, NameRegistry
from .schemas import AppSettings, StockItemCreate, StockItemPatch, validate_fields
from .spreadsheet import EXPORTERS, TEMPLATES, read_rows
from .stats import StockStats, compute_stats
from .storage import StockRepository, create_store

logger = logging.getLogger(__name__)


class StockTakeSession:
    """Owns the active record set for one working session.

    Operations run to completion one at a time. Each successful mutation is
    persisted as a whole when ``auto_save`` is enabled; a failed operation
    leaves both the in-memory state and the store untouched.
    """

    def __init__(self, repository: StockRepository, *, user: Optional[str] = None) -> None:
        self.repository = repository
        self.user = user
        self._records: List[StockRecord] = repository.load_items()
        self.categories = NameRegistry(
            "Category", repository.load_categories(), defaults=DEFAULT_CATEGORIES
        )
        self.locations = NameRegistry(
            "Location", repository.load_locations(), defaults=DEFAULT_LOCATIONS
        )
        self.settings: AppSettings = repository.load_settings()

    @classmethod
    def from_settings(
        cls, settings: Optional[Settings] = None, *, user: Optional[str] = None
    ) -> "StockTakeSession":
        settings = settings or get_settings()
        return cls(StockRepository(create_store(settings)), user=user)

    # ------------------------------------------------------------------
    # Record set access
    # ------------------------------------------------------------------
    @property
    def records(self) -> Tuple[StockRecord, ...]:
        return tuple(self._records)

    def __len__(self) -> int:
        return len(self._records)

    def get(self, record_id: str) -> StockRecord:
        for record in self._records:
            if record.id == record_id:
                return record
        raise KeyError(f"Item '{record_id}' not found")

    def find_by_barcode(self, barcode: str) -> Optional[StockRecord]:
        return find_by_barcode(self._records, barcode)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------
    def scan(self, scan: Union[ScanResult, str]) -> Outcome:
        code = (scan.code if isinstance(scan, ScanResult) else str(scan)).strip()
        if not code:
            raise ValidationError("Scanned code cannot be empty")
        outcome = reconcile(self._records, code, user=self.user)
        if isinstance(outcome, Matched):
            self._replace(outcome.previous, outcome.record)
            logger.info(
                "Scanned %s: %s quantity %d", code, outcome.record.name, outcome.record.quantity
            )
            self._commit()
        else:
            logger.info("Scanned %s: no matching record", code)
        return outcome

    def create_record(self, fields: Union[StockItemCreate, Mapping[str, Any]]) -> StockRecord:
        record = create_record(self._records, fields, user=self.user)
        self._records.insert(0, record)
        logger.info("Added %s (%s)", record.name, record.barcode)
        self._commit()
        return record

    def update_record(
        self, record_id: str, patch: Union[StockItemPatch, Mapping[str, Any]]
    ) -> StockRecord:
        existing = self.get(record_id)
        updated = update_record(existing, patch, user=self.user)
        if updated.barcode != existing.barcode:
            others = [record for record in self._records if record is not existing]
            if find_by_barcode(others, updated.barcode) is not None:
                raise DuplicateBarcodeError(updated.barcode)
        self._replace(existing, updated)
        logger.info("Updated %s (%s)", updated.name, updated.barcode)
        self._commit()
        return updated

    def adjust_quantity(self, record_id: str, delta: int) -> StockRecord:
        existing = self.get(record_id)
        adjusted = adjust_quantity(existing, delta, user=self.user)
        self._replace(existing, adjusted)
        logger.info(
            "Adjusted %s by %d: %d -> %d",
            adjusted.barcode,
            delta,
            existing.quantity,
            adjusted.quantity,
        )
        self._commit()
        return adjusted

    def delete_record(self, record_id: str) -> StockRecord:
        record = self.get(record_id)
        self._records = [item for item in self._records if item is not record]
        logger.info("Deleted %s (%s)", record.name, record.barcode)
        self._commit()
        return record

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------
    def query(
        self,
        filter: Optional[StockFilter] = None,
        sort_field: str = "name",
        sort_direction: str = "asc",
    ) -> List[StockRecord]:
        return query(self._records, filter, sort_field, sort_direction)

    def stats(self) -> StockStats:
        return compute_stats(self._records, self.categories, self.locations)

    def low_stock_alerts(self) -> List[StockRecord]:
        """Records that are low or out of stock, if alerts are enabled."""

        if not self.settings.show_low_stock_alerts:
            return []
        return [
            record
            for record in self._records
            if record.is_low_stock or record.is_out_of_stock
        ]

    def history(self, *, limit: Optional[int] = None) -> List[Tuple[StockRecord, HistoryEntry]]:
        return merge_history(self._records, limit=limit)

    # ------------------------------------------------------------------
    # Import / export
    # ------------------------------------------------------------------
    def import_rows(self, rows: Iterable[RowInput]) -> MergeResult:
        result = merge_import(rows, self._records, user=self.user)
        self._records = list(result.records)
        self._commit()
        return result

    def import_file(self, data: bytes, filename: Optional[str] = None) -> MergeResult:
        return self.import_rows(read_rows(data, filename))

    def preview_import(self, rows: Iterable[RowInput]) -> List[dict]:
        return preview_import(rows, self._records)

    def export(self, fmt: str = "xls") -> bytes:
        try:
            exporter = EXPORTERS[fmt]
        except KeyError:
            raise ValueError(f"Unsupported export format '{fmt}'") from None
        return exporter(self._records)

    @staticmethod
    def template(fmt: str = "xls") -> bytes:
        try:
            builder = TEMPLATES[fmt]
        except KeyError:
            raise ValueError(f"Unsupported template format '{fmt}'") from None
        return builder()

    # ------------------------------------------------------------------
    # Registries and settings
    # ------------------------------------------------------------------
    def add_category(self, name: str) -> str:
        added = self.categories.add(name)
        self._commit()
        return added

    def remove_category(self, name: str) -> None:
        self.categories.remove(name)
        self._commit()

    def add_location(self, name: str) -> str:
        added = self.locations.add(name)
        self._commit()
        return added

    def remove_location(self, name: str) -> None:
        self.locations.remove(name)
        self._commit()

    def update_settings(self, **changes: Any) -> AppSettings:
        merged = self.settings.model_dump()
        merged.update(changes)
        self.settings = validate_fields(AppSettings, merged)
        # Preferences are always written, even with auto save turned off.
        self.repository.save_settings(self.settings)
        return self.settings

    def save(self) -> bool:
        saved = self.repository.save_items(self._records)
        saved = self.repository.save_categories(self.categories) and saved
        saved = self.repository.save_locations(self.locations) and saved
        saved = self.repository.save_settings(self.settings) and saved
        return saved

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _replace(self, previous: StockRecord, replacement: StockRecord) -> None:
        for index, record in enumerate(self._records):
            if record is previous:
                self._records[index] = replacement
                return
        raise KeyError(f"Item '{previous.id}' not found")

    def _commit(self) -> None:
        if self.settings.auto_save:
            self.save()


__all__ = ["StockTakeSession"]
