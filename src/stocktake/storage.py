"""Blob stores and the persisted layout of a stock take session."""
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Protocol

import pydantic
from sqlalchemy.exc import SQLAlchemyError

from .config import Settings
from .database import SqlBlobStore
from .errors import ImportParseError
from .identifiers import now, serialize_timestamp
from .models import StockRecord
from .registry import DEFAULT_CATEGORIES, DEFAULT_LOCATIONS
from .schemas import AppSettings

logger = logging.getLogger(__name__)

STORAGE_KEYS = {
    "items": "stocktake_items",
    "categories": "stocktake_categories",
    "locations": "stocktake_locations",
    "settings": "stocktake_settings",
}

# Failures a store may raise that must not take the session down.
_STORAGE_ERRORS = (OSError, SQLAlchemyError, TypeError, ValueError)


class BlobStore(Protocol):
    def load(self, key: str) -> Any: ...

    def save(self, key: str, value: Any) -> None: ...

    def delete(self, key: str) -> None: ...


class MemoryStore:
    """Keeps JSON-compatible values in a dict; nothing survives the process."""

    def __init__(self, initial: Optional[Dict[str, Any]] = None) -> None:
        self._data: Dict[str, str] = {}
        for key, value in (initial or {}).items():
            self.save(key, value)

    def load(self, key: str) -> Any:
        raw = self._data.get(key)
        return None if raw is None else json.loads(raw)

    def save(self, key: str, value: Any) -> None:
        self._data[key] = json.dumps(value, ensure_ascii=False)

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> List[str]:
        return list(self._data)


class JsonFileStore:
    """Persists every key into one JSON document, replaced atomically."""

    def __init__(self, storage_path: Path | str) -> None:
        self.storage_path = Path(storage_path)

    def _read_state(self) -> Dict[str, Any]:
        if not self.storage_path.exists():
            return {}
        raw = self.storage_path.read_text(encoding="utf-8") or "{}"
        try:
            state = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Ignoring unreadable storage file %s", self.storage_path)
            return {}
        return state if isinstance(state, dict) else {}

    def _write_state(self, state: Dict[str, Any]) -> None:
        self.storage_path.parent.mkdir(parents=True, exist_ok=True)
        temp_path = self.storage_path.with_suffix(".tmp")
        temp_path.write_text(json.dumps(state, indent=2, ensure_ascii=False), encoding="utf-8")
        temp_path.replace(self.storage_path)

    def load(self, key: str) -> Any:
        return self._read_state().get(key)

    def save(self, key: str, value: Any) -> None:
        state = self._read_state()
        state[key] = value
        self._write_state(state)

    def delete(self, key: str) -> None:
        state = self._read_state()
        if key in state:
            del state[key]
            self._write_state(state)


def create_store(settings: Settings) -> BlobStore:
    if settings.storage_backend == "memory":
        return MemoryStore()
    if settings.storage_backend == "sqlite":
        return SqlBlobStore(settings.database_url, echo=settings.echo_sql)
    return JsonFileStore(settings.storage_path)


def _name_list(value: Any) -> Optional[List[str]]:
    if not isinstance(value, list):
        return None
    names = [str(name) for name in value if isinstance(name, str) and name.strip()]
    return names or None


class StockRepository:
    """Reads and writes session state through a :class:`BlobStore`.

    Storage failures are logged and swallowed: loads fall back to defaults
    and saves leave the in-memory state as the only copy.
    """

    def __init__(self, store: BlobStore) -> None:
        self.store = store

    def _load(self, name: str) -> Any:
        key = STORAGE_KEYS[name]
        try:
            return self.store.load(key)
        except _STORAGE_ERRORS:
            logger.exception("Failed to load %s", key)
            return None

    def _save(self, name: str, value: Any) -> bool:
        key = STORAGE_KEYS[name]
        try:
            self.store.save(key, value)
        except _STORAGE_ERRORS:
            logger.exception("Failed to save %s", key)
            return False
        return True

    # ------------------------------------------------------------------
    # Stock items
    # ------------------------------------------------------------------
    def load_items(self) -> List[StockRecord]:
        raw = self._load("items")
        if not isinstance(raw, list):
            return []
        records: List[StockRecord] = []
        for index, entry in enumerate(raw):
            if not isinstance(entry, dict):
                continue
            try:
                records.append(StockRecord.from_record(entry))
            except ValueError as exc:
                logger.warning("Skipping stored item %d: %s", index, exc)
        return records

    def save_items(self, records: Iterable[StockRecord]) -> bool:
        return self._save("items", [record.to_dict() for record in records])

    # ------------------------------------------------------------------
    # Registries and settings
    # ------------------------------------------------------------------
    def load_categories(self) -> List[str]:
        return _name_list(self._load("categories")) or list(DEFAULT_CATEGORIES)

    def save_categories(self, names: Iterable[str]) -> bool:
        return self._save("categories", list(names))

    def load_locations(self) -> List[str]:
        return _name_list(self._load("locations")) or list(DEFAULT_LOCATIONS)

    def save_locations(self, names: Iterable[str]) -> bool:
        return self._save("locations", list(names))

    def load_settings(self) -> AppSettings:
        raw = self._load("settings")
        if not isinstance(raw, dict):
            return AppSettings()
        try:
            return AppSettings.model_validate(raw)
        except pydantic.ValidationError:
            logger.warning("Ignoring invalid stored settings")
            return AppSettings()

    def save_settings(self, settings: AppSettings) -> bool:
        return self._save("settings", settings.model_dump(by_alias=True))

    # ------------------------------------------------------------------
    # Backups
    # ------------------------------------------------------------------
    def export_all(self) -> str:
        return json.dumps(
            {
                "items": [record.to_dict() for record in self.load_items()],
                "categories": self.load_categories(),
                "locations": self.load_locations(),
                "settings": self.load_settings().model_dump(by_alias=True),
                "exportDate": serialize_timestamp(now()),
            },
            indent=2,
            ensure_ascii=False,
        )

    def import_all(self, text: str) -> None:
        try:
            data = json.loads(text)
        except (TypeError, ValueError) as exc:
            raise ImportParseError("Invalid data format") from exc
        if not isinstance(data, dict):
            raise ImportParseError("Invalid data format")
        settings: Optional[AppSettings] = None
        if isinstance(data.get("settings"), dict):
            merged = self.load_settings().model_dump(by_alias=True)
            merged.update(data["settings"])
            try:
                settings = AppSettings.model_validate(merged)
            except pydantic.ValidationError as exc:
                raise ImportParseError("Invalid settings in backup") from exc
        if isinstance(data.get("items"), list):
            self._save("items", data["items"])
        if _name_list(data.get("categories")):
            self._save("categories", data["categories"])
        if _name_list(data.get("locations")):
            self._save("locations", data["locations"])
        if settings is not None:
            self.save_settings(settings)

    def clear_all(self) -> None:
        for key in STORAGE_KEYS.values():
            try:
                self.store.delete(key)
            except _STORAGE_ERRORS:
                logger.exception("Failed to clear %s", key)


__all__ = [
    "STORAGE_KEYS",
    "BlobStore",
    "MemoryStore",
    "JsonFileStore",
    "StockRepository",
    "create_store",
]
