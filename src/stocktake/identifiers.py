"""Identifier and timestamp helpers shared by records and history entries."""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional
import uuid


def new_id() -> str:
    return uuid.uuid4().hex


def now() -> datetime:
    return datetime.now(timezone.utc)


def parse_timestamp(value: Any) -> Optional[datetime]:
    if not value:
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        try:
            parsed = datetime.fromisoformat(str(value).strip().replace("Z", "+00:00"))
        except ValueError:
            return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def serialize_timestamp(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    return value.astimezone(timezone.utc).isoformat()


def format_timestamp(value: Optional[datetime], fmt: str = "%Y-%m-%d %H:%M:%S") -> str:
    """Render ``value`` in UTC for spreadsheets and terminal output."""

    if value is None:
        return ""
    return value.astimezone(timezone.utc).strftime(fmt)


__all__ = ["new_id", "now", "parse_timestamp", "serialize_timestamp", "format_timestamp"]
