"""Append-only audit trail helpers for stock records."""
from __future__ import annotations

from datetime import datetime
from typing import Any, Iterable, List, Optional, Tuple

from .identifiers import new_id, now
from .models import HISTORY_ACTIONS, HistoryEntry, StockRecord


def make_entry(
    action: str,
    *,
    field: Optional[str] = None,
    old_value: Any = None,
    new_value: Any = None,
    notes: Optional[str] = None,
    user: Optional[str] = None,
    timestamp: Optional[datetime] = None,
) -> HistoryEntry:
    if action not in HISTORY_ACTIONS:
        raise ValueError(f"Unknown history action '{action}'")
    return HistoryEntry(
        id=new_id(),
        timestamp=timestamp or now(),
        action=action,
        field=field,
        old_value=old_value,
        new_value=new_value,
        user=user,
        notes=notes,
    )


def append_entry(
    history: Tuple[HistoryEntry, ...], entry: HistoryEntry
) -> Tuple[HistoryEntry, ...]:
    return tuple(history) + (entry,)


def merge_history(
    records: Iterable[StockRecord],
    *,
    limit: Optional[int] = None,
) -> List[Tuple[StockRecord, HistoryEntry]]:
    """Return ``(record, entry)`` pairs from every ledger, newest first.

    Entries of different records carry no global order beyond their
    timestamps; within one ledger a later entry wins a timestamp tie.
    """

    keyed: List[Tuple[datetime, int, StockRecord, HistoryEntry]] = []
    for record in records:
        for position, entry in enumerate(record.history):
            keyed.append((entry.timestamp, position, record, entry))
    keyed.sort(key=lambda item: (item[0], item[1]), reverse=True)
    pairs = [(record, entry) for _, _, record, entry in keyed]
    if limit is not None and limit >= 0:
        return pairs[:limit]
    return pairs


__all__ = ["make_entry", "append_entry", "merge_history"]
