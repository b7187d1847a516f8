from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timedelta, timezone

import pytest

from stocktake.errors import RegistryInvariantError
from stocktake.history import append_entry, make_entry, merge_history
from stocktake.identifiers import format_timestamp, parse_timestamp, serialize_timestamp
from stocktake.reconcile import create_record
from stocktake.registry import DEFAULT_LOCATIONS, NameRegistry
from stocktake.spreadsheet import timestamped_filename


def test_make_entry_rejects_unknown_action() -> None:
    with pytest.raises(ValueError):
        make_entry("teleport")


def test_append_entry_returns_new_tuple() -> None:
    first = make_entry("add")
    history = (first,)

    extended = append_entry(history, make_entry("scan", field="quantity", old_value=1, new_value=2))

    assert history == (first,)
    assert extended[0] is first
    assert extended[1].action == "scan"
    assert first.id != extended[1].id


def test_merge_history_orders_across_records(make_fields) -> None:
    base = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
    first = create_record([], make_fields(barcode="1"))
    second = create_record([first], make_fields(barcode="2"))
    first = replace(first, history=(make_entry("add", timestamp=base),))
    second = replace(
        second,
        history=(
            make_entry("add", timestamp=base - timedelta(minutes=5)),
            make_entry("scan", timestamp=base + timedelta(minutes=5)),
        ),
    )

    merged = merge_history([first, second])

    assert [(record.barcode, entry.action) for record, entry in merged] == [
        ("2", "scan"),
        ("1", "add"),
        ("2", "add"),
    ]
    assert len(merge_history([first, second], limit=2)) == 2


@pytest.mark.parametrize(
    "value, expected",
    [
        ("2024-01-02T03:04:05Z", datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)),
        ("2024-01-02T03:04:05", datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)),
        ("", None),
        ("yesterday", None),
        (None, None),
    ],
)
def test_parse_timestamp(value, expected) -> None:
    assert parse_timestamp(value) == expected


def test_timestamp_formatting() -> None:
    moment = datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)

    assert serialize_timestamp(moment) == "2024-01-02T03:04:05+00:00"
    assert format_timestamp(moment) == "2024-01-02 03:04:05"
    assert format_timestamp(None) == ""
    assert timestamped_filename("stock-inventory", "xls").startswith("stock-inventory-")


def test_registry_normalises_and_falls_back_to_defaults() -> None:
    registry = NameRegistry("Location", [" Dock ", "Dock", "", "Yard"])
    assert registry.names == ["Dock", "Yard"]

    fallback = NameRegistry("Location", [], defaults=DEFAULT_LOCATIONS)
    assert fallback.names == list(DEFAULT_LOCATIONS)

    with pytest.raises(RegistryInvariantError):
        NameRegistry("Location", [])
