from __future__ import annotations

from stocktake.importer import IMPORT_ADD_NOTE, IMPORT_UPDATE_NOTE, merge_import, preview_import
from stocktake.reconcile import create_record
from stocktake.schemas import StockItemPatch


def test_merge_import_counts_added_and_updated(make_fields) -> None:
    existing = create_record([], make_fields(barcode="111", category="Tools", quantity=3))
    rows = [
        StockItemPatch(barcode="111", name="Widget", quantity=9),
        StockItemPatch(barcode="222", name="Gadget", quantity=2, cost="1.5"),
        {"barcode": "", "name": "No barcode"},
        StockItemPatch(barcode="333", name=None),
        {"barcode": "444", "name": "Mapping row"},
    ]

    result = merge_import(rows, [existing])

    assert result.added == 2
    assert result.updated == 1
    assert result.skipped == 2
    assert result.added + result.updated == len(rows) - 2
    assert len(result.records) == 3

    updated = result.records[0]
    assert updated.id == existing.id
    assert updated.created_at == existing.created_at
    assert updated.quantity == 9
    # Unset row fields keep the existing values.
    assert updated.category == "Tools"
    assert updated.history[-1].notes == IMPORT_UPDATE_NOTE

    added = result.records[1]
    assert added.barcode == "222"
    assert added.unit == "pcs"
    assert added.category == "Uncategorized"
    assert added.location == "Unknown"
    assert added.history[0].notes == IMPORT_ADD_NOTE

    mapped = result.records[2]
    assert mapped.quantity == 0


def test_merge_import_does_not_touch_input(make_fields) -> None:
    existing = create_record([], make_fields())
    current = [existing]

    merge_import([StockItemPatch(barcode="111", name="Renamed")], current)

    assert current == [existing]
    assert existing.name == "Widget"


def test_merge_import_duplicate_rows_update_the_new_record() -> None:
    rows = [
        StockItemPatch(barcode="555", name="First", quantity=1),
        StockItemPatch(barcode="555", name="Second", quantity=4),
    ]

    result = merge_import(rows, [])

    assert result.added == 1
    assert result.updated == 1
    assert len(result.records) == 1
    assert result.records[0].name == "Second"
    assert result.records[0].quantity == 4


def test_merge_import_skips_invalid_rows_without_failing() -> None:
    rows = [
        {"barcode": "1", "name": "Bad", "quantity": -5},
        {"barcode": "2", "name": "Good", "quantity": 5},
    ]

    result = merge_import(rows, [])

    assert result.added == 1
    assert result.skipped == 1
    assert [record.barcode for record in result.records] == ["2"]


def test_preview_import_reports_decisions(make_fields) -> None:
    existing = create_record([], make_fields(quantity=3))
    rows = [
        StockItemPatch(barcode="111", name="Widget", quantity=5),
        StockItemPatch(barcode="222", name="Gadget", quantity=2),
        StockItemPatch(name="Nameless"),
    ]

    preview = preview_import(rows, [existing])

    assert [row["action"] for row in preview] == ["update", "add", "skip"]
    assert preview[0]["quantity_delta"] == 2
    assert preview[1]["quantity_delta"] == 2
    assert preview[2]["messages"] == ["Missing barcode"]
    assert existing.quantity == 3
