from __future__ import annotations

import pytest

from stocktake.config import Settings
from stocktake.errors import (
    DuplicateBarcodeError,
    RegistryInvariantError,
    ValidationError,
)
from stocktake.models import ScanResult
from stocktake.query import StockFilter
from stocktake.reconcile import Matched, NeedsCreation
from stocktake.session import StockTakeSession
from stocktake.storage import STORAGE_KEYS, MemoryStore, StockRepository


def test_scan_flow_creates_then_increments(session, make_fields) -> None:
    outcome = session.scan(ScanResult(code=" 111 ", format="EAN_13"))
    assert outcome == NeedsCreation(barcode="111")
    assert len(session) == 0

    created = session.create_record(make_fields(barcode=outcome.barcode))
    again = session.scan("111")

    assert isinstance(again, Matched)
    assert again.record.id == created.id
    assert session.get(created.id).quantity == 4
    assert [entry.user for entry in session.get(created.id).history] == ["tester", "tester"]


def test_scan_rejects_blank_code(session) -> None:
    with pytest.raises(ValidationError):
        session.scan("   ")


def test_new_records_go_to_the_front(session, make_fields) -> None:
    session.create_record(make_fields(barcode="1"))
    session.create_record(make_fields(barcode="2"))

    assert [record.barcode for record in session.records] == ["2", "1"]


def test_failed_create_leaves_state_untouched(session, store, make_fields) -> None:
    session.create_record(make_fields())
    saved = store.load(STORAGE_KEYS["items"])

    with pytest.raises(DuplicateBarcodeError):
        session.create_record(make_fields(name="Copy"))
    with pytest.raises(ValidationError):
        session.create_record(make_fields(barcode="2", quantity=-1))

    assert len(session) == 1
    assert store.load(STORAGE_KEYS["items"]) == saved


def test_update_rejects_barcode_collision(session, make_fields) -> None:
    first = session.create_record(make_fields(barcode="1"))
    second = session.create_record(make_fields(barcode="2"))

    with pytest.raises(DuplicateBarcodeError):
        session.update_record(second.id, {"barcode": "1"})

    renamed = session.update_record(second.id, {"barcode": "3", "name": "Moved"})
    assert renamed.id == second.id
    assert session.find_by_barcode("3") is renamed
    assert session.find_by_barcode("1") is session.get(first.id)


def test_adjust_and_delete(session, make_fields) -> None:
    record = session.create_record(make_fields(quantity=2))

    adjusted = session.adjust_quantity(record.id, -10)
    assert adjusted.quantity == 0

    removed = session.delete_record(record.id)
    assert removed.id == record.id
    assert len(session) == 0
    with pytest.raises(KeyError):
        session.get(record.id)
    with pytest.raises(KeyError):
        session.delete_record(record.id)


def test_mutations_are_persisted_and_reloaded(store, make_fields) -> None:
    session = StockTakeSession(StockRepository(store))
    record = session.create_record(make_fields())
    session.scan("111")
    session.add_category("Spares")

    reloaded = StockTakeSession(StockRepository(store))

    assert reloaded.get(record.id).quantity == 4
    assert len(reloaded.get(record.id).history) == 2
    assert "Spares" in reloaded.categories


def test_auto_save_off_defers_persistence(session, store, make_fields) -> None:
    session.update_settings(auto_save=False)
    session.create_record(make_fields())

    assert store.load(STORAGE_KEYS["items"]) is None
    assert store.load(STORAGE_KEYS["settings"])["autoSave"] is False

    assert session.save() is True
    assert len(store.load(STORAGE_KEYS["items"])) == 1


def test_update_settings_validates(session) -> None:
    with pytest.raises(ValidationError):
        session.update_settings(show_low_stock_alerts="maybe")
    assert session.settings.show_low_stock_alerts is True


def test_registries_never_become_empty(session) -> None:
    for name in session.categories.names[:-1]:
        session.remove_category(name)
    remaining = session.categories.names

    with pytest.raises(RegistryInvariantError):
        session.remove_category(remaining[0])
    assert session.categories.names == remaining

    with pytest.raises(KeyError):
        session.remove_location("Nowhere")
    with pytest.raises(ValidationError):
        session.add_location("Warehouse A")
    with pytest.raises(ValidationError):
        session.add_location("  ")
    assert session.add_location(" Loading Dock ") == "Loading Dock"


def test_removing_category_keeps_record_references(session, make_fields) -> None:
    record = session.create_record(make_fields(category="Tools"))

    session.remove_category("Tools")

    assert session.get(record.id).category == "Tools"
    assert "Tools" not in session.categories


def test_low_stock_alerts_follow_settings(session, make_fields) -> None:
    session.create_record(make_fields(barcode="1", quantity=1, min_quantity=2))
    session.create_record(make_fields(barcode="2", quantity=0))
    session.create_record(make_fields(barcode="3", quantity=9, min_quantity=2))

    assert {record.barcode for record in session.low_stock_alerts()} == {"1", "2"}

    session.update_settings(show_low_stock_alerts=False)
    assert session.low_stock_alerts() == []


def test_stats_and_query_reflect_session(session, make_fields) -> None:
    session.create_record(make_fields(barcode="1", name="Bolt", quantity=5, cost="0.10"))
    session.create_record(make_fields(barcode="2", name="Anvil", quantity=0))

    stats = session.stats()
    assert stats.total_items == 2
    assert stats.out_of_stock_items == 1
    assert str(stats.total_value) == "0.50"

    names = [record.name for record in session.query(StockFilter(search="b"))]
    assert names == ["Bolt"]


def test_history_is_newest_first(session, make_fields) -> None:
    record = session.create_record(make_fields())
    session.scan("111")
    session.adjust_quantity(record.id, 2)

    actions = [entry.action for _, entry in session.history()]
    assert actions == ["adjust_quantity", "scan", "add"]
    assert len(session.history(limit=1)) == 1


def test_import_file_merges_and_commits(session, store, make_fields) -> None:
    session.create_record(make_fields())
    data = b"Barcode,Name,Quantity\n111,Widget,20\n222,Gadget,1\n,Orphan,4\n"

    preview = session.preview_import([{"barcode": "111", "name": "Widget", "quantity": 20}])
    assert preview[0]["action"] == "update"
    assert session.find_by_barcode("111").quantity == 3

    result = session.import_file(data, "stock.csv")

    assert (result.added, result.updated, result.skipped) == (1, 1, 1)
    assert session.find_by_barcode("111").quantity == 20
    assert len(store.load(STORAGE_KEYS["items"])) == 2


def test_export_and_template_formats(session, make_fields) -> None:
    session.create_record(make_fields())

    assert session.export("csv").decode("utf-8-sig").startswith('"Barcode"')
    assert session.export("xlsx")[:2] == b"PK"
    assert StockTakeSession.template("xls")[:4] == b"\xd0\xcf\x11\xe0"
    with pytest.raises(ValueError):
        session.export("pdf")
    with pytest.raises(ValueError):
        StockTakeSession.template("ods")


def test_from_settings_uses_configured_backend(tmp_path) -> None:
    settings = Settings(storage_backend="json", storage_path=tmp_path / "stock.json")

    session = StockTakeSession.from_settings(settings, user="night shift")
    session.add_location("Dock")

    assert (tmp_path / "stock.json").exists()
    assert "Dock" in StockTakeSession.from_settings(settings).locations
