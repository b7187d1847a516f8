from __future__ import annotations

from typing import List

import pytest

from stocktake.models import StockRecord
from stocktake.query import StockFilter, query
from stocktake.reconcile import create_record


def _records(make_fields) -> List[StockRecord]:
    records: List[StockRecord] = []
    for overrides in (
        {"barcode": "111", "name": "banana", "quantity": 4, "min_quantity": 5,
         "category": "Food & Beverages", "description": "Yellow fruit"},
        {"barcode": "222", "name": "Apple", "quantity": 0, "category": "Food & Beverages"},
        {"barcode": "333", "name": "Cable", "quantity": 12, "min_quantity": 2,
         "category": "Electronics", "location": "Back Office"},
        {"barcode": "444", "name": "Drill", "quantity": 2, "category": "Tools"},
    ):
        records.append(create_record(records, make_fields(**overrides)))
    return records


def test_query_without_filter_sorts_by_name(make_fields) -> None:
    records = _records(make_fields)

    names = [record.name for record in query(records)]

    assert names == ["Apple", "banana", "Cable", "Drill"]


def test_query_descending_numeric_sort(make_fields) -> None:
    records = _records(make_fields)

    result = query(records, sort_field="quantity", sort_direction="desc")

    assert [record.quantity for record in result] == [12, 4, 2, 0]


def test_query_search_matches_barcode_name_and_description(make_fields) -> None:
    records = _records(make_fields)

    assert [r.barcode for r in query(records, StockFilter(search="111"))] == ["111"]
    assert [r.barcode for r in query(records, StockFilter(search="CAB"))] == ["333"]
    assert [r.barcode for r in query(records, StockFilter(search="yellow"))] == ["111"]


@pytest.mark.parametrize("sort_field", ["name", "quantity", "barcode", "updated_at"])
@pytest.mark.parametrize("direction", ["asc", "desc"])
def test_search_result_independent_of_sort(make_fields, sort_field, direction) -> None:
    records = _records(make_fields)[:2]

    result = query(records, StockFilter(search="111"), sort_field, direction)

    assert [record.barcode for record in result] == ["111"]


def test_query_category_location_and_stock_flags(make_fields) -> None:
    records = _records(make_fields)

    by_category = query(records, StockFilter(category="Food & Beverages"))
    assert {r.barcode for r in by_category} == {"111", "222"}

    by_location = query(records, StockFilter(location="Back Office"))
    assert [r.barcode for r in by_location] == ["333"]

    # quantity <= (min_quantity or 0)
    low = query(records, StockFilter(low_stock=True))
    assert {r.barcode for r in low} == {"111", "222"}

    empty = query(records, StockFilter(no_stock=True))
    assert [r.barcode for r in empty] == ["222"]

    combined = query(records, StockFilter(category="Food & Beverages", no_stock=True))
    assert [r.barcode for r in combined] == ["222"]


def test_query_is_pure_and_repeatable(make_fields) -> None:
    records = _records(make_fields)
    snapshot = list(records)
    stock_filter = StockFilter(search="a")

    first = query(records, stock_filter, "quantity", "desc")
    second = query(records, stock_filter, "quantity", "desc")

    assert first == second
    assert records == snapshot


def test_missing_sort_values_go_last(make_fields) -> None:
    records = _records(make_fields)

    ascending = query(records, sort_field="min_quantity")
    descending = query(records, sort_field="min_quantity", sort_direction="desc")

    assert [r.barcode for r in ascending][:2] == ["333", "111"]
    assert [r.barcode for r in descending][:2] == ["111", "333"]
    assert {r.barcode for r in ascending[2:]} == {"222", "444"}
    assert {r.barcode for r in descending[2:]} == {"222", "444"}


def test_query_rejects_unknown_sort(make_fields) -> None:
    records = _records(make_fields)

    with pytest.raises(ValueError):
        query(records, sort_field="history")
    with pytest.raises(ValueError):
        query(records, sort_direction="sideways")


def test_name_sort_ignores_accents_and_case(make_fields) -> None:
    records = []
    for barcode, name in (("1", "Zebra"), ("2", "Éclair"), ("3", "apple"), ("4", "eclair")):
        records.append(create_record(records, make_fields(barcode=barcode, name=name)))

    ascending = [record.name for record in query(records)]
    descending = [record.name for record in query(records, sort_direction="desc")]

    assert ascending == ["apple", "eclair", "Éclair", "Zebra"]
    assert descending == ["Zebra", "Éclair", "eclair", "apple"]
