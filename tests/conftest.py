from __future__ import annotations

from typing import Any, Callable, Dict

import pytest

from stocktake.session import StockTakeSession
from stocktake.storage import MemoryStore, StockRepository


@pytest.fixture()
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture()
def session(store: MemoryStore) -> StockTakeSession:
    return StockTakeSession(StockRepository(store), user="tester")


@pytest.fixture()
def make_fields() -> Callable[..., Dict[str, Any]]:
    def _make(**overrides: Any) -> Dict[str, Any]:
        fields: Dict[str, Any] = {
            "barcode": "111",
            "name": "Widget",
            "quantity": 3,
            "unit": "pcs",
            "category": "Tools",
            "location": "Warehouse A",
        }
        fields.update(overrides)
        return fields

    return _make
