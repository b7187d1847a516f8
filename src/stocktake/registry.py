"""Category and location name registries."""
from __future__ import annotations

from typing import Iterable, Iterator, List

from .errors import RegistryInvariantError, ValidationError

DEFAULT_CATEGORIES = (
    "Electronics",
    "Furniture",
    "Office Supplies",
    "Food & Beverages",
    "Clothing",
    "Tools",
    "Other",
)

DEFAULT_LOCATIONS = (
    "Warehouse A",
    "Warehouse B",
    "Storage Room 1",
    "Storage Room 2",
    "Retail Floor",
    "Back Office",
    "Other",
)


class NameRegistry:
    """Ordered set of unique names that can never become empty.

    Records reference entries by name only; removing an entry leaves those
    references in place.
    """

    def __init__(self, kind: str, names: Iterable[str], *, defaults: Iterable[str] = ()) -> None:
        self.kind = kind
        self._defaults = tuple(defaults)
        self._names: List[str] = []
        for name in names:
            candidate = str(name).strip()
            if candidate and candidate not in self._names:
                self._names.append(candidate)
        if not self._names:
            self._names = list(self._defaults)
        if not self._names:
            raise RegistryInvariantError(f"{self.kind} registry cannot be empty")

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._names))

    def __len__(self) -> int:
        return len(self._names)

    def __contains__(self, name: object) -> bool:
        return name in self._names

    def __repr__(self) -> str:
        return f"NameRegistry({self.kind!r}, {self._names!r})"

    @property
    def names(self) -> List[str]:
        return list(self._names)

    def add(self, name: str) -> str:
        candidate = (name or "").strip()
        if not candidate:
            raise ValidationError(f"{self.kind} name cannot be empty")
        if candidate in self._names:
            raise ValidationError(f"{self.kind} '{candidate}' already exists")
        self._names.append(candidate)
        return candidate

    def remove(self, name: str) -> None:
        if name not in self._names:
            raise KeyError(f"{self.kind} '{name}' not found")
        if len(self._names) <= 1:
            raise RegistryInvariantError(f"At least one {self.kind.lower()} must remain")
        self._names.remove(name)


__all__ = ["DEFAULT_CATEGORIES", "DEFAULT_LOCATIONS", "NameRegistry"]
