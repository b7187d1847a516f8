"""Error types raised by the stock take engine."""
from __future__ import annotations


class StockTakeError(ValueError):
    """Base class for recoverable stock take errors."""


class ValidationError(StockTakeError):
    """A required field is missing or a value is out of range."""


class DuplicateBarcodeError(StockTakeError):
    """A record with the same barcode is already in the active set."""

    def __init__(self, barcode: str) -> None:
        super().__init__(f"Barcode '{barcode}' already exists")
        self.barcode = barcode


class ImportParseError(StockTakeError):
    """Import data could not be decoded as a spreadsheet or backup."""


class RegistryInvariantError(StockTakeError):
    """A registry operation would leave the registry empty."""


__all__ = [
    "StockTakeError",
    "ValidationError",
    "DuplicateBarcodeError",
    "ImportParseError",
    "RegistryInvariantError",
]
