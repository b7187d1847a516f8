"""Pydantic schemas validating record input and persisted settings."""
from __future__ import annotations

from decimal import Decimal
from typing import Any, Mapping, Optional, Type, TypeVar, Union

import pydantic
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .errors import ValidationError

SchemaT = TypeVar("SchemaT", bound=BaseModel)


class StockItemCreate(BaseModel):
    """Fields supplied by the creation form for a new record."""

    model_config = ConfigDict(str_strip_whitespace=True)

    barcode: str = Field(..., min_length=1, description="External matching key.")
    name: str = Field(..., min_length=1)
    description: str = ""
    quantity: int = Field(..., ge=0)
    unit: str = Field(..., description="Unit label, e.g. pcs, kg, liters.")
    category: str
    location: str
    min_quantity: Optional[int] = None
    max_quantity: Optional[int] = None
    cost: Optional[Decimal] = Field(default=None, ge=0)
    price: Optional[Decimal] = Field(default=None, ge=0)
    supplier: Optional[str] = None
    notes: Optional[str] = None


class StockItemPatch(BaseModel):
    """Partial record; only explicitly set fields take part in a merge."""

    model_config = ConfigDict(str_strip_whitespace=True)

    barcode: Optional[str] = Field(default=None, min_length=1)
    name: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    quantity: Optional[int] = Field(default=None, ge=0)
    unit: Optional[str] = None
    category: Optional[str] = None
    location: Optional[str] = None
    min_quantity: Optional[int] = None
    max_quantity: Optional[int] = None
    cost: Optional[Decimal] = Field(default=None, ge=0)
    price: Optional[Decimal] = Field(default=None, ge=0)
    supplier: Optional[str] = None
    notes: Optional[str] = None

    def changes(self) -> dict[str, Any]:
        return self.model_dump(exclude_unset=True)


class AppSettings(BaseModel):
    """User preferences persisted next to the inventory."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    auto_save: bool = True
    show_low_stock_alerts: bool = True
    default_unit: str = "pcs"


def _describe(exc: pydantic.ValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()))
        parts.append(f"{location}: {error.get('msg')}" if location else str(error.get("msg")))
    return "; ".join(parts)


def validate_fields(
    schema: Type[SchemaT], fields: Union[SchemaT, Mapping[str, Any]]
) -> SchemaT:
    """Validate ``fields`` against ``schema`` raising the package's error type."""

    if isinstance(fields, schema):
        return fields
    if isinstance(fields, BaseModel):
        fields = fields.model_dump(exclude_unset=True)
    try:
        return schema.model_validate(dict(fields))
    except pydantic.ValidationError as exc:
        raise ValidationError(_describe(exc)) from exc


__all__ = ["StockItemCreate", "StockItemPatch", "AppSettings", "validate_fields"]
