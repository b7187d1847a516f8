"""CSV and Excel encoding of the inventory, plus import parsing."""
from __future__ import annotations

import csv
from datetime import datetime
from decimal import Decimal, InvalidOperation
from io import BytesIO, StringIO
import logging
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence

import openpyxl
from openpyxl.utils import get_column_letter
import pydantic
import xlrd
import xlwt

from .errors import ImportParseError
from .identifiers import format_timestamp
from .models import StockRecord
from .schemas import StockItemPatch

logger = logging.getLogger(__name__)

EXPORT_COLUMNS = (
    "Barcode",
    "Name",
    "Description",
    "Quantity",
    "Unit",
    "Category",
    "Location",
    "Min Quantity",
    "Max Quantity",
    "Cost",
    "Price",
    "Supplier",
    "Notes",
    "Created At",
    "Updated At",
)
TEMPLATE_COLUMNS = EXPORT_COLUMNS[:-2]

# Character widths per column, matching EXPORT_COLUMNS.
COLUMN_WIDTHS = (15, 20, 30, 10, 10, 15, 15, 12, 12, 10, 10, 20, 30, 20, 20)

TEMPLATE_ROW: Dict[str, Any] = {
    "Barcode": "123456789",
    "Name": "Sample Item",
    "Description": "Sample description",
    "Quantity": 10,
    "Unit": "pcs",
    "Category": "Electronics",
    "Location": "Warehouse A",
    "Min Quantity": 5,
    "Max Quantity": 50,
    "Cost": Decimal("10.50"),
    "Price": Decimal("15.99"),
    "Supplier": "Sample Supplier",
    "Notes": "Sample notes",
}

_TEXT_COLUMNS = {
    "Barcode": "barcode",
    "Name": "name",
    "Description": "description",
    "Unit": "unit",
    "Category": "category",
    "Location": "location",
    "Supplier": "supplier",
    "Notes": "notes",
}
_INT_COLUMNS = {
    "Quantity": "quantity",
    "Min Quantity": "min_quantity",
    "Max Quantity": "max_quantity",
}
_DECIMAL_COLUMNS = {
    "Cost": "cost",
    "Price": "price",
}

_XLS_MAGIC = b"\xd0\xcf\x11\xe0"
_XLSX_MAGIC = b"PK"


def export_rows(records: Iterable[StockRecord]) -> List[Dict[str, Any]]:
    rows: List[Dict[str, Any]] = []
    for record in records:
        rows.append(
            {
                "Barcode": record.barcode,
                "Name": record.name,
                "Description": record.description,
                "Quantity": record.quantity,
                "Unit": record.unit,
                "Category": record.category,
                "Location": record.location,
                "Min Quantity": record.min_quantity,
                "Max Quantity": record.max_quantity,
                "Cost": record.cost,
                "Price": record.price,
                "Supplier": record.supplier,
                "Notes": record.notes,
                "Created At": format_timestamp(record.created_at),
                "Updated At": format_timestamp(record.updated_at),
            }
        )
    return rows


def _rows_to_csv(fieldnames: Sequence[str], rows: Iterable[Dict[str, Any]]) -> bytes:
    buffer = StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(fieldnames)
    for row in rows:
        writer.writerow(["" if row.get(field) is None else row.get(field) for field in fieldnames])
    return buffer.getvalue().encode("utf-8-sig")


def _xls_value(value: Any) -> Any:
    if value is None:
        return ""
    if isinstance(value, Decimal):
        return float(value)
    return value


def _rows_to_xls(
    fieldnames: Sequence[str], rows: Iterable[Dict[str, Any]], *, sheet_name: str
) -> bytes:
    workbook = xlwt.Workbook(encoding="utf-8")
    sheet = workbook.add_sheet(sheet_name)
    header_style = xlwt.easyxf("font: bold on")
    for col_index, field in enumerate(fieldnames):
        sheet.write(0, col_index, field, header_style)
        sheet.col(col_index).width = 256 * COLUMN_WIDTHS[col_index]
    for row_index, row in enumerate(rows, start=1):
        for col_index, field in enumerate(fieldnames):
            sheet.write(row_index, col_index, _xls_value(row.get(field)))
    buffer = BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()


def _rows_to_xlsx(
    fieldnames: Sequence[str], rows: Iterable[Dict[str, Any]], *, sheet_name: str
) -> bytes:
    workbook = openpyxl.Workbook()
    sheet = workbook.active
    sheet.title = sheet_name
    sheet.append(list(fieldnames))
    for row in rows:
        sheet.append([_xls_value(row.get(field)) for field in fieldnames])
    for col_index in range(len(fieldnames)):
        letter = get_column_letter(col_index + 1)
        sheet.column_dimensions[letter].width = COLUMN_WIDTHS[col_index]
    buffer = BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()


def to_csv(records: Iterable[StockRecord]) -> bytes:
    return _rows_to_csv(EXPORT_COLUMNS, export_rows(records))


def to_xls(records: Iterable[StockRecord]) -> bytes:
    return _rows_to_xls(EXPORT_COLUMNS, export_rows(records), sheet_name="Stock Inventory")


def to_xlsx(records: Iterable[StockRecord]) -> bytes:
    return _rows_to_xlsx(EXPORT_COLUMNS, export_rows(records), sheet_name="Stock Inventory")


def template_csv() -> bytes:
    return _rows_to_csv(TEMPLATE_COLUMNS, [TEMPLATE_ROW])


def template_xls() -> bytes:
    return _rows_to_xls(TEMPLATE_COLUMNS, [TEMPLATE_ROW], sheet_name="Stock Template")


def template_xlsx() -> bytes:
    return _rows_to_xlsx(TEMPLATE_COLUMNS, [TEMPLATE_ROW], sheet_name="Stock Template")


EXPORTERS: Dict[str, Callable[[Iterable[StockRecord]], bytes]] = {
    "csv": to_csv,
    "xls": to_xls,
    "xlsx": to_xlsx,
}
TEMPLATES: Dict[str, Callable[[], bytes]] = {
    "csv": template_csv,
    "xls": template_xls,
    "xlsx": template_xlsx,
}


def timestamped_filename(prefix: str, suffix: str) -> str:
    timestamp = datetime.now().strftime("%Y-%m-%d")
    return f"{prefix}-{timestamp}.{suffix}"


# ----------------------------------------------------------------------
# Import
# ----------------------------------------------------------------------
def _cell_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return str(value)
    if isinstance(value, float):
        return str(int(value)) if value.is_integer() else str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value).strip()


def _parse_int(text: str) -> Optional[int]:
    try:
        return int(text)
    except ValueError:
        pass
    try:
        parsed = Decimal(text)
    except InvalidOperation:
        return None
    if not parsed.is_finite():
        return None
    return int(parsed)


def _parse_decimal(text: str) -> Optional[Decimal]:
    try:
        parsed = Decimal(text)
    except InvalidOperation:
        return None
    return parsed if parsed.is_finite() else None


def _row_to_patch(row: Dict[str, str]) -> StockItemPatch:
    fields: Dict[str, Any] = {}
    for column, attr in _TEXT_COLUMNS.items():
        text = row.get(column, "")
        if text:
            fields[attr] = text
    for column, attr in _INT_COLUMNS.items():
        text = row.get(column, "")
        if text:
            parsed = _parse_int(text)
            if parsed is not None:
                fields[attr] = parsed
    for column, attr in _DECIMAL_COLUMNS.items():
        text = row.get(column, "")
        if text:
            parsed_decimal = _parse_decimal(text)
            if parsed_decimal is not None:
                fields[attr] = parsed_decimal
    return StockItemPatch(**fields)


def _table_to_patches(header: Sequence[str], body: Iterable[Sequence[str]]) -> List[StockItemPatch]:
    labels = [label.strip() for label in header]
    if not any(labels):
        raise ImportParseError("Missing header row")
    if "Barcode" not in labels and "Name" not in labels:
        raise ImportParseError("Header row has no Barcode or Name column")
    patches: List[StockItemPatch] = []
    for line_number, values in enumerate(body, start=2):
        row = {
            label: (values[index].strip() if index < len(values) else "")
            for index, label in enumerate(labels)
            if label
        }
        if not any(row.values()):
            continue
        try:
            patches.append(_row_to_patch(row))
        except pydantic.ValidationError as exc:
            logger.debug("Dropping row %d with invalid values: %s", line_number, exc)
    return patches


def _parse_csv(text: str) -> List[StockItemPatch]:
    reader = csv.reader(StringIO(text))
    try:
        header = next(reader)
    except StopIteration:
        raise ImportParseError("Missing header row") from None
    except csv.Error as exc:
        raise ImportParseError("Invalid CSV file") from exc
    try:
        return _table_to_patches(header, list(reader))
    except csv.Error as exc:
        raise ImportParseError("Invalid CSV file") from exc


def _parse_xls(data: bytes) -> List[StockItemPatch]:
    try:
        workbook = xlrd.open_workbook(file_contents=data)
    except Exception as exc:
        raise ImportParseError("Invalid XLS file") from exc
    if workbook.nsheets == 0:
        raise ImportParseError("Missing worksheet")
    sheet = workbook.sheet_by_index(0)
    if sheet.nrows == 0:
        raise ImportParseError("Missing header row")
    table: List[List[str]] = []
    for row_index in range(sheet.nrows):
        values: List[str] = []
        for col_index in range(sheet.ncols):
            cell = sheet.cell(row_index, col_index)
            if cell.ctype in (xlrd.XL_CELL_EMPTY, xlrd.XL_CELL_BLANK):
                values.append("")
            else:
                values.append(_cell_text(cell.value))
        table.append(values)
    return _table_to_patches(table[0], table[1:])


def _parse_xlsx(data: bytes) -> List[StockItemPatch]:
    try:
        workbook = openpyxl.load_workbook(BytesIO(data), read_only=True, data_only=True)
    except Exception as exc:
        raise ImportParseError("Invalid XLSX file") from exc
    try:
        if not workbook.worksheets:
            raise ImportParseError("Missing worksheet")
        sheet = workbook.worksheets[0]
        table = [[_cell_text(value) for value in row] for row in sheet.iter_rows(values_only=True)]
    finally:
        workbook.close()
    if not table:
        raise ImportParseError("Missing header row")
    return _table_to_patches(table[0], table[1:])


def read_rows(data: bytes, filename: Optional[str] = None) -> List[StockItemPatch]:
    """Decode spreadsheet bytes into partial records.

    The format follows the file suffix when given, otherwise the content is
    sniffed. Only non-blank cells set patch fields. Rows with values that
    cannot form a valid patch are dropped; undecodable input raises
    :class:`ImportParseError`.
    """

    if not data:
        raise ImportParseError("Empty file")
    extension = Path(filename).suffix.lower() if filename else ""
    if extension == ".xls" or (not extension and data.startswith(_XLS_MAGIC)):
        return _parse_xls(data)
    if extension == ".xlsx" or (not extension and data.startswith(_XLSX_MAGIC)):
        return _parse_xlsx(data)
    try:
        text = data.decode("utf-8-sig")
    except UnicodeDecodeError as exc:
        raise ImportParseError("File must be UTF-8 CSV, XLS or XLSX") from exc
    return _parse_csv(text)


__all__ = [
    "EXPORT_COLUMNS",
    "TEMPLATE_COLUMNS",
    "TEMPLATE_ROW",
    "EXPORTERS",
    "TEMPLATES",
    "export_rows",
    "to_csv",
    "to_xls",
    "to_xlsx",
    "template_csv",
    "template_xls",
    "template_xlsx",
    "timestamped_filename",
    "read_rows",
]
