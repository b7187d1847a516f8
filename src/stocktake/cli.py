"""Command line front end for manual scanning and inventory maintenance."""
from __future__ import annotations

import argparse
import logging
from pathlib import Path
import sys
from typing import Optional, Sequence, Tuple

from .config import Settings, get_settings
from .errors import StockTakeError
from .identifiers import format_timestamp
from .models import ScanResult, StockRecord
from .query import SORT_FIELDS, StockFilter
from .reconcile import Matched
from .session import StockTakeSession
from .spreadsheet import read_rows, timestamped_filename

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(log_level: str = "WARNING") -> None:
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format=LOG_FORMAT,
        handlers=[logging.StreamHandler(sys.stderr)],
    )


def _add_record_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--name", help="Item name (required to create a new item)")
    parser.add_argument("--description", default="")
    parser.add_argument("--quantity", type=int, default=1, help="Initial quantity (default: 1)")
    parser.add_argument("--unit", help="Unit label (default: the configured default unit)")
    parser.add_argument("--category", help="Category name (default: first category)")
    parser.add_argument("--location", help="Location name (default: first location)")
    parser.add_argument("--min-quantity", type=int)
    parser.add_argument("--max-quantity", type=int)
    parser.add_argument("--cost")
    parser.add_argument("--price")
    parser.add_argument("--supplier")
    parser.add_argument("--notes")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="stocktake",
        description="Barcode driven stock take with per-item change history.",
    )
    parser.add_argument("--storage", type=Path, help="JSON file holding the inventory")
    parser.add_argument("--user", help="Name recorded on history entries")
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: from settings)",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    scan = commands.add_parser("scan", help="Scan a barcode; increments or creates the item")
    scan.add_argument("code")
    scan.add_argument("--format", dest="barcode_format", help="Symbology reported by the scanner")
    _add_record_options(scan)

    add = commands.add_parser("add", help="Create an item without scanning")
    add.add_argument("barcode")
    _add_record_options(add)

    adjust = commands.add_parser("adjust", help="Change an item's quantity by a signed delta")
    adjust.add_argument("barcode")
    adjust.add_argument("delta", type=int)

    delete = commands.add_parser("delete", help="Remove an item and its history")
    delete.add_argument("barcode")

    listing = commands.add_parser("list", help="Show items")
    listing.add_argument("--search")
    listing.add_argument("--category")
    listing.add_argument("--location")
    listing.add_argument("--low-stock", action="store_true")
    listing.add_argument("--no-stock", action="store_true")
    listing.add_argument("--sort", choices=SORT_FIELDS, default="name")
    listing.add_argument("--desc", action="store_true", help="Sort descending")

    commands.add_parser("stats", help="Show dashboard figures")

    history = commands.add_parser("history", help="Show recent changes")
    history.add_argument("--limit", type=int, default=20)
    history.add_argument("--barcode", help="Only this item's ledger")

    import_cmd = commands.add_parser("import", help="Merge a CSV/XLS/XLSX file")
    import_cmd.add_argument("file", type=Path)
    import_cmd.add_argument("--preview", action="store_true", help="Show decisions only")

    export = commands.add_parser("export", help="Write the inventory to a spreadsheet")
    export.add_argument("file", type=Path, nargs="?", help="Default: stock-inventory-<date>.<format>")
    export.add_argument("--format", choices=["csv", "xls", "xlsx"])

    template = commands.add_parser("template", help="Write an import template")
    template.add_argument("file", type=Path, nargs="?", help="Default: stock-template-<date>.<format>")
    template.add_argument("--format", choices=["csv", "xls", "xlsx"])

    backup = commands.add_parser("backup", help="Write a JSON backup of all data")
    backup.add_argument("file", type=Path)

    restore = commands.add_parser("restore", help="Restore a JSON backup")
    restore.add_argument("file", type=Path)

    for kind in ("categories", "locations"):
        registry = commands.add_parser(kind, help=f"List or edit {kind}")
        registry.add_argument("--add", metavar="NAME")
        registry.add_argument("--remove", metavar="NAME")

    return parser


def _format_record(record: StockRecord) -> str:
    status = record.stock_status.replace("_", " ")
    return (
        f"{record.barcode:<15} {record.name:<25} {record.quantity:>6} {record.unit:<6} "
        f"{record.category:<18} {record.location:<16} {status}"
    )


def _resolve_output(
    path: Optional[Path], explicit: Optional[str], prefix: str
) -> Tuple[Path, str]:
    """Pick the output format and, when no path is given, a dated file name."""

    if explicit:
        fmt = explicit
    elif path is not None and path.suffix.lower().lstrip(".") in {"csv", "xls", "xlsx"}:
        fmt = path.suffix.lower().lstrip(".")
    else:
        fmt = "xls"
    if path is None:
        path = Path(timestamped_filename(prefix, fmt))
    return path, fmt


def _require(session: StockTakeSession, barcode: str) -> StockRecord:
    record = session.find_by_barcode(barcode)
    if record is None:
        raise KeyError(f"Item '{barcode}' not found")
    return record


def _creation_fields(session: StockTakeSession, barcode: str, args: argparse.Namespace) -> dict:
    category = args.category or session.categories.names[0]
    location = args.location or session.locations.names[0]
    if category not in session.categories:
        raise StockTakeError(f"Unknown category '{category}'")
    if location not in session.locations:
        raise StockTakeError(f"Unknown location '{location}'")
    return {
        "barcode": barcode,
        "name": args.name or "",
        "description": args.description,
        "quantity": args.quantity,
        "unit": args.unit or session.settings.default_unit,
        "category": category,
        "location": location,
        "min_quantity": args.min_quantity,
        "max_quantity": args.max_quantity,
        "cost": args.cost,
        "price": args.price,
        "supplier": args.supplier,
        "notes": args.notes,
    }


def _run(session: StockTakeSession, args: argparse.Namespace) -> int:
    command = args.command
    if command == "scan":
        outcome = session.scan(ScanResult(code=args.code, format=args.barcode_format))
        if isinstance(outcome, Matched):
            print(f"{outcome.record.name} - quantity updated to {outcome.record.quantity}")
            return 0
        if not args.name:
            print(f"No item with barcode {outcome.barcode}; rerun with --name to add it")
            return 2
        record = session.create_record(_creation_fields(session, outcome.barcode, args))
        print(f"{record.name} has been added to inventory")
        return 0
    if command == "add":
        record = session.create_record(_creation_fields(session, args.barcode, args))
        print(f"{record.name} has been added to inventory")
        return 0
    if command == "adjust":
        record = session.adjust_quantity(_require(session, args.barcode).id, args.delta)
        print(f"{record.name} - quantity {record.quantity}")
        return 0
    if command == "delete":
        record = session.delete_record(_require(session, args.barcode).id)
        print(f"{record.name} has been removed from inventory")
        return 0
    if command == "list":
        stock_filter = StockFilter(
            search=args.search,
            category=args.category,
            location=args.location,
            low_stock=args.low_stock,
            no_stock=args.no_stock,
        )
        records = session.query(stock_filter, args.sort, "desc" if args.desc else "asc")
        for record in records:
            print(_format_record(record))
        print(f"{len(records)} item(s)")
        return 0
    if command == "stats":
        stats = session.stats()
        print(f"Total items:     {stats.total_items}")
        print(f"Total quantity:  {stats.total_quantity}")
        print(f"Total value:     {stats.total_value:.2f}")
        print(f"Low stock:       {stats.low_stock_items}")
        print(f"Out of stock:    {stats.out_of_stock_items}")
        print(f"Categories:      {stats.categories}")
        print(f"Locations:       {stats.locations}")
        for record in session.low_stock_alerts():
            print(f"! {record.barcode} {record.name}: {record.stock_status.replace('_', ' ')}")
        return 0
    if command == "history":
        if args.barcode:
            record = _require(session, args.barcode)
            pairs = [(record, entry) for entry in reversed(record.history)][: args.limit]
        else:
            pairs = session.history(limit=args.limit)
        for record, entry in pairs:
            print(
                f"{format_timestamp(entry.timestamp)}  {record.barcode:<15} "
                f"{entry.action:<16} {entry.notes or ''}"
            )
        return 0
    if command == "import":
        data = args.file.read_bytes()
        if args.preview:
            for row in session.preview_import(read_rows(data, args.file.name)):
                messages = ", ".join(row["messages"])
                print(f"{row['index']:>4} {row['action']:<7} {row['barcode']:<15} {messages}")
            return 0
        result = session.import_file(data, args.file.name)
        print(f"Added {result.added} new items, updated {result.updated} existing items.")
        return 0
    if command == "export":
        if len(session) == 0:
            print("No data to export")
            return 1
        path, fmt = _resolve_output(args.file, args.format, "stock-inventory")
        path.write_bytes(session.export(fmt))
        print(f"Exported {len(session)} items to {path}")
        return 0
    if command == "template":
        path, fmt = _resolve_output(args.file, args.format, "stock-template")
        path.write_bytes(session.template(fmt))
        print(f"Template written to {path}")
        return 0
    if command == "backup":
        session.save()
        args.file.write_text(session.repository.export_all(), encoding="utf-8")
        print(f"Backup written to {args.file}")
        return 0
    if command == "restore":
        session.repository.import_all(args.file.read_text(encoding="utf-8"))
        print(f"Restored data from {args.file}")
        return 0
    if command in ("categories", "locations"):
        registry = session.categories if command == "categories" else session.locations
        singular = "category" if command == "categories" else "location"
        if args.add:
            getattr(session, f"add_{singular}")(args.add)
        if args.remove:
            getattr(session, f"remove_{singular}")(args.remove)
        for name in registry:
            print(name)
        return 0
    raise AssertionError(f"Unhandled command {command}")


def main(argv: Optional[Sequence[str]] = None, *, settings: Optional[Settings] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    settings = settings or get_settings()
    if args.storage is not None:
        settings = settings.model_copy(update={"storage_backend": "json", "storage_path": args.storage})
    setup_logging(args.log_level or settings.log_level)
    session = StockTakeSession.from_settings(settings, user=args.user)
    try:
        return _run(session, args)
    except (StockTakeError, KeyError, OSError) as exc:
        message = exc.args[0] if isinstance(exc, KeyError) and exc.args else str(exc)
        print(f"error: {message}", file=sys.stderr)
        return 1


__all__ = ["build_parser", "main", "setup_logging"]


if __name__ == "__main__":
    sys.exit(main())
