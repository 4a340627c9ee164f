"""
Command-line interface for bulk interchange against the Postgres record store.

Usage:
    records-interchange validate --type <record_type> --input <file_path>
    records-interchange import --type <record_type> --input <file_path> [options]
    records-interchange export --type <record_type> [--format csv] [--start YYYY-MM-DD] [--end YYYY-MM-DD]
    records-interchange backup [--since <iso_datetime>] [--type <record_type>]
    records-interchange restore --input <bundle.xlsx> [--type <record_type> ...]
    records-interchange preview --input <bundle.xlsx>
    records-interchange template --type <record_type>
    records-interchange stats
"""

import argparse
import asyncio
import json
import sys
from contextlib import asynccontextmanager
from datetime import date, datetime
from pathlib import Path

from records_interchange.config.settings import load_settings
from records_interchange.core.models import (
    BackupOptions,
    DateRange,
    DuplicateMode,
    ExportOptions,
    ExportResult,
    ImportOptions,
    ImportResult,
    RestoreOptions,
)
from records_interchange.core.vocabulary import RecordType
from records_interchange.observability.logger import get_logger
from records_interchange.observability.metrics import start_metrics_server
from records_interchange.persistence import InMemoryRecordStore
from records_interchange.persistence.connection import DatabaseConnectionPool
from records_interchange.persistence.postgres_store import PostgresRecordStore
from records_interchange.service import InterchangeService

logger = get_logger(__name__)


@asynccontextmanager
async def open_service(args):
    """Open the pool, make sure the tables exist and yield a service over them."""
    settings = load_settings(args.env_file)
    pool = DatabaseConnectionPool(
        host=args.db_host,
        port=args.db_port,
        database=args.db_name,
        user=args.db_user,
        password=args.db_password,
    )
    await pool.open()
    try:
        store = PostgresRecordStore(pool)
        await store.ensure_schema()
        yield InterchangeService(store, settings)
    finally:
        await pool.close()


def read_input(path_arg: str) -> tuple[bytes, str]:
    input_path = Path(path_arg)
    if not input_path.exists():
        logger.error(f"Input file not found: {path_arg}")
        sys.exit(1)
    return input_path.read_bytes(), input_path.name


def write_output(result: ExportResult, output_dir: str) -> Path:
    output_path = Path(output_dir) / result.filename
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_bytes(result.payload)
    return output_path


def print_progress(percent: int, message: str) -> None:
    print(f"  [{percent:>3}%] {message}")


def print_import_result(title: str, result: ImportResult, limit: int = 20) -> None:
    summary = result.summary
    print(f"\n{'=' * 60}")
    print(title)
    print(f"{'=' * 60}\n")
    print(f"  Total rows:       {summary.total}")
    print(f"  Successful:       {summary.successful}")
    print(f"  Failed:           {summary.failed}")
    print(f"  Created:          {summary.created}")
    print(f"  Updated:          {summary.updated}")
    print(f"  Skipped:          {summary.skipped}")
    print(f"  Unprocessed:      {summary.unprocessed}")
    if result.cancelled:
        print("  Cancelled:        yes")

    if result.errors:
        print(f"\nErrors (first {min(limit, len(result.errors))} of {len(result.errors)}):")
        for error in result.errors[:limit]:
            location = f"{error.sheet}:{error.row}" if error.sheet else f"row {error.row}"
            field = f" [{error.field}]" if error.field else ""
            print(f"  {location}{field} {error.message}")
    print(f"\n{'=' * 60}\n")


def fail(message: str) -> None:
    print(f"\nError: {message}")
    sys.exit(1)


async def upload(service: InterchangeService, args) -> list[dict]:
    buffer, filename = read_input(args.input)
    uploaded = await service.upload_file(buffer, filename, args.type)
    if not uploaded.success:
        fail(uploaded.error)
    for error in uploaded.errors:
        logger.warning(f"Row {error.row} [{error.field}] {error.message}")
    logger.info(f"Read {len(uploaded.rows)} rows from {filename}")
    return uploaded.rows


async def validate_command(args) -> None:
    """Validate a file without writing anything."""
    async with open_service(args) as service:
        rows = await upload(service, args)
        result = await service.validate_data(rows, args.type, ImportOptions(continue_on_error=True))
    print_import_result("VALIDATION RESULT", result)
    if not result.success:
        sys.exit(1)


async def import_command(args) -> None:
    """Validate and persist a file of one record type."""
    async with open_service(args) as service:
        rows = await upload(service, args)
        options = ImportOptions(
            continue_on_error=args.continue_on_error,
            duplicate_mode=DuplicateMode(args.duplicate_mode),
            validate_only=args.dry_run,
            batch_size=args.batch_size or service.settings.batch_size,
            max_concurrency=service.settings.max_concurrency,
        )
        result = await service.import_data(rows, args.type, options, progress=print_progress)

    if result.error and not result.errors:
        fail(result.error)
    print_import_result("DRY RUN RESULT" if args.dry_run else "IMPORT COMPLETE", result)
    if not result.success:
        sys.exit(1)


async def export_command(args) -> None:
    """Export one record type as xlsx or csv."""
    date_range = None
    if args.start or args.end:
        date_range = DateRange(
            start=date.fromisoformat(args.start) if args.start else None,
            end=date.fromisoformat(args.end) if args.end else None,
        )
    options = ExportOptions(
        record_type=RecordType.parse(args.type),
        format=args.format,
        date_range=date_range,
        include_inactive=not args.active_only,
    )
    async with open_service(args) as service:
        result = await service.export_data(options)
    if not result.success:
        fail(result.error)
    path = write_output(result, args.output_dir)
    print(f"\nExported {result.record_count} records to {path}")


async def backup_command(args) -> None:
    """Create a full, incremental or single-type backup bundle."""
    async with open_service(args) as service:
        if args.type:
            result = await service.create_data_type_backup(args.type, progress=print_progress)
        else:
            options = BackupOptions(
                watermark=datetime.fromisoformat(args.since) if args.since else None,
                continue_on_error=args.continue_on_error,
            )
            result = await service.create_backup(options, progress=print_progress)

    if not result.success:
        fail(result.error)
    path = write_output(result, args.output_dir)

    print(f"\n{'=' * 60}")
    print("BACKUP COMPLETE")
    print(f"{'=' * 60}\n")
    for record_type, count in result.record_counts.items():
        print(f"  {record_type:<20} {count:>8}")
    print(f"  {'total':<20} {result.record_count:>8}")
    for failure in result.errors:
        print(f"  FAILED: {failure}")
    print(f"\nWritten to {path}\n")


async def restore_command(args) -> None:
    """Restore a backup bundle, optionally only some record types."""
    buffer, filename = read_input(args.input)
    options = RestoreOptions(
        record_types=[RecordType.parse(value) for value in args.type] if args.type else None,
        continue_on_error=not args.fail_fast,
        duplicate_mode=DuplicateMode(args.duplicate_mode),
    )
    async with open_service(args) as service:
        result = await service.restore_backup(buffer, filename, options, progress=print_progress)

    if result.error and not result.sheets:
        fail(result.error)
    for sheet in result.sheets:
        if sheet.skipped:
            print(f"  Skipped sheet '{sheet.sheet_name}' ({sheet.reason})")
    print_import_result("RESTORE COMPLETE", result)
    if not result.success:
        sys.exit(1)


async def preview_command(args) -> None:
    """Dry-run a restore and print per-sheet counts."""
    buffer, filename = read_input(args.input)
    async with open_service(args) as service:
        preview = await service.preview_restore(buffer, filename)

    if preview.error and not preview.sheets:
        fail(preview.error)
    print(f"\n{'Sheet':<20} {'Type':<16} {'Rows':>6} {'Valid':>6} {'Invalid':>8}")
    print(f"{'-' * 60}")
    for sheet in preview.sheets:
        if sheet.skipped:
            print(f"{sheet.sheet_name:<20} {'(' + sheet.reason + ')':<16} {sheet.record_count:>6}")
            continue
        print(f"{sheet.sheet_name:<20} {sheet.record_type:<16} {sheet.record_count:>6} {sheet.valid:>6} {sheet.invalid:>8}")
    totals = preview.totals
    print(f"{'-' * 60}")
    print(f"{'total':<37} {totals.records:>6} {totals.valid:>6} {totals.invalid:>8}\n")


async def template_command(args) -> None:
    """Write an import template; no database needed."""
    service = InterchangeService(InMemoryRecordStore(), load_settings(args.env_file))
    result = await service.generate_template(args.type)
    if not result.success:
        fail(result.error)
    print(f"\nTemplate written to {write_output(result, args.output_dir)}")


async def stats_command(args) -> None:
    """Print store-wide statistics as JSON."""
    async with open_service(args) as service:
        stats = await service.get_data_stats()
        metadata = await service.get_backup_metadata()
    stats["estimated_backup_size"] = metadata.estimated_size
    stats["last_updated"] = metadata.last_updated
    print(json.dumps(stats, indent=2, ensure_ascii=False, default=str))


COMMANDS = {
    "validate": validate_command,
    "import": import_command,
    "export": export_command,
    "backup": backup_command,
    "restore": restore_command,
    "preview": preview_command,
    "template": template_command,
    "stats": stats_command,
}


def add_database_arguments(parser: argparse.ArgumentParser) -> None:
    """Connection arguments; omitted values fall back to the DB_* environment variables."""
    parser.add_argument("--db-host", default=None, help="Database host (default: $DB_HOST or localhost)")
    parser.add_argument("--db-port", type=int, default=None, help="Database port (default: $DB_PORT or 5432)")
    parser.add_argument("--db-name", default=None, help="Database name (default: $DB_NAME or congregation)")
    parser.add_argument("--db-user", default=None, help="Database user (default: $DB_USER or interchange)")
    parser.add_argument("--db-password", default=None, help="Database password (default: $DB_PASSWORD)")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="records-interchange",
        description="Bulk import, export, backup and restore of congregation records",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Check a member spreadsheet without writing anything
  records-interchange validate --type member --input members.xlsx

  # Import contributions, updating records that already exist
  records-interchange import --type contribution --input offerings.csv \\
      --continue-on-error --duplicate-mode update-existing

  # Incremental backup of everything changed since the start of the year
  records-interchange backup --since 2025-01-01T00:00:00+09:00 --output-dir backups/

  # Restore only the member and organization sheets of a bundle
  records-interchange restore --input backup.xlsx --type member --type organization
        """,
    )
    parser.add_argument("--env-file", default=None, help="Path to a .env file with INTERCHANGE_* settings")
    parser.add_argument(
        "--metrics-port",
        type=int,
        default=None,
        help="Expose Prometheus metrics on this port while the command runs",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")
    record_types = [record_type.value for record_type in RecordType]
    duplicate_modes = [mode.value for mode in DuplicateMode]

    validate_parser = subparsers.add_parser("validate", help="Validate a file without importing it")
    validate_parser.add_argument("--type", required=True, help=f"Record type ({', '.join(record_types)})")
    validate_parser.add_argument("--input", required=True, help="Path to a .csv or .xlsx file")

    import_parser = subparsers.add_parser("import", help="Import a file of one record type")
    import_parser.add_argument("--type", required=True, help=f"Record type ({', '.join(record_types)})")
    import_parser.add_argument("--input", required=True, help="Path to a .csv or .xlsx file")
    import_parser.add_argument(
        "--continue-on-error",
        action="store_true",
        help="Import the valid rows even when other rows fail",
    )
    import_parser.add_argument(
        "--duplicate-mode",
        default=DuplicateMode.CREATE_ONLY.value,
        choices=duplicate_modes,
        help="How to treat rows matching existing records (default: create-only)",
    )
    import_parser.add_argument("--batch-size", type=int, default=None, help="Rows per persistence batch")
    import_parser.add_argument("--dry-run", action="store_true", help="Validate only, write nothing")

    export_parser = subparsers.add_parser("export", help="Export one record type")
    export_parser.add_argument("--type", required=True, help=f"Record type ({', '.join(record_types)})")
    export_parser.add_argument("--format", default="excel", choices=["excel", "csv"], help="Output format")
    export_parser.add_argument("--start", default=None, help="First date to include (YYYY-MM-DD)")
    export_parser.add_argument("--end", default=None, help="Last date to include (YYYY-MM-DD)")
    export_parser.add_argument("--active-only", action="store_true", help="Leave out inactive records")
    export_parser.add_argument("--output-dir", default=".", help="Directory to write the file to")

    backup_parser = subparsers.add_parser("backup", help="Create a backup bundle")
    backup_parser.add_argument("--since", default=None, help="Incremental watermark (ISO 8601 datetime)")
    backup_parser.add_argument("--type", default=None, help="Back up a single record type")
    backup_parser.add_argument(
        "--continue-on-error",
        action="store_true",
        help="Leave failing record types out instead of aborting",
    )
    backup_parser.add_argument("--output-dir", default=".", help="Directory to write the bundle to")

    restore_parser = subparsers.add_parser("restore", help="Restore a backup bundle")
    restore_parser.add_argument("--input", required=True, help="Path to the bundle workbook")
    restore_parser.add_argument(
        "--type",
        action="append",
        default=None,
        help="Restore only this record type (repeatable)",
    )
    restore_parser.add_argument(
        "--duplicate-mode",
        default=DuplicateMode.UPDATE_EXISTING.value,
        choices=duplicate_modes,
        help="How to treat rows matching existing records (default: update-existing)",
    )
    restore_parser.add_argument("--fail-fast", action="store_true", help="Stop at the first invalid row")

    preview_parser = subparsers.add_parser("preview", help="Preview what a restore would do")
    preview_parser.add_argument("--input", required=True, help="Path to the bundle workbook")

    template_parser = subparsers.add_parser("template", help="Write an import template")
    template_parser.add_argument("--type", required=True, help=f"Record type ({', '.join(record_types)})")
    template_parser.add_argument("--output-dir", default=".", help="Directory to write the template to")

    subparsers.add_parser("stats", help="Show store statistics")

    for name, subparser in subparsers.choices.items():
        if name != "template":
            add_database_arguments(subparser)

    return parser


def main(argv: list[str] | None = None) -> None:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(1)

    if args.metrics_port:
        start_metrics_server(args.metrics_port)

    try:
        asyncio.run(COMMANDS[args.command](args))
    except ValueError as e:
        logger.error(f"Invalid argument: {e}")
        fail(str(e))
    except Exception as e:
        logger.error(f"Error running {args.command}: {e}", exc_info=True)
        fail(str(e))


if __name__ == "__main__":
    main()
