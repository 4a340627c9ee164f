"""
Exporter: fetch, filter and format records into CSV or workbook payloads.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any, Callable

from records_interchange.core.models import ExportOptions, ExportResult
from records_interchange.core.vocabulary import (
    EXPORT_INFO_SHEET_NAME,
    PRIMARY_DATE_FIELDS,
    RecordType,
)
from records_interchange.observability.logger import get_logger
from records_interchange.observability.metrics import record_export
from records_interchange.orchestration.cancellation import ProgressCallback, report
from records_interchange.persistence import RecordStore
from records_interchange.persistence.store import matches, utc_now

from .csv_writer import CSV_CONTENT_TYPE, write_csv
from .formatter import RecordFormatter, ReferenceNames, format_date
from .template import SAMPLE_RECORDS, template_filename
from .workbook_writer import XLSX_CONTENT_TYPE, WorkbookWriter

logger = get_logger(__name__)


def is_active(record_type: RecordType, record: dict[str, Any]) -> bool:
    if record_type is RecordType.MEMBER:
        return record.get("status") in (None, "ACTIVE")
    if record_type is RecordType.ORGANIZATION:
        return record.get("isActive") is not False
    return True


def filter_records(records: list[dict[str, Any]], options: ExportOptions) -> list[dict[str, Any]]:
    """
    Apply export filters.

    The date range applies to the record type's primary date field; member
    and organization records are ranged by their creation date.
    """
    record_type = options.record_type
    selected = []
    for record in records:
        if not options.include_inactive and not is_active(record_type, record):
            continue
        if options.filters and not matches(record, options.filters):
            continue
        if options.date_range is not None:
            date_field = PRIMARY_DATE_FIELDS[record_type]
            value = record.get(date_field) if date_field else record.get("created_at")
            if isinstance(value, datetime):
                value = value.date()
            if not options.date_range.contains(value):
                continue
        selected.append(record)
    return selected


class Exporter:
    """Produces export files and statistics from a RecordStore."""

    def __init__(self, store: RecordStore, clock: Callable[[], datetime] = utc_now):
        self.store = store
        self.clock = clock

    async def format_type(
        self, record_type: RecordType, records: list[dict[str, Any]]
    ) -> tuple[RecordFormatter, list[list[Any]]]:
        """Hydrate references and format records of one type."""
        formatter = RecordFormatter(record_type, await ReferenceNames.load(self.store, record_type))
        return formatter, formatter.format_records(records)

    def default_filename(self, record_type: RecordType, file_format: str) -> str:
        extension = "xlsx" if file_format == "excel" else "csv"
        return f"{record_type.label}_{self.clock():%Y%m%d}.{extension}"

    def export_info(self, options: ExportOptions, record_count: int) -> list[tuple[str, Any]]:
        date_range = options.date_range
        if date_range is None or (date_range.start is None and date_range.end is None):
            range_text = "전체"
        else:
            start = format_date(date_range.start) if date_range.start else ""
            end = format_date(date_range.end) if date_range.end else ""
            range_text = f"{start} ~ {end}"
        filters_text = ", ".join(f"{key}={value}" for key, value in options.filters.items()) or "없음"
        return [
            ("생성일시", self.clock().strftime("%Y-%m-%d %H:%M:%S")),
            ("데이터종류", options.record_type.label),
            ("레코드수", record_count),
            ("기간", range_text),
            ("필터", filters_text),
            ("비활성포함", "예" if options.include_inactive else "아니오"),
        ]

    async def export(self, options: ExportOptions, progress: ProgressCallback | None = None) -> ExportResult:
        """
        Export one record type.

        Args:
            options: Record type, format, filters and filename
            progress: Called at 0, 30, 70 and 100 as fetching, formatting and encoding finish

        Returns:
            ExportResult with the encoded payload
        """
        record_type = options.record_type
        report(progress, 0, f"Fetching {record_type.label}")
        records = filter_records(await self.store.fetch_records(record_type), options)
        report(progress, 30, f"Formatting {len(records)} records")
        formatter, rows = await self.format_type(record_type, records)
        report(progress, 70, f"Writing {options.format} file")

        if options.format == "csv":
            payload = write_csv(formatter.header, rows)
            content_type = CSV_CONTENT_TYPE
        else:
            writer = WorkbookWriter()
            writer.add_records_sheet(record_type.label, formatter.columns, rows)
            writer.add_key_value_sheet(EXPORT_INFO_SHEET_NAME, self.export_info(options, len(rows)))
            payload = writer.to_bytes()
            content_type = XLSX_CONTENT_TYPE

        filename = options.filename or self.default_filename(record_type, options.format)
        record_export("export", options.format, len(payload), {record_type.value: len(rows)})
        report(progress, 100, f"Exported {len(rows)} records")
        logger.info(
            f"Exported {len(rows)} {record_type.value} records",
            extra={"record_type": record_type.value, "format": options.format, "export_filename": filename},
        )
        return ExportResult(
            success=True,
            filename=filename,
            payload=payload,
            content_type=content_type,
            record_count=len(rows),
        )

    def generate_template(self, record_type: RecordType) -> ExportResult:
        """Workbook with the canonical headers and one sample row."""
        formatter = RecordFormatter(record_type)
        writer = WorkbookWriter()
        writer.add_records_sheet(record_type.label, formatter.columns, [formatter.format_record(SAMPLE_RECORDS[record_type])])
        payload = writer.to_bytes()
        record_export("template", "excel", len(payload), {})
        return ExportResult(
            success=True,
            filename=template_filename(record_type),
            payload=payload,
            content_type=XLSX_CONTENT_TYPE,
            record_count=1,
        )

    async def statistics(self) -> dict[str, Any]:
        """
        Store-wide statistics.

        Returns:
            Dictionary with:
            - counts: records per record type value
            - total_records: sum of counts
            - active_members: members with ACTIVE status
            - contribution_total / expense_total: summed amounts
            - attendance_rate: percentage of attendance records marked present
        """
        counts = {record_type.value: await self.store.count_records(record_type) for record_type in RecordType}

        members = await self.store.fetch_records(RecordType.MEMBER)
        contributions = await self.store.fetch_records(RecordType.CONTRIBUTION)
        expenses = await self.store.fetch_records(RecordType.EXPENSE_REPORT)
        attendances = await self.store.fetch_records(RecordType.ATTENDANCE)

        present = sum(1 for record in attendances if record.get("isPresent") is True)
        return {
            "counts": counts,
            "total_records": sum(counts.values()),
            "active_members": sum(1 for record in members if record.get("status") == "ACTIVE"),
            "contribution_total": sum((Decimal(record.get("amount") or 0) for record in contributions), Decimal(0)),
            "expense_total": sum((Decimal(record.get("amount") or 0) for record in expenses), Decimal(0)),
            "attendance_rate": round(present * 100 / len(attendances), 1) if attendances else 0.0,
        }
