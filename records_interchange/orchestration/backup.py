"""
BackupOrchestrator: fan export out over every enabled record type.

States: start → fetch and format each enabled type → compose bundle → write → done.
A bundle is one workbook with a sheet per included record type and a
trailing summary sheet.
"""

from datetime import datetime
from typing import Any, Callable

from records_interchange.core.errors import BackupError, OperationCancelled
from records_interchange.core.models import BackupMetadata, BackupOptions, BackupResult
from records_interchange.core.vocabulary import SUMMARY_SHEET_NAME, RecordType
from records_interchange.export import XLSX_CONTENT_TYPE, Exporter, WorkbookWriter
from records_interchange.observability.logger import get_logger, log_operation
from records_interchange.observability.metrics import record_export, record_operation
from records_interchange.persistence import RecordStore, as_utc
from records_interchange.persistence.store import utc_now

from .cancellation import CancellationToken, ProgressCallback, report

logger = get_logger(__name__)

BACKUP_PREFIX = "교회데이터"
BYTES_PER_RECORD_ESTIMATE = 200
MIN_ESTIMATED_SIZE = 1024

INCLUDE_FLAGS: dict[RecordType, str] = {
    RecordType.MEMBER: "include_members",
    RecordType.CONTRIBUTION: "include_contributions",
    RecordType.ATTENDANCE: "include_attendances",
    RecordType.VISITATION: "include_visitations",
    RecordType.EXPENSE_REPORT: "include_expense_reports",
    RecordType.ORGANIZATION: "include_organizations",
}


class BackupOrchestrator:
    """
    Creates full, incremental and single-type backups.

    continue_on_error=False aborts on the first record type that cannot be
    fetched or formatted; True leaves that type out and lists it in
    failed_tables.
    """

    def __init__(self, store: RecordStore, clock: Callable[[], datetime] = utc_now):
        """
        Initialize backup orchestrator.

        Args:
            store: Record store to back up
            clock: Timestamp source for filenames and the summary sheet
        """
        self.store = store
        self.clock = clock
        self.exporter = Exporter(store, clock)

    def backup_filename(self, watermark: datetime | None = None) -> str:
        now = self.clock()
        if watermark is None:
            return f"{BACKUP_PREFIX}_전체백업_{now:%Y%m%d}_{now:%H%M%S}.xlsx"
        return f"{BACKUP_PREFIX}_증분백업_{watermark:%Y%m%d}_{now:%Y%m%d}.xlsx"

    def summary_pairs(
        self, record_counts: dict[RecordType, int], watermark: datetime | None
    ) -> list[tuple[str, Any]]:
        pairs: list[tuple[str, Any]] = [
            ("생성일시", self.clock().strftime("%Y-%m-%d %H:%M:%S")),
            ("백업유형", "증분백업" if watermark is not None else "전체백업"),
            ("기준시각", watermark.strftime("%Y-%m-%d %H:%M:%S") if watermark is not None else "-"),
        ]
        pairs.extend((record_type.label, count) for record_type, count in record_counts.items())
        pairs.append(("총 레코드수", sum(record_counts.values())))
        return pairs

    async def create_backup(
        self,
        options: BackupOptions | None = None,
        cancellation: CancellationToken | None = None,
        progress: ProgressCallback | None = None,
    ) -> BackupResult:
        """
        Create a full (no watermark) or incremental backup bundle.

        Args:
            options: Record types to include, watermark, failure handling, filename
            cancellation: Token checked before each record type
            progress: Called at 5, 10, once per type (up to 70), 80 and 100

        Returns:
            BackupResult with the workbook payload
        """
        options = options or BackupOptions()
        record_types = options.enabled_types()
        watermark = as_utc(options.watermark) if options.watermark is not None else None
        mode = "incremental" if watermark is not None else "full"

        with log_operation(f"Creating {mode} backup", logger=logger, record_types=len(record_types)):
            report(progress, 5, "Starting backup")
            if not record_types:
                record_operation("backup", "failed")
                return BackupResult(success=False, error="No record types selected for backup")

            report(progress, 10, "Fetching records")
            try:
                formatted, failed_tables, errors = await self._collect(
                    record_types, watermark, options.continue_on_error, cancellation, progress
                )
            except OperationCancelled as e:
                logger.info(f"Backup cancelled: {e.reason}")
                record_operation("backup", "cancelled")
                return BackupResult(success=False, cancelled=True, error=e.reason)
            except BackupError as e:
                logger.error(str(e), exc_info=True, extra={"record_type": e.record_type})
                record_operation("backup", "failed")
                return BackupResult(success=False, error=str(e), failed_tables=[e.record_type], errors=[str(e)])

            if not formatted:
                record_operation("backup", "failed")
                return BackupResult(
                    success=False,
                    error="Every selected record type failed",
                    failed_tables=failed_tables,
                    errors=errors,
                )

            report(progress, 80, "Composing backup file")
            writer = WorkbookWriter()
            record_counts: dict[RecordType, int] = {}
            for record_type, formatter, rows in formatted:
                writer.add_records_sheet(record_type.label, formatter.columns, rows)
                record_counts[record_type] = len(rows)
            writer.add_key_value_sheet(SUMMARY_SHEET_NAME, self.summary_pairs(record_counts, watermark))
            payload = writer.to_bytes()

            counts = {record_type.value: count for record_type, count in record_counts.items()}
            record_export("backup", "excel", len(payload), counts)
            record_operation("backup", "success")
            report(progress, 100, "Backup complete")

            return BackupResult(
                success=True,
                filename=options.filename or self.backup_filename(watermark),
                payload=payload,
                content_type=XLSX_CONTENT_TYPE,
                record_count=sum(counts.values()),
                included_tables=list(counts),
                record_counts=counts,
                failed_tables=failed_tables,
                errors=errors,
            )

    async def create_data_type_backup(
        self,
        record_type: RecordType,
        cancellation: CancellationToken | None = None,
        progress: ProgressCallback | None = None,
    ) -> BackupResult:
        """Bundle holding a single record type (plus the summary sheet)."""
        flags = {flag: flag == INCLUDE_FLAGS[record_type] for flag in INCLUDE_FLAGS.values()}
        options = BackupOptions(**flags, filename=f"{record_type.label}_백업_{self.clock():%Y%m%d}.xlsx")
        return await self.create_backup(options, cancellation, progress)

    async def get_backup_metadata(self) -> BackupMetadata:
        """
        Describe what a full backup would contain.

        Returns:
            BackupMetadata with per-type counts, the latest update time and an
            estimated payload size of max(records * 200, 1024) bytes
        """
        record_counts: dict[str, int] = {}
        last_updated: datetime | None = None
        for record_type in RecordType:
            records = await self.store.fetch_records(record_type)
            record_counts[record_type.value] = len(records)
            for record in records:
                updated_at = record.get("updated_at")
                if updated_at is not None and (last_updated is None or updated_at > last_updated):
                    last_updated = updated_at

        total = sum(record_counts.values())
        return BackupMetadata(
            total_records=total,
            record_counts=record_counts,
            last_updated=last_updated,
            estimated_size=max(total * BYTES_PER_RECORD_ESTIMATE, MIN_ESTIMATED_SIZE),
        )

    async def _collect(
        self,
        record_types: list[RecordType],
        watermark: datetime | None,
        continue_on_error: bool,
        cancellation: CancellationToken | None,
        progress: ProgressCallback | None,
    ) -> tuple[list[tuple[RecordType, Any, list[list[Any]]]], list[str], list[str]]:
        """
        Fetch and format each record type in turn.

        Returns:
            Tuple of (formatted sheets, failed record type values, failure messages)

        Raises:
            OperationCancelled: If the token fires between record types
            BackupError: On the first failing type when continue_on_error is off
        """
        formatted = []
        failed_tables: list[str] = []
        errors: list[str] = []

        for idx, record_type in enumerate(record_types):
            if cancellation is not None:
                cancellation.raise_if_cancelled()

            count = 0
            try:
                records = await self.store.fetch_records(record_type, modified_after=watermark)
                formatter, rows = await self.exporter.format_type(record_type, records)
            except Exception as e:
                failure = BackupError(record_type.value, str(e))
                if not continue_on_error:
                    raise failure from e
                logger.warning(
                    f"{failure}; leaving it out of the bundle",
                    exc_info=True,
                    extra={"record_type": record_type.value},
                )
                failed_tables.append(record_type.value)
                errors.append(str(failure))
            else:
                formatted.append((record_type, formatter, rows))
                count = len(rows)

            report(progress, 10 + 60 * (idx + 1) // len(record_types), f"{record_type.label}: {count} records")

        return formatted, failed_tables, errors
