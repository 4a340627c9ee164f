"""
InterchangeService: the facade over ingest, import, export, backup and restore.

Every operation returns a result object. Ingestion and operational failures
are logged with their traceback and surface as success=False with a readable
error message; they never propagate to the caller.
"""

from datetime import date, datetime
from typing import Any, Callable

from records_interchange.batch import ImportPipeline
from records_interchange.config.settings import InterchangeSettings
from records_interchange.core.errors import IngestionError
from records_interchange.core.models import (
    BackupMetadata,
    BackupOptions,
    BackupResult,
    BackupValidation,
    ExportOptions,
    ExportResult,
    FileUploadResult,
    ImportOptions,
    ImportResult,
    RestoreOptions,
    RestorePreview,
    RestoreResult,
)
from records_interchange.core.rules import SchemaValidator
from records_interchange.core.vocabulary import RecordType
from records_interchange.export import Exporter
from records_interchange.ingest import FileIngestor
from records_interchange.observability.logger import get_logger
from records_interchange.observability.metrics import (
    operation_duration_seconds,
    record_operation,
    track_duration,
)
from records_interchange.orchestration.backup import BackupOrchestrator
from records_interchange.orchestration.cancellation import CancellationToken, ProgressCallback
from records_interchange.orchestration.restore import RestoreOrchestrator
from records_interchange.persistence import RecordStore
from records_interchange.persistence.store import utc_now

logger = get_logger(__name__)


class InterchangeService:
    """
    Bulk data interchange for one record store.

    Record types may be given as RecordType members, their values
    ("member") or their labels ("교인").
    """

    def __init__(
        self,
        store: RecordStore,
        settings: InterchangeSettings | None = None,
        today: Callable[[], date] = date.today,
        clock: Callable[[], datetime] = utc_now,
    ):
        """
        Initialize interchange service.

        Args:
            store: Record store every operation reads from and writes to
            settings: Ceilings, batching and schema location (defaults when omitted)
            today: Reference date provider for age and not-future checks
            clock: Timestamp source for filenames and metadata sheets
        """
        self.store = store
        self.settings = settings or InterchangeSettings()
        self.ingestor = FileIngestor(
            max_file_size=self.settings.max_file_size,
            max_rows=self.settings.max_rows,
        )
        self.schema_validator = SchemaValidator(schema_dir=self.settings.schema_dir, today=today)
        self.pipeline = ImportPipeline(store, self.schema_validator, today)
        self.exporter = Exporter(store, clock)
        self.backups = BackupOrchestrator(store, clock)
        self.restores = RestoreOrchestrator(store, self.ingestor, self.schema_validator, today)

    def default_import_options(self) -> ImportOptions:
        return ImportOptions(
            batch_size=self.settings.batch_size,
            max_concurrency=self.settings.max_concurrency,
        )

    async def upload_file(
        self,
        buffer: bytes,
        filename: str,
        record_type: RecordType | str,
        progress: ProgressCallback | None = None,
    ) -> FileUploadResult:
        """
        Parse an uploaded CSV or workbook into header-keyed rows.

        Returns:
            FileUploadResult (success=False with error on ingestion failure)
        """
        try:
            return self.ingestor.ingest(buffer, filename, RecordType.parse(record_type), progress)
        except (IngestionError, ValueError) as e:
            logger.warning(f"Upload rejected: {e}", extra={"upload_filename": filename})
            record_operation("upload", "failed")
            return FileUploadResult(success=False, error=str(e))

    async def validate_data(
        self,
        rows: list[dict[str, Any]],
        record_type: RecordType | str,
        options: ImportOptions | None = None,
        progress: ProgressCallback | None = None,
    ) -> ImportResult:
        """Validate rows without persisting anything."""
        try:
            return await self.pipeline.validate(
                rows,
                RecordType.parse(record_type),
                options or self.default_import_options(),
                progress=progress,
            )
        except Exception as e:
            logger.error(f"Validation failed: {e}", exc_info=True)
            record_operation("validate", "failed")
            return ImportResult.failure(str(e))

    async def import_data(
        self,
        rows: list[dict[str, Any]],
        record_type: RecordType | str,
        options: ImportOptions | None = None,
        cancellation: CancellationToken | None = None,
        progress: ProgressCallback | None = None,
    ) -> ImportResult:
        """
        Validate and persist rows of one record type.

        Args:
            rows: Header-keyed rows in file order (as returned by upload_file)
            record_type: Target record type
            options: Import options (settings batch size and concurrency by default)
            cancellation: Token checked between batches
            progress: Per-batch progress callback

        Returns:
            ImportResult
        """
        try:
            with track_duration(operation_duration_seconds, operation="import"):
                return await self.pipeline.run(
                    rows,
                    RecordType.parse(record_type),
                    options or self.default_import_options(),
                    cancellation=cancellation,
                    progress=progress,
                )
        except Exception as e:
            logger.error(f"Import failed: {e}", exc_info=True)
            record_operation("import", "failed")
            return ImportResult.failure(str(e))

    async def export_data(self, options: ExportOptions, progress: ProgressCallback | None = None) -> ExportResult:
        """Export one record type as a workbook or CSV file."""
        try:
            with track_duration(operation_duration_seconds, operation="export"):
                return await self.exporter.export(options, progress)
        except Exception as e:
            logger.error(f"Export failed: {e}", exc_info=True, extra={"record_type": options.record_type.value})
            record_operation("export", "failed")
            return ExportResult(success=False, error=str(e))

    async def create_backup(
        self,
        options: BackupOptions | None = None,
        cancellation: CancellationToken | None = None,
        progress: ProgressCallback | None = None,
    ) -> BackupResult:
        """Full backup, or incremental when options.watermark is set."""
        try:
            with track_duration(operation_duration_seconds, operation="backup"):
                return await self.backups.create_backup(options, cancellation, progress)
        except Exception as e:
            logger.error(f"Backup failed: {e}", exc_info=True)
            record_operation("backup", "failed")
            return BackupResult(success=False, error=str(e))

    async def create_data_type_backup(
        self,
        record_type: RecordType | str,
        cancellation: CancellationToken | None = None,
        progress: ProgressCallback | None = None,
    ) -> BackupResult:
        try:
            return await self.backups.create_data_type_backup(
                RecordType.parse(record_type), cancellation, progress
            )
        except Exception as e:
            logger.error(f"Backup failed: {e}", exc_info=True)
            record_operation("backup", "failed")
            return BackupResult(success=False, error=str(e))

    async def get_backup_metadata(self) -> BackupMetadata:
        return await self.backups.get_backup_metadata()

    async def restore_backup(
        self,
        buffer: bytes,
        filename: str,
        options: RestoreOptions | None = None,
        cancellation: CancellationToken | None = None,
        progress: ProgressCallback | None = None,
    ) -> RestoreResult:
        """
        Restore every recognized sheet of a bundle (or options.record_types only).

        Returns:
            RestoreResult with aggregate counts and per-sheet reports
        """
        if options is None:
            options = RestoreOptions(batch_size=self.settings.batch_size)
        try:
            with track_duration(operation_duration_seconds, operation="restore"):
                return await self.restores.restore(buffer, filename, options, cancellation, progress)
        except Exception as e:
            logger.error(f"Restore failed: {e}", exc_info=True, extra={"bundle": filename})
            record_operation("restore", "failed")
            return RestoreResult(success=False, error=str(e))

    async def restore_selected_data(
        self,
        buffer: bytes,
        filename: str,
        record_types: list[RecordType | str],
        cancellation: CancellationToken | None = None,
        progress: ProgressCallback | None = None,
    ) -> RestoreResult:
        """Restore only the sheets of the given record types."""
        try:
            selected = [RecordType.parse(record_type) for record_type in record_types]
        except ValueError as e:
            return RestoreResult(success=False, error=str(e))
        options = RestoreOptions(record_types=selected, batch_size=self.settings.batch_size)
        return await self.restore_backup(buffer, filename, options, cancellation, progress)

    async def preview_restore(
        self,
        buffer: bytes,
        filename: str,
        options: RestoreOptions | None = None,
        progress: ProgressCallback | None = None,
    ) -> RestorePreview:
        """Per-sheet counts and errors a restore would see; nothing is persisted."""
        try:
            return await self.restores.preview(buffer, filename, options, progress)
        except Exception as e:
            logger.error(f"Restore preview failed: {e}", exc_info=True, extra={"bundle": filename})
            return RestorePreview(success=False, error=str(e))

    async def validate_backup_file(self, buffer: bytes, filename: str) -> BackupValidation:
        return self.restores.validate_backup_file(buffer, filename)

    async def generate_template(self, record_type: RecordType | str) -> ExportResult:
        """Blank workbook with the canonical headers and one sample row."""
        try:
            return self.exporter.generate_template(RecordType.parse(record_type))
        except ValueError as e:
            return ExportResult(success=False, error=str(e))

    async def get_data_stats(self) -> dict[str, Any]:
        return await self.exporter.statistics()
