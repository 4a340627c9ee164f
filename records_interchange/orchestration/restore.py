"""
RestoreOrchestrator: fan import in over every recognized sheet of a bundle.

States: parse bundle → classify sheets → per sheet (ingest → normalize →
validate → persist) → aggregate → done. Sheets run in dependency order and
each sheet's accepted rows are staged into the validation context of the
sheets after it.
"""

from dataclasses import dataclass
from datetime import date
from typing import Callable

from records_interchange.batch import ValidationOutcome, merge_results, validate_rows
from records_interchange.core.errors import EmptyFile, IngestionError, RestoreError
from records_interchange.core.models import (
    BackupValidation,
    ImportOptions,
    ImportRowError,
    ImportSummary,
    PreviewTotals,
    RestoreOptions,
    RestorePreview,
    RestoreResult,
    SheetReport,
    ValidationContext,
)
from records_interchange.core.rules import SchemaValidator
from records_interchange.core.vocabulary import (
    RESTORE_ORDER,
    RecordType,
    SheetKind,
    alias_table,
    classify_sheet,
    header_key,
)
from records_interchange.ingest import FileIngestor, SheetTable, WorkbookReader
from records_interchange.observability.logger import get_logger, log_operation
from records_interchange.observability.metrics import (
    increment_counter,
    record_import_summary,
    record_operation,
    restore_sheets_skipped_total,
)
from records_interchange.persistence import BatchPersister, RecordStore, load_validation_context
from records_interchange.utils.coercion import is_blank

from .cancellation import CancellationToken, ProgressCallback, is_cancelled, report

logger = get_logger(__name__)


def data_row_count(table: SheetTable) -> int:
    """Non-empty rows below the header row."""
    return sum(1 for row in table.rows[1:] if not all(is_blank(value) for value in row))


@dataclass
class PlannedSheet:
    table: SheetTable
    record_type: RecordType


@dataclass
class SheetValidation:
    """Shared per-sheet outcome of ingest + normalize + validate."""

    report: SheetReport
    outcome: ValidationOutcome
    sheet_error: bool = False


class RestoreOrchestrator:
    """
    Restores, previews and checks backup bundles.

    Preview and restore both go through validate_sheet(), so a preview's
    per-sheet valid/invalid counts are what a restore with the same options
    would see. The one gap is staging: a preview stages every validated
    candidate for the sheets after it, while a restore stages only the rows
    that persisted. A member that validates but fails to save can therefore
    leave dependent rows valid in the preview and unresolved in the restore.
    """

    def __init__(
        self,
        store: RecordStore,
        ingestor: FileIngestor | None = None,
        schema_validator: SchemaValidator | None = None,
        today: Callable[[], date] = date.today,
    ):
        """
        Initialize restore orchestrator.

        Args:
            store: Record store to restore into
            ingestor: File ingestor (size and row ceilings)
            schema_validator: Field rule sets
            today: Reference date provider for date checks
        """
        self.store = store
        self.ingestor = ingestor or FileIngestor()
        self.today = today
        self.schema_validator = schema_validator or SchemaValidator(today=today)
        self.workbook_reader = WorkbookReader()

    def parse_bundle(self, buffer: bytes, filename: str) -> list[SheetTable]:
        """
        Read every sheet of a bundle workbook.

        Raises:
            RestoreError: If the file is not a readable workbook within the size ceiling
        """
        try:
            file_format = self.ingestor.detect_format(filename)
            if file_format == "excel":
                self.ingestor.check_size(buffer)
                return self.workbook_reader.read(buffer)
        except IngestionError as e:
            raise RestoreError(f"Bundle {filename} could not be read: {e}") from e
        raise RestoreError(f"Backup bundles must be workbooks: {filename}")

    def plan(
        self, sheets: list[SheetTable], record_types: list[RecordType] | None = None
    ) -> tuple[list[PlannedSheet], list[SheetReport]]:
        """
        Classify sheets and order the recognized ones for restore.

        Returns:
            Tuple of (sheets to process in dependency order, reports for skipped sheets)
        """
        planned: list[PlannedSheet] = []
        skipped: list[SheetReport] = []

        for table in sheets:
            classification = classify_sheet(table.name)
            if classification.kind is SheetKind.METADATA:
                reason = "metadata"
            elif classification.kind is SheetKind.UNKNOWN:
                reason = "unknown"
                logger.warning(f"Skipping unrecognized sheet: {table.name}", extra={"sheet": table.name})
            elif record_types is not None and classification.record_type not in record_types:
                reason = "not_selected"
            else:
                planned.append(PlannedSheet(table, classification.record_type))
                continue

            increment_counter(restore_sheets_skipped_total, 1, reason=reason)
            skipped.append(SheetReport(
                sheet_name=table.name,
                record_type=classification.record_type.value if classification.record_type else None,
                record_count=data_row_count(table),
                skipped=True,
                reason=reason,
            ))

        planned.sort(key=lambda sheet: RESTORE_ORDER.index(sheet.record_type))
        return planned, skipped

    def validate_sheet(
        self,
        sheet: PlannedSheet,
        context: ValidationContext,
        options: ImportOptions,
    ) -> SheetValidation:
        """
        Ingest, normalize and validate one sheet.

        A sheet with a header but no rows is an empty, valid sheet. Other
        ingestion problems become a single row-0 error for the sheet.
        """
        name, record_type = sheet.table.name, sheet.record_type
        try:
            _, rows, _ = self.ingestor.rows_from_table(sheet.table.rows, record_type)
        except EmptyFile:
            rows = []
        except IngestionError as e:
            error = ImportRowError(row=0, message=f"Sheet '{name}' could not be read: {e}", sheet=name)
            return SheetValidation(
                report=SheetReport(
                    sheet_name=name,
                    record_type=record_type.value,
                    record_count=data_row_count(sheet.table),
                    errors=[error],
                ),
                outcome=ValidationOutcome(errors=[error]),
                sheet_error=True,
            )

        outcome = validate_rows(rows, record_type, context, self.schema_validator, options, self.today)
        outcome.errors = [error.model_copy(update={"sheet": name}) for error in outcome.errors]
        return SheetValidation(
            report=SheetReport(
                sheet_name=name,
                record_type=record_type.value,
                record_count=len(rows),
                valid=len(outcome.candidates),
                invalid=outcome.failed,
                errors=outcome.errors,
            ),
            outcome=outcome,
        )

    async def preview(
        self,
        buffer: bytes,
        filename: str,
        options: RestoreOptions | None = None,
        progress: ProgressCallback | None = None,
    ) -> RestorePreview:
        """
        Dry run: per-sheet counts and errors, the persister is never called.

        Args:
            buffer: Bundle workbook bytes
            filename: Bundle filename
            options: Record type subset and duplicate mode
            progress: Called once the bundle is read, once per sheet and at completion

        Returns:
            RestorePreview
        """
        options = options or RestoreOptions()
        try:
            sheets = self.parse_bundle(buffer, filename)
        except RestoreError as e:
            return RestorePreview(success=False, error=str(e))

        report(progress, 5, f"Read {len(sheets)} sheets from {filename}")
        planned, skipped = self.plan(sheets, options.record_types)
        context = await load_validation_context(self.store)
        import_options = options.import_options()

        reports: list[SheetReport] = []
        for idx, sheet in enumerate(planned):
            report(progress, 10 + 80 * idx // len(planned), f"Checking {sheet.table.name}")
            validation = self.validate_sheet(sheet, context, import_options)
            reports.append(validation.report)
            context = context.with_pending(
                sheet.record_type, [candidate.values for candidate in validation.outcome.candidates]
            )

        totals = PreviewTotals(
            records=sum(item.record_count for item in reports),
            valid=sum(item.valid for item in reports),
            invalid=sum(item.invalid for item in reports),
        )
        report(progress, 100, "Preview complete")
        return RestorePreview(
            success=bool(planned) and not any(item.errors for item in reports),
            sheets=[*reports, *skipped],
            totals=totals,
            error=None if planned else "No recognizable data sheets found",
        )

    async def restore(
        self,
        buffer: bytes,
        filename: str,
        options: RestoreOptions | None = None,
        cancellation: CancellationToken | None = None,
        progress: ProgressCallback | None = None,
    ) -> RestoreResult:
        """
        Restore a bundle (all recognized sheets, or options.record_types only).

        Args:
            buffer: Bundle workbook bytes
            filename: Bundle filename
            options: Record type subset, failure handling, duplicate mode, batch size
            cancellation: Token checked between sheets and between batches
            progress: Called once per sheet and at completion

        Returns:
            RestoreResult aggregated over every processed sheet
        """
        options = options or RestoreOptions()
        try:
            sheets = self.parse_bundle(buffer, filename)
        except RestoreError as e:
            logger.error(f"Restore failed: {e}", exc_info=True)
            record_operation("restore", "failed")
            return RestoreResult(success=False, error=str(e))

        planned, skipped = self.plan(sheets, options.record_types)
        if not planned:
            record_operation("restore", "failed")
            return RestoreResult(success=False, sheets=skipped, error="No recognizable data sheets found")

        import_options = options.import_options()
        with log_operation("Restoring backup", logger=logger, sheets=len(planned)):
            context = await load_validation_context(self.store)
            reports: list[SheetReport] = []
            data = []
            errors: list[ImportRowError] = []
            totals = dict(total=0, successful=0, failed=0, created=0, updated=0, skipped=0, unprocessed=0)
            cancelled = False
            halted = False

            for idx, sheet in enumerate(planned):
                if halted or is_cancelled(cancellation):
                    cancelled = not halted
                    totals["unprocessed"] += sum(data_row_count(rest.table) for rest in planned[idx:])
                    break

                report(progress, 10 + 80 * idx // len(planned), f"Restoring {sheet.table.name}")
                validation = self.validate_sheet(sheet, context, import_options)
                reports.append(validation.report)
                outcome = validation.outcome

                if validation.sheet_error:
                    errors.extend(outcome.errors)
                    halted = not options.continue_on_error
                    continue

                if outcome.failed and not options.continue_on_error:
                    errors.extend(outcome.errors)
                    totals["total"] += outcome.processed
                    totals["successful"] += len(outcome.candidates)
                    totals["failed"] += outcome.failed
                    totals["unprocessed"] += outcome.unprocessed
                    halted = True
                    continue

                persister = BatchPersister(self.store, sheet.record_type, import_options, cancellation)
                persisted = await persister.persist(outcome.candidates)
                result = merge_results(outcome, persisted)
                errors.extend(error.model_copy(update={"sheet": sheet.table.name}) for error in result.errors)
                data.extend(result.data)
                for key in totals:
                    totals[key] += getattr(result.summary, key)
                record_import_summary(
                    sheet.record_type.value,
                    created=result.summary.created,
                    updated=result.summary.updated,
                    skipped=result.summary.skipped,
                    failed=result.summary.failed,
                    unprocessed=result.summary.unprocessed,
                )

                context = context.with_pending(sheet.record_type, persisted.data)
                if persisted.cancelled:
                    cancelled = True
                    totals["unprocessed"] += sum(data_row_count(rest.table) for rest in planned[idx + 1:])
                    break

            summary = ImportSummary(**totals)
            success = not errors and summary.unprocessed == 0 and not cancelled
            record_operation("restore", "cancelled" if cancelled else "success" if success else "failed")
            report(progress, 100, "Restore complete")

            return RestoreResult(
                success=success,
                data=data,
                errors=errors,
                summary=summary,
                persisted=True,
                cancelled=cancelled,
                error=(cancellation.reason if cancelled and cancellation else None),
                sheets=[*reports, *skipped],
            )

    def validate_backup_file(self, buffer: bytes, filename: str) -> BackupValidation:
        """
        Check a bundle's structure without touching the store.

        Returns:
            BackupValidation (is_valid when at least one record sheet is
            present and every record sheet has recognizable headers)
        """
        try:
            sheets = self.parse_bundle(buffer, filename)
        except RestoreError as e:
            return BackupValidation(is_valid=False, errors=[str(e)])

        errors: list[str] = []
        estimated = 0
        recognized = 0
        for table in sheets:
            classification = classify_sheet(table.name)
            if classification.kind is not SheetKind.RECORDS:
                continue
            recognized += 1
            known = alias_table(classification.record_type)
            header = table.rows[0] if table.rows else []
            if not any(header_key(value) in known for value in header if not is_blank(value)):
                errors.append(f"Sheet '{table.name}' has no recognizable column headers")
                continue
            estimated += data_row_count(table)

        if recognized == 0:
            errors.append("No recognizable data sheets found")

        return BackupValidation(
            is_valid=not errors,
            errors=errors,
            sheets=[table.name for table in sheets],
            estimated_records=estimated,
        )
