"""
Import pipeline orchestration.

Coordinates the flow: normalize → schema-validate → referential-validate → persist
"""

from dataclasses import dataclass, field
from datetime import date
from typing import Any, Callable

from records_interchange.core.models import (
    CandidateRecord,
    ImportOptions,
    ImportResult,
    ImportRowError,
    ImportSummary,
    ValidationContext,
)
from records_interchange.core.rules import ReferentialValidator, SchemaValidator
from records_interchange.core.vocabulary import RecordType, get_columns
from records_interchange.ingest import ColumnNormalizer
from records_interchange.observability.logger import get_logger, log_operation
from records_interchange.observability.metrics import record_import_summary, record_operation
from records_interchange.orchestration.cancellation import CancellationToken, ProgressCallback, is_cancelled, report
from records_interchange.persistence import BatchPersister, RecordStore, load_validation_context

logger = get_logger(__name__)


def canonical_fields(record_type: RecordType) -> set[str]:
    """Fields a candidate may carry: every column plus resolved reference ids."""
    fields = set()
    for column in get_columns(record_type):
        fields.add(column.field)
        if column.reference:
            fields.add(column.reference)
    return fields


@dataclass
class ValidationOutcome:
    """
    Rows split into promotable candidates and row errors.

    Attributes:
        candidates: Rows that passed schema and referential checks
        errors: Every error of every failed row
        failed: Number of rows with at least one error
        unprocessed: Rows never validated because of a fail-fast halt
    """

    candidates: list[CandidateRecord] = field(default_factory=list)
    errors: list[ImportRowError] = field(default_factory=list)
    failed: int = 0
    unprocessed: int = 0

    @property
    def processed(self) -> int:
        return len(self.candidates) + self.failed


def validate_rows(
    rows: list[dict[str, Any]],
    record_type: RecordType,
    context: ValidationContext,
    schema_validator: SchemaValidator,
    options: ImportOptions,
    today: Callable[[], date] = date.today,
) -> ValidationOutcome:
    """
    Validate header-keyed rows of one record type.

    Used unchanged by import, restore and restore preview, so all three agree
    on which rows are valid.

    Args:
        rows: Rows in file order, keyed by headers as found in the file
        record_type: Record type of every row
        context: Reference data snapshot
        schema_validator: Field rule sets
        options: column_overrides, duplicate_mode and continue_on_error are used
        today: Reference date provider for age checks

    Returns:
        ValidationOutcome
    """
    normalizer = ColumnNormalizer(record_type, options.column_overrides)
    referential = ReferentialValidator(record_type, context, options.duplicate_mode, today=today)
    allowed = canonical_fields(record_type)
    outcome = ValidationOutcome()

    for idx, raw_row in enumerate(rows):
        row = idx + 1
        result = schema_validator.validate_row(record_type, row, normalizer.normalize_row(raw_row))
        errors = list(result.errors)
        values = result.values
        if result.passed:
            values, errors = referential.validate(row, values)

        if errors:
            outcome.errors.extend(errors)
            outcome.failed += 1
            if not options.continue_on_error:
                outcome.unprocessed = len(rows) - row
                break
            continue

        outcome.candidates.append(CandidateRecord(
            row=row,
            record_type=record_type,
            values={key: value for key, value in values.items() if key in allowed},
            status="validated",
        ))

    return outcome


class ImportPipeline:
    """
    Orchestrates validation and persistence of one record type's rows.

    Flow:
    1. Load the validation context (once per run)
    2. Normalize headers to canonical fields
    3. Apply schema rules, then referential checks
    4. Persist candidates in ordered batches
    """

    def __init__(
        self,
        store: RecordStore,
        schema_validator: SchemaValidator | None = None,
        today: Callable[[], date] = date.today,
    ):
        """
        Initialize import pipeline.

        Args:
            store: Record store used for context loading and persistence
            schema_validator: Field rule sets (packaged YAML schemas by default)
            today: Reference date provider for age and not-future checks
        """
        self.store = store
        self.today = today
        self.schema_validator = schema_validator or SchemaValidator(today=today)

    async def validate(
        self,
        rows: list[dict[str, Any]],
        record_type: RecordType,
        options: ImportOptions | None = None,
        context: ValidationContext | None = None,
        progress: ProgressCallback | None = None,
    ) -> ImportResult:
        """
        Validate rows without persisting anything.

        Progress is reported at 0 before the reference data is loaded and at
        100 once every row has been checked.

        Returns:
            ImportResult whose data holds the validated candidates (persisted=False)
        """
        options = options or ImportOptions()
        report(progress, 0, f"Validating {len(rows)} {record_type.value} rows")
        if context is None:
            context = await load_validation_context(self.store)

        outcome = validate_rows(rows, record_type, context, self.schema_validator, options, self.today)
        report(progress, 100, f"Validated {outcome.processed} rows, {outcome.failed} failed")
        return ImportResult(
            success=outcome.failed == 0 and outcome.unprocessed == 0,
            data=[candidate.values for candidate in outcome.candidates],
            errors=outcome.errors,
            summary=ImportSummary(
                total=outcome.processed,
                successful=len(outcome.candidates),
                failed=outcome.failed,
                unprocessed=outcome.unprocessed,
            ),
            persisted=False,
        )

    async def run(
        self,
        rows: list[dict[str, Any]],
        record_type: RecordType,
        options: ImportOptions | None = None,
        cancellation: CancellationToken | None = None,
        progress: ProgressCallback | None = None,
        context: ValidationContext | None = None,
    ) -> ImportResult:
        """
        Validate and persist rows.

        With validate_only the persister is never called. With
        continue_on_error off, a validation failure persists nothing.

        Args:
            rows: Header-keyed rows in file order
            record_type: Record type of every row
            options: Import options
            cancellation: Token checked before validation and before every batch
            progress: Per-batch progress callback
            context: Reference snapshot (loaded from the store when omitted)

        Returns:
            ImportResult
        """
        options = options or ImportOptions()
        if options.validate_only:
            return await self.validate(rows, record_type, options, context, progress)

        with log_operation(f"Importing {record_type.value}", logger=logger, rows=len(rows)):
            if is_cancelled(cancellation):
                record_operation("import", "cancelled")
                return ImportResult(
                    success=False,
                    summary=ImportSummary(unprocessed=len(rows)),
                    cancelled=True,
                    error=cancellation.reason,
                )

            if context is None:
                context = await load_validation_context(self.store)
            outcome = validate_rows(rows, record_type, context, self.schema_validator, options, self.today)

            if outcome.failed and not options.continue_on_error:
                logger.info(
                    f"Validation failed for {record_type.value}; nothing persisted",
                    extra={"record_type": record_type.value, "errors": len(outcome.errors)},
                )
                result = ImportResult(
                    success=False,
                    errors=outcome.errors,
                    summary=ImportSummary(
                        total=outcome.processed,
                        successful=len(outcome.candidates),
                        failed=outcome.failed,
                        unprocessed=outcome.unprocessed,
                    ),
                    persisted=False,
                )
                self._record(record_type, result)
                return result

            persister = BatchPersister(self.store, record_type, options, cancellation, progress)
            persisted = await persister.persist(outcome.candidates)
            result = merge_results(outcome, persisted)
            self._record(record_type, result)
            return result

    def _record(self, record_type: RecordType, result: ImportResult) -> None:
        summary = result.summary
        record_import_summary(
            record_type.value,
            created=summary.created,
            updated=summary.updated,
            skipped=summary.skipped,
            failed=summary.failed,
            unprocessed=summary.unprocessed,
        )
        status = "cancelled" if result.cancelled else "success" if result.success else "failed"
        record_operation("import", status)


def merge_results(outcome: ValidationOutcome, persisted: ImportResult) -> ImportResult:
    """Combine validation failures with the persister's result."""
    errors = sorted([*outcome.errors, *persisted.errors], key=lambda error: error.row)
    summary = ImportSummary(
        total=outcome.failed + persisted.summary.total,
        successful=persisted.summary.successful,
        failed=outcome.failed + persisted.summary.failed,
        created=persisted.summary.created,
        updated=persisted.summary.updated,
        skipped=persisted.summary.skipped,
        unprocessed=outcome.unprocessed + persisted.summary.unprocessed,
    )
    return ImportResult(
        success=summary.failed == 0 and summary.unprocessed == 0 and not persisted.cancelled,
        data=persisted.data,
        errors=errors,
        summary=summary,
        persisted=True,
        cancelled=persisted.cancelled,
        error="Operation cancelled" if persisted.cancelled else None,
    )
