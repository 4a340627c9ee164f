"""
BatchPersister: write validated candidates to a RecordStore in ordered batches.

Batches run strictly in order. Within a batch, store calls run concurrently
under a semaphore, except when continue_on_error is off (one call at a time,
halting at the first failure) and for organizations (a parent must exist
before its children). A cancellation token is checked before every batch.
"""

import asyncio
import time
from dataclasses import dataclass
from typing import Any, Iterable

from records_interchange.core.models import (
    CandidateRecord,
    DuplicateMode,
    ImportOptions,
    ImportResult,
    ImportRowError,
    ImportSummary,
    lookup_key,
)
from records_interchange.core.vocabulary import RecordType, reference_fields
from records_interchange.observability.logger import get_logger
from records_interchange.observability.metrics import record_batch
from records_interchange.orchestration.cancellation import (
    CancellationToken,
    ProgressCallback,
    is_cancelled,
    report,
)
from records_interchange.utils.coercion import is_blank

from .store import STORE_FIELDS, RecordStore

logger = get_logger(__name__)

# Natural keys tried in order when looking for an existing record
NATURAL_KEYS: dict[RecordType, tuple[tuple[str, ...], ...]] = {
    RecordType.MEMBER: (("email",), ("name",)),
    RecordType.CONTRIBUTION: (("memberId", "offeringDate", "offeringType", "amount"),),
    RecordType.ATTENDANCE: (("memberId", "serviceType", "attendanceDate"),),
    RecordType.VISITATION: (("memberId", "visitDate"),),
    RecordType.EXPENSE_REPORT: (("title", "requestDate"),),
    RecordType.ORGANIZATION: (("code",),),
}


def natural_key(record_type: RecordType, values: dict[str, Any]) -> list[dict[str, Any]]:
    """
    Lookup criteria identifying an existing record, most specific first.

    Keys with a blank component are left out.
    """
    criteria = []
    for fields in NATURAL_KEYS[record_type]:
        if all(not is_blank(values.get(field_name)) for field_name in fields):
            criteria.append({field_name: values[field_name] for field_name in fields})
    return criteria


@dataclass
class RowOutcome:
    row: int
    action: str | None = None  # created, updated, skipped
    record: dict[str, Any] | None = None
    error: ImportRowError | None = None


class BatchPersister:
    """
    Persists candidates of one record type.

    Row numbers in errors are the candidate's source row, or
    batch_offset + position + 1 for plain dicts.
    """

    def __init__(
        self,
        store: RecordStore,
        record_type: RecordType,
        options: ImportOptions | None = None,
        cancellation: CancellationToken | None = None,
        progress: ProgressCallback | None = None,
    ):
        """
        Initialize batch persister.

        Args:
            store: Target record store
            record_type: Record type of every candidate
            options: Batch size, concurrency, duplicate mode and halting behaviour
            cancellation: Token checked before every batch
            progress: Called after every batch with (percent, message)
        """
        self.store = store
        self.record_type = record_type
        self.options = options or ImportOptions()
        self.cancellation = cancellation
        self.progress = progress
        self._placeholders = reference_fields(record_type)
        # code -> id of organizations written during this run
        self._organization_ids: dict[str, str] = {}

    @property
    def sequential(self) -> bool:
        return not self.options.continue_on_error or self.record_type is RecordType.ORGANIZATION

    async def persist(self, candidates: Iterable[CandidateRecord | dict[str, Any]]) -> ImportResult:
        """
        Write candidates batch by batch.

        Returns:
            ImportResult over the processed candidates (summary.total excludes
            unprocessed candidates; persisted is always True)
        """
        items = list(candidates)
        batch_size = self.options.batch_size
        concurrency = self.options.max_concurrency or batch_size

        data: list[dict[str, Any]] = []
        errors: list[ImportRowError] = []
        counts = {"created": 0, "updated": 0, "skipped": 0}
        processed = 0
        halted = False
        cancelled = False

        for offset in range(0, len(items), batch_size):
            if is_cancelled(self.cancellation):
                cancelled = True
                logger.warning(
                    f"Persistence of {self.record_type.value} cancelled at row offset {offset}",
                    extra={"record_type": self.record_type.value, "reason": self.cancellation.reason},
                )
                break

            batch = items[offset:offset + batch_size]
            started = time.perf_counter()

            if self.sequential:
                outcomes = []
                for position, item in enumerate(batch):
                    outcome = await self._persist_one(offset + position, item)
                    outcomes.append(outcome)
                    if outcome.error is not None and not self.options.continue_on_error:
                        halted = True
                        break
            else:
                semaphore = asyncio.Semaphore(concurrency)

                async def guarded(index: int, item: CandidateRecord | dict[str, Any]) -> RowOutcome:
                    async with semaphore:
                        return await self._persist_one(index, item)

                outcomes = await asyncio.gather(
                    *(guarded(offset + position, item) for position, item in enumerate(batch))
                )

            batch_failed = 0
            for outcome in outcomes:
                processed += 1
                if outcome.error is not None:
                    errors.append(outcome.error)
                    batch_failed += 1
                else:
                    counts[outcome.action] += 1
                    data.append(outcome.record)

            record_batch(
                self.record_type.value,
                "failed" if batch_failed else "success",
                time.perf_counter() - started,
            )
            report(
                self.progress,
                processed * 100 // len(items),
                f"{self.record_type.value}: {processed}/{len(items)} rows persisted",
            )
            if halted:
                logger.info(
                    f"Halting {self.record_type.value} persistence after first failure",
                    extra={"record_type": self.record_type.value, "row": errors[-1].row},
                )
                break

        failed = len(errors)
        unprocessed = len(items) - processed
        return ImportResult(
            success=failed == 0 and unprocessed == 0,
            data=data,
            errors=errors,
            summary=ImportSummary(
                total=processed,
                successful=processed - failed,
                failed=failed,
                created=counts["created"],
                updated=counts["updated"],
                skipped=counts["skipped"],
                unprocessed=unprocessed,
            ),
            persisted=True,
            cancelled=cancelled,
        )

    async def _persist_one(self, index: int, item: CandidateRecord | dict[str, Any]) -> RowOutcome:
        if isinstance(item, CandidateRecord):
            row, values = item.row, item.values
        else:
            row, values = index + 1, item

        try:
            prepared = await self._prepare(values)
            action, record = await self._write(prepared)
        except Exception as e:
            logger.warning(
                f"Failed to persist {self.record_type.value} row {row}: {e}",
                extra={"record_type": self.record_type.value, "row": row, "error_type": type(e).__name__},
            )
            return RowOutcome(row=row, error=ImportRowError(row=row, message=str(e)))

        if self.record_type is RecordType.ORGANIZATION and record.get("code"):
            self._organization_ids[lookup_key(record["code"])] = str(record["id"])
        return RowOutcome(row=row, action=action, record=record)

    async def _prepare(self, values: dict[str, Any]) -> dict[str, Any]:
        """Resolve late references and drop name placeholders and store-owned fields."""
        prepared = dict(values)

        if self.record_type is RecordType.ORGANIZATION:
            parent_code = prepared.get("parentCode")
            if not is_blank(parent_code) and is_blank(prepared.get("parentId")):
                parent_id = self._organization_ids.get(lookup_key(parent_code))
                if parent_id is None:
                    parent = await self.store.find_record(RecordType.ORGANIZATION, {"code": parent_code})
                    if parent is None:
                        raise LookupError(f"Parent organization not found: {parent_code}")
                    parent_id = str(parent["id"])
                prepared["parentId"] = parent_id

        for placeholder in self._placeholders:
            prepared.pop(placeholder, None)
        for field_name in STORE_FIELDS:
            prepared.pop(field_name, None)
        return prepared

    async def _write(self, values: dict[str, Any]) -> tuple[str, dict[str, Any]]:
        if self.options.duplicate_mode is not DuplicateMode.CREATE_ONLY:
            existing = None
            for criteria in natural_key(self.record_type, values):
                existing = await self.store.find_record(self.record_type, criteria)
                if existing is not None:
                    break
            if existing is not None:
                if self.options.duplicate_mode is DuplicateMode.SKIP_EXISTING:
                    return "skipped", existing
                return "updated", await self.store.update_record(self.record_type, str(existing["id"]), values)

        return "created", await self.store.create_record(self.record_type, values)
