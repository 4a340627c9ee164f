"""
RecordStore protocol and an in-memory implementation.

Records are flat dicts keyed by canonical field name. Every stored record
carries "id", "created_at" and "updated_at" (timezone-aware UTC).
"""

import copy
import uuid
from datetime import datetime, timezone
from typing import Any, Callable, Protocol

from records_interchange.core.models import lookup_key
from records_interchange.core.vocabulary import RecordType

STORE_FIELDS = ("id", "created_at", "updated_at")


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def matches(record: dict[str, Any], criteria: dict[str, Any]) -> bool:
    """Field equality, case/whitespace-insensitive for strings."""
    for field_name, expected in criteria.items():
        actual = record.get(field_name)
        if isinstance(expected, str) and isinstance(actual, str):
            if lookup_key(actual) != lookup_key(expected):
                return False
        elif actual != expected:
            return False
    return True


class RecordStore(Protocol):
    """Async store the pipeline reads from and writes to."""

    async def fetch_records(
        self, record_type: RecordType, modified_after: datetime | None = None
    ) -> list[dict[str, Any]]:
        """All records of a type, oldest first; only those updated after modified_after when given."""
        ...

    async def find_record(self, record_type: RecordType, criteria: dict[str, Any]) -> dict[str, Any] | None:
        """First record matching every criterion, or None."""
        ...

    async def create_record(self, record_type: RecordType, values: dict[str, Any]) -> dict[str, Any]:
        ...

    async def update_record(
        self, record_type: RecordType, record_id: str, values: dict[str, Any]
    ) -> dict[str, Any]:
        ...

    async def count_records(self, record_type: RecordType) -> int:
        ...

    async def fetch_positions(self) -> list[dict[str, Any]]:
        """Position catalogue as {"id", "name"} dicts."""
        ...

    async def fetch_departments(self) -> list[dict[str, Any]]:
        """Department catalogue as {"id", "name"} dicts."""
        ...


class InMemoryRecordStore:
    """
    Dict-backed RecordStore for tests and local runs.

    The clock is injectable so incremental backups can be exercised with
    deterministic timestamps.
    """

    def __init__(
        self,
        positions: list[str] | None = None,
        departments: list[str] | None = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.clock = clock
        self._records: dict[RecordType, dict[str, dict[str, Any]]] = {
            record_type: {} for record_type in RecordType
        }
        self._positions = [
            {"id": f"position-{idx}", "name": name} for idx, name in enumerate(positions or [], start=1)
        ]
        self._departments = [
            {"id": f"department-{idx}", "name": name} for idx, name in enumerate(departments or [], start=1)
        ]

    async def fetch_records(
        self, record_type: RecordType, modified_after: datetime | None = None
    ) -> list[dict[str, Any]]:
        records = list(self._records[record_type].values())
        if modified_after is not None:
            watermark = as_utc(modified_after)
            records = [record for record in records if record["updated_at"] > watermark]
        return [copy.deepcopy(record) for record in records]

    async def find_record(self, record_type: RecordType, criteria: dict[str, Any]) -> dict[str, Any] | None:
        for record in self._records[record_type].values():
            if matches(record, criteria):
                return copy.deepcopy(record)
        return None

    async def create_record(self, record_type: RecordType, values: dict[str, Any]) -> dict[str, Any]:
        now = as_utc(self.clock())
        record = {key: value for key, value in values.items() if key not in STORE_FIELDS}
        record.update(id=str(uuid.uuid4()), created_at=now, updated_at=now)
        self._records[record_type][record["id"]] = record
        return copy.deepcopy(record)

    async def update_record(
        self, record_type: RecordType, record_id: str, values: dict[str, Any]
    ) -> dict[str, Any]:
        try:
            record = self._records[record_type][record_id]
        except KeyError:
            raise KeyError(f"{record_type.value} record not found: {record_id}") from None
        changes = {key: value for key, value in values.items() if key not in STORE_FIELDS}
        # No-op updates leave updated_at untouched
        if any(record.get(key) != value for key, value in changes.items()):
            record.update(changes)
            record["updated_at"] = as_utc(self.clock())
        return copy.deepcopy(record)

    async def count_records(self, record_type: RecordType) -> int:
        return len(self._records[record_type])

    async def fetch_positions(self) -> list[dict[str, Any]]:
        return [dict(item) for item in self._positions]

    async def fetch_departments(self) -> list[dict[str, Any]]:
        return [dict(item) for item in self._departments]
