"""
RecordFormatter: persisted records -> localized spreadsheet rows.

The inverse of ingest + schema validation, driven by the same column tables
and vocabularies, so that an exported file re-imports to the same values.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Any

from records_interchange.core.vocabulary import (
    BOOLEAN,
    ColumnKind,
    ColumnSpec,
    RecordType,
    get_columns,
    get_vocabulary,
)
from records_interchange.persistence import RecordStore
from records_interchange.utils.coercion import is_blank


def format_date(value: Any) -> str:
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    return str(value)


def format_amount(value: Any) -> str:
    """Thousands-grouped amount, e.g. Decimal("1234000") -> "1,234,000"."""
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        value = Decimal(str(value))
    if isinstance(value, Decimal):
        return f"{value.normalize():,f}"
    return str(value)


class ReferenceNames:
    """
    Identifier -> display name lookups used to hydrate reference columns.

    Attributes:
        by_field: Map of identifier field (memberId, positionId, ...) -> {id: name}
    """

    def __init__(self, by_field: dict[str, dict[str, str]] | None = None):
        self.by_field = by_field or {}

    def name_for(self, id_field: str, identifier: Any) -> str | None:
        if is_blank(identifier):
            return None
        return self.by_field.get(id_field, {}).get(str(identifier))

    @classmethod
    async def load(cls, store: RecordStore, record_type: RecordType) -> "ReferenceNames":
        """Fetch only the lookups a record type needs."""
        by_field: dict[str, dict[str, str]] = {}
        if record_type in (RecordType.CONTRIBUTION, RecordType.ATTENDANCE, RecordType.VISITATION):
            members = await store.fetch_records(RecordType.MEMBER)
            by_field["memberId"] = {str(record["id"]): record.get("name") or "" for record in members}
        elif record_type is RecordType.MEMBER:
            by_field["positionId"] = {str(item["id"]): item["name"] for item in await store.fetch_positions()}
            by_field["departmentId"] = {str(item["id"]): item["name"] for item in await store.fetch_departments()}
        elif record_type is RecordType.ORGANIZATION:
            organizations = await store.fetch_records(RecordType.ORGANIZATION)
            by_field["parentId"] = {str(record["id"]): record.get("code") or "" for record in organizations}
        return cls(by_field)


class RecordFormatter:
    """Formats records of one record type into rows ordered by its column table."""

    def __init__(self, record_type: RecordType, references: ReferenceNames | None = None):
        self.record_type = record_type
        self.columns: tuple[ColumnSpec, ...] = get_columns(record_type)
        self.references = references or ReferenceNames()

    @property
    def header(self) -> list[str]:
        return [column.header for column in self.columns]

    def format_value(self, column: ColumnSpec, record: dict[str, Any]) -> Any:
        if column.kind is ColumnKind.REFERENCE:
            name = self.references.name_for(column.reference, record.get(column.reference))
            return name if name is not None else record.get(column.field) or ""

        value = record.get(column.field)
        if value is None or value == "":
            return ""
        if column.kind is ColumnKind.DATE:
            return format_date(value)
        if column.kind is ColumnKind.AMOUNT:
            return format_amount(value)
        if column.kind is ColumnKind.BOOLEAN:
            vocabulary = get_vocabulary(column.vocabulary) if column.vocabulary else BOOLEAN
            return vocabulary.label_for(bool(value))
        if column.kind is ColumnKind.ENUM:
            return get_vocabulary(column.vocabulary).label_for(value)
        return value

    def format_record(self, record: dict[str, Any]) -> list[Any]:
        return [self.format_value(column, record) for column in self.columns]

    def format_records(self, records: list[dict[str, Any]]) -> list[list[Any]]:
        return [self.format_record(record) for record in records]
