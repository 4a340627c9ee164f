"""
ColumnNormalizer: rename header keys to canonical field names.
"""

from typing import Any, Iterable

from records_interchange.core.vocabulary import RecordType, alias_table, header_key
from records_interchange.utils.coercion import is_blank


class ColumnNormalizer:
    """
    Maps localized/aliased headers onto canonical fields for one record type.

    Caller overrides win over the built-in alias table. Headers that match
    neither are passed through unchanged. When two headers map to the same
    field, the first non-blank value is kept.
    """

    def __init__(self, record_type: RecordType, overrides: dict[str, str] | None = None):
        self.record_type = record_type
        self.mapping = alias_table(record_type)
        for header, field_name in (overrides or {}).items():
            self.mapping[header_key(header)] = field_name

    def field_for(self, header: str) -> str:
        return self.mapping.get(header_key(header), header)

    def normalize_row(self, row: dict[str, Any]) -> dict[str, Any]:
        normalized: dict[str, Any] = {}
        for header, value in row.items():
            field_name = self.field_for(header)
            if field_name in normalized and not is_blank(normalized[field_name]):
                continue
            normalized[field_name] = value
        return normalized

    def normalize(self, rows: Iterable[dict[str, Any]]) -> list[dict[str, Any]]:
        return [self.normalize_row(row) for row in rows]


def normalize_rows(
    rows: Iterable[dict[str, Any]],
    record_type: RecordType,
    overrides: dict[str, str] | None = None,
) -> list[dict[str, Any]]:
    """Normalize header keys of every row (pure; input rows are not modified)."""
    return ColumnNormalizer(record_type, overrides).normalize(rows)
