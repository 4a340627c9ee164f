"""
Shared vocabularies: record types, column tables, and enum alias tables.
"""

from .columns import (
    COLUMN_TABLES,
    PRIMARY_DATE_FIELDS,
    ColumnKind,
    ColumnSpec,
    alias_table,
    get_column,
    get_columns,
    header_key,
    reference_fields,
)
from .enums import BOOLEAN, VOCABULARIES, EnumEntry, EnumVocabulary, get_vocabulary
from .record_types import (
    METADATA_SHEET_NAMES,
    RESTORE_ORDER,
    SUMMARY_SHEET_NAME,
    EXPORT_INFO_SHEET_NAME,
    RecordType,
    SheetClassification,
    SheetKind,
    classify_sheet,
)

__all__ = [
    "RecordType",
    "SheetKind",
    "SheetClassification",
    "classify_sheet",
    "RESTORE_ORDER",
    "METADATA_SHEET_NAMES",
    "SUMMARY_SHEET_NAME",
    "EXPORT_INFO_SHEET_NAME",
    "ColumnKind",
    "ColumnSpec",
    "COLUMN_TABLES",
    "PRIMARY_DATE_FIELDS",
    "alias_table",
    "get_column",
    "get_columns",
    "header_key",
    "reference_fields",
    "EnumEntry",
    "EnumVocabulary",
    "VOCABULARIES",
    "BOOLEAN",
    "get_vocabulary",
]
