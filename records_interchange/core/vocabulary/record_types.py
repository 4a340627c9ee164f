"""
Record types and their bilingual label table.

Sheet classification during restore is a single lookup in this table. Names
that are neither a record type nor a known summary/metadata sheet classify as
SheetKind.UNKNOWN rather than falling through silently.
"""

import re
from dataclasses import dataclass
from enum import Enum


class RecordType(str, Enum):
    """Domain entities that flow through the interchange pipeline."""

    MEMBER = "member"
    CONTRIBUTION = "contribution"
    ATTENDANCE = "attendance"
    VISITATION = "visitation"
    EXPENSE_REPORT = "expense_report"
    ORGANIZATION = "organization"

    @property
    def label(self) -> str:
        """Localized display name, also used as the sheet name in bundles."""
        return RECORD_TYPE_LABELS[self].display

    @property
    def english_label(self) -> str:
        return RECORD_TYPE_LABELS[self].english

    @classmethod
    def parse(cls, value: "str | RecordType") -> "RecordType":
        """
        Resolve a record type from its value or any of its labels.

        Raises:
            ValueError: If the value names no record type
        """
        if isinstance(value, RecordType):
            return value
        classification = classify_sheet(str(value))
        if classification.record_type is None:
            raise ValueError(f"Unknown record type: {value}")
        return classification.record_type


@dataclass(frozen=True)
class RecordTypeLabels:
    """Display names and accepted aliases for one record type."""

    display: str
    english: str
    aliases: tuple[str, ...] = ()


RECORD_TYPE_LABELS: dict[RecordType, RecordTypeLabels] = {
    RecordType.MEMBER: RecordTypeLabels(
        display="교인명부",
        english="Members",
        aliases=("교인", "교인목록", "member", "members"),
    ),
    RecordType.CONTRIBUTION: RecordTypeLabels(
        display="헌금내역",
        english="Offerings",
        aliases=("헌금", "offering", "offerings", "contribution", "contributions"),
    ),
    RecordType.ATTENDANCE: RecordTypeLabels(
        display="출석현황",
        english="Attendances",
        aliases=("출석", "출석기록", "attendance", "attendances"),
    ),
    RecordType.VISITATION: RecordTypeLabels(
        display="심방기록",
        english="Visitations",
        aliases=("심방", "visitation", "visitations"),
    ),
    RecordType.EXPENSE_REPORT: RecordTypeLabels(
        display="지출결의서",
        english="Expense Reports",
        aliases=("지출", "지출결의", "expense", "expenses", "expense_report", "expense_reports"),
    ),
    RecordType.ORGANIZATION: RecordTypeLabels(
        display="조직도",
        english="Organizations",
        aliases=("조직", "organization", "organizations"),
    ),
}

# Sheets written by export/backup that carry no records
SUMMARY_SHEET_NAME = "요약"
EXPORT_INFO_SHEET_NAME = "내보내기정보"
METADATA_SHEET_NAMES = (SUMMARY_SHEET_NAME, EXPORT_INFO_SHEET_NAME, "summary", "metadata")

# Restore order: referenced types before the types that reference them
RESTORE_ORDER: tuple[RecordType, ...] = (
    RecordType.ORGANIZATION,
    RecordType.MEMBER,
    RecordType.CONTRIBUTION,
    RecordType.ATTENDANCE,
    RecordType.VISITATION,
    RecordType.EXPENSE_REPORT,
)


class SheetKind(str, Enum):
    RECORDS = "records"
    METADATA = "metadata"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class SheetClassification:
    """Outcome of classifying one sheet name."""

    sheet_name: str
    kind: SheetKind
    record_type: RecordType | None = None


def _label_key(name: str) -> str:
    return re.sub(r"[\s_\-]+", "", name).lower()


def _build_lookup() -> dict[str, RecordType]:
    lookup: dict[str, RecordType] = {}
    for record_type, labels in RECORD_TYPE_LABELS.items():
        for name in (record_type.value, labels.display, labels.english, *labels.aliases):
            lookup[_label_key(name)] = record_type
    return lookup


_LABEL_LOOKUP = _build_lookup()
_METADATA_KEYS = frozenset(_label_key(name) for name in METADATA_SHEET_NAMES)


def classify_sheet(sheet_name: str) -> SheetClassification:
    """
    Classify a sheet name as a record type, a metadata sheet, or unknown.

    Args:
        sheet_name: Sheet title as found in the workbook

    Returns:
        SheetClassification with the matching kind and record type
    """
    key = _label_key(sheet_name)
    if key in _METADATA_KEYS:
        return SheetClassification(sheet_name, SheetKind.METADATA)
    record_type = _LABEL_LOOKUP.get(key)
    if record_type is None:
        return SheetClassification(sheet_name, SheetKind.UNKNOWN)
    return SheetClassification(sheet_name, SheetKind.RECORDS, record_type)
