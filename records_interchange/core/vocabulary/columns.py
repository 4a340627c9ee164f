"""
Column tables: the one description of each record type's spreadsheet layout.

The ingestor reads cell kinds from here, the normalizer derives its header
alias table from here, and the exporter takes headers, widths and formatters
from here.
"""

import re
from dataclasses import dataclass
from enum import Enum

from .record_types import RecordType


class ColumnKind(str, Enum):
    TEXT = "text"
    DATE = "date"
    BOOLEAN = "boolean"
    AMOUNT = "amount"
    ENUM = "enum"
    REFERENCE = "reference"


@dataclass(frozen=True)
class ColumnSpec:
    """
    One spreadsheet column.

    Attributes:
        field: Canonical field name
        header: Localized header written on export
        kind: Value kind, drives ingest coercion and export formatting
        width: Workbook column width
        aliases: Additional headers accepted on import
        vocabulary: Enum/boolean vocabulary name for ENUM and BOOLEAN columns
        reference: Identifier field a REFERENCE column resolves to
    """

    field: str
    header: str
    kind: ColumnKind = ColumnKind.TEXT
    width: int = 15
    aliases: tuple[str, ...] = ()
    vocabulary: str | None = None
    reference: str | None = None


TEXT, DATE, BOOLEAN, AMOUNT, ENUM, REFERENCE = (
    ColumnKind.TEXT,
    ColumnKind.DATE,
    ColumnKind.BOOLEAN,
    ColumnKind.AMOUNT,
    ColumnKind.ENUM,
    ColumnKind.REFERENCE,
)

COLUMN_TABLES: dict[RecordType, tuple[ColumnSpec, ...]] = {
    RecordType.MEMBER: (
        ColumnSpec("name", "이름", width=15, aliases=("성명", "Name")),
        ColumnSpec("phone", "전화번호", width=18, aliases=("연락처", "휴대폰", "Phone")),
        ColumnSpec("email", "이메일", width=25, aliases=("Email", "E-mail")),
        ColumnSpec("birthDate", "생년월일", DATE, 12, ("Birth Date",)),
        ColumnSpec("address", "주소", width=40, aliases=("Address",)),
        ColumnSpec("gender", "성별", ENUM, 8, ("Gender",), vocabulary="member.gender"),
        ColumnSpec("maritalStatus", "결혼상태", ENUM, 12, ("Marital Status",), vocabulary="member.maritalStatus"),
        ColumnSpec("baptismDate", "세례일", DATE, 12, ("Baptism Date",)),
        ColumnSpec("confirmationDate", "입교일", DATE, 12, ("Confirmation Date",)),
        ColumnSpec("positionName", "직분", REFERENCE, 12, ("Position",), reference="positionId"),
        ColumnSpec("departmentName", "부서", REFERENCE, 15, ("Department",), reference="departmentId"),
        ColumnSpec("familyId", "가족ID", width=12, aliases=("Family ID",)),
        ColumnSpec("relationship", "가족관계", ENUM, 12, ("Relationship",), vocabulary="member.relationship"),
        ColumnSpec("status", "상태", ENUM, 10, ("Status",), vocabulary="member.status"),
        ColumnSpec("notes", "비고", width=30, aliases=("메모", "Notes")),
    ),
    RecordType.CONTRIBUTION: (
        ColumnSpec("memberName", "교인명", REFERENCE, 15, ("이름", "성명", "Member"), reference="memberId"),
        ColumnSpec("amount", "금액", AMOUNT, 15, ("헌금액", "Amount")),
        ColumnSpec("offeringType", "헌금종류", ENUM, 15, ("Offering Type",), vocabulary="contribution.offeringType"),
        ColumnSpec("description", "설명", width=30, aliases=("Description",)),
        ColumnSpec("offeringDate", "헌금일", DATE, 12, ("Offering Date",)),
    ),
    RecordType.ATTENDANCE: (
        ColumnSpec("memberName", "교인명", REFERENCE, 15, ("이름", "성명", "Member"), reference="memberId"),
        ColumnSpec("serviceType", "예배종류", ENUM, 15, ("Service Type",), vocabulary="attendance.serviceType"),
        ColumnSpec("attendanceDate", "출석일", DATE, 12, ("Attendance Date",)),
        ColumnSpec("isPresent", "출석여부", BOOLEAN, 10, ("Present",), vocabulary="attendance.isPresent"),
        ColumnSpec("notes", "비고", width=30, aliases=("메모", "Notes")),
    ),
    RecordType.VISITATION: (
        ColumnSpec("memberName", "교인명", REFERENCE, 15, ("이름", "성명", "Member"), reference="memberId"),
        ColumnSpec("visitDate", "심방일", DATE, 12, ("Visit Date",)),
        ColumnSpec("purpose", "목적", width=20, aliases=("Purpose",)),
        ColumnSpec("content", "내용", width=40, aliases=("Content",)),
        ColumnSpec("followUpNeeded", "후속관리", BOOLEAN, 10, ("Follow Up",), vocabulary="visitation.followUpNeeded"),
        ColumnSpec("followUpDate", "후속관리일", DATE, 12, ("Follow Up Date",)),
    ),
    RecordType.EXPENSE_REPORT: (
        ColumnSpec("title", "제목", width=25, aliases=("Title",)),
        ColumnSpec("description", "설명", width=30, aliases=("Description",)),
        ColumnSpec("amount", "금액", AMOUNT, 15, ("Amount",)),
        ColumnSpec("category", "분류", width=15, aliases=("Category",)),
        ColumnSpec("status", "상태", ENUM, 10, ("Status",), vocabulary="expense_report.status"),
        ColumnSpec("requestDate", "신청일", DATE, 12, ("Request Date",)),
        ColumnSpec("approvedDate", "승인일", DATE, 12, ("Approved Date",)),
        ColumnSpec("rejectedDate", "거부일", DATE, 12, ("Rejected Date",)),
        ColumnSpec("rejectionReason", "거부사유", width=30, aliases=("Rejection Reason",)),
    ),
    RecordType.ORGANIZATION: (
        ColumnSpec("code", "조직코드", width=15, aliases=("코드", "Code")),
        ColumnSpec("name", "조직명", width=25, aliases=("이름", "Name")),
        ColumnSpec("level", "조직레벨", ENUM, 10, ("레벨", "Level"), vocabulary="organization.level"),
        ColumnSpec("parentCode", "상위조직코드", REFERENCE, 15, ("Parent Code",), reference="parentId"),
        ColumnSpec("description", "설명", width=30, aliases=("Description",)),
        ColumnSpec("email", "이메일", width=25, aliases=("Email",)),
        ColumnSpec("phone", "전화번호", width=18, aliases=("Phone",)),
        ColumnSpec("address", "주소", width=40, aliases=("Address",)),
        ColumnSpec("managerName", "담당자", width=15, aliases=("Manager",)),
        ColumnSpec("isActive", "활성여부", BOOLEAN, 10, ("Active",), vocabulary="organization.isActive"),
    ),
}

# Field used for date-range export filters and "last modified" reporting
PRIMARY_DATE_FIELDS: dict[RecordType, str | None] = {
    RecordType.MEMBER: None,
    RecordType.CONTRIBUTION: "offeringDate",
    RecordType.ATTENDANCE: "attendanceDate",
    RecordType.VISITATION: "visitDate",
    RecordType.EXPENSE_REPORT: "requestDate",
    RecordType.ORGANIZATION: None,
}


def header_key(header: str) -> str:
    """Normalize a header for alias lookup (case and whitespace insensitive)."""
    return re.sub(r"\s+", "", str(header)).lower()


def get_columns(record_type: RecordType) -> tuple[ColumnSpec, ...]:
    return COLUMN_TABLES[record_type]


def get_column(record_type: RecordType, field_name: str) -> ColumnSpec | None:
    for column in COLUMN_TABLES[record_type]:
        if column.field == field_name:
            return column
    return None


def alias_table(record_type: RecordType) -> dict[str, str]:
    """
    Build the header -> canonical field table for a record type.

    Keys are normalized with header_key(). The canonical field name, the
    localized header and every alias all map to the field.
    """
    table: dict[str, str] = {}
    for column in COLUMN_TABLES[record_type]:
        for name in (column.field, column.header, *column.aliases):
            table.setdefault(header_key(name), column.field)
    return table


def reference_fields(record_type: RecordType) -> dict[str, str]:
    """Map of name-placeholder field -> identifier field for a record type."""
    return {
        column.field: column.reference
        for column in COLUMN_TABLES[record_type]
        if column.kind is ColumnKind.REFERENCE and column.reference
    }
