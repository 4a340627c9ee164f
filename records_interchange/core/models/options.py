"""
Caller-supplied options for import, export, backup and restore runs.
"""

from datetime import date, datetime
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator

from records_interchange.core.vocabulary import RecordType


class DuplicateMode(str, Enum):
    """How the persister treats a candidate that matches an existing record."""

    CREATE_ONLY = "create-only"
    UPDATE_EXISTING = "update-existing"
    SKIP_EXISTING = "skip-existing"


class ImportOptions(BaseModel):
    """
    Attributes:
        continue_on_error: Keep going after a row-level error (False halts at the first one)
        duplicate_mode: Create-only, update-existing or skip-existing
        validate_only: Never call the persister
        batch_size: Candidates per persistence batch
        max_concurrency: Concurrent store calls within a batch (defaults to batch_size)
        column_overrides: Extra header -> canonical field mappings
    """

    continue_on_error: bool = False
    duplicate_mode: DuplicateMode = DuplicateMode.CREATE_ONLY
    validate_only: bool = False
    batch_size: int = Field(100, ge=1)
    max_concurrency: int | None = Field(None, ge=1)
    column_overrides: dict[str, str] = Field(default_factory=dict)

    class Config:
        json_schema_extra = {
            "example": {
                "continue_on_error": True,
                "duplicate_mode": "update-existing",
                "validate_only": False,
                "batch_size": 100,
                "column_overrides": {"휴대전화": "phone"},
            }
        }


class DateRange(BaseModel):
    """Inclusive date range."""

    start: date | None = None
    end: date | None = None

    @field_validator("end")
    @classmethod
    def check_order(cls, v, info):
        start = info.data.get("start")
        if v is not None and start is not None and v < start:
            raise ValueError("end must not precede start")
        return v

    def contains(self, value: date | None) -> bool:
        if value is None:
            return False
        if self.start is not None and value < self.start:
            return False
        if self.end is not None and value > self.end:
            return False
        return True


class ExportOptions(BaseModel):
    """
    Attributes:
        record_type: Record type to export
        format: "excel" (xlsx workbook) or "csv"
        date_range: Inclusive range on the record type's primary date field
        filters: Field equality filters (canonical field -> value)
        include_inactive: Include inactive members/organizations
        filename: Override for the generated filename
    """

    record_type: RecordType
    format: Literal["excel", "csv"] = "excel"
    date_range: DateRange | None = None
    filters: dict[str, Any] = Field(default_factory=dict)
    include_inactive: bool = True
    filename: str | None = None


class BackupOptions(BaseModel):
    """
    Attributes:
        include_*: Record types to include
        watermark: Incremental mode when set; only records modified after it are included
        continue_on_error: Leave a failing record type out instead of aborting
        filename: Override for the generated filename
    """

    include_members: bool = True
    include_contributions: bool = True
    include_attendances: bool = True
    include_visitations: bool = True
    include_expense_reports: bool = True
    include_organizations: bool = True
    watermark: datetime | None = None
    continue_on_error: bool = False
    filename: str | None = None

    def enabled_types(self) -> list[RecordType]:
        """Record types switched on, in bundle order."""
        flags = {
            RecordType.MEMBER: self.include_members,
            RecordType.CONTRIBUTION: self.include_contributions,
            RecordType.ATTENDANCE: self.include_attendances,
            RecordType.VISITATION: self.include_visitations,
            RecordType.EXPENSE_REPORT: self.include_expense_reports,
            RecordType.ORGANIZATION: self.include_organizations,
        }
        return [record_type for record_type, enabled in flags.items() if enabled]

    @property
    def incremental(self) -> bool:
        return self.watermark is not None


class RestoreOptions(BaseModel):
    """
    Attributes:
        record_types: Subset to restore (selective restore); None restores every recognized sheet
        continue_on_error: Keep going after a row-level error
        duplicate_mode: Persistence mode, update-existing keeps restores idempotent
        batch_size: Candidates per persistence batch
    """

    record_types: list[RecordType] | None = None
    continue_on_error: bool = True
    duplicate_mode: DuplicateMode = DuplicateMode.UPDATE_EXISTING
    batch_size: int = Field(100, ge=1)

    def import_options(self) -> ImportOptions:
        return ImportOptions(
            continue_on_error=self.continue_on_error,
            duplicate_mode=self.duplicate_mode,
            batch_size=self.batch_size,
        )
