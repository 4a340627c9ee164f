"""
Per-sheet restore reporting models (ephemeral).
"""

from pydantic import BaseModel, Field

from .import_result import ImportResult, ImportRowError


class SheetReport(BaseModel):
    """
    What happened to one sheet of a bundle.

    Attributes:
        sheet_name: Sheet title in the workbook
        record_type: Classified record type value, None for skipped sheets
        record_count: Data rows found on the sheet
        valid: Rows that passed schema and referential validation
        invalid: Rows that failed validation
        skipped: True when the sheet was not processed (metadata, unknown, unselected)
        reason: Why the sheet was skipped
        errors: Row errors raised on this sheet
    """

    sheet_name: str
    record_type: str | None = None
    record_count: int = 0
    valid: int = 0
    invalid: int = 0
    skipped: bool = False
    reason: str | None = None
    errors: list[ImportRowError] = Field(default_factory=list)


class PreviewTotals(BaseModel):
    records: int = 0
    valid: int = 0
    invalid: int = 0


class RestorePreview(BaseModel):
    """Dry-run result: per-sheet counts and the full error list, nothing persisted."""

    success: bool
    sheets: list[SheetReport] = Field(default_factory=list)
    totals: PreviewTotals = Field(default_factory=PreviewTotals)
    error: str | None = None


class RestoreResult(ImportResult):
    """ImportResult aggregated over every restored sheet, plus per-sheet reports."""

    sheets: list[SheetReport] = Field(default_factory=list)


class BackupValidation(BaseModel):
    """
    Structural check of a bundle without touching the store.

    Attributes:
        is_valid: True when at least one sheet is a recognized record type
        errors: Structural problems found
        sheets: Sheet titles in workbook order
        estimated_records: Data rows across recognized sheets
    """

    is_valid: bool
    errors: list[str] = Field(default_factory=list)
    sheets: list[str] = Field(default_factory=list)
    estimated_records: int = 0
