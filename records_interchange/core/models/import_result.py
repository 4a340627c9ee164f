"""
ImportResult and related models describing the outcome of an upload,
validation or import run (ephemeral).
"""

from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator


class ImportRowError(BaseModel):
    """
    A single row-level problem.

    Attributes:
        row: 1-based data row number (header excluded); 0 marks a sheet-level failure
        field: Canonical field the problem concerns, if any
        message: Human-readable description
        value: The offending value, if any
        sheet: Bundle sheet the row belongs to (restore only)
    """

    row: int = Field(..., ge=0)
    field: str | None = None
    message: str
    value: Any = None
    sheet: str | None = None

    class Config:
        json_schema_extra = {
            "example": {
                "row": 3,
                "field": "email",
                "message": "Invalid email format",
                "value": "bad-email",
            }
        }


class ImportSummary(BaseModel):
    """
    Row counts for one run.

    Invariant: total == successful + failed. Rows that a run never reached
    (fail-fast halt or cancellation) are counted only in unprocessed.
    """

    total: int = 0
    successful: int = 0
    failed: int = 0
    created: int = 0
    updated: int = 0
    skipped: int = 0
    unprocessed: int = 0

    @field_validator("failed")
    @classmethod
    def check_totals(cls, v, info):
        """Validate that total == successful + failed."""
        total = info.data.get("total", 0)
        successful = info.data.get("successful", 0)
        if total != successful + v:
            raise ValueError(
                f"total ({total}) must equal successful ({successful}) + failed ({v})"
            )
        return v


class ImportResult(BaseModel):
    """
    Outcome of validate_data / import_data / restore.

    Attributes:
        success: True when the run finished and no row failed
        data: Accepted rows (validated candidates, or persisted records)
        errors: Row-level errors, several per row allowed
        summary: Row counts
        persisted: Whether data holds records written to the store
        cancelled: Whether a cancellation token stopped the run
        error: Top-level failure message for ingestion/operational errors
    """

    success: bool
    data: list[dict[str, Any]] = Field(default_factory=list)
    errors: list[ImportRowError] = Field(default_factory=list)
    summary: ImportSummary = Field(default_factory=ImportSummary)
    persisted: bool = False
    cancelled: bool = False
    error: str | None = None

    @classmethod
    def failure(cls, message: str) -> "ImportResult":
        """Build the single top-level failure result used for fatal errors."""
        return cls(success=False, error=message)

    @property
    def failed_rows(self) -> list[int]:
        """Sorted distinct row numbers that carry at least one error."""
        return sorted({error.row for error in self.errors})

    class Config:
        json_schema_extra = {
            "example": {
                "success": False,
                "data": [{"name": "홍길동", "email": "hong@example.com", "status": "ACTIVE"}],
                "errors": [{"row": 2, "field": "email", "message": "Invalid email format", "value": "bad"}],
                "summary": {"total": 2, "successful": 1, "failed": 1},
                "persisted": True,
            }
        }


class FileMetadata(BaseModel):
    """Descriptive metadata of an uploaded file."""

    filename: str
    file_size: int
    row_count: int
    column_count: int
    format: Literal["csv", "excel"]


class FileUploadResult(BaseModel):
    """
    Rows parsed from an uploaded file plus per-cell coercion errors.

    Attributes:
        success: False only when the file could not be parsed at all
        rows: Header-keyed rows in file order (empty rows dropped)
        headers: Header row as found in the file
        errors: Cell coercion problems (raw value kept in the row)
        metadata: File metadata, present on success
        error: Fatal ingestion error message
    """

    success: bool
    rows: list[dict[str, Any]] = Field(default_factory=list)
    headers: list[str] = Field(default_factory=list)
    errors: list[ImportRowError] = Field(default_factory=list)
    metadata: FileMetadata | None = None
    error: str | None = None
