"""
ExportResult, BackupResult and BackupMetadata models (ephemeral).
"""

from datetime import datetime

from pydantic import BaseModel, Field


class ExportResult(BaseModel):
    """
    Outcome of an export or template generation.

    Attributes:
        success: Whether a payload was produced
        filename: Suggested download filename
        payload: Encoded file bytes (CSV or xlsx)
        content_type: MIME type of the payload
        record_count: Number of records written
        error: Failure message
    """

    success: bool
    filename: str | None = None
    payload: bytes | None = None
    content_type: str | None = None
    record_count: int = 0
    error: str | None = None


class BackupResult(ExportResult):
    """
    Outcome of a full, incremental or single-type backup.

    Attributes:
        included_tables: Record types present in the bundle
        record_counts: Rows written per record type
        failed_tables: Record types left out because fetching/formatting failed
        errors: One message per failed record type
        cancelled: Whether a cancellation token stopped the backup
    """

    included_tables: list[str] = Field(default_factory=list)
    record_counts: dict[str, int] = Field(default_factory=dict)
    failed_tables: list[str] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)
    cancelled: bool = False

    class Config:
        json_schema_extra = {
            "example": {
                "success": True,
                "filename": "교회데이터_전체백업_20250101_093000.xlsx",
                "content_type": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
                "record_count": 152,
                "included_tables": ["member", "contribution"],
                "record_counts": {"member": 52, "contribution": 100},
            }
        }


class BackupMetadata(BaseModel):
    """Store-side statistics used to describe what a backup would contain."""

    total_records: int
    record_counts: dict[str, int] = Field(default_factory=dict)
    last_updated: datetime | None = None
    estimated_size: int
