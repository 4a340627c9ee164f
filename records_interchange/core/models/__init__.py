"""
Core data models for the records interchange pipeline.

All models use Pydantic for runtime validation and type safety.
"""

from .candidate_record import CandidateRecord
from .export_result import BackupMetadata, BackupResult, ExportResult
from .import_result import FileMetadata, FileUploadResult, ImportResult, ImportRowError, ImportSummary
from .options import BackupOptions, DateRange, DuplicateMode, ExportOptions, ImportOptions, RestoreOptions
from .restore_report import BackupValidation, PreviewTotals, RestorePreview, RestoreResult, SheetReport
from .validation_result import ValidationResult
from .validation_context import MemberRef, NamedRef, OrganizationRef, ValidationContext, lookup_key

__all__ = [
    "CandidateRecord",
    "ImportRowError",
    "ImportSummary",
    "ImportResult",
    "FileMetadata",
    "FileUploadResult",
    "ExportResult",
    "BackupResult",
    "BackupMetadata",
    "SheetReport",
    "PreviewTotals",
    "RestorePreview",
    "RestoreResult",
    "BackupValidation",
    "DuplicateMode",
    "ImportOptions",
    "ExportOptions",
    "DateRange",
    "BackupOptions",
    "RestoreOptions",
    "ValidationResult",
    "ValidationContext",
    "MemberRef",
    "NamedRef",
    "OrganizationRef",
    "lookup_key",
]
