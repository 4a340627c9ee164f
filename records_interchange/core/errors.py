"""
Exception hierarchy for the interchange pipeline.

Ingestion errors are fatal to a whole operation; row-level problems are never
raised, they are collected as ImportRowError entries on the result objects.
"""


class InterchangeError(Exception):
    """Base class for all pipeline errors."""


class IngestionError(InterchangeError):
    """Raised when an uploaded file cannot be turned into rows at all."""


class FileTooLarge(IngestionError):
    """The file exceeds the configured byte ceiling."""

    def __init__(self, size: int, limit: int):
        self.size = size
        self.limit = limit
        super().__init__(
            f"File is too large: {size} bytes (limit {limit} bytes)"
        )


class TooManyRows(IngestionError):
    """The file holds more data rows than the configured ceiling."""

    def __init__(self, row_count: int, limit: int):
        self.row_count = row_count
        self.limit = limit
        super().__init__(f"Too many rows: {row_count} (limit {limit})")


class EmptyFile(IngestionError):
    """The file has no content, or a header row without any data rows."""


class NoHeaderRow(IngestionError):
    """The first row is missing or has no usable column names."""


class UnreadableFile(IngestionError):
    """The file could not be decoded or fails its binary signature check."""


class UnsupportedFileFormat(IngestionError):
    """The file extension is not one of the accepted formats."""

    def __init__(self, filename: str):
        self.filename = filename
        super().__init__(f"Unsupported file format: {filename}")


class OperationCancelled(InterchangeError):
    """Raised at a checkpoint once a cancellation token has fired."""

    def __init__(self, reason: str = "Operation cancelled"):
        self.reason = reason
        super().__init__(reason)


class BackupError(InterchangeError):
    """A backup could not be composed."""

    def __init__(self, record_type: str, message: str):
        self.record_type = record_type
        self.message = message
        super().__init__(f"Backup failed for {record_type}: {message}")


class RestoreError(InterchangeError):
    """A bundle could not be parsed for restore."""
