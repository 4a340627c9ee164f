"""
FileIngestor: raw upload buffer -> header-keyed rows with light type coercion.

Dispatches on the file extension, enforces the size and row ceilings, reads
the first sheet/table, drops entirely empty rows, and coerces date, boolean
and amount cells by matching the header against the record type's column
table. Cell coercion failures are collected as ImportRowErrors (the raw value
is kept); structural problems raise IngestionError subclasses.
"""

from pathlib import PurePath
from typing import Any

from records_interchange.core.errors import (
    EmptyFile,
    FileTooLarge,
    NoHeaderRow,
    TooManyRows,
    UnsupportedFileFormat,
)
from records_interchange.core.models import FileMetadata, FileUploadResult, ImportRowError
from records_interchange.core.vocabulary import (
    BOOLEAN,
    ColumnKind,
    ColumnSpec,
    RecordType,
    get_columns,
    get_vocabulary,
    header_key,
)
from records_interchange.observability.logger import get_logger
from records_interchange.observability.metrics import record_validation_failure
from records_interchange.orchestration.cancellation import ProgressCallback, report
from records_interchange.utils.coercion import clean_text, is_blank, parse_amount, parse_boolean, parse_date

from .csv_reader import CSVReader
from .workbook_reader import WorkbookReader

logger = get_logger(__name__)

DEFAULT_MAX_FILE_SIZE = 10 * 1024 * 1024
DEFAULT_MAX_ROWS = 10_000

COERCED_KINDS = (ColumnKind.DATE, ColumnKind.BOOLEAN, ColumnKind.AMOUNT)


class CellCoercer:
    """
    Per-header cell coercion for one record type.

    A header is matched to a date, boolean or amount column by exact alias
    first, then by substring in either direction; other headers stay text.
    """

    def __init__(self, record_type: RecordType):
        self.record_type = record_type
        self._columns = [column for column in get_columns(record_type) if column.kind in COERCED_KINDS]
        self._cache: dict[str, ColumnSpec | None] = {}

    def column_for(self, header: str) -> ColumnSpec | None:
        """Return the coerced column a header refers to, or None for text headers."""
        key = header_key(header)
        if key in self._cache:
            return self._cache[key]

        match = None
        if key:
            for column in self._columns:
                if key in {header_key(name) for name in (column.field, column.header, *column.aliases)}:
                    match = column
                    break
            if match is None:
                for column in self._columns:
                    names = [header_key(name) for name in (column.header, *column.aliases)]
                    if any(name and (name in key or key in name) for name in names):
                        match = column
                        break
        self._cache[key] = match
        return match

    def coerce(self, header: str, value: Any) -> Any:
        """
        Coerce one cell.

        Raises:
            ValueError: If a date/boolean/amount cell cannot be interpreted
        """
        if is_blank(value):
            return ""
        column = self.column_for(header)
        if column is None:
            return clean_text(value)
        if column.kind is ColumnKind.DATE:
            return parse_date(value)
        if column.kind is ColumnKind.BOOLEAN:
            vocabulary = get_vocabulary(column.vocabulary) if column.vocabulary else BOOLEAN
            return parse_boolean(value, vocabulary)
        return parse_amount(value)


def build_headers(raw_headers: list[Any]) -> list[str]:
    """
    Turn the first row into unique header names.

    Blank header cells become Column_<n>; duplicates get a numeric suffix.

    Raises:
        NoHeaderRow: If every header cell is blank
    """
    if not raw_headers or all(is_blank(value) for value in raw_headers):
        raise NoHeaderRow("The first row must contain column headers")

    # Trailing blank header cells carry no column
    last = max(idx for idx, value in enumerate(raw_headers) if not is_blank(value))
    headers: list[str] = []
    for idx, value in enumerate(raw_headers[: last + 1]):
        key = clean_text(value) if not is_blank(value) else f"Column_{idx + 1}"
        base = key
        count = 0
        while key in headers:
            count += 1
            key = f"{base}_{count}"
        headers.append(key)
    return headers


class FileIngestor:
    """
    Decodes uploaded files into rows.

    Supported formats: .csv (delimited text, encoding auto-detected) and
    .xlsx/.xls (workbook, signature validated, first sheet read).
    """

    SUPPORTED_EXTENSIONS = {
        ".csv": "csv",
        ".xlsx": "excel",
        ".xls": "excel",
    }

    def __init__(
        self,
        max_file_size: int = DEFAULT_MAX_FILE_SIZE,
        max_rows: int = DEFAULT_MAX_ROWS,
    ):
        """
        Initialize file ingestor.

        Args:
            max_file_size: Byte ceiling for uploads
            max_rows: Data row ceiling (header excluded, empty rows not counted)
        """
        self.max_file_size = max_file_size
        self.max_rows = max_rows
        self.csv_reader = CSVReader()
        self.workbook_reader = WorkbookReader()

    def detect_format(self, filename: str) -> str:
        """
        Map a filename to "csv" or "excel".

        Raises:
            UnsupportedFileFormat: For any other extension
        """
        extension = PurePath(filename).suffix.lower()
        file_format = self.SUPPORTED_EXTENSIONS.get(extension)
        if file_format is None:
            raise UnsupportedFileFormat(filename)
        return file_format

    def check_size(self, buffer: bytes) -> None:
        """
        Raises:
            EmptyFile: If the buffer is empty
            FileTooLarge: If the buffer exceeds max_file_size
        """
        if not buffer:
            raise EmptyFile("File is empty")
        if len(buffer) > self.max_file_size:
            raise FileTooLarge(len(buffer), self.max_file_size)

    def read_table(self, buffer: bytes, filename: str) -> tuple[str, list[list[Any]]]:
        """
        Read the raw 2-D table of an upload (first sheet for workbooks).

        Returns:
            Tuple of (format, rows including the header row)
        """
        file_format = self.detect_format(filename)
        self.check_size(buffer)

        if file_format == "csv":
            rows, encoding = self.csv_reader.read(buffer)
            logger.debug(f"Decoded {filename} as {encoding}", extra={"encoding": encoding})
            return file_format, rows

        return file_format, self.workbook_reader.read_first_sheet(buffer).rows

    def rows_from_table(
        self, table: list[list[Any]], record_type: RecordType
    ) -> tuple[list[str], list[dict[str, Any]], list[ImportRowError]]:
        """
        Turn a 2-D table (row 0 = headers) into coerced, header-keyed rows.

        Args:
            table: Rows of cell values, header row first
            record_type: Record type whose column table drives coercion

        Returns:
            Tuple of (headers, rows, coercion errors)

        Raises:
            EmptyFile: If there is no header row or no data row
            NoHeaderRow: If the header row is blank
            TooManyRows: If the data rows exceed max_rows
        """
        if not table:
            raise EmptyFile("File contains no rows")

        headers = build_headers(list(table[0]))
        data_rows = [row for row in table[1:] if not all(is_blank(value) for value in row)]
        if not data_rows:
            raise EmptyFile("File contains a header row but no data rows")
        if len(data_rows) > self.max_rows:
            raise TooManyRows(len(data_rows), self.max_rows)

        coercer = CellCoercer(record_type)
        rows: list[dict[str, Any]] = []
        errors: list[ImportRowError] = []

        for row_number, raw_row in enumerate(data_rows, start=1):
            cells = list(raw_row) + [""] * (len(headers) - len(raw_row))
            row: dict[str, Any] = {}
            for header, value in zip(headers, cells):
                try:
                    row[header] = coercer.coerce(header, value)
                except ValueError as e:
                    row[header] = value
                    column = coercer.column_for(header)
                    errors.append(ImportRowError(
                        row=row_number,
                        field=column.field if column else header,
                        message=str(e),
                        value=value,
                    ))
                    record_validation_failure(record_type.value, "ingest", column.field if column else header)
            rows.append(row)

        return headers, rows, errors

    def ingest(
        self,
        buffer: bytes,
        filename: str,
        record_type: RecordType,
        progress: ProgressCallback | None = None,
    ) -> FileUploadResult:
        """
        Parse an uploaded file into rows for a record type.

        Args:
            buffer: Raw file bytes
            filename: Original filename (extension selects the reader)
            record_type: Target record type
            progress: Called after the file is read and after rows are built

        Returns:
            FileUploadResult with rows, coercion errors and file metadata

        Raises:
            IngestionError: On unsupported format, size/row ceilings, undecodable
                content, or missing header/data rows
        """
        report(progress, 0, f"Reading {filename}")
        file_format, table = self.read_table(buffer, filename)
        report(progress, 50, f"Read {len(table)} lines")
        headers, rows, errors = self.rows_from_table(table, record_type)
        report(progress, 100, f"Parsed {len(rows)} rows")

        logger.info(
            f"Ingested {len(rows)} rows from {filename}",
            extra={"record_type": record_type.value, "coercion_errors": len(errors)},
        )
        return FileUploadResult(
            success=True,
            rows=rows,
            headers=headers,
            errors=errors,
            metadata=FileMetadata(
                filename=filename,
                file_size=len(buffer),
                row_count=len(rows),
                column_count=len(headers),
                format=file_format,
            ),
        )
