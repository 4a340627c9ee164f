"""
File ingestion: upload buffers to header-keyed rows, then canonical fields.
"""

from .csv_reader import CSVReader, decode_text
from .file_ingestor import FileIngestor, build_headers
from .normalizer import ColumnNormalizer, normalize_rows
from .workbook_reader import SheetTable, WorkbookReader, detect_workbook_format

__all__ = [
    "CSVReader",
    "decode_text",
    "FileIngestor",
    "build_headers",
    "ColumnNormalizer",
    "normalize_rows",
    "SheetTable",
    "WorkbookReader",
    "detect_workbook_format",
]
