"""
Workbook reader using openpyxl, with a binary signature check up front.
"""

import io
import zipfile
from dataclasses import dataclass, field
from typing import Any

import openpyxl
from openpyxl.utils.exceptions import InvalidFileException

from records_interchange.core.errors import UnreadableFile

XLSX_SIGNATURE = b"\x50\x4b"  # zip container
XLS_SIGNATURE = b"\xd0\xcf"  # OLE2 compound document


@dataclass
class SheetTable:
    """One worksheet as a 2-D list of cell values."""

    name: str
    rows: list[list[Any]] = field(default_factory=list)


def detect_workbook_format(buffer: bytes) -> str:
    """
    Validate the binary signature of a workbook buffer.

    Returns:
        "xlsx" or "xls"

    Raises:
        UnreadableFile: If the buffer carries neither signature
    """
    if buffer[:2] == XLSX_SIGNATURE:
        return "xlsx"
    if buffer[:2] == XLS_SIGNATURE:
        return "xls"
    raise UnreadableFile("File is not a valid workbook (unrecognized signature)")


def _cell(value: Any) -> Any:
    if value is None:
        return ""
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


class WorkbookReader:
    """
    Reads .xlsx workbooks into SheetTables.

    Legacy .xls files pass the signature check but are rejected with a
    readable message, since openpyxl only parses the zip-based format.
    """

    def read(self, buffer: bytes) -> list[SheetTable]:
        """
        Read every worksheet of a workbook.

        Args:
            buffer: Raw file bytes

        Returns:
            SheetTables in workbook order

        Raises:
            UnreadableFile: On a bad signature, a legacy .xls file, or a corrupt workbook
        """
        if detect_workbook_format(buffer) == "xls":
            raise UnreadableFile("Legacy .xls workbooks are not supported; save the file as .xlsx")

        try:
            workbook = openpyxl.load_workbook(io.BytesIO(buffer), read_only=True, data_only=True)
        except (InvalidFileException, zipfile.BadZipFile, KeyError, OSError) as e:
            raise UnreadableFile(f"Workbook could not be opened: {e}") from e

        try:
            return [
                SheetTable(
                    name=worksheet.title,
                    rows=[[_cell(value) for value in row] for row in worksheet.iter_rows(values_only=True)],
                )
                for worksheet in workbook.worksheets
            ]
        finally:
            workbook.close()

    def read_first_sheet(self, buffer: bytes) -> SheetTable:
        """Read only the first worksheet (single-sheet imports)."""
        sheets = self.read(buffer)
        if not sheets:
            raise UnreadableFile("Workbook has no worksheets")
        return sheets[0]
