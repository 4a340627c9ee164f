"""
WorkbookWriter: compose styled xlsx workbooks with openpyxl.
"""

import io
from typing import Any, Sequence

from openpyxl import Workbook
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter

from records_interchange.core.vocabulary import ColumnSpec

XLSX_CONTENT_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

HEADER_FONT = Font(bold=True, color="FFFFFF")
HEADER_FILL = PatternFill(start_color="2F5496", end_color="2F5496", fill_type="solid")
HEADER_ALIGNMENT = Alignment(horizontal="center", vertical="center")
THIN_BORDER = Border(
    left=Side(style="thin"),
    right=Side(style="thin"),
    top=Side(style="thin"),
    bottom=Side(style="thin"),
)
KEY_FONT = Font(bold=True)

# Excel limits sheet titles to 31 characters
MAX_SHEET_TITLE = 31


class WorkbookWriter:
    """Builds a workbook sheet by sheet; call to_bytes() once done."""

    def __init__(self):
        self.workbook = Workbook()
        self.workbook.remove(self.workbook.active)

    def _style_header(self, worksheet, column_count: int) -> None:
        for col in range(1, column_count + 1):
            cell = worksheet.cell(row=1, column=col)
            cell.font = HEADER_FONT
            cell.fill = HEADER_FILL
            cell.alignment = HEADER_ALIGNMENT
            cell.border = THIN_BORDER
        worksheet.freeze_panes = "A2"

    def add_records_sheet(
        self, title: str, columns: Sequence[ColumnSpec], rows: Sequence[Sequence[Any]]
    ) -> None:
        """
        Add a record sheet: styled header row from the column table, then data rows.

        Args:
            title: Sheet title
            columns: Column specs (header text and width)
            rows: Formatted cell values, one list per record, in column order
        """
        worksheet = self.workbook.create_sheet(title=title[:MAX_SHEET_TITLE])
        worksheet.append([column.header for column in columns])
        for row in rows:
            worksheet.append(list(row))

        self._style_header(worksheet, len(columns))
        for col, column in enumerate(columns, start=1):
            worksheet.column_dimensions[get_column_letter(col)].width = column.width

    def add_key_value_sheet(self, title: str, pairs: Sequence[tuple[str, Any]]) -> None:
        """Add a two-column information sheet (label, value)."""
        worksheet = self.workbook.create_sheet(title=title[:MAX_SHEET_TITLE])
        for key, value in pairs:
            worksheet.append([key, value])
            worksheet.cell(row=worksheet.max_row, column=1).font = KEY_FONT
        worksheet.column_dimensions["A"].width = 20
        worksheet.column_dimensions["B"].width = 40

    def to_bytes(self) -> bytes:
        buffer = io.BytesIO()
        self.workbook.save(buffer)
        return buffer.getvalue()
