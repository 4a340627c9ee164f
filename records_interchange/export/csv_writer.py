"""
CSV encoding for exports: UTF-8 with BOM, RFC 4180 quoting, CRLF line endings.
"""

import csv
import io
from typing import Any, Sequence

CSV_CONTENT_TYPE = "text/csv; charset=utf-8"


def write_csv(header: Sequence[str], rows: Sequence[Sequence[Any]]) -> bytes:
    """
    Encode a table as CSV bytes.

    The BOM lets spreadsheet applications detect UTF-8 when opening the file.
    """
    buffer = io.StringIO(newline="")
    writer = csv.writer(buffer, lineterminator="\r\n", quoting=csv.QUOTE_MINIMAL)
    writer.writerow(header)
    for row in rows:
        writer.writerow(["" if value is None else value for value in row])
    return buffer.getvalue().encode("utf-8-sig")
