"""
Delimited text reader with encoding fallback.
"""

import csv
import io

from records_interchange.core.errors import UnreadableFile

# Tried in order: UTF-8 (BOM tolerated), the Korean regional code page, then a
# permissive single-byte encoding that accepts any byte sequence.
ENCODING_FALLBACKS = ("utf-8-sig", "cp949", "latin-1")


def decode_text(buffer: bytes) -> tuple[str, str]:
    """
    Decode a text file buffer, trying each fallback encoding in turn.

    Args:
        buffer: Raw file bytes

    Returns:
        Tuple of (decoded text, encoding used)

    Raises:
        UnreadableFile: If the content is binary rather than text
    """
    for encoding in ENCODING_FALLBACKS:
        try:
            text = buffer.decode(encoding)
        except UnicodeDecodeError:
            continue
        if "\x00" in text:
            raise UnreadableFile("File content is binary, not delimited text")
        return text, encoding
    raise UnreadableFile("Could not decode file with any supported encoding")


class CSVReader:
    """
    Reads comma-separated text into a 2-D table of strings.

    Quoting follows RFC 4180: fields may be quoted, quotes inside quoted
    fields are doubled, and quoted fields may contain delimiters and newlines.
    """

    def __init__(self, delimiter: str = ","):
        """
        Initialize CSV reader.

        Args:
            delimiter: Field delimiter
        """
        self.delimiter = delimiter

    def read(self, buffer: bytes) -> tuple[list[list[str]], str]:
        """
        Decode and parse a delimited text buffer.

        Args:
            buffer: Raw file bytes

        Returns:
            Tuple of (rows as lists of cell strings, encoding used)

        Raises:
            UnreadableFile: If the buffer cannot be decoded or parsed
        """
        text, encoding = decode_text(buffer)
        reader = csv.reader(io.StringIO(text, newline=""), delimiter=self.delimiter, strict=True)
        try:
            rows = [row for row in reader]
        except csv.Error as e:
            raise UnreadableFile(f"Malformed delimited text at line {reader.line_num}: {e}") from e
        return rows, encoding
