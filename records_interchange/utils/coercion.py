"""
Value coercion utilities shared by the file ingestor and the schema validator.

Every parser accepts the already-typed value (date, Decimal, bool) unchanged
and raises ValueError for anything it cannot interpret.
"""

import re
from datetime import date, datetime, timedelta
from decimal import Decimal, InvalidOperation
from typing import Any

from records_interchange.core.vocabulary import BOOLEAN, EnumVocabulary

# Spreadsheet serial dates count days from 1899-12-30 (includes the 1900 leap-year quirk)
EXCEL_EPOCH = date(1899, 12, 30)
MAX_EXCEL_SERIAL = 2958465  # 9999-12-31

_YMD = re.compile(r"^(\d{4})[-/.](\d{1,2})[-/.](\d{1,2})\.?$")
_DMY = re.compile(r"^(\d{1,2})[-/.](\d{1,2})[-/.](\d{4})$")
_KOREAN = re.compile(r"^(\d{4})년\s*(\d{1,2})월\s*(\d{1,2})일$")
_ISO_DATETIME = re.compile(r"^(\d{4}-\d{2}-\d{2})[T ]\d{2}:\d{2}")
_AMOUNT_NOISE = re.compile(r"[,\s원₩]")


def is_blank(value: Any) -> bool:
    """True for None and whitespace-only strings."""
    return value is None or (isinstance(value, str) and value.strip() == "")


def parse_date(value: Any) -> date:
    """
    Parse a date from the formats found in uploaded spreadsheets.

    Accepts YYYY-MM-DD / YYYY/MM/DD / YYYY.MM.DD, DD-MM-YYYY / DD/MM/YYYY /
    DD.MM.YYYY, "YYYY년 M월 D일", ISO datetimes, spreadsheet serial numbers
    and native date/datetime values.

    Examples:
        >>> parse_date("2024.03.01")
        datetime.date(2024, 3, 1)
        >>> parse_date("2024년 3월 1일")
        datetime.date(2024, 3, 1)
        >>> parse_date(45352)
        datetime.date(2024, 3, 1)

    Raises:
        ValueError: If the value is not a recognizable date
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, (int, float, Decimal)) and not isinstance(value, bool):
        serial = float(value)
        if 1 <= serial <= MAX_EXCEL_SERIAL:
            return EXCEL_EPOCH + timedelta(days=int(serial))
        raise ValueError(f"'{value}' is not a valid date serial")

    text = str(value).strip()
    match = _ISO_DATETIME.match(text)
    if match:
        text = match.group(1)

    for pattern, order in ((_YMD, "ymd"), (_KOREAN, "ymd"), (_DMY, "dmy")):
        match = pattern.match(text)
        if not match:
            continue
        first, second, third = (int(part) for part in match.groups())
        year, month, day = (first, second, third) if order == "ymd" else (third, second, first)
        try:
            return date(year, month, day)
        except ValueError as e:
            raise ValueError(f"'{value}' is not a valid date: {e}") from e

    raise ValueError(f"'{value}' is not a recognized date format")


def parse_amount(value: Any) -> Decimal:
    """
    Parse a monetary amount, ignoring thousands separators and currency marks.

    Examples:
        >>> parse_amount("1,234,000")
        Decimal('1234000')
        >>> parse_amount("50,000원")
        Decimal('50000')

    Raises:
        ValueError: If the value is not a number
    """
    if isinstance(value, bool):
        raise ValueError(f"'{value}' is not a number")
    if isinstance(value, Decimal):
        return value
    if isinstance(value, int):
        return Decimal(value)
    if isinstance(value, float):
        return Decimal(str(value))

    text = _AMOUNT_NOISE.sub("", str(value))
    try:
        amount = Decimal(text)
    except InvalidOperation:
        raise ValueError(f"'{value}' is not a number") from None
    if not amount.is_finite():
        raise ValueError(f"'{value}' is not a number")
    return amount


def parse_boolean(value: Any, vocabulary: EnumVocabulary = BOOLEAN) -> bool:
    """
    Parse a boolean from the affirmative/negative token vocabulary.

    Unrecognized tokens raise instead of defaulting to True.

    Raises:
        ValueError: If the token is not part of the vocabulary
    """
    if isinstance(value, bool):
        return value
    return bool(vocabulary.parse(value))


def clean_text(value: Any) -> str:
    """Render a cell value as trimmed text (integral floats lose their '.0')."""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, datetime):
        return value.date().isoformat() if value.time() == datetime.min.time() else value.isoformat()
    if isinstance(value, date):
        return value.isoformat()
    return str(value).strip()
