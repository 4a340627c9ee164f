"""
RegexValidator - checks text fields against a format.
"""

import re
from typing import Any

from .base_validator import BaseValidator

# Formats shared by the record schemas; a rule names one with "format"
FORMATS: dict[str, str] = {
    "email": r"[^@\s]+@[^@\s]+\.[^@\s]+",
    "mobile_phone": r"01[0-9]-?[0-9]{4}-?[0-9]{4}",
    "phone": r"0[2-9][0-9]?-?[0-9]{3,4}-?[0-9]{4}|01[0-9]-?[0-9]{4}-?[0-9]{4}",
    "code": r"[A-Z0-9_]+",
    "person_name": r"[가-힣a-zA-Z\s]+",
}


class RegexValidator(BaseValidator):
    """
    The whole value must match either a named format or an explicit pattern.

    Parameters:
    - format: Key of FORMATS
    - pattern: Regular expression (string or compiled), used when no format is given
    - message: Optional error text shown instead of the default
    """

    def __init__(self, field_name: str, parameters: dict[str, Any] | None = None):
        super().__init__(field_name, parameters)

        format_name = self.parameters.get("format")
        if format_name is not None:
            if format_name not in FORMATS:
                raise ValueError(f"Unknown format '{format_name}' (known: {', '.join(sorted(FORMATS))})")
            pattern = FORMATS[format_name]
        else:
            pattern = self.parameters.get("pattern")
        if not pattern:
            raise ValueError("RegexValidator requires a 'format' or 'pattern' parameter")

        self.format_name = format_name
        if isinstance(pattern, re.Pattern):
            self.pattern = pattern
        else:
            try:
                self.pattern = re.compile(str(pattern))
            except re.error as e:
                raise ValueError(f"Invalid regex pattern for {field_name}: {e}") from e

    def validate(self, value: Any, record: dict[str, Any]) -> Any:
        text = value if isinstance(value, str) else str(value)
        if self.pattern.fullmatch(text) is None:
            expected = self.format_name or f"pattern {self.pattern.pattern}"
            raise self.error(f"'{text}' is not a valid {expected}", value)
        return value

    @property
    def rule_type(self) -> str:
        return "regex"
