"""
NotFutureValidator - rejects dates later than today.
"""

from datetime import date, datetime
from typing import Any, Callable

from .base_validator import BaseValidator


class NotFutureValidator(BaseValidator):
    """
    Validates that a date value is not in the future.

    Parameters:
    - today: Optional callable returning the reference date (defaults to date.today)
    """

    def __init__(self, field_name: str, parameters: dict[str, Any] | None = None):
        super().__init__(field_name, parameters)
        self.today: Callable[[], date] = self.parameters.get("today", date.today)

    def validate(self, value: Any, record: dict[str, Any]) -> Any:
        if isinstance(value, datetime):
            candidate = value.date()
        elif isinstance(value, date):
            candidate = value
        else:
            raise self.error(f"Expected a date, got {type(value).__name__}", value)

        if candidate > self.today():
            raise self.error(f"Date {candidate.isoformat()} is in the future", value)

        return value

    @property
    def rule_type(self) -> str:
        return "not_future"
