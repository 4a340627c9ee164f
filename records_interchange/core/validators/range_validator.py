"""
RangeValidator - validates numeric values are within a specified range.
"""

from decimal import Decimal
from typing import Any

from .base_validator import BaseValidator


class RangeValidator(BaseValidator):
    """
    Validates that a numeric field is within a specified range.

    Parameters:
    - min: Minimum value (inclusive)
    - max: Maximum value (inclusive)
    - min_exclusive: Minimum value (exclusive)
    - max_exclusive: Maximum value (exclusive)

    Boundaries are compared as Decimal so that amounts keep their precision.
    """

    def __init__(self, field_name: str, parameters: dict[str, Any] | None = None):
        super().__init__(field_name, parameters)

        self.min_value = self._bound("min")
        self.max_value = self._bound("max")
        self.min_exclusive = self._bound("min_exclusive")
        self.max_exclusive = self._bound("max_exclusive")

        if all(v is None for v in [self.min_value, self.max_value, self.min_exclusive, self.max_exclusive]):
            raise ValueError("RangeValidator requires at least one of: min, max, min_exclusive, max_exclusive")

    def _bound(self, key: str) -> Decimal | None:
        bound = self.parameters.get(key)
        return None if bound is None else Decimal(str(bound))

    def validate(self, value: Any, record: dict[str, Any]) -> Any:
        if isinstance(value, bool) or not isinstance(value, int | float | Decimal):
            raise self.error(f"Value must be numeric, got {type(value).__name__}", value)

        number = Decimal(str(value))

        if self.min_value is not None and number < self.min_value:
            raise self.error(f"Value {value} is less than minimum {self.min_value}", value)

        if self.min_exclusive is not None and number <= self.min_exclusive:
            raise self.error(f"Value {value} must be greater than {self.min_exclusive}", value)

        if self.max_value is not None and number > self.max_value:
            raise self.error(f"Value {value} exceeds maximum {self.max_value}", value)

        if self.max_exclusive is not None and number >= self.max_exclusive:
            raise self.error(f"Value {value} must be less than {self.max_exclusive}", value)

        return value

    @property
    def rule_type(self) -> str:
        return "range"
