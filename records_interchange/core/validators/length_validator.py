"""
LengthValidator - bounds the length of text values.
"""

from typing import Any

from .base_validator import BaseValidator


class LengthValidator(BaseValidator):
    """
    Validates that a text value's length is within bounds.

    Parameters:
    - min: Minimum length (inclusive)
    - max: Maximum length (inclusive)
    """

    def __init__(self, field_name: str, parameters: dict[str, Any] | None = None):
        super().__init__(field_name, parameters)
        self.min_length = self.parameters.get("min")
        self.max_length = self.parameters.get("max")

        if self.min_length is None and self.max_length is None:
            raise ValueError("LengthValidator requires at least one of: min, max")

    def validate(self, value: Any, record: dict[str, Any]) -> Any:
        length = len(str(value))

        if self.min_length is not None and length < self.min_length:
            raise self.error(f"Must be at least {self.min_length} characters", value)

        if self.max_length is not None and length > self.max_length:
            raise self.error(f"Must be at most {self.max_length} characters (got {length})", value)

        return value

    @property
    def rule_type(self) -> str:
        return "length"
