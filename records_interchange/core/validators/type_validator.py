"""
TypeValidator - validates and coerces field types.
"""

from datetime import date
from decimal import Decimal
from typing import Any

from records_interchange.core.vocabulary import BOOLEAN, get_vocabulary
from records_interchange.utils.coercion import clean_text, parse_amount, parse_boolean, parse_date

from .base_validator import BaseValidator


class TypeValidator(BaseValidator):
    """
    Validates that a field holds (or can be coerced to) the expected type.

    Supported types:
    - "string" / "str": trimmed text
    - "date": see parse_date for accepted formats
    - "boolean" / "bool": bilingual token vocabulary, optionally field-specific
      via the "vocabulary" parameter; unknown tokens fail
    - "decimal" / "amount": thousands separators allowed
    - "integer" / "int"
    """

    TYPE_MAPPING = {
        "string": str,
        "str": str,
        "date": date,
        "boolean": bool,
        "bool": bool,
        "decimal": Decimal,
        "amount": Decimal,
        "integer": int,
        "int": int,
    }

    def __init__(self, field_name: str, parameters: dict[str, Any] | None = None):
        super().__init__(field_name, parameters)

        expected_type = self.parameters.get("expected_type")
        if not expected_type:
            raise ValueError("TypeValidator requires 'expected_type' parameter")

        self.expected_type = self.TYPE_MAPPING.get(str(expected_type).lower())
        if not self.expected_type:
            raise ValueError(f"Unsupported type: {expected_type}")

        vocabulary = self.parameters.get("vocabulary")
        self.vocabulary = get_vocabulary(vocabulary) if vocabulary else BOOLEAN

    def validate(self, value: Any, record: dict[str, Any]) -> Any:
        try:
            return self._coerce_type(value)
        except (ValueError, TypeError) as e:
            raise self.error(str(e), value)

    def _coerce_type(self, value: Any) -> Any:
        """
        Coerce value to the expected type.

        Raises:
            ValueError: If coercion fails
        """
        if self.expected_type is str:
            return clean_text(value)
        if self.expected_type is date:
            return parse_date(value)
        if self.expected_type is bool:
            return parse_boolean(value, self.vocabulary)
        if self.expected_type is Decimal:
            return parse_amount(value)

        # int: "12", 12.0 and Decimal("12") are fine, 12.5 is not
        amount = parse_amount(value)
        if amount != amount.to_integral_value():
            raise ValueError(f"'{value}' is not a whole number")
        return int(amount)

    @property
    def rule_type(self) -> str:
        return "type_check"
