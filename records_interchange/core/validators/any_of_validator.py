"""
AnyOfValidator - requires at least one of several fields.
"""

from typing import Any

from records_interchange.utils.coercion import is_blank

from .base_validator import BaseValidator


class AnyOfValidator(BaseValidator):
    """
    Validates that at least one of the listed fields has a value.

    The error is reported against the field the rule is attached to.

    Parameters:
    - fields: Field names of which at least one must be non-blank
    """

    checks_blank = True

    def __init__(self, field_name: str, parameters: dict[str, Any] | None = None):
        super().__init__(field_name, parameters)
        self.fields = list(self.parameters.get("fields") or [])
        if not self.fields:
            raise ValueError("AnyOfValidator requires 'fields' parameter")

    def validate(self, value: Any, record: dict[str, Any]) -> Any:
        if all(is_blank(record.get(name)) for name in self.fields):
            raise self.error(f"At least one of {', '.join(self.fields)} is required")
        return value

    @property
    def rule_type(self) -> str:
        return "any_of"
