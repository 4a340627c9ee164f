"""
RequiredFieldValidator - the field must carry a value.
"""

from typing import Any

from .base_validator import BaseValidator


class RequiredFieldValidator(BaseValidator):
    """
    Fails when the column is absent, null, or (unless allow_empty_string) blank.

    Blank cells reach this validator as-is; it is one of the few rules that
    inspects them.
    """

    checks_blank = True

    def __init__(self, field_name: str, parameters: dict[str, Any] | None = None):
        super().__init__(field_name, parameters)
        self.allow_empty_string = bool(self.parameters.get("allow_empty_string", False))

    def validate(self, value: Any, record: dict[str, Any]) -> Any:
        if self.field_name not in record:
            raise self.error(f"{self.field_name} is required but the column is missing")
        if value is None:
            raise self.error(f"{self.field_name} is required (got null)")
        if isinstance(value, str) and not value.strip() and not self.allow_empty_string:
            raise self.error(f"{self.field_name} is required (got empty text)", value)
        return value

    @property
    def rule_type(self) -> str:
        return "required_field"
