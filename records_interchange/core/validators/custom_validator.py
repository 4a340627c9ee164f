"""
CustomValidator - wraps a caller-supplied check function.
"""

from typing import Any, Callable

from .base_validator import BaseValidator

CheckFunc = Callable[[Any, dict[str, Any]], Any]


class CustomValidator(BaseValidator):
    """
    Runs validator_func(value, record) for checks the rule types cannot express.

    The function fails a value by raising ValueError/TypeError or by returning
    a message string. Any other return value passes and the input value is kept.

    Parameters:
    - validator_func: The check function
    - error_message: Prefix for the failure text
    """

    def __init__(self, field_name: str, parameters: dict[str, Any] | None = None):
        super().__init__(field_name, parameters)

        check = self.parameters.get("validator_func")
        if not callable(check):
            raise ValueError(f"CustomValidator for {field_name} needs a callable 'validator_func'")
        self.check: CheckFunc = check
        self.prefix = self.parameters.get("error_message", f"{field_name} failed a custom check")

    def validate(self, value: Any, record: dict[str, Any]) -> Any:
        try:
            outcome = self.check(value, record)
        except (ValueError, TypeError) as e:
            raise self.error(f"{self.prefix}: {e}", value) from e
        if isinstance(outcome, str):
            raise self.error(f"{self.prefix}: {outcome}", value)
        return value

    @property
    def rule_type(self) -> str:
        return "custom"
