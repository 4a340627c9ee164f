"""
Base validator interface for all field rules.

All validators inherit from BaseValidator and implement validate(), which
returns the value to keep in the candidate record (validators that coerce
return the coerced value, the others return their input unchanged).
"""

from abc import ABC, abstractmethod
from typing import Any


class ValidationError(Exception):
    """Raised when a validation rule fails."""

    def __init__(self, rule_name: str, field_name: str, message: str, value: Any = None):
        self.rule_name = rule_name
        self.field_name = field_name
        self.message = message
        self.value = value
        super().__init__(f"[{rule_name}] {field_name}: {message}")


class BaseValidator(ABC):
    """
    Abstract base class for all validators.

    Each validator implements a specific rule type (required_field,
    type_check, length, regex, range, not_future, enum, any_of, custom).
    Blank values are only seen by validators that set checks_blank.
    """

    checks_blank = False

    def __init__(self, field_name: str, parameters: dict[str, Any] | None = None):
        """
        Initialize validator.

        Args:
            field_name: Name of the field to validate
            parameters: Rule-specific parameters; "message" overrides the error text
        """
        self.field_name = field_name
        self.parameters = parameters or {}
        self.custom_message = self.parameters.get("message")

    @abstractmethod
    def validate(self, value: Any, record: dict[str, Any]) -> Any:
        """
        Check one cell of a canonical row.

        Args:
            value: Cell value after blank-to-None cleanup
            record: The whole row, for rules that look at sibling fields

        Returns:
            The value the candidate record keeps for this field

        Raises:
            ValidationError: The value breaks the rule
        """

    @property
    @abstractmethod
    def rule_type(self) -> str:
        """Key of this validator in the rule engine registry."""

    def error(self, message: str, value: Any = None) -> ValidationError:
        """Build a ValidationError for this rule, honouring a configured message."""
        return ValidationError(
            rule_name=self.rule_type,
            field_name=self.field_name,
            message=self.custom_message or message,
            value=value,
        )

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(field={self.field_name}, params={self.parameters})"
