"""
EnumValidator - validates membership in a bilingual vocabulary.
"""

from typing import Any

from records_interchange.core.vocabulary import get_vocabulary

from .base_validator import BaseValidator


class EnumValidator(BaseValidator):
    """
    Validates that a value is a code, label or alias of a vocabulary and
    replaces it with the canonical code.

    Parameters:
    - vocabulary: Registered vocabulary name (e.g. "member.gender")
    """

    def __init__(self, field_name: str, parameters: dict[str, Any] | None = None):
        super().__init__(field_name, parameters)

        vocabulary = self.parameters.get("vocabulary")
        if not vocabulary:
            raise ValueError("EnumValidator requires 'vocabulary' parameter")
        self.vocabulary = get_vocabulary(vocabulary)

    def validate(self, value: Any, record: dict[str, Any]) -> Any:
        try:
            return self.vocabulary.parse(value)
        except ValueError as e:
            raise self.error(str(e), value)

    @property
    def rule_type(self) -> str:
        return "enum"
