"""
Field rule implementations.

Provides validators for required fields, type coercion, lengths, regex
patterns, ranges, dates in the past, bilingual enumerations, at-least-one-of
groups, and custom validation logic.
"""

from .any_of_validator import AnyOfValidator
from .base_validator import BaseValidator, ValidationError
from .custom_validator import CustomValidator
from .enum_validator import EnumValidator
from .length_validator import LengthValidator
from .not_future_validator import NotFutureValidator
from .range_validator import RangeValidator
from .regex_validator import RegexValidator
from .required_field_validator import RequiredFieldValidator
from .type_validator import TypeValidator

__all__ = [
    "BaseValidator",
    "ValidationError",
    "RequiredFieldValidator",
    "TypeValidator",
    "LengthValidator",
    "RegexValidator",
    "RangeValidator",
    "NotFutureValidator",
    "EnumValidator",
    "AnyOfValidator",
    "CustomValidator",
]
