"""
Rule engine for orchestrating field rules on one row.

The rule engine builds validators from rule configurations, applies them to
a row in order, and produces a ValidationResult holding the coerced values
and one error per failed rule.
"""

from datetime import date
from typing import Any, Callable

from records_interchange.core.models import ImportRowError, ValidationResult
from records_interchange.core.validators import (
    AnyOfValidator,
    BaseValidator,
    CustomValidator,
    EnumValidator,
    LengthValidator,
    NotFutureValidator,
    RangeValidator,
    RegexValidator,
    RequiredFieldValidator,
    TypeValidator,
    ValidationError,
)
from records_interchange.utils.coercion import is_blank


class RuleEngine:
    """
    Orchestrates field rules on rows.

    Rules run in configuration order. Once a rule fails for a field, the
    remaining rules of that field are skipped (they would only repeat the
    failure), while the other fields are still checked so that every bad
    field of a row is reported.
    """

    VALIDATOR_REGISTRY = {
        "required_field": RequiredFieldValidator,
        "type_check": TypeValidator,
        "length": LengthValidator,
        "regex": RegexValidator,
        "range": RangeValidator,
        "not_future": NotFutureValidator,
        "enum": EnumValidator,
        "any_of": AnyOfValidator,
        "custom": CustomValidator,
    }

    def __init__(
        self,
        rules: list[dict[str, Any]],
        defaults: dict[str, Any] | None = None,
        today: Callable[[], date] | None = None,
    ):
        """
        Initialize the rule engine with validation rules.

        Args:
            rules: List of rule configurations, each containing:
                   - rule_name: str
                   - rule_type: str (see VALIDATOR_REGISTRY)
                   - field_name: str
                   - parameters: Dict[str, Any] (optional)
                   - severity: str (error or warning)
                   - enabled: bool (default True)
            defaults: Field -> value applied when the field is absent or blank
            today: Reference date provider for not_future rules
        """
        self.rules = rules
        self.defaults = defaults or {}
        self.today = today
        self.validators: list[tuple[str, str, BaseValidator]] = []
        self._build_validators()

    def _build_validators(self) -> None:
        """Build validator instances from rule configurations."""
        for rule in self.rules:
            if not rule.get("enabled", True):
                continue

            rule_name = rule["rule_name"]
            rule_type = rule["rule_type"]
            field_name = rule["field_name"]
            parameters = dict(rule.get("parameters") or {})
            severity = rule.get("severity", "error")

            validator_class = self.VALIDATOR_REGISTRY.get(rule_type)
            if not validator_class:
                raise ValueError(f"Unknown rule type: {rule_type}")

            if rule_type == "not_future" and self.today is not None:
                parameters.setdefault("today", self.today)

            try:
                validator = validator_class(field_name, parameters)
            except (ValueError, KeyError) as e:
                raise ValueError(f"Failed to create validator for rule '{rule_name}': {e}") from e
            self.validators.append((rule_name, severity, validator))

    @property
    def fields(self) -> list[str]:
        """Fields that carry at least one rule, in rule order."""
        seen: dict[str, None] = {}
        for _, _, validator in self.validators:
            seen.setdefault(validator.field_name, None)
        return list(seen)

    def validate_record(self, payload: dict[str, Any], row: int = 1) -> ValidationResult:
        """
        Validate one row against all rules.

        Args:
            payload: Row keyed by canonical field names
            row: 1-based data row number used in reported errors

        Returns:
            ValidationResult with coerced values and per-rule outcomes
        """
        values = dict(payload)
        for field_name, default in self.defaults.items():
            if is_blank(values.get(field_name)):
                values[field_name] = default

        passed_rules: list[str] = []
        failed_rules: list[str] = []
        warnings: list[str] = []
        errors: list[ImportRowError] = []
        failed_fields: set[str] = set()

        for rule_name, severity, validator in self.validators:
            field_name = validator.field_name
            if field_name in failed_fields:
                continue

            value = values.get(field_name)
            if is_blank(value) and not validator.checks_blank:
                continue

            try:
                result = validator.validate(value, values)
            except ValidationError as e:
                if severity == "error":
                    failed_rules.append(rule_name)
                    failed_fields.add(field_name)
                    errors.append(ImportRowError(
                        row=row,
                        field=field_name,
                        message=e.message,
                        value=e.value if e.value is not None else value,
                    ))
                else:
                    warnings.append(rule_name)
                continue

            passed_rules.append(rule_name)
            if not is_blank(value):
                values[field_name] = result

        # Blank cells become explicit nulls
        for field_name, value in values.items():
            if isinstance(value, str) and value.strip() == "":
                values[field_name] = None

        return ValidationResult(
            row=row,
            passed=not failed_rules,
            values=values,
            passed_rules=passed_rules,
            failed_rules=failed_rules,
            warnings=warnings,
            errors=errors,
        )

    def get_rule_summary(self) -> dict[str, Any]:
        """
        Get summary of loaded rules.

        Returns:
            Dictionary with rule counts and types
        """
        return {
            "total_rules": len(self.validators),
            "rules_by_type": self._count_by_type(),
            "rules_by_severity": self._count_by_severity(),
            "defaults": dict(self.defaults),
        }

    def _count_by_type(self) -> dict[str, int]:
        """Count validators by rule type."""
        counts: dict[str, int] = {}
        for _, _, validator in self.validators:
            rule_type = validator.rule_type
            counts[rule_type] = counts.get(rule_type, 0) + 1
        return counts

    def _count_by_severity(self) -> dict[str, int]:
        """Count validators by severity."""
        counts: dict[str, int] = {}
        for _, severity, _ in self.validators:
            counts[severity] = counts.get(severity, 0) + 1
        return counts
