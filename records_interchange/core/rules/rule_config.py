"""
Rule configuration management.

Loads per-record-type field rules and defaults from YAML files and provides
a fluent builder for assembling rule sets in code.
"""

from pathlib import Path
from typing import Any

import yaml

from records_interchange.core.vocabulary import RecordType

# Schema files shipped with the package, one per record type
DEFAULT_SCHEMA_DIR = Path(__file__).resolve().parents[2] / "config" / "schemas"


class RuleConfigLoader:
    """
    Loads validation rules from YAML configuration files.

    Expected YAML format:
    ```yaml
    defaults:
      status: ACTIVE

    rules:
      name:
        - type: required_field
        - type: length
          params:
            min: 1
            max: 50

      amount:
        - type: required_field
        - type: type_check
          params:
            expected_type: decimal
        - type: range
          params:
            min_exclusive: 0
            max: 100000000
    ```
    """

    def __init__(self, config_path: str | Path):
        """
        Initialize the rule config loader.

        Args:
            config_path: Path to the YAML configuration file
        """
        self.config_path = Path(config_path)
        if not self.config_path.exists():
            raise FileNotFoundError(f"Rule configuration file not found: {config_path}")
        self._config: dict[str, Any] | None = None

    @classmethod
    def for_record_type(
        cls, record_type: RecordType, schema_dir: str | Path | None = None
    ) -> "RuleConfigLoader":
        """Loader for the schema file of a record type (e.g. schemas/member.yaml)."""
        directory = Path(schema_dir) if schema_dir else DEFAULT_SCHEMA_DIR
        return cls(directory / f"{record_type.value}.yaml")

    def _load(self) -> dict[str, Any]:
        if self._config is None:
            with open(self.config_path, encoding="utf-8") as f:
                config = yaml.safe_load(f)
            if not config or "rules" not in config:
                raise ValueError("Configuration file must contain 'rules' section")
            self._config = config
        return self._config

    def load_rules(self) -> list[dict[str, Any]]:
        """
        Load and parse validation rules from YAML file.

        Returns:
            List of rule dictionaries suitable for RuleEngine

        Raises:
            ValueError: If YAML is invalid or missing required fields
        """
        rules = []
        field_rules = self._load()["rules"]

        for field_name, field_rule_list in field_rules.items():
            if not isinstance(field_rule_list, list):
                raise ValueError(f"Rules for field '{field_name}' must be a list")

            for idx, rule_def in enumerate(field_rule_list):
                rule = self._parse_rule(field_name, rule_def, idx)
                rules.append(rule)

        return rules

    def load_defaults(self) -> dict[str, Any]:
        """
        Load field defaults applied when a field is absent or blank.

        Raises:
            ValueError: If the defaults section is not a mapping
        """
        defaults = self._load().get("defaults") or {}
        if not isinstance(defaults, dict):
            raise ValueError("'defaults' section must be a mapping of field -> value")
        return dict(defaults)

    def _parse_rule(self, field_name: str, rule_def: dict[str, Any], idx: int) -> dict[str, Any]:
        """
        Parse a single rule definition.

        Args:
            field_name: The field this rule applies to
            rule_def: The rule definition from YAML
            idx: Index of this rule for the field (for naming)

        Returns:
            Parsed rule dictionary

        Raises:
            ValueError: If rule definition is invalid
        """
        if "type" not in rule_def:
            raise ValueError(f"Rule for field '{field_name}' is missing 'type'")

        rule_type = rule_def["type"]
        rule_name = rule_def.get("name", f"{field_name}_{rule_type}_{idx}")
        parameters = rule_def.get("params", rule_def.get("parameters", {})) or {}

        severity = rule_def.get("severity", "error")
        if severity not in ("error", "warning"):
            raise ValueError(f"Invalid severity '{severity}' for rule '{rule_name}'. Must be 'error' or 'warning'")

        enabled = rule_def.get("enabled", True)

        return {
            "rule_name": rule_name,
            "rule_type": rule_type,
            "field_name": field_name,
            "parameters": parameters,
            "severity": severity,
            "enabled": enabled,
        }


class RuleConfigBuilder:
    """
    Programmatically build rule configurations (for testing or dynamic rules).
    """

    def __init__(self):
        """Initialize empty rule configuration."""
        self.rules: list[dict[str, Any]] = []
        self.defaults: dict[str, Any] = {}

    def _add(self, field_name: str, rule_type: str, parameters: dict[str, Any], suffix: str | None = None) -> "RuleConfigBuilder":
        self.rules.append({
            "rule_name": f"{field_name}_{suffix or rule_type}",
            "rule_type": rule_type,
            "field_name": field_name,
            "parameters": parameters,
            "severity": "error",
            "enabled": True,
        })
        return self

    def add_required_field(self, field_name: str, allow_empty_string: bool = False) -> "RuleConfigBuilder":
        """Add a required field rule."""
        return self._add(field_name, "required_field", {"allow_empty_string": allow_empty_string}, "required")

    def add_type_check(self, field_name: str, expected_type: str, vocabulary: str | None = None) -> "RuleConfigBuilder":
        """Add a type coercion rule."""
        params: dict[str, Any] = {"expected_type": expected_type}
        if vocabulary:
            params["vocabulary"] = vocabulary
        return self._add(field_name, "type_check", params)

    def add_length(self, field_name: str, min_length: int | None = None, max_length: int | None = None) -> "RuleConfigBuilder":
        """Add a text length rule."""
        params = {}
        if min_length is not None:
            params["min"] = min_length
        if max_length is not None:
            params["max"] = max_length
        return self._add(field_name, "length", params)

    def add_range(
        self,
        field_name: str,
        min_value: float | None = None,
        max_value: float | None = None,
        min_exclusive: float | None = None,
    ) -> "RuleConfigBuilder":
        """Add a range validation rule."""
        params = {}
        if min_value is not None:
            params["min"] = min_value
        if max_value is not None:
            params["max"] = max_value
        if min_exclusive is not None:
            params["min_exclusive"] = min_exclusive
        return self._add(field_name, "range", params)

    def add_regex(self, field_name: str, pattern: str, message: str | None = None) -> "RuleConfigBuilder":
        """Add a regex validation rule."""
        params = {"pattern": pattern}
        if message:
            params["message"] = message
        return self._add(field_name, "regex", params)

    def add_enum(self, field_name: str, vocabulary: str) -> "RuleConfigBuilder":
        """Add a vocabulary membership rule."""
        return self._add(field_name, "enum", {"vocabulary": vocabulary})

    def add_not_future(self, field_name: str) -> "RuleConfigBuilder":
        """Add a date-not-in-the-future rule."""
        return self._add(field_name, "not_future", {})

    def add_any_of(self, field_name: str, fields: list[str]) -> "RuleConfigBuilder":
        """Add an at-least-one-of rule reported on field_name."""
        return self._add(field_name, "any_of", {"fields": fields})

    def with_default(self, field_name: str, value: Any) -> "RuleConfigBuilder":
        """Set a default applied when the field is absent or blank."""
        self.defaults[field_name] = value
        return self

    def build(self) -> list[dict[str, Any]]:
        """Build and return the rule configuration."""
        return self.rules
