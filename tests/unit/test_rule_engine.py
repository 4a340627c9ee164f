"""
Unit tests for rule engine, rule configuration and the schema validator.
"""

from datetime import date
from decimal import Decimal

import pytest

from records_interchange.core.rules import RuleConfigBuilder, RuleConfigLoader, RuleEngine, SchemaValidator
from records_interchange.core.rules import schema_validator as schema_validator_module
from records_interchange.core.vocabulary import RecordType


@pytest.mark.unit
class TestRuleEngine:
    """Tests for RuleEngine"""

    def test_validate_record_all_pass(self):
        """Test validation passes when all rules pass"""
        rules = RuleConfigBuilder() \
            .add_required_field("title") \
            .add_type_check("amount", "decimal") \
            .add_range("amount", min_exclusive=0, max_value=100000000) \
            .build()

        engine = RuleEngine(rules)
        result = engine.validate_record({"title": "전기요금", "amount": "150,000"})

        assert result.passed is True
        assert len(result.failed_rules) == 0
        assert result.values["amount"] == Decimal("150000")

    def test_validate_record_with_failures(self):
        """Test validation fails when rules fail"""
        rules = RuleConfigBuilder() \
            .add_required_field("title") \
            .add_required_field("amount") \
            .build()

        result = RuleEngine(rules).validate_record({"title": "전기요금"}, row=4)

        assert result.passed is False
        assert "amount_required" in result.failed_rules
        assert result.errors[0].row == 4
        assert result.errors[0].field == "amount"

    def test_every_bad_field_is_reported(self):
        """Test a row with two bad fields yields two errors"""
        rules = RuleConfigBuilder() \
            .add_required_field("name") \
            .add_regex("email", r"^[^@\s]+@[^@\s]+\.[^@\s]+$", "Invalid email format") \
            .build()

        result = RuleEngine(rules).validate_record({"name": "", "email": "bad-email"})

        assert {error.field for error in result.errors} == {"name", "email"}

    def test_any_of_sees_blank_fields(self):
        """Test an any_of rule fails a row whose listed fields are all blank"""
        rules = RuleConfigBuilder() \
            .add_any_of("email", ["email", "phone"]) \
            .build()
        engine = RuleEngine(rules)

        assert engine.validate_record({"email": "", "phone": None}).failed_rules == ["email_any_of"]
        assert engine.validate_record({"email": "", "phone": "010-1234-5678"}).passed is True

    def test_later_rules_of_a_failed_field_are_skipped(self):
        """Test a field reports only its first failure"""
        rules = RuleConfigBuilder() \
            .add_type_check("amount", "decimal") \
            .add_range("amount", min_exclusive=0) \
            .build()

        result = RuleEngine(rules).validate_record({"amount": "abc"})

        assert len(result.errors) == 1
        assert result.failed_rules == ["amount_type_check"]

    def test_blank_optional_fields_are_skipped_and_nulled(self):
        """Test rules do not run on blank optional fields, which become None"""
        rules = RuleConfigBuilder().add_type_check("birthDate", "date").build()

        result = RuleEngine(rules).validate_record({"birthDate": "  "})

        assert result.passed is True
        assert result.values["birthDate"] is None

    def test_defaults_applied(self):
        """Test defaults fill absent or blank fields before rules run"""
        rules = RuleConfigBuilder().add_enum("status", "member.status").with_default("status", "ACTIVE")

        engine = RuleEngine(rules.build(), rules.defaults)

        assert engine.validate_record({}).values["status"] == "ACTIVE"
        assert engine.validate_record({"status": ""}).values["status"] == "ACTIVE"
        assert engine.validate_record({"status": "비활동"}).values["status"] == "INACTIVE"

    def test_warning_severity_does_not_fail(self):
        """Test warning rules are recorded but do not fail the row"""
        rules = [{
            "rule_name": "notes_short",
            "rule_type": "length",
            "field_name": "notes",
            "parameters": {"max": 3},
            "severity": "warning",
        }]

        result = RuleEngine(rules).validate_record({"notes": "long note"})

        assert result.passed is True
        assert result.warnings == ["notes_short"]

    def test_not_future_uses_injected_today(self):
        """Test not_future rules compare against the engine's reference date"""
        rules = RuleConfigBuilder().add_type_check("visitDate", "date").add_not_future("visitDate").build()
        engine = RuleEngine(rules, today=lambda: date(2025, 3, 1))

        assert engine.validate_record({"visitDate": "2025-03-01"}).passed is True
        assert engine.validate_record({"visitDate": "2025-03-02"}).passed is False

    def test_unknown_rule_type(self):
        """Test unknown rule types are rejected"""
        rules = [{"rule_name": "x", "rule_type": "telepathy", "field_name": "name"}]

        with pytest.raises(ValueError, match="Unknown rule type"):
            RuleEngine(rules)

    def test_disabled_rule_skipped(self):
        """Test disabled rules are not built"""
        rules = [{"rule_name": "x", "rule_type": "required_field", "field_name": "name", "enabled": False}]

        assert RuleEngine(rules).validators == []

    def test_rule_summary(self):
        """Test rule summary counts"""
        rules = RuleConfigBuilder() \
            .add_required_field("name") \
            .add_length("name", max_length=50) \
            .add_required_field("code") \
            .build()

        summary = RuleEngine(rules).get_rule_summary()

        assert summary["total_rules"] == 3
        assert summary["rules_by_type"] == {"required_field": 2, "length": 1}
        assert summary["rules_by_severity"] == {"error": 3}


@pytest.mark.unit
class TestRuleConfigLoader:
    """Tests for RuleConfigLoader"""

    def test_load_rules_and_defaults(self, tmp_path):
        """Test YAML rules and defaults are parsed"""
        config = tmp_path / "member.yaml"
        config.write_text(
            """
defaults:
  status: ACTIVE
rules:
  name:
    - type: required_field
    - type: length
      name: name_len
      params:
        max: 10
""",
            encoding="utf-8",
        )

        loader = RuleConfigLoader(config)
        rules = loader.load_rules()

        assert [rule["rule_name"] for rule in rules] == ["name_required_field_0", "name_len"]
        assert rules[1]["parameters"] == {"max": 10}
        assert loader.load_defaults() == {"status": "ACTIVE"}

    def test_missing_file(self, tmp_path):
        """Test a missing configuration file"""
        with pytest.raises(FileNotFoundError):
            RuleConfigLoader(tmp_path / "missing.yaml")

    def test_missing_rules_section(self, tmp_path):
        """Test configurations without a rules section are rejected"""
        config = tmp_path / "empty.yaml"
        config.write_text("defaults: {}\n", encoding="utf-8")

        with pytest.raises(ValueError, match="rules"):
            RuleConfigLoader(config).load_rules()

    def test_invalid_severity(self, tmp_path):
        """Test severities other than error/warning are rejected"""
        config = tmp_path / "bad.yaml"
        config.write_text("rules:\n  name:\n    - type: required_field\n      severity: fatal\n", encoding="utf-8")

        with pytest.raises(ValueError, match="Invalid severity"):
            RuleConfigLoader(config).load_rules()

    def test_packaged_schemas_load(self):
        """Test every packaged schema file builds an engine"""
        for record_type in RecordType:
            loader = RuleConfigLoader.for_record_type(record_type)
            engine = RuleEngine(loader.load_rules(), loader.load_defaults())
            assert len(engine.validators) > 0


@pytest.mark.unit
class TestSchemaValidator:
    """Tests for SchemaValidator over the packaged schemas"""

    def test_member_defaults_and_codes(self, schema_validator):
        """Test member rows get the default status and canonical enum codes"""
        result = schema_validator.validate_row(
            RecordType.MEMBER, 1, {"name": "김철수", "phone": "010-1234-5678", "gender": "여자"}
        )

        assert result.passed is True
        assert result.values["status"] == "ACTIVE"
        assert result.values["gender"] == "FEMALE"

    def test_member_requires_email_or_phone(self, schema_validator):
        """Test members need at least one contact field"""
        result = schema_validator.validate_row(RecordType.MEMBER, 1, {"name": "김철수"})

        assert result.passed is False
        assert result.errors[0].field == "email"

    def test_two_row_example(self, schema_validator):
        """Test bad email on row 1 and empty name on row 2 give one error each"""
        first = schema_validator.validate_row(RecordType.MEMBER, 1, {"name": "Kim", "email": "bad-email"})
        second = schema_validator.validate_row(RecordType.MEMBER, 2, {"name": "", "email": "ok@x.com"})

        assert [(error.row, error.field) for error in first.errors] == [(1, "email")]
        assert [(error.row, error.field) for error in second.errors] == [(2, "name")]

    def test_contribution_amount_must_be_positive(self, schema_validator):
        """Test zero amounts are rejected"""
        result = schema_validator.validate_row(
            RecordType.CONTRIBUTION, 3, {"memberName": "김철수", "amount": "0"}
        )

        assert result.passed is False
        assert result.errors[0].field == "amount"
        assert result.values["offeringType"] == "OTHER"

    def test_future_offering_date(self, schema_validator):
        """Test dates after the injected today are rejected"""
        result = schema_validator.validate_row(
            RecordType.CONTRIBUTION, 1, {"memberName": "김철수", "amount": "1000", "offeringDate": "2025-03-02"}
        )

        assert [error.field for error in result.errors] == ["offeringDate"]

    def test_attendance_boolean_label(self, schema_validator):
        """Test field-specific boolean labels and default service type"""
        result = schema_validator.validate_row(
            RecordType.ATTENDANCE, 1, {"memberName": "김철수", "attendanceDate": "2025-02-23", "isPresent": "결석"}
        )

        assert result.passed is True
        assert result.values["isPresent"] is False
        assert result.values["serviceType"] == "SUNDAY_MORNING"

    def test_attendance_unknown_boolean_token(self, schema_validator):
        """Test unrecognized boolean tokens are validation errors"""
        result = schema_validator.validate_row(
            RecordType.ATTENDANCE, 1, {"memberName": "김철수", "attendanceDate": "2025-02-23", "isPresent": "maybe"}
        )

        assert [error.field for error in result.errors] == ["isPresent"]

    def test_organization_code_format(self, schema_validator):
        """Test organization codes must be upper-case identifiers"""
        result = schema_validator.validate_row(RecordType.ORGANIZATION, 1, {"code": "youth-1", "name": "청년1부"})

        assert [error.field for error in result.errors] == ["code"]

    def test_explicit_engines(self):
        """Test programmatic engines bypass the YAML schemas"""
        engine = RuleEngine(RuleConfigBuilder().add_required_field("title").build())
        validator = SchemaValidator(engines={RecordType.EXPENSE_REPORT: engine})

        result = validator.validate_row(RecordType.EXPENSE_REPORT, 1, {"title": ""})

        assert result.failed_rules == ["title_required"]

    def test_engine_built_once_and_summarized(self, schema_validator, monkeypatch):
        """Test engines are cached per record type and their rule summary is logged"""
        logged = []
        monkeypatch.setattr(schema_validator_module.logger, "debug", lambda message, extra=None: logged.append(extra))

        first = schema_validator.engine_for(RecordType.ORGANIZATION)
        again = schema_validator.engine_for(RecordType.ORGANIZATION)

        assert first is again
        assert len(logged) == 1
        assert logged[0]["total_rules"] == len(first.validators)
        assert logged[0]["record_type"] == "organization"
