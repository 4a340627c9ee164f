"""
Unit tests for record types, sheet classification, column tables and enum vocabularies.
"""

import pytest

from records_interchange.core.vocabulary import (
    BOOLEAN,
    RESTORE_ORDER,
    ColumnKind,
    EnumEntry,
    EnumVocabulary,
    RecordType,
    SheetKind,
    alias_table,
    classify_sheet,
    get_column,
    get_columns,
    get_vocabulary,
    header_key,
    reference_fields,
)


@pytest.mark.unit
class TestRecordType:
    """Tests for RecordType"""

    @pytest.mark.parametrize("value,expected", [
        ("member", RecordType.MEMBER),
        ("교인명부", RecordType.MEMBER),
        ("Offerings", RecordType.CONTRIBUTION),
        ("expense_report", RecordType.EXPENSE_REPORT),
        ("지출결의서", RecordType.EXPENSE_REPORT),
        (RecordType.ORGANIZATION, RecordType.ORGANIZATION),
    ])
    def test_parse_accepts_values_and_labels(self, value, expected):
        """Test record types resolve from their value or any label"""
        assert RecordType.parse(value) is expected

    def test_parse_unknown_raises(self):
        """Test an unknown name is rejected"""
        with pytest.raises(ValueError, match="Unknown record type"):
            RecordType.parse("payroll")

    def test_labels(self):
        """Test display labels double as bundle sheet names"""
        assert RecordType.MEMBER.label == "교인명부"
        assert RecordType.CONTRIBUTION.label == "헌금내역"
        assert RecordType.ATTENDANCE.english_label == "Attendances"

    def test_restore_order_places_references_first(self):
        """Test organizations and members are restored before the types that reference them"""
        assert RESTORE_ORDER[0] is RecordType.ORGANIZATION
        assert RESTORE_ORDER.index(RecordType.MEMBER) < RESTORE_ORDER.index(RecordType.CONTRIBUTION)
        assert set(RESTORE_ORDER) == set(RecordType)


@pytest.mark.unit
class TestClassifySheet:
    """Tests for classify_sheet"""

    def test_record_sheet(self):
        """Test a record type label classifies as records"""
        classification = classify_sheet("헌금내역")
        assert classification.kind is SheetKind.RECORDS
        assert classification.record_type is RecordType.CONTRIBUTION

    def test_lookup_ignores_case_spacing_and_separators(self):
        """Test sheet names match regardless of case, whitespace and separators"""
        assert classify_sheet(" Expense Reports ").record_type is RecordType.EXPENSE_REPORT
        assert classify_sheet("expense-report").record_type is RecordType.EXPENSE_REPORT

    @pytest.mark.parametrize("name", ["요약", "내보내기정보", "Summary"])
    def test_metadata_sheets(self, name):
        """Test summary and export info sheets classify as metadata"""
        classification = classify_sheet(name)
        assert classification.kind is SheetKind.METADATA
        assert classification.record_type is None

    def test_unknown_sheet(self):
        """Test unrecognized sheets classify as unknown rather than guessing"""
        classification = classify_sheet("Sheet1")
        assert classification.kind is SheetKind.UNKNOWN
        assert classification.record_type is None

    def test_partial_name_does_not_match(self):
        """Test labels are matched exactly, never by substring"""
        assert classify_sheet("교인명부_old").kind is SheetKind.UNKNOWN


@pytest.mark.unit
class TestColumnTables:
    """Tests for column tables and alias lookup"""

    def test_every_record_type_has_columns(self):
        """Test each record type describes its layout"""
        for record_type in RecordType:
            assert len(get_columns(record_type)) > 0

    def test_header_key_normalization(self):
        """Test header keys ignore case and whitespace"""
        assert header_key(" Birth Date ") == "birthdate"
        assert header_key("생 년 월 일") == "생년월일"

    def test_alias_table_maps_field_header_and_aliases(self):
        """Test canonical names, localized headers and aliases map to the field"""
        table = alias_table(RecordType.MEMBER)
        assert table[header_key("phone")] == "phone"
        assert table[header_key("전화번호")] == "phone"
        assert table[header_key("연락처")] == "phone"
        assert table[header_key("Phone")] == "phone"

    def test_reference_fields(self):
        """Test name placeholders point at their identifier fields"""
        assert reference_fields(RecordType.MEMBER) == {
            "positionName": "positionId",
            "departmentName": "departmentId",
        }
        assert reference_fields(RecordType.CONTRIBUTION) == {"memberName": "memberId"}
        assert reference_fields(RecordType.EXPENSE_REPORT) == {}

    def test_get_column(self):
        """Test single column lookup"""
        column = get_column(RecordType.CONTRIBUTION, "amount")
        assert column.kind is ColumnKind.AMOUNT
        assert column.header == "금액"
        assert get_column(RecordType.CONTRIBUTION, "nonexistent") is None


@pytest.mark.unit
class TestEnumVocabulary:
    """Tests for bilingual enum vocabularies"""

    def test_parse_code_label_and_alias(self):
        """Test codes, labels and aliases all resolve to the canonical code"""
        gender = get_vocabulary("member.gender")
        assert gender.parse("MALE") == "MALE"
        assert gender.parse("남") == "MALE"
        assert gender.parse("female") == "FEMALE"
        assert gender.parse(" F ") == "FEMALE"

    def test_label_for_round_trips(self):
        """Test every label parses back to the code it was rendered from"""
        for name in ("member.status", "contribution.offeringType", "attendance.serviceType"):
            vocabulary = get_vocabulary(name)
            for code in vocabulary.codes:
                assert vocabulary.parse(vocabulary.label_for(code)) == code

    def test_unknown_value_raises(self):
        """Test unknown values are rejected with the accepted labels listed"""
        with pytest.raises(ValueError, match="not an accepted value"):
            get_vocabulary("contribution.offeringType").parse("헌금")

    def test_boolean_tokens(self):
        """Test the shared boolean tokens in both languages"""
        for token in ("예", "Y", "true", "1", "O"):
            assert BOOLEAN.parse(token) is True
        for token in ("아니오", "n", "FALSE", "0", "x"):
            assert BOOLEAN.parse(token) is False

    def test_boolean_unknown_token_is_error(self):
        """Test unrecognized boolean tokens never default to True"""
        assert "maybe" not in BOOLEAN
        with pytest.raises(ValueError):
            BOOLEAN.parse("maybe")

    def test_field_specific_boolean_labels(self):
        """Test field-specific boolean labels parse alongside the shared tokens"""
        present = get_vocabulary("attendance.isPresent")
        assert present.parse("출석") is True
        assert present.parse("결석") is False
        assert present.parse("예") is True
        assert present.label_for(False) == "결석"

    def test_conflicting_alias_rejected(self):
        """Test an alias shared by two codes is a configuration error"""
        with pytest.raises(ValueError, match="maps to both"):
            EnumVocabulary("broken", (EnumEntry("A", "에이", ("x",)), EnumEntry("B", "비", ("x",))))

    def test_unknown_vocabulary(self):
        """Test looking up an unregistered vocabulary"""
        with pytest.raises(KeyError, match="Unknown vocabulary"):
            get_vocabulary("member.shoeSize")
