"""
Unit tests for the import pipeline and referential validation.
"""

from datetime import date
from decimal import Decimal

import pytest

from records_interchange.batch import ImportPipeline
from records_interchange.core.models import DuplicateMode, ImportOptions
from records_interchange.core.rules import ReferentialValidator
from records_interchange.core.vocabulary import RecordType
from records_interchange.orchestration.cancellation import CancellationToken
from records_interchange.persistence import load_validation_context


@pytest.fixture
def pipeline(store, schema_validator, today):
    return ImportPipeline(store, schema_validator, today=today)


async def seed_members(store, *names):
    for idx, name in enumerate(names):
        await store.create_record(RecordType.MEMBER, {"name": name, "email": f"seed{idx}@example.com"})


@pytest.mark.unit
class TestReferentialValidator:
    """Tests for ReferentialValidator"""

    @pytest.mark.asyncio
    async def test_member_name_resolution(self, store):
        """Test member names resolve to ids and unknown names are errors"""
        await seed_members(store, "김철수")
        context = await load_validation_context(store)
        validator = ReferentialValidator(RecordType.CONTRIBUTION, context)

        values, errors = validator.validate(1, {"memberName": " 김철수 "})
        assert errors == []
        assert values["memberId"] == context.members[0].id

        _, errors = validator.validate(2, {"memberName": "홍길동"})
        assert [(error.row, error.field) for error in errors] == [(2, "memberName")]

    @pytest.mark.asyncio
    async def test_position_and_department(self, store):
        """Test position and department names resolve against the catalogue"""
        validator = ReferentialValidator(RecordType.MEMBER, await load_validation_context(store))

        values, errors = validator.validate(1, {"name": "김철수", "positionName": "권사", "departmentName": "선교부"})

        assert values["positionId"] == "position-2"
        assert [error.field for error in errors] == ["departmentName"]

    @pytest.mark.asyncio
    async def test_duplicate_email_in_file(self, store):
        """Test a repeated email is reported on the later row"""
        validator = ReferentialValidator(RecordType.MEMBER, await load_validation_context(store))

        validator.validate(1, {"name": "김철수", "email": "kim@example.com"})
        _, errors = validator.validate(3, {"name": "김영수", "email": "KIM@example.com"})

        assert "first seen on row 1" in errors[0].message

    @pytest.mark.asyncio
    async def test_existing_email_depends_on_mode(self, store):
        """Test collisions with stored records are errors only in create-only mode"""
        await seed_members(store, "김철수")
        context = await load_validation_context(store)

        _, create_errors = ReferentialValidator(RecordType.MEMBER, context).validate(
            1, {"name": "김철수", "email": "seed0@example.com"}
        )
        _, update_errors = ReferentialValidator(RecordType.MEMBER, context, DuplicateMode.UPDATE_EXISTING).validate(
            1, {"name": "김철수", "email": "seed0@example.com"}
        )

        assert [error.field for error in create_errors] == ["email"]
        assert update_errors == []

    @pytest.mark.asyncio
    async def test_name_collisions_when_creating(self, store):
        """Test a stored or repeated member name is an error only in create-only mode"""
        await seed_members(store, "Kim")
        context = await load_validation_context(store)
        validator = ReferentialValidator(RecordType.MEMBER, context)

        _, stored = validator.validate(1, {"name": " kim ", "phone": "010-1111-2222"})
        _, first = validator.validate(2, {"name": "이영희", "phone": "010-3333-4444"})
        _, repeated = validator.validate(5, {"name": "이영희", "email": "lee@example.com"})
        _, updating = ReferentialValidator(RecordType.MEMBER, context, DuplicateMode.UPDATE_EXISTING).validate(
            1, {"name": "Kim", "phone": "010-1111-2222"}
        )

        assert [(error.row, error.field) for error in stored] == [(1, "name")]
        assert first == []
        assert "first seen on row 2" in repeated[0].message
        assert updating == []

    @pytest.mark.asyncio
    async def test_parent_code_seen_earlier(self, store):
        """Test a parent listed earlier in the file is accepted"""
        validator = ReferentialValidator(RecordType.ORGANIZATION, await load_validation_context(store))

        _, first = validator.validate(1, {"code": "YOUTH", "name": "청년부"})
        _, child = validator.validate(2, {"code": "YOUTH_1", "name": "청년1부", "parentCode": "YOUTH"})
        _, orphan = validator.validate(3, {"code": "KIDS_1", "name": "유년1부", "parentCode": "KIDS"})
        _, repeated = validator.validate(4, {"code": "YOUTH", "name": "청년부"})

        assert first == [] and child == []
        assert [error.field for error in orphan] == ["parentCode"]
        assert [error.field for error in repeated] == ["code"]

    @pytest.mark.asyncio
    async def test_date_ordering(self, store):
        """Test follow-up dates must come after the visit"""
        validator = ReferentialValidator(RecordType.VISITATION, await load_validation_context(store))

        _, same_day = validator.validate(1, {"visitDate": date(2025, 2, 1), "followUpDate": date(2025, 2, 1)})
        _, later = validator.validate(2, {"visitDate": date(2025, 2, 1), "followUpDate": date(2025, 2, 8)})

        assert [error.field for error in same_day] == ["followUpDate"]
        assert later == []

    @pytest.mark.asyncio
    async def test_age_limit(self, store, today):
        """Test birth dates implying an age over 120 are rejected"""
        validator = ReferentialValidator(RecordType.MEMBER, await load_validation_context(store), today=today)

        _, too_old = validator.validate(1, {"name": "a", "birthDate": date(1904, 3, 1)})
        _, oldest = validator.validate(2, {"name": "b", "birthDate": date(1904, 3, 2)})

        assert "got 121" in too_old[0].message
        assert oldest == []


@pytest.mark.unit
class TestImportPipeline:
    """Tests for ImportPipeline"""

    @pytest.mark.asyncio
    async def test_two_bad_rows_reported_together(self, pipeline):
        """Test a bad email on row 1 and an empty name on row 2 fail both rows"""
        rows = [{"name": "Kim", "email": "bad-email"}, {"name": "", "email": "ok@x.com"}]

        result = await pipeline.run(rows, RecordType.MEMBER, ImportOptions(continue_on_error=True))

        assert result.summary.total == 2
        assert result.summary.successful == 0
        assert result.summary.failed == 2
        assert [(error.row, error.field) for error in result.errors] == [(1, "email"), (2, "name")]

    @pytest.mark.asyncio
    async def test_import_members(self, pipeline, store, member_rows):
        """Test valid localized rows are persisted with resolved references"""
        result = await pipeline.run(member_rows, RecordType.MEMBER)

        assert result.success is True
        assert result.persisted is True
        assert result.summary.created == 3
        first = result.data[0]
        assert first["positionId"] == "position-1"
        assert first["gender"] == "MALE"
        assert "positionName" not in first
        assert await store.count_records(RecordType.MEMBER) == 3

    @pytest.mark.asyncio
    async def test_validate_only_never_persists(self, pipeline, store, member_rows):
        """Test validate_only returns candidates without writing"""
        result = await pipeline.run(member_rows, RecordType.MEMBER, ImportOptions(validate_only=True))

        assert result.success is True
        assert result.persisted is False
        assert len(result.data) == 3
        assert await store.count_records(RecordType.MEMBER) == 0

    @pytest.mark.asyncio
    async def test_fail_fast_persists_nothing(self, pipeline, store, member_rows):
        """Test a validation failure with continue_on_error off writes no rows"""
        member_rows[1]["이메일"] = "not-an-email"

        result = await pipeline.run(member_rows, RecordType.MEMBER)

        assert result.success is False
        assert result.persisted is False
        assert result.summary.total == 2
        assert result.summary.successful == 1
        assert result.summary.failed == 1
        assert result.summary.unprocessed == 1
        assert await store.count_records(RecordType.MEMBER) == 0

    @pytest.mark.asyncio
    async def test_continue_on_error_persists_valid_rows(self, pipeline, store, member_rows):
        """Test valid rows are written around an invalid one"""
        member_rows[1]["이메일"] = "not-an-email"

        result = await pipeline.run(member_rows, RecordType.MEMBER, ImportOptions(continue_on_error=True))

        assert result.success is False
        assert result.summary.successful == 2
        assert result.failed_rows == [2]
        assert await store.count_records(RecordType.MEMBER) == 2

    @pytest.mark.asyncio
    async def test_contributions_reference_members(self, pipeline, store):
        """Test contribution rows resolve member names and keep decimal amounts"""
        await seed_members(store, "김철수")
        rows = [
            {"교인명": "김철수", "금액": Decimal("50000"), "헌금종류": "십일조", "헌금일": date(2025, 2, 23)},
            {"교인명": "없는사람", "금액": Decimal("1000")},
        ]

        result = await pipeline.run(rows, RecordType.CONTRIBUTION, ImportOptions(continue_on_error=True))

        assert result.summary.created == 1
        assert result.data[0]["offeringType"] == "TITHE"
        assert result.data[0]["amount"] == Decimal("50000")
        assert [(error.row, error.field) for error in result.errors] == [(2, "memberName")]

    @pytest.mark.asyncio
    async def test_existing_member_name_is_reported(self, pipeline, store):
        """Test validating a row named after a stored member reports the collision"""
        await store.create_record(RecordType.MEMBER, {"name": "Kim", "email": "kim@x.com"})

        result = await pipeline.validate([{"name": "Kim", "phone": "010-1111-2222"}], RecordType.MEMBER, ImportOptions())

        assert result.summary.total == 1
        assert result.summary.failed == 1
        assert [(error.row, error.field) for error in result.errors] == [(1, "name")]

    @pytest.mark.asyncio
    async def test_pre_cancelled_token(self, pipeline, store, member_rows):
        """Test a token cancelled before the run leaves every row unprocessed"""
        token = CancellationToken()
        token.cancel()

        result = await pipeline.run(member_rows, RecordType.MEMBER, cancellation=token)

        assert result.cancelled is True
        assert result.summary.unprocessed == 3
        assert await store.count_records(RecordType.MEMBER) == 0

    @pytest.mark.asyncio
    async def test_update_existing_import(self, pipeline, store, member_rows):
        """Test re-importing the same rows updates instead of duplicating"""
        await pipeline.run(member_rows, RecordType.MEMBER)
        options = ImportOptions(duplicate_mode=DuplicateMode.UPDATE_EXISTING)

        result = await pipeline.run(member_rows, RecordType.MEMBER, options)

        assert result.summary.updated == 3
        assert await store.count_records(RecordType.MEMBER) == 3
