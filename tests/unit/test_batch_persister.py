"""
Unit tests for the batch persister and the in-memory store.
"""

from decimal import Decimal

import pytest

from records_interchange.core.models import CandidateRecord, DuplicateMode, ImportOptions
from records_interchange.core.vocabulary import RecordType
from records_interchange.orchestration.cancellation import CancellationToken
from records_interchange.persistence import BatchPersister, InMemoryRecordStore, natural_key


class FlakyStore(InMemoryRecordStore):
    """In-memory store whose create_record fails for chosen names"""

    def __init__(self, failing_names, **kwargs):
        super().__init__(**kwargs)
        self.failing_names = set(failing_names)
        self.create_calls = 0

    async def create_record(self, record_type, values):
        self.create_calls += 1
        if values.get("name") in self.failing_names:
            raise RuntimeError(f"constraint violated for {values['name']}")
        return await super().create_record(record_type, values)


def member_candidates(count, start_row=1):
    return [
        CandidateRecord(
            row=start_row + idx,
            record_type=RecordType.MEMBER,
            values={"name": f"교인{idx}", "email": f"member{idx}@example.com", "status": "ACTIVE"},
            status="validated",
        )
        for idx in range(count)
    ]


@pytest.mark.unit
class TestNaturalKey:
    """Tests for natural key criteria"""

    def test_member_email_then_name(self):
        """Test members match by email first, then by name"""
        assert natural_key(RecordType.MEMBER, {"name": "김철수", "email": "kim@example.com"}) == [
            {"email": "kim@example.com"},
            {"name": "김철수"},
        ]

    def test_blank_components_dropped(self):
        """Test keys with a blank component are left out"""
        assert natural_key(RecordType.MEMBER, {"name": "김철수", "email": ""}) == [{"name": "김철수"}]
        assert natural_key(RecordType.CONTRIBUTION, {"memberId": "m-1", "amount": Decimal("100")}) == []


@pytest.mark.unit
class TestBatchPersister:
    """Tests for BatchPersister"""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("batch_size", [1, 10, 500])
    async def test_batch_size_does_not_change_outcome(self, clock, batch_size):
        """Test the same rows and errors result whatever the batch size"""
        store = FlakyStore({"교인3", "교인17"}, clock=clock)
        options = ImportOptions(continue_on_error=True, batch_size=batch_size)

        result = await BatchPersister(store, RecordType.MEMBER, options).persist(member_candidates(25))

        assert result.summary.total == 25
        assert result.summary.successful == 23
        assert result.summary.failed == 2
        assert result.failed_rows == [4, 18]
        assert await store.count_records(RecordType.MEMBER) == 23

    @pytest.mark.asyncio
    async def test_fail_fast_halts_at_first_failure(self, clock):
        """Test continue_on_error off stops after the first failing row"""
        store = FlakyStore({"교인2"}, clock=clock)
        options = ImportOptions(continue_on_error=False, batch_size=2)

        result = await BatchPersister(store, RecordType.MEMBER, options).persist(member_candidates(6))

        assert result.success is False
        assert store.create_calls == 3
        assert result.summary.total == 3
        assert result.summary.failed == 1
        assert result.summary.unprocessed == 3
        assert result.errors[0].row == 3

    @pytest.mark.asyncio
    async def test_errors_cite_source_rows(self, clock):
        """Test candidate rows, not positions, appear in errors"""
        store = FlakyStore({"교인0"}, clock=clock)
        options = ImportOptions(continue_on_error=True)

        result = await BatchPersister(store, RecordType.MEMBER, options).persist(member_candidates(2, start_row=7))

        assert result.errors[0].row == 7
        assert "constraint violated" in result.errors[0].message

    @pytest.mark.asyncio
    async def test_cancellation_between_batches(self, store):
        """Test a fired token stops before the next batch and reports unprocessed rows"""
        token = CancellationToken()
        progress_calls = []

        def progress(percent, message):
            progress_calls.append(percent)
            token.cancel("user cancelled")

        options = ImportOptions(continue_on_error=True, batch_size=4)
        result = await BatchPersister(store, RecordType.MEMBER, options, token, progress).persist(member_candidates(10))

        assert result.cancelled is True
        assert result.success is False
        assert result.summary.total == 4
        assert result.summary.unprocessed == 6
        assert progress_calls == [40]
        assert await store.count_records(RecordType.MEMBER) == 4

    @pytest.mark.asyncio
    async def test_update_existing(self, store, clock):
        """Test matching records are updated instead of duplicated"""
        existing = await store.create_record(RecordType.MEMBER, {"name": "교인0", "email": "member0@example.com"})
        clock.advance(hours=1)
        options = ImportOptions(duplicate_mode=DuplicateMode.UPDATE_EXISTING)

        result = await BatchPersister(store, RecordType.MEMBER, options).persist(member_candidates(2))

        assert result.summary.updated == 1
        assert result.summary.created == 1
        assert result.data[0]["id"] == existing["id"]
        assert result.data[0]["status"] == "ACTIVE"
        assert await store.count_records(RecordType.MEMBER) == 2

    @pytest.mark.asyncio
    async def test_skip_existing(self, store):
        """Test matching records are left unchanged in skip-existing mode"""
        await store.create_record(RecordType.MEMBER, {"name": "교인0", "email": "member0@example.com"})
        options = ImportOptions(duplicate_mode=DuplicateMode.SKIP_EXISTING)

        result = await BatchPersister(store, RecordType.MEMBER, options).persist(member_candidates(1))

        assert result.summary.skipped == 1
        assert result.summary.successful == 1
        assert "status" not in result.data[0]

    @pytest.mark.asyncio
    async def test_create_only_duplicates(self, store):
        """Test create-only mode never looks up existing records"""
        await BatchPersister(store, RecordType.MEMBER).persist(member_candidates(1))
        await BatchPersister(store, RecordType.MEMBER).persist(member_candidates(1))

        assert await store.count_records(RecordType.MEMBER) == 2

    @pytest.mark.asyncio
    async def test_placeholders_and_store_fields_dropped(self, store):
        """Test name placeholders and store-owned fields are not written"""
        candidate = {"memberName": "김철수", "memberId": "m-1", "amount": Decimal("5000"), "id": "forged"}

        result = await BatchPersister(store, RecordType.CONTRIBUTION).persist([candidate])

        record = result.data[0]
        assert "memberName" not in record
        assert record["memberId"] == "m-1"
        assert record["id"] != "forged"

    @pytest.mark.asyncio
    async def test_organization_parent_from_same_run(self, store):
        """Test children resolve parents written earlier in the same run"""
        options = ImportOptions(continue_on_error=True, batch_size=1)
        rows = [
            {"code": "YOUTH", "name": "청년부"},
            {"code": "YOUTH_1", "name": "청년1부", "parentCode": "YOUTH"},
            {"code": "ORPHAN", "name": "고아", "parentCode": "MISSING"},
        ]

        result = await BatchPersister(store, RecordType.ORGANIZATION, options).persist(rows)

        assert result.data[1]["parentId"] == result.data[0]["id"]
        assert [(error.row, error.message) for error in result.errors] == [
            (3, "Parent organization not found: MISSING")
        ]


@pytest.mark.unit
class TestInMemoryRecordStore:
    """Tests for InMemoryRecordStore"""

    @pytest.mark.asyncio
    async def test_noop_update_keeps_timestamp(self, store, clock):
        """Test updating with identical values leaves updated_at alone"""
        record = await store.create_record(RecordType.MEMBER, {"name": "김철수"})
        clock.advance(days=1)

        unchanged = await store.update_record(RecordType.MEMBER, record["id"], {"name": "김철수"})
        changed = await store.update_record(RecordType.MEMBER, record["id"], {"name": "김철수", "notes": "x"})

        assert unchanged["updated_at"] == record["updated_at"]
        assert changed["updated_at"] == clock()

    @pytest.mark.asyncio
    async def test_modified_after(self, store, clock):
        """Test the watermark filter is exclusive"""
        await store.create_record(RecordType.MEMBER, {"name": "김철수"})
        watermark = clock()
        clock.advance(minutes=5)
        await store.create_record(RecordType.MEMBER, {"name": "이영희"})

        records = await store.fetch_records(RecordType.MEMBER, modified_after=watermark)

        assert [record["name"] for record in records] == ["이영희"]

    @pytest.mark.asyncio
    async def test_find_is_case_insensitive(self, store):
        """Test string criteria ignore case and surrounding whitespace"""
        await store.create_record(RecordType.MEMBER, {"name": "Kim", "email": "Kim@Example.com"})
        assert await store.find_record(RecordType.MEMBER, {"email": " kim@example.com"}) is not None

    @pytest.mark.asyncio
    async def test_update_unknown_id(self, store):
        """Test updating a missing record raises KeyError"""
        with pytest.raises(KeyError):
            await store.update_record(RecordType.MEMBER, "missing", {"name": "x"})
