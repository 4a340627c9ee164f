"""
Integration tests for the Postgres record store.

Runs the store, the import pipeline and a backup/restore round trip against
a PostgreSQL testcontainer.
"""

from datetime import date
from decimal import Decimal

import pytest
import pytest_asyncio

from records_interchange.core.models import DuplicateMode, ImportOptions
from records_interchange.core.vocabulary import RecordType
from records_interchange.persistence import InMemoryRecordStore
from records_interchange.persistence.connection import DatabaseConnectionPool
from records_interchange.persistence.postgres_store import (
    CATALOG_TABLE,
    RECORD_TABLE,
    PostgresRecordStore,
    calculate_checksum,
    to_criterion_text,
)
from records_interchange.service import InterchangeService


@pytest_asyncio.fixture
async def pg_pool(postgres_container):
    pool = DatabaseConnectionPool(
        host=postgres_container.get_container_host_ip(),
        port=int(postgres_container.get_exposed_port(5432)),
        database="test_congregation",
        user="test_interchange",
        password="test_password",
        min_size=1,
        max_size=4,
    )
    await pool.open()
    yield pool
    await pool.close()


@pytest_asyncio.fixture
async def pg_store(pg_pool, clock):
    store = PostgresRecordStore(pg_pool, clock=clock)
    await store.ensure_schema()
    await pg_pool.execute_command(f"TRUNCATE {RECORD_TABLE}, {CATALOG_TABLE}")
    for name in ("집사", "권사", "장로"):
        await store.add_catalog_entry("position", name)
    for name in ("남선교회", "여선교회", "청년부"):
        await store.add_catalog_entry("department", name)
    return store


@pytest.mark.unit
class TestDocumentHelpers:
    """Tests for JSON document helpers"""

    def test_checksum_ignores_key_order(self):
        """Test checksums are stable across key order"""
        assert calculate_checksum({"a": 1, "b": "김"}) == calculate_checksum({"b": "김", "a": 1})

    @pytest.mark.parametrize("value,expected", [
        (Decimal("50000.50"), "50000.5"),
        (Decimal("5E+4"), "50000"),
        (date(2025, 2, 23), "2025-02-23"),
        (True, "true"),
        (3, "3"),
    ])
    def test_criterion_text(self, value, expected):
        """Test criterion values render the way data ->> key does"""
        assert to_criterion_text(value) == expected


@pytest.mark.integration
class TestConnectionPool:
    """Tests for DatabaseConnectionPool"""

    def test_password_required(self, monkeypatch):
        """Test a pool without a password is rejected"""
        monkeypatch.delenv("DB_PASSWORD", raising=False)
        with pytest.raises(ValueError, match="password"):
            DatabaseConnectionPool(host="localhost")

    @pytest.mark.asyncio
    async def test_query_and_command(self, pg_pool):
        """Test queries return dict rows and commands report row counts"""
        rows = await pg_pool.execute_query("SELECT 42 AS answer")
        assert rows == [{"answer": 42}]
        assert await pg_pool.execute_command("SELECT 1") == 1

    @pytest.mark.asyncio
    async def test_closed_pool(self, postgres_container):
        """Test the context manager opens and closes the pool"""
        async with DatabaseConnectionPool(
            host=postgres_container.get_container_host_ip(),
            port=int(postgres_container.get_exposed_port(5432)),
            database="test_congregation",
            user="test_interchange",
            password="test_password",
        ) as pool:
            assert pool.is_open is True
            assert (await pool.execute_query("SELECT 1 AS test"))[0]["test"] == 1

        assert pool.is_open is False
        with pytest.raises(RuntimeError):
            await pool.execute_query("SELECT 1")


@pytest.mark.integration
class TestPostgresRecordStore:
    """Tests for PostgresRecordStore"""

    @pytest.mark.asyncio
    async def test_create_and_rehydrate(self, pg_store):
        """Test dates and amounts come back as typed values"""
        created = await pg_store.create_record(RecordType.CONTRIBUTION, {
            "memberId": "m-1",
            "amount": Decimal("50000.50"),
            "offeringType": "TITHE",
            "offeringDate": date(2025, 2, 23),
        })

        records = await pg_store.fetch_records(RecordType.CONTRIBUTION)

        assert len(records) == 1
        assert records[0]["id"] == created["id"]
        assert records[0]["amount"] == Decimal("50000.5")
        assert records[0]["offeringDate"] == date(2025, 2, 23)
        assert await pg_store.count_records(RecordType.CONTRIBUTION) == 1
        assert await pg_store.count_records(RecordType.MEMBER) == 0

    @pytest.mark.asyncio
    async def test_find_record(self, pg_store):
        """Test text criteria are trimmed and case-insensitive, typed criteria exact"""
        await pg_store.create_record(RecordType.MEMBER, {"name": "김철수", "email": "Kim@Example.com"})
        await pg_store.create_record(RecordType.CONTRIBUTION, {
            "memberId": "m-1", "amount": Decimal("1000"), "offeringDate": date(2025, 1, 5),
        })

        member = await pg_store.find_record(RecordType.MEMBER, {"email": " kim@example.com "})
        contribution = await pg_store.find_record(
            RecordType.CONTRIBUTION, {"amount": Decimal("1E+3"), "offeringDate": date(2025, 1, 5)}
        )

        assert member["name"] == "김철수"
        assert contribution is not None
        assert await pg_store.find_record(RecordType.MEMBER, {"email": "lee@example.com"}) is None

    @pytest.mark.asyncio
    async def test_unchanged_update_keeps_timestamp(self, pg_store, clock):
        """Test an update that changes nothing leaves updated_at alone"""
        created = await pg_store.create_record(RecordType.MEMBER, {"name": "김철수", "phone": "010-1111-2222"})

        clock.advance(hours=1)
        same = await pg_store.update_record(RecordType.MEMBER, created["id"], {"phone": "010-1111-2222"})
        assert same["updated_at"] == created["updated_at"]

        changed = await pg_store.update_record(RecordType.MEMBER, created["id"], {"phone": "010-9999-8888"})
        assert changed["updated_at"] > created["updated_at"]
        assert changed["name"] == "김철수"

    @pytest.mark.asyncio
    async def test_update_unknown_record(self, pg_store):
        """Test updating a missing id raises KeyError"""
        with pytest.raises(KeyError):
            await pg_store.update_record(RecordType.MEMBER, "missing", {"name": "x"})

    @pytest.mark.asyncio
    async def test_modified_after_is_exclusive(self, pg_store, clock):
        """Test modified_after returns only records updated after the watermark"""
        first = await pg_store.create_record(RecordType.EXPENSE_REPORT, {"title": "전기요금"})
        clock.advance(minutes=5)
        await pg_store.create_record(RecordType.EXPENSE_REPORT, {"title": "수도요금"})

        records = await pg_store.fetch_records(RecordType.EXPENSE_REPORT, modified_after=first["updated_at"])

        assert [record["title"] for record in records] == ["수도요금"]

    @pytest.mark.asyncio
    async def test_catalog_entries(self, pg_store):
        """Test catalogue registration is idempotent"""
        again = await pg_store.add_catalog_entry("position", "집사")

        positions = await pg_store.fetch_positions()

        assert len(positions) == 3
        assert again["id"] in {position["id"] for position in positions}
        assert len(await pg_store.fetch_departments()) == 3


@pytest.mark.integration
class TestPostgresInterchange:
    """Imports, backups and restores against Postgres"""

    @pytest.mark.asyncio
    async def test_import_and_reimport(self, pg_store, member_rows, today, clock):
        """Test member rows import once and re-import as updates"""
        service = InterchangeService(pg_store, today=today, clock=clock)

        first = await service.import_data(member_rows, RecordType.MEMBER)
        second = await service.import_data(
            member_rows, RecordType.MEMBER, ImportOptions(duplicate_mode=DuplicateMode.UPDATE_EXISTING)
        )

        assert first.summary.created == 3
        assert second.summary.updated == 3
        assert await pg_store.count_records(RecordType.MEMBER) == 3
        kim = await pg_store.find_record(RecordType.MEMBER, {"email": "kim@example.com"})
        positions = {position["name"]: position["id"] for position in await pg_store.fetch_positions()}
        assert kim["positionId"] == positions["집사"]

    @pytest.mark.asyncio
    async def test_backup_restores_into_postgres(self, pg_store, member_rows, today, clock):
        """Test a bundle from the in-memory store restores idempotently into Postgres"""
        source = InterchangeService(
            InMemoryRecordStore(positions=["집사", "권사", "장로"], departments=["남선교회", "여선교회", "청년부"], clock=clock),
            today=today,
            clock=clock,
        )
        await source.import_data(member_rows, RecordType.MEMBER)
        await source.import_data([
            {"교인명": "김철수", "금액": "50,000", "헌금종류": "십일조", "헌금일": "2025-02-23"},
        ], RecordType.CONTRIBUTION)
        backup = await source.create_backup()

        target = InterchangeService(pg_store, today=today, clock=clock)
        first = await target.restore_backup(backup.payload, backup.filename)
        clock.advance(hours=1)
        second = await target.restore_backup(backup.payload, backup.filename)

        assert first.success is True
        assert first.summary.created == 4
        assert second.summary.created == 0
        assert second.summary.updated == 4
        contributions = await pg_store.fetch_records(RecordType.CONTRIBUTION)
        assert contributions[0]["amount"] == Decimal("50000")
        assert contributions[0]["updated_at"] == contributions[0]["created_at"]
