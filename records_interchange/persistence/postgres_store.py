"""
PostgresRecordStore: RecordStore backed by one JSONB document table.

Each record is stored as a JSON document with a checksum of its data. An
update whose merged data has an unchanged checksum is not written, so
restoring the same bundle twice leaves updated_at alone.
"""

import hashlib
import json
import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Callable

from psycopg import sql
from psycopg.types.json import Jsonb

from records_interchange.core.vocabulary import ColumnKind, RecordType, get_columns

from .connection import DatabaseConnectionPool
from .store import STORE_FIELDS, as_utc, utc_now

RECORD_TABLE = "interchange_record"
CATALOG_TABLE = "interchange_catalog"

SCHEMA_DDL = (
    f"""
    CREATE TABLE IF NOT EXISTS {RECORD_TABLE} (
        record_id TEXT PRIMARY KEY,
        record_type TEXT NOT NULL,
        data JSONB NOT NULL,
        checksum TEXT NOT NULL,
        created_at TIMESTAMPTZ NOT NULL,
        updated_at TIMESTAMPTZ NOT NULL
    )
    """,
    f"""
    CREATE INDEX IF NOT EXISTS idx_{RECORD_TABLE}_type_updated
        ON {RECORD_TABLE} (record_type, updated_at)
    """,
    f"""
    CREATE TABLE IF NOT EXISTS {CATALOG_TABLE} (
        entry_id TEXT PRIMARY KEY,
        kind TEXT NOT NULL,
        name TEXT NOT NULL,
        UNIQUE (kind, name)
    )
    """,
)


def to_json_value(value: Any) -> Any:
    """Serialize a typed field value for the JSONB document."""
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, Decimal):
        return format(value.normalize(), "f")
    return value


def to_criterion_text(value: Any) -> str:
    """Text form of a criterion value, as Postgres renders data ->> key."""
    value = to_json_value(value)
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def calculate_checksum(data: dict[str, Any]) -> str:
    """MD5 checksum of a serialized data document."""
    data_str = json.dumps(data, sort_keys=True, ensure_ascii=False)
    return hashlib.md5(data_str.encode()).hexdigest()


class PostgresRecordStore:
    """
    RecordStore implementation over psycopg3.

    Dates and amounts are rehydrated from their JSON text using the record
    type's column table.
    """

    def __init__(self, pool: DatabaseConnectionPool, clock: Callable[[], datetime] = utc_now):
        """
        Initialize Postgres record store.

        Args:
            pool: Open async connection pool
            clock: Timestamp source for created_at/updated_at
        """
        self.pool = pool
        self.clock = clock
        self._kinds = {
            record_type: {column.field: column.kind for column in get_columns(record_type)}
            for record_type in RecordType
        }

    async def ensure_schema(self) -> None:
        """Create the record and catalog tables if they do not exist."""
        for statement in SCHEMA_DDL:
            await self.pool.execute_command(statement)

    def _serialize(self, values: dict[str, Any]) -> dict[str, Any]:
        return {
            key: to_json_value(value)
            for key, value in values.items()
            if key not in STORE_FIELDS
        }

    def _hydrate(self, record_type: RecordType, row: dict[str, Any]) -> dict[str, Any]:
        kinds = self._kinds[record_type]
        record: dict[str, Any] = {}
        for key, value in row["data"].items():
            kind = kinds.get(key)
            if isinstance(value, str) and kind is ColumnKind.DATE:
                record[key] = date.fromisoformat(value)
            elif isinstance(value, str) and kind is ColumnKind.AMOUNT:
                record[key] = Decimal(value)
            else:
                record[key] = value
        record["id"] = row["record_id"]
        record["created_at"] = row["created_at"]
        record["updated_at"] = row["updated_at"]
        return record

    async def fetch_records(
        self, record_type: RecordType, modified_after: datetime | None = None
    ) -> list[dict[str, Any]]:
        if modified_after is None:
            rows = await self.pool.execute_query(
                f"SELECT * FROM {RECORD_TABLE} WHERE record_type = %s ORDER BY created_at, record_id",
                (record_type.value,),
            )
        else:
            rows = await self.pool.execute_query(
                f"SELECT * FROM {RECORD_TABLE} WHERE record_type = %s AND updated_at > %s "
                "ORDER BY created_at, record_id",
                (record_type.value, as_utc(modified_after)),
            )
        return [self._hydrate(record_type, row) for row in rows]

    async def find_record(self, record_type: RecordType, criteria: dict[str, Any]) -> dict[str, Any] | None:
        clauses = [sql.SQL("record_type = %s")]
        params: list[Any] = [record_type.value]
        for field_name, value in criteria.items():
            if isinstance(value, str):
                clauses.append(sql.SQL("lower(btrim(data ->> %s)) = lower(btrim(%s))"))
            else:
                clauses.append(sql.SQL("data ->> %s = %s"))
            params.extend([field_name, to_criterion_text(value)])

        query = sql.SQL("SELECT * FROM {table} WHERE {where} ORDER BY created_at, record_id LIMIT 1").format(
            table=sql.Identifier(RECORD_TABLE),
            where=sql.SQL(" AND ").join(clauses),
        )
        rows = await self.pool.execute_query(query, tuple(params))
        return self._hydrate(record_type, rows[0]) if rows else None

    async def create_record(self, record_type: RecordType, values: dict[str, Any]) -> dict[str, Any]:
        data = self._serialize(values)
        now = as_utc(self.clock())
        row = await self.pool.execute_returning(
            f"""
            INSERT INTO {RECORD_TABLE} (record_id, record_type, data, checksum, created_at, updated_at)
            VALUES (%s, %s, %s, %s, %s, %s)
            RETURNING *
            """,
            (str(uuid.uuid4()), record_type.value, Jsonb(data), calculate_checksum(data), now, now),
        )
        return self._hydrate(record_type, row)

    async def update_record(
        self, record_type: RecordType, record_id: str, values: dict[str, Any]
    ) -> dict[str, Any]:
        async with self.pool.get_connection() as conn:
            async with conn.cursor() as cur:
                await cur.execute(
                    f"SELECT * FROM {RECORD_TABLE} WHERE record_id = %s AND record_type = %s FOR UPDATE",
                    (record_id, record_type.value),
                )
                existing = await cur.fetchone()
                if existing is None:
                    raise KeyError(f"{record_type.value} record not found: {record_id}")

                data = {**existing["data"], **self._serialize(values)}
                checksum = calculate_checksum(data)
                if checksum == existing["checksum"]:
                    return self._hydrate(record_type, existing)

                await cur.execute(
                    f"""
                    UPDATE {RECORD_TABLE}
                    SET data = %s, checksum = %s, updated_at = %s
                    WHERE record_id = %s
                    RETURNING *
                    """,
                    (Jsonb(data), checksum, as_utc(self.clock()), record_id),
                )
                return self._hydrate(record_type, await cur.fetchone())

    async def count_records(self, record_type: RecordType) -> int:
        rows = await self.pool.execute_query(
            f"SELECT COUNT(*) AS total FROM {RECORD_TABLE} WHERE record_type = %s",
            (record_type.value,),
        )
        return int(rows[0]["total"])

    async def add_catalog_entry(self, kind: str, name: str) -> dict[str, Any]:
        """
        Register a position or department name (idempotent).

        Args:
            kind: "position" or "department"
            name: Display name
        """
        await self.pool.execute_command(
            f"INSERT INTO {CATALOG_TABLE} (entry_id, kind, name) VALUES (%s, %s, %s) "
            "ON CONFLICT (kind, name) DO NOTHING",
            (str(uuid.uuid4()), kind, name),
        )
        rows = await self.pool.execute_query(
            f"SELECT entry_id AS id, name FROM {CATALOG_TABLE} WHERE kind = %s AND name = %s",
            (kind, name),
        )
        return rows[0]

    async def _fetch_catalog(self, kind: str) -> list[dict[str, Any]]:
        return await self.pool.execute_query(
            f"SELECT entry_id AS id, name FROM {CATALOG_TABLE} WHERE kind = %s ORDER BY name",
            (kind,),
        )

    async def fetch_positions(self) -> list[dict[str, Any]]:
        return await self._fetch_catalog("position")

    async def fetch_departments(self) -> list[dict[str, Any]]:
        return await self._fetch_catalog("department")
