"""
Pytest configuration and fixtures for records-interchange tests

This module provides shared fixtures for unit, integration, and E2E tests.
"""
import io
from datetime import date, datetime, timedelta, timezone
from typing import Any, Generator

import openpyxl
import pytest
from testcontainers.postgres import PostgresContainer

from records_interchange.core.rules import SchemaValidator
from records_interchange.persistence import InMemoryRecordStore


# =======================
# PYTEST CONFIGURATION
# =======================

def pytest_configure(config):
    """Configure pytest with custom markers"""
    config.addinivalue_line(
        "markers", "unit: Unit tests that don't require external services"
    )
    config.addinivalue_line(
        "markers", "integration: Integration tests that require Docker containers"
    )
    config.addinivalue_line(
        "markers", "e2e: End-to-end tests that test the full pipeline"
    )
    config.addinivalue_line(
        "markers", "slow: Tests that take more than 5 seconds to run"
    )


# =======================
# CLOCK FIXTURES
# =======================

TODAY = date(2025, 3, 1)


class FakeClock:
    """Manually advanced UTC clock for deterministic timestamps."""

    def __init__(self, start: datetime | None = None):
        self.now = start or datetime(2025, 3, 1, 9, 30, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


@pytest.fixture
def today():
    """Fixed reference date provider"""
    return lambda: TODAY


@pytest.fixture
def clock() -> FakeClock:
    """Deterministic clock shared by the store and the orchestrators"""
    return FakeClock()


# =======================
# STORE FIXTURES
# =======================

@pytest.fixture
def store(clock) -> InMemoryRecordStore:
    """
    Empty in-memory store with a small position and department catalogue

    Returns:
        InMemoryRecordStore driven by the fake clock
    """
    return InMemoryRecordStore(
        positions=["집사", "권사", "장로"],
        departments=["남선교회", "여선교회", "청년부"],
        clock=clock,
    )


@pytest.fixture
def schema_validator(today) -> SchemaValidator:
    """Schema validator over the packaged YAML schemas"""
    return SchemaValidator(today=today)


# =======================
# FILE FIXTURES
# =======================

def build_workbook(sheets: dict[str, list[list[Any]]]) -> bytes:
    """
    Build an xlsx payload from {sheet title: rows}

    Args:
        sheets: Sheet title -> rows (header row first)

    Returns:
        Workbook bytes
    """
    workbook = openpyxl.Workbook()
    workbook.remove(workbook.active)
    for title, rows in sheets.items():
        worksheet = workbook.create_sheet(title)
        for row in rows:
            worksheet.append(row)
    buffer = io.BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()


def build_csv(rows: list[list[Any]], encoding: str = "utf-8") -> bytes:
    """Join rows into comma-separated text"""
    return "\r\n".join(",".join(str(value) for value in row) for row in rows).encode(encoding)


MEMBER_ROWS = [
    {"이름": "김철수", "이메일": "kim@example.com", "전화번호": "010-1111-2222", "성별": "남", "직분": "집사"},
    {"이름": "이영희", "이메일": "lee@example.com", "전화번호": "010-3333-4444", "성별": "여", "부서": "여선교회"},
    {"이름": "박민수", "이메일": "park@example.com", "생년월일": date(1980, 5, 17), "상태": "활동"},
]


@pytest.fixture
def member_rows() -> list[dict[str, Any]]:
    """Three valid member rows with localized headers"""
    return [dict(row) for row in MEMBER_ROWS]


@pytest.fixture
def make_workbook():
    """Factory fixture wrapping build_workbook"""
    return build_workbook


@pytest.fixture
def make_csv():
    """Factory fixture wrapping build_csv"""
    return build_csv


# =======================
# DATABASE FIXTURES (Testcontainers)
# =======================

@pytest.fixture(scope="session")
def postgres_container() -> Generator[PostgresContainer, None, None]:
    """
    Start PostgreSQL container for integration tests

    Yields:
        PostgresContainer instance
    """
    with PostgresContainer(
        image="postgres:16.2-alpine",
        username="test_interchange",
        password="test_password",
        dbname="test_congregation",
    ) as postgres:
        # Wait for container to be ready
        postgres.get_connection_url()
        yield postgres
