"""
Pytest Fixtures
===============

Shared fixtures for SQLGuard tests.
"""

import sqlite3
from pathlib import Path

import pytest

from sqlguard.context import RequestContext
from sqlguard.database.executor import SQLiteExecutor, create_sample_database
from sqlguard.database.schema import SchemaProvider, SQLiteSchemaProvider
from sqlguard.exceptions import ExecutionError
from sqlguard.llm.mock import MockLLM
from sqlguard.sandbox import PolicyValidator


class StaticSchemaProvider(SchemaProvider):
    """Schema provider returning fixed text and counting calls."""

    def __init__(self, schema: str) -> None:
        self.schema = schema
        self.calls = 0

    def get_schema(self) -> str:
        self.calls += 1
        return self.schema


class RecordingExecutor:
    """Executor returning canned rows and recording every query it runs."""

    def __init__(self, rows: list[dict] | None = None, error: str | None = None) -> None:
        self.rows = rows if rows is not None else [{"id": 1, "name": "Alice"}]
        self.error = error
        self.queries: list[str] = []

    def execute(self, sql: str) -> list[dict]:
        self.queries.append(sql)
        if self.error:
            raise ExecutionError(self.error)
        return self.rows

    def test_connection(self) -> bool:
        return True


class SleepRecorder:
    """Stand-in for time.sleep that records requested delays."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


SCHEMA_TEXT = """Database Schema (Found 3 tables):

=== TABLES ===

[TABLE] customers
  - id : INTEGER NULL
  - name : TEXT NULL
  - email : TEXT NULL
  - created_at : DATE NULL
  - tier : TEXT NULL

[TABLE] orders
  - id : INTEGER NULL
  - customer_id : INTEGER NULL
  - amount : DECIMAL NULL
  - order_date : DATE NULL
  - status : TEXT NULL

[TABLE] products
  - id : INTEGER NULL
  - name : TEXT NULL
  - price : DECIMAL NULL
  - category : TEXT NULL
  - stock : INTEGER NULL
"""


@pytest.fixture
def validator() -> PolicyValidator:
    """Create a PolicyValidator with the default rule chain."""
    return PolicyValidator()


@pytest.fixture
def schema_text() -> str:
    return SCHEMA_TEXT


@pytest.fixture
def schema_provider() -> StaticSchemaProvider:
    return StaticSchemaProvider(SCHEMA_TEXT)


@pytest.fixture
def context(schema_provider: StaticSchemaProvider) -> RequestContext:
    return RequestContext(schema_provider)


@pytest.fixture
def executor() -> RecordingExecutor:
    return RecordingExecutor()


@pytest.fixture
def sleep() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture
def summarizer() -> MockLLM:
    """Summarizer that always returns the same answer."""
    return MockLLM(script=["Alice is the only premium customer."])


@pytest.fixture
def database_path(tmp_path: Path) -> Path:
    """SQLite file with the sample tables and a few rows."""
    path = tmp_path / "sample.db"
    create_sample_database(path)
    conn = sqlite3.connect(path)
    conn.executemany(
        "INSERT INTO customers (id, name, email, created_at, tier) VALUES (?, ?, ?, ?, ?)",
        [
            (1, "Alice", "alice@example.com", "2024-01-05", "premium"),
            (2, "Bob", "bob@example.com", "2024-02-11", "basic"),
        ],
    )
    conn.executemany(
        "INSERT INTO orders (id, customer_id, amount, order_date, status) VALUES (?, ?, ?, ?, ?)",
        [
            (1, 1, 120.5, "2024-03-01", "shipped"),
            (2, 2, 40.0, "2024-03-02", "pending"),
        ],
    )
    conn.commit()
    conn.close()
    return path


@pytest.fixture
def sqlite_executor(database_path: Path) -> SQLiteExecutor:
    return SQLiteExecutor(database_path)


@pytest.fixture
def sqlite_schema_provider(database_path: Path) -> SQLiteSchemaProvider:
    return SQLiteSchemaProvider(database_path)


@pytest.fixture
def failing_executor() -> RecordingExecutor:
    """Executor that rejects every query with a column error."""
    return RecordingExecutor(error="SQL execution failed: no such column: total_spent")
