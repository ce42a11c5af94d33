"""
Unit Tests for the SQLite Collaborators
=======================================

Tests for the read-only executor, the schema provider and the schema text
helpers.
"""

import sqlite3

import pytest

from sqlguard.context import RequestContext
from sqlguard.database.executor import SQLiteExecutor
from sqlguard.database.schema import (
    NO_MATCHING_TABLES,
    SQLiteSchemaProvider,
    analyze_schema,
    extract_table_names,
    extract_table_section,
    filter_schema_for_tables,
    find_relationships,
)
from sqlguard.exceptions import ExecutionError, SchemaError
from sqlguard.models import ErrorKind


class TestSQLiteExecutor:
    """Tests for query execution."""

    def test_rows_as_mappings(self, sqlite_executor: SQLiteExecutor) -> None:
        rows = sqlite_executor.execute("SELECT id, name FROM customers ORDER BY id")
        assert rows == [{"id": 1, "name": "Alice"}, {"id": 2, "name": "Bob"}]

    def test_empty_result(self, sqlite_executor: SQLiteExecutor) -> None:
        assert sqlite_executor.execute("SELECT * FROM products") == []

    def test_column_order_preserved(self, sqlite_executor: SQLiteExecutor) -> None:
        rows = sqlite_executor.execute("SELECT tier, name FROM customers WHERE id = 1")
        assert list(rows[0]) == ["tier", "name"]

    def test_engine_error_wrapped(self, sqlite_executor: SQLiteExecutor) -> None:
        with pytest.raises(ExecutionError, match="no such column: total_spent") as exc_info:
            sqlite_executor.execute("SELECT total_spent FROM customers")
        assert exc_info.value.kind == ErrorKind.EXECUTION_FAILURE

    def test_connection_is_read_only(self, sqlite_executor: SQLiteExecutor, database_path) -> None:
        with pytest.raises(ExecutionError):
            sqlite_executor.execute("DELETE FROM customers")

        conn = sqlite3.connect(database_path)
        count = conn.execute("SELECT COUNT(*) FROM customers").fetchone()[0]
        conn.close()
        assert count == 2

    def test_connection_check(self, sqlite_executor: SQLiteExecutor, tmp_path) -> None:
        assert sqlite_executor.test_connection() is True
        assert SQLiteExecutor(tmp_path / "missing.db").test_connection() is False


class TestSQLiteSchemaProvider:
    """Tests for schema text generation."""

    def test_schema_text(self, sqlite_schema_provider: SQLiteSchemaProvider) -> None:
        schema = sqlite_schema_provider.get_schema()

        assert schema.startswith("Database Schema (Found 3 tables):")
        assert "=== TABLES ===" in schema
        assert "[TABLE] customers" in schema
        assert "  - customer_id : INTEGER NULL" in schema
        assert extract_table_names(schema) == ["customers", "orders", "products"]

    def test_not_null_and_default(self, tmp_path) -> None:
        path = tmp_path / "typed.db"
        conn = sqlite3.connect(path)
        conn.execute("CREATE TABLE events (id INTEGER NOT NULL, kind TEXT DEFAULT 'click')")
        conn.close()

        schema = SQLiteSchemaProvider(path).get_schema()
        assert "  - id : INTEGER NOT NULL" in schema
        assert "  - kind : TEXT NULL DEFAULT 'click'" in schema

    def test_no_tables(self, tmp_path) -> None:
        path = tmp_path / "empty.db"
        conn = sqlite3.connect(path)
        conn.execute("PRAGMA user_version = 1")
        conn.close()

        assert SQLiteSchemaProvider(path).get_schema() == "No tables found in the database"

    def test_unreadable_database(self, tmp_path) -> None:
        provider = SQLiteSchemaProvider(tmp_path / "missing.db")
        with pytest.raises(SchemaError, match="Unable to retrieve database schema"):
            provider.get_schema()

    def test_request_context_memoizes(self, schema_provider) -> None:
        context = RequestContext(schema_provider)
        assert context.schema == context.schema
        assert schema_provider.calls == 1


class TestSchemaHelpers:
    """Tests for reading the schema text back."""

    def test_filter_single_table(self, schema_text: str) -> None:
        filtered = filter_schema_for_tables(schema_text, "products")
        assert filtered.startswith("[TABLE] products")
        assert "stock" in filtered
        assert "[TABLE] orders" not in filtered

    def test_filter_multiple_tables_case_insensitive(self, schema_text: str) -> None:
        filtered = filter_schema_for_tables(schema_text, "Customers, ORDERS")
        assert extract_table_names(filtered) == ["customers", "orders"]

    def test_filter_qualified_name(self) -> None:
        schema = "[TABLE] main.orders\n  - id : INTEGER NULL\n"
        assert filter_schema_for_tables(schema, "orders").startswith("[TABLE] main.orders")

    def test_filter_no_match(self, schema_text: str) -> None:
        assert filter_schema_for_tables(schema_text, "invoices") == NO_MATCHING_TABLES
        assert filter_schema_for_tables(schema_text, "") == NO_MATCHING_TABLES

    def test_extract_table_section(self, schema_text: str) -> None:
        section = extract_table_section(schema_text, "orders")
        assert "customer_id" in section
        assert "price" not in section
        assert extract_table_section(schema_text, "invoices") is None

    def test_find_relationships(self, schema_text: str) -> None:
        assert find_relationships(schema_text) == ["orders.customer_id -> customers.id"]

    def test_analyze_schema(self, schema_text: str) -> None:
        analysis = analyze_schema(schema_text)
        assert analysis.startswith("Found 3 tables")
        assert "orders.customer_id -> customers.id" in analysis
        assert "User/Customer queries available" in analysis
        assert "Temporal queries possible" in analysis
        assert "Aggregation queries possible" in analysis


class BrokenConnection:
    """Connection whose every statement fails."""

    def __init__(self) -> None:
        self.closed = False

    def execute(self, sql: str):
        raise sqlite3.OperationalError("disk I/O error")

    def close(self) -> None:
        self.closed = True


class TestConnectionCheck:
    """Tests for connection cleanup in the health check."""

    def test_connection_closed_when_check_fails(self, database_path) -> None:
        connection = BrokenConnection()

        class BrokenExecutor(SQLiteExecutor):
            def connect(self):
                return connection

        assert BrokenExecutor(database_path).test_connection() is False
        assert connection.closed is True
