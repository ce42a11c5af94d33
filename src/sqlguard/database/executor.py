"""
Query Executor
==============

Runs validated queries against a SQLite database and returns rows.
"""

import sqlite3
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any

import structlog

from sqlguard.exceptions import ExecutionError

logger = structlog.get_logger(__name__)


# Tables created for the demo database
SAMPLE_SCHEMA = {
    "customers": {
        "columns": ["id", "name", "email", "created_at", "tier"],
        "types": {
            "id": "INTEGER",
            "name": "TEXT",
            "email": "TEXT",
            "created_at": "DATE",
            "tier": "TEXT",
        },
    },
    "orders": {
        "columns": ["id", "customer_id", "amount", "order_date", "status"],
        "types": {
            "id": "INTEGER",
            "customer_id": "INTEGER",
            "amount": "DECIMAL",
            "order_date": "DATE",
            "status": "TEXT",
        },
    },
    "products": {
        "columns": ["id", "name", "price", "category", "stock"],
        "types": {
            "id": "INTEGER",
            "name": "TEXT",
            "price": "DECIMAL",
            "category": "TEXT",
            "stock": "INTEGER",
        },
    },
}


class QueryExecutor(ABC):
    """Abstract interface for the data engine."""

    @abstractmethod
    def execute(self, sql: str) -> list[dict[str, Any]]:
        """
        Execute a query.

        Returns:
            Rows as ordered column-name to value mappings

        Raises:
            ExecutionError: if the engine rejects or fails the query
        """
        pass

    def test_connection(self) -> bool:
        return True


class SQLiteExecutor(QueryExecutor):
    """
    Executes queries on a SQLite file opened in read-only mode.

    A new connection is opened per call so that concurrent requests never
    share a connection object.
    """

    def __init__(self, database_path: str | Path, timeout: float = 30.0) -> None:
        self.database_path = Path(database_path)
        self.timeout = timeout

    def connect(self) -> sqlite3.Connection:
        uri = f"{self.database_path.resolve().as_uri()}?mode=ro"
        conn = sqlite3.connect(uri, uri=True, timeout=self.timeout)
        conn.row_factory = sqlite3.Row
        return conn

    def execute(self, sql: str) -> list[dict[str, Any]]:
        try:
            conn = self.connect()
            try:
                rows = [dict(row) for row in conn.execute(sql).fetchall()]
            finally:
                conn.close()
        except sqlite3.Error as e:
            logger.error("SQL execution failed", query=sql[:200], error=str(e))
            raise ExecutionError(f"SQL execution failed: {e}") from e

        logger.info("Executed query", row_count=len(rows))
        return rows

    def test_connection(self) -> bool:
        try:
            conn = self.connect()
            try:
                conn.execute("SELECT 1")
            finally:
                conn.close()
        except sqlite3.Error as e:
            logger.error("Database connection test failed", error=str(e))
            return False
        return True


def create_sample_database(database_path: str | Path, schema: dict | None = None) -> None:
    """Create empty tables matching the schema if they do not exist yet."""
    schema = schema or SAMPLE_SCHEMA
    conn = sqlite3.connect(str(database_path))
    try:
        cursor = conn.cursor()
        for table_name, table_info in schema.items():
            columns = []
            for col_name in table_info["columns"]:
                col_type = table_info["types"].get(col_name, "TEXT")
                columns.append(f"{col_name} {col_type}")
            cursor.execute(
                f"CREATE TABLE IF NOT EXISTS {table_name} ({', '.join(columns)})"
            )
        conn.commit()
    finally:
        conn.close()
