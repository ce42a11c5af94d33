"""
Schema Provider
===============

Serializes schema metadata into descriptive text, plus helpers that read
that text back: table extraction, per-table filtering, relationship hints.

Schema text format::

    [TABLE] orders
      - id : INTEGER NOT NULL
      - customer_id : INTEGER NULL
"""

import re
import sqlite3
from abc import ABC, abstractmethod
from pathlib import Path

import structlog

from sqlguard.exceptions import SchemaError

logger = structlog.get_logger(__name__)

_TABLE_HEADER = re.compile(r"\[TABLE\]\s+([^\s]+)")
_FOREIGN_KEY_COLUMN = re.compile(r"-\s+(\w+?)_?id\s+:", re.IGNORECASE)

NO_MATCHING_TABLES = "No matching tables found in schema."


class SchemaProvider(ABC):
    """Abstract interface for schema metadata."""

    @abstractmethod
    def get_schema(self) -> str:
        """
        Describe all tables and columns.

        Raises:
            SchemaError: if the metadata cannot be read
        """
        pass


class SQLiteSchemaProvider(SchemaProvider):
    """Reads table and column metadata from a SQLite database."""

    def __init__(self, database_path: str | Path, timeout: float = 30.0) -> None:
        self.database_path = Path(database_path)
        self.timeout = timeout

    def get_schema(self) -> str:
        uri = f"{self.database_path.resolve().as_uri()}?mode=ro"
        try:
            conn = sqlite3.connect(uri, uri=True, timeout=self.timeout)
            try:
                tables = [
                    row[0]
                    for row in conn.execute(
                        "SELECT name FROM sqlite_master "
                        "WHERE type = 'table' AND name NOT LIKE 'sqlite_%' "
                        "ORDER BY name"
                    )
                ]
                sections = [self._describe_table(conn, table) for table in tables]
            finally:
                conn.close()
        except sqlite3.Error as e:
            logger.error("Failed to retrieve database schema", error=str(e))
            raise SchemaError(f"Unable to retrieve database schema: {e}") from e

        if not tables:
            logger.warning("No tables found in database")
            return "No tables found in the database"

        logger.info("Retrieved database schema", table_count=len(tables))
        return (
            f"Database Schema (Found {len(tables)} tables):\n\n"
            "=== TABLES ===\n\n" + "\n".join(sections)
        )

    @staticmethod
    def _describe_table(conn: sqlite3.Connection, table: str) -> str:
        lines = [f"[TABLE] {table}"]
        escaped = table.replace('"', '""')
        for _, name, col_type, notnull, default, _ in conn.execute(
            f'PRAGMA table_info("{escaped}")'
        ):
            line = f"  - {name} : {col_type or 'TEXT'}"
            line += " NOT NULL" if notnull else " NULL"
            if default is not None:
                line += f" DEFAULT {default}"
            lines.append(line)
        if len(lines) == 1:
            lines.append("  (No columns found)")
        return "\n".join(lines) + "\n"


def extract_table_names(schema: str) -> list[str]:
    """Return table identifiers in the order they appear."""
    return [match.strip() for match in _TABLE_HEADER.findall(schema)]


def _matches(table: str, requested: list[str]) -> bool:
    short = table.split(".")[-1].lower()
    return any(name.lower() in (table.lower(), short) for name in requested)


def filter_schema_for_tables(schema: str, table_names: str) -> str:
    """Keep only the sections for the comma-separated table names."""
    requested = [name.strip() for name in table_names.split(",") if name.strip()]
    kept = []
    printing = False

    for line in schema.split("\n"):
        if "[TABLE]" in line:
            match = _TABLE_HEADER.search(line)
            if match:
                printing = _matches(match.group(1), requested)
        if printing:
            kept.append(line)

    return "\n".join(kept).strip() or NO_MATCHING_TABLES


def extract_table_section(schema: str, table: str) -> str | None:
    pattern = rf"\[TABLE\]\s+{re.escape(table)}\b(.*?)(?=\[TABLE\]|$)"
    match = re.search(pattern, schema, re.IGNORECASE | re.DOTALL)
    return match.group(1) if match else None


def find_relationships(schema: str, tables: list[str] | None = None) -> list[str]:
    """Guess foreign keys from ``<entity>_id`` / ``<Entity>Id`` column names."""
    tables = tables if tables is not None else extract_table_names(schema)
    relationships = []

    for table in tables:
        section = extract_table_section(schema, table)
        if not section:
            continue
        for match in _FOREIGN_KEY_COLUMN.finditer(section):
            entity = match.group(1).lower()
            for candidate in tables:
                name = candidate.split(".")[-1].lower()
                if candidate != table and name in (entity, entity + "s", entity + "es"):
                    column = match.group(0)[1:].split(":")[0].strip()
                    relationships.append(f"{table}.{column} -> {candidate}.id")
                    break

    return relationships


def analyze_schema(schema: str) -> str:
    """Summarize tables, likely relationships and the query shapes they allow."""
    tables = extract_table_names(schema)
    lines = [f"Found {len(tables)} tables", "DETECTED RELATIONSHIPS:"]
    lines.extend(f"   {rel}" for rel in find_relationships(schema, tables))

    lines.append("COMMON QUERY PATTERNS:")
    lowered = [t.lower() for t in tables]
    if any("user" in t or "customer" in t for t in lowered):
        lines.append("   - User/Customer queries available")
    if any(word in schema.lower() for word in ("timestamp", "date", "time", "created", "updated")):
        lines.append("   - Temporal queries possible (latest, recent)")
    entities = ("order", "product", "device", "user", "customer", "transaction")
    if any(entity in t for t in lowered for entity in entities):
        lines.append("   - Aggregation queries possible (most, top)")

    return "\n".join(lines)
