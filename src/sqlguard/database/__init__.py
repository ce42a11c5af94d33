"""
Database Module
===============

Executor and schema provider collaborators.
"""

from sqlguard.database.executor import (
    SAMPLE_SCHEMA,
    QueryExecutor,
    SQLiteExecutor,
    create_sample_database,
)
from sqlguard.database.schema import (
    SchemaProvider,
    SQLiteSchemaProvider,
    analyze_schema,
    extract_table_names,
    filter_schema_for_tables,
)

__all__ = [
    "SAMPLE_SCHEMA",
    "QueryExecutor",
    "SQLiteExecutor",
    "create_sample_database",
    "SchemaProvider",
    "SQLiteSchemaProvider",
    "analyze_schema",
    "extract_table_names",
    "filter_schema_for_tables",
]
