"""DDL statement builder.

Pure functions from validated definitions to SQL strings. Identifiers
reaching this package must already have passed
``src.schemaplane.core.security.validators``.
"""

from src.schemaplane.ddl.builder import (
    build_add_columns,
    build_alter_column_types,
    build_create_database,
    build_create_function,
    build_create_index,
    build_create_table,
    build_drop_column,
    build_drop_columns,
    build_drop_database,
    build_drop_function,
    build_drop_index,
    build_drop_table,
    build_duplicate_table,
    build_rename_column,
    build_rename_table,
    column_clause,
)
from src.schemaplane.ddl.quoting import dollar_quote_tag, qualify, quote_identifier

__all__ = [
    # Quoting
    "dollar_quote_tag",
    "qualify",
    "quote_identifier",
    # Tables
    "build_create_table",
    "build_drop_table",
    "build_duplicate_table",
    "build_rename_table",
    # Columns
    "build_add_columns",
    "build_alter_column_types",
    "build_drop_column",
    "build_drop_columns",
    "build_rename_column",
    "column_clause",
    # Indexes
    "build_create_index",
    "build_drop_index",
    # Functions
    "build_create_function",
    "build_drop_function",
    # Databases
    "build_create_database",
    "build_drop_database",
]
