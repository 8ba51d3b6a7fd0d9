"""DDL builders for tables, columns, indexes, functions and databases.

Builders never re-validate content. They quote every identifier, qualify
every object with its schema, and render types from the closed vocabulary.
"""

from collections.abc import Sequence

from src.schemaplane.core.security.validators import canonical_type, split_qualified_name
from src.schemaplane.ddl.quoting import dollar_quote_tag, qualify, quote_identifier
from src.schemaplane.models.catalog import (
    ColumnDefinition,
    FunctionDefinition,
    IndexDefinition,
    QualifiedName,
    TableDefinition,
)


def _table(table: QualifiedName) -> str:
    return qualify(table.schema, table.name)


def column_clause(column: ColumnDefinition) -> str:
    """Render one column for CREATE TABLE or ADD COLUMN.

    Constraint order: PRIMARY KEY, UNIQUE, NOT NULL, DEFAULT, REFERENCES. A
    primary key is already unique, so UNIQUE is not repeated on it; the
    column reads back with ``primary=True`` and ``unique=False``.
    """
    parts = [quote_identifier(column.name), canonical_type(column.type)]

    if column.primary:
        parts.append("PRIMARY KEY")
    elif column.unique:
        parts.append("UNIQUE")
    if column.not_null:
        parts.append("NOT NULL")
    if column.default is not None:
        parts.append(f"DEFAULT {column.default.strip()}")
    if column.foreign and column.reference_table and column.reference_column:
        ref_schema, ref_table = split_qualified_name(column.reference_table)
        parts.append(
            f"REFERENCES {qualify(ref_schema, ref_table)} "
            f"({quote_identifier(column.reference_column)})"
        )

    return " ".join(parts)


# --- Tables ---


def build_create_table(definition: TableDefinition) -> str:
    """CREATE TABLE with column clauses in declaration order."""
    columns = ",\n    ".join(column_clause(column) for column in definition.columns)
    return f"CREATE TABLE {qualify(definition.schema, definition.name)} (\n    {columns}\n)"


def build_rename_table(table: QualifiedName, new_name: str) -> str:
    # RENAME TO takes an unqualified name: the table stays in its schema
    return f"ALTER TABLE {_table(table)} RENAME TO {quote_identifier(new_name)}"


def build_duplicate_table(source: QualifiedName, destination: QualifiedName) -> str:
    """Copy columns and rows; constraints and indexes are not copied."""
    return f"CREATE TABLE {_table(destination)} AS TABLE {_table(source)}"


def build_drop_table(table: QualifiedName) -> str:
    return f"DROP TABLE {_table(table)}"


# --- Columns ---


def build_add_columns(table: QualifiedName, columns: Sequence[ColumnDefinition]) -> list[str]:
    """One ALTER TABLE ... ADD COLUMN per column.

    Kept as separate statements so a failure points at a single column; the
    caller runs them inside one transaction.
    """
    return [f"ALTER TABLE {_table(table)} ADD COLUMN {column_clause(column)}" for column in columns]


def build_alter_column_types(
    table: QualifiedName, columns: Sequence[ColumnDefinition]
) -> list[str]:
    """ALTER COLUMN ... TYPE per column.

    No USING expression is synthesised; incompatible casts are rejected by
    PostgreSQL and surface as data-conversion errors.
    """
    return [
        f"ALTER TABLE {_table(table)} ALTER COLUMN {quote_identifier(column.name)} "
        f"TYPE {canonical_type(column.type)}"
        for column in columns
    ]


def build_rename_column(table: QualifiedName, old_name: str, new_name: str) -> str:
    return (
        f"ALTER TABLE {_table(table)} RENAME COLUMN "
        f"{quote_identifier(old_name)} TO {quote_identifier(new_name)}"
    )


def build_drop_column(table: QualifiedName, name: str) -> str:
    return f"ALTER TABLE {_table(table)} DROP COLUMN {quote_identifier(name)}"


def build_drop_columns(table: QualifiedName, names: Sequence[str]) -> str:
    """Drop several columns in a single statement."""
    if not names:
        raise ValueError("no columns specified")
    drops = ", ".join(f"DROP COLUMN {quote_identifier(name)}" for name in names)
    return f"ALTER TABLE {_table(table)} {drops}"


# --- Indexes ---


def build_create_index(definition: IndexDefinition) -> str:
    unique = "UNIQUE " if definition.unique else ""
    columns = ", ".join(quote_identifier(column) for column in definition.columns)
    return (
        f"CREATE {unique}INDEX {quote_identifier(definition.name)} "
        f"ON {qualify(definition.schema, definition.table)} ({columns})"
    )


def build_drop_index(schema: str, name: str) -> str:
    # Index names are schema-scoped, not table-scoped
    return f"DROP INDEX {qualify(schema, name)}"


# --- Functions ---


def build_create_function(definition: FunctionDefinition, replace: bool = False) -> str:
    """Full CREATE [OR REPLACE] FUNCTION statement.

    The body is dollar-quoted with a tag that does not occur in it, and a
    trailing semicolon is added when missing.
    """
    parameters = ", ".join(
        f"{quote_identifier(parameter.name)} {parameter.type.lower()}"
        for parameter in definition.parameters
    )
    body = definition.body.strip()
    if not body.endswith(";"):
        body += ";"
    tag = dollar_quote_tag(body)
    or_replace = "OR REPLACE " if replace else ""

    return (
        f"CREATE {or_replace}FUNCTION {qualify(definition.schema, definition.name)}"
        f"({parameters}) RETURNS {definition.return_type.lower()} AS {tag}\n"
        f"{body}\n"
        f"{tag} LANGUAGE {definition.language.lower()}"
    )


def build_drop_function(
    schema: str, name: str, parameter_types: Sequence[str] | None = None
) -> str:
    """DROP FUNCTION; with ``parameter_types`` the exact overload is targeted."""
    signature = ""
    if parameter_types is not None:
        signature = "(" + ", ".join(type_name.lower() for type_name in parameter_types) + ")"
    return f"DROP FUNCTION {qualify(schema, name)}{signature}"


# --- Databases ---


def build_create_database(name: str) -> str:
    return f"CREATE DATABASE {quote_identifier(name)}"


def build_drop_database(name: str) -> str:
    return f"DROP DATABASE IF EXISTS {quote_identifier(name)}"
