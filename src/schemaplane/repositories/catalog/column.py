"""Column introspection.

Columns are read from ``pg_attribute`` with their defaults and the
constraints that cover them, aggregated to one row per attribute.
"""

from collections.abc import Mapping, Sequence
from typing import Any

from src.schemaplane.models.catalog import ColumnDefinition, QualifiedName
from src.schemaplane.repositories.catalog.base import CatalogRepository

_LIST_COLUMNS = """
    SELECT
        a.attname AS name,
        a.attnum AS position,
        a.attnotnull AS not_null,
        format_type(a.atttypid, a.atttypmod) AS formatted_type,
        pg_get_expr(d.adbin, d.adrelid) AS default_value,
        COALESCE(bool_or(ct.contype = 'p'), false) AS is_primary,
        COALESCE(bool_or(ct.contype = 'u' AND cardinality(ct.conkey) = 1), false) AS is_unique,
        COALESCE(bool_or(ct.contype = 'f'), false) AS is_foreign,
        max(ref_ns.nspname::text) AS reference_schema,
        max(ref_class.relname::text) AS reference_table,
        max(ref_attr.attname::text) AS reference_column
    FROM pg_attribute a
    JOIN pg_class c ON c.oid = a.attrelid
    JOIN pg_namespace n ON n.oid = c.relnamespace
    LEFT JOIN pg_attrdef d ON d.adrelid = a.attrelid AND d.adnum = a.attnum
    LEFT JOIN pg_constraint ct ON ct.conrelid = a.attrelid AND a.attnum = ANY(ct.conkey)
    LEFT JOIN pg_class ref_class ON ref_class.oid = ct.confrelid AND ct.contype = 'f'
    LEFT JOIN pg_namespace ref_ns ON ref_ns.oid = ref_class.relnamespace
    LEFT JOIN pg_attribute ref_attr
        ON ref_attr.attrelid = ct.confrelid
       AND ct.contype = 'f'
       AND ref_attr.attnum = ct.confkey[array_position(ct.conkey, a.attnum)]
    WHERE n.nspname = :schema
      AND c.relname = :table
      AND c.relkind IN ('r', 'p')
      AND a.attnum > 0
      AND NOT a.attisdropped
    GROUP BY 1, 2, 3, 4, 5
    ORDER BY a.attnum
"""

_EXISTING_COLUMNS = """
    SELECT a.attname::text AS name
    FROM pg_attribute a
    JOIN pg_class c ON c.oid = a.attrelid
    JOIN pg_namespace n ON n.oid = c.relnamespace
    WHERE n.nspname = :schema
      AND c.relname = :table
      AND a.attnum > 0
      AND NOT a.attisdropped
      AND a.attname::text = ANY(CAST(:names AS text[]))
    ORDER BY a.attnum
"""

# format_type() rendering -> column vocabulary
_VOCABULARY_TYPES: dict[str, str] = {
    "integer": "int",
    "character varying": "varchar",
    "text": "text",
    "boolean": "boolean",
    "date": "date",
    "timestamp without time zone": "timestamp",
    "double precision": "float",
    "uuid": "uuid",
    "json": "json",
}


def vocabulary_type(formatted_type: str, default: str | None = None) -> str:
    """Map a formatted PostgreSQL type back to the column vocabulary.

    ``integer`` with a ``nextval(...)`` default is reported as ``serial``.
    Types outside the vocabulary are returned as formatted.
    """
    base = formatted_type.split("(", 1)[0].strip()
    mapped = _VOCABULARY_TYPES.get(base, formatted_type)
    if mapped == "int" and default is not None and default.startswith("nextval("):
        return "serial"
    return mapped


def column_from_row(row: Mapping[str, Any]) -> ColumnDefinition:
    formatted_type = row["formatted_type"]
    default = row["default_value"]
    type_name = vocabulary_type(formatted_type, default)

    reference_table = None
    if row["reference_table"] is not None:
        reference_table = f"{row['reference_schema']}.{row['reference_table']}"

    return ColumnDefinition(
        name=row["name"],
        type=type_name,
        position=row["position"],
        not_null=row["not_null"],
        primary=row["is_primary"],
        unique=row["is_unique"],
        foreign=row["is_foreign"],
        # The sequence default is implied by serial
        default=None if type_name == "serial" else default,
        reference_table=reference_table,
        reference_column=row["reference_column"],
        formatted_type=formatted_type,
    )


class ColumnCatalog(CatalogRepository):
    """Columns of one table."""

    async def list_columns(self, table: QualifiedName) -> list[ColumnDefinition]:
        """Columns in ordinal order; empty if the table does not exist."""
        rows = await self._fetch_all(_LIST_COLUMNS, {"schema": table.schema, "table": table.name})
        return [column_from_row(row) for row in rows]

    async def existing_columns(self, table: QualifiedName, names: Sequence[str]) -> list[str]:
        """Which of ``names`` exist on the table, in one round-trip."""
        if not names:
            return []
        rows = await self._fetch_all(
            _EXISTING_COLUMNS,
            {"schema": table.schema, "table": table.name, "names": list(names)},
        )
        return [row["name"] for row in rows]

    async def column_exists(self, table: QualifiedName, name: str) -> bool:
        return bool(await self.existing_columns(table, [name]))

    async def any_column_exists(self, table: QualifiedName, names: Sequence[str]) -> bool:
        return bool(await self.existing_columns(table, names))

    async def all_columns_exist(self, table: QualifiedName, names: Sequence[str]) -> bool:
        existing = await self.existing_columns(table, names)
        return set(existing) == set(names)
