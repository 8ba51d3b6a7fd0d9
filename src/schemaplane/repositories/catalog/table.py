"""Table introspection."""

from src.schemaplane.models.catalog import QualifiedName, TableSummary
from src.schemaplane.repositories.catalog.base import CatalogRepository

_LIST_TABLES = """
    SELECT
        c.oid::bigint AS id,
        n.nspname AS schema,
        c.relname AS name,
        GREATEST(c.reltuples, 0)::bigint AS estimated_rows,
        pg_size_pretty(pg_total_relation_size(c.oid)) AS total_size
    FROM pg_class c
    JOIN pg_namespace n ON n.oid = c.relnamespace
    WHERE n.nspname = :schema
      AND c.relkind IN ('r', 'p')
    ORDER BY c.relname
"""

_TABLE_EXISTS = """
    SELECT EXISTS(
        SELECT 1
        FROM pg_class c
        JOIN pg_namespace n ON n.oid = c.relnamespace
        WHERE n.nspname = :schema
          AND c.relname = :name
          AND c.relkind IN ('r', 'p')
    )
"""

_SCHEMA_EXISTS = "SELECT EXISTS(SELECT 1 FROM pg_namespace WHERE nspname = :schema)"


class TableCatalog(CatalogRepository):
    """Tables of one tenant database."""

    async def list_tables(self, schema: str) -> list[TableSummary]:
        """List ordinary and partitioned tables in a schema, by name."""
        rows = await self._fetch_all(_LIST_TABLES, {"schema": schema})
        return [
            TableSummary(
                id=row["id"],
                schema=row["schema"],
                name=row["name"],
                estimated_rows=row["estimated_rows"],
                total_size=row["total_size"],
            )
            for row in rows
        ]

    async def table_exists(self, table: QualifiedName) -> bool:
        return bool(await self._scalar(_TABLE_EXISTS, {"schema": table.schema, "name": table.name}))

    async def schema_exists(self, schema: str) -> bool:
        return bool(await self._scalar(_SCHEMA_EXISTS, {"schema": schema}))
