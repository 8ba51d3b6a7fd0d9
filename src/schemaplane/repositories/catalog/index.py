"""Index introspection."""

from src.schemaplane.models.catalog import IndexDefinition, QualifiedName
from src.schemaplane.repositories.catalog.base import CatalogRepository

_LIST_INDEXES = """
    SELECT indexname
    FROM pg_indexes
    WHERE schemaname = :schema
      AND tablename = :table
    ORDER BY indexname
"""

_INDEX_DEFINITION = """
    SELECT indexdef
    FROM pg_indexes
    WHERE schemaname = :schema
      AND tablename = :table
      AND indexname = :name
"""

_GET_INDEX = """
    SELECT
        i.relname AS name,
        t.relname AS table_name,
        n.nspname AS schema,
        ix.indisunique AS is_unique,
        ix.indisprimary AS is_primary,
        pg_get_indexdef(ix.indexrelid) AS definition,
        ARRAY(
            SELECT a.attname::text
            FROM unnest(ix.indkey::int2[]) WITH ORDINALITY AS k(attnum, ord)
            JOIN pg_attribute a ON a.attrelid = ix.indrelid AND a.attnum = k.attnum
            ORDER BY k.ord
        ) AS columns
    FROM pg_index ix
    JOIN pg_class i ON i.oid = ix.indexrelid
    JOIN pg_class t ON t.oid = ix.indrelid
    JOIN pg_namespace n ON n.oid = t.relnamespace
    WHERE n.nspname = :schema
      AND t.relname = :table
      AND i.relname = :name
"""

# Index names share the relation namespace of their schema
_RELATION_NAME_TAKEN = """
    SELECT EXISTS(
        SELECT 1
        FROM pg_class c
        JOIN pg_namespace n ON n.oid = c.relnamespace
        WHERE n.nspname = :schema
          AND c.relname = :name
    )
"""


class IndexCatalog(CatalogRepository):
    """Indexes of one table."""

    async def list_indexes(self, table: QualifiedName) -> list[str]:
        rows = await self._fetch_all(_LIST_INDEXES, {"schema": table.schema, "table": table.name})
        return [row["indexname"] for row in rows]

    async def index_exists(self, table: QualifiedName, name: str) -> bool:
        return await self.get_index_definition(table, name) is not None

    async def name_in_use(self, schema: str, name: str) -> bool:
        """Whether any relation in the schema already uses ``name``."""
        return bool(await self._scalar(_RELATION_NAME_TAKEN, {"schema": schema, "name": name}))

    async def get_index_definition(self, table: QualifiedName, name: str) -> str | None:
        """The server's own rendering of the index, for display only."""
        return await self._scalar(
            _INDEX_DEFINITION, {"schema": table.schema, "table": table.name, "name": name}
        )

    async def get_index(self, table: QualifiedName, name: str) -> IndexDefinition | None:
        row = await self._fetch_one(
            _GET_INDEX, {"schema": table.schema, "table": table.name, "name": name}
        )
        if row is None:
            return None
        return IndexDefinition(
            schema=row["schema"],
            table=row["table_name"],
            name=row["name"],
            columns=list(row["columns"]),
            unique=row["is_unique"],
            primary=row["is_primary"],
            definition=row["definition"],
        )
