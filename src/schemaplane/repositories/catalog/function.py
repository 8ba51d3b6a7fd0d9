"""Function introspection."""

from src.schemaplane.models.catalog import FunctionDefinition, FunctionParameter, FunctionSummary
from src.schemaplane.repositories.catalog.base import CatalogRepository

_LIST_FUNCTIONS = """
    SELECT
        routine_schema::text AS schema,
        routine_name::text AS name,
        data_type::text AS return_type,
        lower(external_language::text) AS language,
        sql_data_access::text AS sql_data_access
    FROM information_schema.routines
    WHERE specific_schema::text = :schema
      AND routine_type = 'FUNCTION'
    ORDER BY routine_name
"""

_GET_FUNCTION = """
    SELECT
        n.nspname AS schema,
        p.proname AS name,
        COALESCE(p.proargnames, ARRAY[]::text[]) AS parameter_names,
        ARRAY(
            SELECT format_type(t.type_oid, NULL)
            FROM unnest(p.proargtypes::oid[]) WITH ORDINALITY AS t(type_oid, ord)
            ORDER BY t.ord
        ) AS parameter_types,
        pg_get_function_result(p.oid) AS return_type,
        l.lanname AS language,
        p.prosrc AS body,
        pg_get_functiondef(p.oid) AS definition
    FROM pg_proc p
    JOIN pg_namespace n ON n.oid = p.pronamespace
    JOIN pg_language l ON l.oid = p.prolang
    WHERE n.nspname = :schema
      AND p.proname = :name
      AND p.prokind = 'f'
    ORDER BY p.oid
    LIMIT 1
"""

_FUNCTION_EXISTS = """
    SELECT EXISTS(
        SELECT 1
        FROM pg_proc p
        JOIN pg_namespace n ON n.oid = p.pronamespace
        WHERE n.nspname = :schema
          AND p.proname = :name
          AND p.prokind = 'f'
    )
"""


class FunctionCatalog(CatalogRepository):
    """Functions of one schema."""

    async def list_functions(self, schema: str) -> list[FunctionSummary]:
        rows = await self._fetch_all(_LIST_FUNCTIONS, {"schema": schema})
        return [
            FunctionSummary(
                schema=row["schema"],
                name=row["name"],
                return_type=row["return_type"],
                language=row["language"],
                sql_data_access=row["sql_data_access"],
            )
            for row in rows
        ]

    async def function_exists(self, schema: str, name: str) -> bool:
        return bool(await self._scalar(_FUNCTION_EXISTS, {"schema": schema, "name": name}))

    async def get_function(self, schema: str, name: str) -> FunctionDefinition | None:
        """Reconstruct a function from the catalog.

        With overloads, the oldest one is returned. ``body`` is the source
        between the dollar quotes; ``definition`` is the server's full
        CREATE OR REPLACE rendering.
        """
        row = await self._fetch_one(_GET_FUNCTION, {"schema": schema, "name": name})
        if row is None:
            return None

        names = list(row["parameter_names"])
        parameters = [
            FunctionParameter(
                name=names[i] if i < len(names) and names[i] else f"${i + 1}",
                type=type_name,
            )
            for i, type_name in enumerate(row["parameter_types"])
        ]
        return FunctionDefinition(
            schema=row["schema"],
            name=row["name"],
            parameters=parameters,
            return_type=row["return_type"],
            language=row["language"],
            body=row["body"].strip(),
            definition=row["definition"],
        )
