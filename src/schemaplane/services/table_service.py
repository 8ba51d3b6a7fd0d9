"""Table service - create, duplicate, rename and drop tables."""

from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncConnection

from src.schemaplane.core.exceptions import ConflictError, NotFoundError
from src.schemaplane.core.security import (
    DEFAULT_SCHEMA,
    IdentifierKind,
    collect_table_rejections,
)
from src.schemaplane.ddl import (
    build_create_table,
    build_drop_table,
    build_duplicate_table,
    build_rename_table,
)
from src.schemaplane.models.catalog import QualifiedName, TableDefinition, TableSummary
from src.schemaplane.repositories.catalog import ColumnCatalog, TableCatalog
from src.schemaplane.schemas.mapper import to_table_definition
from src.schemaplane.schemas.table import TableCreate, TableRename
from src.schemaplane.services.base import DDLExecutor, SchemaService


async def introspect_table(connection: AsyncConnection, table: QualifiedName) -> TableDefinition:
    columns = await ColumnCatalog(connection).list_columns(table)
    return TableDefinition(schema=table.schema, name=table.name, columns=columns)


class TableService(SchemaService):
    """Tables of a project's database. Every result is freshly introspected."""

    entity = "table"

    async def list(
        self, project_id: UUID, schema: str = DEFAULT_SCHEMA, *, timeout: float | None = None
    ) -> list[TableSummary]:
        operation = "table.list"
        self._check_schema(schema, operation=operation)
        return await self._read(
            project_id,
            operation,
            schema,
            lambda connection: TableCatalog(connection).list_tables(schema),
            timeout=timeout,
        )

    async def get(
        self, project_id: UUID, table_name: str, *, timeout: float | None = None
    ) -> TableDefinition:
        operation = "table.get"
        table = self._parse_table(table_name, operation=operation)

        async def work(connection: AsyncConnection) -> TableDefinition:
            await self._require_table(connection, table, operation=operation)
            return await introspect_table(connection, table)

        return await self._read(project_id, operation, str(table), work, timeout=timeout)

    async def create(
        self, project_id: UUID, command: TableCreate, *, timeout: float | None = None
    ) -> TableDefinition:
        """Create a table and return its introspected definition.

        Raises:
            SchemaValidationError: Invalid name, column, type or default
            NotFoundError: The schema does not exist
            ConflictError: The table already exists, or a foreign column
                references a missing table or column
        """
        operation = "table.create"
        definition = to_table_definition(command)
        table = definition.qualified_name
        self._raise_if_rejected(
            collect_table_rejections(definition), operation=operation, target=str(table)
        )

        async def work(connection: AsyncConnection, ddl: DDLExecutor) -> TableDefinition:
            tables = TableCatalog(connection)
            if not await tables.schema_exists(table.schema):
                raise NotFoundError(
                    "schema.error.notFound",
                    f"Schema {table.schema} does not exist",
                    operation=operation,
                    target=str(table),
                )
            if await tables.table_exists(table):
                raise ConflictError(
                    "table.error.alreadyExists",
                    f"Table {table} already exists",
                    operation=operation,
                    target=str(table),
                )
            await self._check_references(
                connection,
                definition.columns,
                operation=operation,
                target=str(table),
                creating=table,
            )
            await ddl.execute(build_create_table(definition))
            return await introspect_table(connection, table)

        async def confirm(connection: AsyncConnection) -> TableDefinition | None:
            if not await TableCatalog(connection).table_exists(table):
                return None
            return await introspect_table(connection, table)

        return await self._run(
            project_id, operation, str(table), work, confirm=confirm, timeout=timeout
        )

    async def duplicate(
        self,
        project_id: UUID,
        table_name: str,
        command: TableRename,
        *,
        timeout: float | None = None,
    ) -> TableDefinition:
        """Copy a table's columns and rows into a new table in the same schema."""
        operation = "table.duplicate"
        source = self._parse_table(table_name, operation=operation)
        self._check_identifier(
            command.name, IdentifierKind.TABLE, operation=operation, target=str(source)
        )
        destination = QualifiedName(source.schema, command.name)

        async def work(connection: AsyncConnection, ddl: DDLExecutor) -> TableDefinition:
            await self._require_table(connection, source, operation=operation)
            await self._require_free_name(connection, destination, operation=operation)
            await ddl.execute(build_duplicate_table(source, destination))
            return await introspect_table(connection, destination)

        async def confirm(connection: AsyncConnection) -> TableDefinition | None:
            if not await TableCatalog(connection).table_exists(destination):
                return None
            return await introspect_table(connection, destination)

        return await self._run(
            project_id, operation, str(source), work, confirm=confirm, timeout=timeout
        )

    async def rename(
        self,
        project_id: UUID,
        table_name: str,
        command: TableRename,
        *,
        timeout: float | None = None,
    ) -> TableDefinition:
        operation = "table.rename"
        source = self._parse_table(table_name, operation=operation)
        self._check_identifier(
            command.name, IdentifierKind.TABLE, operation=operation, target=str(source)
        )
        destination = QualifiedName(source.schema, command.name)

        async def work(connection: AsyncConnection, ddl: DDLExecutor) -> TableDefinition:
            await self._require_table(connection, source, operation=operation)
            await self._require_free_name(connection, destination, operation=operation)
            await ddl.execute(build_rename_table(source, destination.name))
            return await introspect_table(connection, destination)

        async def confirm(connection: AsyncConnection) -> TableDefinition | None:
            tables = TableCatalog(connection)
            if await tables.table_exists(source) or not await tables.table_exists(destination):
                return None
            return await introspect_table(connection, destination)

        return await self._run(
            project_id, operation, str(source), work, confirm=confirm, timeout=timeout
        )

    async def delete(
        self, project_id: UUID, table_name: str, *, timeout: float | None = None
    ) -> bool:
        """Drop a table.

        Dependent objects (views, foreign keys from other tables) make the
        drop fail with ``table.error.hasDependents``; nothing is cascaded.
        """
        operation = "table.delete"
        table = self._parse_table(table_name, operation=operation)

        async def work(connection: AsyncConnection, ddl: DDLExecutor) -> bool:
            await self._require_table(connection, table, operation=operation)
            await ddl.execute(build_drop_table(table))
            return True

        async def confirm(connection: AsyncConnection) -> bool | None:
            return None if await TableCatalog(connection).table_exists(table) else True

        return await self._run(
            project_id, operation, str(table), work, confirm=confirm, timeout=timeout
        )

    async def _require_free_name(
        self, connection: AsyncConnection, table: QualifiedName, *, operation: str
    ) -> None:
        if await TableCatalog(connection).table_exists(table):
            raise ConflictError(
                "table.error.alreadyExists",
                f"Table {table} already exists",
                operation=operation,
                target=str(table),
            )
