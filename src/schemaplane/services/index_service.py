"""Index service."""

from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncConnection

from src.schemaplane.core.exceptions import ConflictError, NotFoundError
from src.schemaplane.core.security import IdentifierKind, collect_index_rejections
from src.schemaplane.ddl import build_create_index, build_drop_index
from src.schemaplane.models.catalog import IndexDefinition
from src.schemaplane.repositories.catalog import ColumnCatalog, IndexCatalog
from src.schemaplane.schemas.index import IndexCreate
from src.schemaplane.schemas.mapper import to_index_definition
from src.schemaplane.services.base import DDLExecutor, SchemaService


class IndexService(SchemaService):
    """Indexes of one table.

    Index names live in the relation namespace of their schema, so a name
    is a duplicate if any table or index of the schema already uses it.
    """

    entity = "index"

    async def get(
        self, project_id: UUID, table_name: str, index_name: str, *, timeout: float | None = None
    ) -> IndexDefinition:
        operation = "index.get"
        table = self._parse_table(table_name, operation=operation)
        target = f"{table.schema}.{index_name}"
        self._check_identifier(index_name, IdentifierKind.INDEX, operation=operation, target=target)

        async def work(connection: AsyncConnection) -> IndexDefinition:
            await self._require_table(connection, table, operation=operation)
            index = await IndexCatalog(connection).get_index(table, index_name)
            if index is None:
                raise NotFoundError(
                    "index.error.notFound",
                    f"Index {index_name} does not exist on {table}",
                    operation=operation,
                    target=target,
                )
            return index

        return await self._read(project_id, operation, target, work, timeout=timeout)

    async def create(
        self,
        project_id: UUID,
        table_name: str,
        command: IndexCreate,
        *,
        timeout: float | None = None,
    ) -> IndexDefinition:
        """Create an index on existing columns.

        Raises:
            SchemaValidationError: Invalid name, empty or duplicate column list
            NotFoundError: The table does not exist
            ConflictError: A referenced column is missing, or the name is taken
        """
        operation = "index.create"
        table = self._parse_table(table_name, operation=operation)
        definition = to_index_definition(table, command)
        target = f"{table.schema}.{definition.name}"
        self._raise_if_rejected(
            collect_index_rejections(definition), operation=operation, target=target
        )

        async def work(connection: AsyncConnection, ddl: DDLExecutor) -> IndexDefinition:
            indexes = IndexCatalog(connection)
            await self._require_table(connection, table, operation=operation)
            existing = await ColumnCatalog(connection).existing_columns(table, definition.columns)
            missing = [column for column in definition.columns if column not in existing]
            if missing:
                raise ConflictError(
                    "index.error.columnsNotFound",
                    f"Columns not found on {table}: {', '.join(missing)}",
                    operation=operation,
                    target=target,
                )
            if await indexes.name_in_use(table.schema, definition.name):
                raise ConflictError(
                    "index.error.alreadyExists",
                    f"Name {definition.name} is already used in schema {table.schema}",
                    operation=operation,
                    target=target,
                )
            await ddl.execute(build_create_index(definition))
            return await indexes.get_index(table, definition.name)

        async def confirm(connection: AsyncConnection) -> IndexDefinition | None:
            return await IndexCatalog(connection).get_index(table, definition.name)

        return await self._run(
            project_id, operation, target, work, confirm=confirm, timeout=timeout
        )

    async def delete(
        self, project_id: UUID, table_name: str, index_name: str, *, timeout: float | None = None
    ) -> bool:
        operation = "index.delete"
        table = self._parse_table(table_name, operation=operation)
        target = f"{table.schema}.{index_name}"
        self._check_identifier(index_name, IdentifierKind.INDEX, operation=operation, target=target)

        async def work(connection: AsyncConnection, ddl: DDLExecutor) -> bool:
            await self._require_table(connection, table, operation=operation)
            if not await IndexCatalog(connection).index_exists(table, index_name):
                raise NotFoundError(
                    "index.error.notFound",
                    f"Index {index_name} does not exist on {table}",
                    operation=operation,
                    target=target,
                )
            await ddl.execute(build_drop_index(table.schema, index_name))
            return True

        async def confirm(connection: AsyncConnection) -> bool | None:
            return None if await IndexCatalog(connection).index_exists(table, index_name) else True

        return await self._run(
            project_id, operation, target, work, confirm=confirm, timeout=timeout
        )

    async def list(
        self, project_id: UUID, table_name: str, *, timeout: float | None = None
    ) -> list[str]:
        """Index names of a table."""
        operation = "index.list"
        table = self._parse_table(table_name, operation=operation)

        async def work(connection: AsyncConnection) -> list[str]:
            await self._require_table(connection, table, operation=operation)
            return await IndexCatalog(connection).list_indexes(table)

        return await self._read(project_id, operation, str(table), work, timeout=timeout)
