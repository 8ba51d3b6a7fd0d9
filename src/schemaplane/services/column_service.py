"""Column service - batch add, batch type change, rename and drop columns."""

from collections.abc import Sequence
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncConnection

from src.schemaplane.core.exceptions import ConflictError, NotFoundError
from src.schemaplane.core.security import (
    IdentifierKind,
    Rejection,
    RejectionReason,
    collect_column_rejections,
    identifier_rejection,
)
from src.schemaplane.ddl import (
    build_add_columns,
    build_alter_column_types,
    build_drop_column,
    build_drop_columns,
    build_rename_column,
)
from src.schemaplane.models.catalog import ColumnDefinition, QualifiedName
from src.schemaplane.repositories.catalog import ColumnCatalog
from src.schemaplane.schemas.column import ColumnRename, ColumnsAlter, ColumnsCreate, ColumnsDelete
from src.schemaplane.schemas.mapper import to_column_definitions, to_type_changes
from src.schemaplane.services.base import DDLExecutor, SchemaService


def _name_rejections(names: Sequence[str]) -> list[Rejection]:
    if not names:
        return [
            Rejection(RejectionReason.EMPTY_BATCH, "At least one column is required", "", "names")
        ]
    rejections: list[Rejection] = []
    seen: set[str] = set()
    for position, name in enumerate(names):
        rejection = identifier_rejection(name, IdentifierKind.COLUMN)
        if rejection is not None:
            rejections.append(rejection.at(f"names[{position}]"))
        if name.lower() in seen:
            rejections.append(
                Rejection(
                    RejectionReason.DUPLICATE,
                    f"Duplicate column '{name}' in request",
                    name,
                    f"names[{position}]",
                )
            )
        seen.add(name.lower())
    return rejections


class ColumnService(SchemaService):
    """Columns of one table.

    Batches are validated as a whole before the database is contacted and
    executed in a single transaction: either every column changes or none.
    """

    entity = "column"

    async def create_many(
        self,
        project_id: UUID,
        table_name: str,
        command: ColumnsCreate,
        *,
        timeout: float | None = None,
    ) -> list[ColumnDefinition]:
        """Add columns and return the table's full column list.

        Raises:
            SchemaValidationError: Any column in the batch is invalid; the
                rejections name every failing column by position
            NotFoundError: The table does not exist
            ConflictError: Some columns already exist, or a foreign column
                references a missing table or column
        """
        operation = "column.create_many"
        table = self._parse_table(table_name, operation=operation)
        columns = to_column_definitions(command)
        self._raise_if_rejected(
            collect_column_rejections(columns), operation=operation, target=str(table)
        )
        names = [column.name for column in columns]

        async def work(connection: AsyncConnection, ddl: DDLExecutor) -> list[ColumnDefinition]:
            catalog = ColumnCatalog(connection)
            await self._require_table(connection, table, operation=operation)
            existing = await catalog.existing_columns(table, names)
            if existing:
                raise ConflictError(
                    "column.error.someAlreadyExist",
                    f"Columns already exist: {', '.join(existing)}",
                    operation=operation,
                    target=str(table),
                )
            await self._check_references(
                connection, columns, operation=operation, target=str(table)
            )
            await ddl.execute(build_add_columns(table, columns))
            return await catalog.list_columns(table)

        async def confirm(connection: AsyncConnection) -> list[ColumnDefinition] | None:
            catalog = ColumnCatalog(connection)
            if not await catalog.all_columns_exist(table, names):
                return None
            return await catalog.list_columns(table)

        return await self._run(
            project_id, operation, str(table), work, confirm=confirm, timeout=timeout
        )

    async def alter_many(
        self,
        project_id: UUID,
        table_name: str,
        command: ColumnsAlter,
        *,
        timeout: float | None = None,
    ) -> list[ColumnDefinition]:
        """Change column types.

        No cast expression is added: a change PostgreSQL cannot cast
        implicitly fails with ``database.error.dataConversion``.
        """
        operation = "column.alter_many"
        table = self._parse_table(table_name, operation=operation)
        changes = to_type_changes(command)
        self._raise_if_rejected(
            collect_column_rejections(changes, check_attributes=False),
            operation=operation,
            target=str(table),
        )
        names = [change.name for change in changes]
        wanted = {change.name: change.type.lower() for change in changes}

        async def work(connection: AsyncConnection, ddl: DDLExecutor) -> list[ColumnDefinition]:
            catalog = ColumnCatalog(connection)
            await self._require_table(connection, table, operation=operation)
            existing = await catalog.existing_columns(table, names)
            missing = [name for name in names if name not in existing]
            if missing:
                raise NotFoundError(
                    "column.error.someNotFound",
                    f"Columns not found: {', '.join(missing)}",
                    operation=operation,
                    target=str(table),
                )
            await ddl.execute(build_alter_column_types(table, changes))
            return await catalog.list_columns(table)

        async def confirm(connection: AsyncConnection) -> list[ColumnDefinition] | None:
            columns = await ColumnCatalog(connection).list_columns(table)
            current = {column.name: column.type for column in columns}
            if any(current.get(name) != type_name for name, type_name in wanted.items()):
                return None
            return columns

        return await self._run(
            project_id, operation, str(table), work, confirm=confirm, timeout=timeout
        )

    async def rename(
        self,
        project_id: UUID,
        table_name: str,
        column_name: str,
        command: ColumnRename,
        *,
        timeout: float | None = None,
    ) -> list[ColumnDefinition]:
        operation = "column.rename"
        table = self._parse_table(table_name, operation=operation)
        target = f"{table}.{column_name}"
        self._check_identifier(
            column_name, IdentifierKind.COLUMN, operation=operation, target=target
        )
        self._check_identifier(
            command.name, IdentifierKind.COLUMN, operation=operation, target=target
        )

        async def work(connection: AsyncConnection, ddl: DDLExecutor) -> list[ColumnDefinition]:
            catalog = ColumnCatalog(connection)
            await self._require_table(connection, table, operation=operation)
            await self._require_column(connection, table, column_name, operation=operation)
            if await catalog.column_exists(table, command.name):
                raise ConflictError(
                    "column.error.alreadyExists",
                    f"Column {command.name} already exists on {table}",
                    operation=operation,
                    target=target,
                )
            await ddl.execute(build_rename_column(table, column_name, command.name))
            return await catalog.list_columns(table)

        async def confirm(connection: AsyncConnection) -> list[ColumnDefinition] | None:
            catalog = ColumnCatalog(connection)
            existing = await catalog.existing_columns(table, [column_name, command.name])
            if existing != [command.name]:
                return None
            return await catalog.list_columns(table)

        return await self._run(
            project_id, operation, target, work, confirm=confirm, timeout=timeout
        )

    async def delete(
        self,
        project_id: UUID,
        table_name: str,
        column_name: str,
        *,
        timeout: float | None = None,
    ) -> bool:
        operation = "column.delete"
        table = self._parse_table(table_name, operation=operation)
        target = f"{table}.{column_name}"
        self._check_identifier(
            column_name, IdentifierKind.COLUMN, operation=operation, target=target
        )

        async def work(connection: AsyncConnection, ddl: DDLExecutor) -> bool:
            await self._require_table(connection, table, operation=operation)
            await self._require_column(connection, table, column_name, operation=operation)
            await ddl.execute(build_drop_column(table, column_name))
            return True

        async def confirm(connection: AsyncConnection) -> bool | None:
            exists = await ColumnCatalog(connection).column_exists(table, column_name)
            return None if exists else True

        return await self._run(
            project_id, operation, target, work, confirm=confirm, timeout=timeout
        )

    async def delete_many(
        self,
        project_id: UUID,
        table_name: str,
        command: ColumnsDelete,
        *,
        timeout: float | None = None,
    ) -> bool:
        """Drop several columns in one statement."""
        operation = "column.delete_many"
        table = self._parse_table(table_name, operation=operation)
        names = list(command.names)
        self._raise_if_rejected(_name_rejections(names), operation=operation, target=str(table))

        async def work(connection: AsyncConnection, ddl: DDLExecutor) -> bool:
            await self._require_table(connection, table, operation=operation)
            if not await ColumnCatalog(connection).all_columns_exist(table, names):
                raise NotFoundError(
                    "column.error.someNotFound",
                    f"Some columns do not exist on {table}",
                    operation=operation,
                    target=str(table),
                )
            await ddl.execute(build_drop_columns(table, names))
            return True

        async def confirm(connection: AsyncConnection) -> bool | None:
            return None if await ColumnCatalog(connection).any_column_exists(table, names) else True

        return await self._run(
            project_id, operation, str(table), work, confirm=confirm, timeout=timeout
        )

    async def _require_column(
        self, connection: AsyncConnection, table: QualifiedName, name: str, *, operation: str
    ) -> None:
        if not await ColumnCatalog(connection).column_exists(table, name):
            raise NotFoundError(
                "column.error.notFound",
                f"Column {name} does not exist on {table}",
                operation=operation,
                target=f"{table}.{name}",
            )

    async def list(
        self, project_id: UUID, table_name: str, *, timeout: float | None = None
    ) -> list[ColumnDefinition]:
        """Columns of a table, in ordinal order."""
        operation = "column.list"
        table = self._parse_table(table_name, operation=operation)

        async def work(connection: AsyncConnection) -> list[ColumnDefinition]:
            await self._require_table(connection, table, operation=operation)
            return await ColumnCatalog(connection).list_columns(table)

        return await self._read(project_id, operation, str(table), work, timeout=timeout)
