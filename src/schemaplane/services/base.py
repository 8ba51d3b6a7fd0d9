"""Shared machinery for schema mutation services.

Every operation runs the same pipeline: validate (no database contact),
route to the project's database, check for conflicts through the catalog,
execute DDL and return the re-introspected result. The whole routed part
runs in one transaction, so a failure anywhere leaves the tenant database
as it was.
"""

import asyncio
from collections.abc import Awaitable, Callable, Sequence
from uuid import UUID

from sqlalchemy.exc import DBAPIError
from sqlalchemy.ext.asyncio import AsyncConnection

from src.schemaplane.core.config import Settings, get_settings
from src.schemaplane.core.db.router import TenantConnectionRouter
from src.schemaplane.core.exceptions import (
    ConflictError,
    ExecutionError,
    NotFoundError,
    SchemaEngineError,
    SchemaValidationError,
    get_sqlstate,
    translate_database_error,
)
from src.schemaplane.core.logging import get_logger, project_context
from src.schemaplane.core.security import (
    IdentifierKind,
    Rejection,
    collect_qualified_name_rejections,
    identifier_rejection,
    split_qualified_name,
)
from src.schemaplane.models.catalog import ColumnDefinition, QualifiedName
from src.schemaplane.repositories.catalog import ColumnCatalog, TableCatalog

logger = get_logger(__name__)


class DDLExecutor:
    """Runs DDL on one connection and remembers whether any was sent.

    A statement that was sent may have committed server-side even if the
    client gave up waiting, so a timeout after ``sent`` is an unknown
    outcome rather than a failure.
    """

    def __init__(self, connection: AsyncConnection):
        self.connection = connection
        self.sent = False

    async def execute(self, statements: str | Sequence[str]) -> None:
        if isinstance(statements, str):
            statements = [statements]
        for statement in statements:
            logger.debug("Executing DDL", statement=statement)
            self.sent = True
            # Sent verbatim: DDL carries no bind parameters
            await self.connection.exec_driver_sql(statement)


type Work[T] = Callable[[AsyncConnection, DDLExecutor], Awaitable[T]]
type Confirm[T] = Callable[[AsyncConnection], Awaitable[T | None]]


class SchemaService:
    """Base class for the table, column, index, function and stats services."""

    entity: str = "database"

    def __init__(self, router: TenantConnectionRouter, settings: Settings | None = None):
        self.router = router
        self.settings = settings or get_settings()

    # --- Validation (no database contact) ---

    def _raise_if_rejected(
        self, rejections: list[Rejection], *, operation: str, target: str, key: str | None = None
    ) -> None:
        if rejections:
            raise SchemaValidationError(
                key or f"{self.entity}.error.invalid",
                rejections,
                operation=operation,
                target=target,
            )

    def _parse_table(self, qualified: str, *, operation: str) -> QualifiedName:
        """Parse and validate a ``schema.table`` name."""
        schema, name = split_qualified_name(qualified)
        self._raise_if_rejected(
            collect_qualified_name_rejections(schema, name, IdentifierKind.TABLE),
            operation=operation,
            target=qualified,
            key="table.error.invalid",
        )
        return QualifiedName(schema, name)

    def _check_schema(self, schema: str, *, operation: str) -> str:
        rejection = identifier_rejection(schema, IdentifierKind.SCHEMA)
        if rejection is not None:
            raise SchemaValidationError(
                "schema.error.invalid",
                [rejection.at("schema")],
                operation=operation,
                target=schema,
            )
        return schema

    def _check_identifier(
        self, name: str, kind: IdentifierKind, *, operation: str, target: str, field: str = "name"
    ) -> str:
        rejection = identifier_rejection(name, kind)
        if rejection is not None:
            raise SchemaValidationError(
                f"{kind.value}.error.invalid",
                [rejection.at(field)],
                operation=operation,
                target=target,
            )
        return name

    # --- Catalog guards (inside the transaction) ---

    async def _require_table(
        self, connection: AsyncConnection, table: QualifiedName, *, operation: str
    ) -> None:
        if not await TableCatalog(connection).table_exists(table):
            raise NotFoundError(
                "table.error.notFound",
                f"Table {table} does not exist",
                operation=operation,
                target=str(table),
            )

    async def _check_references(
        self,
        connection: AsyncConnection,
        columns: Sequence[ColumnDefinition],
        *,
        operation: str,
        target: str,
        creating: QualifiedName | None = None,
    ) -> None:
        """Every foreign column must reference an existing table and column.

        ``creating`` is the table being created by this same operation; a
        self-reference to one of its new columns is allowed.
        """
        tables = TableCatalog(connection)
        catalog = ColumnCatalog(connection)
        new_columns = {column.name for column in columns}

        for column in columns:
            if not column.foreign or not column.reference_table or not column.reference_column:
                continue
            reference = QualifiedName.parse(column.reference_table)
            if reference == creating and column.reference_column in new_columns:
                continue
            if not await tables.table_exists(reference) or not await catalog.column_exists(
                reference, column.reference_column
            ):
                raise ConflictError(
                    "column.error.referenceNotFound",
                    f"Referenced column {reference}.{column.reference_column} does not exist",
                    operation=operation,
                    target=target,
                )

    # --- Execution ---

    async def _run[T](
        self,
        project_id: UUID,
        operation: str,
        target: str,
        work: Work[T],
        *,
        confirm: Confirm[T] | None = None,
        timeout: float | None = None,
    ) -> T:
        """Run ``work`` in a transaction on the project's database.

        Args:
            project_id: Project whose database is targeted.
            operation: Operation name for errors and logs, e.g. ``table.create``.
            target: Identifier the operation acts on.
            work: Conflict checks, DDL and re-introspection, run on one
                transactional connection.
            confirm: Re-introspection used when the deadline expires after
                DDL was sent; returns the result if the change is visible,
                None otherwise.
            timeout: Deadline in seconds, defaults to
                ``schema_operation_timeout_seconds``.

        Raises:
            SchemaEngineError: Any error of the taxonomy; driver errors are
                translated and chained.
        """
        deadline = (
            timeout if timeout is not None else self.settings.schema_operation_timeout_seconds
        )

        with project_context(project_id, operation):
            log = logger.bind(target=target)
            log.info("Schema operation started")
            executor: DDLExecutor | None = None

            try:
                async with asyncio.timeout(deadline):
                    async with self.router.begin(project_id) as connection:
                        executor = DDLExecutor(connection)
                        result = await work(connection, executor)
            except TimeoutError as e:
                sent = executor is not None and executor.sent
                log.warning("Schema operation timed out", ddl_sent=sent, timeout=deadline)
                if not sent or confirm is None:
                    raise ExecutionError(
                        "database.error.timeout",
                        f"Operation did not complete within {deadline}s",
                        operation=operation,
                        target=target,
                    ) from e
                result = await self._confirm(project_id, operation, target, confirm, deadline, e)
            except DBAPIError as e:
                error = translate_database_error(
                    e, operation=operation, target=target, entity=self.entity
                )
                log.error(
                    "Schema operation failed",
                    key=error.key,
                    sqlstate=get_sqlstate(e),
                    error=error.message,
                )
                raise error from e
            except SchemaEngineError as e:
                log.warning("Schema operation rejected", key=e.key, error=e.message)
                raise

            log.info("Schema operation finished")
            return result

    async def _confirm[T](
        self,
        project_id: UUID,
        operation: str,
        target: str,
        confirm: Confirm[T],
        deadline: float,
        cause: TimeoutError,
    ) -> T:
        """Re-introspect on a fresh connection after an unknown-outcome timeout."""
        try:
            async with asyncio.timeout(deadline):
                async with self.router.connect(project_id) as connection:
                    result = await confirm(connection)
        except (TimeoutError, DBAPIError) as e:
            raise ExecutionError(
                "database.error.timeout",
                f"Operation timed out and its outcome could not be confirmed: {e}",
                operation=operation,
                target=target,
            ) from cause

        if result is None:
            raise ExecutionError(
                "database.error.timeout",
                f"Operation did not complete within {deadline}s",
                operation=operation,
                target=target,
            ) from cause

        logger.warning("Schema operation timed out but the change is visible", target=target)
        return result

    async def _read[T](
        self,
        project_id: UUID,
        operation: str,
        target: str,
        work: Callable[[AsyncConnection], Awaitable[T]],
        *,
        timeout: float | None = None,
    ) -> T:
        """Run a read-only catalog query under the same deadline and error rules."""
        deadline = (
            timeout if timeout is not None else self.settings.schema_operation_timeout_seconds
        )
        try:
            async with asyncio.timeout(deadline):
                async with self.router.connect(project_id) as connection:
                    return await work(connection)
        except TimeoutError as e:
            raise ExecutionError(
                "database.error.timeout",
                f"Operation did not complete within {deadline}s",
                operation=operation,
                target=target,
            ) from e
        except DBAPIError as e:
            raise translate_database_error(
                e, operation=operation, target=target, entity=self.entity
            ) from e
