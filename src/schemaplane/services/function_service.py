"""Function service."""

from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncConnection

from src.schemaplane.core.exceptions import ConflictError, NotFoundError
from src.schemaplane.core.security import (
    DEFAULT_SCHEMA,
    IdentifierKind,
    collect_function_rejections,
)
from src.schemaplane.ddl import build_create_function, build_drop_function
from src.schemaplane.models.catalog import FunctionDefinition, FunctionSummary
from src.schemaplane.repositories.catalog import FunctionCatalog
from src.schemaplane.schemas.function import FunctionCreate
from src.schemaplane.schemas.mapper import to_function_definition
from src.schemaplane.services.base import DDLExecutor, SchemaService


def _normalized_body(body: str) -> str:
    return body.strip().rstrip(";").strip()


class FunctionService(SchemaService):
    """Stored functions of one schema.

    Bodies are only checked for pairing before they are sent; anything
    deeper is left to PostgreSQL and reported as an execution error.
    """

    entity = "function"

    async def get(
        self, project_id: UUID, schema: str, name: str, *, timeout: float | None = None
    ) -> FunctionDefinition:
        operation = "function.get"
        self._check_schema(schema, operation=operation)
        target = f"{schema}.{name}"
        self._check_identifier(name, IdentifierKind.FUNCTION, operation=operation, target=target)

        async def work(connection: AsyncConnection) -> FunctionDefinition:
            function = await FunctionCatalog(connection).get_function(schema, name)
            if function is None:
                raise NotFoundError(
                    "function.error.notFound",
                    f"Function {target} does not exist",
                    operation=operation,
                    target=target,
                )
            return function

        return await self._read(project_id, operation, target, work, timeout=timeout)

    async def create(
        self,
        project_id: UUID,
        schema: str,
        command: FunctionCreate,
        *,
        timeout: float | None = None,
    ) -> FunctionDefinition:
        """Create a function and return it as the catalog renders it.

        Raises:
            SchemaValidationError: Invalid name, type, language or unpaired body
            ConflictError: A function of that name already exists
        """
        operation = "function.create"
        definition = to_function_definition(schema, command)
        target = f"{schema}.{definition.name}"
        self._raise_if_rejected(
            collect_function_rejections(definition), operation=operation, target=target
        )

        async def work(connection: AsyncConnection, ddl: DDLExecutor) -> FunctionDefinition:
            functions = FunctionCatalog(connection)
            if await functions.function_exists(schema, definition.name):
                raise ConflictError(
                    "function.error.alreadyExists",
                    f"Function {target} already exists",
                    operation=operation,
                    target=target,
                )
            await ddl.execute(build_create_function(definition))
            return await functions.get_function(schema, definition.name)

        async def confirm(connection: AsyncConnection) -> FunctionDefinition | None:
            return await FunctionCatalog(connection).get_function(schema, definition.name)

        return await self._run(
            project_id, operation, target, work, confirm=confirm, timeout=timeout
        )

    async def update(
        self,
        project_id: UUID,
        schema: str,
        name: str,
        command: FunctionCreate,
        *,
        timeout: float | None = None,
    ) -> FunctionDefinition:
        """Replace a function by dropping and re-creating it in one transaction.

        A clean drop-and-create also covers signature and return-type
        changes, which CREATE OR REPLACE refuses.
        """
        operation = "function.update"
        target = f"{schema}.{name}"
        self._check_identifier(name, IdentifierKind.FUNCTION, operation=operation, target=target)
        definition = to_function_definition(schema, command)
        self._raise_if_rejected(
            collect_function_rejections(definition), operation=operation, target=target
        )

        async def work(connection: AsyncConnection, ddl: DDLExecutor) -> FunctionDefinition:
            functions = FunctionCatalog(connection)
            existing = await functions.get_function(schema, name)
            if existing is None:
                raise NotFoundError(
                    "function.error.notFound",
                    f"Function {target} does not exist",
                    operation=operation,
                    target=target,
                )
            if definition.name != name and await functions.function_exists(
                schema, definition.name
            ):
                raise ConflictError(
                    "function.error.alreadyExists",
                    f"Function {schema}.{definition.name} already exists",
                    operation=operation,
                    target=target,
                )
            await ddl.execute(
                [
                    build_drop_function(
                        schema, name, [parameter.type for parameter in existing.parameters]
                    ),
                    build_create_function(definition),
                ]
            )
            return await functions.get_function(schema, definition.name)

        async def confirm(connection: AsyncConnection) -> FunctionDefinition | None:
            function = await FunctionCatalog(connection).get_function(schema, definition.name)
            if function is None:
                return None
            if _normalized_body(function.body) != _normalized_body(definition.body):
                return None
            return function

        return await self._run(
            project_id, operation, target, work, confirm=confirm, timeout=timeout
        )

    async def delete(
        self, project_id: UUID, schema: str, name: str, *, timeout: float | None = None
    ) -> bool:
        operation = "function.delete"
        self._check_schema(schema, operation=operation)
        target = f"{schema}.{name}"
        self._check_identifier(name, IdentifierKind.FUNCTION, operation=operation, target=target)

        async def work(connection: AsyncConnection, ddl: DDLExecutor) -> bool:
            if not await FunctionCatalog(connection).function_exists(schema, name):
                raise NotFoundError(
                    "function.error.notFound",
                    f"Function {target} does not exist",
                    operation=operation,
                    target=target,
                )
            await ddl.execute(build_drop_function(schema, name))
            return True

        async def confirm(connection: AsyncConnection) -> bool | None:
            return None if await FunctionCatalog(connection).function_exists(schema, name) else True

        return await self._run(
            project_id, operation, target, work, confirm=confirm, timeout=timeout
        )

    async def list(
        self, project_id: UUID, schema: str = DEFAULT_SCHEMA, *, timeout: float | None = None
    ) -> list[FunctionSummary]:
        operation = "function.list"
        self._check_schema(schema, operation=operation)
        return await self._read(
            project_id,
            operation,
            schema,
            lambda connection: FunctionCatalog(connection).list_functions(schema),
            timeout=timeout,
        )
