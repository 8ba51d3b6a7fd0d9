"""Error taxonomy for schema operations.

Every error carries a machine-stable ``key`` (e.g. ``table.error.alreadyExists``)
that the calling layer maps to a response status and a localized message.
"""

import re
from typing import Any

from sqlalchemy.exc import DBAPIError

from src.schemaplane.core.security.validators import Rejection

# SQLSTATE codes, see https://www.postgresql.org/docs/current/errcodes-appendix.html
_DUPLICATE_STATES = {
    "42P07": "alreadyExists",  # duplicate_table (also indexes)
    "42701": "alreadyExists",  # duplicate_column
    "42710": "alreadyExists",  # duplicate_object
    "42723": "alreadyExists",  # duplicate_function
    "42P06": "alreadyExists",  # duplicate_schema
    "42P04": "alreadyExists",  # duplicate_database
    "23505": "alreadyExists",  # unique_violation (catalog race)
}
_UNDEFINED_STATES = {
    "42P01": "notFound",  # undefined_table
    "42703": "notFound",  # undefined_column
    "42704": "notFound",  # undefined_object
    "42883": "notFound",  # undefined_function
    "3D000": "notFound",  # invalid_catalog_name
    "3F000": "notFound",  # invalid_schema_name
}
_DEPENDENT_OBJECTS = "2BP01"
_DATATYPE_MISMATCH = "42804"
# 42704 also covers unknown type names, which say nothing about the entity
_UNDEFINED_OBJECT = "42704"
_UNDEFINED_TYPE = re.compile(r"\btype \"[^\"]*\" does not exist")
_QUERY_CANCELED = "57014"  # statement_timeout: the statement was rolled back


class SchemaEngineError(Exception):
    """Base class for all schema engine errors."""

    def __init__(
        self,
        key: str,
        message: str | None = None,
        *,
        operation: str | None = None,
        target: str | None = None,
    ):
        self.key = key
        self.message = message or key
        self.operation = operation
        self.target = target
        super().__init__(self.message)

    def __str__(self) -> str:
        context = ", ".join(
            f"{label}={value}"
            for label, value in (("operation", self.operation), ("target", self.target))
            if value
        )
        return f"[{self.key}] {self.message}" + (f" ({context})" if context else "")

    def to_dict(self) -> dict[str, Any]:
        return {
            "key": self.key,
            "message": self.message,
            "operation": self.operation,
            "target": self.target,
        }


class SchemaValidationError(SchemaEngineError):
    """Client-fixable input problem, detected before any database contact."""

    def __init__(
        self,
        key: str,
        errors: list[Rejection] | None = None,
        message: str | None = None,
        *,
        operation: str | None = None,
        target: str | None = None,
    ):
        self.errors = errors or []
        if message is None and self.errors:
            message = "; ".join(rejection.message for rejection in self.errors)
        super().__init__(key, message, operation=operation, target=target)

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["errors"] = [rejection.to_dict() for rejection in self.errors]
        return data


class ConflictError(SchemaEngineError):
    """Target already exists, or a referenced object is missing."""


class NotFoundError(SchemaEngineError):
    """Target of an alter, rename or drop does not exist."""


class ExecutionError(SchemaEngineError):
    """The database rejected a pre-validated statement."""

    def __init__(
        self,
        key: str,
        message: str | None = None,
        *,
        operation: str | None = None,
        target: str | None = None,
        sqlstate: str | None = None,
    ):
        self.sqlstate = sqlstate
        super().__init__(key, message, operation=operation, target=target)

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["sqlstate"] = self.sqlstate
        return data


class RoutingError(SchemaEngineError):
    """The project has no resolvable physical database."""


def get_sqlstate(exc: DBAPIError) -> str | None:
    """Extract the SQLSTATE from a wrapped driver error (asyncpg or psycopg2)."""
    orig = exc.orig
    return getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)


def translate_database_error(
    exc: DBAPIError,
    *,
    operation: str,
    target: str,
    entity: str = "database",
) -> SchemaEngineError:
    """Map a driver error onto the error taxonomy.

    The original driver message is kept verbatim so the failing call can be
    reconstructed from logs.

    Args:
        exc: The SQLAlchemy-wrapped driver error.
        operation: Name of the failing operation (e.g. ``column.create_many``).
        target: Identifier the operation was acting on.
        entity: Key namespace for conflict/not-found keys (``table``, ``column``...).
    """
    sqlstate = get_sqlstate(exc)
    detail = str(exc.orig) if exc.orig is not None else str(exc)

    if sqlstate in _DUPLICATE_STATES:
        return ConflictError(
            f"{entity}.error.{_DUPLICATE_STATES[sqlstate]}",
            detail,
            operation=operation,
            target=target,
        )
    if sqlstate == _UNDEFINED_OBJECT and _UNDEFINED_TYPE.search(detail):
        return ExecutionError(
            "database.error.execution",
            detail,
            operation=operation,
            target=target,
            sqlstate=sqlstate,
        )
    if sqlstate in _UNDEFINED_STATES:
        return NotFoundError(
            f"{entity}.error.{_UNDEFINED_STATES[sqlstate]}",
            detail,
            operation=operation,
            target=target,
        )
    if sqlstate == _DEPENDENT_OBJECTS:
        return ConflictError(
            f"{entity}.error.hasDependents",
            detail,
            operation=operation,
            target=target,
        )
    if sqlstate == _QUERY_CANCELED:
        return ExecutionError(
            "database.error.timeout",
            detail,
            operation=operation,
            target=target,
            sqlstate=sqlstate,
        )
    if sqlstate is not None and (sqlstate.startswith("22") or sqlstate == _DATATYPE_MISMATCH):
        return ExecutionError(
            "database.error.dataConversion",
            detail,
            operation=operation,
            target=target,
            sqlstate=sqlstate,
        )
    return ExecutionError(
        "database.error.execution",
        detail,
        operation=operation,
        target=target,
        sqlstate=sqlstate,
    )
