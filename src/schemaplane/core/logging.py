"""Logging configuration using structlog."""

import logging
import sys
from contextlib import AbstractContextManager
from uuid import UUID

import structlog
from structlog.contextvars import bound_contextvars


def setup_logging(debug: bool = False) -> None:
    """Configure structlog for structured logging.

    Args:
        debug: If True, use colored console output. If False, use JSON for production.
    """
    log_level = logging.DEBUG if debug else logging.INFO
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=log_level,
    )

    shared_processors: list[structlog.typing.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if debug:
        processors = shared_processors + [structlog.dev.ConsoleRenderer(colors=True)]
    else:
        processors = shared_processors + [structlog.processors.JSONRenderer()]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    # DDL statements are logged by the services themselves
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("asyncpg").setLevel(logging.WARNING)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a structlog logger instance.

    Args:
        name: Optional logger name.

    Returns:
        A bound structlog logger.
    """
    return structlog.get_logger(name)


def project_context(project_id: UUID, operation: str | None = None) -> AbstractContextManager[None]:
    """Bind project-level context to log calls made inside the block.

    Args:
        project_id: The project the current operation targets.
        operation: Name of the schema operation, e.g. ``table.create``.

    Usage:
        with project_context(project_id, "table.create"):
            logger.info("Schema operation started")
    """
    context = {"project_id": str(project_id)}
    if operation:
        context["operation"] = operation
    return bound_contextvars(**context)
