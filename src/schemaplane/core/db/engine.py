"""Database engine management."""

import ssl
from typing import Any

from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from src.schemaplane.core.config import Settings, get_settings


def get_connect_args(
    settings: Settings | None = None, statement_timeout_ms: int | None = None
) -> dict[str, Any]:
    """Get asyncpg connection arguments including SSL configuration.

    Args:
        settings: Settings to read from; defaults to the cached settings.
        statement_timeout_ms: Server-side ``statement_timeout`` applied to
            every connection of the pool, if given.
    """
    settings = settings or get_settings()
    connect_args: dict[str, Any] = {
        "statement_cache_size": settings.database_statement_cache_size,
    }

    ssl_mode = settings.database_ssl_mode
    if ssl_mode != "disable":
        ssl_context = ssl.create_default_context()
        if ssl_mode == "prefer" or ssl_mode == "require":
            ssl_context.check_hostname = False
            ssl_context.verify_mode = ssl.CERT_NONE
        elif ssl_mode in ("verify-ca", "verify-full"):
            ssl_context.check_hostname = ssl_mode == "verify-full"
            ssl_context.verify_mode = ssl.CERT_REQUIRED
        connect_args["ssl"] = ssl_context

    if statement_timeout_ms:
        connect_args["server_settings"] = {"statement_timeout": str(statement_timeout_ms)}

    return connect_args


def create_control_engine(settings: Settings | None = None) -> AsyncEngine:
    """Create the control-plane engine (projects registry).

    The engine is owned by whoever creates it, normally the container,
    and must be disposed by the same owner.
    """
    settings = settings or get_settings()
    return create_async_engine(
        settings.database_url,
        pool_size=settings.database_pool_size,
        max_overflow=settings.database_max_overflow,
        pool_pre_ping=True,
        connect_args=get_connect_args(settings),
    )
