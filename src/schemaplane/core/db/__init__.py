"""Database utilities - engines, sessions and the tenant router."""

from src.schemaplane.core.db.engine import create_control_engine, get_connect_args
from src.schemaplane.core.db.router import TenantConnectionRouter
from src.schemaplane.core.db.session import get_public_session

__all__ = [
    # Engine
    "create_control_engine",
    "get_connect_args",
    # Session
    "get_public_session",
    # Tenant routing
    "TenantConnectionRouter",
]
