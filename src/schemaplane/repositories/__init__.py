"""Repository layer - data access abstraction.

Re-exports all repositories for convenience.
"""

from src.schemaplane.repositories.base import BaseRepository
from src.schemaplane.repositories.catalog import (
    CatalogRepository,
    ColumnCatalog,
    FunctionCatalog,
    IndexCatalog,
    StatsCatalog,
    TableCatalog,
)
from src.schemaplane.repositories.public import ProjectRepository

__all__ = [
    # Base
    "BaseRepository",
    "CatalogRepository",
    # Control plane
    "ProjectRepository",
    # Tenant catalog
    "ColumnCatalog",
    "FunctionCatalog",
    "IndexCatalog",
    "StatsCatalog",
    "TableCatalog",
]
