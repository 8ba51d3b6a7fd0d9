"""Catalog introspection for tenant databases.

Read-only, uncached; each repository wraps a caller-supplied connection.
"""

from src.schemaplane.repositories.catalog.base import CatalogRepository
from src.schemaplane.repositories.catalog.column import ColumnCatalog, vocabulary_type
from src.schemaplane.repositories.catalog.function import FunctionCatalog
from src.schemaplane.repositories.catalog.index import IndexCatalog
from src.schemaplane.repositories.catalog.stats import UNUSED_INDEX_SCAN_THRESHOLD, StatsCatalog
from src.schemaplane.repositories.catalog.table import TableCatalog

__all__ = [
    "CatalogRepository",
    "ColumnCatalog",
    "FunctionCatalog",
    "IndexCatalog",
    "StatsCatalog",
    "TableCatalog",
    "UNUSED_INDEX_SCAN_THRESHOLD",
    "vocabulary_type",
]
