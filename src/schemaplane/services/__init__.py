from src.schemaplane.services.base import DDLExecutor, SchemaService
from src.schemaplane.services.column_service import ColumnService
from src.schemaplane.services.function_service import FunctionService
from src.schemaplane.services.index_service import IndexService
from src.schemaplane.services.project_service import ProjectService
from src.schemaplane.services.stats_service import StatsService
from src.schemaplane.services.table_service import TableService

__all__ = [
    "ColumnService",
    "DDLExecutor",
    "FunctionService",
    "IndexService",
    "ProjectService",
    "SchemaService",
    "StatsService",
    "TableService",
]
