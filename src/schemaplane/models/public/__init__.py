"""Control-plane models.

Tenant databases own no models: their shape is read from the catalog.
"""

from src.schemaplane.models.enums import ProjectStatus
from src.schemaplane.models.public.project import Project

__all__ = [
    "Project",
    "ProjectStatus",
]
