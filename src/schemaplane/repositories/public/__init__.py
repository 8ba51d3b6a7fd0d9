"""Control-plane repositories.

Tenant databases have no repositories of their own: see repositories/catalog/.
"""

from src.schemaplane.repositories.public.project import ProjectRepository

__all__ = [
    "ProjectRepository",
]
