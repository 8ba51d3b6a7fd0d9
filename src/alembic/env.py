import os
from logging.config import fileConfig

from sqlalchemy import create_engine, pool, text
from sqlmodel import SQLModel

from alembic import context
from src.schemaplane.core.config import get_settings
from src.schemaplane.core.migrations import sync_database_url

# Import all models for metadata
from src.schemaplane.models import Project  # noqa: F401

config = context.config

if config.config_file_name is not None and os.path.exists(config.config_file_name):
    fileConfig(config.config_file_name)

target_metadata = SQLModel.metadata


def get_url() -> str:
    """Get sync control-plane URL (psycopg2 driver).

    Only the control plane is migrated: tenant databases have no fixed
    schema, their shape is managed at runtime.
    """
    return sync_database_url(get_settings().database_url)


def include_object(obj, name, type_, reflected, compare_to):
    """Only compare control-plane tables in the public schema."""
    if type_ != "table":
        return True
    return getattr(obj, "schema", None) == "public"


def run_migrations_offline() -> None:
    """Run migrations in 'offline' mode."""
    context.configure(
        url=get_url(),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )

    with context.begin_transaction():
        context.run_migrations()


def do_run_migrations(connection) -> None:
    # Pin search_path so nothing lands in a non-default schema
    connection.execute(text("SET search_path TO public"))
    connection.commit()
    context.configure(
        connection=connection,
        target_metadata=target_metadata,
        version_table_schema="public",
        compare_type=True,
        include_object=include_object,
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """Run migrations in 'online' mode with sync engine."""
    connectable = create_engine(get_url(), poolclass=pool.NullPool)

    with connectable.connect() as connection:
        do_run_migrations(connection)

    connectable.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
