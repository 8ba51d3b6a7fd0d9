"""Control-plane migration runner for both production and tests."""

import asyncio

from alembic.config import Config
from sqlalchemy import make_url

from alembic import command


def sync_database_url(database_url: str) -> str:
    """The control-plane URL on the psycopg2 driver Alembic runs with."""
    url = make_url(database_url).set(drivername="postgresql+psycopg2")
    return url.render_as_string(hide_password=False)


def run_migrations_sync(config_path: str = "alembic.ini") -> None:
    """Upgrade the control-plane database to head."""
    command.upgrade(Config(config_path), "head")


async def run_migrations_async(config_path: str = "alembic.ini") -> None:
    """Run migrations from async context without blocking the event loop."""
    await asyncio.to_thread(run_migrations_sync, config_path)
