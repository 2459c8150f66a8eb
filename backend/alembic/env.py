from __future__ import annotations
"""Alembic environment for the storyframe schema.

The database URL comes from ``storyframe.config`` (``DB_URL`` or the
``DB_*`` parts) unless overridden with ``alembic -x db_url=...``. SQLite
URLs run in batch mode so ALTER-style migrations work on local databases.
"""

import asyncio
import logging
from logging.config import fileConfig

from alembic import context
from sqlalchemy.engine import Connection

from storyframe.config import get_settings
from storyframe.database import Base, build_engine
import storyframe.models  # noqa: F401  registers every table on Base.metadata

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

logger = logging.getLogger("alembic.env")

target_metadata = Base.metadata


def _database_url() -> str:
    override = context.get_x_argument(as_dictionary=True).get("db_url")
    return override or get_settings().DATABASE_URL


def _configure(**kwargs) -> None:
    url = _database_url()
    context.configure(
        target_metadata=target_metadata,
        compare_type=True,
        render_as_batch=url.startswith("sqlite"),
        **kwargs,
    )


def run_migrations_offline() -> None:
    """Emit SQL for the configured URL without connecting."""
    _configure(
        url=_database_url(),
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )
    with context.begin_transaction():
        context.run_migrations()


def _run_with_connection(connection: Connection) -> None:
    _configure(connection=connection)
    with context.begin_transaction():
        context.run_migrations()


async def run_migrations_online() -> None:
    # Same engine factory as the app, so sqlite gets NullPool and mysql asyncmy
    engine = build_engine(_database_url())
    logger.info("Migrating %s", engine.url.render_as_string(hide_password=True))
    try:
        async with engine.connect() as connection:
            await connection.run_sync(_run_with_connection)
    finally:
        await engine.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    asyncio.run(run_migrations_online())
