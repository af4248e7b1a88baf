"""
Alembic Migration Environment

1. Load application settings (DATABASE_URL)
2. Import every model so Base.metadata knows all four tables
3. Run migrations offline (emit SQL) or online (async engine)

Usage:
------
    alembic upgrade head
    alembic revision --autogenerate -m "describe change"
"""

import asyncio
import sys
from logging.config import fileConfig
from pathlib import Path

from sqlalchemy import pool
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import async_engine_from_config

from alembic import context

# Add parent directory to Python path so we can import the sermonvault package
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from sermonvault.core.config import settings
from sermonvault.db.base import Base

# Registers users, sermons, sermon_processing and sermon_chunks on Base.metadata
from sermonvault.models import (  # noqa: F401
    Sermon,
    SermonChunk,
    SermonProcessing,
    User,
)

config = context.config

# DATABASE_URL from settings wins over alembic.ini
config.set_main_option("sqlalchemy.url", settings.DATABASE_URL)

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def include_object(object, name, type_, reflected, compare_to):
    """Leave the pgvector HNSW index alone; it is managed by hand in migrations."""
    if type_ == "index" and name and name.endswith("_hnsw"):
        return False
    return True


def run_migrations_offline() -> None:
    """Emit migration SQL without connecting to the database."""
    context.configure(
        url=config.get_main_option("sqlalchemy.url"),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        compare_type=True,
        compare_server_default=True,
        include_object=include_object,
    )

    with context.begin_transaction():
        context.run_migrations()


def do_run_migrations(connection: Connection) -> None:
    context.configure(
        connection=connection,
        target_metadata=target_metadata,
        compare_type=True,
        compare_server_default=True,
        include_object=include_object,
    )

    with context.begin_transaction():
        context.run_migrations()


async def run_async_migrations() -> None:
    """Run migrations over an async (asyncpg) connection."""
    connectable = async_engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )

    async with connectable.connect() as connection:
        await connection.run_sync(do_run_migrations)

    await connectable.dispose()


def run_migrations_online() -> None:
    asyncio.run(run_async_migrations())


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
