"""Alembic environment for the microsites database.

Supabase keeps its own schemas (auth, storage, realtime, ...) in the same
Postgres database; migrations only manage tables in ``public``.
"""

import asyncio
import os
from logging.config import fileConfig

from sqlalchemy import pool
from sqlalchemy.ext.asyncio import create_async_engine

from alembic import context

# Import models so autogenerate sees every table
from api.models import Base
from api.services.database import uses_transaction_pooler
from common.config import settings

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata

MANAGED_SCHEMA = "public"


def get_url() -> str:
    """Database URL from DATABASE_URL or the Secrets Manager secret."""
    url = os.getenv("DATABASE_URL") or settings.resolved_database_url
    if not url:
        raise RuntimeError("Set DATABASE_URL or DATABASE_SECRET_ARN to run migrations")
    return url


def include_name(name, type_, parent_names) -> bool:
    if type_ == "schema":
        return name in (None, MANAGED_SCHEMA)
    return True


def _configure(**kwargs) -> None:
    context.configure(
        target_metadata=target_metadata,
        compare_type=True,
        include_schemas=True,
        include_name=include_name,
        **kwargs,
    )


def run_migrations_offline() -> None:
    """Emit the migration SQL to stdout without connecting."""
    _configure(
        url=get_url(),
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )

    with context.begin_transaction():
        context.run_migrations()


def do_run_migrations(connection) -> None:
    _configure(connection=connection)

    with context.begin_transaction():
        context.run_migrations()


async def run_async_migrations() -> None:
    url = get_url()
    connect_args = {"statement_cache_size": 0} if uses_transaction_pooler(url) else {}
    engine = create_async_engine(url, poolclass=pool.NullPool, connect_args=connect_args)

    async with engine.connect() as connection:
        await connection.run_sync(do_run_migrations)

    await engine.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    asyncio.run(run_async_migrations())
