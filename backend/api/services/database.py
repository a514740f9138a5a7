"""Database connection and session management.

The microsites database is Supabase Postgres. In Lambda it is reached
through the Supabase connection pooler; locally through a direct
connection or a plain Postgres container.
"""

import logging
from collections.abc import AsyncGenerator, AsyncIterator
from contextlib import asynccontextmanager
from typing import Any
from urllib.parse import urlsplit

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from common.config import settings

logger = logging.getLogger(__name__)

# Supavisor transaction mode listens on this port
TRANSACTION_POOLER_PORT = 6543

_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def _get_database_url() -> str:
    url = settings.resolved_database_url
    if not url:
        raise ValueError("Database not configured. Set DATABASE_URL or DATABASE_SECRET_ARN")
    return url


def uses_transaction_pooler(url: str) -> bool:
    """Whether ``url`` points at a transaction-mode connection pooler."""
    return urlsplit(url).port == TRANSACTION_POOLER_PORT


def engine_options(url: str) -> dict[str, Any]:
    """Keyword arguments for ``create_async_engine``.

    A transaction pooler hands each transaction a different server
    connection, so asyncpg must not cache prepared statements.
    """
    options: dict[str, Any] = {
        "pool_size": 1,
        "max_overflow": 0,
        "pool_pre_ping": True,
        "echo": settings.debug,
    }
    if uses_transaction_pooler(url):
        options["connect_args"] = {"statement_cache_size": 0}
    return options


def get_engine() -> AsyncEngine:
    """Get or create the async engine. One connection per Lambda container."""
    global _engine

    if _engine is None:
        url = _get_database_url()
        _engine = create_async_engine(url, **engine_options(url))
        logger.info(f"Database engine created (pooler={uses_transaction_pooler(url)})")

    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    global _session_factory

    if _session_factory is None:
        _session_factory = async_sessionmaker(
            get_engine(),
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )

    return _session_factory


@asynccontextmanager
async def session_scope(
    factory: async_sessionmaker[AsyncSession] | None = None,
) -> AsyncIterator[AsyncSession]:
    """Session committed on success and rolled back on error."""
    factory = factory or get_session_factory()
    async with factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency yielding one session per request.

    Usage:
        @router.get("/microsites")
        async def list_microsites(db: AsyncSession = Depends(get_db)):
            ...
    """
    async with session_scope() as session:
        yield session


async def close_db() -> None:
    """Dispose of the engine. Called on application shutdown."""
    global _engine, _session_factory

    if _engine is not None:
        await _engine.dispose()
        _engine = None
        _session_factory = None
