"""Document store access for Dramatiq background tasks."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from cpq.config import settings
from cpq.store.sql_store import SqlDocumentStore


@asynccontextmanager
async def task_store() -> AsyncGenerator[SqlDocumentStore]:
    """Document store bound to a fresh engine for the current event loop.

    Each asyncio.run() call in an actor creates a new event loop, and
    database connections must belong to that loop. The engine is disposed
    on exit.

    Usage:
        async with task_store() as store:
            await QuoteService(store).get_quote(tenant_id, quote_id)
    """
    engine = create_async_engine(
        settings.database_url,
        echo=False,  # SQL logging controlled via structlog configuration
        pool_size=2,
        max_overflow=3,
        pool_pre_ping=True,
    )
    try:
        yield SqlDocumentStore(async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False))
    finally:
        # Release all connections back to PostgreSQL
        await engine.dispose()
