"""
Database session management.

This module provides utilities for creating and managing database sessions
using async SQLAlchemy (PostgreSQL via asyncpg, SQLite via aiosqlite).
"""

from typing import AsyncGenerator

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from procurement.core.config import settings
from procurement.core.logging import logger


def build_engine(url: str, **overrides) -> AsyncEngine:
    """
    Create an async engine for ``url`` with pool and timeout settings that
    suit the backend.
    """
    if url.startswith("postgresql://"):
        url = url.replace("postgresql://", "postgresql+asyncpg://", 1)
    kwargs = {"echo": False, "future": True, "pool_pre_ping": True}
    if url.startswith("sqlite"):
        kwargs["connect_args"] = {"timeout": settings.store.timeout_seconds}
    else:
        kwargs.update(
            pool_size=settings.database.pool_size,
            max_overflow=settings.database.max_overflow,
            pool_recycle=settings.database.pool_recycle,
            pool_timeout=settings.database.pool_timeout,
            connect_args={"command_timeout": settings.store.timeout_seconds},
        )
    kwargs.update(overrides)
    new_engine = create_async_engine(url, **kwargs)
    if url.startswith("sqlite"):
        enable_sqlite_foreign_keys(new_engine)
    return new_engine


def enable_sqlite_foreign_keys(target: AsyncEngine) -> None:
    """SQLite only enforces foreign keys when asked to, per connection."""

    @event.listens_for(target.sync_engine, "connect")
    def _set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def build_sessionmaker(target: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(target, class_=AsyncSession, expire_on_commit=False)


# Create async engine
engine = build_engine(settings.database.url)

# Create async session factory
AsyncSessionLocal = build_sessionmaker(engine)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Get a database session.

    This function is used as a dependency in FastAPI endpoints to provide
    a database session. It ensures the session is properly closed after use.

    Yields:
        AsyncSession: Database session
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
        except Exception as e:
            logger.error(f"Database session error: {e}")
            await session.rollback()
            raise
        finally:
            await session.close()
