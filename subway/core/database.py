"""Database configuration and session management.

PostgreSQL (asyncpg) in deployment; SQLite (aiosqlite) for tests and local runs.
SQLite ignores foreign keys unless asked, so every SQLite connection turns them
on to keep the sections table's CASCADE and RESTRICT rules in force.
"""

import threading
from collections.abc import AsyncGenerator
from typing import Any

from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool

from subway.core.config import settings

# Module-level globals for lazy initialization (fork-safety)
_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None

_engine_lock = threading.Lock()
_session_factory_lock = threading.Lock()


def _is_sqlite_url(database_url: str) -> bool:
    return database_url.startswith("sqlite")


def _enable_sqlite_foreign_keys(dbapi_connection: Any, _connection_record: Any) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def create_engine_for_url(database_url: str, *, echo: bool = False, pooled: bool = True) -> AsyncEngine:
    """
    Create an async engine suited to the database behind `database_url`.

    Args:
        database_url: SQLAlchemy async URL (postgresql+asyncpg or sqlite+aiosqlite)
        echo: Log emitted SQL
        pooled: Use a sized connection pool; ignored for SQLite

    Returns:
        AsyncEngine: SQLAlchemy async engine
    """
    if _is_sqlite_url(database_url):
        # aiosqlite connections are bound to the loop that opened them
        engine = create_async_engine(database_url, echo=echo, poolclass=NullPool)
        event.listen(engine.sync_engine, "connect", _enable_sqlite_foreign_keys)
        return engine
    if not pooled:
        # NullPool doesn't accept pool_size/max_overflow parameters
        return create_async_engine(database_url, echo=echo, poolclass=NullPool)
    return create_async_engine(
        database_url,
        echo=echo,
        pool_size=settings.DATABASE_POOL_SIZE,
        max_overflow=settings.DATABASE_MAX_OVERFLOW,
    )


def get_engine() -> AsyncEngine:
    """
    Get or create database engine (lazy initialization).

    Lazy initialization prevents forked worker processes from inheriting
    the parent's engine with asyncio primitives bound to the parent's event loop.

    Returns:
        AsyncEngine: SQLAlchemy async engine
    """
    global _engine  # noqa: PLW0603
    if _engine is None:
        with _engine_lock:
            if _engine is None:  # Double-checked locking
                _engine = create_engine_for_url(
                    settings.DATABASE_URL,
                    echo=settings.DATABASE_ECHO,
                    pooled=not settings.DEBUG,
                )
    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """
    Get or create session factory (lazy initialization).

    Returns:
        async_sessionmaker[AsyncSession]: SQLAlchemy async session factory
    """
    global _session_factory  # noqa: PLW0603
    if _session_factory is None:
        with _session_factory_lock:
            if _session_factory is None:  # Double-checked locking
                _session_factory = async_sessionmaker(
                    get_engine(),
                    class_=AsyncSession,
                    expire_on_commit=False,
                    autoflush=False,
                )
    return _session_factory


async def get_db() -> AsyncGenerator[AsyncSession]:
    """
    Dependency for getting async database sessions.

    Yields:
        AsyncSession: Database session
    """
    async with get_session_factory()() as session:
        try:
            yield session
        finally:
            await session.close()
