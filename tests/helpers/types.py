"""
Type definitions for test fixtures.

Provides typed containers shared between conftest fixtures and test modules.
"""

from dataclasses import dataclass
from pathlib import Path

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker


@dataclass
class TestDatabaseContext:
    """
    Structured container for test database resources.

    Contains the async engine and session factory for one test's database file.
    """

    engine: AsyncEngine
    session_factory: async_sessionmaker[AsyncSession]
    path: Path
