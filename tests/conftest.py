"""Pytest configuration and fixtures."""

import os

# Set DEBUG=true for all tests BEFORE any app imports
# This must be done before subway.core.config loads settings
os.environ["DEBUG"] = "true"
os.environ["CACHE_BACKEND"] = "memory"

import shutil
from collections.abc import AsyncGenerator, Generator
from pathlib import Path

import pytest
from alembic import command
from alembic.config import Config
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from subway.core.cache import close_path_cache
from subway.core.database import create_engine_for_url, get_db
from subway.core.utils import convert_async_db_url_to_sync
from subway.main import app
from subway.models.subway import Station

from tests.helpers.types import TestDatabaseContext


def _sqlite_url(path: Path) -> str:
    return f"sqlite+aiosqlite:///{path}"


@pytest.fixture(scope="session")
def migrated_database_template(tmp_path_factory: pytest.TempPathFactory) -> Path:
    """
    Create a SQLite database file with every Alembic migration applied.

    Migrations run once per session; each test gets its own copy of the file.

    Returns:
        Path to the migrated template database
    """
    template_path = tmp_path_factory.mktemp("db") / "template.sqlite3"

    alembic_cfg = Config()
    alembic_dir = Path(__file__).resolve().parent.parent / "alembic"
    alembic_cfg.set_main_option("script_location", str(alembic_dir))
    alembic_cfg.set_main_option("sqlalchemy.url", convert_async_db_url_to_sync(_sqlite_url(template_path)))

    try:
        command.upgrade(alembic_cfg, "head")
    except Exception as e:
        msg = f"Alembic migration failed: {e}"
        raise RuntimeError(msg) from e

    return template_path


@pytest.fixture
async def db_engine(migrated_database_template: Path, tmp_path: Path) -> AsyncGenerator[TestDatabaseContext]:
    """
    Fresh migrated database for each test.

    Commits are real commits to a throwaway file, so IntegrityError recovery
    and multi-session tests behave as they would against a server database.

    Yields:
        TestDatabaseContext for the test's private database
    """
    db_path = tmp_path / "subway.sqlite3"
    shutil.copyfile(migrated_database_template, db_path)

    engine = create_engine_for_url(_sqlite_url(db_path))
    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    yield TestDatabaseContext(engine=engine, session_factory=session_factory, path=db_path)

    await engine.dispose()


@pytest.fixture
async def db_session(db_engine: TestDatabaseContext) -> AsyncGenerator[AsyncSession]:
    """
    Database session bound to the test's private database.

    Args:
        db_engine: Per-test database context

    Yields:
        Async SQLAlchemy session
    """
    async with db_engine.session_factory() as session:
        yield session


@pytest.fixture(autouse=True)
async def reset_path_cache() -> AsyncGenerator[None]:
    """Start and finish every test with an empty, freshly created path cache."""
    await close_path_cache()
    yield
    await close_path_cache()


@pytest.fixture
async def async_client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient]:
    """
    Async HTTP client with the database dependency pointed at the test database.

    Args:
        db_session: Test database session

    Yields:
        Async HTTP client configured for testing
    """

    async def override_get_db() -> AsyncGenerator[AsyncSession]:
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    try:
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            yield client
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def station_factory(db_session: AsyncSession) -> Generator:
    """
    Factory for persisted stations.

    Usage:
        a, b = await station_factory("A", "B")
    """

    async def _create(*names: str) -> list[Station]:
        stations = [Station(name=name) for name in names]
        db_session.add_all(stations)
        await db_session.commit()
        return stations

    yield _create
