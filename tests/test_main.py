"""Tests for main API endpoints, exception handling and startup checks."""

from pathlib import Path
from unittest.mock import AsyncMock, Mock, patch

import pytest
from httpx import AsyncClient
from sqlalchemy import create_engine, text

from subway import __version__
from subway.core.utils import convert_async_db_url_to_sync
from subway.helpers.errors import CorruptTopologyError, SubwayError
from subway.main import _check_alembic_migrations, app, lifespan, subway_error_handler

REPO_ROOT = Path(__file__).resolve().parent.parent


@pytest.mark.asyncio
async def test_root_endpoint(async_client: AsyncClient) -> None:
    """Test root endpoint returns name and version."""
    response = await async_client.get("/")

    assert response.status_code == 200
    assert response.json() == {"message": "Subway Network API", "version": __version__}


@pytest.mark.asyncio
async def test_health_check(async_client: AsyncClient) -> None:
    """Test health check endpoint."""
    response = await async_client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


@pytest.mark.asyncio
async def test_readiness_check(async_client: AsyncClient) -> None:
    """Test readiness check runs a query against the database."""
    response = await async_client.get("/ready")

    assert response.status_code == 200
    assert response.json()["status"] == "ready"


# Tests for the domain exception handler


@pytest.mark.asyncio
async def test_subway_error_handler_uses_class_status_code() -> None:
    """Errors render with the status their class declares."""
    response = await subway_error_handler(Mock(), CorruptTopologyError(Mock(), "segments form a cycle"))

    assert response.status_code == 500
    assert b"segments form a cycle" in response.body


@pytest.mark.asyncio
async def test_subway_error_handler_defaults_to_400() -> None:
    """The base error class maps to 400."""
    response = await subway_error_handler(Mock(), SubwayError("bad request"))

    assert response.status_code == 400
    assert response.body == b'{"detail":"bad request"}'


def test_exception_handler_registered() -> None:
    """The handler is wired into the app."""
    assert app.exception_handlers[SubwayError] is subway_error_handler


# Tests for _check_alembic_migrations


def test_check_alembic_migrations_up_to_date(
    migrated_database_template: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    """A fully migrated database passes and reports its revision."""
    monkeypatch.setattr("subway.main.settings.ALEMBIC_INI_PATH", str(REPO_ROOT / "alembic.ini"))
    engine = create_engine(convert_async_db_url_to_sync(f"sqlite+aiosqlite:///{migrated_database_template}"))

    try:
        with engine.connect() as conn:
            revision = _check_alembic_migrations(conn)
    finally:
        engine.dispose()

    assert revision == "4b1f0c2a9d7e"


def test_check_alembic_migrations_db_not_initialized(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """An empty database must be migrated first."""
    monkeypatch.setattr("subway.main.settings.ALEMBIC_INI_PATH", str(REPO_ROOT / "alembic.ini"))
    engine = create_engine(f"sqlite:///{tmp_path / 'empty.sqlite3'}")

    try:
        with engine.connect() as conn, pytest.raises(RuntimeError, match="has not been initialized"):
            _check_alembic_migrations(conn)
    finally:
        engine.dispose()


def test_check_alembic_migrations_needs_migration(
    migrated_database_template: Path, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    """A database behind head is refused."""
    monkeypatch.setattr("subway.main.settings.ALEMBIC_INI_PATH", str(REPO_ROOT / "alembic.ini"))
    db_path = tmp_path / "stale.sqlite3"
    db_path.write_bytes(migrated_database_template.read_bytes())
    engine = create_engine(f"sqlite:///{db_path}")

    try:
        with engine.begin() as conn:
            conn.execute(text("UPDATE alembic_version SET version_num = 'old_revision'"))
        with engine.connect() as conn, pytest.raises(RuntimeError, match="Database migration required"):
            _check_alembic_migrations(conn)
    finally:
        engine.dispose()


def test_check_alembic_migrations_no_ini_file(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Without alembic.ini the check is skipped and the current revision returned."""
    monkeypatch.setattr("subway.main.settings.ALEMBIC_INI_PATH", str(tmp_path / "missing.ini"))
    engine = create_engine(f"sqlite:///{tmp_path / 'empty.sqlite3'}")

    try:
        with engine.connect() as conn:
            assert _check_alembic_migrations(conn) is None
    finally:
        engine.dispose()


# Tests for lifespan


@pytest.mark.asyncio
async def test_lifespan_debug_mode() -> None:
    """DEBUG mode skips database validation and closes the cache on shutdown."""
    with (
        patch("subway.main.settings") as mock_settings,
        patch("subway.main.get_engine") as mock_get_engine,
        patch("subway.main.close_path_cache", new_callable=AsyncMock) as mock_close_cache,
    ):
        mock_settings.DEBUG = True

        async with lifespan(app):
            mock_get_engine.assert_not_called()

        mock_close_cache.assert_awaited_once()


def _mock_engine() -> Mock:
    mock_conn = AsyncMock()
    mock_begin_ctx = AsyncMock()
    mock_begin_ctx.__aenter__.return_value = mock_conn
    mock_begin_ctx.__aexit__.return_value = None

    mock_engine = Mock()
    mock_engine.begin.return_value = mock_begin_ctx
    mock_engine.dispose = AsyncMock()
    return mock_engine


@pytest.mark.asyncio
async def test_lifespan_production_success() -> None:
    """Outside DEBUG, startup validates the database and shutdown disposes the engine."""
    mock_engine = _mock_engine()

    with (
        patch("subway.main.settings") as mock_settings,
        patch("subway.main.get_engine", return_value=mock_engine),
        patch("subway.main.close_path_cache", new_callable=AsyncMock),
    ):
        mock_settings.DEBUG = False

        async with lifespan(app):
            mock_engine.begin.assert_called_once()

        mock_engine.dispose.assert_awaited_once()


@pytest.mark.asyncio
async def test_lifespan_production_runtime_error() -> None:
    """A failed migration check aborts startup."""
    mock_engine = _mock_engine()
    mock_engine.begin.return_value.__aenter__.return_value.run_sync = AsyncMock(
        side_effect=RuntimeError("Migration failed")
    )

    with (
        patch("subway.main.settings") as mock_settings,
        patch("subway.main.get_engine", return_value=mock_engine),
    ):
        mock_settings.DEBUG = False

        with pytest.raises(RuntimeError, match="Migration failed"):
            async with lifespan(app):
                pass
