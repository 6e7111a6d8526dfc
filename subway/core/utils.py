"""Core utility functions."""

from urllib.parse import urlparse, urlunparse


def convert_async_db_url_to_sync(database_url: str) -> str:
    """
    Convert an async database URL to a sync database URL.

    Converts postgresql+asyncpg:// to postgresql+psycopg:// and
    sqlite+aiosqlite:// to sqlite:// for use with synchronous drivers
    (Alembic migrations run synchronously).

    Args:
        database_url: The async database URL (e.g., postgresql+asyncpg://...)

    Returns:
        The sync database URL (e.g., postgresql+psycopg://...)
    """
    parsed_url = urlparse(database_url)
    if "+asyncpg" in parsed_url.scheme:
        sync_scheme = parsed_url.scheme.replace("+asyncpg", "+psycopg")
        return urlunparse(parsed_url._replace(scheme=sync_scheme))
    if "+aiosqlite" in parsed_url.scheme:
        # urlunparse collapses the empty netloc of sqlite:/// URLs
        return database_url.replace("+aiosqlite", "", 1)
    return database_url
