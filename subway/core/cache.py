"""Path query cache.

Path results are memoised with aiocache. The backend is chosen by
CACHE_BACKEND: an in-process memory cache by default, or Redis when several
API workers must share invalidations. Any topology change bumps a generation
counter that is part of every key and clears the whole path namespace, since one
changed segment can alter routes between any pair.
"""

import threading
import uuid
from urllib.parse import urlparse

import structlog
from aiocache import Cache
from aiocache.base import BaseCache
from aiocache.serializers import PickleSerializer

from subway.core.config import settings

logger = structlog.get_logger(__name__)

PATH_CACHE_NAMESPACE = "path"

# Kept outside the path namespace so clearing cached paths never resets it
PATH_GENERATION_NAMESPACE = "generation"
PATH_GENERATION_KEY = "path_queries"

_cache: BaseCache | None = None
_cache_lock = threading.Lock()


def _parse_redis_host() -> str:
    return urlparse(settings.REDIS_URL).hostname or "localhost"


def _parse_redis_port() -> int:
    return urlparse(settings.REDIS_URL).port or 6379


def build_path_cache_key(source_id: uuid.UUID, target_id: uuid.UUID, generation: int = 0) -> str:
    """
    Build cache key for a path query.

    The topology generation is part of the key, so a result computed before a
    mutation can only ever be stored under a generation that is no longer read.

    Examples:
        >>> build_path_cache_key(UUID("...01"), UUID("...02"), 3)
        '3:...01:...02'
    """
    return f"{generation}:{source_id}:{target_id}"


def _load_generation(value: bytes | str | int | None) -> int | None:
    # Counters are stored raw by increment(), bypassing the pickle serializer
    return None if value is None else int(value)


def get_path_cache() -> BaseCache:
    """
    Get or create the path cache (lazy initialization).

    Returns:
        aiocache cache instance scoped to the path namespace
    """
    global _cache  # noqa: PLW0603
    if _cache is None:
        with _cache_lock:
            if _cache is None:  # Double-checked locking
                if settings.CACHE_BACKEND == "redis":
                    _cache = Cache(
                        Cache.REDIS,
                        endpoint=_parse_redis_host(),
                        port=_parse_redis_port(),
                        serializer=PickleSerializer(),
                        namespace=PATH_CACHE_NAMESPACE,
                    )
                else:
                    _cache = Cache(
                        Cache.MEMORY,
                        serializer=PickleSerializer(),
                        namespace=PATH_CACHE_NAMESPACE,
                    )
                logger.info("path_cache_initialized", backend=settings.CACHE_BACKEND)
    return _cache


async def get_path_generation() -> int:
    """Return the current topology generation (0 before the first mutation)."""
    generation = await get_path_cache().get(
        PATH_GENERATION_KEY,
        namespace=PATH_GENERATION_NAMESPACE,
        loads_fn=_load_generation,
    )
    return generation or 0


async def invalidate_path_cache() -> None:
    """
    Start a new topology generation and drop every cached path result.

    Bumping the generation first means a query that loaded the network before
    the mutation stores its result under the old generation, where no later
    query looks.
    """
    if not settings.CACHE_ENABLED:
        return
    cache = get_path_cache()
    generation = await cache.increment(PATH_GENERATION_KEY, namespace=PATH_GENERATION_NAMESPACE)
    await cache.clear(namespace=PATH_CACHE_NAMESPACE)
    logger.debug("path_cache_invalidated", generation=generation)


async def close_path_cache() -> None:
    """Close the cache connection and forget the instance."""
    global _cache  # noqa: PLW0603
    if _cache is not None:
        await _cache.close()
        _cache = None
