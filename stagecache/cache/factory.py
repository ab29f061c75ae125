"""
stagecache - Cache Factory

Canonical factory for creating cache instances based on configuration.

Key points:
- Named instances are created once and reused
- At most one live instance per cache directory (single writer per directory)
- close_all_caches() flushes every instance and must run at shutdown

Examples:
    from stagecache.cache.factory import create_cache, close_all_caches

    # Uses env-configured directory (./data/cache by default)
    cache = create_cache()

    # Or explicitly supply a CacheConfig (e.g., for tests)
    from stagecache.config import CacheConfig
    cfg = CacheConfig(cache_dir="/tmp/stagecache-test")
    tmp_cache = create_cache(cfg, name="test")

    await close_all_caches()
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from pathlib import Path

from ..config import CacheConfig, get_config
from ..errors import CacheError, ConfigurationError
from .backends.filesystem import FileCacheBackend
from .interface import CacheInterface

logger = logging.getLogger(__name__)

# Global cache instances registry
_cache_instances: dict[str, CacheInterface] = {}

# Resolved cache directory -> instance name
_cache_directories: dict[str, str] = {}


def _create_file_cache(
    config: CacheConfig, cache_dir: Path, clock: Callable[[], float] | None
) -> FileCacheBackend:
    """Internal helper to construct a filesystem cache backend."""
    return FileCacheBackend(
        cache_dir=cache_dir,
        metadata_filename=config.metadata_filename,
        min_free_bytes=config.min_free_bytes,
        key_algorithm=config.key_algorithm,
        read_cache_enabled=config.read_cache_enabled,
        clock=clock,
    )


def create_cache(
    config: CacheConfig | None = None,
    name: str = "default",
    clock: Callable[[], float] | None = None,
) -> CacheInterface:
    """
    Create a cache instance based on configuration.

    Args:
        config: Cache configuration (uses global config if not provided)
        name: Cache instance name (for multiple cache instances)
        clock: Optional source of Unix time for TTL checks

    Returns:
        Configured cache backend instance

    Raises:
        ConfigurationError: If another instance already owns the directory, or
            the key algorithm is unknown
        CacheConstructionError: If the cache directory is unusable
    """
    # Return existing instance if already created
    if name in _cache_instances:
        logger.debug("Returning existing cache instance: %s", name)
        return _cache_instances[name]

    if config is None:
        config = get_config().cache

    # The guard and the backend must see the same directory
    cache_dir = config.cache_dir.expanduser().resolve()
    directory = str(cache_dir)
    owner = _cache_directories.get(directory)
    if owner is not None:
        raise ConfigurationError(
            f"Cache directory {directory} is already in use by instance '{owner}'",
            details={"cache_name": name, "cache_dir": directory, "owner": owner},
        )

    logger.info(
        "Creating cache instance '%s' at %s",
        name,
        directory,
        extra={"cache_name": name, "cache_dir": directory},
    )

    try:
        cache = _create_file_cache(config, cache_dir, clock)
    except (CacheError, ConfigurationError):
        # Construction faults carry their own details
        raise
    except Exception as e:
        logger.error(
            "Unexpected error creating cache instance '%s': %s",
            name,
            e,
            extra={"cache_name": name, "cache_dir": directory, "error": str(e)},
            exc_info=True,
        )
        raise ConfigurationError(
            f"Failed to create cache instance '{name}': {e}",
            details={"cache_name": name, "cache_dir": directory, "error": str(e)},
        ) from e

    _cache_instances[name] = cache
    _cache_directories[directory] = name

    logger.info(
        "Cache instance '%s' created successfully",
        name,
        extra={"cache_name": name, "cache_dir": directory},
    )

    return cache


def get_cache(name: str = "default") -> CacheInterface:
    """
    Get an existing cache instance by name.

    If the instance doesn't exist, it will be created automatically
    using the global configuration.
    """
    if name not in _cache_instances:
        logger.debug("Cache instance '%s' not found, creating new instance", name)
        return create_cache(name=name)

    return _cache_instances[name]


async def close_all_caches() -> None:
    """
    Close all cache instances, flushing their staged changes.

    Must be called during graceful shutdown. A failing instance is logged and
    the remaining instances are still closed.
    """
    if not _cache_instances:
        logger.debug("No cache instances to close")
        return

    logger.info("Closing %d cache instance(s)...", len(_cache_instances))

    for name, cache in list(_cache_instances.items()):
        try:
            await cache.close()
            logger.info("Closed cache instance: %s", name)
        except Exception as e:
            logger.error(
                "Error closing cache instance '%s': %s",
                name,
                e,
                extra={"cache_name": name, "error": str(e)},
                exc_info=True,
            )

    reset_cache_factory()
    logger.info("All cache instances closed")


def reset_cache_factory() -> None:
    """
    Reset the cache factory by clearing all instance references.

    Does NOT close instances; staged changes of dropped instances are lost.
    Use close_all_caches() for proper cleanup.

    Warning: Only use this in testing contexts.
    """
    count = len(_cache_instances)
    _cache_instances.clear()
    _cache_directories.clear()
    logger.debug("Reset cache factory, cleared %d instance reference(s)", count)


def list_cache_instances() -> list[str]:
    """List all registered cache instance names."""
    return list(_cache_instances.keys())
