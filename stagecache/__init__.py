"""
stagecache - Filesystem Key-Value Cache

Single-process key-value cache backed by a directory of files, with
type-preserving values, per-entry TTL and deferred write-back.
"""

__version__ = "1.0.0"

from .cache import (
    CacheInterface,
    FileCacheBackend,
    close_all_caches,
    create_cache,
    get_cache,
)
from .errors import (
    CacheConstructionError,
    CacheError,
    CacheFlushError,
    CacheInvalidArgumentError,
    ConfigurationError,
    StageCacheError,
)

__all__ = [
    "CacheInterface",
    "FileCacheBackend",
    "create_cache",
    "get_cache",
    "close_all_caches",
    "StageCacheError",
    "ConfigurationError",
    "CacheError",
    "CacheConstructionError",
    "CacheInvalidArgumentError",
    "CacheFlushError",
]
