"""
stagecache - Cache Module

Filesystem-backed key-value cache with staged writes and TTL expiry.

Layout:
- factory.py: named cache instances and shutdown lifecycle
- interface.py: abstract cache interface
- backends/filesystem.py: the directory-backed engine and its flush routine
- keys.py, values.py, metadata.py, staging.py, storage.py: engine building blocks

Usage:
    from stagecache.cache import create_cache, close_all_caches

    cache = create_cache()
    await cache.set("key", "value", ttl=3600)
    value = await cache.get("key")
    await close_all_caches()
"""

from .backends.filesystem import FileCacheBackend
from .factory import (
    close_all_caches,
    create_cache,
    get_cache,
    list_cache_instances,
    reset_cache_factory,
)
from .interface import CacheInterface
from .metadata import EntryDescriptor, MetadataIndex
from .values import ValueType

__all__ = [
    # Factory functions
    "create_cache",
    "get_cache",
    "close_all_caches",
    "list_cache_instances",
    "reset_cache_factory",
    # Interface and backend
    "CacheInterface",
    "FileCacheBackend",
    # Data model
    "EntryDescriptor",
    "MetadataIndex",
    "ValueType",
]
