"""
stagecache - Cache Interface

Defines the abstract interface that all cache backends must implement.
"""

from abc import ABC, abstractmethod
from collections.abc import Iterable, Mapping
from datetime import timedelta
from types import TracebackType
from typing import Any, Self

Ttl = int | timedelta | None


class CacheInterface(ABC):
    """
    Abstract base class for cache backends.

    Backends are async context managers: leaving the ``async with`` block
    closes the cache, which persists any staged changes.
    """

    @abstractmethod
    async def get(self, key: str, default: Any = None) -> Any:
        """
        Retrieve a value from the cache.

        Args:
            key: Cache key
            default: Returned when the key is missing or expired

        Returns:
            Cached value if found and not expired, ``default`` otherwise
        """
        pass

    @abstractmethod
    async def set(self, key: str, value: Any, ttl: Ttl = None) -> bool:
        """
        Store a value in the cache.

        Args:
            key: Cache key
            value: Value to cache
            ttl: Time-to-live as seconds or a timedelta (None or 0 = no expiry)

        Returns:
            True if stored successfully

        Raises:
            CacheInvalidArgumentError: If key, value or ttl has an unsupported shape
        """
        pass

    @abstractmethod
    async def delete(self, key: str) -> bool:
        """
        Delete a key from the cache.

        Returns:
            True if key was deleted, False if key didn't exist
        """
        pass

    @abstractmethod
    async def has(self, key: str) -> bool:
        """
        Check if a key exists in the cache.

        Returns:
            True if key exists and is not expired, False otherwise
        """
        pass

    @abstractmethod
    async def clear(self) -> bool:
        """
        Clear all entries from the cache.

        Returns:
            True if cache was cleared successfully
        """
        pass

    @abstractmethod
    async def get_stats(self) -> dict[str, Any]:
        """
        Get cache statistics.

        Returns:
            Dictionary with cache statistics (hits, misses, size, etc.)
        """
        pass

    @abstractmethod
    async def close(self) -> None:
        """
        Close the cache backend and persist pending state.

        Must be called during graceful shutdown.
        """
        pass

    async def get_multiple(self, keys: Iterable[str], default: Any = None) -> dict[str, Any]:
        """
        Retrieve multiple values from the cache.

        Default implementation calls get() for each key.

        Args:
            keys: Cache keys, resolved in iteration order
            default: Value reported for missing or expired keys

        Returns:
            Dictionary mapping every requested key to its value or ``default``;
            empty when no keys were requested
        """
        result = {}
        for key in keys:
            result[key] = await self.get(key, default)
        return result

    async def set_multiple(
        self,
        items: Mapping[str, Any] | Iterable[tuple[str, Any]],
        ttl: Ttl = None,
    ) -> int:
        """
        Store multiple values in the cache.

        Default implementation calls set() for each item. There is no rollback:
        items stored before a failing one stay stored.

        Args:
            items: Mapping or iterable of (key, value) pairs
            ttl: Time-to-live applied to every item

        Returns:
            Number of items successfully stored
        """
        pairs = items.items() if isinstance(items, Mapping) else items
        count = 0
        for key, value in pairs:
            if await self.set(key, value, ttl):
                count += 1
        return count

    async def delete_multiple(self, keys: Iterable[str]) -> int:
        """
        Delete multiple keys from the cache.

        Default implementation calls delete() for each key.

        Returns:
            Number of keys successfully deleted
        """
        count = 0
        for key in keys:
            if await self.delete(key):
                count += 1
        return count

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()
