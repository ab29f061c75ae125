"""
stagecache - Filesystem Cache Backend

Directory-backed cache with per-entry TTL and deferred write-back.

During a session every operation works on in-memory state only:
- the metadata index (type tag, serialization flag, TTL per key)
- the staging buffer (pending writes and deletes)
- a read cache of values already decoded from disk

The only disk access on the hot path is reading a value that is neither staged
nor read-cached. Bytes are written and removed exclusively by flush(), which
close() runs. Disk reads and flushes run in a worker thread while the
instance lock is held. Construction touches the disk synchronously. The cache
must be closed explicitly or used as an async context manager:

    async with FileCacheBackend("./data/cache") as cache:
        await cache.set("greeting", {"msg": "hello"}, ttl=60)
        value = await cache.get("greeting")

One instance per directory: two instances flushing into the same directory
overwrite each other's snapshot and sweep each other's files.
"""

from __future__ import annotations

import asyncio
import copy
import logging
import time
from collections.abc import Callable
from pathlib import Path
from typing import Any

from ...errors import CacheFlushError, CacheInvalidArgumentError, ErrorCode
from ..interface import CacheInterface, Ttl
from ..keys import KeyEncoder
from ..metadata import EntryDescriptor, MetadataIndex
from ..staging import StagingBuffer
from ..storage import CacheDirectory
from ..values import COMPOSITE_TYPES, decode_value, encode_value, normalize_ttl

logger = logging.getLogger(__name__)


class FileCacheBackend(CacheInterface):
    """
    Filesystem cache backend with staged writes and lazy TTL expiry.

    Features:
    - Type-preserving round trips (ints stay ints, lists stay lists)
    - Per-key TTL from seconds or a timedelta, checked lazily on read
    - Writes and deletes visible immediately, persisted at flush
    - Flush sweeps expired entries and orphaned files
    """

    def __init__(
        self,
        cache_dir: str | Path,
        metadata_filename: str = ".metadoc",
        min_free_bytes: int = 8,
        key_algorithm: str = "sha1",
        read_cache_enabled: bool = True,
        clock: Callable[[], float] | None = None,
    ):
        """
        Initialize the backend, loading and reconciling persisted metadata.

        Args:
            cache_dir: Directory holding the entry files and metadata snapshot
            metadata_filename: Reserved filename of the metadata snapshot
            min_free_bytes: Free space at or below this makes the cache unusable
            key_algorithm: hashlib digest used to derive filenames from keys
            read_cache_enabled: Memoize values decoded from disk
            clock: Source of Unix time, time.time by default

        Raises:
            CacheConstructionError: If the directory or snapshot cannot be used
        """
        self.directory = CacheDirectory(cache_dir, metadata_filename, min_free_bytes)
        self.encoder = KeyEncoder(key_algorithm)
        self.read_cache_enabled = read_cache_enabled
        self._clock = clock or time.time

        self.directory.prepare()

        snapshot = self.directory.read_snapshot()
        self._index = MetadataIndex.load(snapshot)
        self._index.reconcile_against_disk(self.directory.list_entries())
        # Bytes currently on disk, used to skip rewriting an unchanged snapshot
        self._persisted_snapshot = snapshot or b""

        self._staging = StagingBuffer()
        self._read_cache: dict[str, Any] = {}

        # Stats
        self._hits = 0
        self._misses = 0
        self._sets = 0
        self._deletes = 0
        self._expired = 0
        self._consistency_faults = 0
        self._flushes = 0

        self._lock = asyncio.Lock()

        logger.info(
            f"File cache opened at {self.directory.path} with {len(self._index)} entries",
            extra={"cache_dir": str(self.directory.path), "entries": len(self._index)},
        )

    # ------------ Helpers ------------

    def _make_key(self, key: str) -> str:
        """Validate a key and return its encoded form."""
        if not isinstance(key, str):
            raise CacheInvalidArgumentError(
                f"Cache key must be a string, got {type(key).__name__}",
                details={"key_type": type(key).__name__},
                error_code=ErrorCode.INVALID_KEY,
            )
        return self.encoder.encode(key)

    def _live_entry(self, encoded: str) -> EntryDescriptor | None:
        """Descriptor of a key that is indexed, not pending deletion and not expired."""
        entry = self._index.get(encoded)
        if entry is None or self._staging.is_pending_delete(encoded):
            return None
        if entry.is_expired(self._clock()):
            return None
        return entry

    async def _resolve(self, encoded: str, entry: EntryDescriptor) -> tuple[bool, Any]:
        """
        Resolve a live entry's value: staging buffer, then read cache, then disk.

        Returns:
            (found, value); found is False on a consistency fault
        """
        payload = self._staging.pending_write(encoded)
        source = "staging"
        if payload is None:
            if encoded in self._read_cache:
                return True, self._read_cache[encoded]

            source = "disk"
            try:
                payload = await asyncio.to_thread(self.directory.read_entry, encoded)
            except FileNotFoundError:
                self._consistency_faults += 1
                logger.warning(
                    "Cache entry file missing for live metadata entry",
                    extra={"encoded_key": encoded},
                )
                return False, None

        try:
            value = decode_value(payload, entry.value_type, entry.serialized)
        except (UnicodeDecodeError, ValueError) as e:
            self._consistency_faults += 1
            logger.warning(
                f"Cache entry payload does not match its metadata: {e}",
                extra={"encoded_key": encoded, "value_type": entry.value_type.value, "source": source},
            )
            return False, None

        if self.read_cache_enabled:
            self._read_cache[encoded] = value
        return True, value

    @staticmethod
    def _detach(value: Any, entry: EntryDescriptor) -> Any:
        """Copy composites so callers cannot mutate memoized values."""
        if entry.value_type in COMPOSITE_TYPES:
            return copy.deepcopy(value)
        return value

    # ------------ Core Interface ------------

    async def has(self, key: str) -> bool:
        """Check if key exists, is not pending deletion and is not expired."""
        encoded = self._make_key(key)
        async with self._lock:
            return self._live_entry(encoded) is not None

    async def get(self, key: str, default: Any = None) -> Any:
        """Retrieve value from cache, or ``default`` on a miss."""
        encoded = self._make_key(key)
        async with self._lock:
            entry = self._live_entry(encoded)
            if entry is None:
                self._misses += 1
                return default

            found, value = await self._resolve(encoded, entry)
            if not found:
                self._misses += 1
                return default

            self._hits += 1
            return self._detach(value, entry)

    async def set(self, key: str, value: Any, ttl: Ttl = None) -> bool:
        """Stage a value; it becomes visible immediately and reaches disk at flush."""
        encoded = self._make_key(key)
        ttl_seconds = normalize_ttl(ttl)
        value_type, payload, serialized = encode_value(value)

        async with self._lock:
            entry = EntryDescriptor(
                value_type=value_type,
                serialized=serialized,
                ttl_seconds=ttl_seconds,
                created_at=self._clock() if ttl_seconds is not None else None,
            )
            self._index.put(encoded, entry)
            self._staging.stage_write(encoded, payload)
            self._read_cache.pop(encoded, None)
            self._sets += 1

        return True

    async def delete(self, key: str) -> bool:
        """Delete key; the file is removed at flush."""
        encoded = self._make_key(key)
        async with self._lock:
            if self._live_entry(encoded) is None:
                return False

            self._index.remove(encoded)
            self._read_cache.pop(encoded, None)
            self._staging.stage_delete(encoded)
            self._deletes += 1
            return True

    async def clear(self) -> bool:
        """Drop every entry; all known files are staged for deletion."""
        async with self._lock:
            known = set(self._index) | set(self._staging.writes)
            self._index.clear()
            self._read_cache.clear()
            for encoded in known:
                self._staging.stage_delete(encoded)

            logger.info(
                f"Cleared {len(known)} entries from file cache at {self.directory.path}",
                extra={"cache_dir": str(self.directory.path), "cleared": len(known)},
            )
            return True

    async def get_stats(self) -> dict[str, Any]:
        """Get cache statistics."""
        async with self._lock:
            total_requests = self._hits + self._misses
            hit_rate = (self._hits / total_requests * 100) if total_requests > 0 else 0.0
            writes = self._staging.writes
            deletes = self._staging.deletes

            return {
                "backend": "filesystem",
                "cache_dir": str(self.directory.path),
                "size": len(self._index),
                "hits": self._hits,
                "misses": self._misses,
                "hit_rate": round(hit_rate, 2),
                "sets": self._sets,
                "deletes": self._deletes,
                "expired": self._expired,
                "consistency_faults": self._consistency_faults,
                "flushes": self._flushes,
                "pending_writes": len(writes),
                "pending_deletes": len(deletes),
                "read_cache_size": len(self._read_cache),
            }

    async def close(self) -> None:
        """Flush staged changes to disk."""
        await self.flush()
        logger.debug(f"File cache closed at {self.directory.path}")

    # ------------ Flush ------------

    async def flush(self) -> None:
        """
        Reconcile in-memory state with the cache directory.

        Steps: sweep expired entries, persist the metadata snapshot, write
        pending values, remove pending deletions, then remove every file the
        index does not know about. Safe to call repeatedly.

        Raises:
            CacheFlushError: If the snapshot or any pending value could not be
                written. Unwritten changes stay staged for the next flush.
        """
        async with self._lock:
            await asyncio.to_thread(self._flush_locked)

    def _flush_locked(self) -> None:
        # 1. Expiry sweep
        expired = self._index.expired_keys(self._clock())
        for encoded in expired:
            self._index.remove(encoded)
            self._read_cache.pop(encoded, None)
            self._staging.stage_delete(encoded)
        self._expired += len(expired)

        # 2. Snapshot
        snapshot = self._index.serialize()
        if snapshot != self._persisted_snapshot or not self.directory.snapshot_path.exists():
            try:
                self.directory.write_snapshot(snapshot)
            except OSError as e:
                logger.error(
                    f"Failed to persist metadata snapshot: {e}",
                    extra={"snapshot": str(self.directory.snapshot_path), "entries": len(self._index)},
                    exc_info=True,
                )
                raise CacheFlushError(
                    f"Failed to persist metadata snapshot: {e}",
                    details={"snapshot": str(self.directory.snapshot_path), "error": str(e)},
                ) from e
            self._persisted_snapshot = snapshot

        # 3. Pending writes
        written: list[str] = []
        failed: dict[str, str] = {}
        for encoded, payload in self._staging.writes.items():
            try:
                self.directory.write_entry(encoded, payload)
            except OSError as e:
                failed[encoded] = str(e)
                logger.error(
                    f"Failed to write cache entry: {e}",
                    extra={"encoded_key": encoded, "error": str(e)},
                    exc_info=True,
                )
                continue
            written.append(encoded)

        # 4. Pending deletes (best effort)
        deleted: list[str] = []
        for encoded in self._staging.deletes:
            try:
                self.directory.remove_entry(encoded)
            except OSError as e:
                logger.warning(
                    f"Failed to remove cache entry: {e}",
                    extra={"encoded_key": encoded, "error": str(e)},
                )
                continue
            deleted.append(encoded)

        self._staging.mark_flushed(written, deleted)

        # 5. Orphan sweep (best effort)
        orphans = 0
        try:
            on_disk = self.directory.list_entries()
        except OSError as e:
            logger.warning(
                f"Failed to list cache directory for orphan sweep: {e}",
                extra={"cache_dir": str(self.directory.path), "error": str(e)},
            )
            on_disk = set()

        for name in on_disk:
            if name in self._index:
                continue
            try:
                if self.directory.remove_entry(name):
                    orphans += 1
            except OSError as e:
                logger.warning(
                    f"Failed to remove orphaned cache file: {e}",
                    extra={"file": name, "error": str(e)},
                )

        self._flushes += 1
        logger.info(
            f"Flushed file cache at {self.directory.path}",
            extra={
                "cache_dir": str(self.directory.path),
                "entries": len(self._index),
                "written": len(written),
                "deleted": len(deleted),
                "expired": len(expired),
                "orphans_removed": orphans,
                "write_failures": len(failed),
            },
        )

        if failed:
            raise CacheFlushError(
                f"Failed to write {len(failed)} cache entries",
                details={"failed": failed},
            )
