"""
stagecache - Staging Buffer

Session-local record of writes and deletions that have not reached disk yet.
Reads consult it first so that changes are visible immediately; flush drains it.

A key is never pending in both directions at once: staging a write cancels a
pending delete, and staging a delete discards a pending write.
"""

from collections.abc import Iterable


class StagingBuffer:
    """Pending writes (encoded key -> payload) and pending deletes (encoded keys)."""

    def __init__(self) -> None:
        self._writes: dict[str, bytes] = {}
        self._deletes: set[str] = set()

    def stage_write(self, key: str, payload: bytes) -> None:
        self._deletes.discard(key)
        self._writes[key] = payload

    def stage_delete(self, key: str) -> None:
        self._writes.pop(key, None)
        self._deletes.add(key)

    def pending_write(self, key: str) -> bytes | None:
        return self._writes.get(key)

    def is_pending_delete(self, key: str) -> bool:
        return key in self._deletes

    @property
    def writes(self) -> dict[str, bytes]:
        """Snapshot copy of pending writes."""
        return dict(self._writes)

    @property
    def deletes(self) -> set[str]:
        """Snapshot copy of pending deletes."""
        return set(self._deletes)

    def mark_flushed(self, written: Iterable[str], deleted: Iterable[str]) -> None:
        """Forget entries that reached disk; failed keys stay staged for the next flush."""
        for key in written:
            self._writes.pop(key, None)
        self._deletes.difference_update(deleted)

    def __len__(self) -> int:
        return len(self._writes) + len(self._deletes)
