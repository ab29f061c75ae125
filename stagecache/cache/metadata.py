"""
stagecache - Metadata Index

Tracks, per encoded key, what kind of value sits in the file on disk and when
it expires. The raw payload files carry no type information of their own, so
this index is what turns bytes back into the original values.

The index is loaded from a JSON snapshot at construction and rewritten in full
at flush. On disk each entry looks like:

    {"<encoded key>": {"type": "array", "serialized": true, "ttl": 60, "created": 1700000000.5}}
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable, Iterator
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from .values import ValueType

logger = logging.getLogger(__name__)


class EntryDescriptor(BaseModel):
    """
    Metadata record for one cached key.

    Attributes:
        value_type: Semantic type of the stored value
        serialized: True if the payload is a JSON encoding of a composite value
        ttl_seconds: Lifetime in seconds, None for entries that never expire
        created_at: Unix timestamp the TTL window started, None iff ttl_seconds is None
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    value_type: ValueType = Field(..., alias="type")
    serialized: bool = Field(default=False)
    ttl_seconds: int | None = Field(default=None, ge=0, alias="ttl")
    created_at: float | None = Field(default=None, alias="created")

    @model_validator(mode="after")
    def check_ttl_pair(self) -> EntryDescriptor:
        """TTL and creation time are recorded together or not at all."""
        if (self.ttl_seconds is None) != (self.created_at is None):
            raise ValueError("ttl and created must be both present or both absent")
        return self

    def is_expired(self, now: float) -> bool:
        """Expired once now reaches created_at + ttl_seconds."""
        if self.ttl_seconds is None or self.created_at is None:
            return False
        return now >= self.created_at + self.ttl_seconds

    def to_snapshot(self) -> dict[str, Any]:
        """On-disk form: aliased field names, unset flags omitted."""
        data: dict[str, Any] = {"type": self.value_type.value}
        if self.serialized:
            data["serialized"] = True
        if self.ttl_seconds is not None:
            data["ttl"] = self.ttl_seconds
            data["created"] = self.created_at
        return data


class MetadataIndex:
    """In-memory mapping of encoded key -> EntryDescriptor."""

    def __init__(self, entries: dict[str, EntryDescriptor] | None = None):
        self._entries: dict[str, EntryDescriptor] = dict(entries or {})

    @classmethod
    def load(cls, snapshot: bytes | None) -> MetadataIndex:
        """
        Build an index from snapshot bytes.

        A missing or empty snapshot yields an empty index. A snapshot that is not
        a JSON object is discarded with a warning; individual malformed entries
        are skipped.
        """
        if not snapshot or not snapshot.strip():
            return cls()

        try:
            document = json.loads(snapshot.decode("utf-8"))
        except (UnicodeDecodeError, ValueError) as e:
            logger.warning(
                f"Discarding undecodable metadata snapshot: {e}",
                extra={"snapshot_size": len(snapshot), "error": str(e)},
            )
            return cls()

        if not isinstance(document, dict):
            logger.warning(
                "Discarding metadata snapshot that is not a JSON object",
                extra={"document_type": type(document).__name__},
            )
            return cls()

        entries: dict[str, EntryDescriptor] = {}
        for key, raw in document.items():
            try:
                entries[key] = EntryDescriptor.model_validate(raw)
            except ValidationError as e:
                logger.warning(
                    f"Skipping malformed metadata entry '{key}'",
                    extra={"key": key, "validation_errors": e.errors(include_url=False)},
                )

        return cls(entries)

    def reconcile_against_disk(self, files_present: Iterable[str]) -> list[str]:
        """
        Drop entries whose backing file is missing.

        Returns:
            Encoded keys that were dropped
        """
        present = set(files_present)
        dropped = [key for key in self._entries if key not in present]
        for key in dropped:
            del self._entries[key]

        if dropped:
            logger.info(
                f"Dropped {len(dropped)} metadata entries without backing files",
                extra={"dropped_count": len(dropped)},
            )
        return dropped

    def expired_keys(self, now: float) -> list[str]:
        """Encoded keys whose TTL window has closed at ``now``."""
        return [key for key, entry in self._entries.items() if entry.is_expired(now)]

    def serialize(self) -> bytes:
        """Snapshot bytes; an empty index serializes to an empty payload."""
        if not self._entries:
            return b""
        document = {key: entry.to_snapshot() for key, entry in self._entries.items()}
        return json.dumps(document, separators=(",", ":")).encode("utf-8")

    def get(self, key: str) -> EntryDescriptor | None:
        return self._entries.get(key)

    def put(self, key: str, entry: EntryDescriptor) -> None:
        self._entries[key] = entry

    def remove(self, key: str) -> EntryDescriptor | None:
        return self._entries.pop(key, None)

    def clear(self) -> None:
        self._entries.clear()

    def keys(self) -> list[str]:
        return list(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)
