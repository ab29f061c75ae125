"""
stagecache - Cache Directory

Thin layer over the cache directory: startup checks, entry file I/O and the
metadata snapshot. Everything that touches the filesystem goes through here.
"""

import logging
import os
import shutil
from pathlib import Path

from ..errors import CacheConstructionError

logger = logging.getLogger(__name__)

_TMP_SUFFIX = ".tmp"


class CacheDirectory:
    """A directory of entry files plus one reserved metadata snapshot file."""

    def __init__(
        self,
        path: str | Path,
        metadata_filename: str = ".metadoc",
        min_free_bytes: int = 8,
    ):
        self.path = Path(path)
        self.metadata_filename = metadata_filename
        self.min_free_bytes = min_free_bytes

    @property
    def snapshot_path(self) -> Path:
        return self.path / self.metadata_filename

    def prepare(self) -> None:
        """
        Create the directory if needed and verify it is usable.

        Raises:
            CacheConstructionError: If the directory cannot be created, is not
                readable and writable, or free space is at or below the threshold
        """
        try:
            self.path.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise CacheConstructionError(
                str(self.path), "directory could not be created", details={"error": str(e)}
            ) from e

        if not self.path.is_dir():
            raise CacheConstructionError(str(self.path), "path is not a directory")

        if not os.access(self.path, os.R_OK | os.W_OK | os.X_OK):
            raise CacheConstructionError(str(self.path), "insufficient permissions")

        try:
            free = shutil.disk_usage(self.path).free
        except OSError as e:
            raise CacheConstructionError(
                str(self.path), "free space could not be determined", details={"error": str(e)}
            ) from e

        if free <= self.min_free_bytes:
            raise CacheConstructionError(
                str(self.path),
                "insufficient free disk space",
                details={"free_bytes": free, "min_free_bytes": self.min_free_bytes},
            )

    def read_snapshot(self) -> bytes | None:
        """
        Read the metadata snapshot.

        Returns:
            Snapshot bytes, or None if no snapshot exists or it could not be read

        Raises:
            CacheConstructionError: If the snapshot exists but permissions deny reading it
        """
        snapshot = self.snapshot_path
        if not snapshot.exists():
            return None

        try:
            return snapshot.read_bytes()
        except PermissionError as e:
            raise CacheConstructionError(
                str(self.path),
                "metadata snapshot is not readable",
                details={"snapshot": str(snapshot), "error": str(e)},
            ) from e
        except OSError as e:
            logger.warning(
                f"Could not read metadata snapshot, starting with an empty index: {e}",
                extra={"snapshot": str(snapshot), "error": str(e)},
            )
            return None

    def write_snapshot(self, data: bytes) -> None:
        """Replace the snapshot in full. OSError propagates to the caller."""
        self._write_atomic(self.snapshot_path, data)

    def list_entries(self) -> set[str]:
        """Names of regular files in the directory, excluding the snapshot."""
        names: set[str] = set()
        with os.scandir(self.path) as it:
            for entry in it:
                if entry.name == self.metadata_filename:
                    continue
                if entry.is_file(follow_symlinks=False):
                    names.add(entry.name)
        return names

    def read_entry(self, name: str) -> bytes:
        """Raw payload of an entry file. FileNotFoundError if absent."""
        return (self.path / name).read_bytes()

    def write_entry(self, name: str, payload: bytes) -> None:
        """Create or replace an entry file."""
        self._write_atomic(self.path / name, payload)

    def remove_entry(self, name: str) -> bool:
        """
        Remove an entry file.

        Returns:
            True if a file was removed, False if it was already absent
        """
        try:
            (self.path / name).unlink()
        except FileNotFoundError:
            return False
        return True

    @staticmethod
    def _write_atomic(target: Path, data: bytes) -> None:
        tmp = target.with_name(target.name + _TMP_SUFFIX)
        try:
            with open(tmp, "wb") as fh:
                fh.write(data)
                fh.flush()
                os.fsync(fh.fileno())
            os.replace(tmp, target)
        except OSError:
            tmp.unlink(missing_ok=True)
            raise
