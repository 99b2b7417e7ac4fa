"""Snapshot and restore for ``SizedCache``.

Snapshots are an ordered sequence of (key, value) string pairs written
least recently used first, so re-inserting them in file order on load
rebuilds the same relative recency. Only the order is restored, not
access times.

Binary layout::

    b"FESNAP01"                       magic
    u32                               record count
    repeated: u32 len, key bytes, u32 len, value bytes

All integers are big-endian; strings are UTF-8.
"""

import struct
from pathlib import Path
from typing import Iterable, List, Optional, Tuple, Union

import structlog

from feed_enricher.cache.sized_cache import SizedCache
from feed_enricher.errors import CacheLoadError, CacheSaveError
from feed_enricher.utils.atomic import atomic_write_bytes

logger = structlog.get_logger(__name__)

SNAPSHOT_MAGIC = b"FESNAP01"
_U32 = struct.Struct(">I")


class SnapshotFormatError(ValueError):
    """Raised when snapshot bytes do not follow the snapshot layout."""


def encode_snapshot(items: Iterable[Tuple[str, str]]) -> bytes:
    """Serialize ordered (key, value) pairs."""
    records = list(items)
    chunks = [SNAPSHOT_MAGIC, _U32.pack(len(records))]
    for key, value in records:
        for field in (key.encode("utf-8"), value.encode("utf-8")):
            chunks.append(_U32.pack(len(field)))
            chunks.append(field)
    return b"".join(chunks)


def decode_snapshot(data: bytes) -> List[Tuple[str, str]]:
    """Parse snapshot bytes back into ordered (key, value) pairs.

    Raises:
        SnapshotFormatError: On bad magic, truncation, trailing bytes or
            invalid UTF-8
    """
    if not data.startswith(SNAPSHOT_MAGIC):
        raise SnapshotFormatError("missing snapshot header")
    offset = len(SNAPSHOT_MAGIC)

    def read_u32() -> int:
        nonlocal offset
        if offset + _U32.size > len(data):
            raise SnapshotFormatError(f"truncated length field at byte {offset}")
        (value,) = _U32.unpack_from(data, offset)
        offset += _U32.size
        return value

    def read_str() -> str:
        nonlocal offset
        length = read_u32()
        end = offset + length
        if end > len(data):
            raise SnapshotFormatError(f"truncated string at byte {offset}")
        try:
            text = data[offset:end].decode("utf-8")
        except UnicodeDecodeError as e:
            raise SnapshotFormatError(f"invalid utf-8 at byte {offset}") from e
        offset = end
        return text

    count = read_u32()
    records = []
    for _ in range(count):
        key = read_str()
        value = read_str()
        records.append((key, value))
    if offset != len(data):
        raise SnapshotFormatError(f"{len(data) - offset} trailing bytes after {count} records")
    return records


class PersistentCache(SizedCache):
    """A ``SizedCache`` bound to a snapshot file."""

    def __init__(self, path: Union[str, Path], capacity: int, name: Optional[str] = None) -> None:
        self.path = Path(path)
        super().__init__(capacity, name=name or self.path.stem)

    @classmethod
    def load(
        cls, path: Union[str, Path], capacity: int, name: Optional[str] = None
    ) -> "PersistentCache":
        """Restore a cache from its snapshot.

        A missing file yields an empty cache.

        Args:
            path: Snapshot file path
            capacity: Capacity of the restored cache in bytes
            name: Cache name for logs and errors, defaults to the file stem

        Raises:
            CacheLoadError: If the file exists but cannot be read or decoded
        """
        cache = cls(path, capacity, name=name)
        try:
            data = cache.path.read_bytes()
        except FileNotFoundError:
            logger.info("cache_snapshot_missing", cache=cache.name, path=str(cache.path))
            return cache
        except OSError as e:
            raise CacheLoadError(cache.name, str(cache.path), str(e)) from e

        try:
            records = decode_snapshot(data)
        except SnapshotFormatError as e:
            raise CacheLoadError(cache.name, str(cache.path), str(e)) from e

        for key, value in records:
            cache.set(key, value)
        logger.info(
            "cache_loaded",
            cache=cache.name,
            path=str(cache.path),
            records=len(records),
            entries=len(cache),
            size=cache.size(),
        )
        return cache

    def save(self, path: Union[str, Path, None] = None) -> None:
        """Write the cache to its snapshot file, replacing it atomically.

        Args:
            path: Optional override of the snapshot path

        Raises:
            CacheSaveError: If the snapshot cannot be written
        """
        target = Path(path) if path is not None else self.path
        payload = encode_snapshot(self.items())
        try:
            atomic_write_bytes(target, payload)
        except OSError as e:
            raise CacheSaveError(self.name, str(target), str(e)) from e
        logger.info("cache_saved", cache=self.name, path=str(target), entries=len(self), bytes=len(payload))
