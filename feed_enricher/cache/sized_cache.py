"""Byte-weighted LRU cache.

This module provides a thread-safe cache keyed by string with:
- capacity expressed as the cumulative byte weight of the stored values
- eviction by access recency, not insertion time
- an ordered view of its entries for snapshotting
- hit/miss/eviction metrics
"""

import threading
from collections import OrderedDict
from typing import Callable, List, Optional, Tuple

import structlog
from cachetools import Cache

from feed_enricher.metrics import metrics

logger = structlog.get_logger(__name__)


def value_weight(value: str) -> int:
    """Return the declared size of a cached value in bytes."""
    return len(value.encode("utf-8"))


class _RecencyCache(Cache):
    """cachetools ``Cache`` that evicts the least recently used entry.

    ``cachetools.LRUCache`` keeps its recency order private; this variant
    keeps it in ``_order`` so it can be read back for snapshots.
    """

    def __init__(
        self,
        maxsize: int,
        getsizeof: Callable[[str], int],
        on_evict: Optional[Callable[[str], None]] = None,
    ) -> None:
        super().__init__(maxsize, getsizeof)
        self._order: "OrderedDict[str, None]" = OrderedDict()
        self._on_evict = on_evict

    def __getitem__(self, key):
        value = super().__getitem__(key)
        self._order.move_to_end(key)
        return value

    def __setitem__(self, key, value):
        super().__setitem__(key, value)
        self._order[key] = None
        self._order.move_to_end(key)

    def __delitem__(self, key):
        super().__delitem__(key)
        del self._order[key]

    def popitem(self):
        try:
            key = next(iter(self._order))
        except StopIteration:
            raise KeyError(f"{type(self).__name__} is empty") from None
        value = Cache.__getitem__(self, key)
        del self[key]
        if self._on_evict is not None:
            self._on_evict(key)
        return key, value

    def clear(self):
        for key in list(self._order):
            del self[key]

    def ordered_keys(self) -> List[str]:
        return list(self._order)


class SizedCache:
    """Thread-safe LRU cache bounded by total value weight.

    Setting a value evicts least recently used entries until the total
    weight fits the capacity. A value heavier than the whole capacity
    empties the cache and is not retained. Reads refresh recency, so
    ``get`` is not read-only with respect to eviction order.

    All operations are serialized by a reentrant lock.
    """

    def __init__(
        self,
        capacity: int,
        name: str = "default",
        getsizeof: Callable[[str], int] = value_weight,
    ) -> None:
        """Initialize the cache.

        Args:
            capacity: Maximum cumulative weight of stored values in bytes
            name: Label used in logs and metrics
            getsizeof: Weight function for values
        """
        if capacity < 0:
            raise ValueError("capacity must be non-negative")
        self.capacity = capacity
        self.name = name
        self._getsizeof = getsizeof
        self._lock = threading.RLock()
        self._store = _RecencyCache(capacity, getsizeof, on_evict=self._record_eviction)

    def _record_eviction(self, key: str) -> None:
        metrics.cache_evictions.labels(cache=self.name).inc()

    def get(self, key: str) -> Tuple[Optional[str], bool]:
        """Look up a value and mark it most recently used.

        Args:
            key: Cache key to look up

        Returns:
            Tuple of the cached value (or None) and whether it was found
        """
        with self._lock:
            try:
                value = self._store[key]
            except KeyError:
                metrics.cache_misses.labels(cache=self.name).inc()
                return None, False
            metrics.cache_hits.labels(cache=self.name).inc()
            return value, True

    def set(self, key: str, value: str) -> None:
        """Insert or replace a value, evicting LRU entries as needed.

        Args:
            key: Cache key
            value: Value to store
        """
        with self._lock:
            # Replacement is a delete followed by an insert.
            self._store.pop(key, None)
            try:
                self._store[key] = value
            except ValueError:
                evicted = len(self._store)
                for _ in range(evicted):
                    self._store.popitem()
                logger.debug(
                    "cache_value_exceeds_capacity",
                    cache=self.name,
                    key=key,
                    weight=self._getsizeof(value),
                    capacity=self.capacity,
                    evicted=evicted,
                )
            metrics.cache_size_bytes.labels(cache=self.name).set(self._store.currsize)

    def size(self) -> int:
        """Return the current cumulative weight of stored values."""
        with self._lock:
            return self._store.currsize

    def items(self) -> List[Tuple[str, str]]:
        """Return entries ordered least recently used to most recently used."""
        with self._lock:
            return [(key, Cache.__getitem__(self._store, key)) for key in self._store.ordered_keys()]

    def clear(self) -> None:
        with self._lock:
            self._store.clear()
            metrics.cache_size_bytes.labels(cache=self.name).set(0)

    def __contains__(self, key: str) -> bool:
        # Membership checks do not refresh recency.
        with self._lock:
            return key in self._store

    def __len__(self) -> int:
        with self._lock:
            return len(self._store)

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(name={self.name!r}, entries={len(self)}, "
            f"size={self.size()}, capacity={self.capacity})"
        )
