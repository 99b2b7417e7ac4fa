"""Caching package for the feed enricher.

This package provides:
- a byte-weighted, thread-safe LRU cache
- durable snapshots of that cache
- the minimal get/set capability its consumers depend on
"""

from feed_enricher.cache.base import StringCache
from feed_enricher.cache.persistent import PersistentCache, decode_snapshot, encode_snapshot
from feed_enricher.cache.sized_cache import SizedCache, value_weight

__all__ = [
    "PersistentCache",
    "SizedCache",
    "StringCache",
    "decode_snapshot",
    "encode_snapshot",
    "value_weight",
]
