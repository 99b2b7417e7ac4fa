"""File layout and load/save lifecycle of every persisted cache."""

from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Union

import structlog

from feed_enricher.cache.persistent import PersistentCache
from feed_enricher.config.settings import Settings
from feed_enricher.dedup.identity import FeedIdentity

logger = structlog.get_logger(__name__)

SNAPSHOT_SUFFIX = ".snap"


@dataclass
class DedupTiers:
    """Persisted dedup tiers of one feed identity."""

    identity: FeedIdentity
    recent: PersistentCache
    all_time: PersistentCache


class SnapshotStore:
    """Owns the snapshot files under a state directory.

    Caches are loaded explicitly at the start of a run and written back by
    ``save_all`` at its end. Concurrent runs against the same directory are
    not supported; the last writer wins.
    """

    def __init__(self, state_dir: Union[str, Path], settings: Settings):
        """Initialize the store.

        Args:
            state_dir: Directory holding the snapshot files
            settings: Source of cache capacities
        """
        self.state_dir = Path(state_dir)
        self.settings = settings
        self._loaded: Dict[Path, PersistentCache] = {}

    def path_for(self, name: str) -> Path:
        return self.state_dir / f"{name}{SNAPSHOT_SUFFIX}"

    def load(self, name: str, capacity: int) -> PersistentCache:
        """Load the named cache once per store; later calls return the same object."""
        path = self.path_for(name)
        cache = self._loaded.get(path)
        if cache is None:
            cache = PersistentCache.load(path, capacity, name=name)
            self._loaded[path] = cache
        return cache

    def load_fingerprint_cache(self) -> PersistentCache:
        return self.load("fingerprints", self.settings.fingerprint_cache_bytes)

    def load_embed_cache(self) -> PersistentCache:
        return self.load("embeds", self.settings.embed_cache_bytes)

    def load_tiers(self, identity: FeedIdentity) -> DedupTiers:
        return DedupTiers(
            identity=identity,
            recent=self.load(f"dedup-{identity.key}-recent", self.settings.recent_cache_bytes),
            all_time=self.load(f"dedup-{identity.key}-all-time", self.settings.all_time_cache_bytes),
        )

    @property
    def loaded(self) -> List[PersistentCache]:
        return list(self._loaded.values())

    def save_all(self) -> None:
        """Persist every cache this store loaded.

        Raises:
            CacheSaveError: On the first cache that cannot be written
        """
        for cache in self._loaded.values():
            cache.save()
        logger.info("snapshots_saved", state_dir=str(self.state_dir), caches=len(self._loaded))
