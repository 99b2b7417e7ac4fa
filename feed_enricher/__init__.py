"""Feed enricher module."""

from .cache import PersistentCache, SizedCache, StringCache
from .config import Settings
from .core.processor import FeedEnricher
from .dedup import DedupEngine, FeedIdentity, FingerprintResolver
from .embed import EnrichmentPipeline
from .storage import SnapshotStore

__version__ = "1.0.0"

__all__ = [
    "DedupEngine",
    "EnrichmentPipeline",
    "FeedEnricher",
    "FeedIdentity",
    "FingerprintResolver",
    "PersistentCache",
    "Settings",
    "SizedCache",
    "SnapshotStore",
    "StringCache",
]
