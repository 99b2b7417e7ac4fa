"""Run orchestration: fingerprint, dedup and enrich one feed pull."""

import time
from typing import List, Optional

import structlog

from feed_enricher.config.settings import Settings
from feed_enricher.dedup.engine import DedupEngine
from feed_enricher.dedup.fingerprint import FingerprintResolver
from feed_enricher.dedup.identity import FeedIdentity
from feed_enricher.embed.pipeline import EnrichmentPipeline
from feed_enricher.fetch.client import Fetcher
from feed_enricher.models import EnrichedItem, Feed
from feed_enricher.storage.snapshots import SnapshotStore

logger = structlog.get_logger(__name__)


class FeedEnricher:
    """Turn a feed pull into deduplicated, enriched items.

    Every cache is loaded before any network work starts and saved before
    results are returned, so a cache failure aborts the run without output
    and without losing dedup history.
    """

    def __init__(self, settings: Settings, fetcher: Fetcher, store: Optional[SnapshotStore] = None):
        """Initialize the enricher.

        Args:
            settings: Run configuration
            fetcher: Fetch collaborator shared by all stages
            store: Snapshot store; defaults to one rooted at ``settings.state_dir``
        """
        self.settings = settings
        self.fetcher = fetcher
        self.store = store or SnapshotStore(settings.state_dir, settings)

    async def run(self, feed: Feed, tag: str) -> List[EnrichedItem]:
        """Process one pull of ``feed`` for the caller identified by ``tag``.

        Raises:
            CacheLoadError: If any snapshot is corrupt
            CacheSaveError: If any snapshot cannot be written
        """
        started = time.monotonic()
        identity = FeedIdentity(tag=tag, link=feed.link)
        fingerprint_cache = self.store.load_fingerprint_cache()
        embed_cache = self.store.load_embed_cache()
        tiers = self.store.load_tiers(identity)

        items = [item for item in feed.items if not item.nsfw]
        if len(items) != len(feed.items):
            logger.info("nsfw_items_dropped", feed=feed.link, dropped=len(feed.items) - len(items))

        resolver = FingerprintResolver(
            fingerprint_cache, self.fetcher, url_fallback=self.settings.url_fingerprint_fallback
        )
        fingerprints = await resolver.resolve_all([item.url for item in items])

        engine = DedupEngine(tiers.recent, tiers.all_time)
        survivors = engine.classify(items, fingerprints)
        survivor_fingerprints = [
            fp for fp, verdict in zip(fingerprints, engine.last_verdicts) if verdict.keeps_item
        ]

        pipeline = EnrichmentPipeline.from_settings(embed_cache, self.fetcher, self.settings)
        enriched = await pipeline.enrich_all(survivors, survivor_fingerprints)

        self.store.save_all()
        logger.info(
            "run_completed",
            feed=feed.link,
            identity=identity.key,
            items=len(items),
            survivors=len(enriched),
            duration=round(time.monotonic() - started, 3),
        )
        return enriched
