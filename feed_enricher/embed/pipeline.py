"""Enrichment pipeline: embeddable markup for feed item URLs.

The default strategy order is:

1. direct image (content type starts with ``image``)
2. the URL as an extensionless ``.png`` image
3. imgur-style ``/gallery`` URLs with the segment stripped
4. host page scrapes (quickmeme, reddit self posts)
5. oEmbed providers, first matching provider wins
6. a placeholder when nothing matched

Results are memoized under the URL plus a canonical serialization of the
embed arguments, so changing e.g. the width hint misses the cache.
"""

import asyncio
import html
import json
from typing import List, Mapping, Optional, Sequence

import structlog

from feed_enricher.cache.base import StringCache
from feed_enricher.config.settings import Settings
from feed_enricher.embed.oembed import OEmbedStrategy, providers_for
from feed_enricher.embed.strategies import (
    DirectImageStrategy,
    EmbedStrategy,
    ExtensionlessImageStrategy,
    GalleryImageStrategy,
    QuickmemeStrategy,
    RedditSelfPostStrategy,
    StrategyChain,
)
from feed_enricher.fetch.client import Fetcher
from feed_enricher.models import EmbedResult, EnrichedItem, FeedItem

logger = structlog.get_logger(__name__)

DEFAULT_PLACEHOLDER = "<a href='{url}'>{url}</a>"


def build_default_chain(fetcher: Fetcher, args: Mapping[str, str]) -> StrategyChain:
    """Build the standard strategy chain."""
    direct = DirectImageStrategy(fetcher)
    extensionless = ExtensionlessImageStrategy(direct)
    gallery = GalleryImageStrategy(extensionless)
    quickmeme = QuickmemeStrategy(fetcher)
    image_chain = StrategyChain([direct, extensionless, gallery, quickmeme], name="image")
    reddit = RedditSelfPostStrategy(fetcher, image_chain)
    oembed = [OEmbedStrategy(provider, fetcher, args) for provider in providers_for(args)]
    return StrategyChain([direct, extensionless, gallery, quickmeme, reddit, *oembed], name="embed")


class EnrichmentPipeline:
    """Resolve and memoize embed markup for URLs."""

    def __init__(
        self,
        cache: StringCache,
        chain: EmbedStrategy,
        args: Optional[Mapping[str, str]] = None,
        placeholder: str = DEFAULT_PLACEHOLDER,
    ):
        """Initialize the pipeline.

        Args:
            cache: Store for serialized embed results
            chain: Strategy (usually a chain) producing markup
            args: Embed arguments; part of every cache key
            placeholder: Markup used when no strategy matches, formatted
                with ``url``
        """
        self.cache = cache
        self.chain = chain
        self.args = dict(args or {})
        self.placeholder = placeholder
        self._args_key = json.dumps(self.args, sort_keys=True, separators=(",", ":"))

    @classmethod
    def from_settings(cls, cache: StringCache, fetcher: Fetcher, settings: Settings) -> "EnrichmentPipeline":
        args = settings.embed_args()
        return cls(
            cache,
            build_default_chain(fetcher, args),
            args=args,
            placeholder=settings.placeholder_markup,
        )

    def cache_key(self, url: str) -> str:
        return url + self._args_key

    def fallback(self, url: str) -> EmbedResult:
        return EmbedResult(url=url, markup=self.placeholder.format(url=html.escape(url, quote=True)))

    async def resolve(self, url: str) -> EmbedResult:
        """Return the embed for ``url``, falling back to the placeholder.

        Placeholder results are not cached so a later run can still match.
        """
        key = self.cache_key(url)
        packed, found = self.cache.get(key)
        if found:
            try:
                return EmbedResult.from_cache_value(packed)
            except (ValueError, KeyError, TypeError) as e:
                logger.warning("embed_cache_entry_invalid", url=url, error=str(e))

        outcome = await self.chain.resolve(url)
        if not outcome.has_markup:
            logger.info("embed_fallback", url=url, outcome=outcome.kind.value)
            return self.fallback(url)

        self.cache.set(key, outcome.result.to_cache_value())
        logger.debug("embed_resolved", url=url, canonical=outcome.result.url)
        return outcome.result

    async def enrich_all(
        self, items: Sequence[FeedItem], fingerprints: Optional[Sequence[str]] = None
    ) -> List[EnrichedItem]:
        """Enrich items concurrently, keeping their order.

        A failure while enriching one item degrades that item to the
        placeholder and never aborts the batch.
        """
        enriched: List[Optional[EnrichedItem]] = [None] * len(items)

        async def enrich_slot(index: int, item: FeedItem) -> None:
            try:
                embed = await self.resolve(item.url)
            except Exception as e:
                logger.error("embed_error", url=item.url, error=str(e))
                embed = self.fallback(item.url)
            fingerprint = fingerprints[index] if fingerprints is not None else ""
            enriched[index] = EnrichedItem.build(item, embed, fingerprint)

        await asyncio.gather(*(enrich_slot(i, item) for i, item in enumerate(items)))
        return enriched
