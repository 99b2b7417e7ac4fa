"""Content fingerprints for feed item URLs."""

import asyncio
import hashlib
from typing import Dict, List, Sequence

import structlog

from feed_enricher.cache.base import StringCache
from feed_enricher.errors import FetchError
from feed_enricher.fetch.client import Fetcher
from feed_enricher.metrics import pipeline_metrics

logger = structlog.get_logger(__name__)

UNRESOLVED = ""
URL_FINGERPRINT_PREFIX = "url:"


def content_digest(body: bytes) -> str:
    return hashlib.md5(body).hexdigest()


class FingerprintResolver:
    """Resolve and memoize a content fingerprint per URL.

    The first request for a URL starts one fetch; concurrent requests for
    the same URL await that fetch instead of starting their own. Successful
    fingerprints are stored in the cache, failures are not.
    """

    def __init__(self, cache: StringCache, fetcher: Fetcher, url_fallback: bool = False):
        """Initialize the resolver.

        Args:
            cache: Store for URL -> fingerprint
            fetcher: Fetch collaborator
            url_fallback: Fingerprint the URL string itself when the
                content cannot be fetched
        """
        self.cache = cache
        self.fetcher = fetcher
        self.url_fallback = url_fallback
        self._inflight: Dict[str, asyncio.Future] = {}

    async def resolve(self, url: str) -> str:
        """Return the fingerprint for ``url``, or ``UNRESOLVED``."""
        fingerprint, found = self.cache.get(url)
        if found:
            return fingerprint

        task = self._inflight.get(url)
        if task is None:
            task = asyncio.ensure_future(self._compute(url))
            self._inflight[url] = task
            task.add_done_callback(lambda _: self._inflight.pop(url, None))
        return await asyncio.shield(task)

    def _degraded(self, url: str) -> str:
        pipeline_metrics.fetch_failures.labels(stage="fingerprint").inc()
        if self.url_fallback:
            return URL_FINGERPRINT_PREFIX + content_digest(url.encode("utf-8"))
        return UNRESOLVED

    async def _compute(self, url: str) -> str:
        try:
            response = await self.fetcher.fetch(url)
        except FetchError as e:
            logger.warning("fingerprint_fetch_failed", url=url, error=str(e))
            return self._degraded(url)
        except Exception as e:
            logger.error("fingerprint_error", url=url, error=str(e), error_type=type(e).__name__)
            return self._degraded(url)

        fingerprint = content_digest(response.body)
        self.cache.set(url, fingerprint)
        logger.debug("fingerprint_resolved", url=url, fingerprint=fingerprint)
        return fingerprint

    async def resolve_all(self, urls: Sequence[str]) -> List[str]:
        """Resolve fingerprints concurrently, in the order of ``urls``."""
        fingerprints = [UNRESOLVED] * len(urls)

        async def resolve_slot(index: int, url: str) -> None:
            fingerprints[index] = await self.resolve(url)

        await asyncio.gather(*(resolve_slot(i, url) for i, url in enumerate(urls)))
        return fingerprints
