"""RSS/Atom feed source."""

import calendar
from datetime import datetime, timezone
from urllib.parse import urljoin

import feedparser
import structlog

from feed_enricher.errors import DecodeError
from feed_enricher.fetch.client import Fetcher
from feed_enricher.models import Feed, FeedItem

logger = structlog.get_logger(__name__)


def _entry_time(entry) -> datetime:
    parsed = entry.get("published_parsed") or entry.get("updated_parsed")
    if parsed:
        return datetime.fromtimestamp(calendar.timegm(parsed), tz=timezone.utc)
    return datetime.now(timezone.utc)


class RssSource:
    """Turn any RSS or Atom document into a ``Feed``."""

    def __init__(self, fetcher: Fetcher):
        self.fetcher = fetcher

    def parse(self, url: str, body: bytes) -> Feed:
        parsed = feedparser.parse(body, response_headers={"content-location": url})
        if parsed.bozo and not parsed.entries:
            raise DecodeError(f"unreadable feed {url}: {parsed.get('bozo_exception')}", source=url)

        items = []
        for entry in parsed.entries:
            link = entry.get("link")
            if not link:
                logger.warning("feed_entry_skipped", feed=url, reason="no link")
                continue
            # Relative and protocol-relative links resolve against the feed URL.
            items.append(
                FeedItem(url=urljoin(url, link), title=entry.get("title", ""), published_at=_entry_time(entry))
            )

        channel = parsed.feed
        return Feed(
            title=channel.get("title", url),
            link=channel.get("link", url),
            description=channel.get("subtitle", ""),
            items=items,
        )

    async def fetch_feed(self, url: str) -> Feed:
        response = await self.fetcher.fetch(url)
        feed = self.parse(url, response.body)
        logger.info("feed_fetched", feed=url, items=len(feed.items))
        return feed
