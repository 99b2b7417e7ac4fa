"""Reddit listing source."""

import json
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import structlog

from feed_enricher.errors import DecodeError
from feed_enricher.fetch.client import Fetcher
from feed_enricher.models import Feed, FeedItem

logger = structlog.get_logger(__name__)


class RedditSource:
    """Turn a subreddit's JSON listing into a ``Feed``."""

    def __init__(self, fetcher: Fetcher, base_url: str = "https://www.reddit.com", limit: int = 100):
        self.fetcher = fetcher
        self.base_url = base_url.rstrip("/")
        self.limit = limit

    def listing_url(self, subreddit: str) -> str:
        return f"{self.base_url}/r/{subreddit}.json?limit={self.limit}"

    def _parse_item(self, child: Dict[str, Any]) -> FeedItem:
        data = child["data"]
        permalink = data.get("permalink")
        return FeedItem(
            url=data["url"],
            title=data.get("title", ""),
            published_at=datetime.fromtimestamp(float(data["created_utc"]), tz=timezone.utc),
            nsfw=bool(data.get("over_18", False)),
            comments_url=f"{self.base_url}{permalink}" if permalink else None,
        )

    def parse_listing(self, subreddit: str, payload: str) -> Feed:
        """Build a feed from a listing document.

        Children that cannot be parsed are skipped.

        Raises:
            DecodeError: If the document itself is not a listing
        """
        try:
            children = json.loads(payload)["data"]["children"]
        except (json.JSONDecodeError, KeyError, TypeError) as e:
            raise DecodeError(f"malformed listing for r/{subreddit}: {e}", source=subreddit) from e

        items: List[FeedItem] = []
        for child in children:
            try:
                items.append(self._parse_item(child))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning("listing_item_skipped", subreddit=subreddit, error=str(e))

        return Feed(
            title=f"r/{subreddit}",
            link=f"{self.base_url}/r/{subreddit}",
            description=f"Embellished version of 'r/{subreddit}' subreddit feed",
            ttl=10,
            items=items,
        )

    async def fetch_feed(self, subreddit: str) -> Feed:
        """Fetch and parse a subreddit listing.

        Raises:
            FetchError: If the listing cannot be fetched
            DecodeError: If the listing is malformed
        """
        response = await self.fetcher.fetch(self.listing_url(subreddit))
        feed = self.parse_listing(subreddit, response.text())
        logger.info("listing_fetched", subreddit=subreddit, items=len(feed.items))
        return feed
