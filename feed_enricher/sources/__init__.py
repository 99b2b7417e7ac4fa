"""Upstream item sources."""

from feed_enricher.sources.reddit import RedditSource
from feed_enricher.sources.rss import RssSource

__all__ = ["RedditSource", "RssSource"]
