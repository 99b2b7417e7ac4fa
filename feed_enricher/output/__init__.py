"""Output rendering."""

from feed_enricher.output.rss import render_rss

__all__ = ["render_rss"]
