"""Run orchestration."""

from feed_enricher.core.processor import FeedEnricher

__all__ = ["FeedEnricher"]
