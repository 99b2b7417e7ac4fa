"""Network fetching."""

from feed_enricher.fetch.client import FetchConfig, Fetcher, FetchResponse, HttpFetcher

__all__ = ["FetchConfig", "FetchResponse", "Fetcher", "HttpFetcher"]
