"""Fingerprinting and dedup of feed items."""

from feed_enricher.dedup.engine import DedupEngine, Verdict
from feed_enricher.dedup.fingerprint import UNRESOLVED, FingerprintResolver
from feed_enricher.dedup.identity import FeedIdentity, normalize_link

__all__ = [
    "DedupEngine",
    "FeedIdentity",
    "FingerprintResolver",
    "UNRESOLVED",
    "Verdict",
    "normalize_link",
]
