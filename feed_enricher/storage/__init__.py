"""Durable storage of cache snapshots."""

from feed_enricher.storage.snapshots import DedupTiers, SnapshotStore

__all__ = ["DedupTiers", "SnapshotStore"]
