"""Three-tier dedup of feed items by fingerprint.

Tiers:
- recent: fingerprints surfaced in the previous run of this feed
- all-time: every fingerprint ever accepted as new for this feed
- in-batch: fingerprints accepted earlier in the current pass

Per fingerprint, in item order:
1. in in-batch  -> duplicate within this pull, drop
2. in recent    -> still in its active window, keep (no re-insertion)
3. in all-time  -> stale repost, drop
4. otherwise    -> new, keep and record in recent and all-time

Recent is checked before all-time because a fingerprint is normally in
both; a link still in its active window must not be demoted to stale.
"""

import time
from enum import Enum
from typing import Callable, List, Sequence, Set, TypeVar

import structlog

from feed_enricher.cache.base import StringCache
from feed_enricher.dedup.fingerprint import UNRESOLVED
from feed_enricher.metrics import pipeline_metrics

logger = structlog.get_logger(__name__)

T = TypeVar("T")


class Verdict(str, Enum):
    """Classification of a single item."""

    NEW = "new"
    RECENT = "recent"
    STALE = "stale"
    IN_BATCH_DUPLICATE = "in_batch_duplicate"
    UNRESOLVED = "unresolved"

    @property
    def keeps_item(self) -> bool:
        return self in (Verdict.NEW, Verdict.RECENT, Verdict.UNRESOLVED)


class DedupEngine:
    """Prune items already surfaced in prior runs or earlier in the batch."""

    def __init__(
        self,
        recent: StringCache,
        all_time: StringCache,
        clock: Callable[[], float] = time.time,
    ):
        """Initialize the engine.

        Args:
            recent: Recent tier for this feed
            all_time: All-time tier for this feed
            clock: Source of first-seen timestamps stored as tier values
        """
        self.recent = recent
        self.all_time = all_time
        self.clock = clock
        self.last_verdicts: List[Verdict] = []

    def verdict(self, fingerprint: str, in_batch: Set[str]) -> Verdict:
        """Classify one fingerprint and update the tiers accordingly."""
        if fingerprint == UNRESOLVED:
            return Verdict.UNRESOLVED
        if fingerprint in in_batch:
            return Verdict.IN_BATCH_DUPLICATE
        if self.recent.get(fingerprint)[1]:
            in_batch.add(fingerprint)
            return Verdict.RECENT
        if self.all_time.get(fingerprint)[1]:
            return Verdict.STALE

        first_seen = str(int(self.clock()))
        self.recent.set(fingerprint, first_seen)
        self.all_time.set(fingerprint, first_seen)
        in_batch.add(fingerprint)
        return Verdict.NEW

    def classify(self, items: Sequence[T], fingerprints: Sequence[str]) -> List[T]:
        """Return the surviving items in their original order.

        Args:
            items: Items of one pull, in feed order
            fingerprints: Fingerprint of each item, ``UNRESOLVED`` where it
                could not be computed

        Returns:
            Items that are new, still recent, or unresolved
        """
        if len(items) != len(fingerprints):
            raise ValueError(
                f"got {len(fingerprints)} fingerprints for {len(items)} items"
            )

        in_batch: Set[str] = set()
        verdicts: List[Verdict] = []
        survivors: List[T] = []
        for item, fingerprint in zip(items, fingerprints):
            verdict = self.verdict(fingerprint, in_batch)
            verdicts.append(verdict)
            pipeline_metrics.dedup_verdicts.labels(verdict=verdict.value).inc()
            logger.debug(
                "dedup_verdict",
                url=getattr(item, "url", None),
                fingerprint=fingerprint,
                verdict=verdict.value,
            )
            if verdict.keeps_item:
                survivors.append(item)

        self.last_verdicts = verdicts
        logger.info(
            "dedup_completed",
            items=len(items),
            survivors=len(survivors),
            new=verdicts.count(Verdict.NEW),
            stale=verdicts.count(Verdict.STALE),
            duplicates=verdicts.count(Verdict.IN_BATCH_DUPLICATE),
        )
        return survivors
