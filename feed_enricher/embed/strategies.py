"""Embed strategies.

Each strategy turns a URL into an ``Outcome``: a match carrying markup, a
"does not apply" signal, or a failure. Not applying is an ordinary result
and lets a ``StrategyChain`` move on to the next strategy.
"""

import html
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Sequence

import structlog
from bs4 import BeautifulSoup

from feed_enricher.errors import DecodeError, FetchError
from feed_enricher.fetch.client import Fetcher, FetchResponse
from feed_enricher.metrics import pipeline_metrics
from feed_enricher.models import EmbedResult

logger = structlog.get_logger(__name__)


def image_markup(url: str) -> str:
    return f"<img style='max-width:100%' src='{html.escape(url, quote=True)}'/>"


class OutcomeKind(str, Enum):
    MATCHED = "matched"
    NOT_APPLICABLE = "not_applicable"
    FAILED = "failed"


@dataclass(frozen=True)
class Outcome:
    """Result of running one strategy against a URL."""

    kind: OutcomeKind
    result: Optional[EmbedResult] = None
    error: Optional[Exception] = None

    @classmethod
    def matched(cls, url: str, markup: str) -> "Outcome":
        return cls(OutcomeKind.MATCHED, result=EmbedResult(url=url, markup=markup))

    @classmethod
    def not_applicable(cls) -> "Outcome":
        return cls(OutcomeKind.NOT_APPLICABLE)

    @classmethod
    def failed(cls, error: Exception) -> "Outcome":
        return cls(OutcomeKind.FAILED, error=error)

    @property
    def has_markup(self) -> bool:
        """True for a match whose markup is non-empty."""
        return self.kind is OutcomeKind.MATCHED and bool(self.result and self.result.markup)


class EmbedStrategy(ABC):
    """Base class for embed strategies.

    Subclasses implement ``_resolve``; fetch and decode errors raised there
    are reported as failed outcomes.
    """

    name = "strategy"

    async def resolve(self, url: str) -> Outcome:
        try:
            return await self._resolve(url)
        except (FetchError, DecodeError) as e:
            return Outcome.failed(e)

    @abstractmethod
    async def _resolve(self, url: str) -> Outcome:
        ...

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"


class StrategyChain(EmbedStrategy):
    """Run strategies in order and stop at the first one producing markup."""

    def __init__(self, strategies: Sequence[EmbedStrategy], name: str = "chain"):
        self.strategies: List[EmbedStrategy] = list(strategies)
        self.name = name

    async def _resolve(self, url: str) -> Outcome:
        for strategy in self.strategies:
            outcome = await strategy.resolve(url)
            pipeline_metrics.strategy_outcomes.labels(
                strategy=strategy.name, outcome=outcome.kind.value
            ).inc()
            if outcome.has_markup:
                logger.debug("strategy_matched", url=url, strategy=strategy.name, chain=self.name)
                return outcome
            if outcome.kind is OutcomeKind.FAILED:
                logger.info("strategy_failed", url=url, strategy=strategy.name, error=str(outcome.error))
            else:
                logger.debug("strategy_skipped", url=url, strategy=strategy.name)
        return Outcome.not_applicable()


class DirectImageStrategy(EmbedStrategy):
    """Embed URLs that serve an image content type."""

    name = "direct_image"

    def __init__(self, fetcher: Fetcher):
        self.fetcher = fetcher

    async def _head(self, url: str) -> FetchResponse:
        try:
            return await self.fetcher.fetch(url, method="HEAD")
        except FetchError as e:
            if e.status != 405:
                raise
            return await self.fetcher.fetch(url)

    async def _resolve(self, url: str) -> Outcome:
        response = await self._head(url)
        if response.content_type.lower().startswith("image"):
            return Outcome.matched(url, image_markup(url))
        return Outcome.not_applicable()


class ExtensionlessImageStrategy(EmbedStrategy):
    """Retry a URL as an image with the trailing slash dropped and ``.png`` added."""

    name = "extensionless_image"

    def __init__(self, image: DirectImageStrategy):
        self.image = image

    async def _resolve(self, url: str) -> Outcome:
        return await self.image.resolve(url.rstrip("/") + ".png")


class GalleryImageStrategy(EmbedStrategy):
    """Strip the ``/gallery`` segment of gallery-host URLs and retry as an image."""

    name = "gallery_image"

    def __init__(self, extensionless: ExtensionlessImageStrategy, segment: str = "/gallery"):
        self.extensionless = extensionless
        self.segment = segment

    async def _resolve(self, url: str) -> Outcome:
        if self.segment not in url:
            return Outcome.not_applicable()
        return await self.extensionless.resolve(url.replace(self.segment, "", 1))


class PageScrapeStrategy(EmbedStrategy):
    """Extract an image URL from a host's HTML page with a regex.

    Attributes:
        host_pattern: Regex a URL must match for the strategy to apply
        image_pattern: Regex whose first group is the image URL
    """

    name = "page_scrape"
    host_pattern: str = ""
    image_pattern: str = ""

    def __init__(self, fetcher: Fetcher):
        self.fetcher = fetcher
        self._host_re = re.compile(self.host_pattern)
        self._image_re = re.compile(self.image_pattern)

    async def _resolve(self, url: str) -> Outcome:
        if not self._host_re.search(url):
            return Outcome.not_applicable()
        page = (await self.fetcher.fetch(url)).text()
        match = self._image_re.search(page)
        if not match:
            return Outcome.not_applicable()
        image_url = match.group(1)
        return Outcome.matched(image_url, image_markup(image_url))


class QuickmemeStrategy(PageScrapeStrategy):
    name = "quickmeme"
    host_pattern = r"(quickmeme\.com|qkme\.me)"
    image_pattern = r"id=\"img\"[^>]*?src=\"([^\"]+)\""


class RedditSelfPostStrategy(EmbedStrategy):
    """Embed the body of a reddit self post, inlining the images it links to."""

    name = "reddit_self_post"
    host_pattern = re.compile(r"reddit\.com/r/")

    def __init__(self, fetcher: Fetcher, image: EmbedStrategy):
        """Initialize the strategy.

        Args:
            fetcher: Fetch collaborator
            image: Strategy used to turn each link in the post into markup
        """
        self.fetcher = fetcher
        self.image = image

    async def _resolve(self, url: str) -> Outcome:
        if not self.host_pattern.search(url):
            return Outcome.not_applicable()
        page = (await self.fetcher.fetch(url)).text()
        soup = BeautifulSoup(page, "html.parser")
        body = soup.select_one(".expando .usertext-body")
        if body is None:
            return Outcome.not_applicable()

        for anchor in body.find_all("a", href=True):
            outcome = await self.image.resolve(anchor["href"])
            if outcome.has_markup:
                anchor.replace_with(BeautifulSoup(outcome.result.markup, "html.parser"))
        return Outcome.matched(url, body.decode_contents().strip())
