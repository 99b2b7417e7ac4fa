"""HTTP fetch collaborator shared by fingerprinting and enrichment."""

import asyncio
from dataclasses import dataclass
from typing import Optional, Protocol
from urllib.parse import urlsplit

import aiohttp
import chardet
import structlog
from pydantic import BaseModel

from feed_enricher.errors import FetchError

logger = structlog.get_logger(__name__)


class FetchConfig(BaseModel):
    """Configuration for the HTTP fetcher."""

    timeout: float = 10.0
    max_concurrency: int = 16
    user_agent: str = "FeedEnricher/1.0"


@dataclass
class FetchResponse:
    """A fetched document."""

    url: str
    status: int
    content_type: str
    body: bytes
    charset: Optional[str] = None

    def text(self) -> str:
        """Decode the body using the declared charset or a detected one."""
        encoding = self.charset
        if not encoding:
            encoding = chardet.detect(self.body).get("encoding") or "utf-8"
        try:
            return self.body.decode(encoding, errors="replace")
        except LookupError:
            return self.body.decode("utf-8", errors="replace")


class Fetcher(Protocol):
    """Anything that can fetch a URL."""

    async def fetch(self, url: str, method: str = "GET") -> FetchResponse:
        ...


class HttpFetcher:
    """aiohttp-backed fetcher with a bounded timeout and concurrency."""

    def __init__(self, config: Optional[FetchConfig] = None):
        """Initialize the fetcher.

        Args:
            config: Fetcher configuration
        """
        self.config = config or FetchConfig()
        self.session: Optional[aiohttp.ClientSession] = None
        self._limiter = asyncio.Semaphore(self.config.max_concurrency)

    async def __aenter__(self) -> "HttpFetcher":
        await self._init_session()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def _init_session(self) -> None:
        if self.session is None:
            self.session = aiohttp.ClientSession(
                headers={"User-Agent": self.config.user_agent},
                timeout=aiohttp.ClientTimeout(total=self.config.timeout),
            )

    async def fetch(self, url: str, method: str = "GET") -> FetchResponse:
        """Fetch a URL.

        Args:
            url: URL to fetch
            method: HTTP method, ``GET`` or ``HEAD``

        Returns:
            The response status, content type and body

        Raises:
            FetchError: On non-absolute URLs, transport errors, timeouts or
                HTTP status >= 400
        """
        parts = urlsplit(url)
        if parts.scheme not in ("http", "https") or not parts.netloc:
            raise FetchError(url, "not an absolute http(s) URL")
        await self._init_session()
        logger.debug("fetching", url=url, method=method)
        try:
            async with self._limiter:
                async with self.session.request(method, url) as response:
                    body = await response.read()
                    if response.status >= 400:
                        raise FetchError(url, f"HTTP {response.status}", status=response.status)
                    return FetchResponse(
                        url=str(response.url),
                        status=response.status,
                        content_type=response.headers.get("Content-Type", ""),
                        body=body,
                        charset=response.charset,
                    )
        except asyncio.TimeoutError as e:
            raise FetchError(url, f"timed out after {self.config.timeout}s") from e
        except aiohttp.ClientError as e:
            raise FetchError(url, str(e) or type(e).__name__) from e

    async def close(self) -> None:
        """Close the client session."""
        if self.session:
            await self.session.close()
            self.session = None
