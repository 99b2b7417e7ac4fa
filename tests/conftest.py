import asyncio
from typing import Dict, List, Optional, Tuple, Union

import pytest
import structlog

from feed_enricher.config.settings import Settings
from feed_enricher.errors import FetchError
from feed_enricher.fetch.client import FetchResponse


class FakeFetcher:
    """In-memory fetcher keyed by (method, url).

    Routes registered without a method answer every method. Unknown URLs
    fail like a 404.
    """

    def __init__(self) -> None:
        self.routes: Dict[Tuple[Optional[str], str], Union[FetchResponse, Exception]] = {}
        self.delays: Dict[str, float] = {}
        self.calls: List[Tuple[str, str]] = []

    def add(
        self,
        url: str,
        body: Union[str, bytes] = b"",
        content_type: str = "text/html",
        status: int = 200,
        method: Optional[str] = None,
        delay: float = 0.0,
    ) -> None:
        if isinstance(body, str):
            body = body.encode("utf-8")
        self.routes[(method, url)] = FetchResponse(
            url=url, status=status, content_type=content_type, body=body, charset="utf-8"
        )
        if delay:
            self.delays[url] = delay

    def fail(self, url: str, status: Optional[int] = None, method: Optional[str] = None) -> None:
        reason = f"HTTP {status}" if status else "connection refused"
        self.routes[(method, url)] = FetchError(url, reason, status=status)

    def count(self, url: str, method: Optional[str] = None) -> int:
        return sum(1 for m, u in self.calls if u == url and (method is None or m == method))

    async def fetch(self, url: str, method: str = "GET") -> FetchResponse:
        self.calls.append((method, url))
        await asyncio.sleep(self.delays.get(url, 0))
        route = self.routes.get((method, url), self.routes.get((None, url)))
        if route is None:
            raise FetchError(url, "HTTP 404", status=404)
        if isinstance(route, Exception):
            raise route
        return route


@pytest.fixture
def fetcher():
    """Create an empty fake fetcher."""
    return FakeFetcher()


@pytest.fixture
def settings(tmp_path):
    """Settings rooted in a temporary state directory."""
    return Settings(state_dir=str(tmp_path / "state"), max_width=768)


@pytest.fixture(autouse=True)
def reset_logging():
    """Undo logging configuration done by CLI invocations."""
    yield
    structlog.reset_defaults()
