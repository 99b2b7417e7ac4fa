"""Tests for the fingerprint resolver."""

import hashlib

import pytest

from feed_enricher.cache.sized_cache import SizedCache
from feed_enricher.dedup.fingerprint import UNRESOLVED, URL_FINGERPRINT_PREFIX, FingerprintResolver


def md5(data: bytes) -> str:
    return hashlib.md5(data).hexdigest()


@pytest.fixture
def cache():
    return SizedCache(capacity=10_000, name="fingerprints")


@pytest.mark.asyncio
async def test_resolve_digests_content_and_memoizes(fetcher, cache):
    """Test that a fetched body is digested and stored."""
    fetcher.add("https://example.com/a", body=b"content a")
    resolver = FingerprintResolver(cache, fetcher)

    assert await resolver.resolve("https://example.com/a") == md5(b"content a")
    assert await resolver.resolve("https://example.com/a") == md5(b"content a")
    assert fetcher.count("https://example.com/a") == 1
    assert cache.get("https://example.com/a") == (md5(b"content a"), True)


@pytest.mark.asyncio
async def test_cached_fingerprint_skips_fetch(fetcher, cache):
    """Test that a memoized URL is never fetched."""
    cache.set("https://example.com/a", "cafebabe")
    resolver = FingerprintResolver(cache, fetcher)

    assert await resolver.resolve("https://example.com/a") == "cafebabe"
    assert fetcher.calls == []


@pytest.mark.asyncio
async def test_concurrent_requests_share_one_fetch(fetcher, cache):
    """Test that repeated URLs in a batch are fetched once."""
    url = "https://example.com/slow"
    fetcher.add(url, body=b"slow", delay=0.05)
    resolver = FingerprintResolver(cache, fetcher)

    fingerprints = await resolver.resolve_all([url, url, url])

    assert fingerprints == [md5(b"slow")] * 3
    assert fetcher.count(url) == 1


@pytest.mark.asyncio
async def test_resolve_all_keeps_input_order(fetcher, cache):
    """Test that completion order does not affect result order."""
    fetcher.add("https://example.com/1", body=b"one", delay=0.05)
    fetcher.add("https://example.com/2", body=b"two")
    fetcher.add("https://example.com/3", body=b"three", delay=0.02)
    resolver = FingerprintResolver(cache, fetcher)

    fingerprints = await resolver.resolve_all(
        ["https://example.com/1", "https://example.com/2", "https://example.com/3"]
    )

    assert fingerprints == [md5(b"one"), md5(b"two"), md5(b"three")]


@pytest.mark.asyncio
async def test_fetch_failure_is_unresolved_and_not_cached(fetcher, cache):
    """Test that a failed fetch degrades only that URL."""
    fetcher.fail("https://example.com/down")
    fetcher.add("https://example.com/up", body=b"up")
    resolver = FingerprintResolver(cache, fetcher)

    fingerprints = await resolver.resolve_all(["https://example.com/down", "https://example.com/up"])

    assert fingerprints == [UNRESOLVED, md5(b"up")]
    assert "https://example.com/down" not in cache


@pytest.mark.asyncio
async def test_url_fallback_fingerprints_the_url(fetcher, cache):
    """Test the degraded URL digest mode."""
    url = "https://example.com/down"
    fetcher.fail(url, status=503)
    resolver = FingerprintResolver(cache, fetcher, url_fallback=True)

    fingerprint = await resolver.resolve(url)

    assert fingerprint == URL_FINGERPRINT_PREFIX + md5(url.encode("utf-8"))
    assert url not in cache


@pytest.mark.asyncio
async def test_unexpected_error_degrades_only_that_url(fetcher, cache):
    """Test that a non-fetch exception does not abort the batch."""
    fetcher.routes[(None, "https://example.com/broken")] = AssertionError()
    fetcher.add("https://example.com/ok", body=b"ok")
    resolver = FingerprintResolver(cache, fetcher)

    fingerprints = await resolver.resolve_all(["https://example.com/broken", "https://example.com/ok"])

    assert fingerprints == [UNRESOLVED, md5(b"ok")]
    assert "https://example.com/broken" not in cache


@pytest.mark.asyncio
async def test_unexpected_error_uses_url_fallback(fetcher, cache):
    url = "https://example.com/broken"
    fetcher.routes[(None, url)] = RuntimeError("boom")
    resolver = FingerprintResolver(cache, fetcher, url_fallback=True)

    assert await resolver.resolve(url) == URL_FINGERPRINT_PREFIX + md5(url.encode("utf-8"))
