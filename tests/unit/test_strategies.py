"""Tests for embed strategies."""

import json
from urllib.parse import parse_qs, urlsplit

import pytest

from feed_enricher.embed.oembed import OEmbedProvider, OEmbedStrategy, build_request_url
from feed_enricher.embed.strategies import (
    DirectImageStrategy,
    EmbedStrategy,
    ExtensionlessImageStrategy,
    GalleryImageStrategy,
    Outcome,
    OutcomeKind,
    QuickmemeStrategy,
    RedditSelfPostStrategy,
    StrategyChain,
    image_markup,
)
from feed_enricher.errors import DecodeError, FetchError


class StaticStrategy(EmbedStrategy):
    """Strategy returning a fixed outcome and counting calls."""

    def __init__(self, name, outcome):
        self.name = name
        self.outcome = outcome
        self.calls = []

    async def _resolve(self, url):
        self.calls.append(url)
        return self.outcome


@pytest.mark.asyncio
async def test_direct_image_matches_image_content_type(fetcher):
    """Test that an image URL is embedded as-is."""
    fetcher.add("https://i.example.com/cat.png", content_type="image/png", method="HEAD")

    outcome = await DirectImageStrategy(fetcher).resolve("https://i.example.com/cat.png")

    assert outcome.kind is OutcomeKind.MATCHED
    assert outcome.result.url == "https://i.example.com/cat.png"
    assert outcome.result.markup == image_markup("https://i.example.com/cat.png")


@pytest.mark.asyncio
async def test_direct_image_skips_html(fetcher):
    """Test that non-image content does not apply."""
    fetcher.add("https://example.com/page", content_type="text/html; charset=utf-8")
    outcome = await DirectImageStrategy(fetcher).resolve("https://example.com/page")
    assert outcome.kind is OutcomeKind.NOT_APPLICABLE


@pytest.mark.asyncio
async def test_direct_image_falls_back_to_get_when_head_is_refused(fetcher):
    """Test hosts that reject HEAD requests."""
    url = "https://i.example.com/cat"
    fetcher.fail(url, status=405, method="HEAD")
    fetcher.add(url, content_type="image/jpeg", method="GET")

    outcome = await DirectImageStrategy(fetcher).resolve(url)

    assert outcome.kind is OutcomeKind.MATCHED
    assert fetcher.calls == [("HEAD", url), ("GET", url)]


@pytest.mark.asyncio
async def test_direct_image_reports_fetch_failure(fetcher):
    """Test that network errors are failures, not skips."""
    fetcher.fail("https://example.com/down")
    outcome = await DirectImageStrategy(fetcher).resolve("https://example.com/down")
    assert outcome.kind is OutcomeKind.FAILED
    assert isinstance(outcome.error, FetchError)


@pytest.mark.asyncio
async def test_extensionless_image_appends_png(fetcher):
    """Test the trailing-slash strip and .png suffix."""
    fetcher.add("https://imgur.com/abc.png", content_type="image/png")
    strategy = ExtensionlessImageStrategy(DirectImageStrategy(fetcher))

    outcome = await strategy.resolve("https://imgur.com/abc/")

    assert outcome.result.url == "https://imgur.com/abc.png"


@pytest.mark.asyncio
async def test_gallery_image_strips_gallery_segment(fetcher):
    """Test the gallery URL transform."""
    fetcher.add("https://imgur.com/xyz.png", content_type="image/png")
    strategy = GalleryImageStrategy(ExtensionlessImageStrategy(DirectImageStrategy(fetcher)))

    outcome = await strategy.resolve("https://imgur.com/gallery/xyz")

    assert outcome.result.url == "https://imgur.com/xyz.png"


@pytest.mark.asyncio
async def test_gallery_image_does_not_apply_elsewhere(fetcher):
    """Test that non-gallery URLs are skipped without fetching."""
    strategy = GalleryImageStrategy(ExtensionlessImageStrategy(DirectImageStrategy(fetcher)))
    outcome = await strategy.resolve("https://example.com/post")
    assert outcome.kind is OutcomeKind.NOT_APPLICABLE
    assert fetcher.calls == []


@pytest.mark.asyncio
async def test_quickmeme_scrapes_image(fetcher):
    """Test the quickmeme page scrape."""
    fetcher.add(
        "http://www.quickmeme.com/meme/3abc",
        body='<div><img id="img" alt="meme" src="http://i.qkme.me/3abc.jpg"></div>',
    )

    outcome = await QuickmemeStrategy(fetcher).resolve("http://www.quickmeme.com/meme/3abc")

    assert outcome.result.url == "http://i.qkme.me/3abc.jpg"
    assert outcome.result.markup == image_markup("http://i.qkme.me/3abc.jpg")


@pytest.mark.asyncio
async def test_quickmeme_ignores_other_hosts(fetcher):
    outcome = await QuickmemeStrategy(fetcher).resolve("https://example.com/meme")
    assert outcome.kind is OutcomeKind.NOT_APPLICABLE
    assert fetcher.calls == []


@pytest.mark.asyncio
async def test_reddit_self_post_inlines_linked_images(fetcher):
    """Test that links in a self post body become embedded images."""
    post = "https://www.reddit.com/r/pics/comments/1/title/"
    fetcher.add(
        post,
        body=(
            "<html><body><div class='expando'><div class='usertext-body'>"
            "<p>Look <a href='https://i.example.com/a.png'>here</a> and "
            "<a href='https://example.com/article'>there</a></p>"
            "</div></div></body></html>"
        ),
    )
    fetcher.add("https://i.example.com/a.png", content_type="image/png")
    fetcher.add("https://example.com/article", content_type="text/html")
    strategy = RedditSelfPostStrategy(fetcher, DirectImageStrategy(fetcher))

    outcome = await strategy.resolve(post)

    assert outcome.kind is OutcomeKind.MATCHED
    assert outcome.result.url == post
    assert "<img" in outcome.result.markup
    assert "i.example.com/a.png" in outcome.result.markup
    assert "<a href=\"https://example.com/article\">there</a>" in outcome.result.markup


@pytest.mark.asyncio
async def test_reddit_link_post_does_not_apply(fetcher):
    """Test that pages without a self-post body are skipped."""
    post = "https://www.reddit.com/r/pics/comments/2/title/"
    fetcher.add(post, body="<html><body><div class='thing'></div></body></html>")
    outcome = await RedditSelfPostStrategy(fetcher, DirectImageStrategy(fetcher)).resolve(post)
    assert outcome.kind is OutcomeKind.NOT_APPLICABLE


@pytest.mark.asyncio
async def test_chain_stops_at_first_match():
    """Test that later strategies are not consulted after a match."""
    first = StaticStrategy("first", Outcome.not_applicable())
    second = StaticStrategy("second", Outcome.matched("u", "<b>hit</b>"))
    third = StaticStrategy("third", Outcome.matched("u", "<b>late</b>"))

    outcome = await StrategyChain([first, second, third]).resolve("u")

    assert outcome.result.markup == "<b>hit</b>"
    assert (len(first.calls), len(second.calls), len(third.calls)) == (1, 1, 0)


@pytest.mark.asyncio
async def test_chain_skips_failures_and_empty_matches():
    """Test that failures and empty markup fall through."""
    failing = StaticStrategy("failing", Outcome.failed(FetchError("u", "boom")))
    empty = StaticStrategy("empty", Outcome.matched("u", ""))
    last = StaticStrategy("last", Outcome.matched("u", "<i>ok</i>"))

    outcome = await StrategyChain([failing, empty, last]).resolve("u")

    assert outcome.result.markup == "<i>ok</i>"


@pytest.mark.asyncio
async def test_chain_without_match_does_not_apply():
    outcome = await StrategyChain([StaticStrategy("none", Outcome.not_applicable())]).resolve("u")
    assert outcome.kind is OutcomeKind.NOT_APPLICABLE


def test_build_request_url_keeps_endpoint_query():
    """Test oEmbed request construction."""
    url = build_request_url("https://api.embed.ly/1/oembed?key=k", "https://v.example/1", "768")
    query = parse_qs(urlsplit(url).query)
    assert query == {
        "key": ["k"],
        "format": ["json"],
        "url": ["https://v.example/1"],
        "maxwidth": ["768"],
    }


@pytest.fixture
def youtube():
    return OEmbedProvider("youtube", "https://www.youtube.com/oembed", "youtu")


def oembed_url(provider, url):
    return build_request_url(provider.endpoint, url, "768")


@pytest.mark.asyncio
async def test_oembed_html_is_made_protocol_relative(fetcher, youtube):
    """Test the html mapping of an oEmbed response."""
    video = "https://www.youtube.com/watch?v=abc"
    fetcher.add(
        oembed_url(youtube, video),
        body=json.dumps({"type": "video", "html": "<iframe src='http://www.youtube.com/embed/abc'></iframe>"}),
        content_type="application/json",
    )

    outcome = await OEmbedStrategy(youtube, fetcher, {"maxWidth": "768"}).resolve(video)

    assert outcome.result.url == video
    assert outcome.result.markup == "<iframe src='//www.youtube.com/embed/abc'></iframe>"


@pytest.mark.asyncio
async def test_oembed_photo_uses_resolved_url(fetcher):
    """Test that photo responses rewrite the canonical URL."""
    flickr = OEmbedProvider("flickr", "https://www.flickr.com/services/oembed", "flic")
    page = "https://flic.kr/p/abc"
    fetcher.add(
        oembed_url(flickr, page),
        body=json.dumps({"type": "photo", "url": "https://live.staticflickr.com/abc.jpg"}),
    )

    outcome = await OEmbedStrategy(flickr, fetcher, {"maxWidth": "768"}).resolve(page)

    assert outcome.result.url == "https://live.staticflickr.com/abc.jpg"
    assert outcome.result.markup == image_markup("https://live.staticflickr.com/abc.jpg")


@pytest.mark.asyncio
async def test_oembed_description_fallback(fetcher, youtube):
    video = "https://youtu.be/abc"
    fetcher.add(oembed_url(youtube, video), body=json.dumps({"type": "link", "description": "A video"}))
    outcome = await OEmbedStrategy(youtube, fetcher, {"maxWidth": "768"}).resolve(video)
    assert outcome.result.markup == "A video"


@pytest.mark.asyncio
async def test_oembed_unusable_response_does_not_apply(fetcher, youtube):
    video = "https://youtu.be/abc"
    fetcher.add(oembed_url(youtube, video), body=json.dumps({"type": "link"}))
    outcome = await OEmbedStrategy(youtube, fetcher, {"maxWidth": "768"}).resolve(video)
    assert outcome.kind is OutcomeKind.NOT_APPLICABLE


@pytest.mark.asyncio
async def test_oembed_imgur_rich_rescrapes_gallery(fetcher):
    """Test the imgur gallery special case."""
    imgur = OEmbedProvider("imgur", "https://api.imgur.com/oembed", "imgur")
    gallery = "https://imgur.com/a/album"
    fetcher.add(
        build_request_url(imgur.endpoint, gallery, None),
        body=json.dumps({"type": "rich", "provider_name": "Imgur", "html": "<blockquote/>"}),
    )
    fetcher.add(gallery, body="<a name='one'></a><p>text</p><a name=\"two\"></a>")

    outcome = await OEmbedStrategy(imgur, fetcher, {}).resolve(gallery)

    assert outcome.result.markup == "<br/><br/>".join(
        [image_markup("https://i.imgur.com/one.png"), image_markup("https://i.imgur.com/two.png")]
    )


@pytest.mark.asyncio
async def test_oembed_skips_unmatched_hosts(fetcher, youtube):
    outcome = await OEmbedStrategy(youtube, fetcher, {}).resolve("https://vimeo.com/1")
    assert outcome.kind is OutcomeKind.NOT_APPLICABLE
    assert fetcher.calls == []


@pytest.mark.asyncio
async def test_oembed_invalid_json_fails(fetcher, youtube):
    """Test that malformed provider responses are decode failures."""
    video = "https://youtu.be/abc"
    fetcher.add(oembed_url(youtube, video), body="<html>not json</html>")

    outcome = await OEmbedStrategy(youtube, fetcher, {"maxWidth": "768"}).resolve(video)

    assert outcome.kind is OutcomeKind.FAILED
    assert isinstance(outcome.error, DecodeError)
