"""oEmbed provider strategies."""

import json
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

import structlog

from feed_enricher.embed.strategies import EmbedStrategy, Outcome, image_markup
from feed_enricher.errors import DecodeError
from feed_enricher.fetch.client import Fetcher

logger = structlog.get_logger(__name__)

IMGUR_ANCHOR = re.compile(r"<a name=['\"](\w+)['\"]")


@dataclass(frozen=True)
class OEmbedProvider:
    """An oEmbed endpoint and the URLs it serves.

    Attributes:
        name: Provider name used in logs and metrics
        endpoint: oEmbed endpoint, possibly carrying its own query
        pattern: Regex a URL must match for this provider to be queried
    """

    name: str
    endpoint: str
    pattern: str


DEFAULT_PROVIDERS: List[OEmbedProvider] = [
    OEmbedProvider("imgur", "https://api.imgur.com/oembed", "imgur"),
    OEmbedProvider("youtube", "https://www.youtube.com/oembed", "youtu"),
    OEmbedProvider("flickr", "https://www.flickr.com/services/oembed", "flic"),
    OEmbedProvider("viddler", "http://lab.viddler.com/services/oembed", "viddler"),
    OEmbedProvider("qik", "http://qik.com/api/oembed.json", "qik"),
    OEmbedProvider("revision3", "http://revision3.com/api/oembed", "revision3"),
    OEmbedProvider("hulu", "https://www.hulu.com/api/oembed.json", "hulu"),
    OEmbedProvider("vimeo", "https://vimeo.com/api/oembed.json", "vimeo"),
    OEmbedProvider("collegehumor", "http://www.collegehumor.com/oembed.json", "collegehumor"),
]


def embedly_provider(api_key: str) -> OEmbedProvider:
    """Catch-all provider; matches every URL so it must come last."""
    return OEmbedProvider("embedly", f"https://api.embed.ly/1/oembed?key={api_key}", "")


def providers_for(args: Mapping[str, str]) -> List[OEmbedProvider]:
    providers = list(DEFAULT_PROVIDERS)
    if args.get("EmbedlyAPIKey"):
        providers.append(embedly_provider(args["EmbedlyAPIKey"]))
    return providers


def build_request_url(endpoint: str, url: str, max_width: Optional[str] = None) -> str:
    scheme, netloc, path, query, fragment = urlsplit(endpoint)
    params = parse_qsl(query)
    params.append(("format", "json"))
    params.append(("url", url))
    if max_width:
        params.append(("maxwidth", max_width))
    return urlunsplit((scheme, netloc, path, urlencode(params), fragment))


async def imgur_gallery_markup(fetcher: Fetcher, url: str) -> str:
    """Scrape an imgur gallery page and embed every image it names."""
    page = (await fetcher.fetch(url)).text()
    images = [image_markup(f"https://i.imgur.com/{image_id}.png") for image_id in IMGUR_ANCHOR.findall(page)]
    return "<br/><br/>".join(images)


class OEmbedStrategy(EmbedStrategy):
    """Query one oEmbed provider for URLs matching its pattern."""

    def __init__(self, provider: OEmbedProvider, fetcher: Fetcher, args: Mapping[str, str]):
        self.provider = provider
        self.fetcher = fetcher
        self.args = dict(args)
        self.name = f"oembed_{provider.name}"
        self._pattern = re.compile(provider.pattern)

    async def _query(self, url: str) -> Dict[str, Any]:
        request_url = build_request_url(self.provider.endpoint, url, self.args.get("maxWidth"))
        response = await self.fetcher.fetch(request_url)
        try:
            data = json.loads(response.text())
        except json.JSONDecodeError as e:
            raise DecodeError(f"invalid oEmbed JSON from {self.provider.name}: {e}", source=request_url) from e
        if not isinstance(data, dict):
            raise DecodeError(f"oEmbed response from {self.provider.name} is not an object", source=request_url)
        return data

    async def _resolve(self, url: str) -> Outcome:
        if not self._pattern.search(url):
            return Outcome.not_applicable()

        data = await self._query(url)
        resolved_url = data.get("url")
        canonical = resolved_url if isinstance(resolved_url, str) and resolved_url else url
        kind = data.get("type")

        if data.get("provider_name") == "Imgur" and kind == "rich":
            # Imgur's rich payload for galleries is not embeddable; scrape instead.
            markup = await imgur_gallery_markup(self.fetcher, url)
        elif isinstance(data.get("html"), str):
            # Protocol-relative embeds.
            markup = data["html"].replace("http:", "")
        elif kind == "photo" and isinstance(resolved_url, str):
            markup = image_markup(resolved_url)
        elif isinstance(data.get("description"), str):
            markup = data["description"]
        else:
            logger.debug("oembed_unusable_response", url=url, provider=self.provider.name, type=kind)
            return Outcome.not_applicable()
        return Outcome.matched(canonical, markup)
