"""Data models for feeds, items and embeds."""

import json
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class FeedItem(BaseModel):
    """Model for an upstream feed item."""

    url: str = Field(..., description="Link the item points at")
    title: str = ""
    published_at: datetime
    nsfw: bool = False
    comments_url: Optional[str] = None


class Feed(BaseModel):
    """Model for an upstream feed and its ordered items."""

    title: str
    link: str
    description: str = ""
    ttl: int = 10
    items: List[FeedItem] = Field(default_factory=list)


@dataclass(frozen=True)
class EmbedResult:
    """Resolved embed for a URL.

    Attributes:
        url: Canonical URL chosen by the strategy, which may differ from
            the requested one
        markup: HTML to embed
    """

    url: str
    markup: str

    def to_cache_value(self) -> str:
        return json.dumps({"url": self.url, "markup": self.markup})

    @classmethod
    def from_cache_value(cls, value: str) -> "EmbedResult":
        data = json.loads(value)
        return cls(url=data["url"], markup=data["markup"])


class EnrichedItem(BaseModel):
    """Model for an output item: a surviving feed item plus its embed."""

    title: str
    link: str
    description: str
    comments: Optional[str] = None
    guid: str
    published_at: datetime
    fingerprint: str = ""

    @classmethod
    def build(cls, item: FeedItem, embed: EmbedResult, fingerprint: str = "") -> "EnrichedItem":
        description = embed.markup
        if item.comments_url:
            description = f"{description}<br/><br/><a href='{item.comments_url}'>Comments</a>"
        return cls(
            title=item.title,
            link=item.url,
            description=description,
            comments=item.comments_url,
            guid=embed.url or item.url,
            published_at=item.published_at,
            fingerprint=fingerprint,
        )
