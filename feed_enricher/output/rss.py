"""RSS 2.0 rendering of enriched items."""

import xml.etree.ElementTree as ET
from email.utils import format_datetime
from typing import Sequence

from feed_enricher.models import EnrichedItem, Feed


def render_rss(feed: Feed, items: Sequence[EnrichedItem]) -> str:
    """Render a feed's channel metadata and the given items as RSS 2.0."""
    rss = ET.Element("rss", version="2.0")
    channel = ET.SubElement(rss, "channel")
    ET.SubElement(channel, "title").text = feed.title
    ET.SubElement(channel, "link").text = feed.link
    ET.SubElement(channel, "description").text = feed.description
    ET.SubElement(channel, "ttl").text = str(feed.ttl)

    for item in items:
        node = ET.SubElement(channel, "item")
        ET.SubElement(node, "title").text = item.title
        ET.SubElement(node, "link").text = item.link
        ET.SubElement(node, "description").text = item.description
        if item.comments:
            ET.SubElement(node, "comments").text = item.comments
        ET.SubElement(node, "guid", isPermaLink="false").text = item.guid
        ET.SubElement(node, "pubDate").text = format_datetime(item.published_at)

    return '<?xml version="1.0" encoding="UTF-8"?>\n' + ET.tostring(rss, encoding="unicode")
