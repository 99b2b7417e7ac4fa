"""Feed identity used to select per-feed dedup state."""

import re
from dataclasses import dataclass
from urllib.parse import quote

_NON_ALPHA = re.compile(r"[^a-zA-Z]+")


def normalize_link(link: str) -> str:
    """Collapse every run of non-alphabetic characters into ``-``."""
    return _NON_ALPHA.sub("-", link)


def encode_tag(tag: str) -> str:
    """Percent-encode a caller tag for use in a file name.

    Distinct tags always encode differently, and the result never contains
    ``-`` or a path separator.
    """
    return quote(tag, safe="").replace("-", "%2D")


@dataclass(frozen=True)
class FeedIdentity:
    """Caller tag plus a feed's canonical link.

    Two feeds share dedup state only when both parts match. The tag is kept
    verbatim (percent-encoded); only the link is normalized.
    """

    tag: str
    link: str

    @property
    def key(self) -> str:
        return f"{encode_tag(self.tag)}-{normalize_link(self.link)}"
