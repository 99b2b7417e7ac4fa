"""Configuration settings for a feed enrichment run."""

import os
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

ENV_PREFIX = "FEED_ENRICHER_"


@dataclass
class Settings:
    """Configuration for the feed enricher.

    Attributes:
        state_dir: Directory holding the cache snapshot files
        fingerprint_cache_bytes: Capacity of the URL -> fingerprint cache
        embed_cache_bytes: Capacity of the embed markup cache
        recent_cache_bytes: Capacity of the per-feed recent dedup tier
        all_time_cache_bytes: Capacity of the per-feed all-time dedup tier
        fetch_timeout: Total timeout in seconds for a single fetch
        max_concurrency: Maximum number of fetches in flight
        user_agent: User-Agent header sent with every fetch
        max_width: Width hint passed to oEmbed providers
        embedly_api_key: Enables the embed.ly catch-all provider when set
        url_fingerprint_fallback: Fingerprint the URL string when its
            content cannot be fetched instead of leaving it unresolved
        placeholder_markup: Markup used when no strategy matches; formatted
            with ``url``
    """

    state_dir: str = "./data"
    fingerprint_cache_bytes: int = 100 * 1024
    embed_cache_bytes: int = 100 * 1024
    recent_cache_bytes: int = 16 * 1024
    all_time_cache_bytes: int = 1_000_000
    fetch_timeout: float = 10.0
    max_concurrency: int = 16
    user_agent: str = "FeedEnricher/1.0"
    max_width: Optional[int] = 768
    embedly_api_key: Optional[str] = None
    url_fingerprint_fallback: bool = False
    placeholder_markup: str = "<a href='{url}'>{url}</a>"

    @classmethod
    def from_dict(cls, config_dict: Dict[str, Any]) -> "Settings":
        """Create a Settings instance from a dictionary.

        Args:
            config_dict: Dictionary containing configuration values

        Returns:
            Settings instance with values from dictionary
        """
        return cls(**{k: v for k, v in config_dict.items() if k in cls.__dataclass_fields__})

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        """Create a Settings instance from ``FEED_ENRICHER_*`` variables.

        Values are converted to the type of the field's default.
        """
        environ = os.environ if environ is None else environ
        values: Dict[str, Any] = {}
        for name, field_info in cls.__dataclass_fields__.items():
            raw = environ.get(ENV_PREFIX + name.upper())
            if raw is None:
                continue
            values[name] = _coerce(raw, field_info.default)
        return cls.from_dict(values)

    def embed_args(self) -> Dict[str, str]:
        """Arguments that shape embed markup; part of every embed cache key."""
        args = {}
        if self.max_width is not None:
            args["maxWidth"] = str(self.max_width)
        if self.embedly_api_key:
            args["EmbedlyAPIKey"] = self.embedly_api_key
        return args


def _coerce(raw: str, default: Any) -> Any:
    if isinstance(default, bool):
        return raw.strip().lower() in ("1", "true", "yes", "on")
    if isinstance(default, int):
        return int(raw)
    if isinstance(default, float):
        return float(raw)
    return raw
