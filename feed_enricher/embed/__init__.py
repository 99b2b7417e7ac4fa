"""Embeddable markup resolution."""

from feed_enricher.embed.oembed import DEFAULT_PROVIDERS, OEmbedProvider, OEmbedStrategy
from feed_enricher.embed.pipeline import EnrichmentPipeline, build_default_chain
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

__all__ = [
    "DEFAULT_PROVIDERS",
    "DirectImageStrategy",
    "EmbedStrategy",
    "EnrichmentPipeline",
    "ExtensionlessImageStrategy",
    "GalleryImageStrategy",
    "OEmbedProvider",
    "OEmbedStrategy",
    "Outcome",
    "OutcomeKind",
    "QuickmemeStrategy",
    "RedditSelfPostStrategy",
    "StrategyChain",
    "build_default_chain",
    "image_markup",
]
