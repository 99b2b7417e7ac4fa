"""Configuration management for the feed enricher."""

from .settings import Settings

__all__ = ["Settings"]
