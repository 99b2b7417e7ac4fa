"""Metrics collection for the feed enricher.

This module provides Prometheus metrics for the caches, the dedup engine,
the enrichment strategies and the fetch layer.
"""

import os

from prometheus_client import REGISTRY, CollectorRegistry, Counter, Gauge


def _registered(registry: CollectorRegistry, name: str):
    return registry._names_to_collectors.get(name)


def _counter(registry: CollectorRegistry, name: str, help_text: str, labels) -> Counter:
    existing = _registered(registry, name)
    if existing is not None:
        return existing
    return Counter(name, help_text, labels, registry=registry)


def _gauge(registry: CollectorRegistry, name: str, help_text: str, labels) -> Gauge:
    existing = _registered(registry, name)
    if existing is not None:
        return existing
    return Gauge(name, help_text, labels, registry=registry)


class CacheMetrics:
    """Metrics for cache performance and behavior.

    Every metric is labelled with the cache name so the fingerprint, embed
    and dedup tier caches can be told apart.
    """

    def __init__(self, registry: CollectorRegistry = REGISTRY) -> None:
        """Initialize cache metrics.

        Args:
            registry: Prometheus registry to use for metrics
        """
        self.cache_hits = _counter(registry, "cache_hits_total", "Number of cache hits", ["cache"])
        self.cache_misses = _counter(
            registry, "cache_misses_total", "Number of cache misses", ["cache"]
        )
        self.cache_evictions = _counter(
            registry, "cache_evictions_total", "Number of cache entries evicted", ["cache"]
        )
        self.cache_size_bytes = _gauge(
            registry, "cache_size_bytes", "Total weight of cached values in bytes", ["cache"]
        )


class PipelineMetrics:
    """Metrics for fingerprinting, dedup and enrichment."""

    def __init__(self, registry: CollectorRegistry = REGISTRY) -> None:
        self.dedup_verdicts = _counter(
            registry, "dedup_verdicts_total", "Items classified by the dedup engine", ["verdict"]
        )
        self.strategy_outcomes = _counter(
            registry,
            "embed_strategy_outcomes_total",
            "Outcomes reported by embed strategies",
            ["strategy", "outcome"],
        )
        self.fetch_failures = _counter(
            registry, "fetch_failures_total", "Failed or timed out fetches", ["stage"]
        )


# Metrics registry management
_test_registry = None
_metrics = None
_pipeline_metrics = None


def get_registry() -> CollectorRegistry:
    """Get the appropriate metrics registry.

    Returns:
        CollectorRegistry: Registry to use for metrics
    """
    global _test_registry
    if bool(os.getenv("PYTEST_CURRENT_TEST")):
        if _test_registry is None:
            _test_registry = CollectorRegistry()
        return _test_registry
    return REGISTRY


def get_metrics() -> CacheMetrics:
    """Get the cache metrics instance."""
    global _metrics
    if _metrics is None:
        _metrics = CacheMetrics(registry=get_registry())
    return _metrics


def get_pipeline_metrics() -> PipelineMetrics:
    """Get the pipeline metrics instance."""
    global _pipeline_metrics
    if _pipeline_metrics is None:
        _pipeline_metrics = PipelineMetrics(registry=get_registry())
    return _pipeline_metrics


# Convenience accessors
metrics = get_metrics()
pipeline_metrics = get_pipeline_metrics()

__all__ = [
    "CacheMetrics",
    "PipelineMetrics",
    "get_metrics",
    "get_pipeline_metrics",
    "get_registry",
    "metrics",
    "pipeline_metrics",
]
