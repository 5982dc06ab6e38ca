"""
Test utilities for the metrics stack.

Provides helpers to give each test a clean default registry and to read
series values back.
"""

from collections.abc import Mapping

from prometheus_client import CollectorRegistry

from .registry import MetricsRegistry, resolve_registry, set_registry


def reset_metrics() -> MetricsRegistry:
    """
    Install a fresh default registry so the next test gets a clean slate.

    The new registry is backed by its own ``CollectorRegistry``, leaving
    ``prometheus_client.REGISTRY`` untouched.
    """
    return set_registry(MetricsRegistry(CollectorRegistry()))


def sample_value(
    name: str,
    labels: Mapping[str, str] | None = None,
    *,
    registry: MetricsRegistry | None = None,
) -> float:
    """Return the value of one series, ``0.0`` when it has not been recorded yet."""
    value = resolve_registry(registry).get_sample_value(name, labels)
    return 0.0 if value is None else value
