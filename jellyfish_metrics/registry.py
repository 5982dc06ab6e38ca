"""
Metrics registry backed by ``prometheus_client``.

``MetricsRegistry`` keeps the metadata of every described metric next to the
``prometheus_client`` collector that stores its series, and exposes the small
set of primitives the markers and wrappers need: ``inc``, ``dec``, ``gauge``
and ``histogram``.  Every marking function takes an optional ``registry``
argument; when it is omitted the process-wide default returned by
``get_registry()`` is used.

Usage::

    from jellyfish_metrics.registry import MetricsRegistry

    registry = MetricsRegistry()
    registry.describe_counter("jobs_total", "number of jobs", ["type"])
    registry.inc("jobs_total", 1, {"type": "build"})
    body, content_type = registry.render()
"""

import enum
import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    REGISTRY,
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)

logger = logging.getLogger(__name__)


class MetricKind(enum.Enum):
    COUNTER = "counter"
    GAUGE = "gauge"
    HISTOGRAM = "histogram"


_COLLECTOR_CLASSES = {
    MetricKind.COUNTER: Counter,
    MetricKind.GAUGE: Gauge,
    MetricKind.HISTOGRAM: Histogram,
}


@dataclass(frozen=True)
class MetricDescriptor:
    """Name, help text, kind and label names of one metric."""

    name: str
    description: str
    kind: MetricKind
    labelnames: tuple[str, ...] = ()
    buckets: tuple[float, ...] | None = None


class MetricsRegistry:
    """
    Described metrics plus their ``prometheus_client`` collectors.

    Args:
        collector_registry: The ``CollectorRegistry`` collectors are
            registered against.  A fresh one is created when omitted.
    """

    def __init__(self, collector_registry: CollectorRegistry | None = None):
        self.collector_registry = collector_registry or CollectorRegistry()
        self.meta: dict[str, MetricDescriptor] = {}
        self._collectors = {}

    # ── registration ─────────────────────────────────────────────

    def is_described(self, name: str) -> bool:
        return name in self.meta

    def register(self, descriptor: MetricDescriptor) -> MetricDescriptor:
        """
        Register ``descriptor`` unless a metric with the same name exists.

        Returns:
            The descriptor that is registered under that name, which is the
            existing one when the call was a no-op.
        """
        existing = self.meta.get(descriptor.name)
        if existing is not None:
            return existing

        kwargs = {
            "labelnames": descriptor.labelnames,
            "registry": self.collector_registry,
        }
        if descriptor.kind is MetricKind.HISTOGRAM and descriptor.buckets:
            kwargs["buckets"] = descriptor.buckets

        self._collectors[descriptor.name] = self._get_or_create(
            _COLLECTOR_CLASSES[descriptor.kind],
            descriptor.name,
            descriptor.description,
            **kwargs,
        )
        self.meta[descriptor.name] = descriptor
        return descriptor

    def describe_counter(self, name: str, description: str, labelnames: Sequence[str] = ()) -> MetricDescriptor:
        return self.register(MetricDescriptor(name, description, MetricKind.COUNTER, tuple(labelnames)))

    def describe_gauge(self, name: str, description: str, labelnames: Sequence[str] = ()) -> MetricDescriptor:
        return self.register(MetricDescriptor(name, description, MetricKind.GAUGE, tuple(labelnames)))

    def describe_histogram(
        self,
        name: str,
        description: str,
        buckets: Sequence[float],
        labelnames: Sequence[str] = (),
    ) -> MetricDescriptor:
        return self.register(
            MetricDescriptor(name, description, MetricKind.HISTOGRAM, tuple(labelnames), tuple(buckets))
        )

    def _get_or_create(self, metric_cls, name, documentation, **kwargs):
        """Create a collector or return the one already registered under ``name``."""
        try:
            return metric_cls(name, documentation, **kwargs)
        except ValueError:
            # Already registered, e.g. a second MetricsRegistry over REGISTRY
            collector = self.collector_registry._names_to_collectors.get(name)
            if collector is not None:
                return collector
            raise

    # ── observations ─────────────────────────────────────────────

    def inc(self, name: str, value: float = 1, labels: Mapping[str, str] | None = None) -> None:
        """Increment a counter or gauge."""
        self._series(name, MetricKind.COUNTER, labels).inc(value)

    def dec(self, name: str, value: float = 1, labels: Mapping[str, str] | None = None) -> None:
        """Decrement a gauge."""
        series = self._series(name, MetricKind.GAUGE, labels)
        descriptor = self.meta[name]
        if descriptor.kind is not MetricKind.GAUGE:
            raise TypeError(f"{name} is a {descriptor.kind.value}, only gauges can be decremented")
        series.dec(value)

    def gauge(self, name: str, value: float, labels: Mapping[str, str] | None = None) -> None:
        """Set a gauge to ``value``."""
        self._series(name, MetricKind.GAUGE, labels).set(value)

    def histogram(self, name: str, value: float, labels: Mapping[str, str] | None = None) -> None:
        """Record one histogram observation."""
        self._series(name, MetricKind.HISTOGRAM, labels).observe(value)

    def _series(self, name, kind, labels):
        """
        Return the label-scoped child of ``name``.

        A metric that was never described is registered on first use from
        its catalog entry, so it gets the catalog's kind, label names and
        buckets whichever primitive touches it first.  Names outside the
        catalog are created with ``kind`` and the keys of ``labels``.
        """
        labels = dict(labels or {})
        if name not in self.meta:
            # catalog imports this module
            from .catalog import DESCRIPTORS

            descriptor = DESCRIPTORS.get(name)
            if descriptor is None:
                logger.debug("Creating undescribed %s %s", kind.value, name)
                descriptor = MetricDescriptor(name, name, kind, tuple(labels))
            self.register(descriptor)

        collector = self._collectors[name]
        if self.meta[name].labelnames:
            return collector.labels(**{key: str(value) for key, value in labels.items()})
        if labels:
            raise ValueError(f"{name} takes no labels, got {sorted(labels)}")
        return collector

    # ── exposition ───────────────────────────────────────────────

    def render(self) -> tuple[bytes, str]:
        """
        Return Prometheus exposition-format bytes and the matching content-type.

        Returns:
            tuple[bytes, str]: ``(body, content_type)`` ready for an HTTP response.
        """
        return generate_latest(self.collector_registry), CONTENT_TYPE_LATEST

    def get_sample_value(self, name: str, labels: Mapping[str, str] | None = None) -> float | None:
        """Return the current value of one series, or ``None`` if it does not exist."""
        return self.collector_registry.get_sample_value(name, dict(labels or {}))


_default_registry: MetricsRegistry | None = None


def get_registry() -> MetricsRegistry:
    """Return the process-wide registry, creating it over ``REGISTRY`` on first use."""
    global _default_registry
    if _default_registry is None:
        _default_registry = MetricsRegistry(REGISTRY)
    return _default_registry


def set_registry(registry: MetricsRegistry) -> MetricsRegistry:
    """Replace the process-wide registry and return the new one."""
    global _default_registry
    _default_registry = registry
    return registry


def resolve_registry(registry: MetricsRegistry | None) -> MetricsRegistry:
    return registry if registry is not None else get_registry()
