"""Tests for jellyfish_metrics.registry."""

import unittest

from prometheus_client import CollectorRegistry

from jellyfish_metrics.registry import (
    MetricDescriptor,
    MetricKind,
    MetricsRegistry,
    get_registry,
    set_registry,
)


class TestDescribe(unittest.TestCase):
    """Verify describe_* and idempotent registration."""

    def setUp(self):
        self.registry = MetricsRegistry()

    def test_describe_counter(self):
        descriptor = self.registry.describe_counter("test_jobs_total", "number of jobs", ["type"])
        self.assertEqual(descriptor.kind, MetricKind.COUNTER)
        self.assertEqual(descriptor.labelnames, ("type",))
        self.assertTrue(self.registry.is_described("test_jobs_total"))

    def test_describe_is_idempotent(self):
        first = self.registry.describe_gauge("test_level", "first description")
        second = self.registry.describe_gauge("test_level", "second description")
        self.assertIs(first, second)
        self.assertEqual(self.registry.meta["test_level"].description, "first description")

    def test_describe_histogram_buckets(self):
        self.registry.describe_histogram("test_latency_seconds", "latency", [0.1, 0.5, 1.0])
        self.registry.histogram("test_latency_seconds", 0.3)
        self.assertEqual(
            self.registry.get_sample_value("test_latency_seconds_bucket", {"le": "0.5"}), 1.0
        )
        self.assertEqual(
            self.registry.get_sample_value("test_latency_seconds_bucket", {"le": "0.1"}), 0.0
        )

    def test_two_registries_over_one_collector_registry(self):
        """A second wrapper over the same CollectorRegistry reuses its collectors."""
        collectors = CollectorRegistry()
        first = MetricsRegistry(collectors)
        second = MetricsRegistry(collectors)
        first.describe_counter("test_shared_total", "shared")
        second.describe_counter("test_shared_total", "shared")

        first.inc("test_shared_total")
        second.inc("test_shared_total")
        self.assertEqual(first.get_sample_value("test_shared_total"), 2.0)


class TestObservations(unittest.TestCase):

    def setUp(self):
        self.registry = MetricsRegistry()
        self.registry.describe_counter("test_events_total", "events", ["type"])
        self.registry.describe_gauge("test_open", "open things", ["table"])

    def test_inc_counter_per_label_set(self):
        self.registry.inc("test_events_total", 1, {"type": "a"})
        self.registry.inc("test_events_total", 1, {"type": "a"})
        self.registry.inc("test_events_total", 1, {"type": "b"})
        self.assertEqual(self.registry.get_sample_value("test_events_total", {"type": "a"}), 2.0)
        self.assertEqual(self.registry.get_sample_value("test_events_total", {"type": "b"}), 1.0)

    def test_inc_and_dec_gauge(self):
        self.registry.inc("test_open", 1, {"table": "cards"})
        self.registry.inc("test_open", 1, {"table": "cards"})
        self.registry.dec("test_open", 1, {"table": "cards"})
        self.assertEqual(self.registry.get_sample_value("test_open", {"table": "cards"}), 1.0)

    def test_set_gauge(self):
        self.registry.describe_gauge("test_concurrency", "concurrency")
        self.registry.gauge("test_concurrency", 4)
        self.assertEqual(self.registry.get_sample_value("test_concurrency"), 4.0)

    def test_dec_counter_raises(self):
        with self.assertRaises(TypeError):
            self.registry.dec("test_events_total", 1, {"type": "a"})

    def test_wrong_label_names_raise(self):
        with self.assertRaises(ValueError):
            self.registry.inc("test_events_total", 1, {"kind": "a"})

    def test_labels_on_unlabelled_metric_raise(self):
        self.registry.describe_counter("test_plain_total", "plain")
        with self.assertRaises(ValueError):
            self.registry.inc("test_plain_total", 1, {"type": "a"})

    def test_undescribed_metric_is_created_on_first_use(self):
        self.registry.inc("test_adhoc_total", 1, {"source": "cache"})
        self.assertEqual(self.registry.meta["test_adhoc_total"].kind, MetricKind.COUNTER)
        self.assertEqual(self.registry.meta["test_adhoc_total"].labelnames, ("source",))
        self.assertEqual(
            self.registry.get_sample_value("test_adhoc_total", {"source": "cache"}), 1.0
        )

    def test_missing_series_is_none(self):
        self.assertIsNone(self.registry.get_sample_value("test_events_total", {"type": "zzz"}))


class TestRender(unittest.TestCase):

    def test_renders_help_and_series(self):
        registry = MetricsRegistry()
        registry.register(
            MetricDescriptor("test_rendered_total", "rendered things", MetricKind.COUNTER, ("type",))
        )
        registry.inc("test_rendered_total", 1, {"type": "user"})

        body, content_type = registry.render()
        text = body.decode("utf-8")
        self.assertIn("text/plain", content_type)
        self.assertIn("# HELP test_rendered_total rendered things", text)
        self.assertIn('test_rendered_total{type="user"} 1.0', text)


class TestDefaultRegistry(unittest.TestCase):

    def setUp(self):
        self._original = get_registry()

    def tearDown(self):
        set_registry(self._original)

    def test_get_registry_is_stable(self):
        self.assertIs(get_registry(), get_registry())

    def test_set_registry_replaces_default(self):
        replacement = MetricsRegistry()
        set_registry(replacement)
        self.assertIs(get_registry(), replacement)


if __name__ == "__main__":
    unittest.main()
