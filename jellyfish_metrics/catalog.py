"""
Catalog of every metric exposed by Jellyfish services.

Metric names are part of the monitoring contract (dashboards and alerts
query them) and must not change.  ``Names`` groups them by area so callers
never build a name from a string.
"""

import math
from dataclasses import dataclass

from .registry import MetricDescriptor, MetricKind, MetricsRegistry, resolve_registry
from .utils import exponential_buckets, to_seconds


@dataclass(frozen=True)
class MeasureMetricNames:
    """Metric names of one operation measured by ``async_measure_fn``."""

    total: str
    duration_seconds: str
    failure_total: str


@dataclass(frozen=True)
class TotalMetricNames:
    total: str


@dataclass(frozen=True)
class DurationMetricNames:
    duration_seconds: str


@dataclass(frozen=True)
class CardMetricNames:
    upsert: TotalMetricNames
    insert: TotalMetricNames
    read: TotalMetricNames
    patch: MeasureMetricNames


@dataclass(frozen=True)
class WorkerMetricNames:
    total: str
    saturation: str
    job_duration: str
    concurrency: str


@dataclass(frozen=True)
class SQLMetricNames:
    gen: DurationMetricNames
    query: DurationMetricNames


@dataclass(frozen=True)
class StreamMetricNames:
    total: str
    saturation: str
    error_total: str


@dataclass(frozen=True)
class HTTPMetricNames:
    query: MeasureMetricNames
    type: MeasureMetricNames
    id: MeasureMetricNames
    slug: MeasureMetricNames
    action: MeasureMetricNames
    whoami: MeasureMetricNames


@dataclass(frozen=True)
class APIMetricNames:
    requests_total: str
    request_duration_seconds: str


@dataclass(frozen=True)
class MetricNames:
    card: CardMetricNames
    worker: WorkerMetricNames
    back_sync: TotalMetricNames
    sql: SQLMetricNames
    streams: StreamMetricNames
    mirror: MeasureMetricNames
    translate: MeasureMetricNames
    http: HTTPMetricNames
    api: APIMetricNames


def get_measure_metric_names(prefix: str) -> MeasureMetricNames:
    """
    Build the total/duration/failure names for a measured operation.

    ``get_measure_metric_names("jf_mirror")`` gives ``jf_mirror_total``,
    ``jf_mirror_duration_seconds`` and ``jf_mirror_failure_total``.
    """
    return MeasureMetricNames(
        total=f"{prefix}_total",
        duration_seconds=f"{prefix}_duration_seconds",
        failure_total=f"{prefix}_failure_total",
    )


# ── Bucket ladders ───────────────────────────────────────────────

# Most latency histograms: 4ms upwards
LATENCY_BUCKETS = tuple(to_seconds(ms) for ms in exponential_buckets(4, math.sqrt(2), 28))

# SQL histograms: 1ms upwards
QUERY_LATENCY_BUCKETS = tuple(to_seconds(ms) for ms in exponential_buckets(1, math.sqrt(2), 28))


# ── Names ────────────────────────────────────────────────────────

Names = MetricNames(
    card=CardMetricNames(
        upsert=TotalMetricNames("jf_card_upsert_total"),
        insert=TotalMetricNames("jf_card_insert_total"),
        read=TotalMetricNames("jf_card_read_total"),
        patch=get_measure_metric_names("jf_card_patch"),
    ),
    worker=WorkerMetricNames(
        total="jf_worker_action_request_total",
        saturation="jf_worker_saturation",
        job_duration="jf_worker_job_duration_seconds",
        concurrency="jf_worker_concurrency",
    ),
    back_sync=TotalMetricNames("jf_back_sync_total"),
    sql=SQLMetricNames(
        gen=DurationMetricNames("jf_sql_gen_duration_seconds"),
        query=DurationMetricNames("jf_query_duration_seconds"),
    ),
    streams=StreamMetricNames(
        total="jf_streams_link_query_total",
        saturation="jf_streams_saturation",
        error_total="jf_streams_error_total",
    ),
    mirror=get_measure_metric_names("jf_mirror"),
    translate=get_measure_metric_names("jf_translate"),
    http=HTTPMetricNames(
        query=get_measure_metric_names("jf_http_api_query"),
        type=get_measure_metric_names("jf_http_api_type"),
        id=get_measure_metric_names("jf_http_api_id"),
        slug=get_measure_metric_names("jf_http_api_slug"),
        action=get_measure_metric_names("jf_http_api_action"),
        whoami=get_measure_metric_names("jf_http_whoami_query"),
    ),
    api=APIMetricNames(
        requests_total="jf_api_requests_total",
        request_duration_seconds="jf_api_request_duration_seconds",
    ),
)


def _counter(name, description, labelnames=()):
    return MetricDescriptor(name, description, MetricKind.COUNTER, tuple(labelnames))


def _gauge(name, description, labelnames=()):
    return MetricDescriptor(name, description, MetricKind.GAUGE, tuple(labelnames))


def _histogram(name, description, labelnames=(), buckets=LATENCY_BUCKETS):
    return MetricDescriptor(name, description, MetricKind.HISTOGRAM, tuple(labelnames), tuple(buckets))


# ── Counters ─────────────────────────────────────────────────────

COUNTERS = (
    _counter(Names.card.upsert.total, "number of cards upserted", ["type"]),
    _counter(Names.card.insert.total, "number of cards inserted", ["type"]),
    _counter(Names.card.read.total, "number of cards read from database/cache", ["type", "source"]),
    _counter(Names.card.patch.total, "number of card patch requests"),
    _counter(Names.card.patch.failure_total, "number of card patch failures"),
    _counter(Names.mirror.total, "number of mirror calls", ["type"]),
    _counter(Names.mirror.failure_total, "number of mirror call failures", ["type"]),
    _counter(Names.worker.total, "number of received action requests", ["type"]),
    _counter(Names.translate.total, "number of translate calls", ["type"]),
    _counter(Names.translate.failure_total, "number of translate call failures", ["type"]),
    _counter(Names.http.query.total, "number of /query requests"),
    _counter(Names.http.type.total, "number of /type requests"),
    _counter(Names.http.id.total, "number of /id requests"),
    _counter(Names.http.slug.total, "number of /slug requests"),
    _counter(Names.http.action.total, "number of /action requests"),
    _counter(Names.http.whoami.total, "number of /whoami requests"),
    _counter(Names.http.query.failure_total, "number of /query request failures"),
    _counter(Names.http.type.failure_total, "number of /type request failures"),
    _counter(Names.http.id.failure_total, "number of /id request failures"),
    _counter(Names.http.slug.failure_total, "number of /slug request failures"),
    _counter(Names.http.action.failure_total, "number of /action request failures"),
    _counter(Names.http.whoami.failure_total, "number of /whoami request failures"),
    _counter(Names.streams.total, "number of times streams query links", ["table", "actor", "type", "card"]),
    _counter(Names.streams.error_total, "number of stream errors", ["actor", "table"]),
    _counter(Names.back_sync.total, "number of back syncs", ["type"]),
    _counter(Names.api.requests_total, "number of API requests", ["method", "path", "status"]),
)

# ── Gauges ───────────────────────────────────────────────────────

GAUGES = (
    _gauge(Names.worker.saturation, "number of jobs being processed in worker queues", ["type", "worker"]),
    _gauge(Names.worker.concurrency, "number of jobs worker queues can process concurrently"),
    _gauge(Names.streams.saturation, "number of streams open", ["actor", "table"]),
)

# ── Histograms ───────────────────────────────────────────────────

HISTOGRAMS = (
    _histogram(
        Names.http.query.duration_seconds,
        "histogram of durations taken to process /query requests in seconds",
    ),
    _histogram(
        Names.http.type.duration_seconds,
        "histogram of durations taken to process /type requests in seconds",
    ),
    _histogram(
        Names.http.id.duration_seconds,
        "histogram of durations taken to process /id requests in seconds",
    ),
    _histogram(
        Names.http.slug.duration_seconds,
        "histogram of durations taken to process /slug requests in seconds",
    ),
    _histogram(
        Names.http.action.duration_seconds,
        "histogram of durations taken to process /action requests in seconds",
    ),
    _histogram(
        Names.http.whoami.duration_seconds,
        "histogram of durations taken to process /whoami requests in seconds",
    ),
    _histogram(
        Names.mirror.duration_seconds,
        "histogram of durations taken to make mirror calls in seconds",
        ["type"],
    ),
    _histogram(
        Names.translate.duration_seconds,
        "histogram of durations taken to run translate calls in seconds",
        ["type"],
    ),
    _histogram(
        Names.worker.job_duration,
        "histogram of durations taken to complete worker jobs in seconds",
        ["type", "worker"],
    ),
    _histogram(
        Names.sql.gen.duration_seconds,
        "histogram of durations taken to generate sql with jsonschema2sql",
        buckets=QUERY_LATENCY_BUCKETS,
    ),
    _histogram(
        Names.sql.query.duration_seconds,
        "histogram of durations taken to query the database",
        buckets=QUERY_LATENCY_BUCKETS,
    ),
    _histogram(
        Names.card.patch.duration_seconds,
        "histogram of durations taken to patch cards in seconds",
        ["type"],
    ),
    _histogram(
        Names.api.request_duration_seconds,
        "histogram of durations taken to serve API requests in seconds",
        ["method", "path"],
    ),
)


DESCRIPTORS = {descriptor.name: descriptor for descriptor in (*COUNTERS, *GAUGES, *HISTOGRAMS)}


def describe(registry: MetricsRegistry | None = None) -> None:
    """
    Register every catalog metric that is not registered yet.

    Safe to call multiple times.  Must run before the first scrape so that
    every metric is exposed with its help text and buckets.
    """
    registry = resolve_registry(registry)
    for descriptor in DESCRIPTORS.values():
        if not registry.is_described(descriptor.name):
            registry.register(descriptor)
