"""
jellyfish_metrics: Prometheus instrumentation for Jellyfish services.

Submodules
----------
catalog     Metric names, descriptions, bucket ladders and ``describe()``.
registry    ``MetricsRegistry`` over ``prometheus_client`` and the process default.
markers     One ``mark_*`` function per application event.
measure     Async duration wrappers (``measure_*``).
server      Basic-auth ``/metrics`` server.
middleware  FastAPI request-metrics middleware.
config      Environment-sourced settings.
logging     Structured JSON logging with OTel trace-context injection.
testing     Fresh-registry and sample-lookup helpers for tests.

Quick start
-----------
::

    from jellyfish_metrics import init_observability, start_server, mark_card_insert

    init_observability("worker")
    server = start_server({"id": context_id}, 9000)
    mark_card_insert({"type": "user@1.0.0"})
"""

import logging as _logging

# ── logging ──────────────────────────────────────────────────────
from .logging import setup_logging, get_logger, JsonTraceFormatter

# ── registry & catalog ───────────────────────────────────────────
from .registry import (
    MetricDescriptor,
    MetricKind,
    MetricsRegistry,
    get_registry,
    set_registry,
)
from .catalog import (
    MeasureMetricNames,
    MetricNames,
    Names,
    describe,
    get_measure_metric_names,
)
from .utils import to_seconds, parse_type

# ── markers ──────────────────────────────────────────────────────
from .markers import (
    actor_from_context,
    mark_action_request,
    mark_back_sync,
    mark_card_insert,
    mark_card_read_from_cache,
    mark_card_read_from_database,
    mark_card_upsert,
    mark_job_add,
    mark_job_done,
    mark_query_time,
    mark_queue_concurrency,
    mark_sql_gen_time,
    mark_stream_closed,
    mark_stream_error,
    mark_stream_link_query,
    mark_stream_opened,
)

# ── measurement ──────────────────────────────────────────────────
from .measure import (
    async_measure_fn,
    measure_async,
    measure_card_patch,
    measure_http_action,
    measure_http_id,
    measure_http_query,
    measure_http_slug,
    measure_http_type,
    measure_http_whoami,
    measure_mirror,
    measure_translate,
)

# ── HTTP ─────────────────────────────────────────────────────────
from .server import MetricsServer, basic_auth_header, create_metrics_app, start_server
from .middleware import MetricsMiddleware, init_app


# ── bootstrap ────────────────────────────────────────────────────

def init_observability(
    service_name: str,
    *,
    log_level: int = _logging.INFO,
    registry: MetricsRegistry | None = None,
) -> None:
    """
    One-call bootstrap for logging and the metric catalog.

    1. ``setup_logging(log_level)``
    2. ``describe(registry)``
    3. ``mark_queue_concurrency()`` so the configured concurrency is exposed
       from the first scrape.

    Args:
        service_name: Logger name for the bootstrap message.
        log_level: Root log level (default ``INFO``).
        registry: Registry to describe; the default registry if omitted.
    """
    setup_logging(log_level)
    logger = get_logger(service_name)

    describe(registry)
    mark_queue_concurrency(registry=registry)

    logger.info("Metrics initialised for %s", service_name)


__all__ = [
    # bootstrap
    "init_observability",
    # logging
    "setup_logging",
    "get_logger",
    "JsonTraceFormatter",
    # registry & catalog
    "MetricDescriptor",
    "MetricKind",
    "MetricsRegistry",
    "get_registry",
    "set_registry",
    "MeasureMetricNames",
    "MetricNames",
    "Names",
    "describe",
    "get_measure_metric_names",
    "to_seconds",
    "parse_type",
    # markers
    "actor_from_context",
    "mark_action_request",
    "mark_back_sync",
    "mark_card_insert",
    "mark_card_read_from_cache",
    "mark_card_read_from_database",
    "mark_card_upsert",
    "mark_job_add",
    "mark_job_done",
    "mark_query_time",
    "mark_queue_concurrency",
    "mark_sql_gen_time",
    "mark_stream_closed",
    "mark_stream_error",
    "mark_stream_link_query",
    "mark_stream_opened",
    # measurement
    "async_measure_fn",
    "measure_async",
    "measure_card_patch",
    "measure_http_action",
    "measure_http_id",
    "measure_http_query",
    "measure_http_slug",
    "measure_http_type",
    "measure_http_whoami",
    "measure_mirror",
    "measure_translate",
    # HTTP
    "MetricsServer",
    "basic_auth_header",
    "create_metrics_app",
    "start_server",
    "MetricsMiddleware",
    "init_app",
]
