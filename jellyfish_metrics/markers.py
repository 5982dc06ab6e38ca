"""
One marking function per application event.

Each function derives its labels from its arguments and makes a single call
into the registry.  Malformed input never raises: missing or invalid type
information is recorded as ``"unknown"``.
"""

import logging
from collections.abc import Mapping
from datetime import datetime, timezone

from . import config
from .catalog import Names
from .registry import MetricsRegistry, resolve_registry
from .utils import parse_type, to_seconds

logger = logging.getLogger(__name__)

# Context IDs end in a UUID, which is 5 dash-separated groups, preceded by a version
_CONTEXT_ID_SUFFIX_SEGMENTS = 6


def actor_from_context(context) -> str:
    """
    Extract the actor name from a caller context.

    The context ID looks like ``WORKER-1.0.0-<uuid>``; the actor is what is
    left once the version and UUID are dropped, lowercased (``"worker"``).
    """
    if isinstance(context, Mapping):
        context_id = context.get("id")
    else:
        context_id = getattr(context, "id", None)
    if not isinstance(context_id, str):
        return "unknown"
    return "-".join(context_id.split("-")[:-_CONTEXT_ID_SUFFIX_SEGMENTS]).lower()


def _parse_timestamp(timestamp) -> datetime:
    if isinstance(timestamp, datetime):
        parsed = timestamp
    else:
        # fromisoformat() only accepts a "Z" suffix from Python 3.11
        parsed = datetime.fromisoformat(timestamp.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


# ── Cards ────────────────────────────────────────────────────────

def mark_card_insert(card, *, registry: MetricsRegistry | None = None) -> None:
    resolve_registry(registry).inc(Names.card.insert.total, 1, {"type": parse_type(card)})


def mark_card_upsert(card, *, registry: MetricsRegistry | None = None) -> None:
    resolve_registry(registry).inc(Names.card.upsert.total, 1, {"type": parse_type(card)})


def mark_card_read_from_database(card, *, registry: MetricsRegistry | None = None) -> None:
    resolve_registry(registry).inc(
        Names.card.read.total, 1, {"type": parse_type(card), "source": "database"}
    )


def mark_card_read_from_cache(card, *, registry: MetricsRegistry | None = None) -> None:
    resolve_registry(registry).inc(
        Names.card.read.total, 1, {"type": parse_type(card), "source": "cache"}
    )


def mark_back_sync(integration: str, *, registry: MetricsRegistry | None = None) -> None:
    """Mark that a card was created by a back-sync from ``integration``."""
    resolve_registry(registry).inc(Names.back_sync.total, 1, {"type": integration})


# ── Worker ───────────────────────────────────────────────────────

def mark_action_request(action: str, *, registry: MetricsRegistry | None = None) -> None:
    resolve_registry(registry).inc(Names.worker.total, 1, {"type": action})


def mark_queue_concurrency(*, registry: MetricsRegistry | None = None) -> None:
    """Expose the configured queue concurrency."""
    resolve_registry(registry).gauge(Names.worker.concurrency, config.queue_concurrency())


def mark_job_add(action: str, worker_id: str, *, registry: MetricsRegistry | None = None) -> None:
    """Mark that a job was added to the queue of worker ``worker_id``."""
    resolve_registry(registry).inc(Names.worker.saturation, 1, {"type": action, "worker": worker_id})


def mark_job_done(
    action: str,
    worker_id: str,
    started_at: str | datetime,
    *,
    registry: MetricsRegistry | None = None,
) -> None:
    """
    Mark that a job has completed.

    Records the time elapsed since ``started_at`` (an ISO-8601 timestamp or
    a ``datetime``; naive values are read as UTC) and releases the slot
    taken by ``mark_job_add``.  An unparseable ``started_at`` is logged and
    only the slot is released.
    """
    registry = resolve_registry(registry)
    labels = {"type": action, "worker": worker_id}
    try:
        elapsed = datetime.now(timezone.utc) - _parse_timestamp(started_at)
    except (AttributeError, TypeError, ValueError):
        logger.warning("Invalid start time %r for job %s, duration not recorded", started_at, action)
    else:
        registry.histogram(Names.worker.job_duration, to_seconds(elapsed.total_seconds() * 1000), labels)
    registry.dec(Names.worker.saturation, 1, labels)


# ── SQL ──────────────────────────────────────────────────────────

def mark_sql_gen_time(ms: float, *, registry: MetricsRegistry | None = None) -> None:
    """Record how long generating SQL from a JSON schema took."""
    resolve_registry(registry).histogram(Names.sql.gen.duration_seconds, to_seconds(ms))


def mark_query_time(ms: float, *, registry: MetricsRegistry | None = None) -> None:
    """Record how long running an SQL query took."""
    resolve_registry(registry).histogram(Names.sql.query.duration_seconds, to_seconds(ms))


# ── Streams ──────────────────────────────────────────────────────

def mark_stream_opened(context, table: str, *, registry: MetricsRegistry | None = None) -> None:
    resolve_registry(registry).inc(
        Names.streams.saturation, 1, {"actor": actor_from_context(context), "table": table}
    )


def mark_stream_closed(context, table: str, *, registry: MetricsRegistry | None = None) -> None:
    resolve_registry(registry).dec(
        Names.streams.saturation, 1, {"actor": actor_from_context(context), "table": table}
    )


def mark_stream_link_query(context, table: str, change, *, registry: MetricsRegistry | None = None) -> None:
    """Mark that a stream queried links for ``change``."""
    change_type = "unknown"
    card_type = "unknown"
    if isinstance(change, Mapping):
        if isinstance(change.get("type"), str):
            change_type = change["type"].lower()
        if "after" in change:
            card_type = parse_type(change["after"])

    resolve_registry(registry).inc(
        Names.streams.total,
        1,
        {
            "table": table,
            "actor": actor_from_context(context),
            "type": change_type,
            "card": card_type,
        },
    )


def mark_stream_error(context, table: str, *, registry: MetricsRegistry | None = None) -> None:
    resolve_registry(registry).inc(
        Names.streams.error_total, 1, {"actor": actor_from_context(context), "table": table}
    )
