"""
Duration measurement around asynchronous operations.

``measure_async`` times one call and records a histogram observation.
``async_measure_fn`` builds the usual total / duration / failure wrapper on
top of it; every measured operation kind (mirror, translate, each HTTP route,
card patch) is an instance of that pattern.

Usage::

    from jellyfish_metrics import measure_mirror

    result = await measure_mirror("github", lambda: mirror(card))
"""

import inspect
import time
from collections.abc import Awaitable, Callable, Mapping
from typing import Any, TypeVar, Union

from .catalog import MeasureMetricNames, Names
from .registry import MetricsRegistry, resolve_registry
from .utils import parse_type, to_seconds

TResult = TypeVar("TResult")

LabelSet = Mapping[str, str]
# Either fixed labels, or labels computed from the operation's result
Labels = Union[LabelSet, Callable[[Any], LabelSet]]


def resolve_labels(labels: Labels | None, result: Any) -> LabelSet:
    if labels is None:
        return {}
    if callable(labels):
        return labels(result)
    return labels


async def _call(fn: Callable[[], Awaitable[TResult] | TResult]) -> TResult:
    result = fn()
    if inspect.isawaitable(result):
        result = await result
    return result


async def measure_async(
    name: str,
    labels: Labels | None,
    fn: Callable[[], Awaitable[TResult]],
    *,
    registry: MetricsRegistry | None = None,
) -> TResult:
    """
    Run ``fn`` and record how long it took in the ``name`` histogram.

    Args:
        name: Histogram metric name.
        labels: Label set, or a callable receiving the result of ``fn`` and
            returning the label set.
        fn: Zero-argument callable returning an awaitable (a plain return
            value is accepted too).
        registry: Registry to record into; the default registry if omitted.

    Returns:
        Whatever ``fn`` produced, unchanged.  If ``fn`` raises, nothing is
        recorded and the exception propagates.
    """
    registry = resolve_registry(registry)
    start = time.monotonic()
    result = await _call(fn)
    duration = to_seconds((time.monotonic() - start) * 1000)
    registry.histogram(name, duration, resolve_labels(labels, result))
    return result


def async_measure_fn(
    metric: MeasureMetricNames,
    labels: Labels | None = None,
    *,
    registry: MetricsRegistry | None = None,
) -> Callable[[Callable[[], Awaitable[TResult]]], Awaitable[TResult]]:
    """
    Build a wrapper that counts calls and failures and times successes.

    The returned coroutine function increments ``metric.total`` before
    running the operation, records ``metric.duration_seconds`` on success,
    and on failure increments ``metric.failure_total`` and re-raises.
    ``total`` and ``failure_total`` carry no labels; ``labels`` apply to
    the duration histogram only.
    """

    async def measure(fn: Callable[[], Awaitable[TResult]]) -> TResult:
        target = resolve_registry(registry)
        target.inc(metric.total)
        try:
            return await measure_async(metric.duration_seconds, labels, fn, registry=target)
        except Exception:
            target.inc(metric.failure_total)
            raise

    return measure


async def _measure_integration(metric, integration, fn, registry):
    registry = resolve_registry(registry)
    labels = {"type": integration}
    registry.inc(metric.total, 1, labels)
    try:
        return await measure_async(metric.duration_seconds, labels, fn, registry=registry)
    except Exception:
        registry.inc(metric.failure_total, 1, labels)
        raise


async def measure_mirror(
    integration: str,
    fn: Callable[[], Awaitable[TResult]],
    *,
    registry: MetricsRegistry | None = None,
) -> TResult:
    """Run a mirror call for ``integration``, counting it and timing it."""
    return await _measure_integration(Names.mirror, integration, fn, registry)


async def measure_translate(
    integration: str,
    fn: Callable[[], Awaitable[TResult]],
    *,
    registry: MetricsRegistry | None = None,
) -> TResult:
    """Run a translate call for ``integration``, counting it and timing it."""
    return await _measure_integration(Names.translate, integration, fn, registry)


# HTTP API routes
measure_http_query = async_measure_fn(Names.http.query)
measure_http_type = async_measure_fn(Names.http.type)
measure_http_id = async_measure_fn(Names.http.id)
measure_http_slug = async_measure_fn(Names.http.slug)
measure_http_action = async_measure_fn(Names.http.action)
measure_http_whoami = async_measure_fn(Names.http.whoami)


def _card_patch_labels(card) -> LabelSet:
    return {"type": parse_type(card)}


async def measure_card_patch(fn: Callable[[], Awaitable[Any]], *, registry: MetricsRegistry | None = None) -> Any:
    """Run a card patch; the duration is labelled with the patched card's type."""
    return await async_measure_fn(Names.card.patch, _card_patch_labels, registry=registry)(fn)
