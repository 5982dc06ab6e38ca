"""
Environment-sourced settings.

Values are read on every call so that a process (or a test) can change the
environment after import.
"""

import os

DEFAULT_METRICS_PORT = 9000
DEFAULT_QUEUE_CONCURRENCY = 1


def _int_env(name: str, default: int) -> int:
    raw = os.environ.get(name, str(default))
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None


def metrics_port() -> int:
    """Port the metrics server binds to (``METRICS_PORT``)."""
    return _int_env("METRICS_PORT", DEFAULT_METRICS_PORT)


def metrics_token() -> str | None:
    """Password for the ``monitor`` basic-auth user (``MONITOR_SECRET_TOKEN``)."""
    return os.environ.get("MONITOR_SECRET_TOKEN") or None


def queue_concurrency() -> int:
    """Number of jobs worker queues process concurrently (``QUEUE_CONCURRENCY``)."""
    return _int_env("QUEUE_CONCURRENCY", DEFAULT_QUEUE_CONCURRENCY)
