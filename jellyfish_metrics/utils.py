"""
Small pure helpers shared by the catalog, markers and wrappers.
"""

from collections.abc import Mapping


def to_seconds(ms: float) -> float:
    """Convert milliseconds to seconds, rounded to 4 decimal places."""
    return round(ms / 1000, 4)


def exponential_buckets(start: float, factor: float, count: int) -> list[float]:
    """
    Return ``count`` bucket bounds, the first being ``start`` and each
    following one ``factor`` times the previous.

    Raises:
        ValueError: if ``start`` is not positive, ``factor`` is not greater
            than 1, or ``count`` is less than 1.
    """
    if start <= 0:
        raise ValueError(f"exponential_buckets needs a positive start, got {start}")
    if factor <= 1:
        raise ValueError(f"exponential_buckets needs a factor > 1, got {factor}")
    if count < 1:
        raise ValueError(f"exponential_buckets needs count >= 1, got {count}")

    buckets = []
    bound = start
    for _ in range(count):
        buckets.append(bound)
        bound *= factor
    return buckets


def parse_type(contract) -> str:
    """
    Return the type name of a contract (the part of ``type`` before ``@``).

    ``{"type": "user@1.0.0"}`` gives ``"user"``. Anything without a string
    ``type`` field gives ``"unknown"``.
    """
    if not isinstance(contract, Mapping):
        return "unknown"
    contract_type = contract.get("type")
    if not isinstance(contract_type, str):
        return "unknown"
    return contract_type.split("@", 1)[0]
