"""Shared numeric helpers for the scoring modules.

**No third-party dependencies.**  ``checked_clamp`` is the single place
where an out-of-range score is detected, logged and clamped.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable

from neurocore.defaults import SCORE_DECIMALS, SCORE_MAX, SCORE_MIN
from neurocore.errors import InvariantViolation

__all__ = ["clamp", "checked_clamp", "round1", "mean", "pstdev", "jaccard"]

logger = logging.getLogger(__name__)


def clamp(value: float, low: float = SCORE_MIN, high: float = SCORE_MAX) -> float:
    return max(low, min(high, value))


def checked_clamp(
    name: str,
    value: float,
    low: float = SCORE_MIN,
    high: float = SCORE_MAX,
    *,
    strict: bool = False,
) -> float:
    """Clamp a composite score, reporting values that escaped their range.

    NaN is reported and mapped to *low*.  With ``strict=True`` the
    violation is raised as :class:`InvariantViolation` instead.
    """
    if math.isnan(value) or value < low or value > high:
        if strict:
            raise InvariantViolation(name, value, low, high)
        logger.error("Invariant violation: %s=%r outside [%s, %s], clamping", name, value, low, high)
        if math.isnan(value):
            return low
    return clamp(value, low, high)


def round1(value: float) -> float:
    return round(value, SCORE_DECIMALS)


def mean(values: Iterable[float]) -> float | None:
    """Arithmetic mean, ``None`` for an empty input."""
    items = list(values)
    if not items:
        return None
    return sum(items) / len(items)


def pstdev(values: list[float]) -> float:
    """Population standard deviation; 0.0 for fewer than two values."""
    if len(values) < 2:
        return 0.0
    mu = sum(values) / len(values)
    return math.sqrt(sum((v - mu) ** 2 for v in values) / len(values))


def jaccard(a: Iterable[str], b: Iterable[str]) -> float:
    left, right = set(a), set(b)
    union = left | right
    if not union:
        return 0.0
    return len(left & right) / len(union)
