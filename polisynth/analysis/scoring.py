"""Numeric helpers shared by every metric that is surfaced as a percentage."""

from __future__ import annotations

from collections.abc import Iterable


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def clamp_percent(value: float) -> float:
    """Clamp a score to [0, 100]."""
    return clamp(value, 0.0, 100.0)


def mean(values: Iterable[float], default: float = 0.0) -> float:
    """Arithmetic mean, or `default` for an empty input."""
    items = list(values)
    if not items:
        return default
    return sum(items) / len(items)


def population_variance(values: Iterable[float]) -> float:
    """Population (not sample) variance; 0 for an empty input."""
    items = list(values)
    if not items:
        return 0.0
    avg = sum(items) / len(items)
    return sum((v - avg) ** 2 for v in items) / len(items)
