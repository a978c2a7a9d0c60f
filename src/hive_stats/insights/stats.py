"""Numeric helpers for the insight views.

Degenerate inputs (empty vectors, zero variance, zero denominators) map to a
fixed fallback value instead of NaN, inf or an exception.
"""

from __future__ import annotations

import math
from typing import Sequence

import numpy as np

# (lower bound on |r|, strength word), strongest first
CORRELATION_STRENGTHS = (
    (0.7, "Strong"),
    (0.4, "Moderate"),
    (0.2, "Weak"),
)


def pearson(x: Sequence[float], y: Sequence[float]) -> float:
    """Pearson correlation coefficient of two paired vectors.

    Uses `r = (nΣxy − ΣxΣy) / sqrt((nΣx² − (Σx)²)(nΣy² − (Σy)²))`.

    Returns:
        r clipped to [-1, 1]; 0.0 for empty or mismatched input and when
        either vector has zero variance.
    """
    n = len(x)
    if n == 0 or n != len(y):
        return 0.0

    xs = np.asarray(x, dtype=float)
    ys = np.asarray(y, dtype=float)
    # the sums below leave rounding noise for constant non-integer vectors
    if np.ptp(xs) == 0 or np.ptp(ys) == 0:
        return 0.0

    sum_x = xs.sum()
    sum_y = ys.sum()

    numerator = n * (xs * ys).sum() - sum_x * sum_y
    var_term = (n * (xs * xs).sum() - sum_x * sum_x) * (n * (ys * ys).sum() - sum_y * sum_y)
    # rounding can push a zero-variance product slightly negative
    if var_term <= 0:
        return 0.0

    r = float(numerator / math.sqrt(var_term))
    if math.isnan(r):
        return 0.0
    return max(-1.0, min(1.0, r))


def describe_correlation(r: float) -> str:
    """Return a qualitative description of a correlation coefficient."""
    magnitude = abs(r)
    for bound, strength in CORRELATION_STRENGTHS:
        if magnitude > bound:
            direction = "positive" if r > 0 else "inverse"
            return f"{strength} {direction} correlation"
    return "No significant correlation"


def percent_change(current: float, previous: float | None) -> float | None:
    """Return `(current - previous) / previous * 100`, or None without a usable base."""
    if previous is None or previous == 0:
        return None
    return (current - previous) / previous * 100.0


def mean_or_none(values: Sequence[float | None]) -> float | None:
    """Arithmetic mean of the non-None values, or None if there are none."""
    present = [v for v in values if v is not None]
    if not present:
        return None
    return float(np.mean(present))


def percentages(counts: Sequence[int], ndigits: int = 1) -> list[float]:
    """Each count as a percentage of their total, rounded to `ndigits`.

    Uses largest-remainder rounding: every share is floored to the rounding
    step and the leftover steps go to the largest remainders (earliest entry
    first on ties), so a non-empty result always sums to 100 at that
    precision. Returns all zeros when the total is 0.
    """
    total = sum(counts)
    if total == 0:
        return [0.0 for _ in counts]

    steps = 100 * 10**ndigits
    floors: list[int] = []
    remainders: list[int] = []
    for c in counts:
        q, r = divmod(c * steps, total)
        floors.append(q)
        remainders.append(r)

    leftover = steps - sum(floors)
    by_remainder = sorted(range(len(counts)), key=lambda i: (-remainders[i], i))
    for i in by_remainder[:leftover]:
        floors[i] += 1
    return [q / 10**ndigits for q in floors]
