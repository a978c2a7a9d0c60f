from __future__ import annotations

import math
import random

import pytest

from hive_stats.insights.stats import (
    describe_correlation,
    mean_or_none,
    pearson,
    percent_change,
    percentages,
)


def test_pearson_perfect_positive() -> None:
    assert pearson([1, 2, 3, 4], [10, 20, 30, 40]) == pytest.approx(1.0, abs=1e-9)


def test_pearson_perfect_inverse() -> None:
    assert pearson([1, 2, 3, 4], [40, 30, 20, 10]) == pytest.approx(-1.0, abs=1e-9)


def test_pearson_constant_vector_is_zero_not_nan() -> None:
    r = pearson([5, 5, 5, 5], [10, 20, 30, 40])
    assert r == 0.0
    assert not math.isnan(r)


def test_pearson_degenerate_inputs() -> None:
    assert pearson([], []) == 0.0
    assert pearson([1.0], [2.0]) == 0.0
    assert pearson([1, 2], [1, 2, 3]) == 0.0


@pytest.mark.parametrize(
    "r, text",
    [
        (0.85, "Strong positive correlation"),
        (-0.71, "Strong inverse correlation"),
        (0.5, "Moderate positive correlation"),
        (-0.45, "Moderate inverse correlation"),
        (0.3, "Weak positive correlation"),
        (-0.25, "Weak inverse correlation"),
        (0.2, "No significant correlation"),
        (0.0, "No significant correlation"),
    ],
)
def test_describe_correlation(r: float, text: str) -> None:
    assert describe_correlation(r) == text


def test_percent_change() -> None:
    assert percent_change(150, 100) == pytest.approx(50.0)
    assert percent_change(50, 100) == pytest.approx(-50.0)
    assert percent_change(10, 0) is None
    assert percent_change(10, None) is None


def test_mean_or_none_skips_missing() -> None:
    assert mean_or_none([1.0, None, 3.0]) == pytest.approx(2.0)
    assert mean_or_none([None, None]) is None
    assert mean_or_none([]) is None


def test_pearson_constant_fractional_prices_are_exactly_zero() -> None:
    for value, n in [(0.3, 3), (0.2345, 5), (0.1, 11)]:
        assert pearson([value] * n, [10 * (i + 1) for i in range(n)]) == 0.0


def test_percentages_sum_to_hundred() -> None:
    pct = percentages([1, 1, 1, 0, 0])
    assert pct == [33.4, 33.3, 33.3, 0.0, 0.0]
    assert sum(pct) == pytest.approx(100.0, abs=0.1)
    assert percentages([0, 0, 0]) == [0.0, 0.0, 0.0]


def test_percentages_hand_leftover_to_largest_remainders() -> None:
    pct = percentages([12, 34, 54, 54, 1])
    assert pct == [7.8, 21.9, 34.8, 34.8, 0.7]
    assert abs(sum(pct) - 100.0) <= 0.1


def test_percentages_always_sum_to_hundred() -> None:
    rng = random.Random(11)
    for _ in range(500):
        counts = [rng.randint(0, 400) for _ in range(5)]
        if not any(counts):
            continue
        assert abs(sum(percentages(counts)) - 100.0) <= 0.1
