from __future__ import annotations

from datetime import date, timedelta
from typing import Callable

import pytest

from hive_stats.errors import InsufficientData
from hive_stats.insights.engine import InsightEngine
from hive_stats.models import Coin, PricePoint, WeeklyStats
from hive_stats.store.price_series import PriceSeriesStore
from hive_stats.store.weekly_stats import WeeklyStatsStore


@pytest.fixture()
def engine(weekly_store: WeeklyStatsStore, price_store: PriceSeriesStore) -> InsightEngine:
    return InsightEngine(weekly_store, price_store)


def _price_week(store: PriceSeriesStore, row: WeeklyStats, coin: Coin, price: float) -> None:
    store.upsert(
        [PricePoint(date=row.week_start + timedelta(days=i), coin=coin, price_usd=price) for i in range(7)]
    )


# -------------------------
# Summary
# -------------------------
def test_summary_totals_peak_and_last_complete_week(
    engine: InsightEngine, weekly_store: WeeklyStatsStore, make_week: Callable[..., WeeklyStats]
) -> None:
    weekly_store.upsert(
        [
            make_week(2024, 1, 100, posts=10, comments=20),
            make_week(2024, 2, 150, posts=5, comments=5),
            make_week(2024, 3, 120, posts=1, comments=2),
        ]
    )

    s = engine.summary()

    assert s.total_weeks == 3
    assert s.total_user_weeks == 370
    assert s.total_posts == 16
    assert s.total_comments == 27
    assert s.avg_weekly_users == pytest.approx(370 / 3)
    assert s.peak_weekly_users == 150
    assert s.peak_week_date == date(2024, 1, 8)
    assert s.last_complete_week_users == 150
    assert s.last_complete_week_date == date(2024, 1, 8)


def test_summary_peak_tie_goes_to_earliest_week(
    engine: InsightEngine, weekly_store: WeeklyStatsStore, make_week: Callable[..., WeeklyStats]
) -> None:
    weekly_store.upsert([make_week(2021, 5, 80), make_week(2020, 9, 80), make_week(2021, 6, 10)])

    s = engine.summary()

    assert s.peak_weekly_users == 80
    assert s.peak_week_date == make_week(2020, 9, 80).week_start


def test_summary_needs_two_weeks(
    engine: InsightEngine, weekly_store: WeeklyStatsStore, make_week: Callable[..., WeeklyStats]
) -> None:
    with pytest.raises(InsufficientData):
        engine.summary()
    weekly_store.upsert([make_week(2024, 1, 100)])
    with pytest.raises(InsufficientData):
        engine.summary()


# -------------------------
# Year over year
# -------------------------
def test_year_over_year_change_and_mean_of_weekly_prices(
    engine: InsightEngine,
    weekly_store: WeeklyStatsStore,
    price_store: PriceSeriesStore,
    make_week: Callable[..., WeeklyStats],
) -> None:
    w2019a = make_week(2019, 1, 100, posts=1, comments=1)
    w2019b = make_week(2019, 2, 300, posts=2, comments=3)
    w2020 = make_week(2020, 1, 300, posts=4, comments=5)
    weekly_store.upsert([w2019a, w2019b, w2020])
    _price_week(price_store, w2019a, Coin.STEEM, 1.0)
    _price_week(price_store, w2019b, Coin.STEEM, 3.0)
    # only the first four days of the 2020 week are priced
    price_store.upsert(
        [PricePoint(date=w2020.week_start + timedelta(days=i), coin=Coin.HIVE, price_usd=p)
         for i, p in enumerate([0.1, 0.2, 0.3, 0.4])]
    )

    yoy = engine.year_over_year()

    assert [y.year for y in yoy] == [2019, 2020]
    first, second = yoy
    assert first.avg_weekly_users == pytest.approx(200.0)
    assert first.avg_price == pytest.approx(2.0)
    assert first.total_posts == 3 and first.total_comments == 4
    assert first.change_percent is None
    assert second.avg_price == pytest.approx(0.25)
    assert second.change_percent == pytest.approx(50.0)


def test_year_over_year_absent_change_after_zero_year(
    engine: InsightEngine, weekly_store: WeeklyStatsStore, make_week: Callable[..., WeeklyStats]
) -> None:
    weekly_store.upsert([make_week(2017, 1, 0), make_week(2018, 1, 40)])

    yoy = engine.year_over_year()

    assert yoy[0].change_percent is None
    assert yoy[1].change_percent is None
    assert yoy[1].avg_price is None


def test_year_over_year_requires_data(engine: InsightEngine) -> None:
    with pytest.raises(InsufficientData):
        engine.year_over_year()


# -------------------------
# Correlation
# -------------------------
def test_correlation_uses_only_priced_weeks(
    engine: InsightEngine,
    weekly_store: WeeklyStatsStore,
    price_store: PriceSeriesStore,
    make_week: Callable[..., WeeklyStats],
) -> None:
    weeks = [make_week(2022, w, 10 * w) for w in range(1, 6)]
    weekly_store.upsert(weeks)
    for w in weeks[:4]:
        _price_week(price_store, w, Coin.HIVE, float(w.week))
    # week 5 has no price; a zero there would break the perfect correlation

    corr = engine.correlation()

    assert corr.coefficient == pytest.approx(1.0, abs=1e-9)
    assert corr.sample_size == 4
    assert corr.description == "Strong positive correlation"


def test_correlation_constant_price_is_zero(
    engine: InsightEngine,
    weekly_store: WeeklyStatsStore,
    price_store: PriceSeriesStore,
    make_week: Callable[..., WeeklyStats],
) -> None:
    weeks = [make_week(2023, w, 10 * w) for w in range(1, 5)]
    weekly_store.upsert(weeks)
    for w in weeks:
        _price_week(price_store, w, Coin.HIVE, 5.0)

    corr = engine.correlation()

    assert corr.coefficient == 0.0
    assert corr.description == "No significant correlation"


def test_correlation_without_prices_is_zero(
    engine: InsightEngine, weekly_store: WeeklyStatsStore, make_week: Callable[..., WeeklyStats]
) -> None:
    weekly_store.upsert([make_week(2023, 1, 5), make_week(2023, 2, 6)])
    corr = engine.correlation()
    assert corr.coefficient == 0.0
    assert corr.sample_size == 0


def test_correlation_requires_data(engine: InsightEngine) -> None:
    with pytest.raises(InsufficientData):
        engine.correlation()


# -------------------------
# Distribution / series
# -------------------------
def test_activity_distribution_sums_to_hundred(
    engine: InsightEngine, weekly_store: WeeklyStatsStore, make_week: Callable[..., WeeklyStats]
) -> None:
    weekly_store.upsert(
        [
            make_week(2024, 1, 10, ultra_active_users=1, very_active_users=2, active_users=3, occasional_users=1),
            make_week(2024, 2, 5, occasional_users=2),
        ]
    )

    d = engine.activity_distribution()
    values = [d.ultra_active, d.very_active, d.active, d.occasional, d.low_activity]

    assert d.ultra_active == pytest.approx(6.7)
    assert d.occasional == pytest.approx(20.0)
    assert d.low_activity == pytest.approx(40.0)
    assert sum(values) == pytest.approx(100.0, abs=0.1)


def test_activity_distribution_empty_is_zero(engine: InsightEngine) -> None:
    d = engine.activity_distribution()
    assert [d.ultra_active, d.very_active, d.active, d.occasional, d.low_activity] == [0.0] * 5


def test_weekly_with_prices_joins_in_scan_order(
    engine: InsightEngine,
    weekly_store: WeeklyStatsStore,
    price_store: PriceSeriesStore,
    make_week: Callable[..., WeeklyStats],
) -> None:
    a, b = make_week(2019, 52, 3), make_week(2020, 1, 4)
    weekly_store.upsert([b, a])
    _price_week(price_store, b, Coin.HIVE, 0.3)

    joined = engine.weekly_with_prices()

    assert [(w.year, w.week) for w in joined] == [(2019, 52), (2020, 1)]
    assert joined[0].avg_price is None
    assert joined[1].avg_price == pytest.approx(0.3)
    assert engine.scan_weekly_stats((2020, 2020)) == [b]
