from __future__ import annotations

from typing import Any, Callable

import mongomock
import pytest

from hive_stats.aggregate.weekly import week_start_for
from hive_stats.db import ensure_indexes
from hive_stats.models import WeeklyStats
from hive_stats.store.price_series import PriceSeriesStore
from hive_stats.store.weekly_stats import WeeklyStatsStore


@pytest.fixture()
def db() -> Any:
    database = mongomock.MongoClient()["hive_stats_test"]
    ensure_indexes(database)
    return database


@pytest.fixture()
def weekly_store(db: Any) -> WeeklyStatsStore:
    return WeeklyStatsStore(db, transactional=False)


@pytest.fixture()
def price_store(db: Any) -> PriceSeriesStore:
    return PriceSeriesStore(db, transactional=False)


@pytest.fixture()
def make_week() -> Callable[..., WeeklyStats]:
    """Build a valid WeeklyStats row; users default to the low tier."""

    def _make(
        year: int,
        week: int,
        users: int,
        posts: int = 0,
        comments: int = 0,
        **tiers: int,
    ) -> WeeklyStats:
        counts = {
            "ultra_active_users": 0,
            "very_active_users": 0,
            "active_users": 0,
            "occasional_users": 0,
        }
        counts.update(tiers)
        counts["low_activity_users"] = users - sum(counts.values())
        return WeeklyStats(
            year=year,
            week=week,
            week_start=week_start_for(year, week),
            total_users=users,
            total_posts=posts,
            total_comments=comments,
            **counts,
        )

    return _make
