"""Persistence layer for weekly stats and daily prices.

Both stores take an injected Mongo `Database` handle and expose keyed
replace-upserts plus ordered reads; neither holds state between calls.
"""

from hive_stats.store.price_series import PriceSeriesStore
from hive_stats.store.weekly_stats import WeeklyStatsStore

__all__ = ["PriceSeriesStore", "WeeklyStatsStore"]
