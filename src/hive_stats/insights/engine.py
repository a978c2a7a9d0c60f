"""Insight engine: derived views over the weekly stats and price stores.

Every method re-reads the stores and computes its view from scratch; nothing
is cached or persisted, so results always reflect the latest upserts.

Yearly average price is the mean of the weekly window averages of that year
(a mean of means, not weighted by the number of priced days per week).
"""

from __future__ import annotations

import logging
from itertools import groupby
from operator import attrgetter

from hive_stats.errors import InsufficientData
from hive_stats.insights.stats import (
    describe_correlation,
    mean_or_none,
    pearson,
    percent_change,
    percentages,
)
from hive_stats.models import (
    TIER_FIELDS,
    ActivityDistribution,
    Correlation,
    Summary,
    WeeklyStats,
    WeeklyStatsWithPrice,
    YearOverYear,
)
from hive_stats.store.price_series import PriceSeriesStore
from hive_stats.store.weekly_stats import WeeklyStatsStore

log = logging.getLogger(__name__)


class InsightEngine:
    """Read-only insight queries over injected stores.

    Args:
        weekly: Store holding `WeeklyStats` rows.
        prices: Store holding daily prices.
    """

    def __init__(self, weekly: WeeklyStatsStore, prices: PriceSeriesStore) -> None:
        self.weekly = weekly
        self.prices = prices

    def _all_rows(self) -> list[WeeklyStats]:
        rows = self.weekly.scan()
        if not rows:
            raise InsufficientData("No weekly stats stored. Run the stats ingest first.")
        return rows

    # -------------------------
    # Weekly series
    # -------------------------
    def scan_weekly_stats(self, years: tuple[int, int] | None = None) -> list[WeeklyStats]:
        """Stored weekly rows in `(year, week)` order, optionally for a year range."""
        return self.weekly.scan(years)

    def weekly_with_prices(
        self, years: tuple[int, int] | None = None
    ) -> list[WeeklyStatsWithPrice]:
        """Weekly rows joined with the average price of each week's window."""
        rows = self.weekly.scan(years)
        avgs = self.prices.week_averages(rows)
        return [
            WeeklyStatsWithPrice(**row.model_dump(), avg_price=avg)
            for row, avg in zip(rows, avgs)
        ]

    # -------------------------
    # Summary
    # -------------------------
    def summary(self) -> Summary:
        """Totals, peak week and last complete week across all stored weeks.

        Raises:
            InsufficientData: if fewer than two weeks are stored.
        """
        rows = self._all_rows()
        previous = self.weekly.last(1, offset=1)
        if not previous:
            raise InsufficientData(
                f"Need at least 2 stored weeks for the last complete week, have {len(rows)}"
            )
        last_complete = previous[0]

        # max() keeps the first maximal element, i.e. the earliest week
        peak = max(rows, key=attrgetter("total_users"))
        total_users = sum(r.total_users for r in rows)

        return Summary(
            total_weeks=len(rows),
            total_user_weeks=total_users,
            total_posts=sum(r.total_posts for r in rows),
            total_comments=sum(r.total_comments for r in rows),
            avg_weekly_users=total_users / len(rows),
            peak_weekly_users=peak.total_users,
            peak_week_date=peak.week_start,
            last_complete_week_users=last_complete.total_users,
            last_complete_week_date=last_complete.week_start,
        )

    # -------------------------
    # Year over year
    # -------------------------
    def year_over_year(self) -> list[YearOverYear]:
        """Per-year averages with the change in average weekly users.

        `change_percent` compares each year with the previous year present
        in the series; it is None for the first year and when the previous
        average is zero.

        Raises:
            InsufficientData: if no weeks are stored.
        """
        joined = self.weekly_with_prices()
        if not joined:
            raise InsufficientData("No weekly stats stored. Run the stats ingest first.")

        out: list[YearOverYear] = []
        previous_avg: float | None = None
        for year, group in groupby(joined, key=attrgetter("year")):
            weeks = list(group)
            avg_users = sum(w.total_users for w in weeks) / len(weeks)
            out.append(
                YearOverYear(
                    year=year,
                    avg_weekly_users=avg_users,
                    avg_price=mean_or_none([w.avg_price for w in weeks]),
                    total_posts=sum(w.total_posts for w in weeks),
                    total_comments=sum(w.total_comments for w in weeks),
                    change_percent=percent_change(avg_users, previous_avg),
                )
            )
            previous_avg = avg_users
        return out

    # -------------------------
    # Correlation
    # -------------------------
    def correlation(self) -> Correlation:
        """Pearson correlation of weekly average price against weekly users.

        Weeks without a price in their window are left out of both vectors.

        Raises:
            InsufficientData: if no weeks are stored.
        """
        joined = self.weekly_with_prices()
        if not joined:
            raise InsufficientData("No weekly stats stored. Run the stats ingest first.")

        priced = [w for w in joined if w.avg_price is not None]
        if not priced:
            log.warning("No weekly price averages available; correlation defaults to 0")

        r = pearson(
            [w.avg_price for w in priced if w.avg_price is not None],
            [w.total_users for w in priced],
        )
        return Correlation(
            coefficient=r,
            description=describe_correlation(r),
            sample_size=len(priced),
        )

    # -------------------------
    # Tier distribution
    # -------------------------
    def activity_distribution(self) -> ActivityDistribution:
        """Share of account-weeks per tier over all stored weeks.

        Divides by the sum of all tier counts; all zeros when nothing is stored.
        """
        rows = self.weekly.scan()
        sums = [sum(getattr(r, f) for r in rows) for f in TIER_FIELDS]
        ultra, very, active, occasional, low = percentages(sums, ndigits=1)
        return ActivityDistribution(
            ultra_active=ultra,
            very_active=very,
            active=active,
            occasional=occasional,
            low_activity=low,
        )
