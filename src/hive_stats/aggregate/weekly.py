"""Weekly activity aggregation.

Functions in this module turn one calendar year of raw actions into
`WeeklyStats` rows. The heavy step (per-account weekly totals over millions
of actions) runs on a Dask DataFrame; the per-week result is small and is
materialized to pandas before being converted to models.

Week convention:
- `week = (day_of_year - 1) // 7 + 1`, so weeks run 1..53 and week 53 holds
  the last one or two days of the year.
- `week_start = Jan 1 + (week - 1) * 7 days`.
Both the grouping and `week_start` use this rule, so a bucket holds exactly
the actions in `[week_start, week_start + 7 days)` within the year.

Expectations:
- Input: raw actions for `[year-01-01, year+1-01-01)`.
- Timestamps are read as UTC (naive values are assumed to already be UTC).
  Rows whose UTC date falls outside the year are dropped with a warning, so
  a bucket never holds an action outside `[week_start, week_start + 7)`.
"""
from __future__ import annotations

import logging
from datetime import date, timedelta
from typing import Any, Iterable, cast

import dask
import dask.dataframe as dd
import pandas as pd

from hive_stats.models import ActionKind, RawAction, WeeklyStats

log = logging.getLogger(__name__)

ACTION_COLUMNS = ["account", "timestamp", "kind"]

# (field, lower bound inclusive, upper bound exclusive or None)
TIER_BOUNDS: tuple[tuple[str, int, int | None], ...] = (
    ("ultra_active_users", 50, None),
    ("very_active_users", 20, 50),
    ("active_users", 10, 20),
    ("occasional_users", 3, 10),
    ("low_activity_users", 1, 3),
)

_INDICATOR_META = pd.DataFrame(
    {
        "week": pd.Series(dtype="int64"),
        "account": pd.Series(dtype="object"),
        "posts": pd.Series(dtype="int64"),
        "comments": pd.Series(dtype="int64"),
    }
)


# =========================================================
# WEEK / TIER RULES
# =========================================================

def week_of_year(day: date) -> int:
    """Return the 1-based ordinal week of the year containing `day`."""
    return (day.timetuple().tm_yday - 1) // 7 + 1


def week_start_for(year: int, week: int) -> date:
    """Return the first day of ordinal `week` in `year`."""
    return date(year, 1, 1) + timedelta(days=7 * (week - 1))


def classify_activity(total_activity: int) -> str | None:
    """Return the tier field for an account-week's action count.

    Returns:
        One of the `TIER_BOUNDS` field names, or None for zero actions.
    """
    for field, lower, upper in TIER_BOUNDS:
        if total_activity >= lower and (upper is None or total_activity < upper):
            return field
    return None


# =========================================================
# INPUT NORMALIZATION
# =========================================================

def actions_to_ddf(actions: Any) -> Any:
    """Return raw actions as a Dask DataFrame with `ACTION_COLUMNS`.

    Args:
        actions: A Dask DataFrame, a pandas DataFrame, or an iterable of
            `RawAction`.
    """
    dd_mod = cast(Any, dd)
    if isinstance(actions, dd.DataFrame):
        return actions

    if isinstance(actions, pd.DataFrame):
        pdf = actions
    else:
        records = [
            {"account": a.account, "timestamp": a.timestamp, "kind": a.kind.value}
            for a in cast(Iterable[RawAction], actions)
        ]
        pdf = pd.DataFrame(records, columns=ACTION_COLUMNS)

    return dd_mod.from_pandas(pdf, npartitions=max(1, len(pdf) // 200_000))


def _prepare_partition(pdf: pd.DataFrame, year: int) -> pd.DataFrame:
    """Map raw action rows to `(week, account, posts, comments)` indicator rows.

    Weeks count from Jan 1 of `year` in UTC; rows whose UTC date falls outside
    the year get week 0.
    """
    ts = pd.to_datetime(pdf["timestamp"], utc=True)
    day = (ts - pd.Timestamp(year=year, month=1, day=1, tz="UTC")).dt.days
    in_year = (day >= 0) & (day < (date(year + 1, 1, 1) - date(year, 1, 1)).days)
    kind = pdf["kind"].map(lambda k: getattr(k, "value", k)).astype(str).str.lower()
    return pd.DataFrame(
        {
            "week": (day // 7 + 1).where(in_year, 0).astype("int64"),
            "account": pdf["account"].astype(str),
            "posts": (kind == ActionKind.POST.value).astype("int64"),
            "comments": (kind == ActionKind.COMMENT.value).astype("int64"),
        },
        index=pdf.index,
    )


def _assign_tiers(pdf: pd.DataFrame) -> pd.DataFrame:
    """Add `total_activity` and one 0/1 indicator column per tier."""
    pdf = pdf.copy()
    total = pdf["posts"] + pdf["comments"]
    pdf["total_activity"] = total
    for field, lower, upper in TIER_BOUNDS:
        in_tier = total >= lower
        if upper is not None:
            in_tier &= total < upper
        pdf[field] = in_tier.astype("int64")
    return pdf


# =========================================================
# AGGREGATION
# =========================================================

def account_week_totals(indicators: Any) -> Any:
    """Return per-account weekly totals with tier indicators.

    Args:
        indicators: Dask DataFrame produced by `_prepare_partition`; rows
            with week 0 (outside the year) are ignored.

    Returns:
        Dask DataFrame with columns `week`, `account`, `posts`, `comments`,
        `total_activity` and one indicator column per tier. Account-weeks
        without a post or comment are dropped.
    """
    x = indicators[indicators["week"] >= 1]
    per_account = (
        x.groupby(["week", "account"])[["posts", "comments"]]
        .sum()
        .reset_index()
    )
    per_account = per_account.map_partitions(_assign_tiers)
    return per_account[per_account["total_activity"] >= 1]


def aggregate_year(actions: Any, year: int) -> list[WeeklyStats]:
    """Aggregate one year of raw actions into weekly stats.

    Args:
        actions: Raw actions for `year` (see `actions_to_ddf`).
        year: Calendar year the actions belong to.

    Returns:
        One `WeeklyStats` per week with activity, ordered by week. Empty when
        the year has no actions.
    """
    ddf = actions_to_ddf(actions)
    indicators = ddf.map_partitions(_prepare_partition, year, meta=_INDICATOR_META)
    total, outside = dask.compute(ddf.shape[0], (indicators["week"] == 0).sum())
    if int(total) == 0:
        log.info("No actions for %d", year)
        return []
    if int(outside):
        log.warning("%d: dropped %d actions dated outside the year (UTC)", year, int(outside))

    per_account = account_week_totals(indicators)
    agg_spec = {"account": "count", "posts": "sum", "comments": "sum"}
    agg_spec.update({field: "sum" for field, _, _ in TIER_BOUNDS})

    pdf = per_account.groupby("week").agg(agg_spec).compute()
    if pdf.empty:
        log.info("No posts or comments for %d", year)
        return []

    pdf = pdf.reset_index().sort_values("week")

    rows: list[WeeklyStats] = []
    for rec in pdf.to_dict("records"):
        week = int(rec["week"])
        rows.append(
            WeeklyStats(
                year=year,
                week=week,
                week_start=week_start_for(year, week),
                total_users=int(rec["account"]),
                total_posts=int(rec["posts"]),
                total_comments=int(rec["comments"]),
                **{field: int(rec[field]) for field, _, _ in TIER_BOUNDS},
            )
        )

    log.info("Aggregated %d weeks for %d", len(rows), year)
    return rows


def summarize_year(rows: list[WeeklyStats]) -> dict[str, int]:
    """Return year totals used for the post-ingest log line.

    Returns:
        Dict with `weeks`, `user_weeks`, `posts`, `comments` and `actions`.
    """
    posts = sum(r.total_posts for r in rows)
    comments = sum(r.total_comments for r in rows)
    return {
        "weeks": len(rows),
        "user_weeks": sum(r.total_users for r in rows),
        "posts": posts,
        "comments": comments,
        "actions": posts + comments,
    }
