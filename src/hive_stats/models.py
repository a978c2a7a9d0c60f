"""Pydantic models for raw actions, stored rows and insight views.

`WeeklyStats` and `PricePoint` are the two persisted shapes; the remaining
models are derived views returned by `InsightEngine` and never stored.
"""

from __future__ import annotations

from datetime import date, datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, model_validator

# Field names of the five activity tiers, most active first.
TIER_FIELDS = (
    "ultra_active_users",
    "very_active_users",
    "active_users",
    "occasional_users",
    "low_activity_users",
)


class ActionKind(str, Enum):
    """Kind of content action. Posts have no parent, comments do."""
    POST = "post"
    COMMENT = "comment"


class Coin(str, Enum):
    """Price series tracked for the chain (STEEM before the fork, HIVE after)."""
    STEEM = "steem"
    HIVE = "hive"


class RawAction(BaseModel):
    """A single post or comment as returned by the event source."""
    model_config = ConfigDict(extra="forbid", frozen=True)
    account: str
    timestamp: datetime
    kind: ActionKind


class WeeklyStats(BaseModel):
    """Weekly population statistics for one `(year, week)` bucket.

    Attributes:
        year: Calendar year the bucket belongs to.
        week: 1-based ordinal week of the year (see `aggregate.weekly`).
        week_start: First day of the bucket.
        total_users: Distinct accounts with at least one action that week.
        total_posts: Posts across all accounts.
        total_comments: Comments across all accounts.
        ultra_active_users: Accounts with 50+ actions.
        very_active_users: Accounts with 20-49 actions.
        active_users: Accounts with 10-19 actions.
        occasional_users: Accounts with 3-9 actions.
        low_activity_users: Accounts with 1-2 actions.
    """
    model_config = ConfigDict(extra="forbid")
    year: int = Field(..., ge=1970, le=2100)
    week: int = Field(..., ge=1, le=53)
    week_start: date
    total_users: int = Field(..., ge=0)
    total_posts: int = Field(..., ge=0)
    total_comments: int = Field(..., ge=0)
    ultra_active_users: int = Field(..., ge=0)
    very_active_users: int = Field(..., ge=0)
    active_users: int = Field(..., ge=0)
    occasional_users: int = Field(..., ge=0)
    low_activity_users: int = Field(..., ge=0)

    @model_validator(mode="after")
    def _tiers_partition_users(self) -> "WeeklyStats":
        tiers = sum(getattr(self, f) for f in TIER_FIELDS)
        if tiers != self.total_users:
            raise ValueError(
                f"tier counts sum to {tiers} but total_users is {self.total_users}"
            )
        return self

    @property
    def key(self) -> tuple[int, int]:
        return (self.year, self.week)


class WeeklyStatsWithPrice(WeeklyStats):
    """A weekly row joined with the average price of its 7-day window."""
    avg_price: float | None = None


class PricePoint(BaseModel):
    """Daily close price in USD for one coin."""
    model_config = ConfigDict(extra="forbid")
    date: date
    coin: Coin
    price_usd: float = Field(..., ge=0)


class Summary(BaseModel):
    """Headline numbers across every stored week."""
    model_config = ConfigDict(extra="forbid")
    total_weeks: int
    total_user_weeks: int
    total_posts: int
    total_comments: int
    avg_weekly_users: float
    peak_weekly_users: int
    peak_week_date: date
    last_complete_week_users: int
    last_complete_week_date: date


class YearOverYear(BaseModel):
    """Per-year averages and the change in weekly users versus the prior year."""
    model_config = ConfigDict(extra="forbid")
    year: int
    avg_weekly_users: float
    avg_price: float | None
    total_posts: int
    total_comments: int
    change_percent: float | None


class Correlation(BaseModel):
    """Pearson correlation between weekly average price and weekly users."""
    model_config = ConfigDict(extra="forbid")
    coefficient: float = Field(..., ge=-1.0, le=1.0)
    description: str
    sample_size: int = Field(..., ge=0)


class ActivityDistribution(BaseModel):
    """Share of all account-weeks falling in each tier, in percent."""
    model_config = ConfigDict(extra="forbid")
    ultra_active: float
    very_active: float
    active: float
    occasional: float
    low_activity: float
