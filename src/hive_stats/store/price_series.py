"""Daily price store backed by the `price_history` collection.

Prices are keyed by `date` alone: a later ingestion for the same day replaces
the earlier one, whichever coin it was for. Dates are stored as ISO strings,
which sort and range-compare lexically.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from datetime import date, timedelta
from typing import Any, Iterable, Sequence

import pandas as pd
from pymongo import ASCENDING
from pymongo.database import Database
from pymongo.operations import ReplaceOne

from hive_stats.coin_policy import coin_for_year
from hive_stats.db import PRICE_HISTORY, atomic_bulk_write
from hive_stats.models import Coin, PricePoint, WeeklyStats

log = logging.getLogger(__name__)

WEEK = timedelta(days=7)


def week_window(row: WeeklyStats) -> tuple[date, date]:
    """Half-open `[week_start, week_start + 7 days)` price window of a week."""
    return row.week_start, row.week_start + WEEK


class PriceSeriesStore:
    """Upserts and gap-tolerant range averages over daily prices.

    `average_in_range` is the single-window contract and `average_for_week`
    applies it to one weekly row. `week_averages` is the batched form used
    by the insight engine: it reads each coin's series once and applies the
    same half-open window and coin policy, so for every row it returns what
    `average_for_week` would.

    Args:
        db: Mongo database handle.
        transactional: Write batches inside a transaction (replica set only).
    """

    def __init__(self, db: Database[dict[str, Any]], transactional: bool = True) -> None:
        self.collection = db[PRICE_HISTORY]
        self.transactional = transactional
        if not transactional:
            log.warning(
                "Transactions disabled for %s: a failed batch may leave earlier writes applied",
                self.collection.name,
            )

    def upsert(self, points: Iterable[PricePoint]) -> int:
        """Insert or replace prices by `date` as one batch."""
        ops = [
            ReplaceOne({"date": p.date.isoformat()}, p.model_dump(mode="json"), upsert=True)
            for p in points
        ]
        written = atomic_bulk_write(self.collection, ops, self.transactional)
        log.info("Upserted %d price points into %s", written, self.collection.name)
        return written

    def average_in_range(self, start: date, end_exclusive: date, coin: Coin) -> float | None:
        """Mean `price_usd` of `coin` over `[start, end_exclusive)`.

        Returns:
            The mean, or None when no price falls in the range.
        """
        pipeline = [
            {
                "$match": {
                    "coin": coin.value,
                    "date": {"$gte": start.isoformat(), "$lt": end_exclusive.isoformat()},
                }
            },
            {"$group": {"_id": None, "avg_price": {"$avg": "$price_usd"}, "n": {"$sum": 1}}},
        ]
        result = list(self.collection.aggregate(pipeline))
        if not result or not result[0]["n"]:
            return None
        return float(result[0]["avg_price"])

    def average_for_week(self, row: WeeklyStats) -> float | None:
        """Average price over a week's window, priced in the coin of its year."""
        start, end = week_window(row)
        return self.average_in_range(start, end, coin_for_year(row.year))

    def series(
        self,
        coin: Coin,
        start: date | None = None,
        end_exclusive: date | None = None,
    ) -> pd.Series:
        """Daily prices of `coin` indexed by ISO date string, ascending."""
        query: dict[str, Any] = {"coin": coin.value}
        bounds: dict[str, str] = {}
        if start is not None:
            bounds["$gte"] = start.isoformat()
        if end_exclusive is not None:
            bounds["$lt"] = end_exclusive.isoformat()
        if bounds:
            query["date"] = bounds

        docs = list(
            self.collection.find(query, {"_id": False, "date": True, "price_usd": True})
            .sort([("date", ASCENDING)])
        )
        if not docs:
            return pd.Series(dtype="float64", name="price_usd")
        pdf = pd.DataFrame(docs)
        return pdf.set_index("date")["price_usd"].astype(float)

    def week_averages(self, rows: Sequence[WeeklyStats]) -> list[float | None]:
        """`average_for_week` for many rows, reading each coin's series once.

        Same half-open window and coin policy as `average_for_week`; returns
        one entry per row, in order.
        """
        by_coin: dict[Coin, list[int]] = defaultdict(list)
        for i, row in enumerate(rows):
            by_coin[coin_for_year(row.year)].append(i)

        out: list[float | None] = [None] * len(rows)
        for coin, idx in by_coin.items():
            windows = [week_window(rows[i]) for i in idx]
            s = self.series(coin, min(w[0] for w in windows), max(w[1] for w in windows))
            if s.empty:
                continue
            for i, (start, end) in zip(idx, windows):
                window = s[(s.index >= start.isoformat()) & (s.index < end.isoformat())]
                if len(window):
                    out[i] = float(window.mean())
        return out

    def coverage(self, coin: Coin) -> tuple[int, str | None, str | None]:
        """Return `(count, first_date, last_date)` of stored prices for `coin`."""
        pipeline = [
            {"$match": {"coin": coin.value}},
            {
                "$group": {
                    "_id": None,
                    "n": {"$sum": 1},
                    "min_date": {"$min": "$date"},
                    "max_date": {"$max": "$date"},
                }
            },
        ]
        result = list(self.collection.aggregate(pipeline))
        if not result:
            return 0, None, None
        return int(result[0]["n"]), result[0]["min_date"], result[0]["max_date"]
