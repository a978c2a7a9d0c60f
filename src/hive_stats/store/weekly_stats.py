"""Keyed store for `WeeklyStats` rows backed by the `weekly_stats` collection.

Rows are keyed by `(year, week)` and written with replace-upserts, so
reprocessing a year overwrites its rows in place. Each `upsert` call is one
atomic batch (see `db.atomic_bulk_write`).
"""

from __future__ import annotations

import logging
from typing import Any, Iterable

from pymongo import ASCENDING, DESCENDING
from pymongo.database import Database
from pymongo.operations import ReplaceOne

from hive_stats.db import WEEKLY_STATS, atomic_bulk_write
from hive_stats.models import WeeklyStats

log = logging.getLogger(__name__)

_PROJECTION = {"_id": False}
_ASCENDING_KEY = [("year", ASCENDING), ("week", ASCENDING)]
_DESCENDING_KEY = [("year", DESCENDING), ("week", DESCENDING)]


def _to_doc(row: WeeklyStats) -> dict[str, Any]:
    """Serialize a row for Mongo; `week_start` becomes an ISO date string."""
    return row.model_dump(mode="json")


class WeeklyStatsStore:
    """Upsert and ordered reads over stored weekly stats.

    Args:
        db: Mongo database handle.
        transactional: Write batches inside a transaction (replica set only).
    """

    def __init__(self, db: Database[dict[str, Any]], transactional: bool = True) -> None:
        self.collection = db[WEEKLY_STATS]
        self.transactional = transactional
        if not transactional:
            log.warning(
                "Transactions disabled for %s: a failed batch may leave earlier writes applied",
                self.collection.name,
            )

    def upsert(self, rows: Iterable[WeeklyStats]) -> int:
        """Insert or replace rows by `(year, week)` as one batch.

        Returns:
            Number of rows written.
        """
        ops = [
            ReplaceOne({"year": r.year, "week": r.week}, _to_doc(r), upsert=True)
            for r in rows
        ]
        written = atomic_bulk_write(self.collection, ops, self.transactional)
        log.info("Upserted %d weekly rows into %s", written, self.collection.name)
        return written

    def scan(self, years: tuple[int, int] | None = None) -> list[WeeklyStats]:
        """Return stored rows ordered by `(year, week)` ascending.

        Args:
            years: Optional inclusive `(first_year, last_year)` filter.
        """
        query: dict[str, Any] = {}
        if years is not None:
            first, last = years
            query["year"] = {"$gte": first, "$lte": last}
        cursor = self.collection.find(query, _PROJECTION).sort(_ASCENDING_KEY)
        return [WeeklyStats.model_validate(doc) for doc in cursor]

    def last(self, n: int = 1, offset: int = 0) -> list[WeeklyStats]:
        """Return the `n` newest rows after skipping the `offset` newest, newest first.

        `last(1, offset=1)` is the last complete week: the newest stored week
        is treated as partially observed.
        """
        if n <= 0:
            return []
        cursor = (
            self.collection.find({}, _PROJECTION)
            .sort(_DESCENDING_KEY)
            .skip(max(0, offset))
            .limit(n)
        )
        return [WeeklyStats.model_validate(doc) for doc in cursor]

    def count(self, year: int | None = None) -> int:
        """Number of stored weeks, optionally for a single year."""
        query = {} if year is None else {"year": year}
        return self.collection.count_documents(query)

    def years(self) -> list[int]:
        """Distinct stored years, ascending."""
        return sorted(int(y) for y in self.collection.distinct("year"))
