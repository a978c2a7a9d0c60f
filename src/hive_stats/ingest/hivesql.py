"""Raw post/comment actions from HiveSQL (SQL Server) via SQLAlchemy.

HiveSQL keeps posts and comments in the `Comments` table; a row with an empty
`parent_author` is a post. Yearly reads return millions of rows and take
minutes, so results are streamed in chunks and assembled into a Dask
DataFrame.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, time
from typing import Any, List, cast

import dask.dataframe as dd
import pandas as pd
from sqlalchemy import DateTime, bindparam, create_engine, text
from sqlalchemy.engine import URL, Engine
from sqlalchemy.exc import SQLAlchemyError

from hive_stats.aggregate.weekly import ACTION_COLUMNS
from hive_stats.config import Settings
from hive_stats.errors import SourceUnavailable

log = logging.getLogger(__name__)

CHUNK_SIZE = 200_000

# Half-open range on `created` so SQL Server can use its index; deriving the
# year with DATEPART(YEAR, created) forces a full scan.
ACTIONS_SQL = """
SELECT
    author AS account,
    created AS [timestamp],
    CASE WHEN parent_author = '' THEN 'post' ELSE 'comment' END AS kind
FROM Comments
WHERE created >= :start
  AND created < :end
"""

TOP_COMMENTERS_SQL = """
SELECT TOP (:limit)
    author,
    COUNT(*) AS comment_count
FROM Comments
WHERE created > DATEADD(day, -:days, GETDATE())
GROUP BY author
ORDER BY comment_count DESC
"""


def _actions_query() -> Any:
    """`ACTIONS_SQL` with the range bounds typed as datetimes."""
    return text(ACTIONS_SQL).bindparams(
        bindparam("start", type_=DateTime()),
        bindparam("end", type_=DateTime()),
    )


def create_hivesql_engine(settings: Settings) -> Engine:
    """Return a SQLAlchemy engine for HiveSQL using the pymssql driver.

    Raises:
        RuntimeError: if HiveSQL credentials are missing.
    """
    settings.require_hivesql()
    url = URL.create(
        "mssql+pymssql",
        username=settings.hivesql_username,
        password=settings.hivesql_password,
        host=settings.hivesql_server,
        port=settings.hivesql_port,
        database=settings.hivesql_database,
    )
    log.info("Creating HiveSQL engine for %s/%s", settings.hivesql_server, settings.hivesql_database)
    return create_engine(
        url,
        pool_pre_ping=True,
        connect_args={"timeout": settings.hivesql_timeout, "login_timeout": 60},
    )


class HiveSqlSource:
    """Queries against HiveSQL.

    Args:
        engine: SQLAlchemy engine connected to HiveSQL.
        chunk_size: Rows per chunk when streaming raw actions.
    """

    def __init__(self, engine: Engine, chunk_size: int = CHUNK_SIZE) -> None:
        self.engine = engine
        self.chunk_size = chunk_size

    def fetch_actions(self, start: date, end_exclusive: date) -> Any:
        """Return raw actions created in `[start, end_exclusive)`.

        Returns:
            Dask DataFrame with columns `account`, `timestamp`, `kind`.

        Raises:
            SourceUnavailable: if the query fails.
        """
        log.info("Fetching actions %s → %s", start.isoformat(), end_exclusive.isoformat())
        chunks: List[pd.DataFrame] = []
        try:
            with self.engine.connect() as conn:
                for chunk in pd.read_sql_query(
                    _actions_query(),
                    conn,
                    params={
                        "start": datetime.combine(start, time.min),
                        "end": datetime.combine(end_exclusive, time.min),
                    },
                    chunksize=self.chunk_size,
                ):
                    chunks.append(chunk[ACTION_COLUMNS])
                    log.debug("Read chunk of %d actions", len(chunk))
        except SQLAlchemyError as e:
            raise SourceUnavailable("hivesql", str(e)) from e

        dd_mod = cast(Any, dd)
        if not chunks:
            return dd_mod.from_pandas(pd.DataFrame(columns=ACTION_COLUMNS), npartitions=1)

        pdf = pd.concat(chunks, ignore_index=True)
        nparts = max(1, len(pdf) // CHUNK_SIZE)
        log.info("Loaded %d actions into %d Dask partitions", len(pdf), nparts)
        return dd_mod.from_pandas(pdf, npartitions=nparts)

    def fetch_year(self, year: int) -> Any:
        """Raw actions for the calendar year `year`."""
        return self.fetch_actions(date(year, 1, 1), date(year + 1, 1, 1))

    def top_commenters(self, days: int = 7, limit: int = 10) -> pd.DataFrame:
        """Most active authors over the last `days` days; used as a connection check.

        Raises:
            SourceUnavailable: if the query fails.
        """
        try:
            with self.engine.connect() as conn:
                return pd.read_sql_query(
                    text(TOP_COMMENTERS_SQL),
                    conn,
                    params={"limit": limit, "days": days},
                )
        except SQLAlchemyError as e:
            raise SourceUnavailable("hivesql", str(e)) from e
