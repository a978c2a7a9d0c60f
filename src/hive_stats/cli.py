"""Command-line interface for orchestrating the pipeline.

Provides subcommands: `stats`, `prices`, `report`, `check`, and `all`. Each
command is implemented as a `cmd_*` function that accepts an argparse
namespace and returns a process exit code.
"""
from __future__ import annotations

import argparse
import json
import logging
from datetime import date
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

from hive_stats.coin_policy import STEEM_PRICE_END
from hive_stats.config import Settings, get_settings
from hive_stats.db import ensure_indexes, get_client, get_db
from hive_stats.errors import HiveStatsError, InsufficientData, SourceUnavailable
from hive_stats.logging_config import configure_logging
from hive_stats.models import Coin

# INGEST
from hive_stats.ingest.hivesql import HiveSqlSource, create_hivesql_engine
from hive_stats.ingest.prices import fetch_daily_prices

# AGGREGATE
from hive_stats.aggregate.weekly import aggregate_year, summarize_year

# STORES / INSIGHTS
from hive_stats.insights.engine import InsightEngine
from hive_stats.store.price_series import PriceSeriesStore
from hive_stats.store.weekly_stats import WeeklyStatsStore

log = logging.getLogger(__name__)

# Earliest year with Steem content in HiveSQL
FIRST_YEAR = 2016


# --------------------------------------------------
# Helpers
# --------------------------------------------------
def _stores(s: Settings) -> tuple[WeeklyStatsStore, PriceSeriesStore]:
    """Connect to Mongo, ensure indexes and return both stores."""
    client = get_client(s.mongo_uri, tls=s.mongo_tls)
    db = get_db(client, s.mongo_db)
    ensure_indexes(db)
    return (
        WeeklyStatsStore(db, transactional=s.mongo_transactions),
        PriceSeriesStore(db, transactional=s.mongo_transactions),
    )


def _years_to_process(
    store: WeeklyStatsStore,
    from_year: int,
    to_year: int,
    force: bool,
    current_year: int,
) -> list[int]:
    """Return the years the `stats` command should (re)compute.

    Years already stored are skipped unless `force` is set; the current year
    is always recomputed because its newest week is still filling up.
    """
    years: list[int] = []
    for year in range(from_year, to_year + 1):
        already = store.count(year)
        if already > 0 and not force and year != current_year:
            log.info("Year %d already stored (%d weeks). Skipping.", year, already)
            continue
        years.append(year)
    return years


def _jsonable(obj: Any) -> Any:
    """Dump pydantic models (or lists of them) to JSON-compatible data."""
    if isinstance(obj, list):
        return [_jsonable(o) for o in obj]
    return obj.model_dump(mode="json")


# --------------------------------------------------
# STATS
# --------------------------------------------------
def cmd_stats(args: argparse.Namespace) -> int:
    """Aggregate HiveSQL actions per year and upsert them into `weekly_stats`.

    Args:
        args: argparse namespace with `from_year`, `to_year`, `force`.
    """
    s = get_settings()
    weekly, _ = _stores(s)
    source = HiveSqlSource(create_hivesql_engine(s))

    for year in _years_to_process(weekly, args.from_year, args.to_year, args.force, date.today().year):
        rows = aggregate_year(source.fetch_year(year), year)
        if not rows:
            log.info("%d: No data found", year)
            continue

        weekly.upsert(rows)
        totals = summarize_year(rows)
        log.info(
            "%d: %s total user-weeks, %s total actions",
            year,
            f"{totals['user_weeks']:,}",
            f"{totals['actions']:,}",
        )

    stored_years = weekly.years()
    if stored_years:
        totals = summarize_year(weekly.scan((stored_years[0], stored_years[-1])))
        log.info(
            "Stored years %d-%d: %d weeks, %s user-weeks, %s posts, %s comments",
            stored_years[0],
            stored_years[-1],
            totals["weeks"],
            f"{totals['user_weeks']:,}",
            f"{totals['posts']:,}",
            f"{totals['comments']:,}",
        )
    return 0


# --------------------------------------------------
# PRICES
# --------------------------------------------------
def cmd_prices(args: argparse.Namespace) -> int:
    """Fetch STEEM (pre-fork) and HIVE daily prices and upsert them.

    A failure for one coin is logged and the other coin is still fetched.
    Returns 1 if any coin failed.
    """
    s = get_settings()
    _, prices = _stores(s)

    plan = [(Coin.STEEM, STEEM_PRICE_END), (Coin.HIVE, date.today())]
    failed = 0
    for coin, through in plan:
        try:
            points = fetch_daily_prices(
                coin,
                through,
                limit=args.limit,
                api_url=s.price_api_url,
                sleep_seconds=0.5,
            )
        except SourceUnavailable as e:
            log.error("Error fetching %s: %s", coin.value.upper(), e)
            failed += 1
            continue
        prices.upsert(points)

    for coin in Coin:
        count, first, last = prices.coverage(coin)
        log.info("%s: %d days (%s to %s)", coin.value.upper(), count, first, last)

    return 1 if failed else 0


# --------------------------------------------------
# REPORT
# --------------------------------------------------
def cmd_report(args: argparse.Namespace) -> int:
    """Print summary, year-over-year, correlation and tier distribution."""
    s = get_settings()
    weekly, prices = _stores(s)
    engine = InsightEngine(weekly, prices)

    try:
        report = {
            "summary": engine.summary(),
            "year_over_year": engine.year_over_year(),
            "correlation": engine.correlation(),
            "activity_distribution": engine.activity_distribution(),
        }
    except InsufficientData as e:
        log.error("Cannot build report: %s", e)
        return 1

    if args.json:
        print(json.dumps({k: _jsonable(v) for k, v in report.items()}, indent=2))
        return 0

    summary = report["summary"]
    print(f"Weeks: {summary.total_weeks}  User-weeks: {summary.total_user_weeks:,}")
    print(f"Posts: {summary.total_posts:,}  Comments: {summary.total_comments:,}")
    print(f"Avg weekly users: {summary.avg_weekly_users:,.0f}")
    print(f"Peak: {summary.peak_weekly_users:,} (week of {summary.peak_week_date})")
    print(
        f"Last complete week: {summary.last_complete_week_users:,} "
        f"(week of {summary.last_complete_week_date})"
    )
    print()
    for y in report["year_over_year"]:
        price = "n/a" if y.avg_price is None else f"${y.avg_price:.4f}"
        change = "" if y.change_percent is None else f" ({y.change_percent:+.1f}%)"
        print(f"{y.year}: {y.avg_weekly_users:,.0f} weekly users{change}, avg price {price}")
    print()
    corr = report["correlation"]
    print(f"Price/users correlation: {corr.coefficient:.3f} ({corr.description}, n={corr.sample_size})")
    dist = report["activity_distribution"]
    print(
        f"Tiers: ultra {dist.ultra_active}% | very {dist.very_active}% | active {dist.active}% "
        f"| occasional {dist.occasional}% | low {dist.low_activity}%"
    )
    return 0


# --------------------------------------------------
# CHECK
# --------------------------------------------------
def cmd_check(args: argparse.Namespace) -> int:
    """Run a small query against HiveSQL to verify credentials and connectivity."""
    s = get_settings()
    source = HiveSqlSource(create_hivesql_engine(s))
    top = source.top_commenters(days=args.days, limit=10)
    log.info("Connected. Top %d commenters in the last %d days:", len(top), args.days)
    print(top.to_string(index=False))
    return 0


# --------------------------------------------------
# ALL
# --------------------------------------------------
def cmd_all(args: argparse.Namespace) -> int:
    """Convenience: run stats → prices → report with the provided args."""
    rc = cmd_stats(args)
    rc = max(rc, cmd_prices(args))
    return max(rc, cmd_report(args))


# --------------------------------------------------
# CLI
# --------------------------------------------------
def build_parser() -> argparse.ArgumentParser:
    """Build and return the top-level argument parser for the CLI.

    Returns:
        Configured argparse.ArgumentParser instance.
    """
    this_year = date.today().year

    p = argparse.ArgumentParser(prog="hive-stats")
    sub = p.add_subparsers(dest="cmd", required=True)

    p_stats = sub.add_parser("stats")
    p_stats.add_argument("--from-year", type=int, default=FIRST_YEAR)
    p_stats.add_argument("--to-year", type=int, default=this_year)
    p_stats.add_argument("--force", action="store_true")

    p_prices = sub.add_parser("prices")
    p_prices.add_argument("--limit", type=int, default=2000)

    p_report = sub.add_parser("report")
    p_report.add_argument("--json", action="store_true")

    p_check = sub.add_parser("check")
    p_check.add_argument("--days", type=int, default=7)

    p_all = sub.add_parser("all")
    p_all.add_argument("--from-year", type=int, default=FIRST_YEAR)
    p_all.add_argument("--to-year", type=int, default=this_year)
    p_all.add_argument("--force", action="store_true")
    p_all.add_argument("--limit", type=int, default=2000)
    p_all.add_argument("--json", action="store_true")

    return p


COMMANDS = {
    "stats": cmd_stats,
    "prices": cmd_prices,
    "report": cmd_report,
    "check": cmd_check,
    "all": cmd_all,
}


def main(argv: list[str] | None = None) -> int:
    """CLI entry point: parse args, configure logging and dispatch commands."""
    load_dotenv()
    configure_logging(Path("logs/pipeline.log"))

    args = build_parser().parse_args(argv)
    try:
        return COMMANDS[args.cmd](args)
    except HiveStatsError as e:
        log.error("%s", e)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
