"""Daily price history from the CryptoCompare `histoday` endpoint.

`fetch_daily_prices` returns `PricePoint` rows for one symbol ending at a
given date. Days without trading (close <= 0) are dropped here so they never
reach the price store.
"""

from __future__ import annotations

import logging
import time
from datetime import date, datetime, time as dt_time, timezone
from typing import Any

import requests

from hive_stats.config import DEFAULT_PRICE_API_URL
from hive_stats.errors import SourceUnavailable
from hive_stats.models import Coin, PricePoint

log = logging.getLogger(__name__)

# CryptoCompare returns at most 2000 daily points per request
MAX_LIMIT = 2000


def _to_timestamp(day: date) -> int:
    """Unix timestamp of midnight UTC on `day`."""
    return int(datetime.combine(day, dt_time.min, tzinfo=timezone.utc).timestamp())


def parse_histoday(payload: dict[str, Any], coin: Coin) -> list[PricePoint]:
    """Convert a `histoday` JSON payload into price points.

    Args:
        payload: Parsed JSON response.
        coin: Coin the prices belong to.

    Returns:
        One `PricePoint` per day with a positive close, in payload order.

    Raises:
        SourceUnavailable: if the payload does not report success.
    """
    if payload.get("Response") != "Success":
        raise SourceUnavailable("cryptocompare", f"unexpected response: {payload.get('Message', payload)}")

    points: list[PricePoint] = []
    for bar in payload.get("Data", {}).get("Data", []):
        close = bar.get("close")
        if close is None or close <= 0:
            continue
        day = datetime.fromtimestamp(int(bar["time"]), tz=timezone.utc).date()
        points.append(PricePoint(date=day, coin=coin, price_usd=float(close)))
    return points


def fetch_daily_prices(
    coin: Coin,
    through: date,
    limit: int = MAX_LIMIT,
    api_url: str = DEFAULT_PRICE_API_URL,
    timeout: float = 30.0,
    sleep_seconds: float = 0.0,
) -> list[PricePoint]:
    """Fetch up to `limit` daily USD closes for `coin` ending at `through`.

    Args:
        coin: Coin to fetch; its value upper-cased is the ticker symbol.
        through: Last day of the requested history.
        limit: Number of days to request (capped at 2000).
        api_url: `histoday` endpoint URL.
        timeout: Request timeout in seconds.
        sleep_seconds: Optional throttle after the request.

    Returns:
        Price points with positive closes.

    Raises:
        SourceUnavailable: on HTTP errors or a non-success payload.
    """
    params = {
        "fsym": coin.value.upper(),
        "tsym": "USD",
        "limit": min(limit, MAX_LIMIT),
        "toTs": _to_timestamp(through),
    }
    log.info("Fetching %s daily prices through %s", params["fsym"], through.isoformat())
    try:
        resp = requests.get(api_url, params=params, timeout=timeout)
        resp.raise_for_status()
        payload = resp.json()
    except (requests.RequestException, ValueError) as e:
        raise SourceUnavailable("cryptocompare", str(e)) from e
    finally:
        if sleep_seconds:
            time.sleep(sleep_seconds)

    points = parse_histoday(payload, coin)
    if points:
        log.info(
            "Fetched %d %s price points (%s to %s)",
            len(points),
            params["fsym"],
            points[0].date.isoformat(),
            points[-1].date.isoformat(),
        )
    else:
        log.warning("No %s prices returned", params["fsym"])
    return points
