from __future__ import annotations

from datetime import date, datetime, timezone
from unittest.mock import MagicMock, patch

import pytest
import requests

from hive_stats.errors import SourceUnavailable
from hive_stats.ingest.prices import fetch_daily_prices, parse_histoday
from hive_stats.models import Coin


def _ts(day: date) -> int:
    return int(datetime(day.year, day.month, day.day, tzinfo=timezone.utc).timestamp())


def _payload(bars: list[tuple[date, float]]) -> dict:
    return {
        "Response": "Success",
        "Data": {"Data": [{"time": _ts(d), "close": c, "open": c, "high": c, "low": c} for d, c in bars]},
    }


def test_parse_histoday_drops_non_positive_closes() -> None:
    payload = _payload([(date(2020, 3, 20), 0.0), (date(2020, 3, 21), 0.21), (date(2020, 3, 22), -1.0)])

    points = parse_histoday(payload, Coin.HIVE)

    assert [(p.date, p.price_usd) for p in points] == [(date(2020, 3, 21), 0.21)]
    assert points[0].coin is Coin.HIVE


def test_parse_histoday_rejects_error_payload() -> None:
    with pytest.raises(SourceUnavailable):
        parse_histoday({"Response": "Error", "Message": "rate limit"}, Coin.STEEM)


def test_fetch_daily_prices_builds_request() -> None:
    resp = MagicMock()
    resp.json.return_value = _payload([(date(2020, 3, 18), 0.17), (date(2020, 3, 19), 0.16)])
    with patch("hive_stats.ingest.prices.requests.get", return_value=resp) as get:
        points = fetch_daily_prices(Coin.STEEM, date(2020, 3, 19), limit=5000)

    params = get.call_args.kwargs["params"]
    assert params["fsym"] == "STEEM"
    assert params["tsym"] == "USD"
    assert params["limit"] == 2000
    assert params["toTs"] == _ts(date(2020, 3, 19))
    assert [p.date for p in points] == [date(2020, 3, 18), date(2020, 3, 19)]


def test_fetch_daily_prices_wraps_http_errors() -> None:
    resp = MagicMock()
    resp.raise_for_status.side_effect = requests.HTTPError("503 Service Unavailable")
    with patch("hive_stats.ingest.prices.requests.get", return_value=resp):
        with pytest.raises(SourceUnavailable) as exc:
            fetch_daily_prices(Coin.HIVE, date(2024, 1, 1))
    assert exc.value.source == "cryptocompare"
