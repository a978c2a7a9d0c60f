"""Year → coin policy used to join weekly stats with prices.

Hive forked from Steem in March 2020. Weeks before 2020 are priced in STEEM
and weeks from 2020 on in HIVE. The switch is a hard cutover on the calendar
year, so early-2020 weeks (pre-fork) use HIVE prices when they exist.
"""

from __future__ import annotations

from datetime import date

from hive_stats.models import Coin

# (first_year inclusive or None, last_year exclusive or None, coin)
COIN_POLICY: tuple[tuple[int | None, int | None, Coin], ...] = (
    (None, 2020, Coin.STEEM),
    (2020, None, Coin.HIVE),
)

# Last day of the STEEM series that the price fetch asks for.
STEEM_PRICE_END = date(2020, 3, 19)


def coin_for_year(year: int) -> Coin:
    """Return the coin whose price represents activity in `year`.

    Raises:
        LookupError: if no policy entry covers the year.
    """
    for first, last, coin in COIN_POLICY:
        if (first is None or year >= first) and (last is None or year < last):
            return coin
    raise LookupError(f"No coin policy covers year {year}")
