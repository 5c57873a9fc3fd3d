"""
Kline pipeline and market aggregation services.

This module is organized into the following components:
- adjusted: Front-adjusted daily bars with unadjusted fallback
- resample: Day to week/month aggregation
- window: Tail/head trimming and limit parsing
- dispatcher: Period token to fetch pipeline tables
- aggregator: Multi-exchange search, code listing and breadth stats
- quotes: Snapshots, intraday series and the stock overview
"""

from datetime import time
from typing import Literal

import pandas as pd

from .adjusted import AdjustedSeriesFetcher
from .aggregator import ExchangeAggregator, select_exchanges
from .dispatcher import KlineDispatcher
from .quotes import QuoteService
from .resample import Period, resample
from .window import TrimPolicy, parse_limit, trim


def get_market_session(
    timestamp: pd.Timestamp,
    timezone: str = "Asia/Shanghai",
) -> Literal["pre", "regular", "break", "closed"]:
    """
    Determine the exchange session for a given timestamp.

    Market hours (China Standard Time):
    - Pre-market (call auction): 9:15 AM - 9:30 AM
    - Regular: 9:30 AM - 11:30 AM, 1:00 PM - 3:00 PM
    - Break: 11:30 AM - 1:00 PM
    - Closed: 3:00 PM - 9:15 AM, weekends

    Args:
        timestamp: Timestamp to check; naive timestamps are taken as UTC

    Returns:
        Market session: "pre", "regular", "break", or "closed"
    """
    if timestamp.tz is None:
        timestamp = timestamp.tz_localize("UTC").tz_convert(timezone)
    elif str(timestamp.tz) != timezone:
        timestamp = timestamp.tz_convert(timezone)

    if timestamp.weekday() >= 5:  # Saturday=5, Sunday=6
        return "closed"

    time_of_day = timestamp.time()

    if time(9, 15) <= time_of_day < time(9, 30):
        return "pre"
    elif time(9, 30) <= time_of_day < time(11, 30):
        return "regular"
    elif time(11, 30) <= time_of_day < time(13, 0):
        return "break"
    elif time(13, 0) <= time_of_day < time(15, 0):
        return "regular"
    else:
        return "closed"


__all__ = [
    "AdjustedSeriesFetcher",
    "ExchangeAggregator",
    "KlineDispatcher",
    "Period",
    "QuoteService",
    "TrimPolicy",
    "get_market_session",
    "parse_limit",
    "resample",
    "select_exchanges",
    "trim",
]
