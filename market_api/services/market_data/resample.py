"""
Daily bar resampling into calendar periods (ISO week, calendar month).
"""

from collections.abc import Callable
from dataclasses import replace
from datetime import datetime
from enum import Enum

from ..tdx.types import Bar, BarSeries


class Period(str, Enum):
    """Target periods for resampling daily bars."""

    WEEK = "week"
    MONTH = "month"


def week_key(time: datetime) -> tuple[int, int]:
    """(ISO year, ISO week) bucket key."""
    iso = time.isocalendar()
    return iso[0], iso[1]


def month_key(time: datetime) -> tuple[int, int]:
    """(calendar year, month) bucket key."""
    return time.year, time.month


BUCKET_KEYS: dict[Period, Callable[[datetime], tuple[int, int]]] = {
    Period.WEEK: week_key,
    Period.MONTH: month_key,
}


def _fold(bucket: Bar, bar: Bar) -> None:
    if bar.high > bucket.high:
        bucket.high = bar.high
    # A zero low is treated as "not yet set"
    if bar.low < bucket.low or bucket.low == 0:
        bucket.low = bar.low
    bucket.close = bar.close
    bucket.volume += bar.volume
    bucket.amount += bar.amount
    bucket.time = bar.time


def resample(series: BarSeries, period: Period) -> BarSeries:
    """
    Aggregate an ordered daily series into one bar per calendar bucket.

    Each output bar opens with the first day of its bucket, closes with the
    last, and reports the last day's timestamp. The trailing bucket is always
    emitted even when the series ends mid-week or mid-month.

    Args:
        series: Daily bars in non-decreasing time order
        period: Target period

    Returns:
        New series with count equal to the number of buckets; an empty input
        is returned as-is
    """
    if not series.bars:
        return series

    key_of = BUCKET_KEYS[period]
    out: list[Bar] = []
    bucket: Bar | None = None
    bucket_key: tuple[int, int] | None = None

    for bar in series.bars:
        key = key_of(bar.time)
        if bucket is None or key != bucket_key:
            if bucket is not None:
                out.append(bucket)
            bucket = replace(bar)
            bucket_key = key
        else:
            _fold(bucket, bar)

    if bucket is not None:
        out.append(bucket)

    return BarSeries.of(out)
