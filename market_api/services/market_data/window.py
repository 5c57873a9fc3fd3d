"""
Window trimming for bar series and parsing of client-supplied limits.
"""

from enum import Enum

from ..tdx.types import BarSeries

DEFAULT_LIMIT = 100
MAX_LIMIT = 800


class TrimPolicy(str, Enum):
    """Which end of an over-long series survives trimming."""

    TAIL = "tail"  # keep the most recent bars (stock history)
    HEAD = "head"  # keep the earliest bars (index week/month history)


def trim(series: BarSeries, limit: int, policy: TrimPolicy) -> BarSeries:
    """Bound a series to `limit` bars, keeping count in sync with the bars."""
    if len(series.bars) <= limit:
        return series

    if policy is TrimPolicy.TAIL:
        bars = series.bars[len(series.bars) - limit :]
    else:
        bars = series.bars[:limit]
    return BarSeries(bars=bars, count=limit)


def parse_limit(
    raw: str | None, default: int = DEFAULT_LIMIT, maximum: int = MAX_LIMIT
) -> int:
    """
    Parse a limit query parameter.

    Non-numeric, missing or non-positive input falls back to `default`;
    larger values are clamped to `maximum`.
    """
    try:
        value = int((raw or "").strip())
    except ValueError:
        return default
    if value <= 0:
        return default
    return min(value, maximum)
