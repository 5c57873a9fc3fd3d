"""
Shared fixtures for the market data API tests.
"""

import os

# Must be set before market_api is imported: settings and the limiter read them at import
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")

from datetime import date, datetime, timedelta  # noqa: E402

import pytest  # noqa: E402

from market_api.services.tdx.types import Bar, BarSeries  # noqa: E402


def _make_bar(
    day: str | date,
    open: float = 10.0,
    high: float = 11.0,
    low: float = 9.0,
    close: float = 10.5,
    volume: float = 100.0,
    amount: float = 1000.0,
    prior_close: float = 0.0,
) -> Bar:
    if isinstance(day, str):
        day = date.fromisoformat(day)
    return Bar(
        time=datetime(day.year, day.month, day.day, 15, 0),
        open=open,
        high=high,
        low=low,
        close=close,
        volume=volume,
        amount=amount,
        prior_close=prior_close,
    )


@pytest.fixture
def make_bar():
    """Factory for a single daily bar."""
    return _make_bar


@pytest.fixture
def weekday_series():
    """Factory for a series of consecutive weekday bars starting at a date."""

    def build(start: str, count: int, **kwargs) -> BarSeries:
        bars = []
        day = date.fromisoformat(start)
        while len(bars) < count:
            if day.weekday() < 5:
                index = len(bars)
                bars.append(
                    _make_bar(
                        day,
                        close=10.0 + index,
                        volume=100.0 + index,
                        amount=1000.0 + index,
                        **kwargs,
                    )
                )
            day += timedelta(days=1)
        return BarSeries.of(bars)

    return build
