"""
Quote snapshots, intraday series and the composite stock overview.
"""

from typing import Any

import pandas as pd
import structlog

from ...core.exceptions import UpstreamFetchError, ValidationError
from ..tdx.client import MarketDataClient
from ..tdx.types import MinutePoint, Quote, Trade, parse_code
from .adjusted import AdjustedSeriesFetcher
from .window import TrimPolicy, trim

logger = structlog.get_logger()


def today(timezone: str) -> str:
    """Current exchange-local date as YYYYMMDD."""
    return pd.Timestamp.now(tz=timezone).strftime("%Y%m%d")


def validate_date(date: str) -> str:
    """Require a YYYYMMDD date string."""
    date = date.strip()
    if len(date) != 8 or not date.isdigit():
        raise ValidationError(f"invalid date, expected YYYYMMDD: {date}", date=date)
    return date


class QuoteService:
    """Snapshot and intraday lookups for a single upstream client."""

    def __init__(
        self,
        client: MarketDataClient,
        adjusted: AdjustedSeriesFetcher,
        batch_max: int = 50,
        trade_today_count: int = 1800,
        info_day_count: int = 30,
        timezone: str = "Asia/Shanghai",
    ):
        self.client = client
        self.adjusted = adjusted
        self.batch_max = batch_max
        self.trade_today_count = trade_today_count
        self.info_day_count = info_day_count
        self.timezone = timezone

    async def get_quote(self, symbol: str) -> list[Quote]:
        exchange, code = parse_code(symbol)
        try:
            return await self.client.get_quotes([(exchange, code)])
        except UpstreamFetchError as e:
            raise UpstreamFetchError(
                f"failed to fetch quote: {e.message}", source=e.source, code=code
            ) from e

    async def batch_quote(self, symbols: list[str]) -> list[Quote]:
        """
        Snapshots for up to `batch_max` symbols in one upstream call.

        Raises:
            ValidationError: Empty list, too many symbols, or a malformed symbol;
                raised before anything is sent upstream
        """
        if not symbols:
            raise ValidationError("stock code list is required")
        if len(symbols) > self.batch_max:
            raise ValidationError(
                f"at most {self.batch_max} stocks per request",
                requested=len(symbols),
            )

        parsed = [parse_code(symbol) for symbol in symbols]
        try:
            quotes = await self.client.get_quotes(parsed)
        except UpstreamFetchError as e:
            raise UpstreamFetchError(
                f"failed to fetch quote: {e.message}", source=e.source
            ) from e

        logger.info("Batch quote fetched", requested=len(symbols), returned=len(quotes))
        return quotes

    async def get_minute(self, symbol: str, date: str | None = None) -> list[MinutePoint]:
        exchange, code = parse_code(symbol)
        day = validate_date(date) if date else today(self.timezone)
        try:
            return await self.client.get_history_minute(day, exchange, code)
        except UpstreamFetchError as e:
            raise UpstreamFetchError(
                f"failed to fetch minute data: {e.message}", source=e.source, code=code
            ) from e

    async def get_trade(self, symbol: str, date: str | None = None) -> list[Trade]:
        """Today's latest trades, or every trade of a past day when `date` is given."""
        exchange, code = parse_code(symbol)
        try:
            if not date:
                return await self.client.get_minute_trade(
                    exchange, code, 0, self.trade_today_count
                )
            return await self.client.get_history_trade_day(
                validate_date(date), exchange, code
            )
        except UpstreamFetchError as e:
            raise UpstreamFetchError(
                f"failed to fetch trades: {e.message}", source=e.source, code=code
            ) from e

    async def stock_info(self, symbol: str) -> dict[str, Any]:
        """
        Composite overview: first quote, recent adjusted daily bars, today's minutes.

        Each part is optional; a part whose fetch fails is left out.
        """
        exchange, code = parse_code(symbol)
        result: dict[str, Any] = {}

        try:
            quotes = await self.client.get_quotes([(exchange, code)])
            if quotes:
                result["quote"] = quotes[0].to_dict()
        except UpstreamFetchError as e:
            logger.warning("Stock info quote unavailable", code=code, error=e.message)

        try:
            series = await self.adjusted.fetch(exchange, code)
            result["kline_day"] = trim(
                series, self.info_day_count, TrimPolicy.TAIL
            ).to_dict()
        except UpstreamFetchError as e:
            logger.warning("Stock info kline unavailable", code=code, error=e.message)

        try:
            minutes = await self.client.get_history_minute(
                today(self.timezone), exchange, code
            )
            result["minute"] = [point.to_dict() for point in minutes]
        except UpstreamFetchError as e:
            logger.warning("Stock info minutes unavailable", code=code, error=e.message)

        return result
