"""
Period dispatch: maps (instrument class, period token, limit) to a fetch pipeline.

Each instrument class owns an explicit table from KlineType to a strategy.
Stock day/week/month bars come from the adjusted fetcher (resampled for
week/month) and are trimmed from the tail; index week/month bars come
pre-aggregated from the upstream and are trimmed from the head.
"""

from collections.abc import Awaitable, Callable

import structlog

from ..tdx.client import MarketDataClient
from ..tdx.types import BarSeries, Exchange, KlineType
from .adjusted import AdjustedSeriesFetcher
from .resample import Period, resample
from .window import DEFAULT_LIMIT, TrimPolicy, trim

logger = structlog.get_logger()

# (exchange, code, limit) -> series; limit None means the full history
Strategy = Callable[[Exchange, str, int | None], Awaitable[BarSeries]]


class KlineDispatcher:
    """Selects and runs the fetch/resample/trim pipeline for a kline request."""

    def __init__(self, client: MarketDataClient, adjusted: AdjustedSeriesFetcher):
        self.client = client
        self.adjusted = adjusted

        self.stock_strategies: dict[KlineType, Strategy] = {
            KlineType.MINUTE1: self._stock_fixed(KlineType.MINUTE1),
            KlineType.MINUTE5: self._stock_fixed(KlineType.MINUTE5),
            KlineType.MINUTE15: self._stock_fixed(KlineType.MINUTE15),
            KlineType.MINUTE30: self._stock_fixed(KlineType.MINUTE30),
            KlineType.HOUR: self._stock_fixed(KlineType.HOUR),
            KlineType.DAY: self._stock_day,
            KlineType.WEEK: self._stock_resampled(Period.WEEK),
            KlineType.MONTH: self._stock_resampled(Period.MONTH),
        }
        self.index_strategies: dict[KlineType, Strategy] = {
            KlineType.MINUTE1: self._index_fixed(KlineType.MINUTE1),
            KlineType.MINUTE5: self._index_fixed(KlineType.MINUTE5),
            KlineType.MINUTE15: self._index_fixed(KlineType.MINUTE15),
            KlineType.MINUTE30: self._index_fixed(KlineType.MINUTE30),
            KlineType.HOUR: self._index_fixed(KlineType.HOUR),
            KlineType.DAY: self._index_fixed(KlineType.DAY),
            KlineType.WEEK: self._index_aggregated(KlineType.WEEK),
            KlineType.MONTH: self._index_aggregated(KlineType.MONTH),
        }

    async def stock_kline(
        self, exchange: Exchange, code: str, token: str | None, limit: int | None = None
    ) -> BarSeries:
        """
        Stock bars for a period token.

        Args:
            exchange: Exchange partition
            code: Six-digit code
            token: Period token; empty or unknown means day
            limit: Window size; None returns the full series untrimmed

        Raises:
            UpstreamFetchError: If the underlying fetch fails
        """
        kline_type = KlineType.parse(token)
        series = await self.stock_strategies[kline_type](exchange, code, limit)
        logger.info(
            "Stock kline dispatched",
            code=code,
            exchange=exchange.value,
            kline_type=kline_type.value,
            limit=limit,
            bars_count=series.count,
        )
        return series

    async def index_kline(
        self, exchange: Exchange, code: str, token: str | None, limit: int = DEFAULT_LIMIT
    ) -> BarSeries:
        """Index bars for a period token, bounded to `limit` bars."""
        kline_type = KlineType.parse(token)
        series = await self.index_strategies[kline_type](exchange, code, limit)
        logger.info(
            "Index kline dispatched",
            code=code,
            exchange=exchange.value,
            kline_type=kline_type.value,
            limit=limit,
            bars_count=series.count,
        )
        return series

    # ----- stock strategies -----

    def _stock_fixed(self, kline_type: KlineType) -> Strategy:
        async def fetch(exchange: Exchange, code: str, limit: int | None) -> BarSeries:
            if limit is None:
                return await self.client.get_kline_all(kline_type, exchange, code)
            return await self.client.get_kline(kline_type, exchange, code, 0, limit)

        return fetch

    async def _stock_day(
        self, exchange: Exchange, code: str, limit: int | None
    ) -> BarSeries:
        series = await self.adjusted.fetch(exchange, code)
        if limit is None:
            return series
        return trim(series, limit, TrimPolicy.TAIL)

    def _stock_resampled(self, period: Period) -> Strategy:
        async def fetch(exchange: Exchange, code: str, limit: int | None) -> BarSeries:
            series = resample(await self.adjusted.fetch(exchange, code), period)
            if limit is None:
                return series
            return trim(series, limit, TrimPolicy.TAIL)

        return fetch

    # ----- index strategies -----

    def _index_fixed(self, kline_type: KlineType) -> Strategy:
        async def fetch(exchange: Exchange, code: str, limit: int | None) -> BarSeries:
            return await self.client.get_index_kline(
                kline_type, exchange, code, 0, limit or DEFAULT_LIMIT
            )

        return fetch

    def _index_aggregated(self, kline_type: KlineType) -> Strategy:
        async def fetch(exchange: Exchange, code: str, limit: int | None) -> BarSeries:
            series = await self.client.get_index_kline_all(kline_type, exchange, code)
            return trim(series, limit or DEFAULT_LIMIT, TrimPolicy.HEAD)

        return fetch
