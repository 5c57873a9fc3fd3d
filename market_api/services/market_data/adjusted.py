"""
Front-adjusted daily bars with an unadjusted fallback.
"""

import structlog

from ...core.exceptions import UpstreamFetchError
from ..tdx.client import AdjustedKlineSource, MarketDataClient
from ..tdx.types import BarSeries, Exchange, KlineType

logger = structlog.get_logger()


class AdjustedSeriesFetcher:
    """Fetch daily bars, preferring the front-adjusted source.

    When the adjusted source fails for any reason the TDX unadjusted daily
    kline is used instead, bounded to the most recent `fallback_count` bars.
    """

    def __init__(
        self,
        client: MarketDataClient,
        adjusted_source: AdjustedKlineSource,
        fallback_count: int = 800,
    ):
        self.client = client
        self.adjusted_source = adjusted_source
        self.fallback_count = fallback_count

    async def fetch(self, exchange: Exchange, code: str) -> BarSeries:
        """
        Args:
            exchange: Exchange partition of the symbol
            code: Six-digit symbol code

        Returns:
            Daily series with count equal to its length

        Raises:
            UpstreamFetchError: Only when both sources fail
        """
        try:
            bars = await self.adjusted_source.get_qfq_day(exchange, code)
        except Exception as e:
            logger.warning(
                "Front-adjusted kline failed, using unadjusted bars",
                code=code,
                exchange=exchange.value,
                error=str(e),
                error_type=type(e).__name__,
            )
            return await self._fallback(exchange, code)

        for previous, current in zip(bars, bars[1:]):
            current.prior_close = previous.close
        if bars:
            bars[0].prior_close = 0.0
        return BarSeries.of(bars)

    async def _fallback(self, exchange: Exchange, code: str) -> BarSeries:
        try:
            series = await self.client.get_kline(
                KlineType.DAY, exchange, code, 0, self.fallback_count
            )
        except UpstreamFetchError:
            logger.error(
                "Unadjusted kline fallback failed", code=code, exchange=exchange.value
            )
            raise
        series.count = len(series.bars)
        return series
