"""
Interface of the external market data client.

Request handlers and the kline pipeline depend on this contract only; the
process-wide instance is created in the application lifespan and injected,
so tests can substitute doubles.
"""

from abc import ABC, abstractmethod

from .types import (
    Bar,
    BarSeries,
    Exchange,
    InstrumentListing,
    KlineType,
    MinutePoint,
    Quote,
    Trade,
)


class MarketDataClient(ABC):
    """Typed request/response contract of the TDX quote source.

    Every method raises UpstreamFetchError when the upstream call fails.
    """

    @property
    @abstractmethod
    def is_connected(self) -> bool:
        """Whether a live upstream connection is held."""

    @abstractmethod
    async def connect(self) -> None:
        """Open the long-lived upstream connection."""

    @abstractmethod
    async def close(self) -> None:
        """Release the upstream connection."""

    @abstractmethod
    async def get_quotes(self, symbols: list[tuple[Exchange, str]]) -> list[Quote]:
        """Fetch real-time snapshots for up to 50 symbols."""

    @abstractmethod
    async def get_kline(
        self,
        kline_type: KlineType,
        exchange: Exchange,
        code: str,
        start: int,
        count: int,
    ) -> BarSeries:
        """Fetch `count` stock bars ending `start` bars before the latest one."""

    @abstractmethod
    async def get_kline_all(
        self, kline_type: KlineType, exchange: Exchange, code: str
    ) -> BarSeries:
        """Fetch the full available stock bar history."""

    @abstractmethod
    async def get_index_kline(
        self,
        kline_type: KlineType,
        exchange: Exchange,
        code: str,
        start: int,
        count: int,
    ) -> BarSeries:
        """Fetch `count` index bars ending `start` bars before the latest one."""

    @abstractmethod
    async def get_index_kline_all(
        self, kline_type: KlineType, exchange: Exchange, code: str
    ) -> BarSeries:
        """Fetch the full available index bar history."""

    @abstractmethod
    async def get_history_minute(
        self, date: str, exchange: Exchange, code: str
    ) -> list[MinutePoint]:
        """Fetch the minute price series of one trading day (YYYYMMDD)."""

    @abstractmethod
    async def get_minute_trade(
        self, exchange: Exchange, code: str, start: int, count: int
    ) -> list[Trade]:
        """Fetch today's most recent trades."""

    @abstractmethod
    async def get_history_trade_day(
        self, date: str, exchange: Exchange, code: str
    ) -> list[Trade]:
        """Fetch every trade of one historical trading day (YYYYMMDD)."""

    @abstractmethod
    async def get_code_all(self, exchange: Exchange) -> list[InstrumentListing]:
        """Fetch the full instrument listing of one exchange partition."""


class AdjustedKlineSource(ABC):
    """A source of front-adjusted daily bars."""

    @abstractmethod
    async def get_qfq_day(self, exchange: Exchange, code: str) -> list[Bar]:
        """Fetch the full front-adjusted daily history, oldest first."""

    async def close(self) -> None:
        """Release any held resources."""
