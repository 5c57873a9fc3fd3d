"""
TDX quote server adapter built on pytdx.

pytdx is a blocking socket client; every call runs in a worker thread and the
API object is created with multithread=True so concurrent requests share the
single connection safely.
"""

import asyncio
from collections.abc import Callable, Mapping
from datetime import datetime
from functools import partial
from typing import Any, TypeVar

import structlog
from pytdx.errors import TdxConnectionError
from pytdx.hq import TdxHq_API

from ...core.config import Settings
from ...core.exceptions import ConfigurationError, UpstreamFetchError
from .client import MarketDataClient
from .types import (
    Bar,
    BarSeries,
    Exchange,
    InstrumentListing,
    KlineType,
    MinutePoint,
    PriceLevel,
    Quote,
    Trade,
)

logger = structlog.get_logger()

T = TypeVar("T")

SECURITY_LIST_PAGE = 1000
TRADE_PAGE = 2000

# Row conversion failures that indicate a malformed server response
MALFORMED_ROW_ERRORS = (KeyError, TypeError, ValueError, StopIteration)


def _minute_labels() -> list[str]:
    """Time labels of the 240 trading minutes (09:31-11:30, 13:01-15:00)."""
    labels = []
    for start_hour, start_minute in ((9, 30), (13, 0)):
        total = start_hour * 60 + start_minute
        for offset in range(1, 121):
            hour, minute = divmod(total + offset, 60)
            labels.append(f"{hour:02d}:{minute:02d}")
    return labels


MINUTE_LABELS = _minute_labels()


def parse_hosts(hosts: list[str]) -> list[tuple[str, int]]:
    """Parse "host:port" entries, raising ConfigurationError on bad input."""
    parsed = []
    for entry in hosts:
        host, sep, port = entry.strip().rpartition(":")
        if not sep or not host or not port.isdigit():
            raise ConfigurationError(f"Invalid TDX host entry: {entry!r}")
        parsed.append((host, int(port)))
    if not parsed:
        raise ConfigurationError("No TDX hosts configured")
    return parsed


def link_prior_close(bars: list[Bar]) -> list[Bar]:
    """Fill each bar's prior close from the preceding bar's close."""
    for previous, current in zip(bars, bars[1:]):
        current.prior_close = previous.close
    return bars


def _is_connection_error(error: BaseException) -> bool:
    """True when a pytdx failure means the socket is gone."""
    # pytdx wraps the socket error in TdxFunctionCallError.original_exception
    original = getattr(error, "original_exception", None)
    return any(
        isinstance(e, (OSError, TdxConnectionError)) for e in (error, original)
    )


def _to_bar(row: Mapping[str, Any]) -> Bar:
    return Bar(
        time=datetime(
            int(row["year"]),
            int(row["month"]),
            int(row["day"]),
            int(row.get("hour", 15)),
            int(row.get("minute", 0)),
        ),
        open=float(row["open"]),
        high=float(row["high"]),
        low=float(row["low"]),
        close=float(row["close"]),
        volume=float(row.get("vol", 0.0)),
        amount=float(row.get("amount", 0.0)),
    )


def _to_quote(row: Mapping[str, Any]) -> Quote:
    market = int(row["market"])
    exchange = next(ex for ex in Exchange if ex.market_id == market)
    return Quote(
        code=str(row["code"]),
        exchange=exchange,
        price=float(row["price"]),
        last_close=float(row["last_close"]),
        open=float(row["open"]),
        high=float(row["high"]),
        low=float(row["low"]),
        volume=float(row.get("vol", 0)),
        amount=float(row.get("amount", 0.0)),
        server_time=str(row.get("servertime", "")),
        bids=[
            PriceLevel(float(row[f"bid{i}"]), float(row[f"bid_vol{i}"]))
            for i in range(1, 6)
        ],
        asks=[
            PriceLevel(float(row[f"ask{i}"]), float(row[f"ask_vol{i}"]))
            for i in range(1, 6)
        ],
    )


def _to_trade(row: Mapping[str, Any]) -> Trade:
    return Trade(
        time=str(row["time"]),
        price=float(row["price"]),
        volume=float(row["vol"]),
        order_count=int(row.get("num", 0)),
        side=int(row.get("buyorsell", 2)),
    )


def _to_minute(item: tuple[int, Mapping[str, Any]]) -> MinutePoint:
    index, row = item
    return MinutePoint(
        time=MINUTE_LABELS[index] if index < len(MINUTE_LABELS) else "",
        price=float(row["price"]),
        volume=float(row["vol"]),
    )


def _to_listing(exchange: Exchange, row: Mapping[str, Any]) -> InstrumentListing:
    return InstrumentListing(
        code=str(row["code"]),
        name=str(row["name"]).strip(),
        exchange=exchange,
        last_price=float(row.get("pre_close", 0.0)),
    )


class TdxClient(MarketDataClient):
    """MarketDataClient backed by a pytdx connection to a TDX quote server."""

    def __init__(self, settings: Settings, api: TdxHq_API | None = None):
        """
        Args:
            settings: Application settings with TDX hosts and paging limits
            api: Optional pre-built pytdx API object (used by tests)
        """
        self.settings = settings
        self._api = api or TdxHq_API(
            multithread=True, heartbeat=True, raise_exception=True
        )
        self._connected = api is not None
        self._server: str | None = None

    @property
    def is_connected(self) -> bool:
        return self._connected

    @property
    def server(self) -> str | None:
        return self._server

    async def connect(self) -> None:
        errors = []
        for host, port in parse_hosts(self.settings.tdx_hosts):
            try:
                result = await asyncio.to_thread(
                    self._api.connect,
                    host,
                    port,
                    time_out=self.settings.tdx_connect_timeout,
                )
            except Exception as e:
                result = False
                errors.append(f"{host}:{port} {e}")
            if result:
                self._connected = True
                self._server = f"{host}:{port}"
                logger.info("Connected to TDX server", server=self._server)
                return
            logger.warning("TDX server refused connection", host=host, port=port)

        raise UpstreamFetchError(
            f"failed to connect to any TDX server: {'; '.join(errors) or 'refused'}",
            source="tdx",
        )

    async def close(self) -> None:
        if self._connected:
            await asyncio.to_thread(self._api.disconnect)
            self._connected = False
            logger.info("TDX connection closed", server=self._server)

    async def _call(self, method: str, *args: Any) -> Any:
        """Run one blocking pytdx call and normalise its failure modes."""
        if not self._connected:
            await self.connect()
        try:
            result = await asyncio.to_thread(getattr(self._api, method), *args)
        except Exception as e:
            if _is_connection_error(e):
                self._connected = False
            logger.error(
                "TDX call failed",
                method=method,
                error=str(e),
                error_type=type(e).__name__,
                connected=self._connected,
            )
            raise UpstreamFetchError(f"{method}: {e}", source="tdx") from e

        if result is None:
            raise UpstreamFetchError(f"{method}: no response from server", source="tdx")
        return result

    def _convert(
        self, method: str, rows: list[Any], convert: Callable[[Any], T]
    ) -> list[T]:
        """Map raw pytdx rows, reporting malformed rows as upstream failures."""
        try:
            return [convert(row) for row in rows]
        except MALFORMED_ROW_ERRORS as e:
            logger.error(
                "Malformed TDX response",
                method=method,
                error=repr(e),
                error_type=type(e).__name__,
            )
            raise UpstreamFetchError(
                f"{method}: malformed response: {e!r}", source="tdx"
            ) from e

    async def get_quotes(self, symbols: list[tuple[Exchange, str]]) -> list[Quote]:
        rows = await self._call(
            "get_security_quotes", [(ex.market_id, code) for ex, code in symbols]
        )
        return self._convert("get_security_quotes", rows, _to_quote)

    async def _bars(
        self, method: str, kline_type: KlineType, exchange: Exchange, code: str,
        start: int, count: int,
    ) -> list[Bar]:
        rows = await self._call(
            method, kline_type.category, exchange.market_id, code, start, count
        )
        return self._convert(method, rows, _to_bar)

    async def _bars_all(
        self, method: str, kline_type: KlineType, exchange: Exchange, code: str
    ) -> BarSeries:
        # Pages are requested newest-first and each page is oldest-first internally
        page_size = self.settings.tdx_page_size
        pages: list[list[Bar]] = []
        for page_no in range(self.settings.tdx_max_pages):
            page = await self._bars(
                method, kline_type, exchange, code, page_no * page_size, page_size
            )
            if not page:
                break
            pages.insert(0, page)
            if len(page) < page_size:
                break

        bars = link_prior_close([bar for page in pages for bar in page])
        logger.info(
            "TDX full kline fetched",
            code=code,
            exchange=exchange.value,
            kline_type=kline_type.value,
            bars_count=len(bars),
        )
        return BarSeries.of(bars)

    async def get_kline(
        self, kline_type: KlineType, exchange: Exchange, code: str, start: int, count: int
    ) -> BarSeries:
        bars = await self._bars(
            "get_security_bars", kline_type, exchange, code, start, count
        )
        return BarSeries.of(link_prior_close(bars))

    async def get_kline_all(
        self, kline_type: KlineType, exchange: Exchange, code: str
    ) -> BarSeries:
        return await self._bars_all("get_security_bars", kline_type, exchange, code)

    async def get_index_kline(
        self, kline_type: KlineType, exchange: Exchange, code: str, start: int, count: int
    ) -> BarSeries:
        bars = await self._bars("get_index_bars", kline_type, exchange, code, start, count)
        return BarSeries.of(link_prior_close(bars))

    async def get_index_kline_all(
        self, kline_type: KlineType, exchange: Exchange, code: str
    ) -> BarSeries:
        return await self._bars_all("get_index_bars", kline_type, exchange, code)

    async def get_history_minute(
        self, date: str, exchange: Exchange, code: str
    ) -> list[MinutePoint]:
        rows = await self._call(
            "get_history_minute_time_data", exchange.market_id, code, int(date)
        )
        return self._convert(
            "get_history_minute_time_data", list(enumerate(rows)), _to_minute
        )

    async def get_minute_trade(
        self, exchange: Exchange, code: str, start: int, count: int
    ) -> list[Trade]:
        rows = await self._call(
            "get_transaction_data", exchange.market_id, code, start, count
        )
        return self._convert("get_transaction_data", rows, _to_trade)

    async def get_history_trade_day(
        self, date: str, exchange: Exchange, code: str
    ) -> list[Trade]:
        pages: list[list[Trade]] = []
        start = 0
        while True:
            rows = await self._call(
                "get_history_transaction_data",
                exchange.market_id,
                code,
                start,
                TRADE_PAGE,
                int(date),
            )
            if not rows:
                break
            pages.insert(
                0, self._convert("get_history_transaction_data", rows, _to_trade)
            )
            if len(rows) < TRADE_PAGE:
                break
            start += TRADE_PAGE
        return [trade for page in pages for trade in page]

    async def get_code_all(self, exchange: Exchange) -> list[InstrumentListing]:
        total = await self._call("get_security_count", exchange.market_id)
        (count,) = self._convert("get_security_count", [total], int)
        listings: list[InstrumentListing] = []
        for start in range(0, count, SECURITY_LIST_PAGE):
            rows = await self._call("get_security_list", exchange.market_id, start)
            listings.extend(
                self._convert(
                    "get_security_list", rows, partial(_to_listing, exchange)
                )
            )
        logger.info(
            "TDX code listing fetched", exchange=exchange.value, total=len(listings)
        )
        return listings
