"""
Data types shared by the market data layer.

These models define the structure of data returned by the upstream adapters
and consumed by the kline pipeline and the API routers.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from ...core.exceptions import ValidationError


class Exchange(str, Enum):
    """Exchange partitions with disjoint code namespaces."""

    SH = "sh"
    SZ = "sz"
    BJ = "bj"

    @property
    def market_id(self) -> int:
        """TDX protocol market id."""
        return {Exchange.SZ: 0, Exchange.SH: 1, Exchange.BJ: 2}[self]


# Fixed scan order used whenever all partitions are queried
ALL_EXCHANGES: tuple[Exchange, ...] = (Exchange.SH, Exchange.SZ, Exchange.BJ)

# A-share equity code prefixes per exchange
STOCK_PREFIXES: dict[Exchange, tuple[str, ...]] = {
    Exchange.SH: ("600", "601", "603", "605", "688", "689"),
    Exchange.SZ: ("000", "001", "002", "003", "004", "300", "301"),
    Exchange.BJ: ("43", "83", "87", "92"),
}


class KlineType(str, Enum):
    """Period tokens accepted by the kline endpoints."""

    MINUTE1 = "minute1"
    MINUTE5 = "minute5"
    MINUTE15 = "minute15"
    MINUTE30 = "minute30"
    HOUR = "hour"
    DAY = "day"
    WEEK = "week"
    MONTH = "month"

    @classmethod
    def parse(cls, token: str | None) -> "KlineType":
        """Map a raw token to a period, defaulting to DAY for empty or unknown input."""
        try:
            return cls(token or "")
        except ValueError:
            return cls.DAY

    @property
    def category(self) -> int:
        """TDX kline category code."""
        return {
            KlineType.MINUTE5: 0,
            KlineType.MINUTE15: 1,
            KlineType.MINUTE30: 2,
            KlineType.HOUR: 3,
            KlineType.WEEK: 5,
            KlineType.MONTH: 6,
            KlineType.MINUTE1: 8,
            KlineType.DAY: 9,
        }[self]


def is_stock(exchange: Exchange, code: str) -> bool:
    """Return True when the code is a tradable A-share equity on the exchange."""
    return code.startswith(STOCK_PREFIXES[exchange])


def parse_code(symbol: str, index: bool = False) -> tuple[Exchange, str]:
    """
    Split a symbol into its exchange and six-digit code.

    Accepts prefixed symbols ("sh600000", "SZ000001", "bj430047") and bare
    codes. Bare codes infer the exchange from their leading digits; index
    codes follow the index numbering instead ("000001" is the SH composite).

    Raises:
        ValidationError: If the symbol is empty or not a six-digit code
    """
    raw = (symbol or "").strip().lower()
    if not raw:
        raise ValidationError("stock code is required")

    prefix = raw[:2]
    if prefix in ("sh", "sz", "bj"):
        exchange: Exchange | None = Exchange(prefix)
        code = raw[2:]
    else:
        exchange = None
        code = raw

    if len(code) != 6 or not code.isdigit():
        raise ValidationError(f"invalid stock code: {symbol}", symbol=symbol)

    if exchange is None:
        exchange = _infer_index_exchange(code) if index else _infer_exchange(code)
    return exchange, code


def _infer_exchange(code: str) -> Exchange:
    if code.startswith("92") or code[0] in "48":
        return Exchange.BJ
    if code[0] in "569":
        return Exchange.SH
    return Exchange.SZ


def _infer_index_exchange(code: str) -> Exchange:
    if code.startswith("399"):
        return Exchange.SZ
    if code.startswith("899"):
        return Exchange.BJ
    return Exchange.SH


@dataclass
class Bar:
    """One OHLCV observation."""

    time: datetime
    open: float
    high: float
    low: float
    close: float
    volume: float = 0.0
    amount: float = 0.0
    prior_close: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "time": self.time.isoformat(),
            "prior_close": self.prior_close,
            "open": self.open,
            "high": self.high,
            "low": self.low,
            "close": self.close,
            "volume": self.volume,
            "amount": self.amount,
        }


@dataclass
class BarSeries:
    """Ordered bars plus the reported count; count must track len(bars)."""

    bars: list[Bar] = field(default_factory=list)
    count: int = 0

    @classmethod
    def of(cls, bars: list[Bar]) -> "BarSeries":
        return cls(bars=bars, count=len(bars))

    def __len__(self) -> int:
        return len(self.bars)

    def to_dict(self) -> dict[str, Any]:
        return {"count": self.count, "list": [bar.to_dict() for bar in self.bars]}


@dataclass
class InstrumentListing:
    """One entry of an exchange's full code listing."""

    code: str
    name: str
    exchange: Exchange
    last_price: float = 0.0

    @property
    def is_stock(self) -> bool:
        return is_stock(self.exchange, self.code)

    @property
    def direction(self) -> int:
        """Sign of the listing's price signal: 1, -1 or 0."""
        if self.last_price > 0:
            return 1
        if self.last_price < 0:
            return -1
        return 0


@dataclass
class PriceLevel:
    """One level of the order book."""

    price: float
    volume: float


@dataclass
class Quote:
    """Real-time snapshot with five bid/ask levels."""

    code: str
    exchange: Exchange
    price: float
    last_close: float
    open: float
    high: float
    low: float
    volume: float
    amount: float
    server_time: str = ""
    bids: list[PriceLevel] = field(default_factory=list)
    asks: list[PriceLevel] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        change = self.price - self.last_close if self.last_close else 0.0
        return {
            "code": self.code,
            "exchange": self.exchange.value,
            "price": self.price,
            "last_close": self.last_close,
            "open": self.open,
            "high": self.high,
            "low": self.low,
            "volume": self.volume,
            "amount": self.amount,
            "change": round(change, 4),
            "change_percent": (
                round(change / self.last_close * 100, 2) if self.last_close else 0.0
            ),
            "server_time": self.server_time,
            "bids": [{"price": b.price, "volume": b.volume} for b in self.bids],
            "asks": [{"price": a.price, "volume": a.volume} for a in self.asks],
        }


@dataclass
class MinutePoint:
    """One point of an intraday minute series."""

    time: str
    price: float
    volume: float

    def to_dict(self) -> dict[str, Any]:
        return {"time": self.time, "price": self.price, "volume": self.volume}


@dataclass
class Trade:
    """One tick-by-tick trade record."""

    time: str
    price: float
    volume: float
    order_count: int = 0
    side: int = 0  # 0 buy, 1 sell, 2 neutral

    def to_dict(self) -> dict[str, Any]:
        return {
            "time": self.time,
            "price": self.price,
            "volume": self.volume,
            "order_count": self.order_count,
            "side": self.side,
        }
