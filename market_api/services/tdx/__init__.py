"""Upstream market data adapters (TDX quote servers, 10jqka adjusted klines)."""

from .client import AdjustedKlineSource, MarketDataClient
from .ths import ThsKlineClient
from .tdx_client import TdxClient
from .types import (
    ALL_EXCHANGES,
    Bar,
    BarSeries,
    Exchange,
    InstrumentListing,
    KlineType,
    MinutePoint,
    Quote,
    Trade,
    is_stock,
    parse_code,
)

__all__ = [
    "ALL_EXCHANGES",
    "AdjustedKlineSource",
    "Bar",
    "BarSeries",
    "Exchange",
    "InstrumentListing",
    "KlineType",
    "MarketDataClient",
    "MinutePoint",
    "Quote",
    "TdxClient",
    "ThsKlineClient",
    "Trade",
    "is_stock",
    "parse_code",
]
