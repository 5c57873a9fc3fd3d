"""
Multi-exchange fan-out for symbol search, code listing and market breadth.

Every request fetches the partitions' listings fresh. A partition whose fetch
fails or times out is skipped; the aggregate is still returned.
"""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any
from zoneinfo import ZoneInfo

import structlog

from ...core.exceptions import UpstreamFetchError
from ..tdx.client import MarketDataClient
from ..tdx.types import ALL_EXCHANGES, Exchange, InstrumentListing

logger = structlog.get_logger()


def select_exchanges(exchange_filter: str | None) -> tuple[Exchange, ...]:
    """One partition for "sh"/"sz"/"bj" (any case), otherwise all three in order."""
    try:
        return (Exchange((exchange_filter or "").strip().lower()),)
    except ValueError:
        return ALL_EXCHANGES


@dataclass
class ExchangeStats:
    """Up/down/flat tallies of one partition's equities."""

    total: int = 0
    up: int = 0
    down: int = 0
    flat: int = 0

    @classmethod
    def tally(cls, listings: list[InstrumentListing]) -> "ExchangeStats":
        stats = cls()
        for listing in listings:
            if not listing.is_stock:
                continue
            stats.total += 1
            direction = listing.direction
            if direction > 0:
                stats.up += 1
            elif direction < 0:
                stats.down += 1
            else:
                stats.flat += 1
        return stats

    def to_dict(self) -> dict[str, int]:
        return {"total": self.total, "up": self.up, "down": self.down, "flat": self.flat}


@dataclass
class MarketStats:
    partitions: dict[Exchange, ExchangeStats] = field(default_factory=dict)
    update_time: str = ""

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            exchange.value: self.partitions.get(exchange, ExchangeStats()).to_dict()
            for exchange in ALL_EXCHANGES
        }
        data["update_time"] = self.update_time
        return data


@dataclass
class CodeListing:
    total: int = 0
    exchanges: dict[str, int] = field(default_factory=dict)
    codes: list[dict[str, str]] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"total": self.total, "exchanges": self.exchanges, "codes": self.codes}


class ExchangeAggregator:
    """Queries the exchange partitions and merges their listings."""

    def __init__(
        self,
        client: MarketDataClient,
        search_cap: int = 50,
        partition_timeout: float = 15.0,
        timezone: str = "Asia/Shanghai",
    ):
        self.client = client
        self.search_cap = search_cap
        self.partition_timeout = partition_timeout
        self.timezone = ZoneInfo(timezone)

    async def _listing(self, exchange: Exchange) -> list[InstrumentListing] | None:
        """Fetch one partition's listing, or None when it failed."""
        try:
            return await asyncio.wait_for(
                self.client.get_code_all(exchange), timeout=self.partition_timeout
            )
        except (UpstreamFetchError, TimeoutError) as e:
            logger.warning(
                "Skipping exchange partition",
                exchange=exchange.value,
                error=str(e) or "timeout",
                error_type=type(e).__name__,
            )
            return None
        except Exception as e:
            logger.error(
                "Skipping exchange partition after unexpected error",
                exchange=exchange.value,
                error=repr(e),
                error_type=type(e).__name__,
            )
            return None

    async def _listings(
        self, exchanges: tuple[Exchange, ...]
    ) -> list[tuple[Exchange, list[InstrumentListing] | None]]:
        results = await asyncio.gather(
            *(self._listing(ex) for ex in exchanges), return_exceptions=True
        )
        return [
            (exchange, None if isinstance(result, BaseException) else result)
            for exchange, result in zip(exchanges, results)
        ]

    async def search(self, keyword: str) -> list[dict[str, str]]:
        """
        Equities whose code or name contains `keyword` (case-sensitive).

        Partitions are scanned sequentially in sh, sz, bj order and scanning
        stops as soon as the result cap is reached.
        """
        matches: list[dict[str, str]] = []
        for exchange in ALL_EXCHANGES:
            listings = await self._listing(exchange)
            if listings is None:
                continue
            for listing in listings:
                if listing.is_stock and (
                    keyword in listing.code or keyword in listing.name
                ):
                    matches.append(
                        {
                            "code": listing.code,
                            "name": listing.name,
                            "exchange": exchange.value,
                        }
                    )
                if len(matches) >= self.search_cap:
                    break
            if len(matches) >= self.search_cap:
                break

        logger.info("Symbol search completed", keyword=keyword, result_count=len(matches))
        return matches

    async def list_codes(self, exchange_filter: str | None) -> CodeListing:
        """Equities of the selected partitions with per-partition counts."""
        result = CodeListing()
        for exchange, listings in await self._listings(select_exchanges(exchange_filter)):
            if listings is None:
                continue
            count = 0
            for listing in listings:
                if listing.is_stock:
                    result.codes.append(
                        {
                            "code": listing.code,
                            "name": listing.name,
                            "exchange": exchange.value,
                        }
                    )
                    count += 1
            result.exchanges[exchange.value] = count
            result.total += count
        return result

    async def market_stats(self) -> MarketStats:
        """Per-partition breadth tallies; failed partitions report zeros."""
        stats = MarketStats()
        for exchange, listings in await self._listings(ALL_EXCHANGES):
            stats.partitions[exchange] = (
                ExchangeStats.tally(listings) if listings is not None else ExchangeStats()
            )
        stats.update_time = datetime.now(self.timezone).strftime("%Y-%m-%d %H:%M:%S")

        logger.info(
            "Market stats computed",
            **{ex.value: s.total for ex, s in stats.partitions.items()},
        )
        return stats
