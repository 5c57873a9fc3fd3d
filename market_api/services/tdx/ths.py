"""
Front-adjusted daily klines from 10jqka (THS).

The `v6/line/hs_{code}/01/all.js` endpoint returns a JSONP payload holding the
whole front-adjusted daily history in a packed form:
- price: groups of four integers per bar (low, open-low, high-low, close-low),
  scaled by priceFactor
- volumn: one volume per bar
- dates: MMDD per bar, with years expanded from sortYear [[year, bar_count], ...]
"""

import json
from datetime import datetime
from typing import Any

import httpx
import structlog

from ...core.config import Settings
from ...core.exceptions import UpstreamFetchError
from .client import AdjustedKlineSource
from .types import Bar, Exchange

logger = structlog.get_logger()

# 00 = unadjusted, 01 = front-adjusted, 02 = back-adjusted
QFQ = "01"


def parse_all_js(text: str) -> list[Bar]:
    """
    Parse a THS all.js JSONP body into bars, oldest first.

    Raises:
        ValueError: If the payload is not a well-formed kline document
    """
    start, end = text.find("("), text.rfind(")")
    if start < 0 or end <= start:
        raise ValueError("response is not a JSONP payload")
    data: dict[str, Any] = json.loads(text[start + 1 : end])

    factor = float(data.get("priceFactor") or 100)
    prices = [int(p) for p in data["price"].split(",") if p != ""]
    volumes = [v for v in data["volumn"].split(",") if v != ""]
    dates = [d for d in data["dates"].split(",") if d != ""]

    years: list[int] = []
    for year, count in data["sortYear"]:
        years.extend([int(year)] * int(count))

    total = len(dates)
    if len(prices) != total * 4 or len(volumes) != total or len(years) != total:
        raise ValueError(
            f"inconsistent kline payload: {total} dates, {len(prices)} prices, "
            f"{len(volumes)} volumes, {len(years)} years"
        )

    bars = []
    for i, (year, mmdd) in enumerate(zip(years, dates)):
        low, open_delta, high_delta, close_delta = prices[i * 4 : i * 4 + 4]
        bars.append(
            Bar(
                time=datetime(year, int(mmdd[:2]), int(mmdd[2:]), 15, 0),
                open=(low + open_delta) / factor,
                high=(low + high_delta) / factor,
                low=low / factor,
                close=(low + close_delta) / factor,
                volume=float(volumes[i]),
            )
        )
    return bars


class ThsKlineClient(AdjustedKlineSource):
    """Front-adjusted daily kline source over HTTP with a pooled httpx client."""

    def __init__(self, settings: Settings, client: httpx.AsyncClient | None = None):
        self.settings = settings
        self.base_url = settings.ths_base_url.rstrip("/")
        self.client = client or httpx.AsyncClient(
            timeout=settings.ths_timeout,
            headers={
                "User-Agent": "Mozilla/5.0 (Windows NT 10.0; Win64; x64)",
                "Referer": "https://stockpage.10jqka.com.cn/",
            },
            limits=httpx.Limits(max_keepalive_connections=5, max_connections=10),
        )

    async def close(self) -> None:
        await self.client.aclose()

    async def get_qfq_day(self, exchange: Exchange, code: str) -> list[Bar]:
        url = f"{self.base_url}/v6/line/hs_{code}/{QFQ}/all.js"
        try:
            response = await self.client.get(url)
            response.raise_for_status()
            bars = parse_all_js(response.text)
        except (httpx.HTTPError, ValueError, KeyError, TypeError) as e:
            raise UpstreamFetchError(
                f"front-adjusted kline unavailable: {e}",
                source="ths",
                code=code,
                exchange=exchange.value,
            ) from e

        if not bars:
            raise UpstreamFetchError(
                "front-adjusted kline is empty", source="ths", code=code
            )

        logger.info(
            "Front-adjusted daily bars fetched",
            code=code,
            exchange=exchange.value,
            bars_count=len(bars),
        )
        return bars
