"""
Dependencies for market data endpoints.

The upstream clients live on app.state (created once in the lifespan); the
services built on top of them are cheap and constructed per request.
"""

from fastapi import Depends, Request

from ...core.config import Settings, get_settings
from ...services.market_data import (
    AdjustedSeriesFetcher,
    ExchangeAggregator,
    KlineDispatcher,
    QuoteService,
)
from ...services.tdx import AdjustedKlineSource, MarketDataClient


def get_market_client(request: Request) -> MarketDataClient:
    """Get the shared TDX client from app state."""
    client: MarketDataClient = request.app.state.market_client
    return client


def get_adjusted_source(request: Request) -> AdjustedKlineSource:
    """Get the shared front-adjusted kline source from app state."""
    source: AdjustedKlineSource = request.app.state.adjusted_source
    return source


def get_adjusted_fetcher(
    client: MarketDataClient = Depends(get_market_client),
    source: AdjustedKlineSource = Depends(get_adjusted_source),
    settings: Settings = Depends(get_settings),
) -> AdjustedSeriesFetcher:
    return AdjustedSeriesFetcher(client, source, settings.fallback_day_count)


def get_kline_dispatcher(
    client: MarketDataClient = Depends(get_market_client),
    adjusted: AdjustedSeriesFetcher = Depends(get_adjusted_fetcher),
) -> KlineDispatcher:
    return KlineDispatcher(client, adjusted)


def get_aggregator(
    client: MarketDataClient = Depends(get_market_client),
    settings: Settings = Depends(get_settings),
) -> ExchangeAggregator:
    return ExchangeAggregator(
        client,
        search_cap=settings.search_result_cap,
        partition_timeout=settings.partition_timeout_seconds,
        timezone=settings.market_timezone,
    )


def get_quote_service(
    client: MarketDataClient = Depends(get_market_client),
    adjusted: AdjustedSeriesFetcher = Depends(get_adjusted_fetcher),
    settings: Settings = Depends(get_settings),
) -> QuoteService:
    return QuoteService(
        client,
        adjusted,
        batch_max=settings.batch_quote_max,
        trade_today_count=settings.trade_today_count,
        info_day_count=settings.stock_info_day_count,
        timezone=settings.market_timezone,
    )
