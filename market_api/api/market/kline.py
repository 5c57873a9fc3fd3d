"""
Kline and intraday endpoints.

Stock day/week/month bars are front-adjusted (with unadjusted fallback);
index bars and minute/hour bars come straight from the TDX server.
"""

from fastapi import APIRouter, Depends, Query

from ...core.config import Settings, get_settings
from ...core.exceptions import UpstreamFetchError, ValidationError
from ...services.market_data import KlineDispatcher, QuoteService, parse_limit
from ...services.tdx import parse_code
from ..dependencies.market_deps import get_kline_dispatcher, get_quote_service
from ..envelope import ApiResponse, success

router = APIRouter()


@router.get("/kline", response_model=ApiResponse)
async def get_kline(
    code: str = Query(default="", description="Symbol, e.g. sz000001"),
    kline_type: str = Query(
        default="",
        alias="type",
        description="minute1/minute5/minute15/minute30/hour/day/week/month",
    ),
    dispatcher: KlineDispatcher = Depends(get_kline_dispatcher),
) -> ApiResponse:
    """Full kline history for a stock (no window applied)."""
    exchange, symbol = parse_code(code)
    try:
        series = await dispatcher.stock_kline(exchange, symbol, kline_type)
    except UpstreamFetchError as e:
        raise UpstreamFetchError(
            f"failed to fetch kline: {e.message}", source=e.source, code=symbol
        ) from e
    return success(series.to_dict())


@router.get("/kline-history", response_model=ApiResponse)
async def get_kline_history(
    code: str = Query(default=""),
    kline_type: str = Query(default="", alias="type"),
    limit: str | None = Query(default=None, description="1-800, default 100"),
    dispatcher: KlineDispatcher = Depends(get_kline_dispatcher),
    settings: Settings = Depends(get_settings),
) -> ApiResponse:
    """The most recent `limit` bars of a stock."""
    exchange, symbol = parse_code(code)
    window = parse_limit(limit, settings.kline_default_limit, settings.kline_max_limit)
    try:
        series = await dispatcher.stock_kline(exchange, symbol, kline_type, window)
    except UpstreamFetchError as e:
        raise UpstreamFetchError(
            f"failed to fetch kline: {e.message}", source=e.source, code=symbol
        ) from e
    return success(series.to_dict())


@router.get("/index", response_model=ApiResponse)
async def get_index(
    code: str = Query(default="", description="Index symbol, e.g. sh000001"),
    kline_type: str = Query(default="", alias="type"),
    limit: str | None = Query(default=None),
    dispatcher: KlineDispatcher = Depends(get_kline_dispatcher),
    settings: Settings = Depends(get_settings),
) -> ApiResponse:
    """Index bars bounded to `limit`."""
    if not code.strip():
        raise ValidationError("index code is required")
    exchange, symbol = parse_code(code, index=True)
    window = parse_limit(limit, settings.kline_default_limit, settings.kline_max_limit)
    try:
        series = await dispatcher.index_kline(exchange, symbol, kline_type, window)
    except UpstreamFetchError as e:
        raise UpstreamFetchError(
            f"failed to fetch index data: {e.message}", source=e.source, code=symbol
        ) from e
    return success(series.to_dict())


@router.get("/minute", response_model=ApiResponse)
async def get_minute(
    code: str = Query(default=""),
    date: str | None = Query(default=None, description="YYYYMMDD, default today"),
    service: QuoteService = Depends(get_quote_service),
) -> ApiResponse:
    """Minute price series of one trading day."""
    points = await service.get_minute(code, date)
    return success({"count": len(points), "list": [p.to_dict() for p in points]})


@router.get("/trade", response_model=ApiResponse)
async def get_trade(
    code: str = Query(default=""),
    date: str | None = Query(default=None, description="YYYYMMDD, default today"),
    service: QuoteService = Depends(get_quote_service),
) -> ApiResponse:
    """Tick trades: today's latest, or the whole of a past day."""
    trades = await service.get_trade(code, date)
    return success({"count": len(trades), "list": [t.to_dict() for t in trades]})
