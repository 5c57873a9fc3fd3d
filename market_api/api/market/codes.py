"""
Symbol search, code listing and market breadth endpoints.

Each of these fans out over the three exchange partitions.
"""

from fastapi import APIRouter, Depends, Query, Request

from ...core.exceptions import ValidationError
from ...services.market_data import ExchangeAggregator
from ..dependencies.market_deps import get_aggregator
from ..dependencies.rate_limit import rate_limit_fanout
from ..envelope import ApiResponse, success

router = APIRouter()


@router.get("/search", response_model=ApiResponse)
@rate_limit_fanout
async def search_codes(
    request: Request,
    keyword: str = Query(default="", description="Substring of code or name"),
    aggregator: ExchangeAggregator = Depends(get_aggregator),
) -> ApiResponse:
    """Up to 50 equities whose code or name contains the keyword."""
    if not keyword:
        raise ValidationError("search keyword is required")
    return success(await aggregator.search(keyword))


@router.get("/codes", response_model=ApiResponse)
@rate_limit_fanout
async def list_codes(
    request: Request,
    exchange: str | None = Query(default=None, description="sh, sz, bj or all"),
    aggregator: ExchangeAggregator = Depends(get_aggregator),
) -> ApiResponse:
    """All equities of one exchange, or of all three."""
    listing = await aggregator.list_codes(exchange)
    return success(listing.to_dict())


@router.get("/market-stats", response_model=ApiResponse)
@rate_limit_fanout
async def market_stats(
    request: Request,
    aggregator: ExchangeAggregator = Depends(get_aggregator),
) -> ApiResponse:
    """Per-exchange up/down/flat counts."""
    stats = await aggregator.market_stats()
    return success(stats.to_dict())
