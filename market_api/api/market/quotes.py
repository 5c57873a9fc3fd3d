"""
Quote snapshot endpoints.
"""

from fastapi import APIRouter, Depends, Query, Request
from pydantic import BaseModel, Field

from ...core.exceptions import ValidationError
from ...services.market_data import QuoteService
from ..dependencies.market_deps import get_quote_service
from ..dependencies.rate_limit import rate_limit_fanout
from ..envelope import ApiResponse, success

router = APIRouter()


class BatchQuoteRequest(BaseModel):
    """Batch quote request body."""

    codes: list[str] = Field(default_factory=list, description="Up to 50 symbols")


@router.get("/quote", response_model=ApiResponse)
async def get_quote(
    code: str = Query(default="", description="Symbol, e.g. sh600000"),
    service: QuoteService = Depends(get_quote_service),
) -> ApiResponse:
    """Five-level real-time quote for one symbol."""
    quotes = await service.get_quote(code)
    return success([q.to_dict() for q in quotes])


@router.post("/batch-quote", response_model=ApiResponse)
@rate_limit_fanout
async def batch_quote(
    request: Request,
    body: BatchQuoteRequest,
    service: QuoteService = Depends(get_quote_service),
) -> ApiResponse:
    """Quotes for up to 50 symbols in one call."""
    quotes = await service.batch_quote(body.codes)
    return success([q.to_dict() for q in quotes])


@router.api_route("/batch-quote", methods=["GET", "PUT", "PATCH", "DELETE"])
async def batch_quote_wrong_method(request: Request) -> ApiResponse:
    raise ValidationError("only POST requests are supported", method=request.method)


@router.get("/stock-info", response_model=ApiResponse)
async def get_stock_info(
    code: str = Query(default=""),
    service: QuoteService = Depends(get_quote_service),
) -> ApiResponse:
    """Quote, last 30 adjusted daily bars and today's minutes in one response."""
    return success(await service.stock_info(code))
