"""
Market Data API module.

Aggregates all market data endpoints into a single router.
"""

from fastapi import APIRouter

from . import codes, kline, quotes

# Create main router with common prefix and tags
router = APIRouter(prefix="/api", tags=["Market Data"])

# Include all sub-routers
router.include_router(quotes.router)
router.include_router(kline.router)
router.include_router(codes.router)

__all__ = ["router"]
