"""
Rate limiting dependencies for API endpoints.

Uses slowapi keyed by client address. Storage defaults to in-process memory;
point RATE_LIMIT_STORAGE_URI at Redis to share limits across workers.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

from ...core.config import get_settings

_settings = get_settings()

limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[_settings.rate_limit_default],
    storage_uri=_settings.rate_limit_storage_uri,
    enabled=_settings.rate_limit_enabled,
)


def rate_limit_fanout(func):
    """
    Restrictive rate limit for endpoints that query every exchange partition
    or many symbols at once.

    Usage:
        @router.get("/market-stats")
        @rate_limit_fanout
        async def market_stats(request: Request):
            pass
    """
    return limiter.limit(_settings.rate_limit_fanout)(func)
