"""
Health check and server status endpoints.
"""

import time
from datetime import timedelta
from typing import Any

import pandas as pd
import structlog
from fastapi import APIRouter, Depends, Request

from ..core.config import Settings, get_settings
from ..services.market_data import get_market_session
from ..services.tdx import MarketDataClient
from .dependencies.market_deps import get_market_client
from .envelope import ApiResponse, success

logger = structlog.get_logger()

router = APIRouter()


def get_started_at(request: Request) -> float | None:
    """Dependency to get the monotonic startup time from app state."""
    return getattr(request.app.state, "started_at", None)


def format_uptime(seconds: float | None) -> str:
    if seconds is None:
        return "unknown"
    return str(timedelta(seconds=int(seconds)))


@router.get("/status", response_model=ApiResponse)
async def server_status(
    client: MarketDataClient = Depends(get_market_client),
    started_at: float | None = Depends(get_started_at),
    settings: Settings = Depends(get_settings),
) -> ApiResponse:
    """
    Server status: running state, upstream connection, version, uptime,
    and the current exchange session.
    """
    now = pd.Timestamp.now(tz=settings.market_timezone)
    uptime = time.monotonic() - started_at if started_at is not None else None

    status = {
        "status": "running",
        "connected": client.is_connected,
        "server": getattr(client, "server", None),
        "version": settings.version,
        "uptime": format_uptime(uptime),
        "session": get_market_session(now, settings.market_timezone),
        "timestamp": now.isoformat(),
    }
    logger.info("Server status checked", connected=status["connected"])
    return success(status)


@router.get("/health")
async def health_check() -> dict[str, Any]:
    """Liveness check; not wrapped in the response envelope."""
    return {"status": "healthy", "time": str(int(time.time()))}
