"""
FastAPI application entry point for the A-share market data API.
"""

import logging
import time
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi.middleware import SlowAPIMiddleware

from .api.dependencies.rate_limit import limiter
from .api.envelope import install_error_handlers
from .api.health import router as health_router
from .api.market import router as market_router
from .core.config import get_settings
from .core.exceptions import AppError
from .services.tdx import TdxClient, ThsKlineClient

logging.basicConfig(level=logging.INFO)

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Create the long-lived upstream clients shared by every request."""
    settings = get_settings()

    logger.info("Starting market data API", environment=settings.environment)

    market_client = TdxClient(settings)
    adjusted_source = ThsKlineClient(settings)

    try:
        await market_client.connect()
    except AppError as e:
        # Requests will fail with upstream errors until a server is reachable
        logger.error(
            "TDX connection failed at startup",
            error=e.message,
            error_type=e.error_type,
        )

    app.state.market_client = market_client
    app.state.adjusted_source = adjusted_source
    app.state.started_at = time.monotonic()

    try:
        yield
    finally:
        await market_client.close()
        await adjusted_source.close()
        logger.info("Upstream clients closed")


def create_app() -> FastAPI:
    """Create and configure FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="A-Share Market Data API",
        description="Quotes, ticks and OHLCV klines for SH/SZ/BJ listed securities",
        version=settings.version,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    app.state.limiter = limiter
    # Middleware breaks FastAPI TestClient
    if settings.environment != "test":
        app.add_middleware(SlowAPIMiddleware)

    install_error_handlers(app)

    app.include_router(health_router, prefix="/api", tags=["health"])
    app.include_router(market_router)

    return app


app = create_app()

if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "market_api.main:app",
        host="0.0.0.0",  # nosec B104 - Required for Docker container
        port=8080,
        reload=settings.is_development,
        log_config=None,
    )
