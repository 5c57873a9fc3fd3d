"""
Application configuration using Pydantic Settings.

Supports hierarchical environment configuration:
- .env.base: Common non-secret defaults (committed to git)
- .env.{ENVIRONMENT}: Environment-specific overrides (gitignored)
- Environment variables: Highest priority
"""

import os
from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict

# Get environment from env var, default to development
ENV = os.getenv("ENVIRONMENT", "development")


class Settings(BaseSettings):
    """Application settings with hierarchical env file support."""

    model_config = SettingsConfigDict(
        env_file=[
            ".env.base",
            f".env.{ENV}",
        ],
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Environment
    environment: Literal["development", "test", "production"] = "development"
    version: str = "1.0.0"
    cors_origins: list[str] = ["*"]

    # TDX quote servers ("host:port"), tried in order until one accepts
    tdx_hosts: list[str] = [
        "119.147.212.81:7709",
        "124.71.187.122:7709",
        "115.238.90.165:7709",
        "180.153.18.170:7709",
    ]
    tdx_connect_timeout: float = 5.0
    tdx_page_size: int = 800  # Max bars per TDX kline request
    tdx_max_pages: int = 30  # Upper bound when paging a full history

    # Front-adjusted daily kline source (10jqka)
    ths_base_url: str = "https://d.10jqka.com.cn"
    ths_timeout: float = 10.0

    # Kline windowing
    kline_default_limit: int = 100
    kline_max_limit: int = 800
    fallback_day_count: int = 800  # Unadjusted bars used when the adjusted source fails

    # Quotes / intraday
    batch_quote_max: int = 50
    trade_today_count: int = 1800
    stock_info_day_count: int = 30

    # Multi-exchange aggregation
    search_result_cap: int = 50
    partition_timeout_seconds: float = 15.0

    # Exchange calendar
    market_timezone: str = "Asia/Shanghai"

    # Rate limiting (slowapi)
    rate_limit_enabled: bool = True
    rate_limit_storage_uri: str = "memory://"
    rate_limit_default: str = "200/minute"
    rate_limit_fanout: str = "30/minute"

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.environment == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.environment == "production"


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings."""
    return Settings()
