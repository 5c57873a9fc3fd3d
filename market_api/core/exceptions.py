"""
Custom exception hierarchy for proper error categorization.

Every AppError becomes the failure envelope returned by the API. The status
code grades the error for logging (warning below 500, error otherwise):
- User errors (400-level): Client sent bad data
- Server errors (500-level): Our configuration failed
- Upstream errors (502): The market data source failed

Usage:
    from market_api.core.exceptions import UpstreamFetchError, ValidationError

    raise ValidationError("stock code is required")
    raise UpstreamFetchError("failed to fetch kline: timeout", source="tdx")
"""

from typing import Any


class AppError(Exception):
    """
    Base application error with HTTP status mapping.

    All custom exceptions inherit from this to enable consistent error handling.
    """

    # Default status code (subclasses override)
    status_code: int = 500
    error_type: str = "internal_error"

    def __init__(self, message: str, **context: Any):
        """
        Initialize error with message and optional context.

        Args:
            message: Human-readable error description
            **context: Additional key-value pairs for logging (e.g., symbol, exchange)
        """
        super().__init__(message)
        self.message = message
        self.context = context

    def to_dict(self) -> dict[str, Any]:
        """Convert to dict for JSON response and structured logging."""
        return {
            "error_type": self.error_type,
            "message": self.message,
            "status_code": self.status_code,
            **self.context,
        }


# ===== 400-level: Client Errors =====


class ValidationError(AppError):
    """Missing or invalid request parameter (empty symbol, oversized batch, wrong method)."""

    status_code = 400
    error_type = "validation_error"


# ===== 500-level: Server Errors =====


class ConfigurationError(AppError):
    """
    Application misconfigured (e.g., no TDX hosts, unparsable host entry).

    Should be caught during startup, not during request handling.
    """

    status_code = 500
    error_type = "configuration_error"


# ===== 502: Upstream Errors =====


class UpstreamFetchError(AppError):
    """
    The external market data source failed or returned unusable data.

    Examples:
        - TDX server closed the connection mid-request
        - 10jqka returned an HTML error page instead of JSONP
        - Empty kline page for an unknown symbol

    Maps to 502 Bad Gateway (the upstream is at fault, retry may help).
    """

    status_code = 502
    error_type = "upstream_fetch_error"

    def __init__(self, message: str, source: str, **context: Any):
        """
        Initialize with the upstream source name for easier debugging.

        Args:
            message: Error description, including the upstream message
            source: Source identifier ("tdx" or "ths")
            **context: Additional context (e.g., symbol, exchange)
        """
        super().__init__(message, source=source, **context)
        self.source = source
