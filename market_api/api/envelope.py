"""
Response envelope shared by every API endpoint.

Success: {"code": 0, "message": "success", "data": ...}
Failure: {"code": -1, "message": "<diagnostic>", "data": null}

Failures are sent with HTTP 200 and clients branch on `code`. Rate-limit
rejections are the exception and use 429 with Retry-After.
"""

from typing import Any

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from slowapi.errors import RateLimitExceeded

from ..core.exceptions import AppError

logger = structlog.get_logger()

SUCCESS_CODE = 0
FAILURE_CODE = -1


class ApiResponse(BaseModel):
    """Uniform response wrapper."""

    code: int = Field(default=SUCCESS_CODE, description="0 on success, -1 on failure")
    message: str = Field(default="success", description="Human-readable diagnostic")
    data: Any = Field(default=None, description="Endpoint payload")


def success(data: Any) -> ApiResponse:
    return ApiResponse(data=data)


def failure(message: str, status_code: int = 200) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ApiResponse(code=FAILURE_CODE, message=message).model_dump(),
    )


def install_error_handlers(app: FastAPI) -> None:
    """Map application, validation and rate-limit errors onto the failure envelope."""

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
        log = logger.warning if exc.status_code < 500 else logger.error
        log(
            "Request failed",
            path=request.url.path,
            method=request.method,
            **exc.to_dict(),
        )
        return failure(exc.message)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        errors = "; ".join(
            f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}"
            for err in exc.errors()
        )
        logger.warning("Invalid request", path=request.url.path, errors=errors)
        return failure(f"invalid request parameters: {errors}")

    @app.exception_handler(RateLimitExceeded)
    async def rate_limit_handler(request: Request, exc: Exception) -> JSONResponse:
        detail = exc.detail if isinstance(exc, RateLimitExceeded) else str(exc)
        logger.warning("Rate limit exceeded", path=request.url.path, detail=detail)
        response = failure(f"rate limit exceeded: {detail}", 429)
        response.headers["Retry-After"] = "60"
        return response
