"""Exception handlers for the FastAPI application."""

import logging
from typing import Optional
from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException
from fastapi.responses import JSONResponse

from app.core.exceptions import AppException, RateLimitExceededError

logger = logging.getLogger(__name__)


def create_error_response(
    status_code: int,
    error_code: str,
    message: str,
    data: Optional[dict] = None,
    headers: Optional[dict] = None
) -> JSONResponse:
    """Create a standardized error response."""
    content = {
        "success": False,
        "error_code": error_code,
        "message": message,
    }
    if data:
        content["data"] = data
    return JSONResponse(status_code=status_code, content=content, headers=headers)


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """Handle application-specific exceptions."""
    headers = None
    if isinstance(exc, RateLimitExceededError):
        headers = {"Retry-After": str(exc.retry_after)}

    if exc.status_code >= 500:
        logger.error(f"{exc.error_code} on {request.method} {request.url.path}: {exc.message}")
    else:
        logger.info(f"{exc.error_code} on {request.method} {request.url.path}: {exc.message}")

    return create_error_response(exc.status_code, exc.error_code, exc.message, exc.data, headers)


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Handle HTTP exceptions with standardized response format."""
    error_code = "method_not_allowed" if exc.status_code == status.HTTP_405_METHOD_NOT_ALLOWED else "http_error"
    return create_error_response(exc.status_code, error_code, str(exc.detail), headers=getattr(exc, "headers", None))


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle all other unhandled exceptions with error logging."""
    logger.exception(
        "Unhandled exception occurred",
        extra={"path": request.url.path, "method": request.method}
    )
    return create_error_response(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        error_code="internal_error",
        message="Internal server error"
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Render unparseable or mistyped request bodies as validation errors."""
    errors = exc.errors()
    message = "Invalid request body"
    if errors:
        location = ".".join(str(part) for part in errors[0].get("loc", ()) if part != "body")
        detail = errors[0].get("msg", "")
        message = f"{location}: {detail}" if location else detail or message
    return create_error_response(
        status_code=status.HTTP_400_BAD_REQUEST,
        error_code="validation_error",
        message=message
    )
