"""
Application exception taxonomy.

Every exception carries the HTTP status and the machine-readable error code
that the API surfaces verbatim to the caller.
"""

from typing import Optional


class AppException(Exception):
    """Base application exception with message, status code and optional data."""

    status_code: int = 400
    error_code: str = "error"

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        error_code: Optional[str] = None,
        data: Optional[dict] = None
    ):
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        if error_code is not None:
            self.error_code = error_code
        self.data = data or {}
        super().__init__(self.message)


class InputValidationError(AppException):
    """Malformed input. Raised before any side effect."""
    status_code = 400
    error_code = "validation_error"


class NotFoundError(AppException):
    """Referenced entity does not exist."""
    status_code = 404
    error_code = "not_found"


class AuthorizationError(AppException):
    """Caller lacks the required credential."""
    status_code = 401
    error_code = "unauthorized"


class ConflictError(AppException):
    """Request conflicts with the current state of the resource."""
    status_code = 400
    error_code = "conflict"


class ExternalServiceError(AppException):
    """Storage or third-party API call failed."""
    status_code = 500
    error_code = "internal_error"


class RateLimitExceededError(AppException):
    status_code = 429
    error_code = "rate_limited"

    def __init__(self, message: str, retry_after: int = 60):
        super().__init__(message, data={"retry_after": retry_after})
        self.retry_after = retry_after


class PartialBatchFailure(AppException):
    """
    One or more items of a batch sweep failed while the others succeeded.

    Carries the sweep summary so the caller (the Celery worker) can report
    which items will be retried on the next run.
    """
    status_code = 500
    error_code = "partial_batch_failure"

    def __init__(self, message: str, summary: dict):
        super().__init__(message, data=summary)
        self.summary = summary
