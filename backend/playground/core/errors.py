"""
Structured error handling with stable error codes.

No stack traces are exposed to clients. All errors are mapped to
stable, documented error codes for reliable client handling.
"""

from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """Stable error codes for API responses."""

    # General errors (1xxx)
    INTERNAL_ERROR = "E1000"
    VALIDATION_ERROR = "E1001"
    NOT_FOUND = "E1002"
    METHOD_NOT_ALLOWED = "E1003"
    REQUEST_TOO_LARGE = "E1004"
    RATE_LIMITED = "E1005"

    # Authentication errors (2xxx)
    UNAUTHORIZED = "E2000"
    INVALID_CREDENTIALS = "E2001"

    # Authorization errors (3xxx)
    FORBIDDEN = "E3000"

    # Provider errors (4xxx)
    PROVIDER_UNAVAILABLE = "E4000"
    PROVIDER_ERROR = "E4001"
    MODEL_NOT_FOUND = "E4002"
    PROVIDER_BAD_RESPONSE = "E4004"
    PROVIDER_AUTH_FAILED = "E4005"
    PROVIDER_RATE_LIMITED = "E4006"

    # Resource errors (5xxx)
    SESSION_NOT_FOUND = "E5000"
    RUN_NOT_FOUND = "E5001"


@dataclass(frozen=True)
class ErrorResponse:
    """Structured error response for API.

    Format: {error: {code, message, request_id, details?}}
    """

    code: ErrorCode
    message: str
    request_id: str | None = None
    details: dict[str, Any] | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON response."""
        error: dict[str, Any] = {
            "code": self.code.value,
            "message": self.message,
        }
        if self.request_id:
            error["request_id"] = self.request_id
        if self.details:
            error["details"] = self.details
        return {"error": error}


class AppError(Exception):
    """Base application error with structured error detail."""

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        status_code: int = 500,
        details: dict[str, Any] | None = None,
    ):
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details
        super().__init__(message)

    def to_response(self, request_id: str | None = None) -> ErrorResponse:
        """Create error response with request ID."""
        return ErrorResponse(
            code=self.code,
            message=self.message,
            request_id=request_id,
            details=self.details,
        )


# Convenience error classes
class ValidationError(AppError):
    """Validation error (400)."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(ErrorCode.VALIDATION_ERROR, message, 400, details)


class NotFoundError(AppError):
    """Resource not found (404)."""

    def __init__(
        self,
        message: str = "Resource not found",
        code: ErrorCode = ErrorCode.NOT_FOUND,
    ):
        super().__init__(code, message, 404)


class SessionNotFoundError(NotFoundError):
    """Playground session missing or owned by another caller (404)."""

    def __init__(self, message: str = "Session not found"):
        super().__init__(message, ErrorCode.SESSION_NOT_FOUND)


class RunNotFoundError(NotFoundError):
    """Orchestration run missing, finished, or owned by another caller (404)."""

    def __init__(self, message: str = "Run not found"):
        super().__init__(message, ErrorCode.RUN_NOT_FOUND)


class UnauthorizedError(AppError):
    """Authentication required (401)."""

    def __init__(self, message: str = "Authentication required"):
        super().__init__(ErrorCode.UNAUTHORIZED, message, 401)


class InvalidCredentialsError(AppError):
    """Bearer credential unknown or expired (401)."""

    def __init__(self, message: str = "Invalid or expired token"):
        super().__init__(ErrorCode.INVALID_CREDENTIALS, message, 401)


class RateLimitError(AppError):
    """Rate limit exceeded (429)."""

    def __init__(self, message: str = "Rate limit exceeded", details: dict[str, Any] | None = None):
        super().__init__(ErrorCode.RATE_LIMITED, message, 429, details)


class RateLimitExceededError(RateLimitError):
    """Caller exhausted its orchestration budget for the current window (429).

    Carries the limit and the reset timestamp so clients can compute when
    to retry.
    """

    def __init__(self, limit: int, reset_at: float, retry_after_seconds: int):
        self.limit = limit
        self.reset_at = reset_at
        self.retry_after_seconds = retry_after_seconds
        super().__init__(
            f"Rate limit exceeded. You can make up to {limit} requests per window.",
            details={
                "rateLimitExceeded": True,
                "limit": limit,
                "resetTime": datetime.fromtimestamp(reset_at, UTC).isoformat(),
            },
        )


class ProviderError(AppError):
    """Provider error (502)."""

    def __init__(
        self, message: str = "Provider error", details: dict[str, Any] | None = None
    ):
        super().__init__(ErrorCode.PROVIDER_ERROR, message, 502, details)


class ProviderUnavailableError(AppError):
    """Provider unavailable (503)."""

    def __init__(
        self, message: str = "Provider unavailable", details: dict[str, Any] | None = None
    ):
        super().__init__(ErrorCode.PROVIDER_UNAVAILABLE, message, 503, details)


class ProviderBadResponseError(AppError):
    """Provider returned malformed response (502)."""

    def __init__(
        self, message: str = "Provider returned invalid response", details: dict[str, Any] | None = None
    ):
        super().__init__(ErrorCode.PROVIDER_BAD_RESPONSE, message, 502, details)


class ProviderAuthError(AppError):
    """Provider authentication failed (401/403)."""

    def __init__(
        self,
        message: str = "Provider authentication failed",
        status_code: int = 401,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(ErrorCode.PROVIDER_AUTH_FAILED, message, status_code, details)


class ProviderRateLimitError(AppError):
    """Upstream provider throttled the request (429)."""

    def __init__(
        self, message: str = "Provider rate limit exceeded", details: dict[str, Any] | None = None
    ):
        super().__init__(ErrorCode.PROVIDER_RATE_LIMITED, message, 429, details)


class ModelNotFoundError(AppError):
    """Requested model not found (404)."""

    def __init__(self, message: str = "Model not found", details: dict[str, Any] | None = None):
        super().__init__(ErrorCode.MODEL_NOT_FOUND, message, 404, details)
