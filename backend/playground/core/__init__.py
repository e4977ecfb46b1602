"""Core utilities: errors, logging, metrics and middleware."""

from playground.core.errors import AppError, ErrorCode, ErrorResponse
from playground.core.logging import get_logger, setup_logging
from playground.core.metrics import metrics

__all__ = [
    "AppError",
    "ErrorCode",
    "ErrorResponse",
    "get_logger",
    "metrics",
    "setup_logging",
]
