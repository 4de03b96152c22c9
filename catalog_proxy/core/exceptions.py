"""Custom exception classes for the application."""
from typing import Any


class AppException(Exception):
    """Base exception for the application."""

    def __init__(self, message: str, detail: Any = None):
        self.message = message
        self.detail = detail
        super().__init__(message)


class NotFoundError(AppException):
    """Resource not found."""
    pass


class ValidationError(AppException):
    """Invalid input, rejected before any network call."""
    pass


class RateLimitError(AppException):
    """Request admission refused by the rate limiter."""
    pass


class CompletionError(AppException):
    """The completion provider could not be reached or answered with an error status.

    Malformed JSON inside a successful reply is NOT a CompletionError; the
    translator degrades to an empty filter in that case.
    """
    pass


class NlqFailedError(AppException):
    """Natural-language query failed; reported to clients as NLQ_FAILED."""

    code = "NLQ_FAILED"

    def __init__(self, message: str, latency_ms: int, detail: Any = None):
        self.latency_ms = latency_ms
        super().__init__(message, detail)
