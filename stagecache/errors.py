"""
stagecache - Core Error Types

Defines the exception hierarchy for the cache runtime.
All exceptions inherit from StageCacheError for consistent error handling.

Error kinds:
- Construction faults: the cache directory cannot be used at all
- Invalid arguments: rejected synchronously by set(), state untouched
- Flush failures: snapshot or entry writes failed during reconciliation
"""

from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """
    Standard error codes for structured error reporting.
    """

    # Input validation errors
    INVALID_ARGUMENT = "INVALID_ARGUMENT"
    INVALID_KEY = "INVALID_KEY"
    INVALID_TTL = "INVALID_TTL"
    UNSUPPORTED_VALUE = "UNSUPPORTED_VALUE"

    # Configuration errors
    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"

    # Cache errors
    CACHE_UNUSABLE = "CACHE_UNUSABLE"
    CACHE_FAILURE = "CACHE_FAILURE"
    FLUSH_FAILED = "FLUSH_FAILED"

    # Internal errors
    INTERNAL_ERROR = "INTERNAL_ERROR"


class StageCacheError(Exception):
    """Base exception for all stagecache errors."""

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
        error_code: ErrorCode = ErrorCode.INTERNAL_ERROR,
    ):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.error_code = error_code

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to a plain dictionary (for logs and reports)."""
        return {
            "error": self.__class__.__name__,
            "error_code": self.error_code.value,
            "message": self.message,
            "details": self.details,
        }


class ConfigurationError(StageCacheError):
    """Raised when configuration is invalid or missing."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message, details, error_code=ErrorCode.CONFIGURATION_ERROR)


class CacheError(StageCacheError):
    """Base exception for cache-related errors."""

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
        error_code: ErrorCode = ErrorCode.CACHE_FAILURE,
    ):
        super().__init__(message, details, error_code=error_code)


class CacheConstructionError(CacheError):
    """Raised when the cache directory cannot be prepared for use."""

    def __init__(self, path: str, reason: str, details: dict[str, Any] | None = None):
        message = f"Cache directory unusable: {path} ({reason})"
        error_details = details or {}
        error_details.update({"path": path, "reason": reason})
        super().__init__(message, error_details, error_code=ErrorCode.CACHE_UNUSABLE)
        self.path = path
        self.reason = reason


class CacheInvalidArgumentError(CacheError, ValueError):
    """Raised when a key, value or TTL passed to the cache has an unsupported shape."""

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
        error_code: ErrorCode = ErrorCode.INVALID_ARGUMENT,
    ):
        super().__init__(message, details, error_code=error_code)


class CacheFlushError(CacheError):
    """Raised when staged changes could not be persisted during flush."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message, details, error_code=ErrorCode.FLUSH_FAILED)


def extract_error_code(error: Exception) -> ErrorCode:
    """
    Extract appropriate ErrorCode from an exception.

    Args:
        error: Exception to categorize

    Returns:
        Appropriate ErrorCode for the exception
    """
    if isinstance(error, StageCacheError):
        return error.error_code

    if isinstance(error, OSError):
        return ErrorCode.CACHE_FAILURE

    return ErrorCode.INTERNAL_ERROR
