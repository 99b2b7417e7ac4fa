"""Error definitions for the feed enricher."""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional


class ErrorCategory(Enum):
    """Categories of errors that can occur in the system."""

    CACHE_ERROR = "cache_error"
    NETWORK_ERROR = "network_error"
    DECODE_ERROR = "decode_error"


class ErrorSeverity(Enum):
    """Severity levels for errors."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class BaseError(Exception):
    """Base error class for all feed enricher errors."""

    def __init__(
        self,
        message: str,
        category: ErrorCategory,
        severity: ErrorSeverity,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Initialize base error.

        Args:
            message: Error message
            category: Error category
            severity: Error severity
            details: Optional error details
        """
        super().__init__(message)
        self.message = message
        self.category = category
        self.severity = severity
        self.details = details or {}
        self.timestamp = datetime.now(timezone.utc).isoformat()


class CacheLoadError(BaseError):
    """Raised when a cache snapshot exists but cannot be decoded.

    The run aborts before any fetch and produces no output.
    """

    def __init__(self, cache: str, path: str, reason: str) -> None:
        super().__init__(
            f"cannot load cache '{cache}' from {path}: {reason}",
            ErrorCategory.CACHE_ERROR,
            ErrorSeverity.CRITICAL,
            {"cache": cache, "path": path, "reason": reason},
        )
        self.cache = cache
        self.path = path


class CacheSaveError(BaseError):
    """Raised when a cache snapshot cannot be written."""

    def __init__(self, cache: str, path: str, reason: str) -> None:
        super().__init__(
            f"cannot save cache '{cache}' to {path}: {reason}",
            ErrorCategory.CACHE_ERROR,
            ErrorSeverity.CRITICAL,
            {"cache": cache, "path": path, "reason": reason},
        )
        self.cache = cache
        self.path = path


class FetchError(BaseError):
    """Raised when a network fetch fails or times out."""

    def __init__(self, url: str, reason: str, status: Optional[int] = None) -> None:
        super().__init__(
            f"fetch failed for {url}: {reason}",
            ErrorCategory.NETWORK_ERROR,
            ErrorSeverity.MEDIUM,
            {"url": url, "status": status},
        )
        self.url = url
        self.status = status


class DecodeError(BaseError):
    """Raised when upstream JSON or HTML cannot be interpreted."""

    def __init__(self, message: str, source: Optional[str] = None) -> None:
        super().__init__(
            message,
            ErrorCategory.DECODE_ERROR,
            ErrorSeverity.LOW,
            {"source": source},
        )
        self.source = source
