"""
HTTP failures reported to a retrier by the httpx integration.

Each exception includes a `retryable` flag so callers inspecting
`last_error` can tell transient failures from final ones.
"""

from .base import RetryKitError


class HTTPRetryError(RetryKitError):
    """Base exception for HTTP attempt failures."""

    def __init__(
        self,
        message: str,
        *,
        retryable: bool = False,
        status_code: int | None = None,
        url: str | None = None,
    ):
        super().__init__(message)
        self.retryable = retryable
        self.status_code = status_code
        self.url = url

    def __str__(self) -> str:
        parts = [self.message]
        if self.url:
            parts.insert(0, f"[{self.url}]")
        if self.status_code:
            parts.append(f"(status: {self.status_code})")
        return " ".join(parts)


class RateLimitError(HTTPRetryError):
    """Raised on 429 responses. `retry_after` is in milliseconds."""

    def __init__(
        self,
        message: str = "Rate limit exceeded",
        *,
        retry_after: float | None = None,
        **kwargs,
    ):
        super().__init__(message, retryable=True, **kwargs)
        self.retry_after = retry_after


class ServerError(HTTPRetryError):
    """Raised on retryable 5xx responses."""

    def __init__(self, message: str = "Server error", **kwargs):
        super().__init__(message, retryable=True, **kwargs)


class TransportError(HTTPRetryError):
    """Raised when the request never produced a response."""

    def __init__(self, message: str = "Connection failed", **kwargs):
        super().__init__(message, retryable=True, **kwargs)


class RequestTimeoutError(HTTPRetryError):
    """Raised when the request timed out."""

    def __init__(self, message: str = "Request timed out", **kwargs):
        super().__init__(message, retryable=True, **kwargs)
