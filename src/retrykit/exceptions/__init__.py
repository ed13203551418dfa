"""
Retrykit - Exception Hierarchy.

Configuration, protocol and terminal errors for the schedulers, plus the
HTTP failures reported by the httpx integration.
"""

from .base import (
    RetryKitError,
    ConfigurationError,
    StateError,
    RetryTerminatedError,
    AttemptsCountExceededError,
    AttemptsTimeExceededError,
    RetryCancelledError,
)
from .http import (
    HTTPRetryError,
    RateLimitError,
    ServerError,
    TransportError,
    RequestTimeoutError,
)

__all__ = [
    "RetryKitError",
    "ConfigurationError",
    "StateError",
    "RetryTerminatedError",
    "AttemptsCountExceededError",
    "AttemptsTimeExceededError",
    "RetryCancelledError",
    "HTTPRetryError",
    "RateLimitError",
    "ServerError",
    "TransportError",
    "RequestTimeoutError",
]
