"""
Retrykit - Retry Scheduling Primitives.

Exponential backoff and Fibonacci-paced retry sessions driven by asyncio
timers, with observable lifecycle events.
"""

from .backoff import BackoffConfig, BackoffScheduler
from .events import EventEmitter
from .exceptions import (
    RetryKitError,
    ConfigurationError,
    StateError,
    RetryTerminatedError,
    AttemptsCountExceededError,
    AttemptsTimeExceededError,
    RetryCancelledError,
)
from .retry import AttemptRetrier, RetrierConfig

__version__ = "0.1.0"

__all__ = [
    # Version
    "__version__",
    # Events
    "EventEmitter",
    # Backoff
    "BackoffConfig",
    "BackoffScheduler",
    # Retrier
    "RetrierConfig",
    "AttemptRetrier",
    # Exceptions
    "RetryKitError",
    "ConfigurationError",
    "StateError",
    "RetryTerminatedError",
    "AttemptsCountExceededError",
    "AttemptsTimeExceededError",
    "RetryCancelledError",
]
