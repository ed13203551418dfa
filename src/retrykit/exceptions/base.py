"""
Base exception classes for retry scheduling.

Configuration and state errors are programming errors raised synchronously.
Terminal errors never raise at the call site; they settle a retry session's
future and are emitted to listeners.
"""


class RetryKitError(Exception):
    """Base exception for all retrykit errors."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ConfigurationError(RetryKitError, ValueError):
    """Raised when a scheduler or retrier is built with invalid bounds."""


class StateError(RetryKitError, RuntimeError):
    """Raised when the retry protocol is driven out of order."""


class RetryTerminatedError(RetryKitError):
    """Base for outcomes that end a retry session without success."""

    def __init__(
        self,
        message: str,
        *,
        attempts: int = 0,
        last_error: BaseException | None = None,
    ):
        super().__init__(message)
        self.attempts = attempts
        self.last_error = last_error
        if last_error is not None:
            self.__cause__ = last_error

    def __str__(self) -> str:
        parts = [self.message]
        if self.attempts:
            parts.append(f"(attempts: {self.attempts})")
        return " ".join(parts)


class AttemptsCountExceededError(RetryTerminatedError):
    """Raised when the configured attempt count is used up."""

    def __init__(self, message: str = "Maximum attempt count limit reached", **kwargs):
        super().__init__(message, **kwargs)


class AttemptsTimeExceededError(RetryTerminatedError):
    """Raised when the next attempt would fall outside the time budget."""

    def __init__(self, message: str = "Maximum attempt time limit reached", **kwargs):
        super().__init__(message, **kwargs)


class RetryCancelledError(RetryTerminatedError):
    """Raised when a pending retry is cancelled."""

    def __init__(self, message: str = "Cancelled", **kwargs):
        super().__init__(message, **kwargs)
