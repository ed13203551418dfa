"""
Future-based attempt retrier.

An AttemptRetrier session is driven through events: every `attempt` must be
answered with exactly one call to `succeeded()` or `failed()`. Delays after
failures follow a Fibonacci progression starting at `min_delay`.

Events:
    attempt(attempt_index): run the operation now
    succeeded(value): the session resolved with `value`
    failed(error): a terminal limit ended the session
    cancelled(): the session was cancelled, by cancel() or by cancelling
        the future returned from start()
"""

import asyncio
import dataclasses
import logging
import random
from typing import Any, Awaitable, Callable, TypeVar

from .config import RetrierConfig
from ..events import EventEmitter
from ..exceptions import (
    AttemptsCountExceededError,
    AttemptsTimeExceededError,
    RetryCancelledError,
    RetryTerminatedError,
    StateError,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


class AttemptRetrier(EventEmitter):
    """
    Retry session scheduler with count and time limits.

    Only one session runs at a time; the instance can be started again once
    a session has settled.
    """

    def __init__(
        self,
        config: RetrierConfig | None = None,
        *,
        loop: asyncio.AbstractEventLoop | None = None,
        **options: Any,
    ):
        """
        Initialize the retrier.

        Args:
            config: Retry policy (default: RetrierConfig())
            loop: Event loop for timers (default: the running loop at start())
            **options: RetrierConfig fields overriding `config`
        """
        super().__init__()
        config = config or RetrierConfig()
        if options:
            config = dataclasses.replace(config, **options)
        self._config = config
        self._loop = loop
        self._active_loop: asyncio.AbstractEventLoop | None = None
        self._timer: asyncio.TimerHandle | None = None
        self._future: asyncio.Future | None = None
        self._in_progress = False
        self._attempt_index = 0
        self._prev_delay: float = 0
        self._curr_delay: float = 0
        self._start_timestamp: float = 0

    @property
    def config(self) -> RetrierConfig:
        return self._config

    @property
    def attempt_index(self) -> int:
        return self._attempt_index

    @property
    def in_progress(self) -> bool:
        return self._in_progress

    @property
    def pending(self) -> bool:
        """True while a timer for the next attempt is armed."""
        return self._timer is not None

    def start(self) -> asyncio.Future:
        """
        Begin a session and schedule the first attempt after initial_delay.

        Returns:
            Future resolved with the value passed to succeeded(), or rejected
            with a RetryTerminatedError

        Raises:
            StateError: If a session is already in progress
        """
        if self._in_progress:
            raise StateError("Retrier is already in progress")

        loop = self._loop or asyncio.get_running_loop()
        self._active_loop = loop
        self._in_progress = True
        self._future = future = loop.create_future()
        future.add_done_callback(self._on_session_done)
        self._start_timestamp = self._now()
        self._schedule_attempt(self._config.initial_delay)
        return future

    def cancel(self) -> None:
        """Cancel the pending retry. No effect while an attempt is in flight."""
        if self._timer is None:
            logger.debug("No pending attempt to cancel")
            return

        attempts = self._attempt_index
        future = self._future
        self._cleanup()
        logger.info(f"Retry cancelled after {attempts} attempt(s)")
        self.emit("cancelled")
        self._settle(future, error=RetryCancelledError(attempts=attempts))

    def succeeded(self, value: Any = None) -> None:
        """Report a successful attempt and resolve the session with `value`."""
        if not self._in_progress:
            raise StateError("No retry session in progress")

        future = self._future
        self._cleanup()
        self.emit("succeeded", value)
        self._settle(future, value=value)

    def failed(
        self, error: BaseException | None = None, delay_override: float | None = None
    ) -> None:
        """
        Report a failed attempt and schedule the next one.

        Args:
            error: The attempt's failure, kept as `last_error` on terminal errors
            delay_override: Delay in ms before the next attempt; the Fibonacci
                progression continues from this value afterwards

        Raises:
            StateError: If an attempt is already scheduled or no session runs
        """
        if self._timer is not None:
            raise StateError("Retrier attempt is already in progress")
        if not self._in_progress:
            raise StateError("No retry session in progress")

        max_count = self._config.max_attempts_count
        if max_count and self._attempt_index >= max_count:
            self._terminate(
                AttemptsCountExceededError(
                    attempts=self._attempt_index, last_error=error
                )
            )
            return

        if delay_override is not None:
            self._prev_delay = 0
            self._curr_delay = delay_override
            delay = delay_override
        else:
            delay = self._next_delay()
        self._schedule_attempt(self._jitter(delay), error)

    def run(self, handler: Callable[[], Awaitable[T]]) -> "asyncio.Future[T]":
        """
        Retry `handler` until it returns, or a limit ends the session.

        Each attempt awaits `handler()` as a task; its result is reported
        through succeeded() and its exception through failed(). Cancelling the
        returned future also cancels a handler still in flight.
        """
        tasks: set[asyncio.Future] = set()

        def route(task: asyncio.Future) -> None:
            tasks.discard(task)
            error = asyncio.CancelledError() if task.cancelled() else task.exception()
            if session.done() or self._future is not session:
                # Session already settled; drop the late outcome.
                return
            if error is not None:
                self.failed(error)
            else:
                self.succeeded(task.result())

        def on_attempt(attempt_index: int) -> None:
            task = asyncio.ensure_future(handler())
            tasks.add(task)
            task.add_done_callback(route)

        def finish(future: asyncio.Future) -> None:
            self.off("attempt", on_attempt)
            if future.cancelled():
                for task in list(tasks):
                    task.cancel()

        self.on("attempt", on_attempt)
        try:
            session = self.start()
        except StateError:
            self.off("attempt", on_attempt)
            raise
        session.add_done_callback(finish)
        return session

    def _on_session_done(self, future: asyncio.Future) -> None:
        # Settled by the caller (cancelled awaitable, wait_for timeout).
        if future is not self._future:
            return
        attempts = self._attempt_index
        self._cleanup()
        if future.cancelled():
            logger.info(f"Retry session cancelled by caller after {attempts} attempt(s)")
            self.emit("cancelled")

    def _now(self) -> float:
        return self._active_loop.time() * 1000

    def _next_delay(self) -> float:
        if self._attempt_index <= 1:
            self._curr_delay = self._config.min_delay
            return self._curr_delay

        delay = self._curr_delay + self._prev_delay
        self._prev_delay = self._curr_delay
        self._curr_delay = delay
        return delay

    def _jitter(self, delay: float) -> float:
        randomness = self._config.randomness
        if randomness > 0:
            delay = delay + delay * randomness * (2 * random.random() - 1)
        return max(0, delay)

    def _schedule_attempt(
        self, delay: float, last_error: BaseException | None = None
    ) -> None:
        max_time = self._config.max_attempts_time
        if max_time and self._start_timestamp + max_time < self._now() + delay:
            self._terminate(
                AttemptsTimeExceededError(
                    attempts=self._attempt_index, last_error=last_error
                )
            )
            return

        logger.debug(f"Attempt #{self._attempt_index + 1} scheduled in {delay:.0f}ms")
        self._timer = self._active_loop.call_later(delay / 1000, self._attempt)

    def _attempt(self) -> None:
        self._timer = None
        self._attempt_index += 1
        self.emit("attempt", self._attempt_index)

    def _terminate(self, error: RetryTerminatedError) -> None:
        future = self._future
        self._cleanup()
        logger.warning(f"Retry session failed: {error}")
        self.emit("failed", error)
        self._settle(future, error=error)

    def _cleanup(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        self._in_progress = False
        self._future = None
        self._attempt_index = 0
        self._prev_delay = 0
        self._curr_delay = 0

    @staticmethod
    def _settle(
        future: asyncio.Future | None,
        value: Any = None,
        error: BaseException | None = None,
    ) -> None:
        if future is None or future.done():
            return
        if error is not None:
            future.set_exception(error)
        else:
            future.set_result(value)
