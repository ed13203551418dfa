"""
Timer-driven exponential backoff.

A BackoffScheduler is a long-lived policy object: the caller reports a failure
with `backoff()`, waits for the `ready` notification and tries again.

Events:
    backoff(attempt_index, delay, error): a timer was armed
    ready(attempt_index, delay): the timer fired, retry now
    fail(error): the retry bound was reached, state has been reset
"""

import asyncio
import logging
import random
from typing import Any

from .config import BackoffConfig
from ..events import EventEmitter
from ..exceptions import ConfigurationError

logger = logging.getLogger(__name__)


class BackoffScheduler(EventEmitter):
    """
    Exponential backoff emitter with optional jitter and retry bound.

    Holds at most one armed timer. Timers run on `loop`, or on the running
    event loop when none is given.
    """

    def __init__(
        self,
        config: BackoffConfig | None = None,
        *,
        loop: asyncio.AbstractEventLoop | None = None,
    ):
        super().__init__()
        self._config = config or BackoffConfig()
        self._loop = loop
        self._max_retries: int | None = None
        self._timer: asyncio.TimerHandle | None = None
        self.reset()

    @classmethod
    def exponential(
        cls, *, loop: asyncio.AbstractEventLoop | None = None, **options: Any
    ) -> "BackoffScheduler":
        """Build a scheduler from BackoffConfig keyword options."""
        return cls(BackoffConfig(**options), loop=loop)

    @property
    def config(self) -> BackoffConfig:
        return self._config

    @property
    def attempt_index(self) -> int:
        return self._attempt_index

    @property
    def backoff_delay(self) -> float:
        """Delay of the current (or last) backoff cycle."""
        return self._backoff_delay

    @property
    def max_retries(self) -> int | None:
        """Retry bound set by fail_after(), None when unbounded."""
        return self._max_retries

    @property
    def pending(self) -> bool:
        return self._timer is not None

    def backoff(self, error: BaseException | None = None) -> None:
        """
        Start a backoff cycle, or emit `fail` if the retry bound is reached.

        Ignored while a previous cycle's timer is still armed.
        """
        if self._timer is not None:
            logger.debug("Backoff already in progress, ignoring backoff()")
            return

        if self._attempt_index == self._max_retries:
            logger.debug(f"Retry bound {self._max_retries} reached, failing")
            self.emit("fail", error)
            self.reset()
            return

        loop = self._loop or asyncio.get_running_loop()
        self._backoff_delay = self.next()
        self._timer = loop.call_later(self._backoff_delay / 1000, self._on_backoff)
        logger.debug(
            f"Backoff #{self._attempt_index}: waiting {self._backoff_delay}ms"
        )
        self.emit("backoff", self._attempt_index, self._backoff_delay, error)

    def next(self) -> float:
        """
        Compute the next delay and advance the progression.

        Returns:
            Delay in milliseconds, never above max_delay
        """
        config = self._config
        self._backoff_delay = min(self._next_base_delay, config.max_delay)
        self._next_base_delay = self._backoff_delay * config.factor
        multiplier = 1 + random.random() * config.randomization_factor
        return min(config.max_delay, round(self._backoff_delay * multiplier))

    def reset(self) -> None:
        """Cancel any armed timer and restart the progression. Idempotent."""
        self._backoff_delay = 0
        self._next_base_delay = self._config.initial_delay
        self._attempt_index = 0
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def fail_after(self, max_retries: int) -> None:
        """Emit `fail` instead of backing off once `max_retries` cycles have run."""
        if max_retries <= 0:
            raise ConfigurationError(
                f"Expected a maximum number of retry greater than 0 but got {max_retries}"
            )
        self._max_retries = max_retries

    def _on_backoff(self) -> None:
        self._timer = None
        self.emit("ready", self._attempt_index, self._backoff_delay)
        self._attempt_index += 1
