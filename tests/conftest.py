"""Shared fixtures: a manually advanced clock standing in for the event loop."""

import asyncio
import itertools

import pytest


class ManualTimer:
    """Timer handle returned by ManualClock.call_later()."""

    def __init__(self, when: float, seq: int, callback, args):
        self.when = when
        self.seq = seq
        self.callback = callback
        self.args = args
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualClock:
    """
    Loop stand-in whose time only moves on advance().

    Times are tracked in milliseconds; time() and call_later() speak
    seconds like an asyncio loop.
    """

    def __init__(self):
        self.now = 0.0
        self._timers: list[ManualTimer] = []
        self._seq = itertools.count()

    def time(self) -> float:
        return self.now / 1000

    def call_later(self, delay: float, callback, *args) -> ManualTimer:
        timer = ManualTimer(self.now + round(delay * 1000, 6), next(self._seq), callback, args)
        self._timers.append(timer)
        return timer

    def create_future(self) -> asyncio.Future:
        return asyncio.get_running_loop().create_future()

    @property
    def pending(self) -> int:
        return sum(1 for timer in self._timers if not timer.cancelled)

    def advance(self, ms: float) -> None:
        """Move time forward by `ms`, firing due timers in order."""
        target = self.now + ms
        while True:
            due = [t for t in self._timers if not t.cancelled and t.when <= target]
            if not due:
                break
            timer = min(due, key=lambda t: (t.when, t.seq))
            self._timers.remove(timer)
            self.now = max(self.now, timer.when)
            timer.callback(*timer.args)
        self.now = target


@pytest.fixture
def clock():
    return ManualClock()
