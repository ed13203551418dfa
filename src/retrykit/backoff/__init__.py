"""
Retrykit - Exponential Backoff.

Timer-driven exponential backoff with jitter and an optional retry bound.
"""

from .config import BackoffConfig
from .scheduler import BackoffScheduler

__all__ = [
    "BackoffConfig",
    "BackoffScheduler",
]
