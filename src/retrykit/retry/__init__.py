"""
Retrykit - Attempt Retrier.

Future-based retry sessions with Fibonacci delays, jitter, and attempt
count and time limits.
"""

from .config import RetrierConfig
from .retrier import AttemptRetrier

__all__ = [
    "RetrierConfig",
    "AttemptRetrier",
]
