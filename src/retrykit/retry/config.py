"""
Retrier configuration and presets.
"""

from dataclasses import dataclass

from ..exceptions import ConfigurationError


@dataclass(frozen=True)
class RetrierConfig:
    """
    Configuration for Fibonacci-paced retry sessions.

    All delays and durations are in milliseconds.

    Attributes:
        min_delay: Delay after the first failed attempt (default: 100)
        max_delay: Advisory upper delay, not enforced (default: 10000)
        initial_delay: Delay before the first attempt (default: 0)
        max_attempts_count: Attempts allowed per session, 0 = unbounded (default: 0)
        max_attempts_time: Time budget per session, 0 = unbounded (default: 0)
        randomness: Symmetric jitter as fraction of delay (default: 0 = ±0%)
    """

    min_delay: float = 100
    max_delay: float = 10000
    initial_delay: float = 0
    max_attempts_count: int = 0
    max_attempts_time: float = 0
    randomness: float = 0

    def __post_init__(self):
        for name in (
            "min_delay",
            "max_delay",
            "initial_delay",
            "max_attempts_count",
            "max_attempts_time",
            "randomness",
        ):
            if getattr(self, name) < 0:
                raise ConfigurationError(f"{name} must not be negative")
        if self.min_delay > self.max_delay:
            raise ConfigurationError("min_delay must not exceed max_delay")

    @classmethod
    def aggressive(cls) -> "RetrierConfig":
        """Preset for aggressive retry (many attempts, long time budget)."""
        return cls(
            min_delay=500,
            max_delay=120_000,
            max_attempts_count=20,
            max_attempts_time=600_000,
            randomness=0.25,
        )

    @classmethod
    def conservative(cls) -> "RetrierConfig":
        """Preset for conservative retry (few attempts, short delays)."""
        return cls(
            min_delay=250,
            max_delay=10_000,
            max_attempts_count=4,
            randomness=0.25,
        )

    @classmethod
    def no_retry(cls) -> "RetrierConfig":
        """Preset for no retry (single attempt only)."""
        return cls(max_attempts_count=1)
