"""
Backoff configuration and validation.
"""

from dataclasses import dataclass

from ..exceptions import ConfigurationError


@dataclass(frozen=True)
class BackoffConfig:
    """
    Configuration for exponential backoff.

    All delays are in milliseconds.

    Attributes:
        initial_delay: First delay of the sequence, at least 1 (default: 100)
        max_delay: Hard cap on every produced delay (default: 10000)
        factor: Growth factor between consecutive delays (default: 2)
        randomization_factor: Upward jitter as fraction of delay, 0..1 (default: 0)
    """

    initial_delay: float = 100
    max_delay: float = 10000
    factor: float = 2
    randomization_factor: float = 0

    def __post_init__(self):
        if self.initial_delay < 1:
            raise ConfigurationError(
                "The initial delay must be equal to or greater than 1."
            )
        if self.max_delay <= 1:
            raise ConfigurationError("The maximal delay must be greater than 1.")
        if not 0 <= self.randomization_factor <= 1:
            raise ConfigurationError(
                "The randomization factor must be between 0 and 1."
            )
        if self.factor <= 1:
            raise ConfigurationError("Exponential factor should be greater than 1.")
        if self.max_delay <= self.initial_delay:
            raise ConfigurationError(
                "The maximal backoff delay must be greater than the initial backoff delay."
            )
