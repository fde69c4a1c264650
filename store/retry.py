"""Bounded retry policy with exponential backoff."""

from dataclasses import dataclass

from common.constants import (
    MAX_RETRIES,
    RETRY_BACKOFF_MULTIPLIER,
    RETRY_BASE_DELAY_SECONDS,
    RETRY_MAX_DELAY_SECONDS,
)
from gateway.config import GatewayConfig


@dataclass(frozen=True)
class RetryPolicy:
    """
    How many times a block operation is attempted and how long to wait between attempts.

    Attributes:
        max_attempts: Total attempts, including the first
        base_delay: Delay in seconds after the first failure
        multiplier: Growth factor of the delay per further failure
        max_delay: Upper bound on any single delay
    """
    max_attempts: int = MAX_RETRIES + 1
    base_delay: float = RETRY_BASE_DELAY_SECONDS
    multiplier: float = RETRY_BACKOFF_MULTIPLIER
    max_delay: float = RETRY_MAX_DELAY_SECONDS

    def __post_init__(self):
        if self.max_attempts < 1:
            raise ValueError(f"max_attempts must be at least 1, got {self.max_attempts}")
        if self.base_delay < 0 or self.max_delay < 0:
            raise ValueError("retry delays must not be negative")

    @classmethod
    def from_config(cls, config: GatewayConfig) -> 'RetryPolicy':
        retry_config = config.get_retry_config()
        return cls(
            max_attempts=retry_config['max_retries'] + 1,
            base_delay=retry_config['retry_base_delay'],
            multiplier=retry_config['retry_backoff_multiplier'],
            max_delay=retry_config['retry_max_delay'],
        )

    def delay(self, failures: int) -> float:
        """
        Delay before the next attempt.

        Args:
            failures: Number of attempts that have failed so far (>= 1)

        Returns:
            Seconds to wait
        """
        return min(self.base_delay * self.multiplier ** (failures - 1), self.max_delay)
