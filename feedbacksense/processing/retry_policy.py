"""Retry and backoff policy for calls to the classification service."""

import random
from collections.abc import Iterator
from dataclasses import dataclass

from ..config import RETRY_CONFIG
from ..exceptions import ValidationError
from ..models.batch import BatchConfig


@dataclass(frozen=True)
class RetryPolicy:
    """Exponential backoff schedule.

    ``max_attempts`` counts the first call, so ``max_attempts=4`` allows three
    retries. Delays are in seconds.
    """

    max_attempts: int = RETRY_CONFIG["max_retries"] + 1
    base_delay: float = RETRY_CONFIG["retry_delay_ms"] / 1000
    multiplier: float = RETRY_CONFIG["backoff_multiplier"]
    jitter: float = RETRY_CONFIG["jitter_ms"] / 1000
    max_delay: float = RETRY_CONFIG["max_delay_ms"] / 1000

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValidationError(f"max_attempts must be at least 1, got {self.max_attempts}")
        if self.base_delay < 0 or self.jitter < 0 or self.max_delay < 0:
            raise ValidationError("Retry delays must not be negative")
        if self.multiplier < 1:
            raise ValidationError(f"multiplier must be >= 1, got {self.multiplier}")

    @classmethod
    def immediate(cls, max_attempts: int = 3) -> "RetryPolicy":
        """Policy with no waiting between attempts."""
        return cls(max_attempts=max_attempts, base_delay=0.0, jitter=0.0, max_delay=0.0)

    @classmethod
    def from_batch_config(cls, config: BatchConfig) -> "RetryPolicy":
        """Build the policy matching a named batch profile."""
        return cls(
            max_attempts=config.max_retries + 1,
            base_delay=config.retry_delay_seconds,
        )

    def delay_for(self, attempt: int, rng: random.Random | None = None) -> float:
        """Seconds to wait after failed attempt number ``attempt`` (1-based)."""
        delay = min(self.max_delay, self.base_delay * self.multiplier ** (attempt - 1))
        if self.jitter:
            delay += (rng or random).uniform(0, self.jitter)
        return delay

    def delays(self, rng: random.Random | None = None) -> Iterator[float]:
        """Yield the wait before each retry, one per retry allowed."""
        for attempt in range(1, self.max_attempts):
            yield self.delay_for(attempt, rng)
