"""Exponential backoff arithmetic. Which errors are retried is decided by the caller."""

from __future__ import annotations

from dataclasses import dataclass

from .models import ServiceConfig


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int = 3
    base_delay: float = 1.0
    max_delay: float = 30.0
    multiplier: float = 2.0

    @classmethod
    def from_config(cls, config: ServiceConfig) -> RetryPolicy:
        # retry_attempts == 0 still means one try
        return cls(max_attempts=max(1, config.retry_attempts))

    def delay(self, attempt: int) -> float:
        """Seconds to wait after failed attempt number `attempt` (1-based)."""
        if attempt < 1:
            raise ValueError("attempt is 1-based")
        return min(self.max_delay, self.base_delay * self.multiplier ** (attempt - 1))
