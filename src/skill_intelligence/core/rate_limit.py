"""Hourly request ceiling for the remote analysis service.

Admission and usage recording are split: `admit()` reserves a slot,
`record()` consumes it once the call has actually been dispatched, and
`release()` hands back a slot that was never used (request rejected,
failed, or cancelled). Reservations count against the ceiling so that
concurrent callers cannot over-admit.

The window rolls over lazily on `admit()`; there is no background timer.
"""

from __future__ import annotations

import logging
import math
import threading
import time
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Callable

from .errors import RateLimitError

logger = logging.getLogger(__name__)

WINDOW_SECONDS = 3600.0


@dataclass
class RateWindow:
    request_count: int
    window_start: float
    window_seconds: float
    max_requests: int

    def expired(self, now: float) -> bool:
        return now - self.window_start >= self.window_seconds

    @property
    def window_end(self) -> float:
        return self.window_start + self.window_seconds


class RateLimiter:
    """Thread-safe fixed-window limiter; one instance may be shared by many clients."""

    def __init__(
        self,
        max_requests: int,
        window_seconds: float = WINDOW_SECONDS,
        clock: Callable[[], float] = time.time,
    ):
        if max_requests <= 0:
            raise ValueError("max_requests must be positive")
        self._clock = clock
        self._lock = threading.Lock()
        self._reserved = 0
        self._window = RateWindow(
            request_count=0,
            window_start=clock(),
            window_seconds=window_seconds,
            max_requests=max_requests,
        )

    def admit(self) -> None:
        """Reserve one request slot or raise RateLimitError."""
        with self._lock:
            now = self._clock()
            if self._window.expired(now):
                self._window.request_count = 0
                self._window.window_start = now

            used = self._window.request_count + self._reserved
            if used >= self._window.max_requests:
                retry_after = math.ceil(self._window.window_end - now)
                raise RateLimitError(
                    f"Rate limit exceeded. Try again in {retry_after} seconds.",
                    retry_after,
                )
            self._reserved += 1

    def record(self) -> None:
        """Consume a reserved slot after a successful dispatch."""
        with self._lock:
            if self._reserved <= 0:
                raise RuntimeError("record() called without a matching admit()")
            self._reserved -= 1
            self._window.request_count += 1

    def release(self) -> None:
        """Return a reserved slot that was never dispatched."""
        with self._lock:
            if self._reserved > 0:
                self._reserved -= 1

    def update_capacity(self, max_requests: int) -> None:
        if max_requests <= 0:
            raise ValueError("max_requests must be positive")
        with self._lock:
            self._window.max_requests = max_requests
        logger.info("Rate limit capacity set to %d requests/window", max_requests)

    @property
    def remaining(self) -> int:
        with self._lock:
            if self._window.expired(self._clock()):
                return self._window.max_requests
            return max(0, self._window.max_requests - self._window.request_count)

    @property
    def reset_at(self) -> datetime:
        with self._lock:
            now = self._clock()
            end = now + self._window.window_seconds if self._window.expired(now) else self._window.window_end
        return datetime.fromtimestamp(end, tz=timezone.utc)

    def snapshot(self) -> RateWindow:
        with self._lock:
            return replace(self._window)
