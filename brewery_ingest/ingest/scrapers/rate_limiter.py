"""
Minimum-interval rate limiter for the product API.

Provider limits:
- 1 request/second, measured from the end of the previous request
- hard monthly request quota

Requests are strictly sequential, so the limiter only needs to remember when
the last request completed. Each limiter owns that state; two fetchers (or two
tests) never share it.
"""

import time
from contextlib import contextmanager
from typing import Callable, Optional


class RateLimiter:
    """
    Blocks until `min_interval` seconds have passed since the last release().

    Clock and sleep are injectable so tests can run on a fake clock.
    """

    def __init__(
        self,
        min_interval: float = 1.0,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        if min_interval < 0:
            raise ValueError("min_interval must be >= 0")
        self.min_interval = min_interval
        self._clock = clock
        self._sleep = sleep
        self.last_completed: Optional[float] = None
        self.requests_count = 0
        self.total_wait = 0.0

    def wait_time(self) -> float:
        """Seconds left before the next request may start."""
        if self.last_completed is None:
            return 0.0
        elapsed = self._clock() - self.last_completed
        return max(0.0, self.min_interval - elapsed)

    def acquire(self):
        """Block until the next request is allowed."""
        delay = self.wait_time()
        if delay > 0:
            self._sleep(delay)
            self.total_wait += delay
        self.requests_count += 1

    def release(self):
        """Mark the current request as completed."""
        self.last_completed = self._clock()

    @contextmanager
    def limit(self):
        """
        Context manager for rate-limited requests.

        Usage:
            with rate_limiter.limit():
                response = session.post(url, json=payload)
        """
        self.acquire()
        try:
            yield
        finally:
            self.release()

    def get_stats(self) -> dict:
        return {
            "min_interval": self.min_interval,
            "requests_count": self.requests_count,
            "total_wait_seconds": round(self.total_wait, 3),
        }
