"""Token-bucket rate limiting for outgoing Cloud Connector requests."""

from __future__ import annotations

import math
import threading
import time
from collections.abc import Callable, Mapping
from typing import Any


class RateLimitError(Exception):
    """A token can never become available for the request."""


def _cfg_int(cfg: Mapping[str, Any], key: str) -> int:
    value = cfg.get(key)
    return 0 if value in (None, "") else int(value)


class RateLimiter:
    """Token bucket holding up to ``burst`` tokens, refilled at ``rate`` per second.

    The bucket starts full. ``wait`` takes one token, sleeping until it is due.
    """

    def __init__(
        self,
        rate: float,
        burst: int,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.rate = float(rate)
        self.burst = int(burst)
        self._clock = clock
        self._sleep = sleep
        self._tokens = float(self.burst)
        self._last = clock()
        self._lock = threading.Lock()

    def _available(self, now: float) -> float:
        elapsed = max(0.0, now - self._last)
        return min(float(self.burst), self._tokens + elapsed * self.rate)

    def wait(self) -> None:
        """Take one token, blocking until it is available."""
        if math.isinf(self.rate):
            return
        if self.burst < 1:
            raise RateLimitError(f"Wait(n=1) exceeds limiter's burst {self.burst}")

        with self._lock:
            now = self._clock()
            tokens = self._available(now) - 1
            delay = 0.0
            if tokens < 0:
                if self.rate <= 0:
                    raise RateLimitError("Wait(n=1) can never be satisfied at rate 0")
                delay = -tokens / self.rate
            self._tokens = tokens
            self._last = now

        if delay > 0:
            self._sleep(delay)


def rate_limiter_from_config(cfg: Mapping[str, Any]) -> RateLimiter:
    """Build the limiter for Cloud Connector requests from configuration."""
    return RateLimiter(
        _cfg_int(cfg, "cloud.connector.rps"),
        _cfg_int(cfg, "cloud.connector.req.bucket"),
    )