"""
Moving-window rate limiting for the authentication endpoints.

Backed by the `limits` library: every admitted attempt from an origin is
recorded, and an attempt is allowed while fewer than max_attempts fall
inside the trailing window. Rejected attempts are not recorded. State lives
in process memory and is shared by all request threads.
"""
from __future__ import annotations

import math
import time
from dataclasses import dataclass

from limits import RateLimitItemPerSecond
from limits.storage import MemoryStorage
from limits.strategies import MovingWindowRateLimiter
import structlog

logger = structlog.get_logger(__name__)

NAMESPACE = "auth"


@dataclass(frozen=True)
class RateLimitResult:
    allowed: bool
    remaining: int
    retry_after: int  # seconds; 0 when allowed


class AuthRateLimiter:
    def __init__(self, window_ms: int = 15 * 60 * 1000, max_attempts: int = 5) -> None:
        if window_ms <= 0 or max_attempts <= 0:
            raise ValueError("window_ms and max_attempts must be positive")
        self.max_attempts = max_attempts
        # limits counts whole seconds.
        self.item = RateLimitItemPerSecond(max_attempts, max(1, math.ceil(window_ms / 1000)), namespace=NAMESPACE)
        self._storage = MemoryStorage()
        self._limiter = MovingWindowRateLimiter(self._storage)

    def hit(self, key: str) -> RateLimitResult:
        """Record one attempt for key and report whether it is within the limit."""
        if self._limiter.hit(self.item, key):
            stats = self._limiter.get_window_stats(self.item, key)
            return RateLimitResult(allowed=True, remaining=stats.remaining, retry_after=0)

        stats = self._limiter.get_window_stats(self.item, key)
        retry_after = max(1, math.ceil(stats.reset_time - time.time()))
        logger.warning("rate_limit_exceeded", key=key, attempts=self.max_attempts, retry_after=retry_after)
        return RateLimitResult(allowed=False, remaining=0, retry_after=retry_after)

    def attempts(self, key: str) -> int:
        return self.max_attempts - self._limiter.get_window_stats(self.item, key).remaining
