"""In-memory fixed-window rate limiting for the OTP endpoints.

Each limiter counts requests per key (the client IP) in windows of
``window_seconds``; the counter resets when a new window starts.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass

from fastapi import Request, Response

logger = logging.getLogger(__name__)


@dataclass
class RateLimitInfo:
    """Rate limit decision with quota information."""

    allowed: bool
    remaining: int
    limit: int
    reset_at: int  # Unix timestamp
    retry_after: int | None = None  # Seconds until retry allowed


class FixedWindowRateLimiter:
    def __init__(
        self,
        limit: int,
        window_seconds: int,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.limit = limit
        self.window_seconds = window_seconds
        self._clock = clock
        self._buckets: dict[str, tuple[int, int]] = {}  # key -> (window_start, count)
        self._current_window = 0
        self._lock = threading.Lock()

    def check(self, key: str) -> RateLimitInfo:
        """Count one request for *key* and report whether it is allowed."""
        now = self._clock()
        window_start = int(now // self.window_seconds) * self.window_seconds
        reset_at = window_start + self.window_seconds

        with self._lock:
            if window_start > self._current_window:
                self._evict_before(window_start)
                self._current_window = window_start
            start, count = self._buckets.get(key, (window_start, 0))
            if start < window_start:
                count = 0
            if count >= self.limit:
                self._buckets[key] = (window_start, count)
                return RateLimitInfo(
                    allowed=False,
                    remaining=0,
                    limit=self.limit,
                    reset_at=reset_at,
                    retry_after=max(1, reset_at - int(now)),
                )
            self._buckets[key] = (window_start, count + 1)

        return RateLimitInfo(
            allowed=True,
            remaining=self.limit - count - 1,
            limit=self.limit,
            reset_at=reset_at,
        )

    def _evict_before(self, window_start: int) -> None:
        # caller holds self._lock
        stale = [key for key, (start, _) in self._buckets.items() if start < window_start]
        for key in stale:
            del self._buckets[key]
        if stale:
            logger.debug("Evicted %d stale rate-limit buckets", len(stale))

    def reset(self) -> None:
        with self._lock:
            self._buckets.clear()


class RateLimitExceededError(Exception):
    """Raised by the rate-limit dependencies; rendered as HTTP 429."""

    def __init__(self, message: str, info: RateLimitInfo) -> None:
        self.info = info
        self.retry_after = info.retry_after or 1
        super().__init__(message)


def rate_limit_headers(info: RateLimitInfo) -> dict[str, str]:
    """``X-RateLimit-*`` headers describing the caller's quota."""
    return {
        "X-RateLimit-Limit": str(info.limit),
        "X-RateLimit-Remaining": str(info.remaining),
        "X-RateLimit-Reset": str(info.reset_at),
    }


def _client_key(request: Request) -> str:
    return request.client.host if request.client else "unknown"


def rate_limited(limiter_attr: str, message: str):
    """Build a FastAPI dependency enforcing ``app.state.<limiter_attr>``."""

    async def dependency(request: Request, response: Response) -> None:
        limiter: FixedWindowRateLimiter = getattr(request.app.state, limiter_attr)
        key = _client_key(request)
        info = limiter.check(key)
        if not info.allowed:
            logger.warning("Rate limit hit (%s) for %s", limiter_attr, key)
            raise RateLimitExceededError(message, info)
        response.headers.update(rate_limit_headers(info))

    return dependency


send_limit = rate_limited("send_limiter", "Too many OTP requests. Please try again later.")
verify_limit = rate_limited(
    "verify_limiter", "Too many verification attempts. Please try again later."
)
