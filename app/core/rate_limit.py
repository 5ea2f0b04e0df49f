"""
Fixed-window request limiter used as a FastAPI dependency on auth routes.

In-memory (resets on restart, per process). Keyed by limiter name and client IP.
"""

import logging
import math
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass

from fastapi import Request

from app.core.config import get_settings
from app.core.errors import RateLimitExceededError

logger = logging.getLogger(__name__)


@dataclass
class Window:
    count: int
    reset_at: float


class RateLimiter:
    """Allow max_requests per window_seconds per client; raises RateLimitExceededError beyond that."""

    def __init__(
        self,
        name: str,
        max_requests: int,
        window_seconds: int,
        message: str | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_requests <= 0:
            raise ValueError("max_requests must be positive")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be positive")
        self.name = name
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.message = message
        self._clock = clock
        self._windows: dict[str, Window] = {}
        self._lock = threading.Lock()

    def hit(self, key: str) -> tuple[bool, int]:
        """Count one request; returns (allowed, retry_after_seconds)."""
        with self._lock:
            now = self._clock()
            # Drop finished windows so the map does not grow without bound.
            for stale in [k for k, w in self._windows.items() if w.reset_at <= now]:
                del self._windows[stale]
            window = self._windows.get(key)
            if window is None:
                self._windows[key] = Window(count=1, reset_at=now + self.window_seconds)
                return (True, 0)
            window.count += 1
            if window.count > self.max_requests:
                return (False, max(1, math.ceil(window.reset_at - now)))
            return (True, 0)

    def reset(self) -> None:
        with self._lock:
            self._windows.clear()

    def __call__(self, request: Request) -> None:
        if not get_settings().RATE_LIMIT_ENABLED:
            return
        client = request.client.host if request.client else "anonymous"
        allowed, retry_after = self.hit(client)
        if not allowed:
            logger.warning("Rate limit exceeded: limiter=%s client=%s", self.name, client)
            raise RateLimitExceededError(retry_after=retry_after, message=self.message)


auth_rate_limit = RateLimiter(
    "auth",
    max_requests=5,
    window_seconds=15 * 60,
    message="Too many authentication attempts, please try again later",
)

password_reset_rate_limit = RateLimiter(
    "password_reset",
    max_requests=3,
    window_seconds=60 * 60,
    message="Too many password reset attempts, please try again later",
)
