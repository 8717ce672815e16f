"""
Fixed-window, per-client request limiter kept in process memory.

Counters are { key -> (window_start, hits) }. Expired windows are purged at
most once per window length, so memory stays bounded by the number of
clients seen in the last two windows and a hit costs O(1) in between.
"""

import time
from typing import Callable, Dict, Tuple

from fastapi import Request

from timely.errors import RateLimitedError


class RateLimiter:
    def __init__(self, max_hits: int, window_seconds: int, message: str, clock: Callable[[], float] = time.monotonic):
        self.max_hits = max_hits
        self.window_seconds = window_seconds
        self.message = message
        self._clock = clock
        self._windows: Dict[str, Tuple[float, int]] = {}
        self._next_cleanup = clock() + window_seconds

    def hit(self, key: str) -> None:
        """Count one request for `key`; raise RateLimitedError once the window is full."""
        now = self._clock()
        if now >= self._next_cleanup:
            self._cleanup(now)
            self._next_cleanup = now + self.window_seconds
        start, hits = self._windows.get(key, (now, 0))
        if now - start >= self.window_seconds:
            # expired but not purged yet
            start, hits = now, 0
        if hits >= self.max_hits:
            retry_after = int(start + self.window_seconds - now) + 1
            raise RateLimitedError(self.message, retry_after=retry_after)
        self._windows[key] = (start, hits + 1)

    def forgive(self, key: str) -> None:
        """Take back one hit, used when a request turned out to be successful."""
        entry = self._windows.get(key)
        if entry and entry[1] > 0:
            self._windows[key] = (entry[0], entry[1] - 1)

    def reset(self) -> None:
        self._windows.clear()

    def _cleanup(self, now: float) -> None:
        expired = [k for k, (start, _) in list(self._windows.items()) if now - start >= self.window_seconds]
        for k in expired:
            del self._windows[k]


def client_key(request: Request) -> str:
    return request.client.host if request.client else "unknown"


def build_limiters() -> Dict[str, RateLimiter]:
    return {
        "api": RateLimiter(200, 15 * 60, "Too many requests from this IP. Please try again later."),
        "login": RateLimiter(20, 15 * 60, "Too many login attempts. Please try again later."),
        "register": RateLimiter(10, 60 * 60, "Too many token generation requests. Please wait an hour."),
    }


def limit(name: str):
    """Dependency factory: count the request against the named limiter on app.state."""

    async def dependency(request: Request) -> None:
        if not request.app.state.settings.rate_limit_enabled:
            return
        request.app.state.limiters[name].hit(client_key(request))

    return dependency
