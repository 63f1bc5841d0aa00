"""Fixed-window request limiter keyed by client address."""

from __future__ import annotations

import time
from dataclasses import dataclass


@dataclass
class RateLimitDecision:
    allowed: bool
    limit: int
    remaining: int
    reset_after: int  # seconds until the current window closes


class FixedWindowRateLimiter:
    """Allow ``max_requests`` per ``window_seconds`` for each key.

    Each key gets its own window, opened by its first request. Counters for
    closed windows are discarded the next time that key is seen or on
    :meth:`prune`.
    """

    def __init__(self, max_requests: int = 100, window_seconds: int = 900) -> None:
        self._max = max_requests
        self._window = window_seconds
        self._windows: dict[str, tuple[float, int]] = {}

    def hit(self, key: str) -> RateLimitDecision:
        now = time.time()
        started, count = self._windows.get(key, (now, 0))
        if now - started >= self._window:
            started, count = now, 0

        count += 1
        self._windows[key] = (started, count)

        reset_after = max(0, int(round(started + self._window - now)))
        return RateLimitDecision(
            allowed=count <= self._max,
            limit=self._max,
            remaining=max(0, self._max - count),
            reset_after=reset_after,
        )

    def prune(self) -> None:
        now = time.time()
        stale = [k for k, (started, _) in self._windows.items() if now - started >= self._window]
        for k in stale:
            del self._windows[k]
