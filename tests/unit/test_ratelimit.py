"""Unit tests for the fixed-window rate limiter."""

from __future__ import annotations

import time
from unittest.mock import patch

from gateway.core.ratelimit import FixedWindowRateLimiter


class TestFixedWindowRateLimiter:
    def test_allows_up_to_limit(self):
        limiter = FixedWindowRateLimiter(max_requests=3, window_seconds=60)
        decisions = [limiter.hit("1.2.3.4") for _ in range(4)]
        assert [d.allowed for d in decisions] == [True, True, True, False]
        assert decisions[0].remaining == 2
        assert decisions[3].remaining == 0

    def test_keys_are_independent(self):
        limiter = FixedWindowRateLimiter(max_requests=1, window_seconds=60)
        assert limiter.hit("a").allowed
        assert not limiter.hit("a").allowed
        assert limiter.hit("b").allowed

    def test_window_resets(self):
        limiter = FixedWindowRateLimiter(max_requests=1, window_seconds=60)
        start = time.time()
        with patch("gateway.core.ratelimit.time") as mock_time:
            mock_time.time.return_value = start
            assert limiter.hit("a").allowed
            assert not limiter.hit("a").allowed
            mock_time.time.return_value = start + 61
            assert limiter.hit("a").allowed

    def test_reset_after_counts_down(self):
        limiter = FixedWindowRateLimiter(max_requests=5, window_seconds=900)
        start = time.time()
        with patch("gateway.core.ratelimit.time") as mock_time:
            mock_time.time.return_value = start
            assert limiter.hit("a").reset_after == 900
            mock_time.time.return_value = start + 300
            assert limiter.hit("a").reset_after == 600

    def test_prune_drops_closed_windows(self):
        limiter = FixedWindowRateLimiter(max_requests=1, window_seconds=10)
        start = time.time()
        with patch("gateway.core.ratelimit.time") as mock_time:
            mock_time.time.return_value = start
            limiter.hit("a")
            mock_time.time.return_value = start + 11
            limiter.prune()
            assert limiter._windows == {}
