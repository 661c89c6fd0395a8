"""
tests/test_limiter.py -- Tests for api/limiter.py.

Covers:
  - RateLimitPolicy parsing and validation
  - Sliding window: N hits pass, hit N+1 is rejected, the window slides
  - Counters are independent per policy and per client key
  - Concurrent hits on one key never admit more than max_requests
  - HTTP integration: 429 envelope with retryAfter and Retry-After header
"""

from __future__ import annotations

import threading
import time
from concurrent.futures import ThreadPoolExecutor

import pytest
from limits.storage import MemoryStorage

from api.limiter import RateLimitPolicy, SlidingWindowLimiter
from core.config import Settings
from core.errors import RateLimitError


class TestRateLimitPolicy:
    def test_parse_minutes(self):
        assert RateLimitPolicy.parse("5/15 minutes") == RateLimitPolicy(max_requests=5, window_ms=900_000)

    def test_parse_hour(self):
        assert RateLimitPolicy.parse("20/hour") == RateLimitPolicy(max_requests=20, window_ms=3_600_000)

    def test_partial_seconds_round_up(self):
        policy = RateLimitPolicy(max_requests=1, window_ms=1500)
        assert policy.window_seconds == 2
        assert policy.retry_after == 2

    @pytest.mark.parametrize("max_requests,window_ms", [(0, 1000), (1, 0)])
    def test_rejects_non_positive_values(self, max_requests, window_ms):
        with pytest.raises(ValueError):
            RateLimitPolicy(max_requests=max_requests, window_ms=window_ms)

    def test_from_settings_builds_every_named_policy(self):
        limiter = SlidingWindowLimiter.from_settings(Settings(debug=True))
        assert set(limiter.policies) == {"signup", "login", "post", "like", "comment"}
        assert limiter.policies["login"] == RateLimitPolicy(max_requests=10, window_ms=900_000)


class TestSlidingWindow:
    def _limiter(self) -> SlidingWindowLimiter:
        return SlidingWindowLimiter(MemoryStorage(), {"burst": RateLimitPolicy(max_requests=5, window_ms=1000)})

    def test_allows_max_then_rejects(self):
        limiter = self._limiter()
        for _ in range(5):
            limiter.hit("burst", "10.0.0.1")
        with pytest.raises(RateLimitError) as exc_info:
            limiter.hit("burst", "10.0.0.1")
        assert exc_info.value.status_code == 429
        assert exc_info.value.retry_after == 1

    def test_window_slides(self):
        limiter = self._limiter()
        for _ in range(5):
            limiter.hit("burst", "10.0.0.1")
        time.sleep(1.1)
        limiter.hit("burst", "10.0.0.1")

    def test_clients_are_independent(self):
        limiter = self._limiter()
        for _ in range(5):
            limiter.hit("burst", "10.0.0.1")
        limiter.hit("burst", "10.0.0.2")

    def test_concurrent_hits_admit_exactly_max(self):
        """64 threads released together on one key: the window admits 5, no more."""
        limiter = SlidingWindowLimiter(MemoryStorage(), {"burst": RateLimitPolicy(max_requests=5, window_ms=10_000)})
        workers = 64
        barrier = threading.Barrier(workers)

        def attempt(_):
            barrier.wait()
            try:
                limiter.hit("burst", "10.0.0.9")
            except RateLimitError:
                return False
            return True

        with ThreadPoolExecutor(max_workers=workers) as pool:
            results = list(pool.map(attempt, range(workers)))

        assert results.count(True) == 5, f"Expected 5 admitted, got {results.count(True)}"
        assert limiter.remaining("burst", "10.0.0.9") == 0

    def test_remaining_and_reset(self):
        limiter = self._limiter()
        limiter.hit("burst", "10.0.0.1")
        limiter.hit("burst", "10.0.0.1")
        assert limiter.remaining("burst", "10.0.0.1") == 3
        limiter.reset()
        assert limiter.remaining("burst", "10.0.0.1") == 5


class TestRateLimitedRoute:
    """Login allows 3 attempts per minute in limited_client."""

    def test_fourth_login_attempt_gets_429(self, limited_client):
        body = {"email": "limited@example.com", "password": "wrong-password"}
        statuses = [limited_client.post("/api/auth/login", json=body).status_code for _ in range(3)]
        assert statuses == [401, 401, 401]

        resp = limited_client.post("/api/auth/login", json=body)
        assert resp.status_code == 429
        data = resp.json()
        assert data["success"] is False
        assert data["message"] == "Too many requests, please try again later."
        assert data["retryAfter"] == 60
        assert resp.headers["Retry-After"] == "60"

    def test_correct_password_is_also_blocked_once_exhausted(self, limited_client):
        """The limit counts attempts, not failures."""
        resp = limited_client.post(
            "/api/auth/login", json={"email": "limited@example.com", "password": "limitedpass1"}
        )
        assert resp.status_code == 429
