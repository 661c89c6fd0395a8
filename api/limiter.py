"""
api/limiter.py -- Sliding-window-log rate limiting for sensitive routes.

The limiter is owned by the application (app.state.rate_limiter), not by this
module. Its counter store is a `limits` storage backend chosen by URI:

    memory://            -- process-local, the default
    redis://host:6379/0  -- shared across workers/hosts

MovingWindowRateLimiter keeps an ordered log of hit timestamps per key. On
each hit, entries older than now - window are ignored; if max_requests remain
the request is rejected, otherwise `now` is appended. This is approximate:
bursts straddling a window boundary can admit up to 2x max_requests.

The memory backend locks per key and sweeps expired keys on a background
timer, so no extra locking or cleanup is needed here.

Routes declare a limit by name:

    @router.post("/login")
    def login(..., _limit: None = Depends(rate_limit("login"))): ...
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass

from fastapi import Request
from limits import RateLimitItem, RateLimitItemPerSecond, parse
from limits.storage import Storage, storage_from_string
from limits.strategies import MovingWindowRateLimiter
from slowapi.util import get_remote_address

from core.errors import RateLimitError

logger = logging.getLogger("konnect.limiter")


@dataclass(frozen=True)
class RateLimitPolicy:
    """At most max_requests per client within a trailing window_ms window."""

    max_requests: int
    window_ms: int

    def __post_init__(self) -> None:
        if self.max_requests < 1:
            raise ValueError("max_requests must be at least 1")
        if self.window_ms < 1:
            raise ValueError("window_ms must be at least 1")

    @classmethod
    def parse(cls, notation: str) -> "RateLimitPolicy":
        """Build a policy from limits notation, e.g. "5/15 minutes" or "20/hour"."""
        item = parse(notation)
        return cls(max_requests=item.amount, window_ms=item.get_expiry() * 1000)

    @property
    def window_seconds(self) -> int:
        # limits windows are second-granular; round partial seconds up.
        return max(1, math.ceil(self.window_ms / 1000))

    @property
    def retry_after(self) -> int:
        return self.window_seconds

    def to_item(self) -> RateLimitItem:
        return RateLimitItemPerSecond(self.max_requests, self.window_seconds)


class SlidingWindowLimiter:
    """Named rate limit policies over an injected counter store.

    Usage:
        limiter = SlidingWindowLimiter(MemoryStorage(), {"login": RateLimitPolicy(10, 900_000)})
        limiter.hit("login", "203.0.113.7")   # raises RateLimitError when exhausted
    """

    def __init__(self, storage: Storage, policies: dict[str, RateLimitPolicy]) -> None:
        self.storage = storage
        self.policies = dict(policies)
        self._items = {name: policy.to_item() for name, policy in self.policies.items()}
        self._strategy = MovingWindowRateLimiter(storage)

    @classmethod
    def from_settings(cls, settings) -> "SlidingWindowLimiter":
        storage = storage_from_string(settings.rate_limit_storage_uri)
        policies = {name: RateLimitPolicy.parse(notation) for name, notation in settings.rate_limits.items()}
        return cls(storage, policies)

    def hit(self, policy_name: str, client_key: str) -> None:
        """Record one request from client_key, or raise RateLimitError if over the limit."""
        policy = self.policies[policy_name]
        if not self._strategy.hit(self._items[policy_name], policy_name, client_key):
            logger.warning("Rate limit '%s' exceeded by %s", policy_name, client_key)
            raise RateLimitError(retry_after=policy.retry_after)

    def remaining(self, policy_name: str, client_key: str) -> int:
        stats = self._strategy.get_window_stats(self._items[policy_name], policy_name, client_key)
        return stats.remaining

    def reset(self) -> None:
        """Drop every counter. Intended for tests and admin tooling."""
        self.storage.reset()


def rate_limit(policy_name: str):
    """Return a FastAPI dependency enforcing the named policy per client address."""

    def dependency(request: Request) -> None:
        limiter: SlidingWindowLimiter = request.app.state.rate_limiter
        limiter.hit(policy_name, get_remote_address(request))

    dependency.__name__ = f"rate_limit_{policy_name}"
    return dependency
