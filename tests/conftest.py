"""
tests/conftest.py -- Shared test fixtures for Konnect integration tests.

This module provides:
  - _make_test_stores(): creates isolated in-memory DBs for users + posts
  - _patch_lifespan(): wires test stores and a limiter into app.state
  - api_client: TestClient plus a registered user's token and id
  - other_user: a second registered identity for ownership tests
  - limited_client: TestClient whose login policy allows only 3 attempts

Design: Named shared-memory SQLite URIs (not plain :memory:) are required
because TestClient runs sync route handlers in a thread pool. Plain :memory:
DBs are per-connection and would present a blank schema to each worker thread.
The named URI format (file:name?mode=memory&cache=shared&uri=true) shares
one in-memory instance across all connections in the same process.

The DEBUG env var must be set before any auth module import so get_settings()
auto-generates SECRET_KEY in dev mode rather than raising ValueError.
"""

from __future__ import annotations

import os
from collections.abc import Generator
from contextlib import asynccontextmanager

# CRITICAL: Set DEBUG before any auth/core import so get_settings() can
# auto-generate SECRET_KEY in dev mode instead of raising ValueError.
os.environ.setdefault("DEBUG", "true")

import pytest
from fastapi.testclient import TestClient
from limits.storage import MemoryStorage

from api.limiter import RateLimitPolicy, SlidingWindowLimiter
from api.main import app
from auth.models import User
from auth.store import UserStore
from auth.tokens import hash_password, issue_token
from feed.store import PostStore

# Large enough that no integration test trips a limit by accident.
_GENEROUS = RateLimitPolicy(max_requests=10_000, window_ms=60_000)
_POLICY_NAMES = ("signup", "login", "post", "like", "comment")


# ---------------------------------------------------------------------------
# Store helpers
# ---------------------------------------------------------------------------


def _make_test_stores(db_suffix: str) -> tuple[UserStore, PostStore]:
    """Create isolated named shared-memory SQLite stores for test isolation.

    Args:
        db_suffix: Unique string appended to the DB name so test modules
                   don't share state (e.g. 'api_test_posts').
    """
    users_url = f"sqlite:///file:test_users_{db_suffix}?mode=memory&cache=shared&uri=true"
    posts_url = f"sqlite:///file:test_posts_{db_suffix}?mode=memory&cache=shared&uri=true"
    return UserStore(db_url=users_url), PostStore(db_url=posts_url)


def _make_limiter(**overrides: RateLimitPolicy) -> SlidingWindowLimiter:
    policies = {name: _GENEROUS for name in _POLICY_NAMES}
    policies.update(overrides)
    return SlidingWindowLimiter(MemoryStorage(), policies)


def _register(user_store: UserStore, name: str, email: str, password: str) -> tuple[str, int]:
    """Create a user directly in the store and return (token, user_id)."""
    uid = user_store.create_user(User(name=name, email=email, hashed_password=hash_password(password)))
    return issue_token(uid), uid


def _patch_lifespan(user_store: UserStore, post_store: PostStore, limiter: SlidingWindowLimiter):
    """Return an async context manager that replaces the real lifespan.

    Wires pre-created test stores into app.state so TestClient routes see
    isolated test DBs rather than the configured DATABASE_URL.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.user_store = user_store
        app.state.post_store = post_store
        app.state.rate_limiter = limiter
        yield

    return test_lifespan


# ---------------------------------------------------------------------------
# Module-scoped fixtures -- one TestClient per test module for speed
# ---------------------------------------------------------------------------


@pytest.fixture(scope="module")
def api_client(request) -> Generator[tuple[TestClient, str, int], None, None]:
    """Yield (client, token, user_id) for API integration tests.

    The TestClient uses the real FastAPI app with a patched lifespan so
    tests hit real route handlers but use isolated in-memory stores.
    """
    user_store, post_store = _make_test_stores(f"api_{request.module.__name__}")
    token, uid = _register(user_store, "Test Owner", "owner@example.com", "ownerpass123")

    app.router.lifespan_context = _patch_lifespan(user_store, post_store, _make_limiter())

    with TestClient(app, raise_server_exceptions=True) as client:
        yield client, token, uid

    post_store.close()
    user_store.close()


@pytest.fixture(scope="module")
def other_user(api_client) -> tuple[str, int]:
    """Yield (token, user_id) for a second identity in the api_client stores."""
    client, _, _ = api_client
    return _register(client.app.state.user_store, "Other Person", "other@example.com", "otherpass123")


@pytest.fixture(scope="module")
def limited_client(request) -> Generator[TestClient, None, None]:
    """Yield a TestClient whose login policy is 3 attempts per minute."""
    user_store, post_store = _make_test_stores(f"limited_{request.module.__name__}")
    _register(user_store, "Limited User", "limited@example.com", "limitedpass1")

    limiter = _make_limiter(login=RateLimitPolicy(max_requests=3, window_ms=60_000))
    app.router.lifespan_context = _patch_lifespan(user_store, post_store, limiter)

    with TestClient(app, raise_server_exceptions=True) as client:
        yield client

    post_store.close()
    user_store.close()
