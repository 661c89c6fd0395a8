"""
tests/test_errors.py -- Tests for core/errors.py and the catch-all handler in api/main.py.

Covers:
  - InternalError hides its detail unless expose_detail is set
  - An unexpected exception in a route becomes 500 "Something went wrong!"
    with no detail outside debug mode, and with the detail in debug mode
"""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from api.main import app
from core.config import get_settings
from core.errors import InternalError, RateLimitError

_FAILING_PATH = "/api/_failing"
_SECRET_DETAIL = "connection string leaked: postgres://admin:hunter2@db"


@pytest.fixture
def failing_client():
    """Mount a route that raises, yield a client that returns 500s instead of raising."""

    def explode():
        raise RuntimeError(_SECRET_DETAIL)

    app.add_api_route(_FAILING_PATH, explode, methods=["GET"])
    route = app.router.routes[-1]
    try:
        yield TestClient(app, raise_server_exceptions=False)
    finally:
        app.router.routes.remove(route)


class TestInternalError:
    def test_detail_hidden_by_default(self):
        body = InternalError(detail="boom").to_dict()
        assert body == {"success": False, "message": "Something went wrong!"}

    def test_detail_exposed_when_requested(self):
        body = InternalError(detail="boom", expose_detail=True).to_dict()
        assert body == {"success": False, "message": "Something went wrong!", "error": "boom"}

    def test_rate_limit_error_carries_retry_after(self):
        body = RateLimitError(retry_after=30).to_dict()
        assert body["retryAfter"] == 30
        assert body["message"] == "Too many requests, please try again later."


class TestUnhandledExceptionBoundary:
    def test_production_response_has_no_detail(self, failing_client, monkeypatch):
        monkeypatch.setattr(get_settings(), "debug", False)
        resp = failing_client.get(_FAILING_PATH)
        assert resp.status_code == 500
        assert resp.json() == {"success": False, "message": "Something went wrong!"}
        assert "hunter2" not in resp.text, "Exception text must not reach the client in production"

    def test_debug_response_includes_detail(self, failing_client, monkeypatch):
        monkeypatch.setattr(get_settings(), "debug", True)
        resp = failing_client.get(_FAILING_PATH)
        assert resp.status_code == 500
        data = resp.json()
        assert data["message"] == "Something went wrong!"
        assert data["error"] == _SECRET_DETAIL
