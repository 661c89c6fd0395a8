"""
tests/test_guards.py -- Unit tests for auth/guards.py ownership checks.
"""

from __future__ import annotations

import pytest

from auth.guards import check_ownership, is_owner
from auth.models import User
from core.errors import AuthorizationError


def _requester(uid):
    return User(name="Requester", email="r@example.com", id=uid)


def test_owner_passes():
    check_ownership(5, _requester(5), "delete", "post")


def test_non_owner_gets_403_with_resource_in_message():
    with pytest.raises(AuthorizationError) as exc_info:
        check_ownership(5, _requester(6), "delete", "comment")
    assert exc_info.value.status_code == 403
    assert exc_info.value.message == "Not authorized to delete this comment"


def test_unsaved_requester_never_owns():
    """A User without an id must not match anything, including None owners."""
    assert is_owner(None, _requester(None)) is False
