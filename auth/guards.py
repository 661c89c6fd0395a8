"""
auth/guards.py -- Per-resource ownership checks.

Called inline by mutate/delete handlers after the resource is loaded (so a
missing resource is still a 404, not a 403). Likes, comment creation, and
bookmarks are open to any authenticated identity and never call this.
"""

from __future__ import annotations

from auth.models import User
from core.errors import AuthorizationError


def is_owner(owner_id: int, requester: User) -> bool:
    return requester.id is not None and owner_id == requester.id


def check_ownership(owner_id: int, requester: User, action: str = "modify", resource: str = "resource") -> None:
    """Raise AuthorizationError (403) unless requester owns the resource.

    Usage:
        check_ownership(post.author_id, current_user, "delete", "post")
    """
    if not is_owner(owner_id, requester):
        raise AuthorizationError(f"Not authorized to {action} this {resource}")
