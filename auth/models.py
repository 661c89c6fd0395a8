"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, zero logic). Stores and routes do
the work.

Layer rule: no imports from api/ or feed/.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class User:
    """An identity in Konnect.

    email is stored lower-cased; lookups by email are case-insensitive.

    hashed_password is None whenever the record was loaded without the
    credential column (the default for every read except login).
    """

    name: str
    email: str
    id: int | None = None
    hashed_password: str | None = None
    profile_picture: str = ""
    bio: str = ""
    location: str = ""
    website: str = ""
    created_at: str | None = None
    updated_at: str | None = None


@dataclass(frozen=True)
class UserSummary:
    """The public slice of a User embedded in posts, likes, and comments."""

    id: int
    name: str
    email: str
    profile_picture: str = ""
