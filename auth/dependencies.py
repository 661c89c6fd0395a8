"""
auth/dependencies.py -- FastAPI Depends() helpers for authentication.

Only one credential source is read: the `Authorization` header. The
"Bearer " prefix is stripped; any other shape ("Token abc", "Basic ...") is
handed to verify_token() unchanged and fails signature verification.

Every authenticated request re-reads the identity from the UserStore (no
caching), so a deleted user is locked out on the next request even though
their token is still cryptographically valid.

Layer rule: no imports from api/ or feed/.
  auth/dependencies.py may import from fastapi because this module is part
  of the FastAPI dependency injection system.
"""

from __future__ import annotations

import logging

from fastapi import Request

from auth.models import User
from auth.store import UserStore
from auth.tokens import verify_token
from core.errors import AuthenticationError, InvalidTokenError

logger = logging.getLogger("konnect.auth")

_BEARER_PREFIX = "Bearer "


def extract_token(authorization: str) -> str:
    """Strip the Bearer prefix; any other shape is returned unchanged."""
    if authorization.startswith(_BEARER_PREFIX):
        return authorization[len(_BEARER_PREFIX) :]
    return authorization


def get_current_user(request: Request) -> User:
    """Require authentication. Raises AuthenticationError (401) otherwise.

    Use as a FastAPI dependency:
        @router.get("/protected")
        def route(current_user: User = Depends(get_current_user)): ...

    NoToken  -> "No token provided"
    BadToken -> "Invalid token" / "Token expired" / "Invalid token. User not found."
    Valid    -> the User, loaded without its password hash
    """
    authorization = request.headers.get("Authorization")
    if not authorization:
        raise AuthenticationError("No token provided")

    try:
        user_id = verify_token(extract_token(authorization))
    except AuthenticationError as exc:
        logger.info("Rejected token on %s %s: %s", request.method, request.url.path, exc.message)
        raise

    user_store: UserStore = request.app.state.user_store
    user = user_store.get_by_id(user_id)
    if user is None:
        logger.info("Token for missing user %s on %s", user_id, request.url.path)
        raise InvalidTokenError("Invalid token. User not found.")
    return user
