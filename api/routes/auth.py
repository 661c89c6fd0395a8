"""
api/routes/auth.py -- Signup, login, and profile REST endpoints.

Routes:
  POST /api/auth/signup      -- create account; returns token + user (rate limited)
  POST /api/auth/login       -- email/password login; returns token + user (rate limited)
  GET  /api/auth/me          -- current user (requires auth)
  PUT  /api/auth/profile     -- update own profile (requires auth)
  GET  /api/auth/user/{id}   -- public profile
  GET  /api/auth/search      -- search users by name or email (public)

Security:
  authenticate_user() provides timing equalization -- use it, never inline
  get_by_email() + verify_password().
  Login failures use one message for unknown email and wrong password so the
  endpoint cannot be used to enumerate accounts.
  Cache-Control: no-store on responses that carry a token.
"""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request, Response
from sqlalchemy.exc import IntegrityError

from api.limiter import rate_limit
from api.models import (
    AuthResponse,
    LoginRequest,
    ProfileUpdateRequest,
    SignupRequest,
    UserEnvelope,
    UserListResponse,
    UserPagination,
    UserResponse,
)
from auth.dependencies import get_current_user
from auth.models import User
from auth.store import UserStore
from auth.tokens import authenticate_user, hash_password, issue_token
from core.errors import AuthenticationError, NotFoundError, ValidationError
from core.pagination import MAX_PAGE, Page, offset_for

logger = logging.getLogger("konnect.api")

# Auth policy:
# - POST /auth/signup, /auth/login:  public, rate limited per client address
# - GET  /auth/user/{id}, /search:   public
# - GET  /auth/me, PUT /profile:     requires auth (get_current_user)
router = APIRouter(prefix="/auth")


# ---------------------------------------------------------------------------
# Public endpoints
# ---------------------------------------------------------------------------


@router.post(
    "/signup",
    response_model=AuthResponse,
    response_model_exclude_none=True,
    status_code=201,
    dependencies=[Depends(rate_limit("signup"))],
)
def signup(request: Request, response: Response, body: SignupRequest) -> AuthResponse:
    """Register a new account and return a token for it."""
    user_store: UserStore = request.app.state.user_store

    if user_store.get_by_email(body.email) is not None:
        raise ValidationError("User with this email already exists")

    new_user = User(name=body.name, email=body.email, hashed_password=hash_password(body.password))
    try:
        user_id = user_store.create_user(new_user)
    except IntegrityError as exc:
        # Lost a race with a concurrent signup for the same email.
        raise ValidationError("Email already exists") from exc

    created = user_store.get_by_id(user_id)
    logger.info("User %s signed up", user_id)
    response.headers["Cache-Control"] = "no-store"
    return AuthResponse(
        message="User registered successfully",
        token=issue_token(user_id),
        user=UserResponse.from_user(created),
    )


@router.post(
    "/login",
    response_model=AuthResponse,
    response_model_exclude_none=True,
    dependencies=[Depends(rate_limit("login"))],
)
def login(request: Request, response: Response, body: LoginRequest) -> AuthResponse:
    """Authenticate with email and password and return a fresh token."""
    user_store: UserStore = request.app.state.user_store
    user = authenticate_user(user_store, body.email, body.password)
    if user is None:
        raise AuthenticationError("Invalid email or password")

    response.headers["Cache-Control"] = "no-store"
    return AuthResponse(
        message="Login successful",
        token=issue_token(user.id),
        user=UserResponse.from_user(user),
    )


@router.get("/user/{user_id}", response_model=UserEnvelope, response_model_exclude_none=True)
def get_user_profile(request: Request, user_id: int) -> UserEnvelope:
    user_store: UserStore = request.app.state.user_store
    user = user_store.get_by_id(user_id)
    if user is None:
        raise NotFoundError("User not found")
    return UserEnvelope(user=UserResponse.from_user(user))


@router.get("/search", response_model=UserListResponse, response_model_exclude_none=True)
def search_users(
    request: Request,
    query: Annotated[str, Query(max_length=200)] = "",
    page: Annotated[int, Query(ge=1, le=MAX_PAGE)] = 1,
    limit: Annotated[int, Query(ge=1, le=100)] = 10,
) -> UserListResponse:
    """Case-insensitive substring search over names and emails."""
    if not query.strip():
        raise ValidationError("Search query is required")

    user_store: UserStore = request.app.state.user_store
    users = user_store.search_users(query, offset=offset_for(page, limit), limit=limit)
    total = user_store.count_search(query)
    return UserListResponse(
        users=[UserResponse.from_user(u) for u in users],
        pagination=UserPagination.from_page(Page(current_page=page, items_per_page=limit, total_items=total)),
    )


# ---------------------------------------------------------------------------
# Authenticated endpoints
# ---------------------------------------------------------------------------


@router.get("/me", response_model=UserEnvelope, response_model_exclude_none=True)
def me(current_user: User = Depends(get_current_user)) -> UserEnvelope:
    """Return the profile of the authenticated user."""
    return UserEnvelope(user=UserResponse.from_user(current_user))


@router.put("/profile", response_model=UserEnvelope, response_model_exclude_none=True)
def update_profile(
    request: Request,
    body: ProfileUpdateRequest,
    current_user: User = Depends(get_current_user),
) -> UserEnvelope:
    """Update the caller's own profile fields. Email and password are not editable here."""
    user_store: UserStore = request.app.state.user_store

    changes = body.changes()
    if changes and not user_store.update_user(current_user.id, **changes):
        raise NotFoundError("User not found")

    updated = user_store.get_by_id(current_user.id)
    if updated is None:
        raise NotFoundError("User not found")
    return UserEnvelope(message="Profile updated successfully", user=UserResponse.from_user(updated))
