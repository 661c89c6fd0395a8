"""
API request and response models for Konnect REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py and
feed/, which own the internal domain representation. Route handlers map
between the two through the from_* factory methods below.

Wire format: field names are camelCase on the wire (profilePicture,
likesCount, ...) and snake_case in Python. populate_by_name lets tests and
handlers build models with either.

Request validation: every request model validates all of its fields even when
absent (validate_default=True), so a missing field produces the same
human-readable message as an empty one. Messages are raised as
PydanticCustomError so api/main.py can copy them verbatim into the
`errors` list of the 400 response.
"""

from __future__ import annotations

import re
from typing import Optional

from pydantic import BaseModel, ConfigDict, field_validator
from pydantic.alias_generators import to_camel
from pydantic_core import PydanticCustomError

from auth.models import User, UserSummary
from core.pagination import Page
from feed.views import CommentView, LikeView, PostView

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

NAME_MIN_LENGTH = 2
NAME_MAX_LENGTH = 50
PASSWORD_MIN_LENGTH = 6
PASSWORD_MAX_LENGTH = 128
POST_MAX_LENGTH = 1000
COMMENT_MAX_LENGTH = 500
BIO_MAX_LENGTH = 500
LOCATION_MAX_LENGTH = 100
WEBSITE_MAX_LENGTH = 200


def _invalid(message: str) -> PydanticCustomError:
    return PydanticCustomError("invalid_field", message)


def _blank(value: Optional[str]) -> bool:
    return value is None or not value.strip()


# ---------------------------------------------------------------------------
# Base classes
# ---------------------------------------------------------------------------


class _RequestModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, validate_default=True)


class _ResponseModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


# ---------------------------------------------------------------------------
# Request models -- auth
# ---------------------------------------------------------------------------


class SignupRequest(_RequestModel):
    """Request body for POST /api/auth/signup."""

    name: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None

    @field_validator("name")
    @classmethod
    def check_name(cls, value: Optional[str]) -> str:
        if _blank(value):
            raise _invalid("Name is required")
        value = value.strip()
        if len(value) < NAME_MIN_LENGTH:
            raise _invalid(f"Name must be at least {NAME_MIN_LENGTH} characters long")
        if len(value) > NAME_MAX_LENGTH:
            raise _invalid(f"Name cannot exceed {NAME_MAX_LENGTH} characters")
        return value

    @field_validator("email")
    @classmethod
    def check_email(cls, value: Optional[str]) -> str:
        if _blank(value):
            raise _invalid("Email is required")
        value = value.strip()
        if not EMAIL_PATTERN.match(value):
            raise _invalid("Please provide a valid email address")
        return value.lower()

    @field_validator("password")
    @classmethod
    def check_password(cls, value: Optional[str]) -> str:
        if not value:
            raise _invalid("Password is required")
        if len(value) < PASSWORD_MIN_LENGTH:
            raise _invalid(f"Password must be at least {PASSWORD_MIN_LENGTH} characters long")
        if len(value) > PASSWORD_MAX_LENGTH:
            raise _invalid(f"Password cannot exceed {PASSWORD_MAX_LENGTH} characters")
        return value


class LoginRequest(_RequestModel):
    """Request body for POST /api/auth/login. Only presence is checked here."""

    email: Optional[str] = None
    password: Optional[str] = None

    @field_validator("email")
    @classmethod
    def check_email(cls, value: Optional[str]) -> str:
        if _blank(value):
            raise _invalid("Email is required")
        return value.strip().lower()

    @field_validator("password")
    @classmethod
    def check_password(cls, value: Optional[str]) -> str:
        if not value:
            raise _invalid("Password is required")
        return value


class ProfileUpdateRequest(_RequestModel):
    """Request body for PUT /api/auth/profile. Omitted fields are left unchanged."""

    name: Optional[str] = None
    bio: Optional[str] = None
    location: Optional[str] = None
    website: Optional[str] = None
    profile_picture: Optional[str] = None

    @field_validator("name")
    @classmethod
    def check_name(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        value = value.strip()
        if not value:
            raise _invalid("Name cannot be empty")
        if len(value) < NAME_MIN_LENGTH:
            raise _invalid(f"Name must be at least {NAME_MIN_LENGTH} characters long")
        if len(value) > NAME_MAX_LENGTH:
            raise _invalid(f"Name cannot exceed {NAME_MAX_LENGTH} characters")
        return value

    @field_validator("bio")
    @classmethod
    def check_bio(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and len(value.strip()) > BIO_MAX_LENGTH:
            raise _invalid(f"Bio cannot exceed {BIO_MAX_LENGTH} characters")
        return value.strip() if value is not None else None

    @field_validator("location")
    @classmethod
    def check_location(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and len(value.strip()) > LOCATION_MAX_LENGTH:
            raise _invalid(f"Location cannot exceed {LOCATION_MAX_LENGTH} characters")
        return value.strip() if value is not None else None

    @field_validator("website")
    @classmethod
    def check_website(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and len(value.strip()) > WEBSITE_MAX_LENGTH:
            raise _invalid(f"Website URL cannot exceed {WEBSITE_MAX_LENGTH} characters")
        return value.strip() if value is not None else None

    def changes(self) -> dict[str, str]:
        """Return only the fields the client sent, keyed by store column name."""
        return {k: v for k, v in self.model_dump().items() if v is not None}


# ---------------------------------------------------------------------------
# Request models -- posts
# ---------------------------------------------------------------------------


class PostRequest(_RequestModel):
    """Request body for POST /api/posts and PUT /api/posts/{id}."""

    content: Optional[str] = None
    image: Optional[str] = None

    @field_validator("content")
    @classmethod
    def check_content(cls, value: Optional[str]) -> str:
        if _blank(value):
            raise _invalid("Post content is required")
        value = value.strip()
        if len(value) > POST_MAX_LENGTH:
            raise _invalid(f"Post content cannot exceed {POST_MAX_LENGTH} characters")
        return value


class CommentRequest(_RequestModel):
    """Request body for POST /api/posts/{id}/comment."""

    content: Optional[str] = None

    @field_validator("content")
    @classmethod
    def check_content(cls, value: Optional[str]) -> str:
        if _blank(value):
            raise _invalid("Comment content is required")
        value = value.strip()
        if len(value) > COMMENT_MAX_LENGTH:
            raise _invalid(f"Comment cannot exceed {COMMENT_MAX_LENGTH} characters")
        return value


# ---------------------------------------------------------------------------
# Response models -- entities
# ---------------------------------------------------------------------------


class UserResponse(_ResponseModel):
    """Public profile of a user. There is deliberately no password field."""

    id: int
    name: str
    email: str
    profile_picture: str = ""
    bio: str = ""
    location: str = ""
    website: str = ""
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @classmethod
    def from_user(cls, user: User) -> "UserResponse":
        return cls(
            id=user.id,
            name=user.name,
            email=user.email,
            profile_picture=user.profile_picture,
            bio=user.bio,
            location=user.location,
            website=user.website,
            created_at=user.created_at,
            updated_at=user.updated_at,
        )


class UserSummaryResponse(_ResponseModel):
    id: int
    name: str
    email: str
    profile_picture: str = ""

    @classmethod
    def from_summary(cls, summary: UserSummary) -> "UserSummaryResponse":
        return cls(
            id=summary.id,
            name=summary.name,
            email=summary.email,
            profile_picture=summary.profile_picture,
        )


class LikeResponse(_ResponseModel):
    user: UserSummaryResponse
    created_at: str

    @classmethod
    def from_view(cls, view: LikeView) -> "LikeResponse":
        return cls(user=UserSummaryResponse.from_summary(view.user), created_at=view.created_at)


class CommentResponse(_ResponseModel):
    id: int
    user: UserSummaryResponse
    content: str
    created_at: str

    @classmethod
    def from_view(cls, view: CommentView) -> "CommentResponse":
        return cls(
            id=view.id,
            user=UserSummaryResponse.from_summary(view.user),
            content=view.content,
            created_at=view.created_at,
        )


class PostResponse(_ResponseModel):
    id: int
    content: str
    image: str
    author: UserSummaryResponse
    likes: list[LikeResponse]
    comments: list[CommentResponse]
    likes_count: int
    comments_count: int
    created_at: str
    updated_at: str

    @classmethod
    def from_view(cls, view: PostView) -> "PostResponse":
        """Factory Method: the mapping lives beside the output model, not in handlers."""
        return cls(
            id=view.id,
            content=view.content,
            image=view.image,
            author=UserSummaryResponse.from_summary(view.author),
            likes=[LikeResponse.from_view(like) for like in view.likes],
            comments=[CommentResponse.from_view(c) for c in view.comments],
            likes_count=view.likes_count,
            comments_count=view.comments_count,
            created_at=view.created_at,
            updated_at=view.updated_at,
        )


# ---------------------------------------------------------------------------
# Response models -- pagination
# ---------------------------------------------------------------------------


class _Pagination(_ResponseModel):
    current_page: int
    total_pages: int
    has_next_page: bool
    has_prev_page: bool


class PostPagination(_Pagination):
    total_posts: int

    @classmethod
    def from_page(cls, page: Page) -> "PostPagination":
        return cls(
            current_page=page.current_page,
            total_pages=page.total_pages,
            total_posts=page.total_items,
            has_next_page=page.has_next_page,
            has_prev_page=page.has_prev_page,
        )


class UserPagination(_Pagination):
    total_users: int

    @classmethod
    def from_page(cls, page: Page) -> "UserPagination":
        return cls(
            current_page=page.current_page,
            total_pages=page.total_pages,
            total_users=page.total_items,
            has_next_page=page.has_next_page,
            has_prev_page=page.has_prev_page,
        )


# ---------------------------------------------------------------------------
# Response envelopes: {success: true, message?, ...payload}
# ---------------------------------------------------------------------------


class ApiResponse(_ResponseModel):
    success: bool = True
    message: Optional[str] = None


class AuthResponse(ApiResponse):
    """Response for signup and login."""

    token: str
    user: UserResponse


class UserEnvelope(ApiResponse):
    user: UserResponse


class UserListResponse(ApiResponse):
    users: list[UserResponse]
    pagination: UserPagination


class PostEnvelope(ApiResponse):
    post: PostResponse


class PostListResponse(ApiResponse):
    posts: list[PostResponse]
    pagination: PostPagination


class UserPostsResponse(PostListResponse):
    user: UserResponse


class LikeToggleResponse(ApiResponse):
    is_liked: bool
    likes_count: int


class CommentCreatedResponse(ApiResponse):
    comment: CommentResponse
    comments_count: int


class CommentDeletedResponse(ApiResponse):
    comments_count: int


class BookmarkToggleResponse(ApiResponse):
    is_bookmarked: bool


class HealthResponse(_ResponseModel):
    """Response for GET /api/health."""

    status: str = "healthy"
    version: str
    components: dict[str, str]
