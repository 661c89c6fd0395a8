"""
api/routes/posts.py -- Feed, post, like, comment, and bookmark REST endpoints.

Routes (literal paths first so they are not captured by /{post_id}):
  GET    /api/posts/search                     -- search post content (public)
  GET    /api/posts/liked                      -- posts the caller liked (auth)
  GET    /api/posts/bookmarks                  -- posts the caller bookmarked (auth)
  GET    /api/posts/user/{user_id}             -- posts by one user (public)
  GET    /api/posts                            -- feed, newest first (public)
  POST   /api/posts                            -- create (auth, rate limited)
  GET    /api/posts/{post_id}                  -- single post (public)
  PUT    /api/posts/{post_id}                  -- update (auth + owner)
  DELETE /api/posts/{post_id}                  -- delete (auth + owner)
  POST   /api/posts/{post_id}/like             -- toggle like (auth, rate limited)
  POST   /api/posts/{post_id}/comment          -- add comment (auth, rate limited)
  DELETE /api/posts/{post_id}/comment/{cid}    -- delete comment (auth + comment owner)
  POST   /api/posts/{post_id}/bookmark         -- toggle bookmark (auth)

Ownership: check_ownership() runs after the resource is loaded, so a missing
resource is a 404 and someone else's resource is a 403. Likes, comment
creation, and bookmarks are open to any authenticated user.

Dependency order on rate limited routes is auth first, then the limiter, so
unauthenticated requests never consume a client's budget.
"""

from __future__ import annotations

from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Query, Request

from api.limiter import rate_limit
from api.models import (
    ApiResponse,
    BookmarkToggleResponse,
    CommentCreatedResponse,
    CommentDeletedResponse,
    CommentRequest,
    CommentResponse,
    LikeToggleResponse,
    PostEnvelope,
    PostListResponse,
    PostPagination,
    PostRequest,
    PostResponse,
    UserPostsResponse,
    UserResponse,
)
from auth.dependencies import get_current_user
from auth.guards import check_ownership
from auth.models import User
from auth.store import UserStore
from core.errors import NotFoundError, ValidationError
from core.pagination import MAX_PAGE, Page, offset_for
from feed.models import Comment, Post
from feed.store import PostStore
from feed.views import hydrate_comment, hydrate_post, hydrate_posts

router = APIRouter(prefix="/posts")

PageParam = Annotated[int, Query(ge=1, le=MAX_PAGE)]
LimitParam = Annotated[int, Query(ge=1, le=100)]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _stores(request: Request) -> tuple[PostStore, UserStore]:
    return request.app.state.post_store, request.app.state.user_store


def _load_post(posts: PostStore, post_id: int) -> Post:
    post = posts.get_post(post_id)
    if post is None:
        raise NotFoundError("Post not found")
    return post


def _post_page(
    request: Request,
    page: int,
    limit: int,
    author_id: Optional[int] = None,
    liked_by: Optional[int] = None,
    bookmarked_by: Optional[int] = None,
    search: Optional[str] = None,
) -> tuple[list[PostResponse], PostPagination]:
    """Fetch, hydrate, and paginate one page of posts for any listing route."""
    posts, users = _stores(request)
    filters = {"author_id": author_id, "liked_by": liked_by, "bookmarked_by": bookmarked_by, "search": search}
    rows = posts.list_posts(offset=offset_for(page, limit), limit=limit, **filters)
    total = posts.count_posts(**filters)
    views = hydrate_posts(rows, users)
    pagination = PostPagination.from_page(Page(current_page=page, items_per_page=limit, total_items=total))
    return [PostResponse.from_view(v) for v in views], pagination


# ---------------------------------------------------------------------------
# Listings
# ---------------------------------------------------------------------------


@router.get("/search", response_model=PostListResponse, response_model_exclude_none=True)
def search_posts(
    request: Request,
    query: Annotated[str, Query(max_length=200)] = "",
    page: PageParam = 1,
    limit: LimitParam = 10,
) -> PostListResponse:
    if not query.strip():
        raise ValidationError("Search query is required")
    posts, pagination = _post_page(request, page, limit, search=query)
    return PostListResponse(posts=posts, pagination=pagination)


@router.get("/liked", response_model=PostListResponse, response_model_exclude_none=True)
def get_liked_posts(
    request: Request,
    page: PageParam = 1,
    limit: LimitParam = 10,
    current_user: User = Depends(get_current_user),
) -> PostListResponse:
    posts, pagination = _post_page(request, page, limit, liked_by=current_user.id)
    return PostListResponse(posts=posts, pagination=pagination)


@router.get("/bookmarks", response_model=PostListResponse, response_model_exclude_none=True)
def get_bookmarked_posts(
    request: Request,
    page: PageParam = 1,
    limit: LimitParam = 10,
    current_user: User = Depends(get_current_user),
) -> PostListResponse:
    posts, pagination = _post_page(request, page, limit, bookmarked_by=current_user.id)
    return PostListResponse(posts=posts, pagination=pagination)


@router.get("/user/{user_id}", response_model=UserPostsResponse, response_model_exclude_none=True)
def get_user_posts(request: Request, user_id: int, page: PageParam = 1, limit: LimitParam = 10) -> UserPostsResponse:
    _, users = _stores(request)
    author = users.get_by_id(user_id)
    if author is None:
        raise NotFoundError("User not found")
    posts, pagination = _post_page(request, page, limit, author_id=user_id)
    return UserPostsResponse(posts=posts, pagination=pagination, user=UserResponse.from_user(author))


@router.get("", response_model=PostListResponse, response_model_exclude_none=True)
def get_feed(request: Request, page: PageParam = 1, limit: LimitParam = 10) -> PostListResponse:
    """The public feed: every post, newest first."""
    posts, pagination = _post_page(request, page, limit)
    return PostListResponse(posts=posts, pagination=pagination)


# ---------------------------------------------------------------------------
# Single post
# ---------------------------------------------------------------------------


@router.post("", response_model=PostEnvelope, response_model_exclude_none=True, status_code=201)
def create_post(
    request: Request,
    body: PostRequest,
    current_user: User = Depends(get_current_user),
    _limit: None = Depends(rate_limit("post")),
) -> PostEnvelope:
    posts, users = _stores(request)
    post_id = posts.create_post(Post(author_id=current_user.id, content=body.content, image=body.image or ""))
    view = hydrate_post(_load_post(posts, post_id), users)
    return PostEnvelope(message="Post created successfully", post=PostResponse.from_view(view))


@router.get("/{post_id}", response_model=PostEnvelope, response_model_exclude_none=True)
def get_post(request: Request, post_id: int) -> PostEnvelope:
    posts, users = _stores(request)
    view = hydrate_post(_load_post(posts, post_id), users)
    return PostEnvelope(post=PostResponse.from_view(view))


@router.put("/{post_id}", response_model=PostEnvelope, response_model_exclude_none=True)
def update_post(
    request: Request,
    post_id: int,
    body: PostRequest,
    current_user: User = Depends(get_current_user),
) -> PostEnvelope:
    posts, users = _stores(request)
    post = _load_post(posts, post_id)
    check_ownership(post.author_id, current_user, "update", "post")

    posts.update_post(post_id, content=body.content, image=body.image)
    view = hydrate_post(_load_post(posts, post_id), users)
    return PostEnvelope(message="Post updated successfully", post=PostResponse.from_view(view))


@router.delete("/{post_id}", response_model=ApiResponse, response_model_exclude_none=True)
def delete_post(
    request: Request,
    post_id: int,
    current_user: User = Depends(get_current_user),
) -> ApiResponse:
    posts, _ = _stores(request)
    post = _load_post(posts, post_id)
    check_ownership(post.author_id, current_user, "delete", "post")

    posts.delete_post(post_id)
    return ApiResponse(message="Post deleted successfully")


# ---------------------------------------------------------------------------
# Interactions
# ---------------------------------------------------------------------------


@router.post("/{post_id}/like", response_model=LikeToggleResponse, response_model_exclude_none=True)
def toggle_like(
    request: Request,
    post_id: int,
    current_user: User = Depends(get_current_user),
    _limit: None = Depends(rate_limit("like")),
) -> LikeToggleResponse:
    """Like the post, or unlike it if the caller already liked it."""
    posts, _ = _stores(request)
    _load_post(posts, post_id)
    is_liked = posts.toggle_like(post_id, current_user.id)
    return LikeToggleResponse(
        message="Post liked" if is_liked else "Post unliked",
        is_liked=is_liked,
        likes_count=posts.count_likes(post_id),
    )


@router.post(
    "/{post_id}/comment",
    response_model=CommentCreatedResponse,
    response_model_exclude_none=True,
    status_code=201,
)
def add_comment(
    request: Request,
    post_id: int,
    body: CommentRequest,
    current_user: User = Depends(get_current_user),
    _limit: None = Depends(rate_limit("comment")),
) -> CommentCreatedResponse:
    posts, users = _stores(request)
    _load_post(posts, post_id)
    comment = posts.add_comment(Comment(post_id=post_id, user_id=current_user.id, content=body.content))
    return CommentCreatedResponse(
        message="Comment added successfully",
        comment=CommentResponse.from_view(hydrate_comment(comment, users)),
        comments_count=posts.count_comments(post_id),
    )


@router.delete(
    "/{post_id}/comment/{comment_id}",
    response_model=CommentDeletedResponse,
    response_model_exclude_none=True,
)
def delete_comment(
    request: Request,
    post_id: int,
    comment_id: int,
    current_user: User = Depends(get_current_user),
) -> CommentDeletedResponse:
    posts, _ = _stores(request)
    _load_post(posts, post_id)
    comment = posts.get_comment(post_id, comment_id)
    if comment is None:
        raise NotFoundError("Comment not found")
    check_ownership(comment.user_id, current_user, "delete", "comment")

    posts.delete_comment(comment_id)
    return CommentDeletedResponse(
        message="Comment deleted successfully",
        comments_count=posts.count_comments(post_id),
    )


@router.post("/{post_id}/bookmark", response_model=BookmarkToggleResponse, response_model_exclude_none=True)
def toggle_bookmark(
    request: Request,
    post_id: int,
    current_user: User = Depends(get_current_user),
) -> BookmarkToggleResponse:
    posts, _ = _stores(request)
    _load_post(posts, post_id)
    is_bookmarked = posts.toggle_bookmark(post_id, current_user.id)
    return BookmarkToggleResponse(
        message="Post bookmarked" if is_bookmarked else "Bookmark removed",
        is_bookmarked=is_bookmarked,
    )
