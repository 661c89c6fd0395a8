"""
feed/views.py -- Typed read models for posts, hydrated with user summaries.

PostStore returns aggregates that reference users by id only. The functions
here collect every user id a page of posts mentions (authors, likers,
commenters), load them with a single UserStore.get_summaries() call, and
build the view models the API serializes.

A user id that no longer resolves is rendered with a placeholder summary
rather than dropping the post.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from auth.models import UserSummary
from feed.models import Comment, Post

if TYPE_CHECKING:
    from auth.store import UserStore


@dataclass(frozen=True)
class LikeView:
    user: UserSummary
    created_at: str


@dataclass(frozen=True)
class CommentView:
    id: int
    user: UserSummary
    content: str
    created_at: str


@dataclass(frozen=True)
class PostView:
    id: int
    content: str
    image: str
    author: UserSummary
    created_at: str
    updated_at: str
    likes: list[LikeView] = field(default_factory=list)
    comments: list[CommentView] = field(default_factory=list)

    @property
    def likes_count(self) -> int:
        return len(self.likes)

    @property
    def comments_count(self) -> int:
        return len(self.comments)


def _placeholder(user_id: int) -> UserSummary:
    return UserSummary(id=user_id, name="Unknown user", email="")


def _user_ids(posts: list[Post]) -> set[int]:
    ids: set[int] = set()
    for post in posts:
        ids.add(post.author_id)
        ids.update(like.user_id for like in post.likes)
        ids.update(comment.user_id for comment in post.comments)
    return ids


def _comment_view(comment: Comment, users: dict[int, UserSummary]) -> CommentView:
    return CommentView(
        id=comment.id,
        user=users.get(comment.user_id) or _placeholder(comment.user_id),
        content=comment.content,
        created_at=comment.created_at,
    )


def hydrate_posts(posts: list[Post], user_store: UserStore) -> list[PostView]:
    """Build PostViews for a page of posts with one user lookup."""
    users = user_store.get_summaries(_user_ids(posts))
    views = []
    for post in posts:
        views.append(
            PostView(
                id=post.id,
                content=post.content,
                image=post.image,
                author=users.get(post.author_id) or _placeholder(post.author_id),
                created_at=post.created_at,
                updated_at=post.updated_at,
                likes=[
                    LikeView(user=users.get(like.user_id) or _placeholder(like.user_id), created_at=like.created_at)
                    for like in post.likes
                ],
                comments=[_comment_view(c, users) for c in post.comments],
            )
        )
    return views


def hydrate_post(post: Post, user_store: UserStore) -> PostView:
    return hydrate_posts([post], user_store)[0]


def hydrate_comment(comment: Comment, user_store: UserStore) -> CommentView:
    return _comment_view(comment, user_store.get_summaries([comment.user_id]))
