"""
feed/models.py -- Domain dataclasses for posts and their interactions.

These are pure data containers; the only logic is the derived counts on
Post. Persistence lives in feed/store.py; author/liker/commenter hydration
lives in feed/views.py.

id is None before the record is written to the database.
"""

from dataclasses import dataclass, field
from typing import Optional


@dataclass
class Like:
    post_id: int
    user_id: int
    created_at: str = ""


@dataclass
class Comment:
    """A comment on a post. user_id is the owner for deletion checks."""

    post_id: int
    user_id: int
    content: str
    id: Optional[int] = None
    created_at: str = ""


@dataclass
class Post:
    """A post aggregate: the post row plus its likes and comments.

    author_id is the owner for update/delete checks. likes and comments are
    ordered oldest first, matching the order they were added.
    """

    author_id: int
    content: str
    id: Optional[int] = None
    image: str = ""
    created_at: str = ""
    updated_at: str = ""
    likes: list[Like] = field(default_factory=list)
    comments: list[Comment] = field(default_factory=list)

    @property
    def likes_count(self) -> int:
        return len(self.likes)

    @property
    def comments_count(self) -> int:
        return len(self.comments)
