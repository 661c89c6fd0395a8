"""
feed/store.py -- SQLAlchemy-backed persistence layer for posts.

Uses SQLAlchemy Core (not ORM) so the dataclasses in feed/models.py remain
the authoritative domain representation. Swapping SQLite for PostgreSQL is a
connection string change.

Pattern: Repository + Data Mapper. PostStore is the repository; the _row_to_*
functions are the mappers. Reads return whole Post aggregates (likes and
comments attached) loaded with one query per table per page, never one per
post. Author details are not joined here -- see feed/views.py.

Toggles (likes, bookmarks):
  UNIQUE(post_id, user_id) guarantees at most one like/bookmark per identity.
  A toggle is delete-then-insert: if the delete removed a row the result is
  "off", otherwise an insert is attempted. Two toggles racing for the same
  identity can both observe "off" and both insert; the second insert hits
  the unique constraint and is treated as "already on". They can also cancel
  each other out (one removes, the other re-adds). Order-commutative across
  different identities.

Security: all queries use bound parameters. No f-strings in SQL.

Usage:
    store = PostStore()
    post_id = store.create_post(Post(author_id=1, content="hello"))
    liked = store.toggle_like(post_id, user_id=2)
    posts = store.list_posts(offset=0, limit=10)
    store.close()
"""

from __future__ import annotations

from typing import Optional

from sqlalchemy import (
    Column,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    UniqueConstraint,
    and_,
    func,
    select,
)
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError

from core.config import get_settings
from core.db import create_db_engine, now_iso
from feed.models import Comment, Like, Post

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

metadata = MetaData()

_posts = Table(
    "posts",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("author_id", Integer, nullable=False, index=True),
    Column("content", String(1000), nullable=False),
    Column("image", Text, nullable=False, server_default=""),
    Column("created_at", String(32), nullable=False, index=True),
    Column("updated_at", String(32), nullable=False),
)

_likes = Table(
    "post_likes",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("post_id", Integer, nullable=False, index=True),
    Column("user_id", Integer, nullable=False, index=True),
    Column("created_at", String(32), nullable=False),
    UniqueConstraint("post_id", "user_id", name="uq_like_post_user"),
)

_comments = Table(
    "post_comments",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("post_id", Integer, nullable=False, index=True),
    Column("user_id", Integer, nullable=False),
    Column("content", String(500), nullable=False),
    Column("created_at", String(32), nullable=False),
)

_bookmarks = Table(
    "bookmarks",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("post_id", Integer, nullable=False),
    Column("user_id", Integer, nullable=False, index=True),
    Column("created_at", String(32), nullable=False),
    UniqueConstraint("post_id", "user_id", name="uq_bookmark_post_user"),
)


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class PostStore:
    def __init__(self, db_url: Optional[str] = None) -> None:
        self.engine: Engine = create_db_engine(db_url or get_settings().database_url)
        metadata.create_all(self.engine)

    # ------------------------------------------------------------------
    # Posts
    # ------------------------------------------------------------------

    def create_post(self, post: Post) -> int:
        """Insert a post and return its ID. content is stored as given."""
        now = now_iso()
        with self.engine.connect() as conn:
            result = conn.execute(
                _posts.insert().values(
                    author_id=post.author_id,
                    content=post.content,
                    image=post.image or "",
                    created_at=now,
                    updated_at=now,
                )
            )
            conn.commit()
            return result.inserted_primary_key[0]

    def get_post(self, post_id: int) -> Optional[Post]:
        """Return the Post aggregate (likes + comments) or None."""
        with self.engine.connect() as conn:
            row = conn.execute(_posts.select().where(_posts.c.id == post_id)).fetchone()
            if row is None:
                return None
            return self._attach_interactions(conn, [_row_to_post(row)])[0]

    def update_post(self, post_id: int, content: Optional[str] = None, image: Optional[str] = None) -> bool:
        """Update content and/or image, stamping updated_at. Returns False if not found."""
        values: dict = {"updated_at": now_iso()}
        if content is not None:
            values["content"] = content
        if image is not None:
            values["image"] = image
        with self.engine.connect() as conn:
            result = conn.execute(_posts.update().where(_posts.c.id == post_id).values(**values))
            conn.commit()
        return result.rowcount > 0

    def delete_post(self, post_id: int) -> bool:
        """Delete a post with its likes, comments, and bookmarks in one transaction."""
        with self.engine.begin() as conn:
            conn.execute(_likes.delete().where(_likes.c.post_id == post_id))
            conn.execute(_comments.delete().where(_comments.c.post_id == post_id))
            conn.execute(_bookmarks.delete().where(_bookmarks.c.post_id == post_id))
            result = conn.execute(_posts.delete().where(_posts.c.id == post_id))
        return result.rowcount > 0

    def list_posts(
        self,
        offset: int = 0,
        limit: int = 10,
        author_id: Optional[int] = None,
        liked_by: Optional[int] = None,
        bookmarked_by: Optional[int] = None,
        search: Optional[str] = None,
    ) -> list[Post]:
        """Return post aggregates newest first, filtered by any combination of criteria."""
        query = (
            _posts.select()
            .where(*_post_filters(author_id, liked_by, bookmarked_by, search))
            .order_by(_posts.c.created_at.desc(), _posts.c.id.desc())
            .offset(offset)
            .limit(limit)
        )
        with self.engine.connect() as conn:
            posts = [_row_to_post(r) for r in conn.execute(query).fetchall()]
            return self._attach_interactions(conn, posts)

    def count_posts(
        self,
        author_id: Optional[int] = None,
        liked_by: Optional[int] = None,
        bookmarked_by: Optional[int] = None,
        search: Optional[str] = None,
    ) -> int:
        """Count posts matching the same filters as list_posts()."""
        query = (
            select(func.count())
            .select_from(_posts)
            .where(*_post_filters(author_id, liked_by, bookmarked_by, search))
        )
        with self.engine.connect() as conn:
            return conn.execute(query).scalar() or 0

    # ------------------------------------------------------------------
    # Likes
    # ------------------------------------------------------------------

    def toggle_like(self, post_id: int, user_id: int) -> bool:
        """Like the post if user_id has not liked it, otherwise unlike. Returns True if now liked."""
        return self._toggle(_likes, post_id, user_id)

    def count_likes(self, post_id: int) -> int:
        query = select(func.count()).select_from(_likes).where(_likes.c.post_id == post_id)
        with self.engine.connect() as conn:
            return conn.execute(query).scalar() or 0

    # ------------------------------------------------------------------
    # Comments
    # ------------------------------------------------------------------

    def add_comment(self, comment: Comment) -> Comment:
        """Insert a comment and return it with id and created_at filled in."""
        created_at = now_iso()
        with self.engine.connect() as conn:
            result = conn.execute(
                _comments.insert().values(
                    post_id=comment.post_id,
                    user_id=comment.user_id,
                    content=comment.content,
                    created_at=created_at,
                )
            )
            conn.commit()
        return Comment(
            id=result.inserted_primary_key[0],
            post_id=comment.post_id,
            user_id=comment.user_id,
            content=comment.content,
            created_at=created_at,
        )

    def get_comment(self, post_id: int, comment_id: int) -> Optional[Comment]:
        """Return the comment only if it belongs to post_id."""
        with self.engine.connect() as conn:
            row = conn.execute(
                _comments.select().where((_comments.c.id == comment_id) & (_comments.c.post_id == post_id))
            ).fetchone()
        return _row_to_comment(row) if row is not None else None

    def delete_comment(self, comment_id: int) -> bool:
        with self.engine.connect() as conn:
            result = conn.execute(_comments.delete().where(_comments.c.id == comment_id))
            conn.commit()
        return result.rowcount > 0

    def count_comments(self, post_id: int) -> int:
        query = select(func.count()).select_from(_comments).where(_comments.c.post_id == post_id)
        with self.engine.connect() as conn:
            return conn.execute(query).scalar() or 0

    # ------------------------------------------------------------------
    # Bookmarks
    # ------------------------------------------------------------------

    def toggle_bookmark(self, post_id: int, user_id: int) -> bool:
        """Bookmark the post for user_id, or remove the bookmark. Returns True if now bookmarked."""
        return self._toggle(_bookmarks, post_id, user_id)

    def is_bookmarked(self, post_id: int, user_id: int) -> bool:
        with self.engine.connect() as conn:
            row = conn.execute(
                select(_bookmarks.c.id).where((_bookmarks.c.post_id == post_id) & (_bookmarks.c.user_id == user_id))
            ).fetchone()
        return row is not None

    def close(self) -> None:
        self.engine.dispose()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _toggle(self, table: Table, post_id: int, user_id: int) -> bool:
        match = and_(table.c.post_id == post_id, table.c.user_id == user_id)
        with self.engine.connect() as conn:
            removed = conn.execute(table.delete().where(match)).rowcount
            conn.commit()
        if removed:
            return False
        try:
            with self.engine.connect() as conn:
                conn.execute(table.insert().values(post_id=post_id, user_id=user_id, created_at=now_iso()))
                conn.commit()
        except IntegrityError:
            # A concurrent toggle by the same identity inserted first; the row exists.
            pass
        return True

    @staticmethod
    def _attach_interactions(conn, posts: list[Post]) -> list[Post]:
        """Load likes and comments for every post in two queries."""
        if not posts:
            return posts
        by_id = {p.id: p for p in posts}
        ids = list(by_id)
        like_rows = conn.execute(
            _likes.select().where(_likes.c.post_id.in_(ids)).order_by(_likes.c.id)
        ).fetchall()
        for r in like_rows:
            by_id[r.post_id].likes.append(Like(post_id=r.post_id, user_id=r.user_id, created_at=r.created_at))
        comment_rows = conn.execute(
            _comments.select().where(_comments.c.post_id.in_(ids)).order_by(_comments.c.id)
        ).fetchall()
        for r in comment_rows:
            by_id[r.post_id].comments.append(_row_to_comment(r))
        return posts


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _post_filters(
    author_id: Optional[int],
    liked_by: Optional[int],
    bookmarked_by: Optional[int],
    search: Optional[str],
) -> list:
    clauses = []
    if author_id is not None:
        clauses.append(_posts.c.author_id == author_id)
    if liked_by is not None:
        clauses.append(_posts.c.id.in_(select(_likes.c.post_id).where(_likes.c.user_id == liked_by)))
    if bookmarked_by is not None:
        clauses.append(_posts.c.id.in_(select(_bookmarks.c.post_id).where(_bookmarks.c.user_id == bookmarked_by)))
    if search:
        clauses.append(func.lower(_posts.c.content).contains(search.strip().lower(), autoescape=True))
    return clauses


# ---------------------------------------------------------------------------
# Row mappers (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_post(row) -> Post:
    return Post(
        id=row.id,
        author_id=row.author_id,
        content=row.content,
        image=row.image or "",
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _row_to_comment(row) -> Comment:
    return Comment(
        id=row.id,
        post_id=row.post_id,
        user_id=row.user_id,
        content=row.content,
        created_at=row.created_at,
    )
