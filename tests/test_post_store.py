"""
tests/test_post_store.py -- Unit tests for feed/store.py (PostStore).

Covers:
  - Post create/read/update/delete, with delete cascading to interactions
  - Like and bookmark toggles (on, off, on) and their counts
  - Comments scoped to their post
  - Listing filters (author, liked, bookmarked, search) and ordering
"""

from __future__ import annotations

import pytest

from feed.models import Comment, Post
from feed.store import PostStore


@pytest.fixture
def store(request):
    s = PostStore(db_url=f"sqlite:///file:test_post_store_{request.node.name}?mode=memory&cache=shared&uri=true")
    yield s
    s.close()


class TestPosts:
    def test_create_and_get(self, store):
        pid = store.create_post(Post(author_id=1, content="Hello"))
        post = store.get_post(pid)
        assert post.content == "Hello"
        assert post.author_id == 1
        assert post.image == ""
        assert post.likes == [] and post.comments == []

    def test_get_missing_returns_none(self, store):
        assert store.get_post(404) is None

    def test_update_changes_only_given_fields(self, store):
        pid = store.create_post(Post(author_id=1, content="Draft", image="a.png"))
        assert store.update_post(pid, content="Final") is True
        post = store.get_post(pid)
        assert post.content == "Final"
        assert post.image == "a.png"
        assert post.updated_at >= post.created_at

    def test_delete_cascades(self, store):
        pid = store.create_post(Post(author_id=1, content="Doomed"))
        store.toggle_like(pid, 2)
        store.add_comment(Comment(post_id=pid, user_id=2, content="RIP"))
        store.toggle_bookmark(pid, 2)

        assert store.delete_post(pid) is True
        assert store.get_post(pid) is None
        assert store.count_likes(pid) == 0
        assert store.count_comments(pid) == 0
        assert store.is_bookmarked(pid, 2) is False
        assert store.delete_post(pid) is False


class TestToggles:
    def test_like_toggles_on_off_on(self, store):
        pid = store.create_post(Post(author_id=1, content="Like me"))
        assert store.toggle_like(pid, 2) is True
        assert store.count_likes(pid) == 1
        assert store.toggle_like(pid, 2) is False
        assert store.count_likes(pid) == 0
        assert store.toggle_like(pid, 2) is True
        assert store.count_likes(pid) == 1

    def test_likes_from_distinct_users_accumulate(self, store):
        pid = store.create_post(Post(author_id=1, content="Popular"))
        for uid in (2, 3, 4):
            store.toggle_like(pid, uid)
        post = store.get_post(pid)
        assert post.likes_count == 3
        assert [like.user_id for like in post.likes] == [2, 3, 4]

    def test_bookmark_toggle(self, store):
        pid = store.create_post(Post(author_id=1, content="Save me"))
        assert store.toggle_bookmark(pid, 5) is True
        assert store.is_bookmarked(pid, 5) is True
        assert store.toggle_bookmark(pid, 5) is False
        assert store.is_bookmarked(pid, 5) is False


class TestComments:
    def test_add_returns_filled_comment(self, store):
        pid = store.create_post(Post(author_id=1, content="Discuss"))
        comment = store.add_comment(Comment(post_id=pid, user_id=2, content="First"))
        assert comment.id is not None
        assert comment.created_at
        assert store.count_comments(pid) == 1

    def test_get_comment_is_scoped_to_post(self, store):
        p1 = store.create_post(Post(author_id=1, content="One"))
        p2 = store.create_post(Post(author_id=1, content="Two"))
        comment = store.add_comment(Comment(post_id=p1, user_id=2, content="On one"))
        assert store.get_comment(p1, comment.id) is not None
        assert store.get_comment(p2, comment.id) is None

    def test_delete_comment(self, store):
        pid = store.create_post(Post(author_id=1, content="Discuss"))
        comment = store.add_comment(Comment(post_id=pid, user_id=2, content="Oops"))
        assert store.delete_comment(comment.id) is True
        assert store.count_comments(pid) == 0
        assert store.delete_comment(comment.id) is False


class TestListing:
    def test_newest_first(self, store):
        ids = [store.create_post(Post(author_id=1, content=f"Post {i}")) for i in range(3)]
        listed = [p.id for p in store.list_posts()]
        assert listed == list(reversed(ids))

    def test_filters(self, store):
        a = store.create_post(Post(author_id=1, content="Cats are great"))
        b = store.create_post(Post(author_id=2, content="Dogs are great"))
        store.toggle_like(a, 9)
        store.toggle_bookmark(b, 9)

        assert [p.id for p in store.list_posts(author_id=2)] == [b]
        assert [p.id for p in store.list_posts(liked_by=9)] == [a]
        assert [p.id for p in store.list_posts(bookmarked_by=9)] == [b]
        assert [p.id for p in store.list_posts(search="CATS")] == [a]
        assert store.count_posts(search="great") == 2

    def test_offset_and_limit(self, store):
        for i in range(5):
            store.create_post(Post(author_id=1, content=f"Post {i}"))
        page = store.list_posts(offset=2, limit=2)
        assert [p.content for p in page] == ["Post 2", "Post 1"]
        assert store.count_posts() == 5

    def test_listing_attaches_interactions(self, store):
        pid = store.create_post(Post(author_id=1, content="Busy"))
        store.toggle_like(pid, 2)
        store.add_comment(Comment(post_id=pid, user_id=3, content="Nice"))
        (post,) = store.list_posts()
        assert post.likes_count == 1
        assert post.comments_count == 1
