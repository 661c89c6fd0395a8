"""
auth/store.py -- SQLAlchemy Core persistence layer for identities.

Pattern: Repository + Data Mapper (same as feed/store.py).
UserStore is the repository; _row_to_user / _row_to_summary are the mappers.
Route and dependency code never touches SQL directly.

Security:
  All queries use bound parameters. No f-strings in SQL.

  The password hash is only selected when a caller asks for it
  (with_password=True). Every other read leaves hashed_password as None so a
  User object can be handed to a response serializer without leaking it.

  Emails are normalized to lower case on write and compared lower-cased on
  read, so "A@B.com" and "a@b.com" are the same identity. The UNIQUE index on
  the normalized column enforces this at the DB level as well.

Layer rule: no imports from api/ or feed/.
"""

from __future__ import annotations

from collections.abc import Iterable

from sqlalchemy import Column, Integer, MetaData, String, Table, Text, func, or_, select
from sqlalchemy.engine import Engine

from auth.models import User, UserSummary
from core.config import get_settings
from core.db import create_db_engine, now_iso

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_users = Table(
    "users",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(50), nullable=False),
    Column("email", String(255), nullable=False, unique=True),  # always lower-cased
    Column("hashed_password", Text, nullable=False),
    Column("profile_picture", Text, nullable=False, server_default=""),
    Column("bio", String(500), nullable=False, server_default=""),
    Column("location", String(100), nullable=False, server_default=""),
    Column("website", String(200), nullable=False, server_default=""),
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
)

# Columns returned by default reads -- everything except the credential.
_PUBLIC_COLUMNS = [c for c in _users.c if c.name != "hashed_password"]

# Fields update_user() accepts. Anything else is a programming error.
_UPDATABLE_FIELDS = {"name", "bio", "location", "website", "profile_picture", "hashed_password"}


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class UserStore:
    """Repository for User entities.

    Usage:
        store = UserStore()
        uid = store.create_user(User(name="Ada", email="ada@example.com", hashed_password=hash_password("secret1")))
        user = store.get_by_email("ADA@example.com")
        store.close()
    """

    def __init__(self, db_url: str | None = None) -> None:
        self.engine: Engine = create_db_engine(db_url or get_settings().database_url)
        _metadata.create_all(self.engine)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create_user(self, user: User) -> int:
        """Insert a new user and return its assigned database ID.

        Raises sqlalchemy.exc.IntegrityError if the email already exists.
        Callers should treat that as "email taken": the pre-insert lookup in
        the signup route can lose a race with a concurrent signup.
        """
        now = now_iso()
        with self.engine.connect() as conn:
            result = conn.execute(
                _users.insert().values(
                    name=user.name,
                    email=user.email.strip().lower(),
                    hashed_password=user.hashed_password,
                    profile_picture=user.profile_picture,
                    bio=user.bio,
                    location=user.location,
                    website=user.website,
                    created_at=now,
                    updated_at=now,
                )
            )
            conn.commit()
            return result.inserted_primary_key[0]

    def update_user(self, user_id: int, **fields) -> bool:
        """Update mutable profile fields and stamp updated_at.

        Returns True if a row was updated, False if user_id was not found.
        Raises ValueError for fields outside _UPDATABLE_FIELDS.
        """
        unknown = set(fields) - _UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Unknown user fields: {unknown!r}")
        fields["updated_at"] = now_iso()
        with self.engine.connect() as conn:
            result = conn.execute(_users.update().where(_users.c.id == user_id).values(**fields))
            conn.commit()
        return result.rowcount > 0

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_by_id(self, user_id: int, with_password: bool = False) -> User | None:
        """Look up a user by primary key. Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(self._select(with_password).where(_users.c.id == user_id)).fetchone()
        return _row_to_user(row) if row is not None else None

    def get_by_email(self, email: str, with_password: bool = False) -> User | None:
        """Look up a user by email, ignoring case. Returns None if not found."""
        normalized = email.strip().lower()
        with self.engine.connect() as conn:
            row = conn.execute(
                self._select(with_password).where(func.lower(_users.c.email) == normalized)
            ).fetchone()
        return _row_to_user(row) if row is not None else None

    def get_summaries(self, user_ids: Iterable[int]) -> dict[int, UserSummary]:
        """Batch-load the public summary of every user in user_ids.

        Used by feed/views.py to hydrate authors, likers, and commenters with
        one query per page instead of one per post.
        """
        ids = {uid for uid in user_ids if uid is not None}
        if not ids:
            return {}
        with self.engine.connect() as conn:
            rows = conn.execute(
                select(_users.c.id, _users.c.name, _users.c.email, _users.c.profile_picture).where(
                    _users.c.id.in_(ids)
                )
            ).fetchall()
        return {r.id: _row_to_summary(r) for r in rows}

    def search_users(self, query: str, offset: int = 0, limit: int = 10) -> list[User]:
        """Case-insensitive substring search on name or email, ordered by name."""
        with self.engine.connect() as conn:
            rows = conn.execute(
                self._select(False)
                .where(_search_clause(query))
                .order_by(_users.c.name, _users.c.id)
                .offset(offset)
                .limit(limit)
            ).fetchall()
        return [_row_to_user(r) for r in rows]

    def count_search(self, query: str) -> int:
        with self.engine.connect() as conn:
            result = conn.execute(select(func.count()).select_from(_users).where(_search_clause(query))).scalar()
        return result or 0

    def ping(self) -> bool:
        """Return True if the database answers a trivial query."""
        with self.engine.connect() as conn:
            return conn.execute(select(1)).scalar() == 1

    def close(self) -> None:
        self.engine.dispose()

    @staticmethod
    def _select(with_password: bool):
        return _users.select() if with_password else select(*_PUBLIC_COLUMNS)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _search_clause(query: str):
    needle = query.strip().lower()
    return or_(
        func.lower(_users.c.name).contains(needle, autoescape=True),
        func.lower(_users.c.email).contains(needle, autoescape=True),
    )


# ---------------------------------------------------------------------------
# Row mappers (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_user(row) -> User:
    # hashed_password is absent from rows selected with _PUBLIC_COLUMNS.
    return User(
        id=row.id,
        name=row.name,
        email=row.email,
        hashed_password=getattr(row, "hashed_password", None),
        profile_picture=row.profile_picture or "",
        bio=row.bio or "",
        location=row.location or "",
        website=row.website or "",
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _row_to_summary(row) -> UserSummary:
    return UserSummary(
        id=row.id,
        name=row.name,
        email=row.email,
        profile_picture=row.profile_picture or "",
    )
