"""
auth/store.py -- SQLAlchemy Core persistence layer for user records.

Pattern: Repository + Data Mapper.
UserStore is the repository; _row_to_record / _row_to_view are the mappers.
Service and route code never touches SQL directly.

Security:
  All queries use bound parameters. No f-strings in SQL.

  The password hash is only selected by find_by_username() (login). Every
  other query projects it away in SQL, so listing users cannot leak it even by
  accident.

Uniqueness:
  UNIQUE(username) and UNIQUE(email) are the source of truth. The service's
  find_by_username_or_email() pre-check gives a friendly error for the common
  case, but two concurrent registrations can both pass it; the loser's INSERT
  then fails on the constraint and is reported as DuplicateError here.

Error translation:
  sqlalchemy.exc.IntegrityError -> DuplicateError
  engine cannot connect         -> ServiceUnavailableError
  any other SQLAlchemyError     -> StorageError
  Driver text is logged server-side and never copied into the error message.

Layer rule: no imports from api/ or core/. The Engine is injected.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timezone

from sqlalchemy import Column, Integer, MetaData, String, Table, or_, select, text
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from auth.errors import DuplicateError, ServiceUnavailableError, StorageError
from auth.models import UserRecord, UserView

logger = logging.getLogger("secureauth.store")

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_users = Table(
    "users",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("username", String(50), nullable=False, unique=True),
    Column("email", String(255), nullable=False, unique=True),
    Column("password_hash", String(255), nullable=False),
    Column("created_at", String(32), nullable=False),
)

# Every column except password_hash.
_public_columns = (_users.c.id, _users.c.username, _users.c.email, _users.c.created_at)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class UserStore:
    """Repository for User records.

    Usage:
        store = UserStore(create_db_engine("sqlite:///secureauth.db"))
        store.init_schema()
        user_id = store.insert("alice", "alice@example.com", hasher.hash("Valid123"))
        record = store.find_by_username("alice")
        store.close()
    """

    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    @contextmanager
    def _connect(self, operation: str) -> Iterator[Connection]:
        """Yield a pooled connection, translating driver failures into the auth taxonomy."""
        try:
            conn = self.engine.connect()
        except SQLAlchemyError as exc:
            logger.error("Database connection failed during %s: %s", operation, exc)
            raise ServiceUnavailableError() from exc
        try:
            with conn:
                yield conn
        except IntegrityError as exc:
            logger.info("Uniqueness constraint rejected %s: %s", operation, exc.orig)
            raise DuplicateError() from exc
        except SQLAlchemyError as exc:
            logger.error("Database error during %s: %s", operation, exc)
            raise StorageError() from exc

    def init_schema(self) -> None:
        """Create the users table if it does not exist. Idempotent."""
        try:
            _metadata.create_all(self.engine)
        except SQLAlchemyError as exc:
            logger.error("Schema creation failed: %s", exc)
            raise ServiceUnavailableError() from exc

    def ping(self) -> bool:
        """Return True if a trivial query succeeds. Used by the health endpoint."""
        try:
            with self._connect("ping") as conn:
                conn.execute(text("SELECT 1"))
        except StorageError:
            return False
        return True

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def find_by_username_or_email(self, username: str, email: str) -> UserView | None:
        """Return any user holding this username OR this email, else None. Read-only."""
        stmt = (
            select(*_public_columns)
            .where(or_(_users.c.username == username, _users.c.email == email))
            .limit(1)
        )
        with self._connect("find_by_username_or_email") as conn:
            row = conn.execute(stmt).fetchone()
        return _row_to_view(row) if row is not None else None

    def insert(self, username: str, email: str, password_hash: str) -> int:
        """Insert a new user in one transaction and return its assigned ID.

        Raises DuplicateError when the username or email is already taken,
        including when a concurrent insert won the race after our pre-check.
        The transaction rolls back on failure, so no partial row is written.
        """
        with self._connect("insert") as conn:
            with conn.begin():
                result = conn.execute(
                    _users.insert().values(
                        username=username,
                        email=email,
                        password_hash=password_hash,
                        created_at=_now_iso(),
                    )
                )
            return result.inserted_primary_key[0]

    def find_by_username(self, username: str) -> UserRecord | None:
        """Look up a user by exact username, hash included. Login only."""
        with self._connect("find_by_username") as conn:
            row = conn.execute(_users.select().where(_users.c.username == username)).fetchone()
        return _row_to_record(row) if row is not None else None

    def list_all(self) -> list[UserView]:
        """Return every user without the hash, in insertion order."""
        with self._connect("list_all") as conn:
            rows = conn.execute(select(*_public_columns).order_by(_users.c.id)).fetchall()
        return [_row_to_view(r) for r in rows]

    def count(self) -> int:
        with self._connect("count") as conn:
            result = conn.execute(text("SELECT COUNT(*) FROM users")).scalar()
        return result or 0

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mappers (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_view(row) -> UserView:
    return UserView(
        id=row.id,
        username=row.username,
        email=row.email,
        created_at=row.created_at,
    )


def _row_to_record(row) -> UserRecord:
    return UserRecord(
        id=row.id,
        username=row.username,
        email=row.email,
        password_hash=row.password_hash,
        created_at=row.created_at,
    )
