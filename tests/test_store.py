"""Unit tests for auth/store.py -- SQLAlchemy Core user repository.

Covers:
- insert() returns increasing ids and stamps created_at
- UNIQUE(username) and UNIQUE(email) surface as DuplicateError, no row written
- find_by_username() returns the hash; list_all() and lookups never do
- connection failures are ServiceUnavailableError; other driver errors are
  StorageError with no driver text in the message
"""

from __future__ import annotations

import pytest

from auth.errors import DuplicateError, ServiceUnavailableError, StorageError
from auth.models import UserRecord, UserView
from auth.store import UserStore
from core.database import create_db_engine


def test_insert_returns_ids(store: UserStore) -> None:
    first = store.insert("alice", "alice@example.com", "$2b$04$hash-a")
    second = store.insert("bob", "bob@example.com", "$2b$04$hash-b")
    assert first >= 1
    assert second > first
    assert store.count() == 2


def test_duplicate_username_rejected(store: UserStore) -> None:
    store.insert("alice", "alice@example.com", "h")
    with pytest.raises(DuplicateError):
        store.insert("alice", "other@example.com", "h")
    assert store.count() == 1


def test_duplicate_email_rejected(store: UserStore) -> None:
    store.insert("alice", "alice@example.com", "h")
    with pytest.raises(DuplicateError):
        store.insert("alice2", "alice@example.com", "h")
    assert store.count() == 1


def test_find_by_username_includes_hash(store: UserStore) -> None:
    user_id = store.insert("alice", "alice@example.com", "$2b$04$secret-hash")
    record = store.find_by_username("alice")
    assert isinstance(record, UserRecord)
    assert record.id == user_id
    assert record.password_hash == "$2b$04$secret-hash"
    assert record.created_at
    assert "secret-hash" not in repr(record)
    assert record.view() == UserView(id=user_id, username="alice", email="alice@example.com", created_at=record.created_at)


def test_find_by_username_is_exact(store: UserStore) -> None:
    store.insert("alice", "alice@example.com", "h")
    assert store.find_by_username("ALICE") is None
    assert store.find_by_username("alic") is None
    assert store.find_by_username("nobody") is None


def test_find_by_username_or_email(store: UserStore) -> None:
    store.insert("alice", "alice@example.com", "h")
    assert store.find_by_username_or_email("alice", "new@example.com").username == "alice"
    assert store.find_by_username_or_email("newname", "alice@example.com").username == "alice"
    assert store.find_by_username_or_email("newname", "new@example.com") is None


def test_find_by_username_or_email_omits_hash(store: UserStore) -> None:
    store.insert("alice", "alice@example.com", "h")
    assert not hasattr(store.find_by_username_or_email("alice", "x@example.com"), "password_hash")


def test_list_all_in_insertion_order_without_hash(store: UserStore) -> None:
    for name in ("carol", "alice", "bob"):
        store.insert(name, f"{name}@example.com", "secret")
    users = store.list_all()
    assert [u.username for u in users] == ["carol", "alice", "bob"]
    assert all(isinstance(u, UserView) for u in users)
    assert all(not hasattr(u, "password_hash") for u in users)


def test_list_all_empty(store: UserStore) -> None:
    assert store.list_all() == []


def test_init_schema_is_idempotent(store: UserStore) -> None:
    store.insert("alice", "alice@example.com", "h")
    store.init_schema()
    assert store.count() == 1


def test_ping(store: UserStore) -> None:
    assert store.ping() is True


# ---------------------------------------------------------------------------
# Error translation
# ---------------------------------------------------------------------------


def test_unreachable_database_is_unavailable() -> None:
    broken = UserStore(create_db_engine("sqlite:////nonexistent-dir/secureauth.db"))
    with pytest.raises(ServiceUnavailableError) as exc_info:
        broken.list_all()
    assert exc_info.value.kind.value == "service_unavailable"
    assert broken.ping() is False
    with pytest.raises(ServiceUnavailableError):
        broken.init_schema()
    broken.close()


def test_driver_error_is_storage_error_without_driver_text() -> None:
    no_schema = UserStore(create_db_engine("sqlite:///:memory:"))
    with pytest.raises(StorageError) as exc_info:
        no_schema.list_all()
    assert type(exc_info.value) is StorageError
    assert "no such table" not in exc_info.value.message
    assert "users" not in exc_info.value.message
    no_schema.close()
