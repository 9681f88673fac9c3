"""
tests/conftest.py -- Shared test fixtures for SecureAuth tests.

This module provides:
  - hasher / store / sessions / service: the auth core on an in-memory SQLite DB
  - client: TestClient over the real FastAPI app with a patched lifespan
  - csrf_token() / register_user(): small helpers for HTTP tests

Design: the HTTP fixture uses named shared-memory SQLite URIs (not plain
:memory:) because TestClient runs sync route handlers in a thread pool. Plain
:memory: DBs are per-connection and would present a blank schema to each
worker thread. The named URI format (file:name?mode=memory&cache=shared&uri=true)
shares one in-memory instance across all connections in the same process.
A uuid in the name gives every test its own database.

Environment must be set before any api/core import so get_settings() sees it:
  BCRYPT_ROUNDS=4 keeps hashing fast, ALLOWED_HOSTS admits TestClient's
  "testserver" Host header.
"""

from __future__ import annotations

import os
import uuid
from collections.abc import Generator
from contextlib import asynccontextmanager

# CRITICAL: Set before any core/api import -- get_settings() is cached on first call.
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("ALLOWED_HOSTS", '["testserver", "localhost"]')
os.environ.setdefault("AUTO_CREATE_SCHEMA", "false")

import pytest
from fastapi.testclient import TestClient

from api.main import app
from auth.passwords import PasswordHasher
from auth.service import AuthService
from auth.sessions import SessionManager
from auth.store import UserStore
from core.database import create_db_engine

VALID_PASSWORD = "Valid123"

# ---------------------------------------------------------------------------
# Core fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def hasher() -> PasswordHasher:
    """bcrypt at the minimum cost factor. Same algorithm, ~100x faster."""
    return PasswordHasher(rounds=4)


@pytest.fixture
def store() -> Generator[UserStore, None, None]:
    """In-memory UserStore with the users table created."""
    s = UserStore(create_db_engine("sqlite:///:memory:"))
    s.init_schema()
    yield s
    s.close()


@pytest.fixture
def sessions() -> SessionManager:
    return SessionManager()


@pytest.fixture
def service(store: UserStore, hasher: PasswordHasher, sessions: SessionManager) -> AuthService:
    return AuthService(store=store, hasher=hasher, sessions=sessions)


# ---------------------------------------------------------------------------
# HTTP fixtures
# ---------------------------------------------------------------------------


def _patch_lifespan(store: UserStore):
    """Return an async context manager that replaces the real lifespan.

    Wires a pre-created test store into app.state so TestClient routes see an
    isolated test DB rather than the configured database.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.user_store = store
        app.state.auth_service = AuthService(
            store=store,
            hasher=PasswordHasher(rounds=4),
            sessions=SessionManager(),
        )
        yield

    return test_lifespan


@pytest.fixture
def client() -> Generator[TestClient, None, None]:
    """Yield a TestClient bound to a fresh, empty user database.

    Function-scoped: each test starts with no users and no session cookie.
    follow_redirects=False so any redirect would surface as-is.
    """
    db_url = f"sqlite:///file:test_auth_{uuid.uuid4().hex}?mode=memory&cache=shared&uri=true"
    test_store = UserStore(create_db_engine(db_url))
    test_store.init_schema()

    app.router.lifespan_context = _patch_lifespan(test_store)

    with TestClient(app, follow_redirects=False, raise_server_exceptions=True) as c:
        yield c

    test_store.close()


# ---------------------------------------------------------------------------
# HTTP helpers
# ---------------------------------------------------------------------------


def csrf_token(client: TestClient) -> str:
    """Fetch a fresh CSRF token for the client's current session."""
    resp = client.get("/api/v1/auth/csrf")
    assert resp.status_code == 200, resp.text
    return resp.json()["csrf_token"]


def register_user(
    client: TestClient,
    username: str = "alice",
    email: str = "alice@example.com",
    password: str = VALID_PASSWORD,
    login: bool = True,
):
    """POST a complete, valid registration form and return the response."""
    return client.post(
        "/api/v1/auth/register",
        json={
            "username": username,
            "email": email,
            "password": password,
            "password_confirmation": password,
            "csrf_token": csrf_token(client),
            "login": login,
        },
    )
