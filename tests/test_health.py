"""
tests/test_health.py -- Integration tests for GET /api/v1/health.

Covers:
  - 200 response with status, version, and components fields
  - components.database reports 'ok' against a reachable store, 'error' otherwise
  - No session or authentication required
"""

from __future__ import annotations

from auth.store import UserStore
from core.database import create_db_engine


def test_health_returns_200_with_components(client):
    """Health endpoint returns 200 with status, version, and components."""
    resp = client.get("/api/v1/health")
    assert resp.status_code == 200
    data = resp.json()
    assert data["status"] == "healthy"
    assert data["version"] == "0.1.0"
    assert data["components"]["app"] == "ok"
    assert data["components"]["database"] == "ok"


def test_health_reports_unreachable_database(client):
    """A store that cannot connect shows up as database: error, not a 500."""
    app = client.app
    original = app.state.user_store
    app.state.user_store = UserStore(create_db_engine("sqlite:////nonexistent-dir/health.db"))
    try:
        data = client.get("/api/v1/health").json()
    finally:
        app.state.user_store.close()
        app.state.user_store = original
    assert data["components"]["database"] == "error"


def test_health_no_auth_required(client):
    """Health endpoint is accessible without a session cookie."""
    client.cookies.clear()
    resp = client.get("/api/v1/health", headers={})
    assert resp.status_code == 200
    assert resp.json()["status"] == "healthy"
