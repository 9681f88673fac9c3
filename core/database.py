"""
core/database.py -- SQLAlchemy engine factory.

The engine is the one piece of process-wide shared state: it is built once at
startup (api/main.py lifespan, or main.py for the CLI) and injected into
UserStore. Its connection pool is the concurrency contract for the database
driver -- route handlers never share a Connection object.

SQLite specifics:
  check_same_thread=False -- FastAPI runs sync handlers in a thread pool, so
      pooled connections cross threads.
  timeout=30 -- writers wait on the database lock instead of failing
      immediately when two registrations land at the same moment.
  WAL journal mode -- readers do not block during writes.

Layer rule: core/ may not import from api/ or auth/.
"""

from __future__ import annotations

from sqlalchemy import create_engine, event
from sqlalchemy.engine import URL, Engine, make_url

_SQLITE_BUSY_TIMEOUT_SECONDS = 30


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode for concurrent read safety.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool. In-memory databases ignore the request and stay
    in "memory" mode, which is harmless.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


def create_db_engine(db_url: str | URL) -> Engine:
    """Build an Engine for db_url with driver-appropriate connection options."""
    url = make_url(db_url)
    connect_args: dict = {}
    engine_kwargs: dict = {}
    if url.get_backend_name() == "sqlite":
        connect_args["check_same_thread"] = False
        connect_args["timeout"] = _SQLITE_BUSY_TIMEOUT_SECONDS
    else:
        # Drop connections the server closed while idle (MySQL wait_timeout).
        engine_kwargs["pool_pre_ping"] = True
    engine = create_engine(url, connect_args=connect_args, **engine_kwargs)
    if url.get_backend_name() == "sqlite":
        event.listen(engine, "connect", _set_wal_mode)
    return engine
