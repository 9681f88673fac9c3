"""
auth/sessions.py -- Server-side session state and its lifecycle.

State machine per client session:

    ANONYMOUS --authenticate()--> AUTHENTICATED --terminate()--> TERMINATED
        |                              |  ^
        +---------terminate()----------+  +-- authenticate() again (re-login)

There is no edge back from AUTHENTICATED to ANONYMOUS: logging out
terminates the session, and the next request starts a brand-new anonymous one.

Security:
  Fixation -- authenticate() always regenerates the session id and removes
      the old id from the store, so an id planted before login is useless
      after it. load() never adopts an unknown id offered by the client; it
      mints a fresh one, which is only stored once save() is called.
  Ids are secrets.token_urlsafe(32): 256 bits, opaque, cookie-safe.

Storage is an in-process OrderedDict guarded by a lock. Each Session object is
owned by one client; the lock protects the id -> session map, not the
fields of an individual session.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

import secrets
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable

from auth.errors import SessionStateError
from auth.models import UserView

DEFAULT_TTL_SECONDS = 1440


def _new_session_id() -> str:
    return secrets.token_urlsafe(32)


class SessionState(str, Enum):
    ANONYMOUS = "anonymous"
    AUTHENTICATED = "authenticated"
    TERMINATED = "terminated"


@dataclass
class Session:
    """A key-value session bag for one client, keyed by an opaque id."""

    id: str = field(default_factory=_new_session_id)
    state: SessionState = SessionState.ANONYMOUS
    user_id: int | None = None
    username: str | None = None
    email: str | None = None
    csrf_token: str | None = None
    last_seen: float = 0.0

    @property
    def authenticated(self) -> bool:
        return self.state is SessionState.AUTHENTICATED

    @property
    def terminated(self) -> bool:
        return self.state is SessionState.TERMINATED

    def user_view(self) -> UserView | None:
        """Return the logged-in user, or None when not authenticated."""
        if not self.authenticated or self.user_id is None:
            return None
        return UserView(id=self.user_id, username=self.username or "", email=self.email or "")

    def _clear(self) -> None:
        self.user_id = None
        self.username = None
        self.email = None
        self.csrf_token = None


class SessionManager:
    """Owns every Session: creation, lookup, fixation-safe login, termination.

    Usage:
        sessions = SessionManager(ttl_seconds=1440)
        session = sessions.load(cookie_value)      # existing or new anonymous
        sessions.save(session)                     # once it holds data (CSRF token)
        sessions.authenticate(session, user_view)  # id changes here
        sessions.terminate(session)                # logout

    A new anonymous session from load() lives only on the request until
    save() or authenticate() stores it, so cookieless traffic (health
    checks, crawlers) leaves nothing behind.

    The map is kept in last_seen order: every store or touch moves the entry
    to the end, so expired sessions are always at the front and purging
    stops at the first live one.
    """

    def __init__(self, ttl_seconds: int = DEFAULT_TTL_SECONDS, clock: Callable[[], float] = time.monotonic) -> None:
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._sessions: OrderedDict[str, Session] = OrderedDict()
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def load(self, session_id: str | None) -> Session:
        """Return the live session for session_id, or a new unsaved anonymous one.

        Unknown and expired ids both yield a new session with a new id.
        """
        now = self._clock()
        with self._lock:
            self._purge_expired(now)
            if session_id:
                session = self._sessions.get(session_id)
                if session is not None:
                    session.last_seen = now
                    self._sessions.move_to_end(session_id)
                    return session
        return Session(last_seen=now)

    def save(self, session: Session) -> Session:
        """Store session so later requests can load it. Terminated sessions are not stored."""
        if session.terminated:
            return session
        now = self._clock()
        with self._lock:
            self._purge_expired(now)
            session.last_seen = now
            self._sessions[session.id] = session
            self._sessions.move_to_end(session.id)
        return session

    def is_stored(self, session: Session) -> bool:
        """True when load(session.id) would return this very session."""
        with self._lock:
            return self._sessions.get(session.id) is session

    def regenerate(self, session: Session) -> Session:
        """Give the session a new id and invalidate the old one. Data is kept."""
        with self._lock:
            self._sessions.pop(session.id, None)
            session.id = _new_session_id()
        return self.save(session)

    def authenticate(self, session: Session, user: UserView) -> Session:
        """Transition to AUTHENTICATED for user, regenerating the session id."""
        if session.terminated:
            raise SessionStateError("cannot authenticate a terminated session")
        self.regenerate(session)
        session.user_id = user.id
        session.username = user.username
        session.email = user.email
        session.state = SessionState.AUTHENTICATED
        return session

    def terminate(self, session: Session) -> None:
        """Clear every field and invalidate the id. Safe to call repeatedly."""
        with self._lock:
            self._sessions.pop(session.id, None)
        session._clear()
        session.state = SessionState.TERMINATED

    def is_authenticated(self, session: Session) -> bool:
        """True only for AUTHENTICATED sessions. Does not touch the database."""
        return session.authenticated

    def _purge_expired(self, now: float) -> None:
        # Caller holds self._lock. Oldest first; stop at the first live session.
        while self._sessions:
            sid, oldest = next(iter(self._sessions.items()))
            if now - oldest.last_seen <= self.ttl_seconds:
                return
            del self._sessions[sid]
