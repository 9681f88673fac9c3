"""
auth/models.py -- Domain dataclasses for user records.

Pattern: Data class (pure data container, zero logic beyond projection).
UserStore maps rows into these; AuthService and the API layer consume them.

Two shapes on purpose:
  UserRecord -- what login reads from the store, password hash included.
                Lives only between UserStore.find_by_username() and the
                hasher's verify() call.
  UserView   -- everything except the hash. The only shape that leaves the
                auth core (listing, session, API responses).

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class UserView:
    """A registered user as seen outside the credential store."""

    id: int
    username: str
    email: str
    created_at: str | None = None


@dataclass(frozen=True)
class UserRecord:
    """A user row including its bcrypt hash. Login-only.

    password_hash is excluded from repr so a stray log line or traceback
    never prints it.
    """

    id: int
    username: str
    email: str
    password_hash: str = field(repr=False)
    created_at: str | None = None

    def view(self) -> UserView:
        """Drop the hash and return the public projection."""
        return UserView(id=self.id, username=self.username, email=self.email, created_at=self.created_at)
