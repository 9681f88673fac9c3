"""
auth/csrf.py -- Per-session anti-forgery tokens.

One active token per session, stored in the session's csrf_token slot.
issue_token() overwrites it on every form render; verify_token() compares
without consuming, so a failed submission can be retried until the next
render rotates the token.

secrets.token_hex(32) gives 32 random bytes (256 bits) as 64 hex characters.
Comparison goes through hmac.compare_digest so timing does not reveal the
position of the first differing character.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

import hmac
import secrets
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from auth.sessions import Session

TOKEN_BYTES = 32


def issue_token(session: Session) -> str:
    """Generate a fresh token, store it on the session (replacing any old one), and return it."""
    token = secrets.token_hex(TOKEN_BYTES)
    session.csrf_token = token
    return token


def verify_token(session: Session, submitted: str | None) -> bool:
    """Return True only if submitted exactly matches the session's current token."""
    expected = session.csrf_token
    if not expected or not submitted:
        return False
    return hmac.compare_digest(expected.encode("utf-8"), submitted.encode("utf-8"))
