"""
auth/service.py -- AuthService: the composition root of the auth core.

Pattern: Service layer / Facade. Route handlers and the CLI call these
methods and render the result; they never talk to UserStore, the hasher or
the session map directly.

Every method either returns a plain value or raises an AuthServiceError
subclass (auth/errors.py). Sessions are passed in explicitly -- there is no
ambient "current session".

Registration check order (first failure wins, nothing is written on failure):
  1. all four fields present        -> ValidationError(required)
  2. username syntax                -> ValidationError(username_*)
  3. email syntax                   -> ValidationError(invalid_email)
  4. password strength              -> PasswordPolicyError(<rule>)
  5. confirmation matches password  -> ValidationError(password_mismatch)
  6. username/email not taken       -> DuplicateError
  7. insert (UNIQUE constraint still decides races) -> DuplicateError

Security:
  login() raises the same InvalidCredentialsError, with the same text, for an
  unknown username and for a wrong password, and spends one bcrypt check in
  both cases so response time does not reveal which it was.
"""

from __future__ import annotations

import logging

from auth import csrf
from auth.errors import (
    CsrfError,
    DuplicateError,
    InvalidCredentialsError,
    ServiceUnavailableError,
    SessionStateError,
    StorageError,
    ValidationError,
)
from auth.models import UserView
from auth.passwords import PasswordHasher, validate_strength
from auth.sanitize import sanitize, validate_email_syntax, validate_username_syntax
from auth.sessions import Session, SessionManager
from auth.store import UserStore

logger = logging.getLogger("secureauth.service")

_REGISTER_FAILED = "Error registering the user. Please try again."
_LOGIN_FAILED = "Error logging in. Please try again."
_LIST_FAILED = "Error fetching the user list."


class AuthService:
    """Register, log in, log out, and list users.

    Usage:
        service = AuthService(UserStore(engine), PasswordHasher(), SessionManager())
        session = sessions.load(None)
        service.register_and_login(session, "alice", "Valid123", "Valid123", "alice@example.com")
        service.is_authenticated(session)  # True
    """

    def __init__(self, store: UserStore, hasher: PasswordHasher, sessions: SessionManager) -> None:
        self.store = store
        self.hasher = hasher
        self.sessions = sessions

    # ------------------------------------------------------------------
    # CSRF
    # ------------------------------------------------------------------

    def issue_csrf_token(self, session: Session) -> str:
        """Rotate the session's CSRF token and return it for the next form.

        The token is the first thing worth keeping on an anonymous session, so
        this is where it gets stored.
        """
        token = csrf.issue_token(session)
        self.sessions.save(session)
        return token

    def verify_csrf(self, session: Session, submitted: str | None) -> None:
        """Raise CsrfError unless submitted matches the session's current token."""
        if not csrf.verify_token(session, submitted):
            logger.warning("CSRF token mismatch (session has token: %s)", session.csrf_token is not None)
            raise CsrfError()

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register(self, username: str, password: str, password_confirmation: str, email: str) -> int:
        """Create a user account and return its id. Does not log the user in."""
        username = sanitize(username or "")
        email = sanitize(email or "")

        if not username or not password or not password_confirmation or not email:
            raise ValidationError("All fields are required", reason="required")
        validate_username_syntax(username)
        if not validate_email_syntax(email):
            raise ValidationError("The email format is not valid", reason="invalid_email")
        validate_strength(password)
        if password != password_confirmation:
            raise ValidationError("Passwords do not match", reason="password_mismatch")

        try:
            if self.store.find_by_username_or_email(username, email) is not None:
                raise DuplicateError()
            user_id = self.store.insert(username, email, self.hasher.hash(password))
        except (DuplicateError, ServiceUnavailableError):
            raise
        except StorageError as exc:
            raise StorageError(_REGISTER_FAILED) from exc

        logger.info("Registered user %s (id=%d)", username, user_id)
        return user_id

    def register_and_login(
        self,
        session: Session,
        username: str,
        password: str,
        password_confirmation: str,
        email: str,
    ) -> Session:
        """Register, then immediately log the new account in on session."""
        if session.terminated:
            raise SessionStateError("cannot register into a terminated session")
        self.register(username, password, password_confirmation, email)
        return self.login(session, username, password)

    # ------------------------------------------------------------------
    # Login / logout
    # ------------------------------------------------------------------

    def login(self, session: Session, username: str, password: str) -> Session:
        """Authenticate and move session to AUTHENTICATED (with a new id).

        Returns the same Session object; session.user_view() is the logged-in
        user without the password hash.
        """
        username = sanitize(username or "")
        if not username or not password:
            raise ValidationError("Username and password are required", reason="required")

        try:
            record = self.store.find_by_username(username)
        except ServiceUnavailableError:
            raise
        except StorageError as exc:
            raise StorageError(_LOGIN_FAILED) from exc

        if record is None:
            self.hasher.verify_dummy(password)
            logger.warning("Failed login for %s", username)
            raise InvalidCredentialsError()
        if not self.hasher.verify(password, record.password_hash):
            logger.warning("Failed login for %s", username)
            raise InvalidCredentialsError()

        user = record.view()
        self.sessions.authenticate(session, user)
        logger.info("User %s (id=%d) logged in", user.username, user.id)
        return session

    def logout(self, session: Session) -> None:
        """Terminate the session. Calling it on an anonymous session is fine."""
        if session.authenticated:
            logger.info("User %s (id=%s) logged out", session.username, session.user_id)
        self.sessions.terminate(session)

    def is_authenticated(self, session: Session) -> bool:
        return self.sessions.is_authenticated(session)

    # ------------------------------------------------------------------
    # Listing
    # ------------------------------------------------------------------

    def list_users(self) -> list[UserView]:
        """Return all users (no hashes). The caller enforces authentication."""
        try:
            return self.store.list_all()
        except ServiceUnavailableError:
            raise
        except StorageError as exc:
            raise StorageError(_LIST_FAILED) from exc
