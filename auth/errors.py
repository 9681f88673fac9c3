"""
auth/errors.py -- Tagged error taxonomy for the authentication core.

Every failure the core reports is an AuthServiceError carrying an ErrorKind,
so callers branch on `exc.kind` instead of matching message text.

  message -- safe to show to the end user (never raw database text)
  reason  -- stable machine code for the specific rule that failed
             (e.g. "invalid_email", "too_short"); defaults to kind.value
  detail  -- optional extra context, also user-safe

Storage and driver exceptions are translated into StorageError /
DuplicateError / ServiceUnavailableError inside auth/store.py. Nothing above
AuthService should ever observe a sqlalchemy exception.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    VALIDATION = "validation_error"
    CSRF = "csrf_failed"
    INVALID_CREDENTIALS = "invalid_credentials"
    NOT_AUTHENTICATED = "not_authenticated"
    DUPLICATE = "duplicate"
    STORAGE = "storage_error"
    UNAVAILABLE = "service_unavailable"


class PolicyRule(str, Enum):
    """Password strength rules, in the order they are checked."""

    TOO_SHORT = "too_short"
    MISSING_UPPERCASE = "missing_uppercase"
    MISSING_LOWERCASE = "missing_lowercase"
    MISSING_DIGIT = "missing_digit"


class AuthServiceError(Exception):
    """Base class for every error the auth core raises."""

    kind: ErrorKind = ErrorKind.STORAGE
    default_message: str = "An unexpected error occurred."

    def __init__(self, message: str | None = None, *, reason: str | None = None, detail: str | None = None) -> None:
        self.message = message or self.default_message
        self.reason = reason or self.kind.value
        self.detail = detail
        super().__init__(self.message)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(kind={self.kind.value!r}, reason={self.reason!r}, message={self.message!r})"


class ValidationError(AuthServiceError):
    kind = ErrorKind.VALIDATION
    default_message = "The submitted data is not valid."


class PasswordPolicyError(ValidationError):
    """A password failed one strength rule. Only the first failing rule is reported."""

    def __init__(self, rule: PolicyRule, message: str) -> None:
        self.rule = rule
        super().__init__(message, reason=rule.value)


class CsrfError(AuthServiceError):
    kind = ErrorKind.CSRF
    default_message = "Invalid security token. Please reload the page and try again."


class InvalidCredentialsError(AuthServiceError):
    """Unknown username and wrong password both raise this, with identical text."""

    kind = ErrorKind.INVALID_CREDENTIALS
    default_message = "Invalid credentials"


class NotAuthenticatedError(AuthServiceError):
    kind = ErrorKind.NOT_AUTHENTICATED
    default_message = "Authentication required."


class DuplicateError(AuthServiceError):
    kind = ErrorKind.DUPLICATE
    default_message = "Username or email is already registered"


class StorageError(AuthServiceError):
    kind = ErrorKind.STORAGE
    default_message = "A storage error occurred. Please try again."


class ServiceUnavailableError(StorageError):
    """The database could not be reached at all. Not retried."""

    kind = ErrorKind.UNAVAILABLE
    default_message = "Service unavailable. Please try again later."


class SessionStateError(Exception):
    """An illegal session state transition (e.g. logging in a terminated session).

    A programming error in the caller, not a user-facing condition. It sits
    outside the AuthServiceError taxonomy.
    """
