"""
auth/sanitize.py -- Input normalization and syntax checks for usernames and emails.

sanitize() is an output-safety transform (trim + HTML-escape), applied to
username and email before they are stored or echoed back. Passwords are never
sanitized -- they go to bcrypt byte-for-byte.

Email syntax uses the email-validator library (the same validator behind
pydantic's EmailStr) with deliverability checks off: grammar only, no DNS.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

import html
import re

from email_validator import EmailNotValidError, validate_email

from auth.errors import ValidationError

USERNAME_MIN_LENGTH = 3
USERNAME_MAX_LENGTH = 50

_USERNAME_RE = re.compile(r"^[A-Za-z0-9_]+$")


def sanitize(text: str) -> str:
    """Trim surrounding whitespace, then escape < > & " and ' as HTML entities."""
    return html.escape(text.strip(), quote=True)


def validate_email_syntax(email: str) -> bool:
    """Return True for local@domain addresses whose domain contains a dot.

    Special-use and reserved domains (.local, .localhost, .test, .invalid,
    .onion, .arpa) are rejected too: email-validator treats them as
    undeliverable even with DNS checks off, and no real account lives there.
    """
    if not email or "@" not in email:
        return False
    try:
        validate_email(email, check_deliverability=False)
    except EmailNotValidError:
        return False
    return "." in email.rsplit("@", 1)[1]


def validate_username_syntax(username: str) -> None:
    """Raise ValidationError unless username is 3-50 ASCII letters, digits or underscores."""
    if len(username) < USERNAME_MIN_LENGTH:
        raise ValidationError(
            f"Username must be at least {USERNAME_MIN_LENGTH} characters",
            reason="username_too_short",
        )
    if len(username) > USERNAME_MAX_LENGTH:
        raise ValidationError(
            f"Username cannot be longer than {USERNAME_MAX_LENGTH} characters",
            reason="username_too_long",
        )
    if not _USERNAME_RE.match(username):
        raise ValidationError(
            "Username may only contain letters, numbers and underscores",
            reason="username_invalid_characters",
        )
