"""Unit tests for auth/sanitize.py -- trimming, HTML escaping, syntax checks."""

from __future__ import annotations

import pytest

from auth.errors import ValidationError
from auth.sanitize import sanitize, validate_email_syntax, validate_username_syntax


def test_sanitize_trims_whitespace() -> None:
    assert sanitize("  alice \n") == "alice"


def test_sanitize_escapes_html() -> None:
    assert sanitize("<script>alert('x') & \"y\"</script>") == (
        "&lt;script&gt;alert(&#x27;x&#x27;) &amp; &quot;y&quot;&lt;/script&gt;"
    )


def test_sanitize_trims_before_escaping() -> None:
    assert sanitize("   ") == ""


@pytest.mark.parametrize(
    "email",
    ["alice@example.com", "first.last@mail.example.org", "user+tag@example.co.uk"],
)
def test_valid_emails(email: str) -> None:
    assert validate_email_syntax(email)


@pytest.mark.parametrize(
    "email",
    ["", "alice", "alice@", "@example.com", "alice@localhost", "a@b@example.com", "alice example@example.com"],
)
def test_invalid_emails(email: str) -> None:
    assert not validate_email_syntax(email)


@pytest.mark.parametrize("username", ["abc", "alice_01", "A" * 50, "___"])
def test_valid_usernames(username: str) -> None:
    validate_username_syntax(username)


@pytest.mark.parametrize(
    ("username", "reason"),
    [
        ("ab", "username_too_short"),
        ("a" * 51, "username_too_long"),
        ("bad-name", "username_invalid_characters"),
        ("has space", "username_invalid_characters"),
        ("ñandú_user", "username_invalid_characters"),
    ],
)
def test_invalid_usernames(username: str, reason: str) -> None:
    with pytest.raises(ValidationError) as exc_info:
        validate_username_syntax(username)
    assert exc_info.value.reason == reason


@pytest.mark.parametrize("email", ["alice@mail.test", "bob@host.local", "carol@example.invalid", "dave@site.onion"])
def test_reserved_domains_are_rejected(email: str) -> None:
    assert not validate_email_syntax(email)
