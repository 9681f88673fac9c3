"""
auth/passwords.py -- Password strength policy and bcrypt hashing.

Security design decisions:
  Policy: four rules checked in a fixed order (length, uppercase, lowercase,
       digit). Only the first failing rule is reported so the user fixes one
       thing at a time. Whitespace-only input counts as too short.

  Hashing: bcrypt directly (no passlib wrapper). bcrypt's cost factor is the
       adaptive part -- raise BCRYPT_ROUNDS as hardware gets faster. A fresh
       salt is generated on every hash() call, so hashing the same password
       twice yields different strings that both verify.

  Verification: bcrypt.checkpw does its own constant-time comparison. Never
       compare hash strings by hand.

  Timing equalization: verify_dummy() runs one full bcrypt check against a
       fixed hash so a login for an unknown username costs the same as a wrong
       password. The dummy hash is computed once per hasher, at its cost factor.

bcrypt only looks at the first 72 bytes of a password, and bcrypt 5 raises
instead of truncating. _encode() truncates explicitly so hash() and verify()
agree on long inputs.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

import re

import bcrypt

from auth.errors import PasswordPolicyError, PolicyRule

MIN_PASSWORD_LENGTH = 8
_BCRYPT_MAX_BYTES = 72

# Rule order matters: the first failure wins.
_POLICY: tuple[tuple[PolicyRule, re.Pattern[str], str], ...] = (
    (PolicyRule.MISSING_UPPERCASE, re.compile(r"[A-Z]"), "The password must contain an uppercase letter"),
    (PolicyRule.MISSING_LOWERCASE, re.compile(r"[a-z]"), "The password must contain a lowercase letter"),
    (PolicyRule.MISSING_DIGIT, re.compile(r"[0-9]"), "The password must contain a number"),
)

_TOO_SHORT_MESSAGE = f"The password must contain at least {MIN_PASSWORD_LENGTH} characters"


def _encode(password: str) -> bytes:
    return password.encode("utf-8")[:_BCRYPT_MAX_BYTES]


def validate_strength(password: str) -> None:
    """Raise PasswordPolicyError for the first rule the password breaks."""
    if not password or not password.strip() or len(password) < MIN_PASSWORD_LENGTH:
        raise PasswordPolicyError(PolicyRule.TOO_SHORT, _TOO_SHORT_MESSAGE)
    for rule, pattern, message in _POLICY:
        if not pattern.search(password):
            raise PasswordPolicyError(rule, message)


class PasswordHasher:
    """bcrypt hash/verify with a configurable cost factor.

    Usage:
        hasher = PasswordHasher(rounds=12)
        stored = hasher.hash("Valid123")
        hasher.verify("Valid123", stored)   # True
    """

    def __init__(self, rounds: int = 12) -> None:
        self.rounds = rounds
        self._dummy_hash: bytes | None = None

    def hash(self, password: str) -> str:
        """Return a salted bcrypt hash of the plaintext password."""
        return bcrypt.hashpw(_encode(password), bcrypt.gensalt(rounds=self.rounds)).decode("utf-8")

    def verify(self, password: str, hashed: str) -> bool:
        """Return True if the plaintext password matches the bcrypt hash.

        A malformed or empty hash verifies as False rather than raising.
        """
        try:
            return bcrypt.checkpw(_encode(password), hashed.encode("utf-8"))
        except (AttributeError, TypeError, ValueError):
            return False

    def verify_dummy(self, password: str) -> None:
        """Spend one bcrypt check on a throwaway hash. Always 'fails'."""
        if self._dummy_hash is None:
            self._dummy_hash = bcrypt.hashpw(b"secureauth_timing_dummy", bcrypt.gensalt(rounds=self.rounds))
        bcrypt.checkpw(_encode(password), self._dummy_hash)
