"""
auth/passwords.py -- One-way password hashing.

Passwords: bcrypt via the bcrypt package directly (no passlib wrapper).
Bcrypt's cost factor makes brute-force of low-entropy secrets expensive, and
bcrypt.checkpw compares digests in constant time.

Using bcrypt directly rather than passlib[bcrypt] because passlib's internal
wrap-bug detection creates a password longer than 72 bytes, which bcrypt 4.x
rejects with an explicit error.

The authentication core depends on the PasswordHasher protocol, not on
BcryptHasher, so tests and other deployments can pass any object with
hash()/verify().

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

from typing import Protocol

import bcrypt

DEFAULT_ROUNDS = 12


class PasswordHasher(Protocol):
    def hash(self, plain: str) -> str: ...

    def verify(self, plain: str, digest: str) -> bool: ...


class BcryptHasher:
    """Salted bcrypt digests with a configurable work factor.

    rounds is the bcrypt log2 cost (4-31). Production uses the default; the
    test suite drops to 4 to keep the suite fast.
    """

    def __init__(self, rounds: int = DEFAULT_ROUNDS) -> None:
        if not 4 <= rounds <= 31:
            raise ValueError("bcrypt rounds must be between 4 and 31")
        self.rounds = rounds

    def hash(self, plain: str) -> str:
        """Return a bcrypt hash of the given plaintext password.

        bcrypt only looks at the first 72 bytes. Recent bcrypt releases raise
        ValueError for longer input rather than truncating; the API layer caps
        password length well below that.
        """
        return bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt(rounds=self.rounds)).decode("utf-8")

    def verify(self, plain: str, digest: str) -> bool:
        """Return True if the plaintext password matches the bcrypt hash.

        A malformed digest or oversize password is a mismatch, not an error.
        """
        try:
            return bcrypt.checkpw(plain.encode("utf-8"), digest.encode("utf-8"))
        except (ValueError, TypeError):
            return False
