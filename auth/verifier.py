"""
auth/verifier.py -- Username/password verification (constant-time) [C1].

verify() looks the user up, checks the active flag and compares the password
against the stored digest. Each rejection raises its own AuthError subclass
so logs can tell them apart; the route layer collapses them into one
generic 401.

Timing equalization:
  Every path runs exactly one hasher.verify() call.
  - Unknown username: verify against _dummy_digest (same bcrypt cost).
  - Disabled account: verify against the real digest, result discarded.
  - Wrong password:   verify against the real digest.
  Without this an attacker could enumerate usernames by measuring how much
  faster "no such user" returns than "wrong password".

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

import logging

from auth.errors import AccountDisabled, DirectoryError, InvalidCredentials, ServiceUnavailable, UserNotFound
from auth.models import Principal
from auth.passwords import PasswordHasher
from auth.store import UserDirectory

logger = logging.getLogger("passgate.auth")


class CredentialVerifier:
    """Check a username/password pair against the directory.

    The dummy digest is computed once at construction with the same hasher
    (and therefore the same cost factor) as real digests, so the first login
    attempt is not measurably slower than subsequent ones.
    """

    def __init__(self, directory: UserDirectory, hasher: PasswordHasher) -> None:
        self._directory = directory
        self._hasher = hasher
        self._dummy_digest = hasher.hash("passgate_timing_dummy")

    def verify(self, username: str, password: str) -> Principal:
        """Return the Principal for a valid, active account.

        Raises:
            UserNotFound:       no record with this username.
            AccountDisabled:    record exists but is_active is False.
            InvalidCredentials: password does not match the digest.
            ServiceUnavailable: the directory could not be read.
        """
        try:
            user = self._directory.find_by_username(username)
        except DirectoryError as exc:
            raise ServiceUnavailable("user directory unavailable") from exc

        if user is None:
            # Equalize timing -- do NOT return early before running the hasher [C1]
            self._hasher.verify(password, self._dummy_digest)
            logger.info("Login rejected: %s", UserNotFound.code)
            raise UserNotFound(username)

        matches = self._hasher.verify(password, user.hashed_password)
        if not user.is_active:
            logger.info("Login rejected for user id=%s: %s", user.id, AccountDisabled.code)
            raise AccountDisabled(username)
        if not matches:
            logger.info("Login rejected for user id=%s: %s", user.id, InvalidCredentials.code)
            raise InvalidCredentials(username)
        return Principal(username=user.username, user_id=user.id)
