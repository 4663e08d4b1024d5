"""
auth/tokens.py -- Signed access tokens (JWT, HS256).

Security design decisions:
  Format: python-jose compact JWS -- base64url(header).base64url(payload).
       base64url(signature). Claims are sub (username), iat and exp as integer
       epoch seconds. The signature covers header and payload, so changing any
       character of either segment invalidates the token.

  Signing key: SigningKey is derived once from the configured secret and is
       immutable afterwards. It must carry at least 256 bits of material --
       HMAC-SHA256 is only as strong as its key.

  Verification: jws.verify() recomputes the HMAC and compares it with
       hmac.compare_digest. Only HS256 is accepted, so a token that declares
       alg=none or any other algorithm is rejected before the comparison.

  Expiry: checked here rather than by jose so that exp <= now counts as
       expired. A lifetime of 0 therefore yields a token that is already
       invalid when issue() returns.

  Totality: validate() returns a bool for every input, including non-strings.
       decode() raises only TokenError subclasses. The failure kind is logged
       at DEBUG and never returned to callers.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timezone

from jose import jws, jwt
from jose.exceptions import JWSError

from auth.errors import TokenError, TokenExpired, TokenMalformed, TokenSignatureMismatch, TokenSubjectMismatch
from auth.models import IssuedToken

logger = logging.getLogger("passgate.auth")

_ALGORITHM = "HS256"

# 256 bits -- the HS256 output size. Shorter keys weaken the MAC.
MIN_KEY_BYTES = 32


# ---------------------------------------------------------------------------
# Signing key
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SigningKey:
    """Process-wide HMAC key material. Build with from_secret()."""

    material: bytes

    def __post_init__(self) -> None:
        if len(self.material) < MIN_KEY_BYTES:
            raise ValueError(f"signing key must be at least {MIN_KEY_BYTES} bytes")

    @classmethod
    def from_secret(cls, secret: str) -> SigningKey:
        return cls(secret.encode("utf-8"))

    def __repr__(self) -> str:
        return "SigningKey(<redacted>)"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Token service
# ---------------------------------------------------------------------------


class TokenService:
    """Issue and validate access tokens. Holds no state besides the key.

    Args:
        signing_key:      Shared HMAC key.
        lifetime_seconds: Token validity window. Must be >= 0.
        clock:            Returns the current aware datetime. Injected by tests.
    """

    def __init__(
        self,
        signing_key: SigningKey,
        lifetime_seconds: int,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        if lifetime_seconds < 0:
            raise ValueError("token lifetime must be non-negative")
        self._key = signing_key
        self.lifetime_seconds = lifetime_seconds
        self._clock = clock or _utcnow

    def _now(self) -> float:
        return self._clock().timestamp()

    def issue(self, subject: str) -> IssuedToken:
        """Sign a token for subject, valid from now until now + lifetime.

        Claims are whole seconds and iat is the current time rounded down, so
        the usable window is up to one second shorter than lifetime_seconds.
        Rounding exp up instead would let a zero-lifetime token validate.
        """
        issued_at = int(self._now())
        expires_at = issued_at + self.lifetime_seconds
        claims = {"sub": subject, "iat": issued_at, "exp": expires_at}
        token = jwt.encode(claims, self._key.material, algorithm=_ALGORITHM)
        return IssuedToken(token=token, subject=subject, issued_at=issued_at, expires_at=expires_at)

    def decode(self, token: str) -> dict:
        """Verify signature and expiry and return the claims.

        Raises:
            TokenMalformed:         wrong segment count, bad base64/JSON,
                                    missing or mistyped claims.
            TokenSignatureMismatch: HMAC does not match, or the header names
                                    another algorithm.
            TokenExpired:           exp <= now.
        """
        if not isinstance(token, str) or token.count(".") != 2:
            raise TokenMalformed("expected three dot-separated segments")
        if not token.isascii():
            raise TokenMalformed("compact tokens are ASCII only")
        # Parsing first separates structural damage from a bad signature:
        # jws.verify() reports both as a plain JWSError.
        try:
            jws.get_unverified_header(token)
        except JWSError as exc:
            raise TokenMalformed("token could not be parsed") from exc
        try:
            payload = jws.verify(token, self._key.material, algorithms=[_ALGORITHM])
        except JWSError as exc:
            raise TokenSignatureMismatch("signature or algorithm rejected") from exc

        try:
            claims = json.loads(payload)
        except ValueError as exc:
            raise TokenMalformed("payload is not JSON") from exc
        if not isinstance(claims, dict):
            raise TokenMalformed("payload is not a JSON object")

        subject = claims.get("sub")
        expires_at = claims.get("exp")
        if not isinstance(subject, str):
            raise TokenMalformed("sub claim missing")
        # bool is an int subclass; a literal true/false is not a timestamp.
        if isinstance(expires_at, bool) or not isinstance(expires_at, (int, float)):
            raise TokenMalformed("exp claim missing or not numeric")
        if expires_at <= self._now():
            raise TokenExpired("token has expired")
        return claims

    def validate(self, token: str, expected_subject: str) -> bool:
        """Return True only for an authentic, unexpired token issued to expected_subject."""
        try:
            claims = self.decode(token)
            if claims["sub"] != expected_subject:
                raise TokenSubjectMismatch("subject does not match")
        except TokenError as exc:
            logger.debug("Token rejected: %s", exc.code)
            return False
        return True

    def subject_of(self, token: str) -> str | None:
        """Return the subject of a valid token, or None. Never raises."""
        try:
            return self.decode(token)["sub"]
        except TokenError as exc:
            logger.debug("Token rejected: %s", exc.code)
            return None
