"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, zero logic). Stores, the verifier
and the token service do the work; these types only carry shape.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class User:
    """A directory record for one login identity.

    hashed_password is always a digest produced by the password hasher; the
    plaintext is never stored. is_active=False is the deletion substitute --
    records are deactivated, never removed.

    id, created_at and updated_at are assigned by UserStore.save(). They are
    None on a record that has not been persisted yet.
    """

    username: str
    hashed_password: str
    id: int | None = None
    is_active: bool = True
    created_at: str | None = None  # ISO 8601 UTC
    updated_at: str | None = None  # ISO 8601 UTC, refreshed on every save


@dataclass(frozen=True)
class Principal:
    """The verified identity returned by a successful credential check."""

    username: str
    user_id: int | None = None


@dataclass(frozen=True)
class IssuedToken:
    """A freshly signed access token plus the claims it carries.

    token is the compact JWS string handed to the client. issued_at and
    expires_at are epoch seconds, identical to the iat/exp claims.
    """

    token: str
    subject: str
    issued_at: int
    expires_at: int

    @property
    def expires_in(self) -> int:
        return max(self.expires_at - self.issued_at, 0)
