"""
auth/service.py -- Login flow: credential check, then token issue.

AuthService is the only object the request boundary talks to. It is built by
explicit constructor injection -- create_auth_service() does the wiring for
the API lifespan and the CLI, tests build their own.

Layer rule: no imports from api/. Import from core/ is allowed -- core/ is the
kernel and has no reverse dependencies.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from auth.models import IssuedToken
from auth.passwords import BcryptHasher
from auth.store import UserDirectory
from auth.tokens import SigningKey, TokenService
from auth.verifier import CredentialVerifier

if TYPE_CHECKING:
    from core.config import Settings


class AuthService:
    def __init__(self, verifier: CredentialVerifier, tokens: TokenService) -> None:
        self.verifier = verifier
        self.tokens = tokens

    def login(self, username: str, password: str) -> IssuedToken:
        """Return a signed token for valid credentials.

        Verifier errors (AuthError subclasses, ServiceUnavailable) propagate
        unchanged; mapping them to responses is the caller's job.
        """
        principal = self.verifier.verify(username, password)
        return self.tokens.issue(principal.username)

    def validate(self, token: str, username: str) -> bool:
        return self.tokens.validate(token, username)


def create_auth_service(directory: UserDirectory, settings: Settings) -> AuthService:
    """Wire hasher, verifier and token service from settings."""
    hasher = BcryptHasher(rounds=settings.bcrypt_rounds)
    tokens = TokenService(
        SigningKey.from_secret(settings.secret_key),
        lifetime_seconds=settings.token_expire_seconds,
    )
    return AuthService(CredentialVerifier(directory, hasher), tokens)
