"""
auth/errors.py -- Exception hierarchy for the authentication core.

Three families, each collapsed to a single outcome at the boundary:

  AuthError     -- credential rejections. The route layer maps every subclass
                   to the same generic 401 so callers cannot tell an unknown
                   username from a wrong password or a disabled account.
  TokenError    -- token validation failures. TokenService.validate() turns
                   every subclass into False; the kind is only logged.
  DirectoryError / ServiceUnavailable / BootstrapError -- infrastructure
                   failures. Bootstrap failures are fatal at startup; directory
                   failures during a login surface as ServiceUnavailable (503).

Messages never include the password, the stored digest, or key material.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

# ---------------------------------------------------------------------------
# Credential rejections
# ---------------------------------------------------------------------------


class AuthError(Exception):
    """Base class for every credential rejection.

    code is a stable machine-readable label used in server-side logs only.
    """

    code = "auth_error"


class UserNotFound(AuthError):
    code = "user_not_found"


class AccountDisabled(AuthError):
    code = "account_disabled"


class InvalidCredentials(AuthError):
    code = "invalid_credentials"


# ---------------------------------------------------------------------------
# Token failures
# ---------------------------------------------------------------------------


class TokenError(Exception):
    """Base class for token validation failures."""

    code = "token_error"


class TokenMalformed(TokenError):
    code = "token_malformed"


class TokenExpired(TokenError):
    code = "token_expired"


class TokenSignatureMismatch(TokenError):
    code = "token_signature_mismatch"


class TokenSubjectMismatch(TokenError):
    code = "token_subject_mismatch"


# ---------------------------------------------------------------------------
# Infrastructure failures
# ---------------------------------------------------------------------------


class DirectoryError(Exception):
    """The user directory could not complete a read or write."""


class DuplicateUsernameError(DirectoryError):
    """An insert collided with the UNIQUE(username) constraint."""


class ServiceUnavailable(Exception):
    """The directory failed during a login. The caller may retry."""


class BootstrapError(Exception):
    """The admin account could not be verified or created. Fatal at startup."""
