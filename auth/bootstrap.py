"""
auth/bootstrap.py -- Ensure the administrative account exists at startup.

ensure_admin() runs once per process start, before any login is served. It is
idempotent: safe on every restart, and safe when several instances start at
once against a shared directory.

Race handling [M1]: two instances can both observe "absent" and both INSERT.
The UNIQUE(username) constraint lets exactly one INSERT succeed; the other
raises DuplicateUsernameError, which is treated as "someone else created it".
No check-then-act window can produce a second admin row.

Any other failure raises BootstrapError. Callers must let it propagate so the
process never serves requests without a verified admin path.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

import logging

from auth.errors import BootstrapError, DirectoryError, DuplicateUsernameError
from auth.models import User
from auth.passwords import PasswordHasher
from auth.store import UserDirectory

logger = logging.getLogger("passgate.bootstrap")


def ensure_admin(directory: UserDirectory, hasher: PasswordHasher, username: str, password: str) -> bool:
    """Create the admin user if absent. Returns True if this call created it.

    Raises BootstrapError if the credentials are empty, hashing fails, or
    the directory cannot be read or written.
    """
    if not username:
        raise BootstrapError("admin username is not configured")
    if not password:
        raise BootstrapError("admin password is not configured")

    try:
        if directory.exists_by_username(username):
            logger.info("Admin user %r already present", username)
            return False
    except DirectoryError as exc:
        raise BootstrapError("could not read the user directory") from exc

    try:
        digest = hasher.hash(password)
    except (ValueError, TypeError) as exc:
        raise BootstrapError("could not hash the admin password") from exc

    try:
        directory.save(User(username=username, hashed_password=digest, is_active=True))
    except DuplicateUsernameError:
        # Race condition: another instance created the admin first [M1]
        logger.info("Admin user %r created concurrently by another instance", username)
        return False
    except DirectoryError as exc:
        raise BootstrapError("could not write the admin user") from exc

    logger.info("Admin user %r created", username)
    return True
