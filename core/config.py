"""
core/config.py -- Centralized application configuration via pydantic-settings.

All environment variable reads for Passgate happen here. No module should
call os.getenv() or os.environ.get() directly -- import get_settings() instead.

Design patterns used:
  Singleton via lru_cache: get_settings() instantiates Settings once at first
      call and returns the cached instance on every subsequent call. Values
      are read once at startup; there is no hot reload.

  BaseSettings (pydantic-settings): Reads values from environment variables
      and an optional .env file automatically. Field names map to env var names
      (e.g. secret_key -> SECRET_KEY). Type coercion and validation are built in.

  @model_validator(mode="after"): Runs cross-field validation after all fields
      are resolved from environment. Dev mode (DEBUG=true) may fill in missing
      secrets with generated values; production mode refuses to start.

Security notes:
  [M6] SECRET_KEY shorter than 32 chars is rejected outright. The token
       signature is HMAC-SHA256 and needs at least 256 bits of key material.

  [M7] In production mode (DEBUG not set or false), a missing SECRET_KEY or
       ADMIN_PASSWORD is a hard startup failure.

Layer rule: core/ is the kernel. This module may not import from api/ or auth/.
"""

import logging
import secrets
from functools import lru_cache

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("passgate.config")


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file.

    Environment variable name mapping: field names are uppercased automatically.
    E.g. `secret_key` reads from SECRET_KEY, `admin_username` from ADMIN_USERNAME.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ------------------------------------------------------------------
    # Core
    # ------------------------------------------------------------------

    debug: bool = False
    log_level: str = "INFO"
    # Empty string is the sentinel for "not configured". The model_validator
    # below either generates a dev key or raises, so callers never see "".
    secret_key: str = ""

    # ------------------------------------------------------------------
    # Tokens and passwords
    # ------------------------------------------------------------------

    # 0 is allowed and yields tokens that are expired on issue.
    token_expire_seconds: int = Field(default=3600, ge=0)
    bcrypt_rounds: int = Field(default=12, ge=4, le=31)

    # ------------------------------------------------------------------
    # Bootstrap admin
    # ------------------------------------------------------------------

    admin_username: str = "admin"
    admin_password: str = ""

    # ------------------------------------------------------------------
    # Storage
    # ------------------------------------------------------------------

    database_url: str = "sqlite:///passgate_auth.db"

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @model_validator(mode="after")
    def validate_secrets(self) -> "Settings":
        """Enforce SECRET_KEY and ADMIN_PASSWORD policy [M6][M7].

        Dev mode (DEBUG=true): auto-generate missing values with a warning.
            Tokens will not survive restart -- acceptable for local dev. The
            generated admin password is logged once so a developer can log in.

        Production mode: refuse to start if either value is missing.

        Both modes: reject keys shorter than 32 characters and an empty
            admin username.
        """
        if not self.secret_key:
            if self.debug:
                self.secret_key = secrets.token_hex(32)
                logger.warning("Using auto-generated SECRET_KEY. Tokens will not survive a restart.")
            else:
                raise ValueError(
                    "SECRET_KEY is required in production mode. "
                    "Set SECRET_KEY in your environment or .env file. "
                    "To run in development mode, set DEBUG=true."
                )
        if len(self.secret_key) < 32:
            raise ValueError("SECRET_KEY must be at least 32 characters.")

        if not self.admin_username.strip():
            raise ValueError("ADMIN_USERNAME must not be empty.")
        if not self.admin_password:
            if self.debug:
                self.admin_password = secrets.token_urlsafe(16)
                logger.warning("Using generated admin password for %r: %s", self.admin_username, self.admin_password)
            else:
                raise ValueError("ADMIN_PASSWORD is required in production mode.")
        return self


@lru_cache
def get_settings() -> Settings:
    """Return the application Settings singleton.

    In tests: call get_settings.cache_clear() between test cases if you need
    to inject different environment variables.
    """
    return Settings()
