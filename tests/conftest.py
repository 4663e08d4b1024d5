"""
tests/conftest.py -- Shared test fixtures for Passgate.

This module provides:
  - hasher / store / signing_key / token_service: isolated unit-test building
    blocks (in-memory SQLite, bcrypt at the minimum cost factor)
  - make_user: fixture returning a helper that persists a user with a hashed password
  - file_database: DATABASE_URL pointed at a temporary SQLite file
  - api_client: TestClient running the real lifespan (bootstrap included)
    against a named shared-memory SQLite database

Design: Named shared-memory SQLite URIs (not plain :memory:) are required for
the API client because TestClient runs sync route handlers in a thread pool.
Plain :memory: DBs are per-connection and would present a blank schema to each
worker thread. The named URI format (file:name?mode=memory&cache=shared&uri=true)
shares one in-memory instance across all connections in the same process.

Environment variables must be set before any app import so get_settings()
sees the test configuration on first call.
"""

from __future__ import annotations

import os
from collections.abc import Generator

# CRITICAL: configure the environment before any api/auth/core import.
TEST_SECRET = "passgate-test-signing-secret-0123456789abcdef"
os.environ["DEBUG"] = "true"
os.environ["SECRET_KEY"] = TEST_SECRET
os.environ["ADMIN_USERNAME"] = "admin"
os.environ["ADMIN_PASSWORD"] = "Secret123!"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["TOKEN_EXPIRE_SECONDS"] = "3600"
os.environ["DATABASE_URL"] = "sqlite:///file:passgate_test_api?mode=memory&cache=shared&uri=true"

import pytest
from fastapi.testclient import TestClient

from api.limiter import limiter
from api.main import app
from auth.models import User
from auth.passwords import BcryptHasher
from auth.store import UserStore
from auth.tokens import SigningKey, TokenService
from core.config import get_settings

# ---------------------------------------------------------------------------
# Unit-test building blocks
# ---------------------------------------------------------------------------


@pytest.fixture(scope="session")
def hasher() -> BcryptHasher:
    """bcrypt at cost 4 -- same algorithm as production, a fraction of the time."""
    return BcryptHasher(rounds=4)


@pytest.fixture
def store() -> Generator[UserStore, None, None]:
    """Fresh in-memory UserStore per test."""
    s = UserStore("sqlite:///:memory:")
    yield s
    s.close()


@pytest.fixture(scope="session")
def signing_key() -> SigningKey:
    return SigningKey.from_secret(TEST_SECRET)


@pytest.fixture
def token_service(signing_key: SigningKey) -> TokenService:
    return TokenService(signing_key, lifetime_seconds=3600)


@pytest.fixture
def make_user(hasher: BcryptHasher):
    """Return a helper that persists a user with a real bcrypt digest."""

    def _make(store: UserStore, username: str, password: str, active: bool = True) -> User:
        return store.save(User(username=username, hashed_password=hasher.hash(password), is_active=active))

    return _make


# ---------------------------------------------------------------------------
# API client -- one TestClient per test module for speed
# ---------------------------------------------------------------------------


@pytest.fixture(scope="module")
def api_client() -> Generator[TestClient, None, None]:
    """Yield a TestClient whose startup ran the real lifespan.

    The lifespan bootstraps the admin account (admin / Secret123!) into the
    shared-memory directory, so tests can log in immediately. The directory
    is reachable as client.app.state.user_store.
    """
    limiter.reset()
    with TestClient(app, raise_server_exceptions=True) as client:
        yield client
    limiter.reset()


@pytest.fixture
def file_database(tmp_path, monkeypatch: pytest.MonkeyPatch) -> Generator[str, None, None]:
    """Point DATABASE_URL at a fresh SQLite file and reload settings.

    For tests that open and close the directory several times (restarts, CLI
    commands); a shared-memory database would vanish between them.
    """
    db_url = f"sqlite:///{tmp_path / 'passgate.db'}"
    monkeypatch.setenv("DATABASE_URL", db_url)
    get_settings.cache_clear()
    yield db_url
    get_settings.cache_clear()
