"""
auth/store.py -- SQLAlchemy Core persistence layer for the user directory.

Pattern: Repository + Data Mapper.
UserStore is the repository; _row_to_user is the mapper. The verifier,
bootstrap and route code never touch SQL directly -- they depend on the
UserDirectory protocol, which UserStore satisfies.

Security:
  All queries use bound parameters. No f-strings in SQL.

  UNIQUE(username) is enforced by the database, not by a check-then-insert in
  code. Two processes bootstrapping the same directory at once can both see
  "absent", but only one INSERT succeeds; the loser gets
  DuplicateUsernameError and the bootstrap treats that as a no-op.

Errors:
  IntegrityError on UNIQUE      -> DuplicateUsernameError
  any other SQLAlchemyError     -> DirectoryError
  Callers never see raw driver exceptions.

Timestamps:
  save() stamps created_at/updated_at on insert and refreshes updated_at on
  every update. There are no ORM lifecycle hooks -- the stamping is explicit.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import replace
from datetime import datetime, timezone
from pathlib import Path
from typing import Protocol

from sqlalchemy import Column, Integer, MetaData, String, Table, Text, create_engine, event, func, select, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from auth.errors import DirectoryError, DuplicateUsernameError
from auth.models import User

logger = logging.getLogger("passgate.store")

_DEFAULT_DB_URL = f"sqlite:///{Path(__file__).parent / 'passgate_auth.db'}"

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_users = Table(
    "users",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("username", String(255), nullable=False, unique=True),  # case-sensitive
    Column("hashed_password", Text, nullable=False),
    Column("is_active", Integer, nullable=False, server_default="1"),
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
)


# ---------------------------------------------------------------------------
# Directory contract
# ---------------------------------------------------------------------------


class UserDirectory(Protocol):
    """What the authentication core needs from a user store."""

    def find_by_username(self, username: str) -> User | None: ...

    def exists_by_username(self, username: str) -> bool: ...

    def save(self, user: User) -> User: ...


# ---------------------------------------------------------------------------
# WAL mode
# ---------------------------------------------------------------------------


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode for concurrent read safety.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _is_unique_violation(exc: IntegrityError) -> bool:
    """True when the driver reports a UNIQUE constraint, as opposed to NOT NULL or CHECK."""
    # SQLSTATE 23505 on PostgreSQL drivers; SQLite and MySQL only say so in the message.
    sqlstate = getattr(exc.orig, "sqlstate", None) or getattr(exc.orig, "pgcode", None)
    if sqlstate:
        return sqlstate == "23505"
    message = str(exc.orig).lower()
    return "unique" in message or "duplicate" in message


@contextmanager
def _directory_errors(operation: str) -> Iterator[None]:
    """Translate SQLAlchemy exceptions into directory errors.

    The original exception is chained for server-side logs; the message
    itself carries only the operation name.
    """
    try:
        yield
    except IntegrityError as exc:
        if _is_unique_violation(exc):
            raise DuplicateUsernameError(f"{operation}: username already exists") from exc
        logger.error("Directory %s rejected the row: %s", operation, exc.__class__.__name__)
        raise DirectoryError(f"{operation}: constraint violated") from exc
    except SQLAlchemyError as exc:
        logger.error("Directory %s failed: %s", operation, exc.__class__.__name__)
        raise DirectoryError(f"{operation}: directory unavailable") from exc


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class UserStore:
    """SQL-backed UserDirectory.

    Usage:
        store = UserStore("sqlite:///:memory:")
        admin = store.save(User(username="admin", hashed_password=hasher.hash("secret")))
        store.find_by_username("admin")
        store.close()
    """

    def __init__(self, db_url: str = _DEFAULT_DB_URL) -> None:
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        if db_url.startswith("sqlite"):
            event.listen(self.engine, "connect", _set_wal_mode)
        with _directory_errors("create_schema"):
            _metadata.create_all(self.engine)

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def find_by_username(self, username: str) -> User | None:
        """Look up a user by exact username (case-sensitive). Returns None if not found."""
        with _directory_errors("find_by_username"), self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.username == username)).fetchone()
        return _row_to_user(row) if row is not None else None

    def exists_by_username(self, username: str) -> bool:
        with _directory_errors("exists_by_username"), self.engine.connect() as conn:
            found = conn.execute(select(_users.c.id).where(_users.c.username == username).limit(1)).first()
        return found is not None

    def count_users(self) -> int:
        with _directory_errors("count_users"), self.engine.connect() as conn:
            result = conn.execute(select(func.count()).select_from(_users)).scalar()
        return result or 0

    def ping(self) -> bool:
        """Return True if the database answers a trivial query. Used by /health."""
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except SQLAlchemyError:
            logger.warning("Directory ping failed", exc_info=True)
            return False
        return True

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def save(self, user: User) -> User:
        """Insert or update a user and return the persisted record.

        user.id is None -> INSERT. id, created_at and updated_at are assigned
            here. Raises DuplicateUsernameError if the username is taken.
        user.id is set  -> UPDATE of username, hashed_password and is_active;
            updated_at is refreshed, created_at is left untouched. Raises
            DirectoryError if no row has that id.

        The input object is not mutated; a new User is returned.
        """
        if not user.username:
            raise ValueError("username must be a non-empty string")
        now = _now_iso()
        if user.id is None:
            with _directory_errors("insert_user"), self.engine.begin() as conn:
                result = conn.execute(
                    _users.insert().values(
                        username=user.username,
                        hashed_password=user.hashed_password,
                        is_active=1 if user.is_active else 0,
                        created_at=now,
                        updated_at=now,
                    )
                )
                user_id = result.inserted_primary_key[0]
            logger.info("Created user record id=%d", user_id)
            return replace(user, id=user_id, created_at=now, updated_at=now)

        with _directory_errors("update_user"), self.engine.begin() as conn:
            result = conn.execute(
                _users.update()
                .where(_users.c.id == user.id)
                .values(
                    username=user.username,
                    hashed_password=user.hashed_password,
                    is_active=1 if user.is_active else 0,
                    updated_at=now,
                )
            )
            if result.rowcount == 0:
                raise DirectoryError(f"update_user: no user with id {user.id}")
            row = conn.execute(_users.select().where(_users.c.id == user.id)).fetchone()
        return _row_to_user(row)

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mapper (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_user(row) -> User:
    return User(
        id=row.id,
        username=row.username,
        hashed_password=row.hashed_password,
        is_active=bool(row.is_active),
        created_at=row.created_at,
        updated_at=row.updated_at,
    )
