"""
auth/store.py -- SQLAlchemy Core persistence layer for users and applications.

Pattern: Repository + Data Mapper. CredentialStore is the repository;
_row_to_user / _row_to_app are the mappers. The service never touches SQL.

CredentialStore satisfies all three capabilities AuthService consumes
(UserSaver, UserProvider, AppProvider) and adds the provisioning calls used
by main.py (create_app, set_admin).

Security:
  All queries use bound parameters. No f-strings in SQL.

Concurrency:
  UNIQUE(email) is the only guard against duplicate registration. Two
  simultaneous inserts of the same email resolve inside the database: one
  commits, the other gets IntegrityError and is reported as
  UserAlreadyStoredError. Methods are safe to call from many threads; each
  call checks a connection out of the engine pool for its own duration.

DB path: storage/sso.db by default (see core/config.py). SQLAlchemy makes
PostgreSQL a connection string change.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path

from sqlalchemy import (
    Column,
    Integer,
    LargeBinary,
    MetaData,
    String,
    Table,
    create_engine,
    event,
    func,
    select,
    text,
)
from sqlalchemy.engine import Engine
from sqlalchemy.engine.url import make_url
from sqlalchemy.exc import IntegrityError

from auth.errors import AppRecordNotFoundError, UserAlreadyStoredError, UserRecordNotFoundError
from auth.models import App, User

logger = logging.getLogger("sso.store")

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_users = Table(
    "users",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("email", String(255), nullable=False, unique=True),
    Column("pass_hash", LargeBinary, nullable=False),
    Column("is_admin", Integer, nullable=False, server_default="0"),
    Column("created_at", String(32), nullable=False),
)

_apps = Table(
    "apps",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(255), nullable=False, unique=True),
    Column("secret", LargeBinary, nullable=False),
)


# ---------------------------------------------------------------------------
# WAL mode
# ---------------------------------------------------------------------------


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode so readers are not blocked by a writer.

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
    # SQLite: "UNIQUE constraint failed: users.email"
    # PostgreSQL: "duplicate key value violates unique constraint ..."
    return "unique" in str(exc.orig).lower()


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class CredentialStore:
    """Repository for User and App records.

    Usage:
        store = CredentialStore("sqlite:///storage/sso.db")
        app_id = store.create_app("web", b"app-secret")
        uid = store.save_user("a@example.com", pass_hash)
        store.user("a@example.com")
        store.close()
    """

    def __init__(self, db_url: str) -> None:
        connect_args: dict = {}
        is_sqlite = db_url.startswith("sqlite")
        if is_sqlite:
            # Writers wait up to 15s for the lock instead of failing with
            # "database is locked" under concurrent registration.
            connect_args["check_same_thread"] = False
            connect_args["timeout"] = 15
            self._ensure_sqlite_dir(db_url)
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        if is_sqlite:
            event.listen(self.engine, "connect", _set_wal_mode)
        _metadata.create_all(self.engine)

    @staticmethod
    def _ensure_sqlite_dir(db_url: str) -> None:
        database = make_url(db_url).database
        if not database or database == ":memory:" or database.startswith("file:"):
            return
        Path(database).parent.mkdir(parents=True, exist_ok=True)

    # ------------------------------------------------------------------
    # UserSaver
    # ------------------------------------------------------------------

    def save_user(self, email: str, pass_hash: bytes) -> int:
        """Insert a new user and return its assigned id.

        Raises UserAlreadyStoredError if the email is already taken.
        """
        try:
            with self.engine.connect() as conn:
                result = conn.execute(
                    _users.insert().values(
                        email=email,
                        pass_hash=pass_hash,
                        is_admin=0,
                        created_at=_now_iso(),
                    )
                )
                conn.commit()
                return result.inserted_primary_key[0]
        except IntegrityError as exc:
            if _is_unique_violation(exc):
                raise UserAlreadyStoredError(email) from exc
            raise

    # ------------------------------------------------------------------
    # UserProvider
    # ------------------------------------------------------------------

    def user(self, email: str) -> User:
        """Look up a user by exact email (case-sensitive)."""
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.email == email)).fetchone()
        if row is None:
            raise UserRecordNotFoundError(email)
        return _row_to_user(row)

    def is_admin(self, user_id: int) -> bool:
        with self.engine.connect() as conn:
            row = conn.execute(select(_users.c.is_admin).where(_users.c.id == user_id)).fetchone()
        if row is None:
            raise UserRecordNotFoundError(user_id)
        return bool(row.is_admin)

    # ------------------------------------------------------------------
    # AppProvider
    # ------------------------------------------------------------------

    def app(self, app_id: int) -> App:
        with self.engine.connect() as conn:
            row = conn.execute(_apps.select().where(_apps.c.id == app_id)).fetchone()
        if row is None:
            raise AppRecordNotFoundError(app_id)
        return _row_to_app(row)

    # ------------------------------------------------------------------
    # Provisioning (operator tooling, not part of the request path)
    # ------------------------------------------------------------------

    def create_app(self, name: str, secret: bytes) -> int:
        """Register a client application and return its id.

        Raises sqlalchemy.exc.IntegrityError if the name is already taken.
        """
        with self.engine.connect() as conn:
            result = conn.execute(_apps.insert().values(name=name, secret=secret))
            conn.commit()
            app_id = result.inserted_primary_key[0]
        logger.info("app registered (app_id=%s name=%s)", app_id, name)
        return app_id

    def set_admin(self, user_id: int, is_admin: bool = True) -> bool:
        """Set the admin flag. Returns True if a row was updated, False if user_id was not found."""
        with self.engine.connect() as conn:
            result = conn.execute(
                _users.update().where(_users.c.id == user_id).values(is_admin=1 if is_admin else 0)
            )
            conn.commit()
        return result.rowcount > 0

    def count_users(self) -> int:
        with self.engine.connect() as conn:
            result = conn.execute(select(func.count()).select_from(_users)).scalar()
        return result or 0

    def ping(self) -> bool:
        """Return True if the database answers a trivial query. Used by the health endpoint."""
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except Exception:
            logger.exception("store ping failed")
            return False
        return True

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mappers (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_user(row) -> User:
    return User(
        id=row.id,
        email=row.email,
        pass_hash=bytes(row.pass_hash),
        is_admin=bool(row.is_admin),
    )


def _row_to_app(row) -> App:
    return App(id=row.id, name=row.name, secret=bytes(row.secret))
