"""
auth/store.py -- SQLAlchemy Core persistence layer for users.

Pattern: Repository + Data Mapper.
UserStore is the repository; _row_to_user is the mapper. Route, service and
dependency code never touches SQL directly.

Security:
  All queries use bound parameters. No f-strings in SQL.
  update_user() only accepts whitelisted column names.

Errors:
  Absence is a normal result (None / False), never an exception.
  A UNIQUE(email) violation surfaces as Conflict -- covers the race where two
  registrations for the same address both pass the service-level check.
  Any other SQLAlchemy failure is logged and re-raised as StoreError so the
  HTTP layer can answer with a generic 500.

DB path: auth/usersapi.db by default (see core/config.py DATABASE_URL).

Layer rule: no imports from api/ or cache/.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timezone

from sqlalchemy import Column, Integer, MetaData, String, Table, Text, create_engine, event, func, select, text
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from auth.errors import Conflict, StoreError
from auth.models import User

logger = logging.getLogger("usersapi.auth.store")

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_users = Table(
    "users",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(50), nullable=False),
    Column("email", String(255), nullable=False, unique=True),  # stored lower-cased
    Column("hashed_password", Text, nullable=False),
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
)


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


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class UserStore:
    """Repository for User entities.

    Usage:
        store = UserStore("sqlite:///users.db")
        user = store.create_user(User(name="Alice", email="a@x.com", hashed_password=h))
        store.get_by_email("a@x.com")
        store.close()
    """

    # Columns update_user() may write. Validated before any SQL is built.
    _UPDATABLE: frozenset[str] = frozenset({"name", "email", "hashed_password"})

    def __init__(self, db_url: str) -> None:
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        if db_url.startswith("sqlite"):
            event.listen(self.engine, "connect", _set_wal_mode)
        with self._errors("create schema"):
            _metadata.create_all(self.engine)

    @contextmanager
    def _errors(self, operation: str) -> Iterator[None]:
        """Translate SQLAlchemy failures into the core's error taxonomy."""
        try:
            yield
        except IntegrityError as exc:
            raise Conflict() from exc
        except SQLAlchemyError as exc:
            logger.error("User store failure during %s: %s", operation, exc.__class__.__name__)
            raise StoreError("User store unavailable.") from exc

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def create_user(self, user: User) -> User:
        """Insert a new user and return the stored record (with id and timestamps).

        Raises Conflict if the email already exists.
        """
        now = _now_iso()
        with self._errors("create_user"), self.engine.connect() as conn:
            result = conn.execute(
                _users.insert().values(
                    name=user.name,
                    email=user.email.lower(),
                    hashed_password=user.hashed_password,
                    created_at=now,
                    updated_at=now,
                )
            )
            conn.commit()
            created = self._fetch_by_id(conn, result.inserted_primary_key[0])
        if created is None:
            raise StoreError("User vanished after insert.")
        return created

    def get_by_id(self, user_id: int) -> User | None:
        """Look up a user by primary key. Returns None if not found."""
        with self._errors("get_by_id"), self.engine.connect() as conn:
            return self._fetch_by_id(conn, user_id)

    def get_by_email(self, email: str) -> User | None:
        """Look up a user by email (case-insensitive). Returns None if not found."""
        with self._errors("get_by_email"), self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.email == email.lower())).fetchone()
        return _row_to_user(row) if row is not None else None

    def list_users(self, offset: int = 0, limit: int = 50) -> list[User]:
        """Return one page of users ordered by id."""
        with self._errors("list_users"), self.engine.connect() as conn:
            rows = conn.execute(_users.select().order_by(_users.c.id).offset(offset).limit(limit)).fetchall()
        return [_row_to_user(r) for r in rows]

    def count_users(self) -> int:
        with self._errors("count_users"), self.engine.connect() as conn:
            result = conn.execute(select(func.count()).select_from(_users)).scalar()
        return result or 0

    def update_user(self, user_id: int, **fields) -> User | None:
        """Update mutable fields on an existing user and return the new record.

        Accepted fields: name, email, hashed_password. Unknown keys raise
        ValueError rather than being silently ignored.

        Returns None if user_id was not found. Raises Conflict if the new
        email belongs to another user.
        """
        unknown = set(fields) - self._UPDATABLE
        if unknown:
            raise ValueError(f"Unknown user fields: {unknown!r}")
        if "email" in fields:
            fields["email"] = fields["email"].lower()
        fields["updated_at"] = _now_iso()
        with self._errors("update_user"), self.engine.connect() as conn:
            result = conn.execute(_users.update().where(_users.c.id == user_id).values(**fields))
            conn.commit()
            if result.rowcount == 0:
                return None
            return self._fetch_by_id(conn, user_id)

    def delete_user(self, user_id: int) -> bool:
        """Permanently delete a user record. Returns True if deleted, False if not found.

        The caller owns cache invalidation for the deleted identity.
        """
        with self._errors("delete_user"), self.engine.connect() as conn:
            result = conn.execute(_users.delete().where(_users.c.id == user_id))
            conn.commit()
        return result.rowcount > 0

    def ping(self) -> bool:
        """Return True if the database answers a trivial query. Used by /health."""
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            return True
        except SQLAlchemyError:
            logger.warning("User store health check failed")
            return False

    def close(self) -> None:
        self.engine.dispose()

    @staticmethod
    def _fetch_by_id(conn: Connection, user_id: int) -> User | None:
        row = conn.execute(_users.select().where(_users.c.id == user_id)).fetchone()
        return _row_to_user(row) if row is not None else None


# ---------------------------------------------------------------------------
# Row mapper (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_user(row) -> User:
    return User(
        id=row.id,
        name=row.name,
        email=row.email,
        hashed_password=row.hashed_password,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )
