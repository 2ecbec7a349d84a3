"""
auth/store.py -- SQLAlchemy Core persistence layer for auth entities.

Pattern: Repository + Data Mapper.
CredentialStore is the repository; _row_to_user / _row_to_attempt are the
mappers. Service and route code never touches SQL directly.

Security:
  All queries use bound parameters. No f-strings in SQL.

Timestamps are stored as UTC ISO-8601 strings with fixed microsecond
precision, so lexical comparison in SQL matches chronological order. The
lockout window query relies on this.

Errors: sqlalchemy.exc.SQLAlchemyError propagates unchanged. The
Authenticator decides how a store failure is reported.

Layer rule: no imports from api/.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from sqlalchemy import Column, Integer, MetaData, String, Table, Text, create_engine, event, func, select
from sqlalchemy.engine import Engine

from auth.models import LoginAttempt, User, UserStatus
from core.config import get_settings

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_users = Table(
    "users",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("username", String(100), nullable=False, unique=True),
    Column("password_hash", Text, nullable=False),
    Column("full_name", String(255), nullable=False, server_default=""),
    Column("email", String(255)),
    Column("role", String(20), nullable=False, server_default="user"),  # "admin", "super", "user"
    Column("status", String(20), nullable=False, server_default="active"),  # "active", "inactive"
    Column("created_at", String(32), nullable=False),
)

_login_attempts = Table(
    "login_attempts",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("username", String(100), nullable=False, index=True),
    Column("ip_address", String(45), nullable=False),  # IPv6 max textual length
    Column("success", Integer, nullable=False, server_default="0"),
    Column("attempt_time", String(32), nullable=False, index=True),
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


def _iso(moment: datetime) -> str:
    return moment.astimezone(timezone.utc).isoformat(timespec="microseconds")


def _now_iso() -> str:
    return _iso(datetime.now(timezone.utc))


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class CredentialStore:
    """Repository for User and LoginAttempt rows.

    Usage:
        store = CredentialStore("sqlite:///salesdesk.db")
        store.create_user(User(username="alice", password_hash=hash_password("secret1"), role="user"))
        user = store.get_user_by_username("alice")
        store.close()
    """

    def __init__(self, db_url: str | None = None) -> None:
        db_url = db_url or get_settings().database_url
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        if db_url.startswith("sqlite"):
            event.listen(self.engine, "connect", _set_wal_mode)
        _metadata.create_all(self.engine)

    # ------------------------------------------------------------------
    # User queries
    # ------------------------------------------------------------------

    def has_users(self) -> bool:
        """Return True if at least one user record exists."""
        with self.engine.connect() as conn:
            result = conn.execute(select(func.count()).select_from(_users)).scalar()
        return (result or 0) > 0

    def create_user(self, user: User) -> int:
        """Insert a new user and return its assigned database ID.

        Raises sqlalchemy.exc.IntegrityError if the username already exists.
        """
        with self.engine.connect() as conn:
            result = conn.execute(
                _users.insert().values(
                    username=user.username,
                    password_hash=user.password_hash,
                    full_name=user.full_name,
                    email=user.email,
                    role=user.role,
                    status=user.status,
                    created_at=_now_iso(),
                )
            )
            conn.commit()
            return result.inserted_primary_key[0]

    def get_user_by_username(self, username: str) -> User | None:
        """Look up a user by exact username (case-sensitive). Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.username == username)).fetchone()
        return _row_to_user(row) if row is not None else None

    def get_active_user_by_username(self, username: str) -> User | None:
        """Like get_user_by_username(), but inactive accounts are treated as absent."""
        with self.engine.connect() as conn:
            row = conn.execute(
                _users.select().where(
                    (_users.c.username == username) & (_users.c.status == UserStatus.active.value)
                )
            ).fetchone()
        return _row_to_user(row) if row is not None else None

    def get_user_by_id(self, user_id: int) -> User | None:
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.id == user_id)).fetchone()
        return _row_to_user(row) if row is not None else None

    def list_users(self) -> list[User]:
        """Return all users ordered by username."""
        with self.engine.connect() as conn:
            rows = conn.execute(_users.select().order_by(_users.c.username)).fetchall()
        return [_row_to_user(r) for r in rows]

    def update_password_hash(self, user_id: int, password_hash: str) -> bool:
        """Replace the stored hash. Returns True if a row was updated."""
        with self.engine.connect() as conn:
            result = conn.execute(
                _users.update().where(_users.c.id == user_id).values(password_hash=password_hash)
            )
            conn.commit()
        return result.rowcount > 0

    def set_status(self, user_id: int, status: UserStatus) -> bool:
        """Activate or deactivate an account. Returns True if a row was updated."""
        with self.engine.connect() as conn:
            result = conn.execute(_users.update().where(_users.c.id == user_id).values(status=status.value))
            conn.commit()
        return result.rowcount > 0

    # ------------------------------------------------------------------
    # Login attempts
    # ------------------------------------------------------------------

    def count_failed_attempts(self, username: str, window_minutes: int, now: datetime | None = None) -> int:
        """Count failed attempts for username newer than now - window_minutes."""
        now = now or datetime.now(timezone.utc)
        cutoff = _iso(now - timedelta(minutes=window_minutes))
        with self.engine.connect() as conn:
            result = conn.execute(
                select(func.count())
                .select_from(_login_attempts)
                .where(
                    (_login_attempts.c.username == username)
                    & (_login_attempts.c.success == 0)
                    & (_login_attempts.c.attempt_time > cutoff)
                )
            ).scalar()
        return result or 0

    def insert_attempt(
        self,
        username: str,
        ip_address: str,
        success: bool,
        attempted_at: datetime | None = None,
    ) -> None:
        """Record one authentication attempt. attempted_at defaults to now (UTC)."""
        with self.engine.connect() as conn:
            conn.execute(
                _login_attempts.insert().values(
                    username=username,
                    ip_address=ip_address,
                    success=1 if success else 0,
                    attempt_time=_iso(attempted_at) if attempted_at else _now_iso(),
                )
            )
            conn.commit()

    def delete_attempts(self, username: str) -> int:
        """Delete every attempt row for username. Returns the number removed."""
        with self.engine.connect() as conn:
            result = conn.execute(_login_attempts.delete().where(_login_attempts.c.username == username))
            conn.commit()
        return result.rowcount

    def get_attempts(self, username: str) -> list[LoginAttempt]:
        """Return all attempt rows for username, oldest first."""
        with self.engine.connect() as conn:
            rows = conn.execute(
                _login_attempts.select()
                .where(_login_attempts.c.username == username)
                .order_by(_login_attempts.c.id)
            ).fetchall()
        return [_row_to_attempt(r) for r in rows]

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def ping(self) -> bool:
        """Return True if the database answers a trivial query."""
        with self.engine.connect() as conn:
            conn.execute(select(1))
        return True

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mappers (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_user(row) -> User:
    return User(
        id=row.id,
        username=row.username,
        password_hash=row.password_hash,
        full_name=row.full_name or "",
        email=row.email,
        role=row.role,
        status=row.status,
        created_at=row.created_at,
    )


def _row_to_attempt(row) -> LoginAttempt:
    return LoginAttempt(
        id=row.id,
        username=row.username,
        ip_address=row.ip_address,
        success=bool(row.success),
        attempt_time=row.attempt_time,
    )
