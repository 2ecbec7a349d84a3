"""
auth/models.py -- Domain dataclasses and enums for authentication entities.

Pattern: Data class (pure data container, zero logic). Stores, services and
routes do the work.

Layer rule: no imports from api/.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class Role(str, Enum):
    """Static access tiers. Each tier has its own literal permission set;
    no tier is derived from another."""

    admin = "admin"
    super = "super"
    user = "user"


class UserStatus(str, Enum):
    active = "active"
    inactive = "inactive"


class AuthError(str, Enum):
    """Distinguishable failure kinds returned by the Authenticator.

    The value is the machine-readable code used by the HTTP layer.
    public_message is the only text end users ever see -- it never reveals
    whether a username exists.
    """

    LOCKED_OUT = "locked_out"
    INVALID_CREDENTIALS = "bad_credentials"
    INACTIVE_ACCOUNT = "inactive_account"
    INTERNAL_ERROR = "internal_error"

    @property
    def public_message(self) -> str:
        return _PUBLIC_MESSAGES[self]


_PUBLIC_MESSAGES = {
    AuthError.LOCKED_OUT: "Too many failed login attempts. Please try again later.",
    AuthError.INVALID_CREDENTIALS: "Invalid username or password.",
    AuthError.INACTIVE_ACCOUNT: "This account is inactive.",
    AuthError.INTERNAL_ERROR: "Authentication is temporarily unavailable.",
}


@dataclass
class User:
    """A row of the users table.

    password_hash is an opaque bcrypt digest. email is the destination for
    password reset notifications. Users are created out of band (CLI) and
    never deleted by the auth core.
    """

    username: str
    password_hash: str
    role: str  # "admin", "super", "user"
    full_name: str = ""
    email: str | None = None
    status: str = UserStatus.active.value
    id: int | None = None
    created_at: str | None = None

    @property
    def is_active(self) -> bool:
        return self.status == UserStatus.active.value


@dataclass
class LoginAttempt:
    """One recorded authentication attempt. Failed rows inside the lockout
    window are the lockout signal; all rows for a username are deleted on a
    successful login."""

    username: str
    ip_address: str
    success: bool
    attempt_time: str
    id: int | None = None


@dataclass(frozen=True)
class Session:
    """Identity bound to an authenticated request context."""

    user_id: int
    username: str
    role: str
    full_name: str = ""


@dataclass(frozen=True)
class AuthResult:
    """Outcome of Authenticator.authenticate().

    Exactly one of session / error is set. Expected failures (bad password,
    lockout) are values, not exceptions.
    """

    session: Session | None = None
    error: AuthError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.session is not None

    @classmethod
    def success(cls, session: Session) -> AuthResult:
        return cls(session=session)

    @classmethod
    def failure(cls, error: AuthError) -> AuthResult:
        return cls(error=error)
