"""
API request and response models for SalesDesk REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py, which
own the internal domain representation. Route handlers map between the two.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from auth.models import Session, User

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

USERNAME_MAX_LEN = 100
PASSWORD_MIN_LEN = 8
PASSWORD_MAX_LEN = 128


# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class LoginRequest(BaseModel):
    """Request body for POST /api/v1/auth/login.

    The existing password is not length-checked beyond the upper bound:
    accounts created before a policy change must still be able to log in.
    """

    model_config = ConfigDict(str_strip_whitespace=False)

    username: str = Field(min_length=1, max_length=USERNAME_MAX_LEN)
    password: str = Field(min_length=1, max_length=PASSWORD_MAX_LEN)


class ChangePasswordRequest(BaseModel):
    """Request body for POST /api/v1/auth/password."""

    current_password: str = Field(min_length=1, max_length=PASSWORD_MAX_LEN)
    new_password: str = Field(min_length=PASSWORD_MIN_LEN, max_length=PASSWORD_MAX_LEN)


class PasswordResetRequest(BaseModel):
    """Request body for POST /api/v1/auth/password-reset."""

    model_config = ConfigDict(str_strip_whitespace=True)

    username: str = Field(min_length=1, max_length=USERNAME_MAX_LEN)


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class SessionResponse(BaseModel):
    """Identity of the authenticated session, returned by login."""

    model_config = ConfigDict(frozen=True)

    user_id: int
    username: str
    full_name: str
    role: str

    @classmethod
    def from_session(cls, session: Session) -> "SessionResponse":
        return cls(
            user_id=session.user_id,
            username=session.username,
            full_name=session.full_name,
            role=session.role,
        )


class MeResponse(SessionResponse):
    """Response for GET /api/v1/auth/me: identity plus effective capabilities."""

    permissions: list[str]
    modules: list[str]


class AccessResponse(BaseModel):
    """Yes/no answer to a permission or module check."""

    model_config = ConfigDict(frozen=True)

    name: str
    allowed: bool


class MessageResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    message: str


class UserResponse(BaseModel):
    """One user row, without the password hash."""

    model_config = ConfigDict(frozen=True)

    id: int
    username: str
    full_name: str
    email: Optional[str]
    role: str
    status: str
    created_at: str

    @classmethod
    def from_user(cls, user: User) -> "UserResponse":
        return cls(
            id=user.id,
            username=user.username,
            full_name=user.full_name,
            email=user.email,
            role=user.role,
            status=user.status,
            created_at=user.created_at or "",
        )


class ErrorDetail(BaseModel):
    """Machine-readable error payload."""

    model_config = ConfigDict(frozen=True)

    code: str
    message: str
    detail: Optional[str] = None


class ErrorResponse(BaseModel):
    """Top-level error envelope returned on 4xx/5xx responses."""

    model_config = ConfigDict(frozen=True)

    error: ErrorDetail


class HealthResponse(BaseModel):
    """Response for GET /api/v1/health."""

    model_config = ConfigDict(frozen=True)

    status: str = "healthy"
    version: str
    components: dict[str, str]
