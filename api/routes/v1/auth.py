"""
api/routes/v1/auth.py -- Authentication, password, and access-check REST endpoints.

Routes:
  POST /api/v1/auth/login                   -- password login; starts a session
  POST /api/v1/auth/logout                  -- ends the session; 200
  GET  /api/v1/auth/me                      -- identity + permissions + modules
  POST /api/v1/auth/password                -- change own password (requires auth)
  POST /api/v1/auth/password-reset          -- mail a temporary password (public)
  GET  /api/v1/auth/permissions/{name}      -- does my role hold this permission?
  GET  /api/v1/auth/modules/{name}          -- may my role open this module?
  GET  /api/v1/auth/users                   -- list accounts (manage_users)

Security:
  POST /login and POST /password-reset are rate-limited per IP
  (Settings.login_rate_limit), on top of the per-username lockout.
  Cache-Control: no-store on login responses.
  POST /password-reset always answers 202 with the same message, whether or
  not the account exists.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import JSONResponse

from api.limiter import limiter
from api.models import (
    AccessResponse,
    ChangePasswordRequest,
    LoginRequest,
    MeResponse,
    MessageResponse,
    PasswordResetRequest,
    SessionResponse,
    UserResponse,
)
from auth.dependencies import (
    get_authenticator,
    get_authorizer,
    get_current_session,
    get_session_store,
    require_permission,
    try_get_session,
)
from auth.models import AuthError, Session
from auth.permissions import Authorizer
from auth.service import Authenticator
from auth.session import SessionStore
from core.config import get_settings

# Auth policy:
# - POST /api/v1/auth/login:                public
# - POST /api/v1/auth/logout:               public -- clearing a session needs no prior auth
# - POST /api/v1/auth/password-reset:       public
# - GET  /api/v1/auth/permissions/{name}:   public -- anonymous is simply "not allowed"
# - GET  /api/v1/auth/modules/{name}:       public -- same
# - GET  /api/v1/auth/me:                   requires auth (get_current_session)
# - POST /api/v1/auth/password:             requires auth (get_current_session)
# - GET  /api/v1/auth/users:                requires manage_users
router = APIRouter()

_settings = get_settings()

_ERROR_STATUS = {
    AuthError.INVALID_CREDENTIALS: 401,
    AuthError.INACTIVE_ACCOUNT: 403,
    AuthError.LOCKED_OUT: 429,
    AuthError.INTERNAL_ERROR: 503,
}

_RESET_MESSAGE = "If the account exists and is active, a new password has been sent to its email address."


def _error_response(error: AuthError) -> JSONResponse:
    return JSONResponse(
        status_code=_ERROR_STATUS[error],
        content={"error": {"code": error.value, "message": error.public_message}},
    )


def _client_address(request: Request) -> str:
    return request.client.host if request.client else "unknown"


# ---------------------------------------------------------------------------
# Public endpoints
# ---------------------------------------------------------------------------


@limiter.limit(_settings.login_rate_limit)  # must be ABOVE @router to preserve FastAPI introspection
@router.post("/auth/login", response_model=SessionResponse)
def login(
    request: Request,
    body: LoginRequest,
    authenticator: Authenticator = Depends(get_authenticator),
    session_store: SessionStore = Depends(get_session_store),
) -> JSONResponse:
    """Authenticate with username and password and bind the session cookie.

    Wrong username and wrong password share one response ("bad_credentials").
    """
    result = authenticator.authenticate(body.username, body.password, _client_address(request), session_store)
    if not result.ok:
        resp = _error_response(result.error)
    else:
        resp = JSONResponse(status_code=200, content=SessionResponse.from_session(result.session).model_dump())
    resp.headers["Cache-Control"] = "no-store"
    return resp


@router.post("/auth/logout", response_model=MessageResponse)
async def logout(
    authenticator: Authenticator = Depends(get_authenticator),
    session_store: SessionStore = Depends(get_session_store),
) -> MessageResponse:
    """End the current session."""
    authenticator.logout(session_store)
    return MessageResponse(message="Logged out.")


@limiter.limit(_settings.login_rate_limit)
@router.post("/auth/password-reset", response_model=MessageResponse, status_code=202)
def password_reset(
    request: Request,
    body: PasswordResetRequest,
    authenticator: Authenticator = Depends(get_authenticator),
) -> JSONResponse:
    """Reset the password of an active account and mail the new one.

    The outcome is deliberately not reported: the same 202 is returned for
    unknown, inactive, and successfully reset accounts.
    """
    authenticator.reset_password(body.username)
    return JSONResponse(status_code=202, content=MessageResponse(message=_RESET_MESSAGE).model_dump())


@router.get("/auth/permissions/{permission}", response_model=AccessResponse)
async def check_permission(
    permission: str,
    session: Session | None = Depends(try_get_session),
    authorizer: Authorizer = Depends(get_authorizer),
) -> AccessResponse:
    return AccessResponse(name=permission, allowed=authorizer.has_permission(session, permission))


@router.get("/auth/modules/{module}", response_model=AccessResponse)
async def check_module(
    module: str,
    session: Session | None = Depends(try_get_session),
    authorizer: Authorizer = Depends(get_authorizer),
) -> AccessResponse:
    return AccessResponse(name=module, allowed=authorizer.can_access_module(session, module))


# ---------------------------------------------------------------------------
# Authenticated endpoints
# ---------------------------------------------------------------------------


@router.get("/auth/me", response_model=MeResponse)
async def me(
    session: Session = Depends(get_current_session),
    authorizer: Authorizer = Depends(get_authorizer),
) -> MeResponse:
    """Return the session identity and the capabilities of its role."""
    return MeResponse(
        user_id=session.user_id,
        username=session.username,
        full_name=session.full_name,
        role=session.role,
        permissions=sorted(authorizer.permissions_for(session.role)),
        modules=sorted(authorizer.modules_for(session.role)),
    )


@router.post("/auth/password", status_code=204)
def change_password(
    body: ChangePasswordRequest,
    session: Session = Depends(get_current_session),
    authenticator: Authenticator = Depends(get_authenticator),
) -> Response:
    """Change the session user's password. The current password is required."""
    error = authenticator.change_password(session.user_id, body.current_password, body.new_password)
    if error is AuthError.INVALID_CREDENTIALS:
        return JSONResponse(
            status_code=400,
            content={"error": {"code": "invalid_current_password", "message": "Current password is invalid."}},
        )
    if error is not None:
        return _error_response(error)
    return Response(status_code=204)


@router.get("/auth/users", response_model=list[UserResponse])
def list_users(
    request: Request,
    session: Session = Depends(require_permission("manage_users")),
) -> list[UserResponse]:
    """List all user accounts. Requires manage_users."""
    store = request.app.state.credential_store
    return [UserResponse.from_user(u) for u in store.list_users()]
