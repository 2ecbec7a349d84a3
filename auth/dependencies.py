"""
auth/dependencies.py -- FastAPI Depends() helpers for sessions and authorization.

The session identity lives in Starlette's request.session (signed cookie,
SessionMiddleware). These helpers wrap it in a SessionStore and consult the
Authorizer stored on app.state.

try_get_session() is the soft variant (returns None when anonymous).
get_current_session() wraps it and raises HTTP 401 if unauthenticated.
require_permission() / require_module() build dependencies that raise HTTP 403
when the session's role lacks the capability.

Layer rule: auth/dependencies.py may import from fastapi (for HTTPException /
Request) because this module is part of the FastAPI dependency injection system.
"""

from __future__ import annotations

from collections.abc import Callable

from fastapi import HTTPException, Request

from auth.models import Session
from auth.permissions import Authorizer
from auth.service import Authenticator
from auth.session import SessionStore


def get_session_store(request: Request) -> SessionStore:
    return SessionStore(request.session)


def get_authenticator(request: Request) -> Authenticator:
    return request.app.state.authenticator


def get_authorizer(request: Request) -> Authorizer:
    return request.app.state.authorizer


def try_get_session(request: Request) -> Session | None:
    """Return the current Session, or None when the request is anonymous. Never raises."""
    return get_session_store(request).current()


def get_current_session(request: Request) -> Session:
    """Require authentication. Raises HTTP 401 if the request is not authenticated.

    Use as a FastAPI dependency:
        @router.get("/protected")
        async def route(session: Session = Depends(get_current_session)): ...
    """
    session = try_get_session(request)
    if session is None:
        raise HTTPException(
            status_code=401,
            detail={"code": "unauthorized", "message": "Authentication required."},
        )
    return session


def require_permission(permission: str) -> Callable[[Request], Session]:
    """Build a dependency that requires the session's role to hold permission.

        @router.get("/users")
        async def route(session: Session = Depends(require_permission("manage_users"))): ...
    """

    def dependency(request: Request) -> Session:
        session = get_current_session(request)
        if not get_authorizer(request).has_permission(session, permission):
            raise HTTPException(
                status_code=403,
                detail={"code": "forbidden", "message": "You do not have permission to perform this action."},
            )
        return session

    return dependency


def require_module(module: str) -> Callable[[Request], Session]:
    """Build a dependency that requires the session's role to reach module."""

    def dependency(request: Request) -> Session:
        session = get_current_session(request)
        if not get_authorizer(request).can_access_module(session, module):
            raise HTTPException(
                status_code=403,
                detail={"code": "forbidden", "message": "You do not have access to this module."},
            )
        return session

    return dependency
