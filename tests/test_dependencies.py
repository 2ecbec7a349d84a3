"""Unit tests for auth/dependencies.py -- session resolution and capability gates."""

from types import SimpleNamespace

import pytest
from fastapi import HTTPException

from auth.dependencies import get_current_session, require_module, require_permission, try_get_session
from auth.models import User
from auth.permissions import Authorizer
from auth.session import SessionStore


def _request(role: str | None = None) -> SimpleNamespace:
    session: dict = {}
    if role is not None:
        SessionStore(session).create(User(id=3, username="pat", password_hash="x", role=role))
    app = SimpleNamespace(state=SimpleNamespace(authorizer=Authorizer()))
    return SimpleNamespace(session=session, app=app)


def test_anonymous_soft_lookup_returns_none():
    assert try_get_session(_request()) is None


def test_anonymous_hard_lookup_is_401():
    with pytest.raises(HTTPException) as exc_info:
        get_current_session(_request())
    assert exc_info.value.status_code == 401


def test_permission_granted_returns_session():
    session = require_permission("view_reports")(_request("super"))
    assert session.username == "pat"


def test_permission_denied_is_403():
    with pytest.raises(HTTPException) as exc_info:
        require_permission("manage_settings")(_request("super"))
    assert exc_info.value.status_code == 403


def test_module_gate():
    assert require_module("sales")(_request("user")).role == "user"
    with pytest.raises(HTTPException) as exc_info:
        require_module("financial")(_request("user"))
    assert exc_info.value.status_code == 403


def test_module_gate_anonymous_is_401():
    with pytest.raises(HTTPException) as exc_info:
        require_module("dashboard")(_request())
    assert exc_info.value.status_code == 401
