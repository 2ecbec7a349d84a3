"""
tests/conftest.py -- Shared test fixtures for SalesDesk auth tests.

This module provides:
  - store / mailer / authenticator: unit-level fixtures over an in-memory DB
  - make_user(): inserts a user with a real bcrypt hash
  - client: TestClient over the real FastAPI app with a patched lifespan

Design: Named shared-memory SQLite URIs (not plain :memory:) are used for the
TestClient fixture because TestClient runs sync route handlers in a thread
pool. Plain :memory: DBs are per-connection and would present a blank schema
to each worker thread.

Environment must be set before any auth/core import:
  DEBUG=true           -> get_settings() auto-generates SECRET_KEY
  BCRYPT_ROUNDS=4      -> bcrypt's minimum cost keeps the suite fast
  RATE_LIMIT_ENABLED   -> off, otherwise lockout tests trip the IP limiter
  ALLOWED_HOSTS        -> TestClient sends Host: testserver
"""

from __future__ import annotations

import os
import uuid
from collections.abc import Generator
from contextlib import asynccontextmanager

os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("ALLOWED_HOSTS", '["testserver", "localhost"]')

import pytest
from fastapi.testclient import TestClient

from api.main import app
from auth.models import User
from auth.passwords import hash_password
from auth.permissions import Authorizer
from auth.service import Authenticator
from auth.store import CredentialStore
from core.config import get_settings

# ---------------------------------------------------------------------------
# Collaborator doubles
# ---------------------------------------------------------------------------


class RecordingMailer:
    """Mailer that records every message instead of sending it."""

    def __init__(self, result: bool = True) -> None:
        self.result = result
        self.sent: list[tuple[str, str, str]] = []

    def send(self, address: str, subject: str, body: str) -> bool:
        self.sent.append((address, subject, body))
        return self.result


def make_user(
    store: CredentialStore,
    username: str,
    password: str,
    role: str = "user",
    status: str = "active",
    email: str | None = None,
    full_name: str = "",
    rounds: int | None = None,
) -> int:
    """Insert a user whose password_hash is a real bcrypt hash of password."""
    return store.create_user(
        User(
            username=username,
            password_hash=hash_password(password, rounds),
            role=role,
            status=status,
            email=email if email is not None else f"{username}@example.com",
            full_name=full_name or username.title(),
        )
    )


# ---------------------------------------------------------------------------
# Unit fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def store() -> Generator[CredentialStore, None, None]:
    s = CredentialStore("sqlite:///:memory:")
    yield s
    s.close()


@pytest.fixture
def mailer() -> RecordingMailer:
    return RecordingMailer()


@pytest.fixture
def authenticator(store: CredentialStore, mailer: RecordingMailer) -> Authenticator:
    return Authenticator(store, mailer, get_settings())


# ---------------------------------------------------------------------------
# HTTP fixtures
# ---------------------------------------------------------------------------


def _patch_lifespan(store: CredentialStore, mailer: RecordingMailer):
    """Return an async context manager that replaces the real lifespan.

    Wires the test store and a RecordingMailer into app.state so routes use
    an isolated DB and never reach an SMTP server.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.authorizer = Authorizer()
        app.state.credential_store = store
        app.state.authenticator = Authenticator(store, mailer, get_settings())
        yield

    return test_lifespan


@pytest.fixture
def client() -> Generator[tuple[TestClient, CredentialStore, RecordingMailer], None, None]:
    """Yield (client, store, mailer) with a fresh cookie jar and a fresh DB per test."""
    db_url = f"sqlite:///file:test_auth_{uuid.uuid4().hex}?mode=memory&cache=shared&uri=true"
    s = CredentialStore(db_url)
    m = RecordingMailer()
    app.router.lifespan_context = _patch_lifespan(s, m)

    with TestClient(app, raise_server_exceptions=True) as c:
        yield c, s, m

    s.close()
