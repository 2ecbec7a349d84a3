"""Unit tests for auth/session.py -- the Session Store over a session mapping.

Covers the Anonymous -> Authenticated -> Anonymous lifecycle and the
current-user accessors.
"""

from auth.models import Session, User
from auth.session import SessionStore


def _user(**overrides) -> User:
    fields = dict(id=7, username="alice", password_hash="x", role="super", full_name="Alice Doe")
    fields.update(overrides)
    return User(**fields)


class TestSessionLifecycle:
    def test_starts_anonymous(self):
        store = SessionStore({})
        assert not store.is_logged_in()
        assert store.current() is None
        assert store.current_role() is None

    def test_create_binds_identity(self):
        data: dict = {}
        store = SessionStore(data)
        session = store.create(_user())
        assert session == Session(user_id=7, username="alice", role="super", full_name="Alice Doe")
        assert store.is_logged_in()
        assert store.current() == session
        assert store.current_role() == "super"

    def test_identity_survives_new_wrapper(self):
        """A later request wraps the same (cookie-backed) mapping in a new SessionStore."""
        data: dict = {}
        SessionStore(data).create(_user())
        assert SessionStore(data).current().username == "alice"

    def test_create_replaces_previous_identity(self):
        data: dict = {"flash": "stale"}
        store = SessionStore(data)
        store.create(_user())
        store.create(_user(id=8, username="bob", role="user"))
        assert store.current().username == "bob"
        assert store.current_role() == "user"
        assert "flash" not in data

    def test_destroy_returns_to_anonymous(self):
        store = SessionStore({})
        store.create(_user())
        store.destroy()
        assert not store.is_logged_in()
        assert store.current() is None
