"""
auth/session.py -- Session Store over a per-request session mapping.

In the HTTP app the mapping is Starlette's request.session, which
SessionMiddleware serializes into an itsdangerous-signed cookie. Tests may pass
a plain dict. The store only knows the keys it writes; anything else in the
mapping (e.g. flash messages) is left alone except by destroy().

Expiry belongs to the cookie (Settings.session_max_age), not to this class.
"""

from __future__ import annotations

from collections.abc import MutableMapping
from typing import Any

from auth.models import Session, User

_USER_ID = "user_id"
_USERNAME = "username"
_ROLE = "role"
_FULL_NAME = "full_name"


class SessionStore:
    """Create / read / destroy accessors for the authenticated identity."""

    def __init__(self, data: MutableMapping[str, Any]) -> None:
        self._data = data

    def create(self, user: User) -> Session:
        """Bind the session to user, replacing any previous identity."""
        self._data.clear()
        self._data[_USER_ID] = user.id
        self._data[_USERNAME] = user.username
        self._data[_ROLE] = user.role
        self._data[_FULL_NAME] = user.full_name
        return Session(user_id=user.id, username=user.username, role=user.role, full_name=user.full_name)

    def is_logged_in(self) -> bool:
        return self._data.get(_USER_ID) is not None

    def current_role(self) -> str | None:
        if not self.is_logged_in():
            return None
        return self._data.get(_ROLE)

    def current(self) -> Session | None:
        """Return the Session for this request, or None when anonymous."""
        if not self.is_logged_in():
            return None
        return Session(
            user_id=self._data[_USER_ID],
            username=self._data.get(_USERNAME, ""),
            role=self._data.get(_ROLE, ""),
            full_name=self._data.get(_FULL_NAME, ""),
        )

    def destroy(self) -> None:
        self._data.clear()
