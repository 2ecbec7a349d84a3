"""
auth/service.py -- The Authenticator: login, lockout, and password management.

Pattern: Service object with injected collaborators. One Authenticator is
built at application startup (api/main.py lifespan) from a CredentialStore and
a Mailer and stored on app.state. Nothing here is a process-wide singleton, so
tests substitute any collaborator freely.

Result values, not exceptions:
  authenticate() returns an AuthResult, change_password() returns an
  AuthError or None, reset_password() returns a bool. Expected failures
  (bad password, lockout, inactive account) never raise. Store failures
  (SQLAlchemyError) are logged with logger.exception and reported as
  AuthError.INTERNAL_ERROR, so callers can tell "bad credentials" from
  "store unavailable" without seeing internals.

Lockout:
  Failed attempts are counted per username over a trailing window
  (Settings.lockout_window_minutes). The count is recomputed on every call;
  no lockout flag is stored. The count-then-insert sequence is not atomic:
  two concurrent failures for the same username can both pass the check.
  That overshoot is accepted (see tests/test_authenticator.py).

Audit logging:
  Every failure is logged with username and failure kind. Passwords, hashes
  and temporary passwords are never logged.
"""

from __future__ import annotations

import logging

from sqlalchemy.exc import SQLAlchemyError

from auth.mailer import Mailer
from auth.models import AuthError, AuthResult
from auth.passwords import (
    burn_verification,
    generate_temporary_password,
    hash_password,
    needs_rehash,
    verify_password,
)
from auth.session import SessionStore
from auth.store import CredentialStore
from core.config import Settings, get_settings

logger = logging.getLogger("salesdesk.auth")


class Authenticator:
    """Validates credentials and manages passwords against a CredentialStore."""

    def __init__(self, store: CredentialStore, mailer: Mailer, settings: Settings | None = None) -> None:
        self._store = store
        self._mailer = mailer
        self._settings = settings or get_settings()

    # ------------------------------------------------------------------
    # Login / logout
    # ------------------------------------------------------------------

    def authenticate(
        self,
        username: str,
        password: str,
        source_address: str,
        session_store: SessionStore,
    ) -> AuthResult:
        """Authenticate username/password and create a session on success.

        Order of checks:
          1. lockout       -> LOCKED_OUT (nothing recorded)
          2. unknown user  -> INVALID_CREDENTIALS (failure recorded)
          3. bad password  -> INVALID_CREDENTIALS (failure recorded)
          4. inactive      -> INACTIVE_ACCOUNT (nothing recorded)
          5. rehash if the stored hash is outdated
          6. clear attempts, create session, record success
        """
        try:
            return self._authenticate(username, password, source_address, session_store)
        except SQLAlchemyError:
            logger.exception("Authentication failed for %r: credential store error", username)
            return AuthResult.failure(AuthError.INTERNAL_ERROR)

    def _authenticate(
        self,
        username: str,
        password: str,
        source_address: str,
        session_store: SessionStore,
    ) -> AuthResult:
        s = self._settings
        failures = self._store.count_failed_attempts(username, s.lockout_window_minutes)
        if failures >= s.max_login_attempts:
            logger.warning("Authentication failed for %r: locked out (%d recent failures)", username, failures)
            return AuthResult.failure(AuthError.LOCKED_OUT)

        user = self._store.get_user_by_username(username)
        if user is None:
            # Equalize timing -- do NOT return before running bcrypt.
            burn_verification(password, s.bcrypt_rounds)
            self._store.insert_attempt(username, source_address, False)
            logger.warning("Authentication failed for %r from %s: unknown username", username, source_address)
            return AuthResult.failure(AuthError.INVALID_CREDENTIALS)

        if not verify_password(password, user.password_hash):
            self._store.insert_attempt(username, source_address, False)
            logger.warning("Authentication failed for %r from %s: wrong password", username, source_address)
            return AuthResult.failure(AuthError.INVALID_CREDENTIALS)

        if not user.is_active:
            logger.warning("Authentication failed for %r from %s: account inactive", username, source_address)
            return AuthResult.failure(AuthError.INACTIVE_ACCOUNT)

        if needs_rehash(user.password_hash, s.bcrypt_rounds):
            self._store.update_password_hash(user.id, hash_password(password, s.bcrypt_rounds))
            logger.info("Upgraded password hash for user %r", username)

        self._store.delete_attempts(username)
        session = session_store.create(user)
        try:
            self._store.insert_attempt(username, source_address, True)
        except SQLAlchemyError:
            # A failed login must not leave the session bound.
            session_store.destroy()
            raise
        logger.info("User %r logged in from %s (role=%s)", username, source_address, user.role)
        return AuthResult.success(session)

    def logout(self, session_store: SessionStore) -> None:
        current = session_store.current()
        session_store.destroy()
        if current is not None:
            logger.info("User %r logged out", current.username)

    # ------------------------------------------------------------------
    # Password management
    # ------------------------------------------------------------------

    def change_password(self, user_id: int, current_password: str, new_password: str) -> AuthError | None:
        """Replace the password of user_id after verifying current_password.

        Returns None on success. INVALID_CREDENTIALS leaves the stored hash
        untouched. No strength policy is applied here; the HTTP layer bounds
        the length of new_password.
        """
        try:
            user = self._store.get_user_by_id(user_id)
            if user is None or not verify_password(current_password, user.password_hash):
                logger.warning("Password change rejected for user id %s: current password invalid", user_id)
                return AuthError.INVALID_CREDENTIALS
            self._store.update_password_hash(user_id, hash_password(new_password, self._settings.bcrypt_rounds))
        except SQLAlchemyError:
            logger.exception("Password change failed for user id %s: credential store error", user_id)
            return AuthError.INTERNAL_ERROR
        logger.info("Password changed for user %r", user.username)
        return None

    def reset_password(self, username: str) -> bool:
        """Set a random password on an active account and mail it to the owner.

        Every failure cause collapses into False so callers cannot learn which
        usernames exist.
        """
        try:
            user = self._store.get_active_user_by_username(username)
            if user is None:
                logger.info("Password reset skipped for %r: no active user", username)
                return False
            if not user.email:
                logger.warning("Password reset skipped for %r: no email address on file", username)
                return False
            new_password = generate_temporary_password()
            self._store.update_password_hash(user.id, hash_password(new_password, self._settings.bcrypt_rounds))
        except SQLAlchemyError:
            logger.exception("Password reset failed for %r: credential store error", username)
            return False

        subject = f"Password Reset - {self._settings.system_name}"
        body = (
            "Your password has been reset.\n\n"
            f"New password: {new_password}\n\n"
            "Please change your password after logging in."
        )
        sent = self._mailer.send(user.email, subject, body)
        if sent:
            logger.info("Password reset for %r; notification sent", username)
        else:
            logger.warning("Password reset for %r; notification could not be delivered", username)
        return sent
