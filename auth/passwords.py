"""
auth/passwords.py -- Password hashing, verification, and temporary passwords.

Security design decisions:
  bcrypt is used directly (no passlib wrapper). Its cost factor makes
  brute-force expensive, and checkpw() compares digests in constant time.

  bcrypt only reads the first 72 bytes of a password, and bcrypt>=5 raises
  ValueError for longer input instead of truncating. Both hash_password() and
  verify_password() cut the UTF-8 encoding to 72 bytes first, so long
  passwords hash and verify consistently on every bcrypt release.

  Rehash-on-login: needs_rehash() reports True when a stored hash was made
  with a cost other than Settings.bcrypt_rounds, or is not a bcrypt hash at
  all. The Authenticator upgrades such hashes after a successful verification,
  the only moment the plaintext is available.

  Timing equalization: burn_verification() runs one verification against a
  dummy hash of the requested cost, so an unknown username costs the same
  bcrypt work as a wrong password for a real account.

  Temporary passwords: secrets.token_hex(8) -- 16 hex characters from the OS
  CSPRNG. They are hashed immediately and never stored or logged in clear.

Layer rule: no imports from api/. Import from core/ is allowed.
"""

from __future__ import annotations

import secrets
from functools import lru_cache

import bcrypt

from core.config import get_settings

# Identifiers bcrypt.checkpw() accepts. $2y$ hashes come from PHP's
# password_hash() and verify unchanged.
_BCRYPT_IDENTS = frozenset({"2a", "2b", "2y"})

BCRYPT_MAX_BYTES = 72


def _password_bytes(plain: str) -> bytes:
    return plain.encode("utf-8")[:BCRYPT_MAX_BYTES]


def hash_password(plain: str, rounds: int | None = None) -> str:
    """Return a bcrypt hash of the given plaintext password.

    rounds defaults to Settings.bcrypt_rounds. Only the first 72 UTF-8 bytes
    take part in the hash.
    """
    cost = rounds if rounds is not None else get_settings().bcrypt_rounds
    return bcrypt.hashpw(_password_bytes(plain), bcrypt.gensalt(rounds=cost)).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    """Return True if the plaintext password matches the bcrypt hash.

    Malformed hashes verify as False rather than raising.
    """
    try:
        return bcrypt.checkpw(_password_bytes(plain), hashed.encode("utf-8"))
    except (ValueError, TypeError):
        return False


def hash_cost(hashed: str) -> int | None:
    """Return the cost factor encoded in a bcrypt hash, or None if it is not one."""
    parts = hashed.split("$")
    # "$2b$12$<salt+digest>" -> ["", "2b", "12", "<salt+digest>"]
    if len(parts) != 4 or parts[0] != "" or parts[1] not in _BCRYPT_IDENTS:
        return None
    try:
        return int(parts[2])
    except ValueError:
        return None


def needs_rehash(hashed: str, rounds: int | None = None) -> bool:
    """Return True if hashed was not produced with the current parameters."""
    cost = rounds if rounds is not None else get_settings().bcrypt_rounds
    return hash_cost(hashed) != cost


def generate_temporary_password() -> str:
    """Return a random 16-character hex password for password resets."""
    return secrets.token_hex(8)


@lru_cache
def dummy_hash(rounds: int) -> str:
    """Return a fixed throwaway hash of the given cost, computed once per cost."""
    return hash_password("salesdesk_timing_dummy", rounds)


def burn_verification(plain: str, rounds: int | None = None) -> None:
    """Spend one bcrypt verification at the given cost and discard the result."""
    cost = rounds if rounds is not None else get_settings().bcrypt_rounds
    verify_password(plain, dummy_hash(cost))


# Warm the cache for the configured cost so the first unknown-username login
# is not measurably slower than later ones.
dummy_hash(get_settings().bcrypt_rounds)
