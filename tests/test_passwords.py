"""Unit tests for auth/passwords.py -- bcrypt hashing, rehash detection, temp passwords.

Covers:
- hash / verify round trip and rejection of wrong or malformed input
- hash_cost() parsing of $2a$ / $2b$ / $2y$ hashes
- needs_rehash() against the configured cost
- inputs longer than bcrypt's 72-byte limit
- dummy_hash() per cost for timing equalization
- generate_temporary_password() shape and uniqueness
"""

import re

from auth.passwords import (
    burn_verification,
    dummy_hash,
    generate_temporary_password,
    hash_cost,
    hash_password,
    needs_rehash,
    verify_password,
)
from core.config import get_settings


class TestHashAndVerify:
    def test_correct_password_verifies(self):
        hashed = hash_password("secret1")
        assert verify_password("secret1", hashed)

    def test_wrong_password_rejected(self):
        hashed = hash_password("secret1")
        assert not verify_password("secret2", hashed)

    def test_hash_is_salted(self):
        assert hash_password("secret1") != hash_password("secret1")

    def test_password_longer_than_72_bytes(self):
        long_password = "x" * 100
        hashed = hash_password(long_password)
        assert verify_password(long_password, hashed)
        assert not verify_password("y" * 100, hashed)

    def test_multibyte_password_over_72_bytes(self):
        long_password = "é" * 50
        assert verify_password(long_password, hash_password(long_password))

    def test_malformed_hash_returns_false(self):
        """A corrupt stored hash must fail closed, not raise."""
        assert not verify_password("secret1", "not-a-bcrypt-hash")
        assert not verify_password("secret1", "")

    def test_uses_configured_cost_by_default(self):
        assert hash_cost(hash_password("secret1")) == get_settings().bcrypt_rounds


class TestHashCost:
    def test_parses_bcrypt_idents(self):
        salt_and_digest = "a" * 53
        assert hash_cost(f"$2b$12${salt_and_digest}") == 12
        assert hash_cost(f"$2a$10${salt_and_digest}") == 10
        assert hash_cost(f"$2y$11${salt_and_digest}") == 11

    def test_non_bcrypt_returns_none(self):
        assert hash_cost("$argon2id$v=19$m=65536,t=4,p=1$abc$def") is None
        assert hash_cost("5f4dcc3b5aa765d61d8327deb882cf99") is None
        assert hash_cost("$2b$xx$abc") is None


class TestNeedsRehash:
    def test_current_cost_does_not_need_rehash(self):
        assert not needs_rehash(hash_password("secret1"))

    def test_different_cost_needs_rehash(self):
        rounds = get_settings().bcrypt_rounds
        assert needs_rehash(hash_password("secret1", rounds=rounds + 1))

    def test_explicit_rounds_override(self):
        hashed = hash_password("secret1", rounds=5)
        assert not needs_rehash(hashed, rounds=5)
        assert needs_rehash(hashed, rounds=6)

    def test_legacy_digest_needs_rehash(self):
        assert needs_rehash("5f4dcc3b5aa765d61d8327deb882cf99")


class TestDummyHash:
    def test_matches_requested_cost(self):
        assert hash_cost(dummy_hash(5)) == 5
        assert hash_cost(dummy_hash(4)) == 4

    def test_is_cached_per_cost(self):
        assert dummy_hash(5) is dummy_hash(5)

    def test_burn_verification_returns_none(self):
        assert burn_verification("anything", 4) is None


class TestTemporaryPassword:
    def test_sixteen_hex_characters(self):
        assert re.fullmatch(r"[0-9a-f]{16}", generate_temporary_password())

    def test_values_differ(self):
        values = {generate_temporary_password() for _ in range(20)}
        assert len(values) == 20
