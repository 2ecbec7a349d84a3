"""Tests for main.py -- the account administration CLI."""

from unittest.mock import patch

from auth.passwords import verify_password
from auth.store import CredentialStore
from conftest import make_user


def _db_url(tmp_path) -> str:
    return f"sqlite:///{tmp_path / 'cli.db'}"


def _run(tmp_path, *argv) -> int:
    from main import main

    return main(["--database-url", _db_url(tmp_path), *argv])


def test_create_user(tmp_path, capsys):
    with patch("main.getpass.getpass", side_effect=["secret123", "secret123"]):
        assert _run(tmp_path, "create-user", "alice", "--role", "super", "--email", "a@shop.example") == 0
    store = CredentialStore(_db_url(tmp_path))
    user = store.get_user_by_username("alice")
    store.close()
    assert user.role == "super"
    assert user.email == "a@shop.example"
    assert verify_password("secret123", user.password_hash)
    assert "Created user 'alice'" in capsys.readouterr().out


def test_create_user_mismatched_passwords(tmp_path):
    with patch("main.getpass.getpass", side_effect=["secret123", "secret124"]):
        assert _run(tmp_path, "create-user", "alice") == 1
    store = CredentialStore(_db_url(tmp_path))
    assert store.get_user_by_username("alice") is None
    store.close()


def test_create_duplicate_user(tmp_path, capsys):
    store = CredentialStore(_db_url(tmp_path))
    make_user(store, "alice", "secret1")
    store.close()
    with patch("main.getpass.getpass", side_effect=["secret123", "secret123"]):
        assert _run(tmp_path, "create-user", "alice") == 1
    assert "already exists" in capsys.readouterr().out


def test_set_status(tmp_path):
    store = CredentialStore(_db_url(tmp_path))
    make_user(store, "bob", "secret1")
    store.close()
    assert _run(tmp_path, "set-status", "bob", "inactive") == 0
    store = CredentialStore(_db_url(tmp_path))
    assert not store.get_user_by_username("bob").is_active
    store.close()


def test_roles_prints_every_role(tmp_path, capsys):
    assert _run(tmp_path, "roles") == 0
    out = capsys.readouterr().out
    for role in ("admin", "super", "user"):
        assert f"\n{role}\n" in out
    assert "manage_users" in out
