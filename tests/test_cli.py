"""
tests/test_cli.py -- The create-user command in main.py.

Uses a file-backed SQLite store under tmp_path: create_user() closes its store
before returning, which would discard a shared-memory database.
"""

import io
import sys

import pytest

import main
from auth.store import UserStore
from core.config import Settings


@pytest.fixture
def db_url(tmp_path, monkeypatch):
    url = f"sqlite:///{tmp_path / 'cli.db'}"
    settings = Settings(secret_key="c" * 32, database_url=url, bcrypt_rounds=4)
    monkeypatch.setattr(main, "get_settings", lambda: settings)
    return url


def test_create_user(db_url, capsys):
    assert main.create_user("Alice", "Alice@Example.com", "secret1") == 0
    assert "Created user" in capsys.readouterr().out

    store = UserStore(db_url)
    try:
        user = store.get_by_email("alice@example.com")
        assert user is not None
        assert user.hashed_password.startswith("$2b$04$")
    finally:
        store.close()


def test_create_user_duplicate(db_url, capsys):
    assert main.create_user("Alice", "alice@example.com", "secret1") == 0
    assert main.create_user("Alice Again", "alice@example.com", "secret1") == 1
    assert "already exists" in capsys.readouterr().err


def test_create_user_reports_invalid_fields(db_url, capsys):
    assert main.create_user("Al", "nope", "123") == 1
    err = capsys.readouterr().err
    for field in ("name", "email", "password"):
        assert f"{field}:" in err


def test_password_from_stdin(monkeypatch):
    monkeypatch.setattr(sys, "stdin", io.StringIO("hunter22\n"))
    assert main._read_password(from_stdin=True) == "hunter22"


def test_prompted_passwords_must_match(monkeypatch):
    answers = iter(["first-pass", "other-pass"])
    monkeypatch.setattr(main.getpass, "getpass", lambda prompt: next(answers))
    with pytest.raises(SystemExit):
        main._read_password(from_stdin=False)
