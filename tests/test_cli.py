"""Tests for the admin command line in main.py (init-db, create-user, list-users)."""

from __future__ import annotations

import getpass
import json

import pytest

import main as cli
from core.config import get_settings


@pytest.fixture
def cli_env(tmp_path, monkeypatch):
    """Point the CLI at a throwaway SQLite file and fast bcrypt."""
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path / 'cli.db'}")
    monkeypatch.setenv("BCRYPT_ROUNDS", "4")
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


def _answer_prompts(monkeypatch, *answers):
    replies = iter(answers)
    monkeypatch.setattr(getpass, "getpass", lambda prompt="": next(replies))


def test_no_command_prints_help(capsys):
    assert cli.main([]) == 0
    assert "init-db" in capsys.readouterr().out


def test_init_create_and_list(cli_env, monkeypatch, capsys):
    assert cli.main(["init-db"]) == 0

    _answer_prompts(monkeypatch, "Valid123", "Valid123")
    assert cli.main(["create-user", "alice", "alice@example.com"]) == 0
    assert "Created user alice" in capsys.readouterr().out

    assert cli.main(["list-users", "--json"]) == 0
    users = json.loads(capsys.readouterr().out)
    assert [u["username"] for u in users] == ["alice"]
    assert users[0]["email"] == "alice@example.com"
    assert "password_hash" not in users[0]


def test_list_users_table(cli_env, monkeypatch, capsys):
    cli.main(["init-db"])
    _answer_prompts(monkeypatch, "Valid123", "Valid123")
    cli.main(["create-user", "bob", "bob@example.com"])
    capsys.readouterr()

    assert cli.main(["list-users"]) == 0
    out = capsys.readouterr().out
    assert "bob@example.com" in out
    assert "1 user(s)" in out


def test_list_users_empty(cli_env, capsys):
    cli.main(["init-db"])
    capsys.readouterr()
    assert cli.main(["list-users"]) == 0
    assert "No users registered" in capsys.readouterr().out


def test_create_user_rejects_weak_password(cli_env, monkeypatch, capsys):
    cli.main(["init-db"])
    _answer_prompts(monkeypatch, "weak", "weak")
    assert cli.main(["create-user", "alice", "alice@example.com"]) == 1
    assert "[!] The password must contain at least 8 characters" in capsys.readouterr().err


def test_create_user_duplicate(cli_env, monkeypatch, capsys):
    cli.main(["init-db"])
    _answer_prompts(monkeypatch, "Valid123", "Valid123", "Valid123", "Valid123")
    assert cli.main(["create-user", "alice", "alice@example.com"]) == 0
    assert cli.main(["create-user", "alice", "other@example.com"]) == 1
    assert "already registered" in capsys.readouterr().err
