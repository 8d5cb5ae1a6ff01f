"""Tests for the account administration CLI (main.py).

The store is passed in directly so nothing touches the configured database.
"""

import pytest
from conftest import TEST_PASSWORD

from auth.models import Role
from auth.passwords import verify_password
from auth.tokens import get_token_codec, utcnow
from main import build_parser, main


def _create(store, email="ops@starlane.dev", role="READER", password=TEST_PASSWORD):
    return main(
        ["create-user", email, "--fullname", "Ops Person", "--role", role, "--password", password],
        store=store,
    )


def test_create_user(user_store, capsys):
    assert _create(user_store, role="ADMIN") == 0
    user = user_store.get_by_identifier("ops@starlane.dev")
    assert user.role is Role.ADMIN
    assert user.fullname == "Ops Person"
    assert verify_password(TEST_PASSWORD, user.hashed_password)
    assert "ops@starlane.dev" in capsys.readouterr().out


def test_create_user_duplicate_fails(user_store, capsys):
    assert _create(user_store) == 0
    assert _create(user_store) == 1
    assert "already exists" in capsys.readouterr().out


def test_create_user_short_password_fails(user_store):
    assert _create(user_store, password="short") == 1
    assert user_store.get_by_identifier("ops@starlane.dev") is None


def test_create_user_prompts_for_password(user_store, monkeypatch):
    answers = iter(["prompted-secret", "prompted-secret"])
    monkeypatch.setattr("getpass.getpass", lambda prompt="": next(answers))
    assert main(["create-user", "prompt@starlane.dev"], store=user_store) == 0
    user = user_store.get_by_identifier("prompt@starlane.dev")
    assert user.role is Role.READER
    assert verify_password("prompted-secret", user.hashed_password)


def test_create_user_prompt_mismatch_fails(user_store, monkeypatch):
    answers = iter(["prompted-secret", "different-secret"])
    monkeypatch.setattr("getpass.getpass", lambda prompt="": next(answers))
    assert main(["create-user", "prompt@starlane.dev"], store=user_store) == 1
    assert user_store.get_by_identifier("prompt@starlane.dev") is None


def test_set_role(user_store, capsys):
    _create(user_store)
    assert main(["set-role", "ops@starlane.dev", "EDITOR"], store=user_store) == 0
    assert user_store.get_by_identifier("ops@starlane.dev").role is Role.EDITOR
    assert "READER -> EDITOR" in capsys.readouterr().out


def test_set_role_unknown_user(user_store):
    assert main(["set-role", "ghost@starlane.dev", "ADMIN"], store=user_store) == 1


def test_list_users(user_store, capsys):
    assert main(["list-users"], store=user_store) == 0
    assert "No users." in capsys.readouterr().out

    _create(user_store, email="a@starlane.dev", role="WRITER")
    _create(user_store, email="b@starlane.dev")
    capsys.readouterr()
    assert main(["list-users"], store=user_store) == 0
    lines = capsys.readouterr().out.splitlines()
    assert len(lines) == 2
    assert "a@starlane.dev" in lines[0] and "WRITER" in lines[0]
    assert "b@starlane.dev" in lines[1] and "READER" in lines[1]


def test_issue_token(user_store, capsys):
    _create(user_store, role="EDITOR")
    capsys.readouterr()
    assert main(["issue-token", "ops@starlane.dev"], store=user_store) == 0
    token = capsys.readouterr().out.strip()
    principal = get_token_codec().decode(token, utcnow())
    assert principal.identifier == "ops@starlane.dev"
    assert principal.role is Role.EDITOR


def test_issue_token_unknown_user(user_store):
    assert main(["issue-token", "ghost@starlane.dev"], store=user_store) == 1


def test_invalid_role_is_rejected_by_parser():
    with pytest.raises(SystemExit):
        build_parser().parse_args(["set-role", "ops@starlane.dev", "OVERLORD"])
