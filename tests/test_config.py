"""Tests for core/config.py -- SECRET_KEY policy and field bounds."""

import pytest
from pydantic import ValidationError

from core.config import Settings


def test_debug_generates_secret_key():
    settings = Settings(_env_file=None, debug=True, secret_key="")
    assert len(settings.secret_key) == 64


def test_production_requires_secret_key():
    with pytest.raises(ValidationError, match="SECRET_KEY is required"):
        Settings(_env_file=None, debug=False, secret_key="")


def test_short_secret_key_rejected():
    with pytest.raises(ValidationError, match="at least 32 characters"):
        Settings(_env_file=None, debug=True, secret_key="too-short")


def test_explicit_secret_key_kept():
    key = "s" * 40
    assert Settings(_env_file=None, debug=False, secret_key=key).secret_key == key


@pytest.mark.parametrize("rounds", [3, 32])
def test_bcrypt_rounds_bounds(rounds):
    with pytest.raises(ValidationError):
        Settings(_env_file=None, debug=True, bcrypt_rounds=rounds)


def test_token_lifetime_must_be_positive():
    with pytest.raises(ValidationError):
        Settings(_env_file=None, debug=True, token_expire_seconds=0)


def test_defaults():
    settings = Settings(_env_file=None, debug=True, bcrypt_rounds=12, login_rate_limit="10/minute")
    assert settings.token_expire_seconds == 86400
    assert settings.self_registration_enabled is True
    assert settings.login_rate_limit == "10/minute"
