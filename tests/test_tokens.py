"""Unit tests for auth/tokens.py -- TokenCodec encode/decode.

Covers:
- round trip reconstructs identifier, user id and role exactly
- exp = iat + TTL
- expiry is a hard boundary (exp == now is expired)
- a token issued 25h ago with a 24h TTL is TokenExpired
- expired tokens are TokenExpired even with a foreign signature
- edited payloads, foreign secrets, alg=none and garbage are MalformedToken
- missing or unknown claims are MalformedToken
- deeply nested JSON segments are MalformedToken, never a parser crash
"""

import base64
import json
from datetime import datetime, timedelta, timezone

import pytest
from jose import jwt

from auth.errors import MalformedToken, TokenExpired
from auth.models import Role
from auth.tokens import TokenCodec

SECRET = "s" * 48
OTHER_SECRET = "o" * 48
TTL = timedelta(hours=24)
NOW = datetime(2026, 3, 1, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def codec() -> TokenCodec:
    return TokenCodec(SECRET, TTL)


def _b64(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode()


def _claims(token: str) -> dict:
    payload = token.split(".")[1]
    return json.loads(base64.urlsafe_b64decode(payload + "=" * (-len(payload) % 4)))


def _with_claims(token: str, **changes) -> str:
    """Rewrite the payload segment, keeping the original header and signature."""
    header, _, signature = token.split(".")
    claims = _claims(token)
    claims.update(changes)
    return ".".join([header, _b64(json.dumps(claims).encode()), signature])


# ---------------------------------------------------------------------------
# Round trip
# ---------------------------------------------------------------------------


@pytest.mark.parametrize("role", list(Role))
def test_round_trip(codec, role):
    token = codec.encode(7, "alice@starlane.dev", role, NOW)
    principal = codec.decode(token, NOW + timedelta(hours=1))
    assert principal.identifier == "alice@starlane.dev"
    assert principal.user_id == 7
    assert principal.role is role


def test_expiry_is_issue_time_plus_ttl(codec):
    token = codec.encode(1, "a@starlane.dev", Role.READER, NOW)
    principal = codec.decode(token, NOW)
    assert principal.issued_at == NOW
    assert principal.expires_at == NOW + TTL
    claims = _claims(token)
    assert claims["exp"] - claims["iat"] == int(TTL.total_seconds())


# ---------------------------------------------------------------------------
# Expiry
# ---------------------------------------------------------------------------


def test_valid_one_second_before_expiry(codec):
    token = codec.encode(1, "a@starlane.dev", Role.READER, NOW)
    assert codec.decode(token, NOW + TTL - timedelta(seconds=1)).role is Role.READER


def test_expired_at_exact_expiry(codec):
    token = codec.encode(1, "a@starlane.dev", Role.READER, NOW)
    with pytest.raises(TokenExpired):
        codec.decode(token, NOW + TTL)


def test_issued_25_hours_ago_is_expired(codec):
    token = codec.encode(1, "a@starlane.dev", Role.ADMIN, NOW - timedelta(hours=25))
    with pytest.raises(TokenExpired):
        codec.decode(token, NOW)


def test_expired_regardless_of_signature(codec):
    foreign = TokenCodec(OTHER_SECRET, TTL).encode(1, "a@starlane.dev", Role.ADMIN, NOW - timedelta(hours=30))
    with pytest.raises(TokenExpired):
        codec.decode(foreign, NOW)


# ---------------------------------------------------------------------------
# Tampering
# ---------------------------------------------------------------------------


def test_role_escalation_breaks_signature(codec):
    token = codec.encode(1, "writer@starlane.dev", Role.WRITER, NOW)
    forged = _with_claims(token, role="ADMIN")
    with pytest.raises(MalformedToken):
        codec.decode(forged, NOW)


def test_extended_expiry_breaks_signature(codec):
    token = codec.encode(1, "a@starlane.dev", Role.READER, NOW - timedelta(hours=25))
    forged = _with_claims(token, exp=int((NOW + timedelta(days=365)).timestamp()))
    with pytest.raises(MalformedToken):
        codec.decode(forged, NOW)


def test_identity_swap_breaks_signature(codec):
    token = codec.encode(1, "a@starlane.dev", Role.READER, NOW)
    forged = _with_claims(token, sub="admin@starlane.dev", uid=2)
    with pytest.raises(MalformedToken):
        codec.decode(forged, NOW)


def test_foreign_secret_is_malformed(codec):
    foreign = TokenCodec(OTHER_SECRET, TTL).encode(1, "a@starlane.dev", Role.READER, NOW)
    with pytest.raises(MalformedToken):
        codec.decode(foreign, NOW)


def test_alg_none_is_malformed(codec):
    header = _b64(json.dumps({"alg": "none", "typ": "JWT"}).encode())
    claims = {
        "sub": "a@starlane.dev",
        "uid": 1,
        "role": "ADMIN",
        "iat": int(NOW.timestamp()),
        "exp": int((NOW + TTL).timestamp()),
    }
    token = f"{header}.{_b64(json.dumps(claims).encode())}."
    with pytest.raises(MalformedToken):
        codec.decode(token, NOW)


@pytest.mark.parametrize("segment", ["header", "payload"])
def test_deeply_nested_segment_is_malformed(codec, segment):
    nested = _b64(b"[" * 100_000)
    header = _b64(json.dumps({"alg": "HS256", "typ": "JWT"}).encode())
    payload = _b64(json.dumps(_base_claims()).encode())
    token = f"{nested}.{payload}.sig" if segment == "header" else f"{header}.{nested}.sig"
    with pytest.raises(MalformedToken):
        codec.decode(token, NOW)


@pytest.mark.parametrize("garbage", ["", "abc", "a.b.c", "not.a.token.at.all", "Bearer xyz"])
def test_garbage_is_malformed(codec, garbage):
    with pytest.raises(MalformedToken):
        codec.decode(garbage, NOW)


# ---------------------------------------------------------------------------
# Claims validation (correctly signed, wrong shape)
# ---------------------------------------------------------------------------


def _signed(claims: dict) -> str:
    return jwt.encode(claims, SECRET, algorithm="HS256")


def _base_claims() -> dict:
    return {
        "sub": "a@starlane.dev",
        "uid": 1,
        "role": "READER",
        "iat": int(NOW.timestamp()),
        "exp": int((NOW + TTL).timestamp()),
    }


@pytest.mark.parametrize("missing", ["sub", "uid", "role", "iat", "exp"])
def test_missing_claim_is_malformed(codec, missing):
    claims = _base_claims()
    del claims[missing]
    with pytest.raises(MalformedToken):
        codec.decode(_signed(claims), NOW)


def test_unknown_role_is_malformed(codec):
    claims = _base_claims()
    claims["role"] = "OVERLORD"
    with pytest.raises(MalformedToken):
        codec.decode(_signed(claims), NOW)


def test_non_integer_uid_is_malformed(codec):
    claims = _base_claims()
    claims["uid"] = "1"
    with pytest.raises(MalformedToken):
        codec.decode(_signed(claims), NOW)


def test_ttl_must_be_positive():
    with pytest.raises(ValueError):
        TokenCodec(SECRET, timedelta(0))


def test_encode_principal_reissues_same_identity(codec):
    original = codec.decode(codec.encode(9, "b@starlane.dev", Role.EDITOR, NOW), NOW)
    later = NOW + timedelta(hours=2)
    principal = codec.decode(codec.encode_principal(original, later), later)
    assert (principal.user_id, principal.identifier, principal.role) == (9, "b@starlane.dev", Role.EDITOR)
    assert principal.expires_at == later + TTL
