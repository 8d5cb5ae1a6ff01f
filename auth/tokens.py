"""
auth/tokens.py -- Signed session tokens.

Security design decisions:
  JWT: python-jose with HS256. Tokens are signed with SECRET_KEY and carry
       sub (email), uid (user id), role, iat and exp as integer epoch seconds.
       The signature covers the whole payload, so editing the role claim
       invalidates the token.

  Clock: encode() and decode() take `now` explicitly. jose's own exp check
       reads the wall clock, so it is disabled and expiry is enforced here
       against the caller's clock. Expiry is a hard boundary: a token whose
       exp is at or before `now` is expired. No skew leeway.

  Ordering: expiry is checked on the parsed claims before the signature. An
       expired token is reported as TokenExpired whatever its signature.
       Both outcomes are a 401 to the client; the distinction only reaches
       audit logs.

  Stateless: nothing is stored server-side. Validity is a function of
       (token, clock, secret). The secret is not rotated at runtime.

Layer rule: no imports from api/ or galaxy/. Import from core/ is allowed.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from functools import lru_cache

from jose import jwt
from jose.exceptions import JOSEError

from auth.errors import MalformedToken, TokenExpired
from auth.models import Principal, Role
from core.config import get_settings

_ALGORITHM = "HS256"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TokenCodec:
    """Encodes principals into signed tokens and decodes them back.

    Usage:
        codec = TokenCodec(secret_key, timedelta(hours=24))
        token = codec.encode(user.id, user.email, user.role, utcnow())
        principal = codec.decode(token, utcnow())
    """

    def __init__(self, secret_key: str, ttl: timedelta) -> None:
        if ttl <= timedelta(0):
            raise ValueError("Token TTL must be positive.")
        self._secret_key = secret_key
        self.ttl = ttl

    def encode(self, user_id: int, identifier: str, role: Role, now: datetime) -> str:
        """Return a signed token valid from `now` until `now + ttl`."""
        issued_at = int(now.timestamp())
        payload = {
            "sub": identifier,
            "uid": user_id,
            "role": Role(role).value,
            "iat": issued_at,
            "exp": int((now + self.ttl).timestamp()),
        }
        return jwt.encode(payload, self._secret_key, algorithm=_ALGORITHM)

    def encode_principal(self, principal: Principal, now: datetime) -> str:
        """Re-issue `principal` as a fresh token valid from `now`."""
        return self.encode(principal.user_id, principal.identifier, principal.role, now)

    def decode(self, token: str, now: datetime) -> Principal:
        """Verify `token` at time `now` and rebuild its Principal.

        Raises:
            MalformedToken: unparseable token, missing or invalid claims, or
                a signature that does not match this codec's secret.
            TokenExpired: exp <= now.
        """
        try:
            unverified = jwt.get_unverified_claims(token)
        # Deeply nested JSON segments overflow the parser stack.
        except (JOSEError, RecursionError) as exc:
            raise MalformedToken("Token could not be parsed.") from exc

        expires_at = _timestamp(unverified, "exp")
        if expires_at <= now:
            raise TokenExpired("Token expired.")

        try:
            claims = jwt.decode(
                token,
                self._secret_key,
                algorithms=[_ALGORITHM],
                options={"verify_exp": False},
            )
        except (JOSEError, RecursionError) as exc:
            raise MalformedToken("Token signature is invalid.") from exc

        return _claims_to_principal(claims)


def _timestamp(claims: dict, name: str) -> datetime:
    value = claims.get(name)
    # bool is an int subclass; reject it explicitly.
    if not isinstance(value, int) or isinstance(value, bool):
        raise MalformedToken(f"Token claim '{name}' is missing or invalid.")
    try:
        return datetime.fromtimestamp(value, tz=timezone.utc)
    except (OverflowError, OSError, ValueError) as exc:
        raise MalformedToken(f"Token claim '{name}' is out of range.") from exc


def _claims_to_principal(claims: dict) -> Principal:
    identifier = claims.get("sub")
    user_id = claims.get("uid")
    if not isinstance(identifier, str) or not identifier:
        raise MalformedToken("Token claim 'sub' is missing or invalid.")
    if not isinstance(user_id, int) or isinstance(user_id, bool):
        raise MalformedToken("Token claim 'uid' is missing or invalid.")
    try:
        role = Role(claims.get("role"))
    except ValueError as exc:
        raise MalformedToken("Token claim 'role' is missing or invalid.") from exc
    return Principal(
        user_id=user_id,
        identifier=identifier,
        role=role,
        issued_at=_timestamp(claims, "iat"),
        expires_at=_timestamp(claims, "exp"),
    )


@lru_cache
def get_token_codec() -> TokenCodec:
    """Return the process-wide codec built from Settings (secret read once)."""
    settings = get_settings()
    return TokenCodec(settings.secret_key, timedelta(seconds=settings.token_expire_seconds))
