"""
auth/authenticator.py -- Credential checks and token verification.

login() turns (email, password) into a token; authenticate() turns a token
back into a Principal. Neither raises anything but AuthError subclasses for
auth problems. CredentialStoreError from the store passes through untouched.

Timing equalization: login() always runs bcrypt, against DUMMY_HASH when the
email is unknown, so response time does not reveal whether an account exists.
Do NOT inline get_by_identifier() + verify_password() in a route -- that
re-introduces the timing side channel.

authenticate() does not consult the database. The role in the token is
authoritative until expiry, so a role change only applies to tokens issued
after it.

Layer rule: no imports from api/ or galaxy/.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime

from auth.errors import InvalidCredentials, MalformedToken, TokenExpired, Unauthenticated
from auth.models import Principal
from auth.passwords import DUMMY_HASH, verify_password
from auth.store import UserStore
from auth.tokens import TokenCodec, utcnow

logger = logging.getLogger("starlane.auth")


class Authenticator:
    """Issues tokens for valid credentials and validates presented tokens."""

    def __init__(self, store: UserStore, codec: TokenCodec, clock: Callable[[], datetime] = utcnow) -> None:
        self.store = store
        self.codec = codec
        self.clock = clock

    def login(self, email: str, password: str) -> str:
        """Return a signed token for the user, or raise InvalidCredentials.

        Unknown email and wrong password raise the same exception after the
        same bcrypt work.
        """
        user = self.store.get_by_identifier(email)
        if user is None:
            # Equalize timing -- do NOT return early before running bcrypt
            verify_password(password, DUMMY_HASH)
            logger.warning("Login rejected for %s", email)
            raise InvalidCredentials()
        if not verify_password(password, user.hashed_password):
            logger.warning("Login rejected for %s", email)
            raise InvalidCredentials()
        logger.info("Login succeeded for %s (role=%s)", email, user.role.value)
        return self.codec.encode(user.id, user.email, user.role, self.clock())

    def authenticate(self, raw_token: str) -> Principal:
        """Return the Principal carried by `raw_token`, or raise Unauthenticated.

        Unauthenticated.reason is "expired" or "malformed" for audit logs.
        Clients only ever see the 401.
        """
        try:
            return self.codec.decode(raw_token, self.clock())
        except TokenExpired as exc:
            raise Unauthenticated("expired") from exc
        except MalformedToken as exc:
            raise Unauthenticated("malformed") from exc
