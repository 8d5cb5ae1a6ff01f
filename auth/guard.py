"""
auth/guard.py -- Access Guard: one wrapper for every protected operation.

check() is the whole decision:

    no token            -> Unauthenticated("missing")      (401)
    bad/expired token   -> Unauthenticated from authenticate (401)
    role below required -> Forbidden                          (403)
    otherwise           -> Principal

protect(role) applies check() in front of any callable whose first parameter
is the Principal. The HTTP adapter in auth/dependencies.py calls check()
with a token pulled from the request.

Every rejection is logged with the identifier (when known) and the
required role. The log line never contains the token itself.

Layer rule: no imports from api/ or galaxy/.
"""

from __future__ import annotations

import functools
import logging
from collections.abc import Callable
from typing import TypeVar

from auth.authenticator import Authenticator
from auth.errors import Forbidden, Unauthenticated
from auth.models import Principal, Role
from auth.policy import permits

logger = logging.getLogger("starlane.auth")

T = TypeVar("T")


class AccessGuard:
    """Runs the Authenticator and the role policy for a required role."""

    def __init__(self, authenticator: Authenticator) -> None:
        self.authenticator = authenticator

    def check(self, raw_token: str | None, required: Role) -> Principal:
        if not raw_token:
            logger.warning("Rejected: no token (required=%s)", required.value)
            raise Unauthenticated("missing")

        try:
            principal = self.authenticator.authenticate(raw_token)
        except Unauthenticated as exc:
            logger.warning("Rejected: %s token (required=%s)", exc.reason, required.value)
            raise

        if not permits(principal.role, required):
            logger.warning(
                "Forbidden: %s has %s, required=%s",
                principal.identifier,
                principal.role.value,
                required.value,
            )
            raise Forbidden(principal.identifier, principal.role, required)
        return principal

    def protect(self, required: Role) -> Callable[[Callable[..., T]], Callable[..., T]]:
        """Decorator: the wrapped function takes the raw token in place of the Principal.

        Usage:
            @guard.protect(Role.ADMIN)
            def delete_location(principal, location_id): ...

            delete_location(raw_token, 7)
        """

        def decorator(operation: Callable[..., T]) -> Callable[..., T]:
            @functools.wraps(operation)
            def wrapper(raw_token: str | None, *args, **kwargs) -> T:
                principal = self.check(raw_token, required)
                return operation(principal, *args, **kwargs)

            wrapper.required_role = required
            return wrapper

        return decorator
