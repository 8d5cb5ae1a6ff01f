"""
auth/errors.py -- Exception taxonomy for the auth core.

  InvalidCredentials  login-time failure. Unknown identifier and wrong
                      password raise the same type with the same message.
  MalformedToken      token is structurally invalid or its signature fails.
  TokenExpired        token's expiry is at or before the verification time.
  Unauthenticated     what callers of the Authenticator and the guard see for
                      any token problem (HTTP 401). `reason` keeps the
                      underlying kind for audit logs only.
  Forbidden           valid identity, insufficient role (HTTP 403).

CredentialStoreError is deliberately outside AuthError: infrastructure
failures become a 5xx and are never reported as 401/403.

Layer rule: no imports from api/, core/, or galaxy/.
"""

from __future__ import annotations

from auth.models import Role


class AuthError(Exception):
    """Base class for every authentication and authorization rejection."""


class InvalidCredentials(AuthError):
    def __init__(self) -> None:
        super().__init__("Invalid email or password.")


class MalformedToken(AuthError):
    pass


class TokenExpired(AuthError):
    pass


class Unauthenticated(AuthError):
    def __init__(self, reason: str = "missing") -> None:
        super().__init__("Authentication required.")
        self.reason = reason


class Forbidden(AuthError):
    def __init__(self, identifier: str, actual: Role, required: Role) -> None:
        super().__init__("Insufficient role.")
        self.identifier = identifier
        self.actual = actual
        self.required = required


class CredentialStoreError(Exception):
    """The user database could not be reached or queried."""
