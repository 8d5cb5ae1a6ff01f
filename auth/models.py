"""
auth/models.py -- Domain types for authentication and authorization.

Pattern: Data class (pure data container). Stores and the authenticator do
the work; these types only own shape and the role ordering.

Layer rule: no imports from api/, core/, or galaxy/.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class Role(str, Enum):
    """The four access tiers, lowest first.

    Each tier inherits everything the tiers below it may do. The ordering is
    a rank comparison (see auth/policy.permits), not a class hierarchy.
    Values are the strings stored in the users.role column and carried in
    the token's role claim.
    """

    READER = "READER"
    WRITER = "WRITER"
    EDITOR = "EDITOR"
    ADMIN = "ADMIN"

    @property
    def tier(self) -> int:
        return _TIERS[self]


_TIERS: dict[Role, int] = {role: index for index, role in enumerate(Role)}


@dataclass
class User:
    """A stored account.

    email is the login identifier and is unique. hashed_password is a bcrypt
    digest and never leaves the server. role is mutated only by an ADMIN
    through UserStore.update_role.
    """

    email: str
    hashed_password: str
    role: Role = Role.READER
    fullname: str = ""
    id: int | None = None
    created_at: str | None = None


@dataclass(frozen=True)
class Principal:
    """The authenticated identity for one request, rebuilt from a token.

    Never persisted. role is the role embedded at issue time and stays
    authoritative until expires_at, even if the stored role changes.
    """

    user_id: int
    identifier: str
    role: Role
    issued_at: datetime
    expires_at: datetime
