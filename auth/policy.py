"""
auth/policy.py -- Role hierarchy check.

Every protected operation declares one minimum role. Access is granted when
the caller's tier is at or above it. There are no per-resource exceptions
and no deny rules, so permission is monotonic in the tier.
"""

from __future__ import annotations

from auth.models import Role


def permits(actual: Role, required: Role) -> bool:
    """Return True if `actual` is at least as high as `required`.

    >>> permits(Role.ADMIN, Role.WRITER)
    True
    >>> permits(Role.READER, Role.EDITOR)
    False
    """
    return actual.tier >= required.tier
