"""
auth/passwords.py -- bcrypt password hashing.

Using bcrypt directly rather than passlib[bcrypt]: passlib's wrap-bug
detection builds a password longer than 72 bytes, which bcrypt 4.x rejects.

Work factor comes from Settings.bcrypt_rounds. Every digest carries its own
salt and cost, so digests created under an older cost still verify after the
setting changes.

Layer rule: no imports from api/ or galaxy/. Import from core/ is allowed.
"""

from __future__ import annotations

import bcrypt

from core.config import get_settings

# bcrypt only reads the first 72 bytes. Newer releases raise instead of
# truncating, so truncate here for both hashing and verification.
_BCRYPT_MAX_BYTES = 72


def _encode(plain: str) -> bytes:
    return plain.encode("utf-8")[:_BCRYPT_MAX_BYTES]


def hash_password(plain: str) -> str:
    """Return a salted bcrypt digest of the plaintext password.

    Two calls with the same input return different digests.
    """
    salt = bcrypt.gensalt(rounds=get_settings().bcrypt_rounds)
    return bcrypt.hashpw(_encode(plain), salt).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    """Return True if the plaintext password matches the bcrypt digest.

    A malformed or empty digest returns False instead of raising, so a
    corrupted record fails exactly like a wrong password.
    """
    try:
        return bcrypt.checkpw(_encode(plain), hashed.encode("utf-8"))
    except (ValueError, TypeError):
        return False


# Timing equalization dummy hash. Computed once at import so the first login
# attempt is not measurably slower than later ones. Authenticator.login()
# verifies against it when the identifier does not exist.
DUMMY_HASH: str = hash_password("starlane_timing_dummy")
