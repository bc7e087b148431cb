"""
auth/passwords.py -- bcrypt password hashing.

Using bcrypt directly rather than passlib[bcrypt] because passlib's internal
wrap-bug detection creates a password longer than 72 bytes, which bcrypt 4.x
rejects with an explicit error.

Layer rule: stdlib + bcrypt only.
"""

from __future__ import annotations

import bcrypt


def hash_password(plain: str) -> str:
    """Return a salted bcrypt hash of the given plaintext password.

    bcrypt only covers 72 bytes of input, and bcrypt 5.x raises ValueError
    for anything longer instead of truncating. Callers must keep passwords
    within that limit; Settings enforces it for DEMO_USER_PASSWORD.
    """
    return bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    """Return True if the plaintext password matches the bcrypt hash.

    A malformed stored hash, or a password bcrypt refuses (over 72 bytes),
    counts as a mismatch.
    """
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        return False


# Timing equalization dummy hash. Computed once at module load so the first
# login attempt is not measurably slower than later ones. The auth flow checks
# against it when the identifier is unknown so both failure paths pay for one
# bcrypt comparison.
DUMMY_HASH: str = hash_password("bookstore_timing_dummy")
