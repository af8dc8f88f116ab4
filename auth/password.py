"""
Password hashing and verification.

Uses bcrypt with a fixed work factor and a fresh random salt per hash, so
hashing the same password twice yields two different strings.
"""

from __future__ import annotations

import bcrypt

_BCRYPT_ROUNDS = 12

# bcrypt only consumes the first 72 bytes of its input.
MAX_PASSWORD_BYTES = 72


def _password_bytes(password: str) -> bytes:
    return password.encode()[:MAX_PASSWORD_BYTES]


def hash_password(password: str) -> str:
    """Hash a password with bcrypt (auto-salted, work factor 12)."""
    return bcrypt.hashpw(_password_bytes(password), bcrypt.gensalt(rounds=_BCRYPT_ROUNDS)).decode()


def verify_password(password: str, password_hash: str) -> bool:
    """
    Constant-time comparison against a bcrypt hash.

    A malformed stored hash raises instead of returning ``False``; that is a
    server fault, not a wrong password.
    """
    return bcrypt.checkpw(_password_bytes(password), password_hash.encode())
