"""
Password hashing with bcrypt.
"""

import secrets

import bcrypt

BCRYPT_ROUNDS = 12

# bcrypt ignores input past 72 bytes
_MAX_PASSWORD_BYTES = 72


def _encode(password: str) -> bytes:
    return password.encode("utf-8")[:_MAX_PASSWORD_BYTES]


def hash_password(password: str, rounds: int = BCRYPT_ROUNDS) -> str:
    """Hash a plain text password."""
    return bcrypt.hashpw(_encode(password), bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """True if the password matches; malformed hashes never match."""
    try:
        return bcrypt.checkpw(_encode(plain_password), hashed_password.encode("utf-8"))
    except ValueError:
        return False


def generate_token() -> str:
    """Opaque URL-safe token for email verification links."""
    return secrets.token_urlsafe(32)
