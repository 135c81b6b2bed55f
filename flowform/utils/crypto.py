"""
Password hashing — bcrypt for new hashes.

Verification also accepts werkzeug (scrypt/pbkdf2) hashes so accounts
imported from an external identity store keep working.
"""

import secrets

import bcrypt
from werkzeug.security import check_password_hash

MIN_PASSWORD_LENGTH = 8


def hash_password(plain_password: str) -> str:
    """Hash a plain-text password with bcrypt (12 rounds)."""
    salt = bcrypt.gensalt(rounds=12)
    return bcrypt.hashpw(plain_password.encode("utf-8"), salt).decode("utf-8")


def verify_password(plain_password: str, password_hash: str) -> bool:
    """Verify a plain-text password against its hash."""
    if not password_hash:
        return False

    if password_hash.startswith(("$2b$", "$2a$")):
        return bcrypt.checkpw(
            plain_password.encode("utf-8"),
            password_hash.encode("utf-8"),
        )

    return check_password_hash(password_hash, plain_password)


def generate_reset_token() -> str:
    """Random URL-safe token mailed to the user for a password reset."""
    return secrets.token_urlsafe(32)
