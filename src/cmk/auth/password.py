"""
Registration credential hashing and validation using argon2id.

Only the hash is ever stored on an account record.
"""

from __future__ import annotations

import argon2

from cmk.config import get_settings
from cmk.rewards.errors import InvalidInputError

_hasher = argon2.PasswordHasher(
    time_cost=2,
    memory_cost=65536,  # 64 MB
    parallelism=1,
    hash_len=32,
    salt_len=16,
    type=argon2.Type.ID,  # argon2id
)


class PasswordStrengthError(InvalidInputError):
    """Raised when a password does not meet strength requirements."""


def hash_password(password: str) -> str:
    """Hash a password using argon2id. Returns the full hash string."""
    return _hasher.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    """Check a password against its hash. Never raises on mismatch."""
    try:
        return _hasher.verify(password_hash, password)
    except (argon2.exceptions.VerifyMismatchError, argon2.exceptions.InvalidHashError):
        return False


def validate_password_strength(password: str) -> None:
    """
    Validate a registration password against the configured length bounds.

    Raises PasswordStrengthError if the password is blank, too short, too long,
    or lacks either a letter or a digit.
    """
    settings = get_settings()
    if not password or not password.strip():
        msg = "Password cannot be empty"
        raise PasswordStrengthError(msg)
    if len(password) < settings.password_min_length:
        msg = f"Password must be at least {settings.password_min_length} characters"
        raise PasswordStrengthError(msg)
    if len(password) > settings.password_max_length:
        msg = f"Password must not exceed {settings.password_max_length} characters"
        raise PasswordStrengthError(msg)
    if not any(c.isalpha() for c in password) or not any(c.isdigit() for c in password):
        msg = "Password must contain letters and digits"
        raise PasswordStrengthError(msg)
