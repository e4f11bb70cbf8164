"""
Password hashing (argon2id) and the password length rules.

A hash is computed once, when registration starts, and is carried unchanged
from the pending registration into the account at promotion.
"""

from __future__ import annotations

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError
from argon2.profiles import RFC_9106_LOW_MEMORY

from snapshare.config import get_settings
from snapshare.errors import InputValidationError

_hasher = PasswordHasher.from_parameters(RFC_9106_LOW_MEMORY)


class PasswordStrengthError(InputValidationError):
    """Password is blank, too short or too long."""


def hash_password(password: str) -> str:
    return _hasher.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    """True on match. Mismatches and unparseable hashes are both just False."""
    try:
        return _hasher.verify(password_hash, password)
    except (VerificationError, InvalidHashError):
        return False


def check_needs_rehash(password_hash: str) -> bool:
    """True when the stored hash was made with different argon2 parameters."""
    return _hasher.check_needs_rehash(password_hash)


def validate_password_strength(password: str) -> None:
    """
    Enforce ``password_min_length``..``password_max_length`` on a non-blank password.

    Raises:
        PasswordStrengthError: With a message naming the violated rule.
    """
    settings = get_settings()
    if not password.strip():
        msg = "Password cannot be empty"
    elif len(password) < settings.password_min_length:
        msg = f"Password must be at least {settings.password_min_length} characters"
    elif len(password) > settings.password_max_length:
        msg = f"Password must not exceed {settings.password_max_length} characters"
    else:
        return
    raise PasswordStrengthError(msg)
