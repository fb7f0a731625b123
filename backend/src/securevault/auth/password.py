"""Credential store: Argon2id password hashes with a server-side pepper.

The pepper (PASSWORD_PEPPER) is read from the environment on every call and
is never persisted; rotating it invalidates every stored hash.

Hasher parameters are OWASP's Argon2id baseline (64 MB, 3 passes, 4 lanes).
Hashes created under older parameters still verify and are reported by
``password_needs_rehash`` so the login path can upgrade them in place.
"""

import os
import re
from typing import List, Tuple

from argon2 import PasswordHasher, Type
from argon2.exceptions import InvalidHashError, VerificationError, VerifyMismatchError

ARGON2_MEMORY_COST_KB = 65536
ARGON2_TIME_COST = 3
ARGON2_PARALLELISM = 4

MIN_PASSWORD_LENGTH = 8

_hasher = PasswordHasher(
    memory_cost=ARGON2_MEMORY_COST_KB,
    time_cost=ARGON2_TIME_COST,
    parallelism=ARGON2_PARALLELISM,
    hash_len=32,
    salt_len=16,
    type=Type.ID,
)

# (pattern, message) pairs checked in order by validate_password_strength
_STRENGTH_RULES: List[Tuple[str, str]] = [
    (r"[A-Z]", "Password must contain at least one uppercase letter"),
    (r"[a-z]", "Password must contain at least one lowercase letter"),
    (r"\d", "Password must contain at least one digit"),
    (r"[^A-Za-z0-9\s]", "Password must contain at least one special character"),
]


def _peppered(password: str) -> str:
    pepper = os.getenv("PASSWORD_PEPPER")
    if not pepper:
        raise ValueError("PASSWORD_PEPPER environment variable is not set")
    return password + pepper


def hash_password(password: str) -> str:
    """Hash a plaintext password for storage on the User row.

    Raises:
        ValueError: If the password is empty or PASSWORD_PEPPER is not set
    """
    if not password:
        raise ValueError("Password cannot be empty")
    return _hasher.hash(_peppered(password))


def verify_password(password: str, password_hash: str) -> bool:
    """Check a login attempt against a stored hash.

    A mismatch, an empty input or a malformed hash all yield False.
    """
    if not password or not password_hash:
        return False

    try:
        return _hasher.verify(password_hash, _peppered(password))
    except (VerifyMismatchError, VerificationError, InvalidHashError):
        return False


def password_needs_rehash(password_hash: str) -> bool:
    """True when the stored hash was made with different Argon2 parameters."""
    try:
        return _hasher.check_needs_rehash(password_hash)
    except InvalidHashError:
        return False


def validate_password_strength(password: str) -> Tuple[bool, str]:
    """Check a new password against the account password rules.

    Used when seeding accounts.

    Example:
        >>> validate_password_strength("weak")
        (False, 'Password must be at least 8 characters long')
        >>> validate_password_strength("SecureP@ss123")
        (True, '')
    """
    if len(password) < MIN_PASSWORD_LENGTH:
        return False, f"Password must be at least {MIN_PASSWORD_LENGTH} characters long"

    for pattern, message in _STRENGTH_RULES:
        if not re.search(pattern, password):
            return False, message

    return True, ""
