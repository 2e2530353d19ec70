"""Password credential helpers.

Passwords are stored as a (salt, hash) pair produced by bcrypt. The salt is
also embedded in the bcrypt hash; it is kept in its own column so the
stored credential always carries both halves explicitly.
"""

import logging
import secrets
import string
from typing import Tuple

import bcrypt

from deptrecords.config import BCRYPT_ROUNDS, TEMPORARY_PASSWORD_LENGTH

logger = logging.getLogger(__name__)

# bcrypt only looks at the first 72 bytes
_BCRYPT_MAX_BYTES = 72

_TEMP_PASSWORD_ALPHABET = string.ascii_letters + string.digits


def _password_bytes(password: str) -> bytes:
    password_bytes = password.encode("utf-8")
    if len(password_bytes) > _BCRYPT_MAX_BYTES:
        logger.warning(
            "Password exceeds %d bytes (%d bytes), truncating",
            _BCRYPT_MAX_BYTES,
            len(password_bytes),
        )
        password_bytes = password_bytes[:_BCRYPT_MAX_BYTES]
    return password_bytes


def generate_salt() -> str:
    return bcrypt.gensalt(rounds=BCRYPT_ROUNDS).decode("utf-8")


def hash_password(password: str, salt: str) -> str:
    """Hash a password with the given bcrypt salt.

    Args:
        password: Plain text password.
        salt: Salt produced by :func:`generate_salt`.

    Returns:
        Bcrypt hash string.
    """
    return bcrypt.hashpw(_password_bytes(password), salt.encode("utf-8")).decode("utf-8")


def encrypt_password(password: str) -> Tuple[str, str]:
    """Generate a fresh salt and hash a password with it.

    Returns:
        Tuple of (salt, hash).
    """
    salt = generate_salt()
    return salt, hash_password(password, salt)


def verify_password(password: str, stored_hash: str, stored_salt: str) -> bool:
    """Verify a password against a stored (hash, salt) pair.

    Args:
        password: Plain text password to verify.
        stored_hash: Stored bcrypt hash.
        stored_salt: Stored salt.

    Returns:
        True if password matches, False otherwise.
    """
    try:
        candidate = hash_password(password, stored_salt)
    except ValueError as e:
        logger.error("Password verification error: %s", e)
        return False
    return secrets.compare_digest(candidate, stored_hash)


def generate_temporary_password(length: int = TEMPORARY_PASSWORD_LENGTH) -> str:
    """Generate a random alphanumeric temporary password."""
    return "".join(secrets.choice(_TEMP_PASSWORD_ALPHABET) for _ in range(length))


def unusable_password() -> Tuple[str, str]:
    """A (salt, hash) pair no known password will ever match."""
    return encrypt_password(secrets.token_urlsafe(32))
