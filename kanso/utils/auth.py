"""Password hashing utilities (PBKDF2-HMAC-SHA256)"""
import hashlib
import hmac
import logging
import secrets
from typing import Tuple

logger = logging.getLogger(__name__)

# Changing any of these invalidates every stored credential
PBKDF2_ITERATIONS = 100_000
DERIVED_KEY_BYTES = 32  # 256 bits
SALT_BYTES = 16


def _derive(password: str, salt: bytes) -> bytes:
    return hashlib.pbkdf2_hmac(
        "sha256",
        password.encode("utf-8"),
        salt,
        PBKDF2_ITERATIONS,
        dklen=DERIVED_KEY_BYTES
    )


def hash_password(password: str) -> Tuple[str, str]:
    """
    Hash a password with a fresh random salt

    Args:
        password: Plain text password

    Returns:
        Tuple of (digest_hex, salt_hex), both lowercase hexadecimal
    """
    salt = secrets.token_bytes(SALT_BYTES)
    return _derive(password, salt).hex(), salt.hex()


def verify_password(password: str, stored_hash: str, stored_salt: str) -> bool:
    """
    Verify a password against a stored digest and salt

    Args:
        password: Plain text password to check
        stored_hash: Hex digest from the credential record
        stored_salt: Hex salt from the credential record

    Returns:
        True if the password matches
    """
    try:
        salt = bytes.fromhex(stored_salt)
    except (TypeError, ValueError):
        logger.error("Stored credential salt is not valid hex")
        return False
    return hmac.compare_digest(_derive(password, salt).hex(), (stored_hash or "").lower())
