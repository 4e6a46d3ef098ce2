"""
Token encryption for session storage.

Uses Fernet symmetric encryption from the cryptography library. The
session cookie is only signed, so tokens are encrypted before they are
written to it and decrypted when read back.
"""

import logging
import os
from typing import Optional

from cryptography.fernet import Fernet, InvalidToken

logger = logging.getLogger(__name__)

ENCRYPTION_KEY_ENV = "TOKEN_ENCRYPTION_KEY"

# Singleton encryption key instance
_fernet: Optional[Fernet] = None


class EncryptionError(Exception):
    """Raised when a stored token cannot be encrypted or decrypted."""

    pass


def _get_fernet() -> Fernet:
    """
    Get or create the Fernet instance.

    The key is read from TOKEN_ENCRYPTION_KEY, a URL-safe base64-encoded
    32-byte key as produced by generate_encryption_key().

    Raises:
        ValueError: If TOKEN_ENCRYPTION_KEY is not set or invalid
    """
    global _fernet

    if _fernet is not None:
        return _fernet

    key = os.getenv(ENCRYPTION_KEY_ENV)
    if not key:
        raise ValueError(
            f"{ENCRYPTION_KEY_ENV} environment variable must be set for token encryption"
        )

    try:
        _fernet = Fernet(key.encode())
    except (TypeError, ValueError) as e:
        raise ValueError(f"Invalid {ENCRYPTION_KEY_ENV}: {e}")
    logger.info("Token encryption initialized")
    return _fernet


def encrypt_token(plaintext: str) -> str:
    """
    Encrypt a serialized token.

    Args:
        plaintext: The value to encrypt

    Returns:
        Fernet token as text
    """
    return _get_fernet().encrypt(plaintext.encode()).decode()


def decrypt_token(ciphertext: str) -> str:
    """
    Decrypt a value produced by encrypt_token.

    Args:
        ciphertext: Fernet token as text

    Returns:
        Decrypted plaintext

    Raises:
        EncryptionError: If the value is not a Fernet token for this key
            (corrupted, tampered with, or written under another key)
    """
    fernet = _get_fernet()
    if not isinstance(ciphertext, str):
        raise EncryptionError(
            f"Expected an encrypted string, got {type(ciphertext).__name__}"
        )
    try:
        return fernet.decrypt(ciphertext.encode()).decode()
    except InvalidToken:
        raise EncryptionError("Decryption failed: invalid token or key mismatch")


def generate_encryption_key() -> str:
    """Generate a new key suitable for TOKEN_ENCRYPTION_KEY."""
    return Fernet.generate_key().decode()


def is_encryption_configured() -> bool:
    """Check if TOKEN_ENCRYPTION_KEY is set."""
    return bool(os.getenv(ENCRYPTION_KEY_ENV))


def reset_encryption() -> None:
    """
    Reset the encryption singleton.

    Useful for testing, or after rotating the key in the environment.
    """
    global _fernet
    _fernet = None
