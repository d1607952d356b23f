"""
Symmetric encryption, webhook signatures and identifiers.

Blobs produced by ``encrypt`` are base64(nonce || ciphertext || tag) using
AES-256-GCM with a 12-byte nonce drawn fresh for every call.
"""

import base64
import binascii
import hashlib
import hmac
import logging
import os
import uuid
from typing import Optional, Union

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

logger = logging.getLogger(__name__)

KEY_LENGTH = 32
NONCE_LENGTH = 12
TAG_LENGTH = 16


class EncryptionError(Exception):
    """Raised when a value cannot be encrypted."""


class DecryptionError(Exception):
    """Raised when a blob is malformed or fails authentication."""


def _derive_key(secret: str) -> bytes:
    """Pad with ASCII '0' or truncate the secret to exactly 32 bytes."""
    return secret.encode("utf-8").ljust(KEY_LENGTH, b"0")[:KEY_LENGTH]


def _as_bytes(value: Union[str, bytes]) -> bytes:
    return value.encode("utf-8") if isinstance(value, str) else value


def encrypt(plaintext: str, secret: str) -> str:
    """
    Encrypt text for storage.

    Args:
        plaintext: Value to protect
        secret: Encryption secret

    Returns:
        Printable blob carrying nonce and ciphertext

    Raises:
        EncryptionError: If the input or secret is unusable
    """
    if plaintext is None or not secret:
        raise EncryptionError("Failed to encrypt data")

    try:
        nonce = os.urandom(NONCE_LENGTH)
        ciphertext = AESGCM(_derive_key(secret)).encrypt(nonce, plaintext.encode("utf-8"), None)
    except (TypeError, ValueError, AttributeError) as e:
        logger.error(f"Encryption error: {type(e).__name__}")
        raise EncryptionError("Failed to encrypt data") from e

    return base64.b64encode(nonce + ciphertext).decode("ascii")


def decrypt(blob: str, secret: str) -> str:
    """
    Decrypt a blob produced by ``encrypt``.

    Raises:
        DecryptionError: On malformed input, wrong secret or tampering
    """
    if not blob or not secret:
        raise DecryptionError("Failed to decrypt data")

    try:
        combined = base64.b64decode(blob, validate=True)
    except (binascii.Error, ValueError, TypeError) as e:
        raise DecryptionError("Failed to decrypt data") from e

    if len(combined) < NONCE_LENGTH + TAG_LENGTH:
        raise DecryptionError("Failed to decrypt data")

    nonce, ciphertext = combined[:NONCE_LENGTH], combined[NONCE_LENGTH:]
    try:
        plaintext = AESGCM(_derive_key(secret)).decrypt(nonce, ciphertext, None)
        return plaintext.decode("utf-8")
    except (InvalidTag, UnicodeDecodeError) as e:
        logger.error(f"Decryption error: {type(e).__name__}")
        raise DecryptionError("Failed to decrypt data") from e


def compute_hmac(body: Union[str, bytes], secret: str) -> str:
    """HMAC-SHA256 of the raw body as lowercase hex."""
    return hmac.new(_as_bytes(secret), _as_bytes(body), hashlib.sha256).hexdigest()


def validate_hmac(body: Union[str, bytes], signature: Optional[str], secret: str) -> bool:
    """
    Check a webhook signature in constant time.

    Never raises; any internal failure counts as a rejected signature.
    """
    try:
        if not signature or not secret:
            return False
        expected = compute_hmac(body, secret)
        return hmac.compare_digest(expected, signature.strip().lower())
    except Exception as e:
        logger.error(f"HMAC validation error: {e}")
        return False


def generate_id() -> str:
    """Random UUID v4 string."""
    return str(uuid.uuid4())
