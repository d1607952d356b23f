"""
Crypto Module - Black Box Interface

Purpose: Protect partner credentials at rest and authenticate webhooks
Interface: encrypt(), decrypt(), compute_hmac(), validate_hmac(), generate_id()
Hidden: Cipher choice, key derivation, blob encoding
"""

from .crypto import (
    DecryptionError,
    EncryptionError,
    compute_hmac,
    decrypt,
    encrypt,
    generate_id,
    validate_hmac,
)

__all__ = [
    "DecryptionError",
    "EncryptionError",
    "compute_hmac",
    "decrypt",
    "encrypt",
    "generate_id",
    "validate_hmac",
]
