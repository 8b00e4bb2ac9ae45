"""AES-256-GCM encryption with a fresh random nonce per message."""

import os
from typing import Optional, Tuple

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from credcrypt import DecryptionFailed, InvalidParameters

KEY_SIZE = 32
NONCE_SIZE = 12
TAG_SIZE = 16


def _check_parameters(key: bytes, nonce: Optional[bytes] = None):
    if len(key) != KEY_SIZE:
        raise InvalidParameters.from_context("key", KEY_SIZE, len(key))
    if nonce is not None and len(nonce) != NONCE_SIZE:
        raise InvalidParameters.from_context("nonce", NONCE_SIZE, len(nonce))


def encrypt(
    plaintext: bytes, key: bytes, aad: Optional[bytes] = b""
) -> Tuple[bytes, bytes]:
    """Encrypt `plaintext` and return `(nonce, ciphertext)`.

    The nonce is always generated here, callers can not supply one. The
    ciphertext carries the authentication tag in its last 16 bytes.

    """
    _check_parameters(key)
    nonce = os.urandom(NONCE_SIZE)
    ciphertext = AESGCM(key).encrypt(nonce, plaintext, aad or b"")
    return nonce, ciphertext


def decrypt(
    ciphertext: bytes, nonce: bytes, key: bytes, aad: Optional[bytes] = b""
) -> bytes:
    _check_parameters(key, nonce)
    try:
        return AESGCM(key).decrypt(nonce, ciphertext, aad or b"")
    except InvalidTag:
        raise DecryptionFailed() from None
