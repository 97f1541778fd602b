"""Authenticated encryption of private keys bound to an identifier."""

from __future__ import annotations

import base64
import binascii
import uuid

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import ChaCha20Poly1305

__all__ = ["DecryptionError", "encrypt_private_key", "decrypt_private_key"]

_KEY_SIZE = 32
_NONCE_SIZE = 12


class DecryptionError(ValueError):
    """Raised when an encrypted private key cannot be decoded or authenticated."""


def _cipher(key: bytes) -> ChaCha20Poly1305:
    key = bytes(key)
    if len(key) != _KEY_SIZE:
        raise ValueError(f"key must be {_KEY_SIZE} bytes, got {len(key)}")
    return ChaCha20Poly1305(key)


def _nonce(id: uuid.UUID) -> bytes:
    return id.bytes[:_NONCE_SIZE]


def encrypt_private_key(private_key: bytes, key: bytes, id: uuid.UUID) -> str:
    """Encrypt ``private_key`` with ChaCha20-Poly1305 and return it base64-encoded.

    The nonce is the first 12 bytes of ``id``.
    """
    sealed = _cipher(key).encrypt(_nonce(id), bytes(private_key), None)
    return base64.b64encode(sealed).decode("ascii")


def decrypt_private_key(private_key: str, key: bytes, id: uuid.UUID) -> bytes:
    """Decrypt a value produced by :func:`encrypt_private_key`."""
    cipher = _cipher(key)
    try:
        sealed = base64.b64decode(private_key, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise DecryptionError(f"invalid base64: {exc}") from exc
    try:
        return cipher.decrypt(_nonce(id), sealed, None)
    except InvalidTag as exc:
        raise DecryptionError("aead::Error") from exc