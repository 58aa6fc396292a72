"""
DATA ENCRYPTION AT REST
=======================
AES-256-GCM helpers for encrypting/decrypting values before storage.

FLOW:
- encrypt_bytes() encrypts raw bytes -> token.
- decrypt_bytes() decrypts token -> bytes (plaintext fallback for migration).

WHY:
- Protects data if the database is compromised.

HOW:
- Uses AES-256-GCM with random nonce per value.
- Each token carries the fingerprint of the key that produced it, so a
  reader holding several keys (during rotation) picks the right one.
"""

from __future__ import annotations

import base64
import hashlib
import os
from typing import Iterable

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM


KEY_SIZE = 32
NONCE_SIZE = 12
TOKEN_PREFIX = "v1.aesgcm256."


class FieldEncryptionError(Exception):
    """Raised when a field value cannot be encrypted or decrypted."""


def _b64encode(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).decode("utf-8").rstrip("=")


def _b64decode(text: str) -> bytes:
    padding = "=" * (-len(text) % 4)
    return base64.urlsafe_b64decode((text + padding).encode("utf-8"))


def _check_key(key: bytes) -> None:
    if len(key) != KEY_SIZE:
        raise ValueError("AES-256 key must be 32 bytes")


def key_fingerprint(key: bytes) -> str:
    _check_key(key)
    return hashlib.sha256(key).hexdigest()[:8]


def is_encrypted_token(value: str | None) -> bool:
    return isinstance(value, str) and value.startswith(TOKEN_PREFIX)


def encrypt_bytes(plaintext: bytes, key: bytes) -> str:
    """Encrypt bytes with AES-256-GCM. Returns a versioned text token."""
    _check_key(key)
    nonce = os.urandom(NONCE_SIZE)
    aesgcm = AESGCM(key)
    ciphertext = aesgcm.encrypt(nonce, plaintext, None)
    return f"{TOKEN_PREFIX}{key_fingerprint(key)}.{_b64encode(nonce)}.{_b64encode(ciphertext)}"


def decrypt_bytes(token: str, keys: Iterable[bytes]) -> bytes:
    """Decrypt a token with whichever key matches its fingerprint. Falls back to plaintext."""
    keyring = {key_fingerprint(key): key for key in keys}
    if not is_encrypted_token(token):
        return token.encode("utf-8")

    parts = token[len(TOKEN_PREFIX):].split(".")
    if len(parts) != 3:
        raise FieldEncryptionError("Malformed encrypted value")
    fingerprint, nonce_text, ciphertext_text = parts

    key = keyring.get(fingerprint)
    if key is None:
        raise FieldEncryptionError(f"No decryption key available for fingerprint {fingerprint}")

    try:
        nonce = _b64decode(nonce_text)
        ciphertext = _b64decode(ciphertext_text)
    except ValueError as exc:
        raise FieldEncryptionError("Malformed encrypted value") from exc
    if len(nonce) != NONCE_SIZE:
        raise FieldEncryptionError("Malformed encrypted value")

    try:
        return AESGCM(key).decrypt(nonce, ciphertext, None)
    except InvalidTag as exc:
        raise FieldEncryptionError("Encrypted value failed authentication") from exc
