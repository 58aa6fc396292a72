"""
SENSITIVE DATA PROTECTION
=========================
Field-level AES-256-GCM encryption for strings.
"""

# FLOW:
# - FieldCipher holds one key for writing and any number for reading.
# - get_field_cipher() returns the cipher used by encrypted columns.
# - encrypt_field()/decrypt_field() call AES helpers for single values.
# WHY:
# - Protects individual columns without encrypting whole rows.
# HOW:
# - Wraps AES helper functions for string values.

from __future__ import annotations

from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterable, Iterator, Optional

from Security.data_encryption_at_rest import (
    FieldEncryptionError,
    decrypt_bytes,
    encrypt_bytes,
    key_fingerprint,
)
from Security.key_management import get_decryption_keys, get_encryption_key, parse_key


_active_cipher: ContextVar[Optional["FieldCipher"]] = ContextVar("active_field_cipher", default=None)


def _load_key(text: str) -> bytes:
    try:
        return parse_key(text)
    except ValueError as exc:
        raise FieldEncryptionError(str(exc)) from exc


class FieldCipher:
    """Encrypts with one key and decrypts with that key or any extra decryption key."""

    def __init__(self, encryption_key: str, decryption_keys: Iterable[str] = ()):
        self._encryption_key = _load_key(encryption_key)
        keys = [self._encryption_key]
        for text in decryption_keys:
            key = _load_key(text)
            if key not in keys:
                keys.append(key)
        self._decryption_keys = keys

    @classmethod
    def from_env(cls) -> "FieldCipher":
        return cls(get_encryption_key(), get_decryption_keys())

    @property
    def fingerprint(self) -> str:
        return key_fingerprint(self._encryption_key)

    @property
    def fingerprints(self) -> list[str]:
        return [key_fingerprint(key) for key in self._decryption_keys]

    def encrypt(self, value: str | None) -> str | None:
        if value is None:
            return None
        return encrypt_bytes(value.encode("utf-8"), self._encryption_key)

    def decrypt(self, token: str | None) -> str | None:
        if token is None:
            return None
        return decrypt_bytes(token, self._decryption_keys).decode("utf-8")


def get_field_cipher() -> FieldCipher:
    cipher = _active_cipher.get()
    if cipher is not None:
        return cipher
    return FieldCipher.from_env()


@contextmanager
def use_field_cipher(cipher: FieldCipher) -> Iterator[FieldCipher]:
    """Bind a cipher for encrypted columns within the current context."""
    token = _active_cipher.set(cipher)
    try:
        yield cipher
    finally:
        _active_cipher.reset(token)


def encrypt_field(value: str | None, key: str) -> str | None:
    return FieldCipher(key).encrypt(value)


def decrypt_field(token: str | None, key: str) -> str | None:
    return FieldCipher(key).decrypt(token)


__all__ = [
    "FieldCipher",
    "FieldEncryptionError",
    "get_field_cipher",
    "use_field_cipher",
    "encrypt_field",
    "decrypt_field",
]
