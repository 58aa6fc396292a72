"""
ENCRYPTED SQLALCHEMY TYPES
==========================
Field-level encryption for SQLAlchemy String/Text columns using AES-256-GCM.
"""

# FLOW:
# - Encrypt on bind (write) and decrypt on result (read).
# - Uses the active FieldCipher (ENCRYPTION_KEY / DECRYPTION_KEYS by default).
# WHY:
# - Ensures sensitive fields are encrypted at rest transparently.
# HOW:
# - SQLAlchemy TypeDecorator wraps String/Text columns.

from __future__ import annotations

from sqlalchemy.types import TypeDecorator, String, Text

from Security.field_level_encryption import get_field_cipher


class EncryptedString(TypeDecorator):
    impl = String
    cache_ok = True

    def __init__(self, length=None, **kwargs):
        super().__init__(**kwargs)
        self.length = length

    def load_dialect_impl(self, dialect):
        return dialect.type_descriptor(String(self.length))

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        return get_field_cipher().encrypt(value)

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return get_field_cipher().decrypt(value)


class EncryptedText(TypeDecorator):
    impl = Text
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        return get_field_cipher().encrypt(value)

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return get_field_cipher().decrypt(value)
