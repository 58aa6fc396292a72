"""
Security bootstrap utilities.

Initializes the field encryption key at startup and checks that it can be
used before the first request arrives.
"""

from __future__ import annotations

import logging

from Security.key_management import ensure_encryption_key
from Security.field_level_encryption import FieldCipher


logger = logging.getLogger(__name__)


def initialize_encryption() -> FieldCipher:
    """Ensure ENCRYPTION_KEY exists and is a valid AES-256 key."""
    ensure_encryption_key()
    cipher = FieldCipher.from_env()
    logger.info(
        "Field encryption ready (key %s, %d key(s) accepted for reads)",
        cipher.fingerprint,
        len(cipher.fingerprints),
    )
    return cipher


__all__ = ["initialize_encryption"]
