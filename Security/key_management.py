"""
SECURE KEY MANAGEMENT
=====================
Load encryption keys from environment and validate length.
"""

# FLOW:
# - ensure_encryption_key() creates a strong key if missing.
# - get_encryption_key()/get_decryption_keys() read keys from env.
# - parse_key() turns key text into 32 raw bytes.
# WHY:
# - Prevents hard-coded keys and weak secrets.
# HOW:
# - Keys are "k1.aesgcm256.<base64url>" (bare base64 also accepted).

from __future__ import annotations

import base64
import binascii
import logging
import os
import secrets

from Security.data_encryption_at_rest import KEY_SIZE, FieldEncryptionError
from Security.security_config import env_path


logger = logging.getLogger(__name__)

KEY_PREFIX = "k1.aesgcm256."
PLACEHOLDERS = {"", "CHANGE_ME", "REPLACE_WITH_GENERATED_KEY", "AUTO_GENERATE"}


def generate_key() -> str:
    """Return a new random key in k1.aesgcm256 format."""
    encoded = base64.urlsafe_b64encode(secrets.token_bytes(KEY_SIZE)).decode("utf-8")
    return f"{KEY_PREFIX}{encoded}"


def parse_key(text: str) -> bytes:
    """Decode key text into raw key bytes."""
    raw = (text or "").strip()
    if raw.startswith(KEY_PREFIX):
        raw = raw[len(KEY_PREFIX):]
    if not raw:
        raise ValueError("Encryption key is empty")
    padding = "=" * (-len(raw) % 4)
    try:
        key = base64.urlsafe_b64decode((raw + padding).encode("utf-8"))
    except (binascii.Error, ValueError) as exc:
        raise ValueError("Encryption key is not valid base64") from exc
    if len(key) != KEY_SIZE:
        raise ValueError("Encryption key must be 32 bytes after base64 decode")
    return key


def get_encryption_key(env_name: str = "ENCRYPTION_KEY") -> str:
    raw = os.getenv(env_name, "").strip()
    if raw in PLACEHOLDERS:
        raise FieldEncryptionError(f"{env_name} is not set")
    return raw


def get_decryption_keys(env_name: str = "DECRYPTION_KEYS") -> list[str]:
    raw = os.getenv(env_name)
    if not raw:
        return []
    return [item.strip() for item in raw.split(",") if item.strip()]


def _upsert(lines: list[str], key: str, value: str) -> list[str]:
    if any(line.startswith(f"{key}=") for line in lines):
        return [f"{key}={value}" if line.startswith(f"{key}=") else line for line in lines]
    return lines + [f"{key}={value}"]


def ensure_encryption_key(env_name: str = "ENCRYPTION_KEY") -> str:
    """Ensure a strong key exists in .env and environment."""
    raw = os.getenv(env_name, "").strip()
    if raw not in PLACEHOLDERS:
        return raw

    key = generate_key()
    os.environ[env_name] = key

    path = env_path()
    if os.path.exists(path):
        with open(path, "r", encoding="utf-8") as f:
            lines = f.read().splitlines()
        content = "\n".join(_upsert(lines, env_name, key)) + "\n"
    else:
        content = f"{env_name}={key}\n"

    with open(path, "w", encoding="utf-8") as f:
        f.write(content)

    logger.warning("%s was not set; generated a new key and saved it to %s", env_name, path)
    return key
