"""Tests for the AES-256-GCM field cipher and key handling."""

import base64

import pytest

from Security.data_encryption_at_rest import (
    TOKEN_PREFIX,
    FieldEncryptionError,
    decrypt_bytes,
    encrypt_bytes,
    is_encrypted_token,
    key_fingerprint,
)
from Security.field_level_encryption import (
    FieldCipher,
    decrypt_field,
    encrypt_field,
    get_field_cipher,
    use_field_cipher,
)
from Security import key_management
from Security.key_management import (
    KEY_PREFIX,
    ensure_encryption_key,
    generate_key,
    get_decryption_keys,
    get_encryption_key,
    parse_key,
)


def _flip_byte_in_ciphertext(token: str) -> str:
    head, ciphertext_text = token.rsplit(".", 1)
    raw = bytearray(base64.urlsafe_b64decode(ciphertext_text + "=" * (-len(ciphertext_text) % 4)))
    raw[0] ^= 0x01
    return f"{head}.{base64.urlsafe_b64encode(bytes(raw)).decode('utf-8').rstrip('=')}"


class TestKeys:
    def test_generated_key_has_prefix_and_parses_to_32_bytes(self):
        key = generate_key()

        assert key.startswith(KEY_PREFIX)
        assert len(parse_key(key)) == 32

    def test_generated_keys_are_unique(self):
        assert generate_key() != generate_key()

    def test_bare_base64_key_is_accepted(self):
        key = generate_key()
        bare = key[len(KEY_PREFIX):]

        assert parse_key(bare) == parse_key(key)

    @pytest.mark.parametrize("text", ["", "k1.aesgcm256.", "not base64 at all!", base64.urlsafe_b64encode(b"short").decode()])
    def test_malformed_keys_are_rejected(self, text):
        with pytest.raises(ValueError):
            parse_key(text)

    def test_get_encryption_key_requires_env(self, monkeypatch):
        monkeypatch.delenv("ENCRYPTION_KEY", raising=False)

        with pytest.raises(FieldEncryptionError):
            get_encryption_key()

    def test_decryption_keys_are_comma_separated(self, monkeypatch):
        first, second = generate_key(), generate_key()
        monkeypatch.setenv("DECRYPTION_KEYS", f"{first}, {second},")

        assert get_decryption_keys() == [first, second]

    def test_ensure_encryption_key_keeps_existing_key(self, monkeypatch, encryption_key):
        assert ensure_encryption_key() == encryption_key

    def test_ensure_encryption_key_generates_and_persists(self, monkeypatch, tmp_path):
        env_file = tmp_path / ".env.localhost"
        env_file.write_text("OTHER=1\nENCRYPTION_KEY=\n", encoding="utf-8")
        monkeypatch.setattr(key_management, "env_path", lambda: str(env_file))
        monkeypatch.setenv("ENCRYPTION_KEY", "")

        key = ensure_encryption_key()

        assert key.startswith(KEY_PREFIX)
        assert get_encryption_key() == key
        lines = env_file.read_text(encoding="utf-8").splitlines()
        assert "OTHER=1" in lines
        assert f"ENCRYPTION_KEY={key}" in lines


class TestTokens:
    def test_token_format_carries_fingerprint(self):
        key = parse_key(generate_key())

        token = encrypt_bytes(b"alice@example.com", key)

        assert token.startswith(TOKEN_PREFIX)
        assert is_encrypted_token(token)
        parts = token.split(".")
        assert len(parts) == 5
        assert parts[2] == key_fingerprint(key)

    def test_same_plaintext_encrypts_differently(self):
        key = parse_key(generate_key())

        assert encrypt_bytes(b"same", key) != encrypt_bytes(b"same", key)

    def test_plaintext_passes_through(self):
        key = parse_key(generate_key())

        assert decrypt_bytes("legacy plaintext", [key]) == b"legacy plaintext"

    def test_unknown_fingerprint_is_rejected(self):
        token = encrypt_bytes(b"secret", parse_key(generate_key()))

        with pytest.raises(FieldEncryptionError):
            decrypt_bytes(token, [parse_key(generate_key())])

    def test_tampered_ciphertext_is_rejected(self):
        key = parse_key(generate_key())
        token = encrypt_bytes(b"secret", key)

        with pytest.raises(FieldEncryptionError):
            decrypt_bytes(_flip_byte_in_ciphertext(token), [key])

    def test_truncated_token_is_rejected(self):
        key = parse_key(generate_key())
        token = encrypt_bytes(b"secret", key)

        with pytest.raises(FieldEncryptionError):
            decrypt_bytes(token.rsplit(".", 1)[0], [key])

    def test_wrong_key_length_raises(self):
        with pytest.raises(ValueError):
            encrypt_bytes(b"x", b"too short")


class TestFieldCipher:
    def test_round_trip_unicode(self):
        cipher = FieldCipher(generate_key())

        token = cipher.encrypt("東京都千代田区 1-1")

        assert token != "東京都千代田区 1-1"
        assert cipher.decrypt(token) == "東京都千代田区 1-1"

    def test_none_stays_none(self):
        cipher = FieldCipher(generate_key())

        assert cipher.encrypt(None) is None
        assert cipher.decrypt(None) is None

    def test_decryption_keys_read_old_tokens(self):
        old_key, new_key = generate_key(), generate_key()
        old_token = FieldCipher(old_key).encrypt("090-1234-5678")

        cipher = FieldCipher(new_key, [old_key])

        assert cipher.decrypt(old_token) == "090-1234-5678"
        assert cipher.encrypt("x").split(".")[2] == cipher.fingerprint
        assert cipher.fingerprints == [cipher.fingerprint, FieldCipher(old_key).fingerprint]

    def test_invalid_key_raises_field_encryption_error(self):
        with pytest.raises(FieldEncryptionError):
            FieldCipher("k1.aesgcm256.AAAA")

    def test_field_helpers(self):
        key = generate_key()

        assert decrypt_field(encrypt_field("bob@example.com", key), key) == "bob@example.com"
        assert encrypt_field(None, key) is None


class TestActiveCipher:
    def test_defaults_to_environment(self, encryption_key):
        assert get_field_cipher().fingerprint == FieldCipher(encryption_key).fingerprint

    def test_environment_decryption_keys_are_used(self, monkeypatch, encryption_key):
        old_key = generate_key()
        monkeypatch.setenv("DECRYPTION_KEYS", old_key)
        token = FieldCipher(old_key).encrypt("hello")

        assert get_field_cipher().decrypt(token) == "hello"

    def test_bound_cipher_wins_and_is_reset(self, encryption_key):
        other = FieldCipher(generate_key())

        with use_field_cipher(other):
            assert get_field_cipher() is other

        assert get_field_cipher().fingerprint == FieldCipher(encryption_key).fingerprint

    def test_missing_key_raises(self, monkeypatch):
        monkeypatch.delenv("ENCRYPTION_KEY", raising=False)

        with pytest.raises(FieldEncryptionError):
            get_field_cipher()
