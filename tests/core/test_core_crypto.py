"""Tests for crypto module - Key derivation, chunk encryption and hashing."""

import hashlib
import os
from pathlib import Path

import pytest
from cryptography.exceptions import InvalidTag

from msync.core.crypto import (
    NONCE_SIZE,
    TAG_SIZE,
    compute_file_hash,
    decrypt_chunk,
    derive_key,
    encrypt_chunk,
    generate_salt,
)

# Cheap Argon2 parameters; the defaults are deliberately slow
FAST = {"time_cost": 1, "memory_cost": 64}


class TestKeyDerivation:
    """Tests for Argon2id key derivation."""

    def test_derive_key_returns_32_bytes(self) -> None:
        """Key derivation should return exactly 32 bytes (256 bits)."""
        key = derive_key("test_password", generate_salt(), **FAST)
        assert len(key) == 32

    def test_derive_key_deterministic(self) -> None:
        """Same password and salt should produce same key."""
        salt = generate_salt()
        assert derive_key("pw", salt, **FAST) == derive_key("pw", salt, **FAST)

    def test_derive_key_different_passwords(self) -> None:
        """Different passwords should produce different keys."""
        salt = generate_salt()
        assert derive_key("password1", salt, **FAST) != derive_key("password2", salt, **FAST)

    def test_derive_key_different_salts(self) -> None:
        """Different salts should produce different keys."""
        assert derive_key("pw", generate_salt(), **FAST) != derive_key(
            "pw", generate_salt(), **FAST
        )

    def test_salts_are_random(self) -> None:
        """Each salt should be fresh."""
        assert generate_salt() != generate_salt()


class TestChunkEncryption:
    """Tests for AES-256-GCM chunk encryption."""

    def test_round_trip(self) -> None:
        """Decrypting an encrypted chunk should give the plaintext back."""
        key = os.urandom(32)
        encrypted = encrypt_chunk(b"hello world", key)
        assert decrypt_chunk(encrypted, key) == b"hello world"

    def test_layout(self) -> None:
        """Encrypted chunk should be nonce + ciphertext + tag."""
        encrypted = encrypt_chunk(b"x" * 10, os.urandom(32))
        assert len(encrypted) == NONCE_SIZE + 10 + TAG_SIZE

    def test_wrong_key_fails(self) -> None:
        """Decrypting with another key should fail authentication."""
        encrypted = encrypt_chunk(b"secret", os.urandom(32))
        with pytest.raises(InvalidTag):
            decrypt_chunk(encrypted, os.urandom(32))

    def test_associated_data_must_match(self) -> None:
        """Chunk bound to associated data should not decrypt with other data."""
        key = os.urandom(32)
        encrypted = encrypt_chunk(b"payload", key, b"chunk-0")
        assert decrypt_chunk(encrypted, key, b"chunk-0") == b"payload"
        with pytest.raises(InvalidTag):
            decrypt_chunk(encrypted, key, b"chunk-1")

    def test_tampered_ciphertext_fails(self) -> None:
        """Flipping a ciphertext bit should fail authentication."""
        key = os.urandom(32)
        encrypted = bytearray(encrypt_chunk(b"payload", key))
        encrypted[NONCE_SIZE] ^= 0x01
        with pytest.raises(InvalidTag):
            decrypt_chunk(bytes(encrypted), key)

    def test_too_short_fails(self) -> None:
        """Data shorter than nonce plus tag should fail authentication."""
        with pytest.raises(InvalidTag):
            decrypt_chunk(os.urandom(NONCE_SIZE + TAG_SIZE - 1), os.urandom(32))


class TestFileHash:
    """Tests for SHA-256 file hashing."""

    def test_matches_hashlib(self, tmp_path: Path) -> None:
        """Should match a one-shot SHA-256 of the content."""
        data = os.urandom(3 * 1024 * 1024 + 17)
        path = tmp_path / "data.bin"
        path.write_bytes(data)
        assert compute_file_hash(path) == hashlib.sha256(data).hexdigest()

    def test_empty_file(self, tmp_path: Path) -> None:
        """Should hash an empty file."""
        path = tmp_path / "empty"
        path.write_bytes(b"")
        assert compute_file_hash(path) == hashlib.sha256(b"").hexdigest()

    def test_missing_file_raises(self, tmp_path: Path) -> None:
        """Should raise OSError for a missing file."""
        with pytest.raises(OSError):
            compute_file_hash(tmp_path / "missing")
