"""Encryption and signing services for archives.

This module provides:
- CryptoService: The four operations the archive layer needs
- GpgCryptoService: Delegates to the gpg command-line tool
- PassphraseCryptoService: Native Argon2id + AES-256-GCM + HMAC-SHA256

Both implementations are interchangeable: the archive dispatcher only
calls encrypt, decrypt, detached_sign and verify. Every failure raises
CryptoError (SignatureVerificationError for a signature that does not
validate), and the dispatcher treats it as fatal.

Passphrase stream format:
    [8 B]  magic b"MSYNCENC"
    [1 B]  format version
    [16 B] Argon2id salt
    then chunks, each:
    [4 B]  big-endian length of the encrypted chunk
    [N B]  nonce || ciphertext || tag (see msync.core.crypto.encrypt_chunk)

    The associated data of chunk i is its 8-byte index followed by a
    final-chunk flag, so reordered, dropped or truncated chunks fail to
    authenticate. An empty plaintext is a single empty final chunk.
"""

from __future__ import annotations

import base64
import json
import logging
import shutil
import subprocess
from pathlib import Path
from typing import BinaryIO, Protocol

from cryptography.exceptions import InvalidSignature, InvalidTag
from cryptography.hazmat.primitives import hashes, hmac

from msync.archive.paths import signature_path
from msync.core.crypto import (
    ARGON2_MEMORY_COST,
    ARGON2_TIME_COST,
    SALT_SIZE,
    decrypt_chunk,
    derive_key,
    encrypt_chunk,
    generate_salt,
)
from msync.sync.types import CryptoError, SignatureVerificationError

logger = logging.getLogger(__name__)

MAGIC = b"MSYNCENC"
FORMAT_VERSION = 1
DEFAULT_CHUNK_SIZE = 1024 * 1024
LENGTH_SIZE = 4
SIGNATURE_ALGORITHM = "hmac-sha256"
HASH_BLOCK_SIZE = 1024 * 1024


class CryptoService(Protocol):
    """Encryption and detached signing over byte streams."""

    def encrypt(self, source: BinaryIO, dest: BinaryIO, recipient: str | None = None) -> None:
        """Encrypt everything readable from source into dest."""
        ...

    def decrypt(self, source: BinaryIO, dest: BinaryIO) -> None:
        """Decrypt everything readable from source into dest."""
        ...

    def detached_sign(self, path: Path, key_id: str | None = None) -> Path:
        """Write a detached signature next to path and return its location."""
        ...

    def verify(self, path: Path, signature: Path) -> None:
        """Raise SignatureVerificationError unless signature validates path."""
        ...


class GpgCryptoService:
    """CryptoService backed by the gpg binary.

    Streams passed to encrypt/decrypt must be real files (they are handed
    to the child process as its stdin/stdout).

    Usage:
        service = GpgCryptoService(keyring="~/.gnupg/backup.kbx")
        with open("a.tar", "rb") as src, open("a.tar.gpg", "wb") as dst:
            service.encrypt(src, dst, recipient="ops@example.com")
    """

    def __init__(self, keyring: str | None = None, gpg_binary: str = "gpg") -> None:
        """Initialize the service.

        Args:
            keyring: Keyring file used instead of the default keyring.
            gpg_binary: Name or path of the gpg executable.

        Raises:
            CryptoError: If gpg cannot be found.
        """
        executable = shutil.which(gpg_binary)
        if executable is None:
            raise CryptoError(f"GPG is not available: '{gpg_binary}' not found in PATH")
        self._gpg = executable
        self._keyring = str(Path(keyring).expanduser()) if keyring else None

    def _command(self, *args: str) -> list[str]:
        command = [self._gpg, "--batch", "--yes"]
        if self._keyring:
            command += ["--no-default-keyring", "--keyring", self._keyring]
        return [*command, *args]

    def _run(
        self,
        args: list[str],
        what: str,
        stdin: BinaryIO | None = None,
        stdout: BinaryIO | None = None,
    ) -> None:
        if stdout is not None:
            stdout.flush()
        logger.debug(f"Running gpg {what}")
        try:
            result = subprocess.run(
                self._command(*args),
                stdin=stdin,
                stdout=stdout if stdout is not None else subprocess.PIPE,
                stderr=subprocess.PIPE,
                check=False,
            )
        except OSError as e:
            raise CryptoError(f"GPG {what} failed: {e}") from e
        if result.returncode != 0:
            stderr = result.stderr.decode(errors="replace").strip()
            raise CryptoError(f"GPG {what} failed (exit {result.returncode}): {stderr}")

    def encrypt(self, source: BinaryIO, dest: BinaryIO, recipient: str | None = None) -> None:
        if not recipient:
            raise CryptoError("No GPG key ID specified for encryption")
        self._run(
            ["--encrypt", "--recipient", recipient, "--output", "-"],
            "encryption",
            stdin=source,
            stdout=dest,
        )

    def decrypt(self, source: BinaryIO, dest: BinaryIO) -> None:
        self._run(["--decrypt", "--output", "-"], "decryption", stdin=source, stdout=dest)

    def detached_sign(self, path: Path, key_id: str | None = None) -> Path:
        signature = signature_path(Path(path))
        args = ["--detach-sign", "--armor", "--output", str(signature)]
        if key_id:
            args += ["--local-user", key_id]
        self._run([*args, str(path)], "signing")
        return signature

    def verify(self, path: Path, signature: Path) -> None:
        try:
            self._run(["--verify", str(signature), str(path)], "signature verification")
        except CryptoError as e:
            raise SignatureVerificationError(str(e)) from e


def _chunk_aad(index: int, final: bool) -> bytes:
    return index.to_bytes(8, "big") + (b"\x01" if final else b"\x00")


def _read_exact(stream: BinaryIO, size: int) -> bytes:
    data = stream.read(size)
    if len(data) != size:
        raise CryptoError("Encrypted stream is truncated")
    return data


class PassphraseCryptoService:
    """CryptoService with symmetric, passphrase-derived keys.

    A fresh salt is drawn for every encryption and every signature, so the
    same passphrase never reuses a key. The recipient and key id arguments
    are accepted for interface compatibility and ignored.
    """

    def __init__(
        self,
        passphrase: str,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        time_cost: int = ARGON2_TIME_COST,
        memory_cost: int = ARGON2_MEMORY_COST,
    ) -> None:
        """Initialize the service.

        Args:
            passphrase: Secret shared by the writer and the reader.
            chunk_size: Plaintext bytes per encrypted chunk.
            time_cost: Argon2 iteration count.
            memory_cost: Argon2 memory cost in KiB.
        """
        if not passphrase:
            raise CryptoError("Passphrase must not be empty")
        self._passphrase = passphrase
        self._chunk_size = chunk_size
        self._time_cost = time_cost
        self._memory_cost = memory_cost

    def _key(self, salt: bytes) -> bytes:
        return derive_key(
            self._passphrase, salt, time_cost=self._time_cost, memory_cost=self._memory_cost
        )

    def encrypt(self, source: BinaryIO, dest: BinaryIO, recipient: str | None = None) -> None:
        salt = generate_salt()
        key = self._key(salt)
        dest.write(MAGIC + bytes([FORMAT_VERSION]) + salt)

        index = 0
        chunk = source.read(self._chunk_size)
        while True:
            # Read ahead to know whether this chunk is the last one
            following = source.read(self._chunk_size)
            final = not following
            encrypted = encrypt_chunk(chunk, key, _chunk_aad(index, final))
            dest.write(len(encrypted).to_bytes(LENGTH_SIZE, "big"))
            dest.write(encrypted)
            if final:
                break
            chunk = following
            index += 1
        logger.debug(f"Encrypted {index + 1} chunks")

    def decrypt(self, source: BinaryIO, dest: BinaryIO) -> None:
        header = source.read(len(MAGIC) + 1)
        if header[: len(MAGIC)] != MAGIC:
            raise CryptoError("Not an msync encrypted stream (bad magic)")
        if header[len(MAGIC) :] != bytes([FORMAT_VERSION]):
            raise CryptoError(f"Unsupported encrypted stream version: {header[len(MAGIC):]!r}")
        key = self._key(_read_exact(source, SALT_SIZE))

        index = 0
        while True:
            length_bytes = source.read(LENGTH_SIZE)
            if not length_bytes:
                raise CryptoError("Encrypted stream is truncated (missing final chunk)")
            if len(length_bytes) != LENGTH_SIZE:
                raise CryptoError("Encrypted stream is truncated")
            encrypted = _read_exact(source, int.from_bytes(length_bytes, "big"))

            try:
                dest.write(decrypt_chunk(encrypted, key, _chunk_aad(index, final=False)))
            except InvalidTag:
                try:
                    dest.write(decrypt_chunk(encrypted, key, _chunk_aad(index, final=True)))
                except InvalidTag as e:
                    raise CryptoError(
                        "Decryption failed: wrong passphrase or corrupted data"
                    ) from e
                break
            index += 1

        if source.read(1):
            raise CryptoError("Unexpected data after the final encrypted chunk")

    def _mac(self, path: Path, salt: bytes) -> hmac.HMAC:
        mac = hmac.HMAC(self._key(salt), hashes.SHA256())
        try:
            with open(path, "rb") as f:
                for block in iter(lambda: f.read(HASH_BLOCK_SIZE), b""):
                    mac.update(block)
        except OSError as e:
            raise CryptoError(f"Cannot read {path}: {e}") from e
        return mac

    def detached_sign(self, path: Path, key_id: str | None = None) -> Path:
        path = Path(path)
        salt = generate_salt()
        tag = self._mac(path, salt).finalize()
        signature = signature_path(path)
        data = {
            "algorithm": SIGNATURE_ALGORITHM,
            "salt": base64.b64encode(salt).decode(),
            "mac": base64.b64encode(tag).decode(),
        }
        try:
            signature.write_text(json.dumps(data, indent=2))
        except OSError as e:
            raise CryptoError(f"Cannot write signature {signature}: {e}") from e
        return signature

    def verify(self, path: Path, signature: Path) -> None:
        try:
            data = json.loads(Path(signature).read_text())
            if data["algorithm"] != SIGNATURE_ALGORITHM:
                raise SignatureVerificationError(
                    f"Unsupported signature algorithm: {data['algorithm']}"
                )
            salt = base64.b64decode(data["salt"])
            tag = base64.b64decode(data["mac"])
        except (OSError, KeyError, TypeError, ValueError) as e:
            raise SignatureVerificationError(f"Invalid signature file {signature}: {e}") from e

        try:
            self._mac(Path(path), salt).verify(tag)
        except InvalidSignature as e:
            raise SignatureVerificationError(f"Signature does not match {path}") from e
