"""
Cryptor -- AES-256-GCM encryption of stored blobs.

Envelope layout:

    nonce (12 bytes) || ciphertext || GCM tag (16 bytes)

A fresh random nonce is drawn for every call, so encrypting the same
plaintext twice never yields the same envelope. Decryption is
all-or-nothing: any key mismatch or tampering raises
AuthenticationError and no plaintext is returned.

Keys are 32 random bytes persisted as 64 lowercase hex characters,
either inline in .syncenv.yml or in a standalone key file.
"""

from __future__ import annotations

import binascii
import logging
import os
from pathlib import Path
from typing import Union

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from .errors import AuthenticationError, FileAccessError, FormatError

logger = logging.getLogger("syncenv.crypto")

KEY_SIZE = 32
NONCE_SIZE = 12
TAG_SIZE = 16
KEY_FILE_MODE = 0o600


def generate_key() -> bytes:
    """Generate a new random AES-256 key."""
    return AESGCM.generate_key(bit_length=KEY_SIZE * 8)


def encode_key(key: bytes) -> str:
    """Encode a key as lowercase hex for storage."""
    return key.hex()


def decode_key(key_hex: str) -> bytes:
    """Decode a hex-encoded key.

    Args:
        key_hex: Exactly 64 hex characters. Whitespace, including a
            trailing newline, makes the key invalid.

    Returns:
        The 32-byte key.

    Raises:
        FormatError: If the text is not hex or not exactly 32 bytes.
    """
    try:
        key = binascii.unhexlify(key_hex)
    except (binascii.Error, ValueError, AttributeError, TypeError) as exc:
        raise FormatError(f"Failed to decode encryption key: {exc}") from exc

    if len(key) != KEY_SIZE:
        raise FormatError(
            f"Invalid key size: expected {KEY_SIZE} bytes, got {len(key)} bytes"
        )
    return key


def write_private(path: Union[str, Path], data: bytes, mode: int = KEY_FILE_MODE) -> None:
    """Write ``data`` to ``path``, creating the file with ``mode`` from the start.

    An existing file is truncated and narrowed to ``mode`` as well.

    Raises:
        OSError: If the file cannot be written.
    """
    fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, mode)
    with os.fdopen(fd, "wb") as fh:
        fh.write(data)
    os.chmod(path, mode)


def save_key(path: Union[str, Path], key: bytes) -> None:
    """Write a key file containing the hex-encoded key (mode 0600).

    Raises:
        FileAccessError: If the file cannot be written.
    """
    key_path = Path(path)
    try:
        write_private(key_path, encode_key(key).encode("utf-8"))
    except OSError as exc:
        raise FileAccessError(f"Failed to save key to {key_path}: {exc}") from exc
    logger.info("Encryption key written to %s", key_path)


def load_key(path: Union[str, Path]) -> bytes:
    """Read and decode a key file.

    Raises:
        FileAccessError: If the file cannot be read.
        FormatError: If the content is not a valid key.
    """
    key_path = Path(path)
    try:
        text = key_path.read_bytes().decode("utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise FileAccessError(f"Failed to read key file {key_path}: {exc}") from exc
    return decode_key(text)


def _cipher(key: bytes) -> AESGCM:
    if len(key) != KEY_SIZE:
        raise FormatError(
            f"Invalid key size: expected {KEY_SIZE} bytes, got {len(key)} bytes"
        )
    return AESGCM(key)


def encrypt(plaintext: bytes, key: bytes) -> bytes:
    """Encrypt bytes into a nonce-prefixed envelope.

    Args:
        plaintext: Data to encrypt (may be empty).
        key: 32-byte key.

    Returns:
        nonce || ciphertext-with-tag.
    """
    nonce = os.urandom(NONCE_SIZE)
    return nonce + _cipher(key).encrypt(nonce, plaintext, None)


def decrypt(envelope: bytes, key: bytes) -> bytes:
    """Authenticate and decrypt an envelope produced by :func:`encrypt`.

    Raises:
        AuthenticationError: If the envelope is too short, the key is
            wrong, or any byte was altered.
    """
    cipher = _cipher(key)
    if len(envelope) < NONCE_SIZE:
        raise AuthenticationError("Ciphertext too short")

    nonce, body = envelope[:NONCE_SIZE], envelope[NONCE_SIZE:]
    try:
        return cipher.decrypt(nonce, body, None)
    except InvalidTag as exc:
        raise AuthenticationError(
            "Failed to decrypt: authentication failed (wrong key or corrupted data)"
        ) from exc


def encrypt_file(path: Union[str, Path], key: bytes) -> bytes:
    """Read a file and return its encrypted envelope.

    Raises:
        FileAccessError: If the file cannot be read.
    """
    try:
        data = Path(path).read_bytes()
    except OSError as exc:
        raise FileAccessError(f"Failed to read file {path}: {exc}") from exc
    return encrypt(data, key)


def decrypt_to_file(envelope: bytes, key: bytes, path: Union[str, Path]) -> None:
    """Decrypt an envelope and write the plaintext to a file (mode 0600).

    Nothing is written if decryption fails.
    """
    plaintext = decrypt(envelope, key)
    target = Path(path)
    try:
        write_private(target, plaintext)
    except OSError as exc:
        raise FileAccessError(f"Failed to write file {target}: {exc}") from exc
