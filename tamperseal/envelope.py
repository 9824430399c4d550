"""
Envelope Codec
AES-256-GCM authenticated encryption under one process-wide key.

Blob layout (fixed offsets, no length prefix):

    nonce (16 bytes) || auth tag (16 bytes) || ciphertext

A fresh random nonce is drawn for every encryption. The 16-byte nonce
matches the existing blob format; GCM hashes IVs that are not 96 bits.

Decryption is all-or-nothing: if the tag does not verify, IntegrityError
is raised and no plaintext is returned.
"""

import logging
import os
import warnings
from pathlib import Path

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from tamperseal.config import KEY_SIZE, Config
from tamperseal.errors import ConfigurationError, IntegrityError


logger = logging.getLogger(__name__)

NONCE_SIZE = 16
TAG_SIZE = 16
HEADER_SIZE = NONCE_SIZE + TAG_SIZE


class EphemeralKeyWarning(UserWarning):
    """No key was configured; a random one is in use for this process only."""


def generate_key() -> bytes:
    """Generate a random 256-bit key."""
    return AESGCM.generate_key(bit_length=256)


def secure_filename(original_name: str) -> str:
    """
    Random on-disk name for an encrypted blob.

    Keeps the original extension so operators can tell file types apart,
    but nothing else from the user-supplied name.
    """
    ext = Path(original_name or "").suffix
    return f"{os.urandom(16).hex()}{ext}.enc"


class EnvelopeCodec:
    """
    Encrypts and decrypts byte payloads under a single symmetric key.

    The key is read-only after construction, so one codec can be shared by
    any number of threads.

    Args:
        key: 32-byte AES-256 key.
    """

    def __init__(self, key: bytes):
        if key is None or len(key) != KEY_SIZE:
            raise ConfigurationError(f"Encryption key must be exactly {KEY_SIZE} bytes")
        self._aesgcm = AESGCM(key)

    @classmethod
    def from_config(cls, config: Config) -> "EnvelopeCodec":
        """
        Build a codec from configuration.

        Without a configured key an ephemeral one is generated. Everything
        encrypted with it becomes unrecoverable once the process exits, so
        this is reported loudly and must not be relied on in production.
        """
        if config.encryption_key is not None:
            return cls(config.encryption_key)

        message = (
            "Using a random encryption key. Set ENCRYPTION_KEY for production: "
            "data encrypted now cannot be decrypted after a restart"
        )
        logger.warning(message)
        warnings.warn(message, EphemeralKeyWarning, stacklevel=2)
        return cls(generate_key())

    def encrypt(self, payload: bytes) -> bytes:
        """Encrypt a payload. Returns nonce || tag || ciphertext."""
        nonce = os.urandom(NONCE_SIZE)
        # AESGCM appends the tag to the ciphertext
        sealed = self._aesgcm.encrypt(nonce, payload, None)
        ciphertext, tag = sealed[:-TAG_SIZE], sealed[-TAG_SIZE:]
        return nonce + tag + ciphertext

    def decrypt(self, envelope: bytes) -> bytes:
        """
        Decrypt an envelope produced by ``encrypt``.

        Raises:
            IntegrityError: If the envelope is truncated or fails
                authentication (tampering or corruption).
        """
        if len(envelope) < HEADER_SIZE:
            raise IntegrityError(
                f"Envelope too short: {len(envelope)} bytes, need at least {HEADER_SIZE}"
            )

        nonce = envelope[:NONCE_SIZE]
        tag = envelope[NONCE_SIZE:HEADER_SIZE]
        ciphertext = envelope[HEADER_SIZE:]

        try:
            return self._aesgcm.decrypt(nonce, ciphertext + tag, None)
        except InvalidTag:
            raise IntegrityError("Authentication tag mismatch: envelope was altered or corrupted") from None

    def encrypt_file(self, src: str | Path, dst: str | Path) -> Path:
        """Encrypt the file at ``src`` and write the envelope to ``dst``."""
        dst = Path(dst)
        dst.write_bytes(self.encrypt(Path(src).read_bytes()))
        return dst

    def decrypt_file(self, src: str | Path, dst: str | Path = None) -> bytes:
        """Decrypt the envelope at ``src``; optionally write plaintext to ``dst``."""
        plaintext = self.decrypt(Path(src).read_bytes())
        if dst is not None:
            Path(dst).write_bytes(plaintext)
        return plaintext
