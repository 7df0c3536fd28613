"""
Stage 2 — SESSION KEY: fresh AES-256 key per envelope
======================================================
Every envelope gets its own 256-bit AES key from the OS CSPRNG.

The key lives inside a SessionKey handle. The handle can encrypt with
the key (AES-CBC + PKCS#7) and hand out its raw bytes exactly once,
for wrapping. There is no property or method that returns the key bytes
a second time.

Lifecycle:
    generate_session_key()  →  encrypt_with() / export_raw() once  →  destroy()

Dependencies: cryptography >= 41.0
"""

import os
import logging

from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from ..errors import KeyGenerationError, KeyWrapError

logger = logging.getLogger(__name__)

KEY_SIZE   = 32   # 256-bit key
BLOCK_SIZE = 16   # AES block, also the CBC IV length


class SessionKey:
    """Opaque single-use AES-256 key handle."""

    __slots__ = ("_key", "_exported")

    def __init__(self, key: bytes):
        if len(key) != KEY_SIZE:
            raise ValueError(f"AES-256 key must be {KEY_SIZE} bytes.")
        self._key      = bytearray(key)
        self._exported = False

    @property
    def exported(self) -> bool:
        return self._exported

    @property
    def destroyed(self) -> bool:
        return not self._key

    def encrypt_with(self, plaintext: bytes, iv: bytes) -> bytes:
        """
        AES-256-CBC encrypt with PKCS#7 padding.
        Returns ciphertext only; the caller owns the IV.
        """
        if self.destroyed:
            raise ValueError("Session key has been destroyed.")
        if len(iv) != BLOCK_SIZE:
            raise ValueError(f"CBC IV must be {BLOCK_SIZE} bytes.")
        padder = padding.PKCS7(BLOCK_SIZE * 8).padder()
        padded = padder.update(plaintext) + padder.finalize()
        encryptor = Cipher(algorithms.AES(bytes(self._key)), modes.CBC(iv)).encryptor()
        return encryptor.update(padded) + encryptor.finalize()

    def export_raw(self) -> bytearray:
        """
        Hand out the raw key bytes. Allowed once per key.
        The caller must zero the returned buffer when done with it.
        """
        if self.destroyed:
            raise KeyWrapError("Session key has been destroyed.")
        if self._exported:
            raise KeyWrapError("Session key has already been exported.")
        self._exported = True
        return bytearray(self._key)

    def destroy(self) -> None:
        """Best-effort zeroization. The handle is unusable afterwards."""
        for i in range(len(self._key)):
            self._key[i] = 0
        self._key = bytearray()

    def __repr__(self):
        state = "destroyed" if self.destroyed else (
            "exported" if self._exported else "fresh")
        return f"SessionKey(AES-256, {state})"


def generate_session_key() -> SessionKey:
    """Generate a fresh AES-256 session key from the OS random source."""
    try:
        key = os.urandom(KEY_SIZE)
    except (OSError, NotImplementedError) as err:
        logger.warning("Session key generation failed: %s", type(err).__name__)
        raise KeyGenerationError("Random source failed to produce a session key.") from err
    return SessionKey(key)
